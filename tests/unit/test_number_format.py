"""
Unit tests for payload number parsing.
"""

import pytest
from decimal import Decimal

from caja.exceptions import ValidationError
from caja.utils.number_format import parse_amount, parse_quantity, parse_id


class TestParseAmount:

    @pytest.mark.parametrize('value, expected', [
        (1500, Decimal('1500.00')),
        ('1500.5', Decimal('1500.50')),
        ('1.500,50', Decimal('1500.50')),
        ('$ 2.000,00', Decimal('2000.00')),
        ('250,5', Decimal('250.50')),
        ('1.500', Decimal('1500.00')),
        ('1.234.567', Decimal('1234567.00')),
        (Decimal('10.005'), Decimal('10.00')),
    ])
    def test_accepted_formats(self, value, expected):
        assert parse_amount(value, 'El monto') == expected

    @pytest.mark.parametrize('value', [None, '', True, 'abc', 'NaN', 'Infinity'])
    def test_rejects_missing_or_not_finite(self, value):
        with pytest.raises(ValidationError):
            parse_amount(value, 'El monto')

    @pytest.mark.parametrize('value', ['1e30', '1e10', 10000000000, '9999999999.999', Decimal('1E+40')])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount(value, 'El monto')
        assert 'máximo' in exc_info.value.message

    def test_largest_amount(self):
        assert parse_amount('9999999999.99', 'El monto') == Decimal('9999999999.99')

    def test_rejects_negative(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_amount('-1', 'El monto')
        assert 'negativo' in exc_info.value.message

    def test_zero_allowed_by_default(self):
        assert parse_amount(0, 'El monto') == Decimal('0.00')

    def test_zero_rejected_when_required_positive(self):
        with pytest.raises(ValidationError):
            parse_amount('0', 'El total', allow_zero=False)


class TestParseQuantity:

    def test_integer(self):
        assert parse_quantity(3) == 3
        assert parse_quantity('2') == 2
        assert parse_quantity(2.0) == 2

    @pytest.mark.parametrize('value', [0, -1, 1.5, '1.5', None, True, 'x'])
    def test_rejected(self, value):
        with pytest.raises(ValidationError):
            parse_quantity(value)


class TestParseId:

    def test_valid(self):
        assert parse_id('7', 'El producto') == 7

    @pytest.mark.parametrize('value', [None, '', 0, -3, 'abc', False])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_id(value, 'El producto')
