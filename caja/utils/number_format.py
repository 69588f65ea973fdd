"""Number parsing utilities for request payloads (plain and Argentine formats)."""
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from caja.exceptions import ValidationError

# 1.500 / 1.500,50 / 250,5 (a dot followed by exactly three digits is a thousands separator)
AR_NUMBER_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")
CENTS = Decimal('0.01')
# Numeric(12, 2) columns
MAX_AMOUNT = Decimal('1e10')


def parse_amount(value: Any, field: str, allow_zero: bool = True) -> Decimal:
    """
    Parse a monetary value into a Decimal rounded to cents.

    Accepts ints, floats, Decimals and strings in either plain (1234.56) or
    Argentine (1.234,56 or 1.234) notation.

    Raises:
        ValidationError: if the value is missing, not finite, too large,
            negative, or zero when ``allow_zero`` is False.
    """
    if value is None or isinstance(value, bool) or value == '':
        raise ValidationError(f'{field} es requerido')

    if isinstance(value, str):
        cleaned = value.strip().replace('$', '').strip()
        if AR_NUMBER_PATTERN.match(cleaned):
            cleaned = cleaned.replace('.', '').replace(',', '.')
        value = cleaned

    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'{field} no es un número válido')

    if not amount.is_finite():
        raise ValidationError(f'{field} no es un número válido')

    try:
        amount = amount.quantize(CENTS)
    except InvalidOperation:
        raise ValidationError(f'{field} excede el máximo permitido')
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f'{field} excede el máximo permitido')
    if amount < 0:
        raise ValidationError(f'{field} no puede ser negativo')
    if not allow_zero and amount == 0:
        raise ValidationError(f'{field} debe ser mayor a 0')

    return amount


def parse_quantity(value: Any, field: str = 'La cantidad') -> int:
    """Parse a unit quantity: a whole number >= 1."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{field} es requerida')

    try:
        qty = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'{field} no es un número válido')

    if not qty.is_finite() or qty != qty.to_integral_value():
        raise ValidationError(f'{field} debe ser un número entero')
    if qty < 1:
        raise ValidationError(f'{field} debe ser mayor a 0')

    return int(qty)


def parse_id(value: Any, field: str) -> int:
    """Parse a positive integer identifier."""
    if value is None or isinstance(value, bool) or value == '':
        raise ValidationError(f'{field} es requerido')
    try:
        parsed = int(str(value).strip())
    except (ValueError, TypeError):
        raise ValidationError(f'{field} inválido')
    if parsed <= 0:
        raise ValidationError(f'{field} inválido')
    return parsed
