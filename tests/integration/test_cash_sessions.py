"""
Integration tests for the cash session ledger (apertura y cierre de caja).
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from caja.exceptions import (
    ValidationError, SessionAlreadyOpenError, SessionAlreadyClosedError, SessionNotFoundError
)
from caja.models import CashSession, CashSessionStatus, Expense, Product
from caja.services import cash_session_service
from caja.services.cash_session_service import (
    open_cash_session, close_cash_session, get_open_session, get_session_summary, list_cash_sessions
)
from caja.services.checkout_service import checkout, void_sale
from caja.services.expense_service import create_expense
from caja.utils.dates import utcnow


@pytest.fixture
def product_1750(session, store1):
    product = Product(store_id=store1.id, name='Fernet 750ml', sale_price=Decimal('1750.00'), current_stock=20)
    session.add(product)
    session.commit()
    product.id
    return product


class TestOpenCashSession:

    def test_open(self, session, store1, cashier1):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '1.000,00', notes='Turno mañana')

        assert cash_session.status == CashSessionStatus.OPEN
        assert cash_session.opening_amount == Decimal('1000.00')
        assert cash_session.closed_at is None
        assert get_open_session(session, store1.id).id == cash_session.id

    def test_second_open_is_rejected(self, session, store1, cashier1):
        first = open_cash_session(session, store1.id, cashier1.id, 1000)

        with pytest.raises(SessionAlreadyOpenError) as exc_info:
            open_cash_session(session, store1.id, cashier1.id, 500)

        assert exc_info.value.code == 'SESSION_ALREADY_OPEN'
        assert exc_info.value.to_dict()['sessionId'] == first.id
        assert session.query(CashSession).filter_by(store_id=store1.id).count() == 1

    def test_concurrent_open_is_stopped_by_database(self, session, store1, cashier1, monkeypatch):
        """Both cashiers pass the lookup; the partial unique index rejects the second insert."""
        first = open_cash_session(session, store1.id, cashier1.id, 1000)
        first_id = first.id

        real_lookup = cash_session_service.get_open_session
        calls = {'count': 0}

        def lookup_missing_first_time(*args):
            calls['count'] += 1
            if calls['count'] == 1:
                return None
            return real_lookup(*args)

        monkeypatch.setattr(cash_session_service, 'get_open_session', lookup_missing_first_time)

        with pytest.raises(SessionAlreadyOpenError) as exc_info:
            open_cash_session(session, store1.id, cashier1.id, 500)

        assert exc_info.value.to_dict()['sessionId'] == first_id
        assert session.query(CashSession).filter_by(store_id=store1.id).count() == 1

    def test_stores_are_independent(self, session, store1, store2, cashier1, cashier2):
        open_cash_session(session, store1.id, cashier1.id, 1000)
        open_cash_session(session, store2.id, cashier2.id, 1000)

        assert session.query(CashSession).filter_by(status=CashSessionStatus.OPEN).count() == 2

    @pytest.mark.parametrize('amount', ['-1', None, 'abc'])
    def test_invalid_opening_amount(self, session, store1, cashier1, amount):
        with pytest.raises(ValidationError):
            open_cash_session(session, store1.id, cashier1.id, amount)

    def test_reopen_after_close(self, session, store1, cashier1):
        first = open_cash_session(session, store1.id, cashier1.id, 100)
        close_cash_session(session, first.id, 100, store_id=store1.id, cashier_id=cashier1.id)

        second = open_cash_session(session, store1.id, cashier1.id, 200)

        assert second.id != first.id
        assert second.status == CashSessionStatus.OPEN


class TestCloseCashSession:

    def _ring_up_day(self, session, make_checkout, store1, cashier1, product_1750, product2):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '1000')
        checkout(session, make_checkout([(product_1750, 2)], payment_method='CASH'))
        checkout(session, make_checkout([(product2, 1)], payment_method='TRANSFER'))
        create_expense(session, store1.id, cashier1.id, 'Limpieza', '200')
        return cash_session.id

    def test_close_balanced(self, session, make_checkout, store1, cashier1, product_1750, product2):
        session_id = self._ring_up_day(session, make_checkout, store1, cashier1, product_1750, product2)

        result = close_cash_session(session, session_id, '4300', store_id=store1.id, cashier_id=cashier1.id)

        assert result.opening_amount == Decimal('1000.00')
        assert result.cash_sales == Decimal('3500.00')
        assert result.all_sales == Decimal('3750.50')
        assert result.sales_count == 2
        assert result.expenses == Decimal('200.00')
        assert result.expected_amount == Decimal('4300.00')
        assert result.variance == Decimal('0.00')

        closed = session.query(CashSession).filter_by(id=session_id).one()
        assert closed.status == CashSessionStatus.CLOSED
        assert closed.closed_at is not None
        assert closed.closing_amount == Decimal('4300.00')
        assert closed.expected_amount == Decimal('4300.00')
        assert closed.closed_by == cashier1.id

    def test_close_with_shortage(self, session, make_checkout, store1, cashier1, product_1750, product2):
        session_id = self._ring_up_day(session, make_checkout, store1, cashier1, product_1750, product2)

        result = close_cash_session(session, session_id, '4250', store_id=store1.id, cashier_id=cashier1.id)

        assert result.expected_amount == Decimal('4300.00')
        assert result.variance == Decimal('-50.00')
        assert session.query(CashSession).filter_by(id=session_id).one().status == CashSessionStatus.CLOSED

    def test_large_variance_never_blocks(self, session, store1, cashier1):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '5000')

        result = close_cash_session(session, cash_session.id, '0', store_id=store1.id)

        assert result.variance == Decimal('-5000.00')

    def test_voided_sales_are_not_counted(self, session, make_checkout, store1, cashier1, product_1750):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '0')
        sale = checkout(session, make_checkout([(product_1750, 1)]))
        void_sale(session, sale.sale_id, store1.id, cashier1.id)

        result = close_cash_session(session, cash_session.id, '0', store_id=store1.id)

        assert result.cash_sales == Decimal('0.00')
        assert result.expected_amount == Decimal('0.00')

    def test_expenses_of_other_days_are_not_counted(self, session, store1, cashier1):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '1000')
        session.add(Expense(store_id=store1.id, cashier_id=cashier1.id, category='Sueldos',
                            amount=Decimal('300'), created_at=utcnow() - timedelta(days=2)))
        session.commit()

        result = close_cash_session(session, cash_session.id, '1000', store_id=store1.id)

        assert result.expenses == Decimal('0.00')
        assert result.variance == Decimal('0.00')

    def test_close_twice(self, session, store1, cashier1):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '100')
        session_id = cash_session.id
        close_cash_session(session, session_id, '100', store_id=store1.id)

        with pytest.raises(SessionAlreadyClosedError):
            close_cash_session(session, session_id, '90', store_id=store1.id)

        assert session.query(CashSession).filter_by(id=session_id).one().closing_amount == Decimal('100.00')

    def test_close_unknown(self, session, store1):
        with pytest.raises(SessionNotFoundError):
            close_cash_session(session, 999999, '0', store_id=store1.id)

    def test_close_other_store_session(self, session, store1, store2, cashier1):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '100')

        with pytest.raises(SessionNotFoundError):
            close_cash_session(session, cash_session.id, '100', store_id=store2.id)

    def test_negative_counted_amount(self, session, store1, cashier1):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '100')

        with pytest.raises(ValidationError):
            close_cash_session(session, cash_session.id, '-1', store_id=store1.id)

        assert get_open_session(session, store1.id) is not None


class TestSessionQueries:

    def test_summary_matches_close(self, session, make_checkout, store1, cashier1, product_1750):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '500')
        checkout(session, make_checkout([(product_1750, 1)]))

        summary = get_session_summary(session, cash_session.id, store1.id)

        assert summary.expected_amount == Decimal('2250.00')
        assert summary.counted_amount is None
        assert summary.variance is None
        assert get_open_session(session, store1.id) is not None

    def test_history(self, session, make_checkout, store1, cashier1, product_1750):
        first = open_cash_session(session, store1.id, cashier1.id, '100')
        checkout(session, make_checkout([(product_1750, 1)]))
        close_cash_session(session, first.id, '1850', store_id=store1.id)
        open_cash_session(session, store1.id, cashier1.id, '200')

        history = list_cash_sessions(session, store1.id)

        assert len(history) == 2
        closed = next(h for h in history if h['status'] == 'CLOSED')
        assert closed['sales_total'] == Decimal('1750.00')
        assert closed['sales_count'] == 1
        assert closed['variance'] == Decimal('0.00')
        assert any(h['status'] == 'OPEN' for h in history)
