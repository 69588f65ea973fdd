"""
Integration tests for expenses (gastos).
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from caja.exceptions import ValidationError
from caja.models import Expense
from caja.services.expense_service import create_expense, list_expenses, sum_expenses
from caja.utils.dates import utcnow, business_date, business_day_range


class TestExpenses:

    def test_create(self, session, store1, cashier1):
        expense = create_expense(session, store1.id, cashier1.id, ' Sueldos ', '15.000,00', 'Quincena')

        assert expense.category == 'Sueldos'
        assert expense.amount == Decimal('15000.00')
        assert expense.description == 'Quincena'

    @pytest.mark.parametrize('category, amount', [
        ('', 100),
        (None, 100),
        ('Limpieza', 0),
        ('Limpieza', '-10'),
        ('Limpieza', 'diez'),
    ])
    def test_invalid(self, session, store1, cashier1, category, amount):
        with pytest.raises(ValidationError):
            create_expense(session, store1.id, cashier1.id, category, amount)

        assert session.query(Expense).count() == 0

    def test_list_is_business_day_scoped(self, session, store1, store2, cashier1, cashier2):
        create_expense(session, store1.id, cashier1.id, 'Limpieza', 200)
        create_expense(session, store2.id, cashier2.id, 'Limpieza', 999)
        session.add(Expense(store_id=store1.id, cashier_id=cashier1.id, category='Sueldos',
                            amount=Decimal('500'), created_at=utcnow() - timedelta(days=3)))
        session.commit()

        today = list_expenses(session, store1.id)

        assert [e.amount for e in today] == [Decimal('200.00')]

    def test_sum(self, session, store1, cashier1):
        create_expense(session, store1.id, cashier1.id, 'Limpieza', '200')
        create_expense(session, store1.id, cashier1.id, 'Flete', '150.50')

        start, end = business_day_range(business_date())
        assert sum_expenses(session, store1.id, start, end) == Decimal('350.50')
