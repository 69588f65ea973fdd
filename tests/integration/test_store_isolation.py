"""
Integration tests for store isolation.
Every read and write is scoped to the caller's store.
"""

import pytest
from decimal import Decimal

from caja.exceptions import ValidationError, SaleNotFoundError, SessionNotFoundError, NotFoundError
from caja.models import Product, Sale
from caja.services.checkout_service import checkout, void_sale, get_sale, list_sales
from caja.services.cash_session_service import open_cash_session, close_cash_session, get_open_session
from caja.services.stock_service import list_products, adjust_stock, get_stock_history
from caja.services.expense_service import create_expense, list_expenses


class TestCheckoutIsolation:

    def test_cannot_sell_other_store_product(self, session, make_checkout, product_store2):
        product_id = product_store2.id

        with pytest.raises(ValidationError):
            checkout(session, make_checkout([(product_store2, 1)]))

        assert session.query(Product.current_stock).filter_by(id=product_id).scalar() == 5
        assert session.query(Sale).count() == 0

    def test_sale_invisible_to_other_store(self, session, make_checkout, product1, store2, cashier2):
        result = checkout(session, make_checkout([(product1, 1)]))

        with pytest.raises(SaleNotFoundError):
            get_sale(session, result.sale_id, store2.id)
        assert list_sales(session, store2.id) == []

    def test_cannot_void_other_store_sale(self, session, make_checkout, product1, store2, cashier2):
        result = checkout(session, make_checkout([(product1, 2)]))

        with pytest.raises(SaleNotFoundError):
            void_sale(session, result.sale_id, store2.id, cashier2.id)

        assert session.query(Product.current_stock).filter_by(id=product1.id).scalar() == 8

    def test_same_idempotency_key_in_two_stores(self, session, make_checkout, product1,
                                                product_store2, store2, cashier2):
        from caja.services.checkout_schemas import CheckoutRequest

        first = checkout(session, make_checkout([(product1, 1)], idempotency_key='k-1'))
        other = CheckoutRequest.from_payload({
            'cart': [{'productId': product_store2.id, 'quantity': 1, 'unitPrice': '3200.00'}],
            'paymentMethod': 'CASH',
            'total': '3200.00',
            'idempotencyKey': 'k-1',
        }, store_id=store2.id, cashier_id=cashier2.id)

        second = checkout(session, other)

        assert second.replayed is False
        assert second.sale_id != first.sale_id


class TestCashSessionIsolation:

    def test_each_store_has_its_own_drawer(self, session, store1, store2, cashier1, cashier2):
        first = open_cash_session(session, store1.id, cashier1.id, '1000')
        second = open_cash_session(session, store2.id, cashier2.id, '500')

        assert get_open_session(session, store1.id).id == first.id
        assert get_open_session(session, store2.id).id == second.id

    def test_cannot_close_other_store_session(self, session, store1, store2, cashier1, cashier2):
        cash_session = open_cash_session(session, store1.id, cashier1.id, '1000')

        with pytest.raises(SessionNotFoundError):
            close_cash_session(session, cash_session.id, '1000', store_id=store2.id, cashier_id=cashier2.id)

        assert get_open_session(session, store1.id) is not None

    def test_other_store_sales_do_not_count(self, session, store1, store2, cashier1, cashier2,
                                            make_checkout, product_store2):
        from caja.services.checkout_schemas import CheckoutRequest

        cash_session = open_cash_session(session, store1.id, cashier1.id, '1000')
        open_cash_session(session, store2.id, cashier2.id, '0')
        checkout(session, CheckoutRequest.from_payload({
            'cart': [{'productId': product_store2.id, 'quantity': 1, 'unitPrice': '3200.00'}],
            'paymentMethod': 'CASH',
            'total': '3200.00',
        }, store_id=store2.id, cashier_id=cashier2.id))
        create_expense(session, store2.id, cashier2.id, 'Limpieza', '100')

        result = close_cash_session(session, cash_session.id, '1000', store_id=store1.id)

        assert result.cash_sales == Decimal('0')
        assert result.expenses == Decimal('0')
        assert result.variance == Decimal('0')


class TestCatalogIsolation:

    def test_products_are_scoped(self, session, product1, product_store2, store1, store2):
        assert [p.id for p in list_products(session, store1.id)] == [product1.id]
        assert [p.id for p in list_products(session, store2.id)] == [product_store2.id]

    def test_cannot_adjust_other_store_product(self, session, product_store2, store1, cashier1):
        with pytest.raises(NotFoundError):
            adjust_stock(session, store1.id, product_store2.id, 5, 'IN', created_by=cashier1.id)

        with pytest.raises(NotFoundError):
            get_stock_history(session, store1.id, product_store2.id)

    def test_expenses_are_scoped(self, session, store1, store2, cashier1):
        create_expense(session, store1.id, cashier1.id, 'Sueldos', '100')

        assert len(list_expenses(session, store1.id)) == 1
        assert list_expenses(session, store2.id) == []


class TestApiIsolation:

    def test_other_store_sale_is_not_found(self, app, authenticated_client, session,
                                           product_store2, store2, cashier2):
        product_id = product_store2.id
        other = app.test_client()
        with other.session_transaction() as sess:
            sess['user_id'] = cashier2.id
            sess['store_id'] = store2.id

        sale_id = other.post('/api/checkout', json={
            'cart': [{'productId': product_id, 'quantity': 1, 'unitPrice': '3200.00'}],
            'paymentMethod': 'CASH',
            'total': '3200.00',
        }).get_json()['saleId']

        assert authenticated_client.get(f'/api/sales/{sale_id}').status_code == 404
        assert authenticated_client.post(f'/api/sales/{sale_id}/void').status_code == 404
        assert authenticated_client.get('/api/sales').get_json()['sales'] == []
