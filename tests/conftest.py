import pytest
import uuid
from decimal import Decimal

from caja import create_app
from caja import database
from caja.database import get_session, Base
from caja.models import Store, AppUser, StoreUser, Product
from caja.services.checkout_schemas import CheckoutRequest
from caja.services.rate_limit_service import get_rate_limiter


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session inside an application context."""
    with app.app_context():
        session = get_session()
        yield session
        session.rollback()


@pytest.fixture(autouse=True)
def clean_database(app):
    """Empty every table and rate-limit window after each test."""
    yield
    database.db_session.remove()
    with database.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    get_rate_limiter().reset()


def _make_store(session, label):
    suffix = str(uuid.uuid4())[:8]
    store = Store(slug=f'{label}-{suffix}', name=f'Almacén {label}', active=True)
    session.add(store)
    session.commit()
    store.id  # load attributes before the session is recycled
    return store


def _make_user(session, store, label, role='OWNER'):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(email=f'{label}-{suffix}@test.com', full_name=f'Cajero {label}', active=True)
    user.set_password('password123')
    session.add(user)
    session.flush()
    session.add(StoreUser(user_id=user.id, store_id=store.id, role=role, active=True))
    session.commit()
    user.id
    return user


def _make_product(session, store, name, price, stock, min_stock=0):
    product = Product(
        store_id=store.id,
        name=name,
        sale_price=Decimal(str(price)),
        cost_price=Decimal('0'),
        current_stock=stock,
        min_stock=min_stock,
        active=True
    )
    session.add(product)
    session.commit()
    product.id
    return product


@pytest.fixture(scope='function')
def store1(session):
    """Create first test store."""
    return _make_store(session, 'store1')


@pytest.fixture(scope='function')
def store2(session):
    """Create second test store for isolation tests."""
    return _make_store(session, 'store2')


@pytest.fixture(scope='function')
def cashier1(session, store1):
    """Owner/cashier of store1."""
    return _make_user(session, store1, 'cashier1')


@pytest.fixture(scope='function')
def cashier2(session, store2):
    """Owner/cashier of store2."""
    return _make_user(session, store2, 'cashier2')


@pytest.fixture(scope='function')
def product1(session, store1):
    """Product of store1: price 1500, stock 10."""
    return _make_product(session, store1, 'Coca Cola 500ml', '1500.00', 10)


@pytest.fixture(scope='function')
def product2(session, store1):
    """Product of store1: price 250.50, stock 3."""
    return _make_product(session, store1, 'Alfajor', '250.50', 3)


@pytest.fixture(scope='function')
def product_store2(session, store2):
    """Product of store2."""
    return _make_product(session, store2, 'Yerba 1kg', '3200.00', 5)


@pytest.fixture(scope='function')
def make_checkout(store1, cashier1):
    """Build a CheckoutRequest for store1 from (product, quantity) pairs."""
    store_id = store1.id
    cashier_id = cashier1.id

    def _make(lines, payment_method='CASH', idempotency_key=None, **extra):
        cart = [
            {
                'productId': product.id,
                'name': product.name,
                'quantity': qty,
                'unitPrice': str(product.sale_price),
            }
            for product, qty in lines
        ]
        total = sum((Decimal(str(product.sale_price)) * qty for product, qty in lines), Decimal('0'))
        payload = {
            'cart': cart,
            'paymentMethod': payment_method,
            'total': str(total),
            'idempotencyKey': idempotency_key,
        }
        payload.update(extra)
        return CheckoutRequest.from_payload(payload, store_id=store_id, cashier_id=cashier_id)

    return _make


@pytest.fixture(scope='function')
def authenticated_client(client, cashier1, store1):
    """Create authenticated client for store1."""
    with client.session_transaction() as sess:
        sess['user_id'] = cashier1.id
        sess['store_id'] = store1.id
    return client
