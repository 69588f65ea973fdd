"""Middleware for cashier and store context."""
from functools import wraps
from flask import session, g, current_app
from caja.database import get_session
from caja.exceptions import UnauthorizedError, StoreRequiredError, CajaError
from caja.models import AppUser, StoreUser, Store


def load_cashier_and_store():
    """
    Load current cashier and store into g (Flask's per-request global).

    Login is handled elsewhere; it leaves ``user_id`` and ``store_id`` in the
    Flask session. Sets g.user, g.user_id, g.store_id and g.user_role when the
    user is active and an active member of that store.
    """
    g.user = None
    g.user_id = None
    g.store_id = None
    g.user_role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if not user:
        return

    g.user = user
    g.user_id = user.id

    store_id = session.get('store_id')
    if not store_id:
        return

    # Verify user has access to this store
    store_user = db_session.query(StoreUser).join(Store).filter(
        StoreUser.user_id == user.id,
        StoreUser.store_id == store_id,
        StoreUser.active == True,  # noqa: E712
        Store.active == True,  # noqa: E712
    ).first()

    if store_user:
        g.store_id = store_user.store_id
        g.user_role = store_user.role
    else:
        current_app.logger.warning(f"[AUTH] User {user.id} has no access to store {store_id}")
        session.pop('store_id', None)


def require_login(f):
    """Decorator: Require an authenticated cashier (401 otherwise)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function


def require_store(f):
    """
    Decorator: Require a store context (403 otherwise).

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('store_id') is None:
            raise StoreRequiredError()
        return f(*args, **kwargs)
    return decorated_function


def require_role(min_role='CASHIER'):
    """
    Decorator: Require minimum role for the store.

    Roles hierarchy: OWNER > ADMIN > CASHIER

    Must be used AFTER require_login and require_store.
    """
    role_hierarchy = {'OWNER': 3, 'ADMIN': 2, 'CASHIER': 1}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_role_level = role_hierarchy.get(g.get('user_role'), 0)
            required_level = role_hierarchy.get(min_role, 1)
            if user_role_level < required_level:
                raise CajaError(
                    f'Necesitás rol de {min_role} o superior para esta operación.',
                    status_code=403,
                    code='FORBIDDEN'
                )
            return f(*args, **kwargs)
        return decorated_function
    return decorator
