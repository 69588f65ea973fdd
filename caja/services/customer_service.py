"""Customer history derived from sales (no customer table) - store-scoped."""
import logging
from decimal import Decimal
from typing import List, Optional

from flask import current_app

from caja.models import Sale, SaleStatus
from caja.services.cache_service import get_cache

logger = logging.getLogger(__name__)


def _customer_key(sale: Sale) -> str:
    """Phone identifies a customer; name is the fallback."""
    return (sale.customer_phone or '').strip() or (sale.customer_name or '').strip()


def _load_customer_history(session, store_id: int) -> List[dict]:
    sales = session.query(Sale).filter(
        Sale.store_id == store_id,
        Sale.status == SaleStatus.COMPLETED,
        (Sale.customer_phone.isnot(None)) | (Sale.customer_name.isnot(None))
    ).order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    customers = {}
    for sale in sales:
        key = _customer_key(sale)
        if not key:
            continue

        existing = customers.get(key)
        if existing:
            existing['total_spent'] += sale.total
            existing['visit_count'] += 1
            # Keep the most recent name if any
            if not existing['customer_name'] and sale.customer_name:
                existing['customer_name'] = sale.customer_name
        else:
            # Sales come newest first, so the first one seen is the last visit
            customers[key] = {
                'customer_name': sale.customer_name,
                'customer_phone': sale.customer_phone,
                'total_spent': Decimal(sale.total),
                'visit_count': 1,
                'last_visit': sale.created_at.isoformat(),
                'last_payment_method': sale.payment_method.value,
            }

    return list(customers.values())


def get_customer_history(session, store_id: int, search: Optional[str] = None) -> List[dict]:
    """
    Customers of a store with their totals, most recent visit first.

    Args:
        session: SQLAlchemy session
        store_id: Store ID
        search: Optional case-insensitive filter on name or phone

    Returns:
        list of dicts: customer_name, customer_phone, total_spent,
        visit_count, last_visit (ISO, UTC), last_payment_method
    """
    ttl = current_app.config.get('CACHE_CUSTOMERS_TTL', 120)
    customers = get_cache().memoize(
        store_id, 'customers', 'history',
        lambda: _load_customer_history(session, store_id),
        ttl=ttl
    )

    if search and search.strip():
        term = search.strip().lower()
        customers = [
            c for c in customers
            if term in (c['customer_name'] or '').lower() or term in (c['customer_phone'] or '')
        ]

    return customers
