"""Models package - exports all SQLAlchemy models."""
# Tenancy
from caja.models.store import Store
from caja.models.app_user import AppUser
from caja.models.store_user import StoreUser, UserRole

# Business Models
from caja.models.product import Product
from caja.models.cash_session import CashSession, CashSessionStatus
from caja.models.sale import Sale, SaleStatus, PaymentMethod, PAYMENT_METHOD_LABELS, normalize_payment_method
from caja.models.sale_item import SaleItem
from caja.models.stock_movement import StockMovement, StockMovementType
from caja.models.expense import Expense

__all__ = [
    'Store', 'AppUser', 'StoreUser', 'UserRole',
    'Product', 'CashSession', 'CashSessionStatus',
    'Sale', 'SaleStatus', 'PaymentMethod', 'PAYMENT_METHOD_LABELS', 'normalize_payment_method',
    'SaleItem', 'StockMovement', 'StockMovementType', 'Expense',
]
