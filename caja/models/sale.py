"""Sale model."""
import enum
from sqlalchemy import (
    Column, String, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class SaleStatus(enum.Enum):
    """Sale status enum. COMPLETED -> CANCELLED is the only transition."""
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentMethod(enum.Enum):
    """Locally asserted payment methods offered by the POS."""
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CARD = "CARD"
    QR = "QR"

    @property
    def label(self):
        return PAYMENT_METHOD_LABELS[self]


PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH: 'Efectivo',
    PaymentMethod.TRANSFER: 'Transferencia',
    PaymentMethod.CARD: 'Tarjeta',
    PaymentMethod.QR: 'QR',
}

_PAYMENT_METHOD_ALIASES = {
    'CASH': PaymentMethod.CASH,
    'EFECTIVO': PaymentMethod.CASH,
    'TRANSFER': PaymentMethod.TRANSFER,
    'TRANSFERENCIA': PaymentMethod.TRANSFER,
    'CARD': PaymentMethod.CARD,
    'TARJETA': PaymentMethod.CARD,
    'QR': PaymentMethod.QR,
}


def normalize_payment_method(value) -> PaymentMethod:
    """
    Normalize payment method value coming from the POS.

    Args:
        value: PaymentMethod enum, enum value or Spanish label ('Efectivo', ...)

    Returns:
        PaymentMethod

    Raises:
        ValueError: If value is missing or not one of the allowed methods
    """
    if isinstance(value, PaymentMethod):
        return value

    if value is None:
        raise ValueError("Payment method is required")

    normalized = str(value).strip().upper()
    if normalized in _PAYMENT_METHOD_ALIASES:
        return _PAYMENT_METHOD_ALIASES[normalized]

    raise ValueError(f"Invalid payment method: {value}. Must be one of CASH, TRANSFER, CARD, QR.")


class Sale(Base):
    """Sale (venta)."""

    __tablename__ = 'sale'
    __table_args__ = (
        # Retried submissions of the same logical checkout collide here
        UniqueConstraint('store_id', 'idempotency_key', name='uq_sale_store_idempotency_key'),
        CheckConstraint('total > 0', name='ck_sale_total_positive'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False, index=True)
    cashier_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=False)
    cash_session_id = Column(BigIntId, ForeignKey('cash_session.id'), nullable=True, index=True)
    total = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod, name='payment_method'), nullable=False)
    status = Column(Enum(SaleStatus, name='sale_status'), nullable=False, default=SaleStatus.COMPLETED)
    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True, index=True)
    idempotency_key = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    voided_at = Column(DateTime, nullable=True)
    voided_by = Column(BigIntId, ForeignKey('app_user.id'), nullable=True)

    # Relationships
    store = relationship('Store')
    cash_session = relationship('CashSession', back_populates='sales')
    items = relationship(
        'SaleItem', back_populates='sale', cascade='all, delete-orphan', order_by='SaleItem.id'
    )

    @property
    def receipt_number(self):
        """Point-of-sale style receipt number (0001-00000042)."""
        return f"0001-{self.id:08d}"

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, status={self.status.value})>"
