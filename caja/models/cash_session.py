"""Cash Session model (turno de caja)."""
import enum
from sqlalchemy import Column, Numeric, Text, DateTime, Enum, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class CashSessionStatus(enum.Enum):
    """OPEN -> CLOSED, no reopening."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class CashSession(Base):
    """One cash-drawer shift for a store."""

    __tablename__ = 'cash_session'
    __table_args__ = (
        # At most one OPEN session per store, enforced by the database
        Index(
            'uq_cash_session_one_open_per_store',
            'store_id',
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
        CheckConstraint('opening_amount >= 0', name='ck_cash_session_opening_non_negative'),
        CheckConstraint(
            '(closed_at IS NULL) = (closing_amount IS NULL)',
            name='ck_cash_session_close_fields_together',
        ),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False, index=True)
    opened_by = Column(BigIntId, ForeignKey('app_user.id'), nullable=False)
    closed_by = Column(BigIntId, ForeignKey('app_user.id'), nullable=True)
    opened_at = Column(DateTime, nullable=False, default=utcnow)
    closed_at = Column(DateTime, nullable=True)
    opening_amount = Column(Numeric(12, 2), nullable=False)
    closing_amount = Column(Numeric(12, 2), nullable=True)
    expected_amount = Column(Numeric(12, 2), nullable=True)
    status = Column(Enum(CashSessionStatus, name='cash_session_status'), nullable=False, default=CashSessionStatus.OPEN)
    notes = Column(Text, nullable=True)

    # Relationships
    store = relationship('Store')
    sales = relationship('Sale', back_populates='cash_session')

    @property
    def variance(self):
        """Counted minus expected cash, once closed."""
        if self.closing_amount is None or self.expected_amount is None:
            return None
        return self.closing_amount - self.expected_amount

    def __repr__(self):
        return f"<CashSession(id={self.id}, store_id={self.store_id}, status={self.status.value})>"
