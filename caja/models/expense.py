"""Expense model."""
from sqlalchemy import Column, String, Numeric, Text, DateTime, ForeignKey, CheckConstraint
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class Expense(Base):
    """Cash outflow not tied to a sale (gasto)."""

    __tablename__ = 'expense'
    __table_args__ = (
        CheckConstraint('amount > 0', name='ck_expense_amount_positive'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False, index=True)
    cashier_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=False)
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<Expense(id={self.id}, category='{self.category}', amount={self.amount})>"
