"""Stock Movement model."""
import enum
from sqlalchemy import Column, Integer, Text, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class StockMovementType(enum.Enum):
    """Why a product's stock changed."""
    SALE = "SALE"
    VOID = "VOID"
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class StockMovement(Base):
    """Stock Movement (movimiento de stock). Append-only audit trail."""

    __tablename__ = 'stock_movement'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False, index=True)
    product_id = Column(BigIntId, ForeignKey('product.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)  # signed delta
    type = Column(Enum(StockMovementType, name='stock_movement_type'), nullable=False)
    description = Column(Text, nullable=True)
    sale_id = Column(BigIntId, ForeignKey('sale.id'), nullable=True)
    created_by = Column(BigIntId, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    product = relationship('Product', back_populates='movements')

    def __repr__(self):
        return f"<StockMovement(id={self.id}, product_id={self.product_id}, qty={self.quantity}, type={self.type.value})>"
