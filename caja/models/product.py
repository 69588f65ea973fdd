"""Product model."""
from sqlalchemy import Column, String, Boolean, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class Product(Base):
    """
    Sellable catalog item.

    ``current_stock`` is the single source of truth for on-hand units; it only
    changes through conditional deltas that also write a StockMovement.
    """

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('current_stock >= 0', name='ck_product_stock_non_negative'),
        CheckConstraint('sale_price >= 0', name='ck_product_price_non_negative'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=True)
    barcode = Column(String(64), nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=False, default=0)  # Precio de compra
    current_stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    store = relationship('Store')
    movements = relationship('StockMovement', back_populates='product', lazy='dynamic')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.current_stock})>"

    def is_low_stock(self, threshold=0):
        """At or below its minimum stock, or ``threshold`` when no minimum is set."""
        limit = self.min_stock if self.min_stock > 0 else threshold
        return self.current_stock <= limit
