"""Sale Item model."""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId


class SaleItem(Base):
    """Sale Item (detalle de venta). Name and price are snapshots, never live values."""

    __tablename__ = 'sale_item'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_sale_item_quantity_positive'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    sale_id = Column(BigIntId, ForeignKey('sale.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigIntId, ForeignKey('product.id'), nullable=False)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    # Relationships
    sale = relationship('Sale', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<SaleItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
