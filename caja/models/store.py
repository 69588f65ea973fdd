"""Store model - each business (tenant) using the POS."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class Store(Base):
    """Store model - every row of business data is scoped by store_id."""

    __tablename__ = 'store'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    slug = Column(String(80), nullable=False, unique=True)  # URL-safe identifier
    name = Column(String(200), nullable=False)  # Display name (printed on receipts)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    store_users = relationship('StoreUser', back_populates='store')

    def __repr__(self):
        return f"<Store(id={self.id}, slug='{self.slug}', name='{self.name}')>"
