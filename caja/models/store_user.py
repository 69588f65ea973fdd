"""StoreUser model - links users to stores with roles."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class UserRole(enum.Enum):
    """User roles within a store."""
    OWNER = 'OWNER'
    ADMIN = 'ADMIN'
    CASHIER = 'CASHIER'


class StoreUser(Base):
    """StoreUser model - membership of a user in a store."""

    __tablename__ = 'store_user'
    __table_args__ = (
        UniqueConstraint('user_id', 'store_id', name='uq_store_user'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigIntId, ForeignKey('app_user.id'), nullable=False)
    store_id = Column(BigIntId, ForeignKey('store.id'), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.CASHIER.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    user = relationship('AppUser', back_populates='store_users')
    store = relationship('Store', back_populates='store_users')

    def __repr__(self):
        return f"<StoreUser(user_id={self.user_id}, store_id={self.store_id}, role='{self.role}')>"

    def is_admin(self):
        """Check if user is admin or owner."""
        return self.role in [UserRole.OWNER.value, UserRole.ADMIN.value]
