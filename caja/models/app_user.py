"""AppUser model - cashiers and owners who operate the POS."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from werkzeug.security import generate_password_hash, check_password_hash
from caja.database import Base, BigIntId
from caja.utils.dates import utcnow


class AppUser(Base):
    """AppUser model - authenticated operator of one or more stores."""

    __tablename__ = 'app_user'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    store_users = relationship('StoreUser', back_populates='user')

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}')>"
