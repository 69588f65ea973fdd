"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'caja')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'caja')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'caja')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    DB_AUTO_CREATE = os.getenv('DB_AUTO_CREATE', 'false').lower() == 'true'

    # Business day: the store operates on a single fixed civil offset (Argentina = -3)
    BUSINESS_UTC_OFFSET_HOURS = int(os.getenv('BUSINESS_UTC_OFFSET_HOURS', '-3'))

    # Business Information (for receipts)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'Mi Negocio')

    # Stock
    LOW_STOCK_THRESHOLD = int(os.getenv('LOW_STOCK_THRESHOLD', '10'))

    # Checkout
    TOTAL_TOLERANCE = os.getenv('TOTAL_TOLERANCE', '0.01')
    REQUIRE_OPEN_CASH_SESSION = os.getenv('REQUIRE_OPEN_CASH_SESSION', 'false').lower() == 'true'

    # Rate limiting (checkout double-submit storms)
    CHECKOUT_RATE_LIMIT = int(os.getenv('CHECKOUT_RATE_LIMIT', '5'))
    CHECKOUT_RATE_WINDOW_SECONDS = int(os.getenv('CHECKOUT_RATE_WINDOW_SECONDS', '10'))
    RATE_LIMIT_BACKEND = os.getenv('RATE_LIMIT_BACKEND', 'memory')  # memory | redis

    # Redis Cache Configuration
    # Shared cache layer for read-heavy endpoints (customer history)
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))  # seconds
    CACHE_CUSTOMERS_TTL = int(os.getenv('CACHE_CUSTOMERS_TTL', '120'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'caja')

    # Error tracking (production only)
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestConfig(Config):
    """Configuration used by the test suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    DB_AUTO_CREATE = True
    CACHE_ENABLED = False
    RATE_LIMIT_BACKEND = 'memory'
