"""Database configuration and initialization."""
from sqlalchemy import create_engine, text, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigIntId = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app) -> dict:
    """Pool options for the configured backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        # In-memory SQLite must share one connection across the scoped sessions
        options['connect_args'] = {'check_same_thread': False}
        options['poolclass'] = StaticPool
    else:
        options['pool_pre_ping'] = True  # Enable connection health checks
        options['pool_size'] = 10
        options['max_overflow'] = 20

    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    if app.config.get('DB_AUTO_CREATE'):
        create_schema()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_schema():
    """Create all tables (and partial indexes) that do not exist yet."""
    # Import models so every table is registered on Base.metadata
    import caja.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def ping() -> bool:
    """Run a trivial query against the database."""
    with engine.connect() as conn:
        conn.execute(text('SELECT 1'))
    return True


def get_session():
    """Get database session."""
    return db_session
