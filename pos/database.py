"""Database configuration and initialization."""
from sqlalchemy import create_engine, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER primary keys
IdType = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app) -> dict:
    """Pool options per backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}
    
    if database_uri.startswith('sqlite'):
        # One shared connection so an in-memory database survives session.remove()
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
        sessionmaker(autoflush=False, bind=engine)
    )
    
    Base.query = db_session.query_property()
    
    if app.config.get('DB_CREATE_ALL'):
        create_all()
    
    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models package."""
    import pos.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table (used by tests and `flask init-db --reset`)."""
    import pos.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session
