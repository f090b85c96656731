import threading

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from hv_maintenance.config import get_settings

settings = get_settings()


def build_engine(database_url: str):
    """
    Creates the engine. In-memory SQLite needs a StaticPool so every
    session in the process sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)

        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(database_url, pool_pre_ping=True)


# Create Engine
engine = build_engine(settings.DATABASE_URL)

# In-memory SQLite shares one connection between every session, so a commit or
# rollback in one session lands on all of them. Units of work hold this lock
# from their first statement until their transaction has ended.
DB_LOCK = threading.RLock()


def build_session_factory(bind):
    # Nothing is expired on commit, so serializing a result never goes back to
    # the connection outside DB_LOCK
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


SessionLocal = build_session_factory(engine)

Base = declarative_base()

def get_session_factory():
    """Dependency for work that outlives the request (background tasks)"""
    return SessionLocal

def get_session():
    """Dependency for FastAPI Routes"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Alias used by the routers
get_db = get_session
