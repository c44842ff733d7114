"""
SQLAlchemy ORM Database Configuration
Lets SQLAlchemy manage connections internally with built-in pooling.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Logger
from intake.logging.utils import get_app_logger
logger = get_app_logger("intake.database")

# Settings
from intake.config.settings import IntakeConfigs
configs = IntakeConfigs()

# Convert postgresql:// to postgresql+psycopg:// for psycopg3 driver
DATABASE_URL = configs.DATABASE_URL
if DATABASE_URL and DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL and DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)

# Base class for ORM models
Base = declarative_base()


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # In-memory SQLite lives on a single connection
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": 10,           # Number of connections to maintain in pool
        "max_overflow": 20,        # Additional connections beyond pool_size
        "pool_pre_ping": True,     # Validate connections before use
        "pool_recycle": 3600,      # Recycle connections after 1 hour
        "connect_args": {
            "keepalives_idle": 600,
            "keepalives_interval": 30,
            "keepalives_count": 3
        },
    }


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

logger.info(f"SQLAlchemy engine initialized | dialect={engine.dialect.name}")


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.
    Rolls back on any exception escaping the request.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session():
    """
    Database session with transaction management for service-layer work
    outside of a request.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables():
    # models must be imported so they register on Base.metadata
    import intake.models.candidates  # noqa: F401
    Base.metadata.create_all(bind=engine)


def close_db_pool():
    engine.dispose()
