import logging
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from split_ledger.config import get_settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str):
    """Create an engine with connect_args appropriate for the database type"""
    if database_url.startswith("postgresql"):
        return create_engine(database_url)
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool
        )
    # SQLite configuration
    return create_engine(database_url, connect_args={"check_same_thread": False})


engine = create_db_engine(get_settings().database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.debug("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
