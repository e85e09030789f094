"""
Store schema and connection management.

Uses SQLAlchemy for the engine's configuration tables.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

# Row ID of the single sys_default_cfg row.
DEFAULT_CONFIG_ROW = 1


class ConfigRecord(Base):
    """Persisted engine configuration. Immutable once written."""

    __tablename__ = "sys_cfg"

    config_id = Column(Integer, primary_key=True, autoincrement=True)  # 0 is never issued
    config_data = Column(Text, nullable=False)
    config_comments = Column(String, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class DefaultConfig(Base):
    """Pointer to the active configuration."""

    __tablename__ = "sys_default_cfg"

    row_id = Column(Integer, primary_key=True)
    config_id = Column(Integer, ForeignKey("sys_cfg.config_id"), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


def get_engine(database_url: str) -> Engine:
    """SQLAlchemy engine for a store URL; SQLite parent directories are created."""
    if database_url.startswith("sqlite:///"):
        db_path = database_url[len("sqlite:///"):]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url)


def init_database(database_url: str) -> Engine:
    """
    Initialize the store and create tables that do not exist yet.

    Args:
        database_url: SQLAlchemy URL of the store

    Returns:
        SQLAlchemy engine bound to the store
    """
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    return engine


def get_session(engine: Engine):
    """
    Get database session.

    Args:
        engine: Engine from get_engine() or init_database()

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=engine)
    return Session()
