"""
Database schema and connection management.

Uses SQLite with SQLAlchemy as the system of record for customers,
the SIC code reference table and the single configuration record.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import (
    create_engine,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()

CONFIG_RECORD_ID = 1


class Customer(Base):
    """Customer record enriched from the company registry."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    entity_id = Column(String, nullable=False)
    company_no = Column(String, nullable=True)  # registry identifier
    sic_codes = Column(String, nullable=True)  # comma-joined multi-select
    sic_description = Column(Text, nullable=True)
    company_status = Column(String, nullable=True)
    balance = Column(Float, nullable=False, default=0.0)
    overdue_balance = Column(Float, nullable=False, default=0.0)
    unbilled_orders = Column(Float, nullable=False, default=0.0)
    is_inactive = Column(Boolean, nullable=False, default=False)
    last_modified = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class SicCode(Base):
    """SIC code reference table, codes stored without the leading 0."""

    __tablename__ = "sic_codes"

    code = Column(String, primary_key=True)
    description = Column(String, nullable=False)


class Config(Base):
    """Single-row configuration record holding the registry API key."""

    __tablename__ = "config"

    id = Column(Integer, primary_key=True)
    companies_house_api_key = Column(String, nullable=True)


def get_engine(db_path: Path) -> Engine:
    """
    Create an engine usable from pipeline worker threads.

    Args:
        db_path: Path to SQLite database file
    """
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()

