"""
Database Setup

Engine and session factory for the deposit properties store, configured from the environment.
"""

import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from models import Base

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./deposit_properties.db")
DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"


def build_engine(database_url: str = DATABASE_URL, echo: bool = DATABASE_ECHO) -> Engine:
    """Create an engine, allowing SQLite connections to be shared across threads"""
    return create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
    )


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """Create the deposit_properties table if it does not exist yet"""
    try:
        Base.metadata.create_all(bind=bind)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        raise


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
