"""
Deposit Properties Test Configuration

Provides pytest fixtures for in-memory SQLite database, session management and seed records.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from models import Base, DepositProperties


@pytest.fixture(scope="session")
def db_engine():
    """Create an in-memory SQLite database for testing"""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """
    Create a new database session for each test function.
    Rolls back all changes after the test completes.
    """
    connection = db_engine.connect()
    transaction = connection.begin()

    SessionLocal = sessionmaker(bind=connection)
    session = SessionLocal()

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()


def make_deposit(deposit_id: str, depositor: str, created=None, **overrides) -> DepositProperties:
    """Build an unsaved record with predictable values derived from its id"""
    n = deposit_id[-1]
    values = dict(
        deposit_id=deposit_id,
        depositor=depositor,
        bag_name=f"Bag{n}",
        deposit_state=f"State{n}",
        description=f"Description{n}",
        deposit_creation_timestamp=created,
        location=f"Location{n}",
        storage_in_bytes=1000 * int(n) if n.isdigit() else 0,
        deposit_update_timestamp=created + timedelta(hours=1) if created else None,
    )
    values.update(overrides)
    return DepositProperties(**values)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 3, 15, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_deposits(db_session: Session, now) -> list:
    """
    Seed six records for three users, created between ten days before and
    three days after `now`.
    """
    deposits = [
        make_deposit("Id1", "User1", now - timedelta(days=10)),
        make_deposit("Id2", "User1", now - timedelta(days=5)),
        make_deposit("Id3", "User2", now - timedelta(days=3)),
        make_deposit("Id4", "User2", now - timedelta(days=1)),
        make_deposit("Id5", "User3", now + timedelta(days=1)),
        make_deposit("Id6", "User3", now + timedelta(days=3)),
    ]
    db_session.add_all(deposits)
    db_session.commit()
    return deposits
