"""
Soft Delete ORM Utilities

Query helpers for the deleted flag of deposit records using SQLAlchemy.
"""

from sqlalchemy.orm import Query

from models import DepositProperties


def filter_deleted(query: Query) -> Query:
    """Filter out soft-deleted records from query"""
    return query.filter(DepositProperties.deleted.is_(False))


def only_deleted(query: Query) -> Query:
    """Filter to show only soft-deleted records"""
    return query.filter(DepositProperties.deleted.is_(True))


def set_deleted_flag(query: Query, deleted: bool) -> int:
    """
    Set the deleted flag on every record matched by query, leaving other columns as they are.

    Instances already loaded in the session are refreshed with the new value.

    Returns:
        Number of records updated
    """
    return query.update({DepositProperties.deleted: deleted}, synchronize_session="fetch")
