"""
Deposit Properties Models

Data model for deposit tracking records in the archival submission pipeline.
Carries a soft delete flag and indexes on the columns used for selection queries.
"""

from datetime import timezone

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """
    Timezone aware timestamp stored as UTC

    Backends without an offset column type (SQLite) keep only the wall-clock
    text, so values are converted to UTC before binding and come back with UTC
    attached. Naive values are taken to be UTC already.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class DepositProperties(Base):
    """
    Deposit Properties
    One record per deposit bag, tracked from submission until cleanup
    """

    __tablename__ = "deposit_properties"

    deposit_id = Column(String(255), primary_key=True)
    depositor = Column(String(255), nullable=False)
    bag_name = Column(String(255))
    deposit_state = Column(String(100))  # e.g. SUBMITTED, ARCHIVED, REJECTED
    description = Column(Text)
    deposit_creation_timestamp = Column("creation_date", UTCDateTime, nullable=True, index=True)
    location = Column(String(500))  # inbox or outbox directory the bag lives in
    storage_in_bytes = Column(BigInteger, default=0)
    deposit_update_timestamp = Column("update_date", UTCDateTime, nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("idx_deposit_properties_depositor", "depositor"),
        Index("idx_deposit_properties_state", "deposit_state"),
    )

    def __repr__(self):
        return f"<DepositProperties {self.deposit_id} depositor={self.depositor} deleted={self.deleted}>"

    def to_dict(self):
        return {
            "deposit_id": self.deposit_id,
            "depositor": self.depositor,
            "bag_name": self.bag_name,
            "deposit_state": self.deposit_state,
            "description": self.description,
            "deposit_creation_timestamp": (
                self.deposit_creation_timestamp.isoformat() if self.deposit_creation_timestamp else None
            ),
            "location": self.location,
            "storage_in_bytes": self.storage_in_bytes,
            "deposit_update_timestamp": (
                self.deposit_update_timestamp.isoformat() if self.deposit_update_timestamp else None
            ),
            "deleted": bool(self.deleted),
        }
