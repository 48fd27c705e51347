"""Vesting event log model."""
import enum
import hashlib
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, BigInteger, DateTime, LargeBinary, JSON,
    Index, Enum as SQLEnum
)

from token_vesting.models.database import Base, U64


class EventType(str, enum.Enum):
    """Events emitted by the three transitions."""
    VESTING_CREATED = "vesting_created"
    TOKENS_CLAIMED = "tokens_claimed"
    VESTING_REVOKED = "vesting_revoked"

    @property
    def event_name(self) -> str:
        return {
            EventType.VESTING_CREATED: "VestingCreated",
            EventType.TOKENS_CLAIMED: "TokensClaimed",
            EventType.VESTING_REVOKED: "VestingRevoked",
        }[self]

    @property
    def discriminator(self) -> bytes:
        """First 8 bytes of sha256("event:<Name>")"""
        return hashlib.sha256(f"event:{self.event_name}".encode()).digest()[:8]


class VestingEvent(Base):
    """
    Append-only record of every successful transition.

    Written in the same database transaction as the state change it
    describes, so the log and the schedule never disagree. Auditors replay
    it to re-derive a schedule's running totals.
    """
    __tablename__ = "vesting_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule = Column(String(44), nullable=False, index=True)
    event_type = Column(SQLEnum(EventType), nullable=False, index=True)
    discriminator = Column(LargeBinary(8), nullable=False)

    admin = Column(String(44), nullable=False)
    beneficiary = Column(String(44), nullable=False)
    mint = Column(String(44), nullable=False)

    # Amount moved by this event (0 for a revoke that returned nothing)
    amount = Column(U64, nullable=False)
    # Schedule clock time the transition observed
    timestamp = Column(BigInteger, nullable=False)

    # Type-specific fields (running totals, schedule parameters)
    data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_vesting_events_schedule_id', 'schedule', 'id'),
    )

    def __repr__(self):
        return f"<VestingEvent(id={self.id}, type={self.event_type}, schedule={self.schedule[:8]}..., amount={self.amount})>"
