"""Database models"""
from token_vesting.models.database import Base, get_db
from token_vesting.models.vesting import VestingSchedule, VestingStatus, SCHEDULE_DISCRIMINATOR
from token_vesting.models.token_account import TokenAccount
from token_vesting.models.event import VestingEvent, EventType

__all__ = [
    "Base",
    "get_db",
    "VestingSchedule",
    "VestingStatus",
    "SCHEDULE_DISCRIMINATOR",
    "TokenAccount",
    "VestingEvent",
    "EventType",
]
