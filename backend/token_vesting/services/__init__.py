"""Token vesting services"""
from .vesting_math import (
    vested_amount,
    claimable_amount,
    unvested_amount,
    is_cliff_reached,
    is_fully_vested,
)
from .authority import DerivedAuthority, derive_schedule_authority, derive_vault_address
from .clock import Clock, SystemClock, get_clock


__all__ = [
    # Math engine
    "vested_amount",
    "claimable_amount",
    "unvested_amount",
    "is_cliff_reached",
    "is_fully_vested",
    # Derived authorities
    "DerivedAuthority",
    "derive_schedule_authority",
    "derive_vault_address",
    # Clock
    "Clock",
    "SystemClock",
    "get_clock",
]
