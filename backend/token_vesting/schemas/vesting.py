"""Vesting schemas"""
from pydantic import BaseModel
from datetime import datetime
from typing import Any, Dict, Optional

from token_vesting.models.event import EventType
from token_vesting.models.vesting import VestingStatus


class CreateVestingRequest(BaseModel):
    """Create a new vesting schedule.

    The full amount is moved from the admin's holding for ``mint`` into an
    escrow vault owned by the schedule's derived address. ``admin`` is
    trusted as the transaction signer.
    """
    admin: str
    beneficiary: str
    mint: str
    total_amount: int
    start_time: int  # Unix timestamp, must be in the future
    cliff_duration: int = 0  # Seconds
    vesting_duration: int  # Seconds


class ClaimRequest(BaseModel):
    beneficiary: str  # Signer, must be the schedule's beneficiary


class RevokeRequest(BaseModel):
    admin: str  # Signer, must be the schedule's admin


class VestingScheduleResponse(BaseModel):
    address: str
    admin: str
    beneficiary: str
    mint: str
    vault: str
    total_amount: int
    claimed_amount: int
    start_time: int
    cliff_duration: int
    vesting_duration: int
    is_revoked: bool
    revoked_amount: int
    bump: int
    vault_bump: int
    # Computed at the current clock time
    current_time: int
    vested_amount: int
    claimable_amount: int
    unvested_amount: int
    percent_vested: int
    cliff_end: int
    vesting_end: int
    status: VestingStatus


class ClaimResponse(BaseModel):
    message: str
    schedule: str
    amount: int
    total_claimed: int
    remaining: int


class RevokeResponse(BaseModel):
    message: str
    schedule: str
    unvested_amount: int  # Returned to the admin
    vested_amount: int  # total - unvested, includes amounts already claimed


class DerivedAddressResponse(BaseModel):
    schedule: str
    bump: int
    vault: str
    vault_bump: int
    exists: bool


class VestingEventResponse(BaseModel):
    id: int
    schedule: str
    event_type: EventType
    discriminator: str  # hex
    admin: str
    beneficiary: str
    mint: str
    amount: int
    timestamp: int
    data: Dict[str, Any]
    created_at: Optional[datetime] = None


class ScheduleAuditResponse(BaseModel):
    schedule: str
    event_count: int
    replayed_total_amount: int
    replayed_claimed_amount: int
    replayed_revoked_amount: int
    expected_escrow_balance: int
    actual_escrow_balance: int
    consistent: bool
