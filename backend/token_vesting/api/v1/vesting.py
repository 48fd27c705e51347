"""Vesting API endpoints"""
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from token_vesting.models.database import get_db
from token_vesting.models.event import VestingEvent
from token_vesting.models.vesting import VestingSchedule
from token_vesting.schemas.vesting import (
    VestingScheduleResponse,
    CreateVestingRequest,
    ClaimRequest,
    ClaimResponse,
    RevokeRequest,
    RevokeResponse,
    DerivedAddressResponse,
    VestingEventResponse,
    ScheduleAuditResponse,
)
from token_vesting.services import vesting_math
from token_vesting.services.clock import Clock, get_clock
from token_vesting.services.vesting_service import VestingService

router = APIRouter()


def get_vesting_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> VestingService:
    return VestingService(db, clock)


@router.get("", response_model=List[VestingScheduleResponse])
async def list_vesting_schedules(
    admin: Optional[str] = Query(None),
    beneficiary: Optional[str] = Query(None),
    mint: Optional[str] = Query(None),
    service: VestingService = Depends(get_vesting_service),
):
    """List schedules, optionally filtered by admin, beneficiary and mint"""
    schedules = await service.list_schedules(admin=admin, beneficiary=beneficiary, mint=mint)
    now = await service.clock.current_time()
    return [_schedule_to_response(s, now) for s in schedules]


@router.get("/derive", response_model=DerivedAddressResponse)
async def derive_schedule_address(
    admin: str = Query(...),
    beneficiary: str = Query(...),
    mint: str = Query(...),
    service: VestingService = Depends(get_vesting_service),
):
    """Derived schedule and vault addresses for an (admin, beneficiary, mint) triple"""
    authority, vault = service.derive_addresses(admin, beneficiary, mint)
    return DerivedAddressResponse(
        schedule=authority.address,
        bump=authority.bump,
        vault=vault.address,
        vault_bump=vault.bump,
        exists=await service.store.exists(authority.address),
    )


@router.post("", response_model=VestingScheduleResponse)
async def create_vesting_schedule(
    request: CreateVestingRequest,
    service: VestingService = Depends(get_vesting_service),
):
    """Create a vesting schedule and escrow the full amount"""
    schedule = await service.create_vesting_schedule(
        admin=request.admin,
        beneficiary=request.beneficiary,
        mint=request.mint,
        total_amount=request.total_amount,
        start_time=request.start_time,
        cliff_duration=request.cliff_duration,
        vesting_duration=request.vesting_duration,
    )
    now = await service.clock.current_time()
    return _schedule_to_response(schedule, now)


@router.get("/{address}", response_model=VestingScheduleResponse)
async def get_vesting_schedule(
    address: str = Path(...),
    service: VestingService = Depends(get_vesting_service),
):
    """Get a schedule with amounts computed at the current time"""
    schedule = await service.get_schedule(address)
    now = await service.clock.current_time()
    return _schedule_to_response(schedule, now)


@router.post("/{address}/claim", response_model=ClaimResponse)
async def claim_vested_tokens(
    request: ClaimRequest,
    address: str = Path(...),
    service: VestingService = Depends(get_vesting_service),
):
    """Release all currently claimable tokens to the beneficiary"""
    result = await service.claim(address, request.beneficiary)
    return ClaimResponse(
        message=f"Claimed {result.amount} tokens. Total: {result.total_claimed}/{result.schedule.total_amount}",
        schedule=address,
        amount=result.amount,
        total_claimed=result.total_claimed,
        remaining=result.remaining,
    )


@router.post("/{address}/revoke", response_model=RevokeResponse)
async def revoke_vesting_schedule(
    request: RevokeRequest,
    address: str = Path(...),
    service: VestingService = Depends(get_vesting_service),
):
    """Return unvested tokens to the admin and freeze the schedule"""
    result = await service.revoke(address, request.admin)
    return RevokeResponse(
        message=f"Revoked. {result.unvested_amount} tokens returned to admin",
        schedule=address,
        unvested_amount=result.unvested_amount,
        vested_amount=result.vested_amount,
    )


@router.get("/{address}/events", response_model=List[VestingEventResponse])
async def get_vesting_events(
    address: str = Path(...),
    service: VestingService = Depends(get_vesting_service),
):
    """Event history of a schedule, oldest first"""
    await service.get_schedule(address)
    events = await service.events.history(address)
    return [_event_to_response(e) for e in events]


@router.get("/{address}/audit", response_model=ScheduleAuditResponse)
async def audit_vesting_schedule(
    address: str = Path(...),
    service: VestingService = Depends(get_vesting_service),
):
    """Compare the record and vault against totals replayed from the event log"""
    schedule, replayed, vault_balance = await service.audit(address)
    return ScheduleAuditResponse(
        schedule=address,
        event_count=replayed.event_count,
        replayed_total_amount=replayed.total_amount,
        replayed_claimed_amount=replayed.claimed_amount,
        replayed_revoked_amount=replayed.revoked_amount,
        expected_escrow_balance=replayed.escrow_balance,
        actual_escrow_balance=vault_balance,
        consistent=replayed.matches(schedule) and replayed.escrow_balance == vault_balance,
    )


def _schedule_to_response(s: VestingSchedule, now: int) -> VestingScheduleResponse:
    return VestingScheduleResponse(
        address=s.address,
        admin=s.admin,
        beneficiary=s.beneficiary,
        mint=s.mint,
        vault=s.vault,
        total_amount=s.total_amount,
        claimed_amount=s.claimed_amount,
        start_time=s.start_time,
        cliff_duration=s.cliff_duration,
        vesting_duration=s.vesting_duration,
        is_revoked=s.is_revoked,
        revoked_amount=s.revoked_amount,
        bump=s.bump,
        vault_bump=s.vault_bump,
        current_time=now,
        vested_amount=s.calculate_vested_amount(now),
        claimable_amount=s.calculate_claimable_amount(now),
        unvested_amount=s.calculate_unvested_amount(now),
        percent_vested=vesting_math.percent_vested(s, now),
        cliff_end=vesting_math.cliff_end(s),
        vesting_end=vesting_math.vesting_end(s),
        status=s.status(now),
    )


def _event_to_response(e: VestingEvent) -> VestingEventResponse:
    return VestingEventResponse(
        id=e.id,
        schedule=e.schedule,
        event_type=e.event_type,
        discriminator=e.discriminator.hex(),
        admin=e.admin,
        beneficiary=e.beneficiary,
        mint=e.mint,
        amount=e.amount,
        timestamp=e.timestamp,
        data=e.data or {},
        created_at=e.created_at,
    )
