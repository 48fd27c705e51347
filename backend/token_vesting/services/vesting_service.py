"""Vesting transitions: create, claim and revoke.

Each transition runs inside the caller's database transaction and follows
the same discipline: load and lock the record, check every precondition and
compute every new value, and only then move tokens and write the record.
Any error raised leaves the schedule and its escrow exactly as they were;
the caller rolls the transaction back.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from token_vesting.config import get_settings
from token_vesting.constants import (
    I64_MAX,
    I64_MIN,
    MAX_CLIFF_PERCENTAGE,
    MAX_VESTING_DURATION,
    MIN_VESTING_DURATION,
    U64_MAX,
)
from token_vesting.errors import (
    CalculationOverflow,
    CliffNotReached,
    CliffPercentageTooHigh,
    CliffTooLong,
    DurationTooLong,
    DurationTooShort,
    InsufficientFunds,
    InvalidAmount,
    InvalidAuthority,
    NothingToClaim,
    ScheduleAlreadyExists,
    StartTimeInPast,
    Unauthorized,
    VestingCompleted,
    VestingRevoked,
)
from token_vesting.models.event import EventType, VestingEvent
from token_vesting.models.vesting import VestingSchedule
from token_vesting.services import vesting_math
from token_vesting.services.authority import (
    DerivedAuthority,
    derive_schedule_authority,
    derive_vault_address,
)
from token_vesting.services.clock import Clock
from token_vesting.services.event_log import EventLog, ScheduleAudit
from token_vesting.services.ledger import TokenLedger
from token_vesting.services.store import ScheduleStore

logger = structlog.get_logger()


@dataclass
class ClaimResult:
    schedule: VestingSchedule
    amount: int
    total_claimed: int
    remaining: int
    event: VestingEvent


@dataclass
class RevokeResult:
    schedule: VestingSchedule
    unvested_amount: int
    vested_amount: int
    event: VestingEvent


def validate_schedule_params(
    total_amount: int,
    start_time: int,
    cliff_duration: int,
    vesting_duration: int,
    current_time: int,
) -> None:
    """Check create parameters in order; the first failing rule wins."""
    if total_amount <= 0 or total_amount > U64_MAX:
        raise InvalidAmount(details={"total_amount": total_amount})

    if vesting_duration < MIN_VESTING_DURATION:
        raise DurationTooShort(details={"vesting_duration": vesting_duration})
    if vesting_duration > MAX_VESTING_DURATION:
        raise DurationTooLong(details={"vesting_duration": vesting_duration})

    if cliff_duration > vesting_duration:
        raise CliffTooLong(details={"cliff_duration": cliff_duration, "vesting_duration": vesting_duration})

    # Truncating integer percentage: a 50.9% cliff is accepted. A negative
    # cliff makes the product negative and fails as CalculationOverflow.
    if vesting_math.cliff_percentage(cliff_duration, vesting_duration) > MAX_CLIFF_PERCENTAGE:
        raise CliffPercentageTooHigh(
            details={"cliff_duration": cliff_duration, "vesting_duration": vesting_duration}
        )

    if start_time <= current_time:
        raise StartTimeInPast(details={"start_time": start_time, "current_time": current_time})

    # A schedule whose end does not fit i64 could never be claimed or revoked
    if start_time > I64_MAX or start_time < I64_MIN:
        raise CalculationOverflow(details={"start_time": start_time})
    vesting_math.checked_add_i64(start_time, vesting_duration)


class VestingService:
    """The three vesting transitions plus read helpers"""

    def __init__(self, db: AsyncSession, clock: Clock, program_id: Optional[str] = None):
        self.db = db
        self.clock = clock
        self.program_id = program_id or get_settings().program_id
        self.store = ScheduleStore(db)
        self.ledger = TokenLedger(db, self.program_id)
        self.events = EventLog(db)

    def derive_addresses(self, admin: str, beneficiary: str, mint: str) -> Tuple[DerivedAuthority, DerivedAuthority]:
        """Schedule authority and escrow vault for a triple"""
        authority = derive_schedule_authority(admin, beneficiary, mint, self.program_id)
        vault = derive_vault_address(authority.address, self.program_id)
        return authority, vault

    def _rederive(self, schedule: VestingSchedule) -> DerivedAuthority:
        """Re-derive the schedule's authority from stored seeds and bumps"""
        authority = derive_schedule_authority(
            schedule.admin, schedule.beneficiary, schedule.mint, self.program_id, bump=schedule.bump
        )
        vault = derive_vault_address(authority.address, self.program_id, bump=schedule.vault_bump)
        if authority.address != schedule.address or vault.address != schedule.vault:
            raise InvalidAuthority(details={"schedule": schedule.address})
        return authority

    async def get_schedule(self, address: str) -> VestingSchedule:
        return await self.store.get(address)

    async def list_schedules(
        self,
        admin: Optional[str] = None,
        beneficiary: Optional[str] = None,
        mint: Optional[str] = None,
    ) -> List[VestingSchedule]:
        return await self.store.list_schedules(admin=admin, beneficiary=beneficiary, mint=mint)

    async def audit(self, address: str) -> Tuple[VestingSchedule, ScheduleAudit, int]:
        """Schedule, totals replayed from its events, and the actual vault balance"""
        schedule = await self.store.get(address)
        replayed = await self.events.replay(address)
        vault = await self.ledger.require_account(schedule.vault)
        return schedule, replayed, vault.amount

    async def create_vesting_schedule(
        self,
        admin: str,
        beneficiary: str,
        mint: str,
        total_amount: int,
        start_time: int,
        cliff_duration: int,
        vesting_duration: int,
    ) -> VestingSchedule:
        """Escrow ``total_amount`` from the admin's holding under a new schedule."""
        now = await self.clock.current_time()
        validate_schedule_params(total_amount, start_time, cliff_duration, vesting_duration, now)

        authority, vault = self.derive_addresses(admin, beneficiary, mint)
        if await self.store.exists(authority.address):
            raise ScheduleAlreadyExists(details={"address": authority.address})

        funding = await self.ledger.get_associated_account(admin, mint, for_update=True)
        if funding is None:
            raise InsufficientFunds(details={"owner": admin, "mint": mint, "balance": 0, "requested": total_amount})
        self.ledger.check_authority(funding, admin)
        self.ledger.check_balance(funding, total_amount)

        schedule = VestingSchedule(
            address=authority.address,
            admin=admin,
            beneficiary=beneficiary,
            mint=mint,
            vault=vault.address,
            total_amount=total_amount,
            claimed_amount=0,
            start_time=start_time,
            cliff_duration=cliff_duration,
            vesting_duration=vesting_duration,
            is_revoked=False,
            revoked_amount=0,
            bump=authority.bump,
            vault_bump=vault.bump,
        )
        await self.store.create(schedule)

        vault_account = await self.ledger.open_vault(vault, authority, mint)
        await self.ledger.transfer(funding, vault_account, total_amount, admin)

        await self.events.record(
            EventType.VESTING_CREATED,
            schedule,
            amount=total_amount,
            timestamp=now,
            data={
                "total_amount": total_amount,
                "start_time": start_time,
                "cliff_duration": cliff_duration,
                "vesting_duration": vesting_duration,
                "vault": vault.address,
            },
        )

        logger.info(
            "Vesting created",
            schedule=schedule.address,
            beneficiary=beneficiary,
            total_amount=total_amount,
            vesting_duration=vesting_duration,
        )
        return schedule

    async def claim(self, address: str, beneficiary: str) -> ClaimResult:
        """Release everything vested and not yet claimed to the beneficiary."""
        schedule = await self.store.get(address, for_update=True)
        if beneficiary != schedule.beneficiary:
            raise Unauthorized(details={"schedule": address, "signer": beneficiary})

        now = await self.clock.current_time()

        if schedule.is_revoked:
            raise VestingRevoked(details={"schedule": address})
        if not schedule.is_cliff_reached(now):
            raise CliffNotReached(
                details={"schedule": address, "cliff_end": vesting_math.cliff_end(schedule)}
            )

        claimable = schedule.calculate_claimable_amount(now)
        if claimable <= 0:
            raise NothingToClaim(details={"schedule": address})

        new_claimed = vesting_math.checked_add_u64(schedule.claimed_amount, claimable)
        if new_claimed > schedule.total_amount:
            raise CalculationOverflow(details={"schedule": address, "claimed_amount": new_claimed})

        authority = self._rederive(schedule)
        vault = await self.ledger.require_account(schedule.vault, for_update=True)
        destination = await self.ledger.get_or_create_associated_account(beneficiary, schedule.mint)
        await self.ledger.transfer(vault, destination, claimable, authority)

        schedule.claimed_amount = new_claimed
        await self.store.save(schedule)

        remaining = schedule.total_amount - new_claimed
        event = await self.events.record(
            EventType.TOKENS_CLAIMED,
            schedule,
            amount=claimable,
            timestamp=now,
            data={"total_claimed": new_claimed, "remaining": remaining},
        )

        logger.info(
            "Tokens claimed",
            schedule=address,
            amount=claimable,
            total_claimed=new_claimed,
            total_amount=schedule.total_amount,
        )
        return ClaimResult(
            schedule=schedule,
            amount=claimable,
            total_claimed=new_claimed,
            remaining=remaining,
            event=event,
        )

    async def revoke(self, address: str, admin: str) -> RevokeResult:
        """Return the unvested remainder to the admin and freeze the schedule."""
        schedule = await self.store.get(address, for_update=True)
        if admin != schedule.admin:
            raise Unauthorized(details={"schedule": address, "signer": admin})

        now = await self.clock.current_time()

        if schedule.is_revoked:
            raise VestingRevoked(details={"schedule": address})
        if schedule.is_fully_vested(now):
            raise VestingCompleted(
                details={"schedule": address, "vesting_end": vesting_math.vesting_end(schedule)}
            )

        unvested = schedule.calculate_unvested_amount(now)
        authority = self._rederive(schedule)

        if unvested > 0:
            vault = await self.ledger.require_account(schedule.vault, for_update=True)
            destination = await self.ledger.get_or_create_associated_account(admin, schedule.mint)
            await self.ledger.transfer(vault, destination, unvested, authority)

        schedule.is_revoked = True
        schedule.revoked_amount = unvested
        await self.store.save(schedule)

        vested = schedule.total_amount - unvested
        event = await self.events.record(
            EventType.VESTING_REVOKED,
            schedule,
            amount=unvested,
            timestamp=now,
            data={
                "unvested_amount": unvested,
                "vested_amount": vested,
                "claimed_amount": schedule.claimed_amount,
            },
        )

        logger.info("Vesting revoked", schedule=address, returned_to_admin=unvested, vested_amount=vested)
        return RevokeResult(schedule=schedule, unvested_amount=unvested, vested_amount=vested, event=event)
