"""Event log service for recording transitions and replaying them for audit."""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from token_vesting.models.event import EventType, VestingEvent
from token_vesting.models.vesting import VestingSchedule

logger = structlog.get_logger()


@dataclass
class ScheduleAudit:
    """Running totals of a schedule as reconstructed from its events."""
    schedule: str
    total_amount: int = 0
    claimed_amount: int = 0
    revoked_amount: int = 0
    is_revoked: bool = False
    event_count: int = 0

    @property
    def escrow_balance(self) -> int:
        """What the vault should hold if every movement went through a transition"""
        return self.total_amount - self.claimed_amount - self.revoked_amount

    def matches(self, schedule: VestingSchedule) -> bool:
        return (
            self.total_amount == schedule.total_amount
            and self.claimed_amount == schedule.claimed_amount
            and self.revoked_amount == schedule.revoked_amount
            and self.is_revoked == schedule.is_revoked
        )


class EventLog:
    """Service for recording and replaying vesting events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        event_type: EventType,
        schedule: VestingSchedule,
        amount: int,
        timestamp: int,
        data: Optional[Dict[str, Any]] = None,
    ) -> VestingEvent:
        """
        Append an event for a schedule.

        Args:
            event_type: Which transition happened
            schedule: The schedule after the transition was applied
            amount: Tokens moved by the transition
            timestamp: Clock time the transition observed
            data: Event-specific running totals and parameters

        Returns:
            The created VestingEvent record
        """
        event = VestingEvent(
            schedule=schedule.address,
            event_type=event_type,
            discriminator=event_type.discriminator,
            admin=schedule.admin,
            beneficiary=schedule.beneficiary,
            mint=schedule.mint,
            amount=amount,
            timestamp=timestamp,
            data=data or {},
        )

        self.db.add(event)
        await self.db.flush()

        logger.info(
            "Recorded vesting event",
            event_id=event.id,
            event_type=event_type.value,
            schedule=schedule.address,
            amount=amount,
            data=data,
        )

        return event

    async def history(self, schedule_address: str) -> List[VestingEvent]:
        result = await self.db.execute(
            select(VestingEvent)
            .where(VestingEvent.schedule == schedule_address)
            .order_by(VestingEvent.id)
        )
        return list(result.scalars().all())

    async def replay(self, schedule_address: str) -> ScheduleAudit:
        """
        Reconstruct a schedule's running totals from its event history.

        Args:
            schedule_address: The schedule to reconstruct

        Returns:
            ScheduleAudit with totals implied by the events
        """
        events = await self.history(schedule_address)

        state = ScheduleAudit(schedule=schedule_address)
        for event in events:
            self._apply_event(state, event)

        logger.debug(
            "Replayed schedule events",
            schedule=schedule_address,
            event_count=state.event_count,
        )

        return state

    def _apply_event(self, state: ScheduleAudit, event: VestingEvent) -> None:
        """Apply a single event to the audit state."""
        match event.event_type:
            case EventType.VESTING_CREATED:
                state.total_amount = event.amount

            case EventType.TOKENS_CLAIMED:
                state.claimed_amount += event.amount

            case EventType.VESTING_REVOKED:
                state.revoked_amount = event.amount
                state.is_revoked = True

        state.event_count += 1
