"""Persistent store for vesting schedule records"""
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from token_vesting.errors import (
    ConcurrentModification,
    CorruptRecord,
    ScheduleAlreadyExists,
    ScheduleNotFound,
)
from token_vesting.models.vesting import SCHEDULE_DISCRIMINATOR, VestingSchedule

logger = structlog.get_logger()


class ScheduleStore:
    """
    Create-once, read, and compare-and-swap update of schedule records.

    Reads for a transition take a row lock (``SELECT ... FOR UPDATE``) so
    mutations of one schedule are serialized. Writes are additionally
    guarded by the record's version counter: if another transaction changed
    the row since it was read, the write fails with ConcurrentModification.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists(self, address: str) -> bool:
        result = await self.db.execute(
            select(VestingSchedule.address).where(VestingSchedule.address == address)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, schedule: VestingSchedule) -> VestingSchedule:
        """Allocate a new record; fails if one already exists at the address"""
        address = schedule.address
        if await self.exists(address):
            raise ScheduleAlreadyExists(details={"address": address})

        schedule.discriminator = SCHEDULE_DISCRIMINATOR
        self.db.add(schedule)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent create for the same triple
            raise ScheduleAlreadyExists(details={"address": address})
        return schedule

    async def get(self, address: str, for_update: bool = False) -> VestingSchedule:
        stmt = select(VestingSchedule).where(VestingSchedule.address == address)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        schedule = result.scalar_one_or_none()
        if schedule is None:
            raise ScheduleNotFound(details={"address": address})
        if schedule.discriminator != SCHEDULE_DISCRIMINATOR:
            logger.error("Schedule record has wrong discriminator", address=address)
            raise CorruptRecord(details={"address": address})
        return schedule

    async def save(self, schedule: VestingSchedule) -> VestingSchedule:
        """Flush pending changes, failing if the record moved underneath us"""
        address = schedule.address
        try:
            await self.db.flush()
        except StaleDataError:
            logger.warning("Concurrent schedule update rejected", address=address)
            raise ConcurrentModification(details={"address": address})
        return schedule

    async def list_schedules(
        self,
        admin: Optional[str] = None,
        beneficiary: Optional[str] = None,
        mint: Optional[str] = None,
    ) -> List[VestingSchedule]:
        stmt = select(VestingSchedule)
        if admin:
            stmt = stmt.where(VestingSchedule.admin == admin)
        if beneficiary:
            stmt = stmt.where(VestingSchedule.beneficiary == beneficiary)
        if mint:
            stmt = stmt.where(VestingSchedule.mint == mint)
        result = await self.db.execute(stmt.order_by(VestingSchedule.created_at, VestingSchedule.address))
        return list(result.scalars().all())
