"""Vesting schedule model"""
import hashlib
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, Integer, String, BigInteger, Boolean, DateTime, LargeBinary

from token_vesting.models.database import Base, U64
from token_vesting.services import vesting_math

# Record type tag written by the store and checked on every load
SCHEDULE_DISCRIMINATOR = hashlib.sha256(b"account:VestingSchedule").digest()[:8]


class VestingStatus(str, Enum):
    """Derived lifecycle state of a schedule at a point in time"""
    PENDING = "pending"  # before start
    CLIFF = "cliff"  # started, cliff not reached
    VESTING = "vesting"
    FULLY_VESTED = "fully_vested"  # claims still possible
    COMPLETED = "completed"  # everything claimed
    REVOKED = "revoked"


class VestingSchedule(Base):
    """Escrowed linear vesting of one mint from an admin to a beneficiary.

    Keyed by the derived address of (admin, beneficiary, mint), so at most
    one schedule exists per triple. The escrow vault is owned by that same
    address. ``version`` is bumped on every update and checked in the
    UPDATE's WHERE clause, so a concurrent writer loses instead of
    overwriting.
    """
    __tablename__ = "vesting_schedules"

    address = Column(String(44), primary_key=True)
    discriminator = Column(LargeBinary(8), nullable=False, default=SCHEDULE_DISCRIMINATOR)
    admin = Column(String(44), nullable=False, index=True)
    beneficiary = Column(String(44), nullable=False, index=True)
    mint = Column(String(44), nullable=False, index=True)
    vault = Column(String(44), nullable=False, unique=True)
    total_amount = Column(U64, nullable=False)
    claimed_amount = Column(U64, nullable=False, default=0)
    start_time = Column(BigInteger, nullable=False)
    cliff_duration = Column(BigInteger, nullable=False, default=0)
    vesting_duration = Column(BigInteger, nullable=False)
    is_revoked = Column(Boolean, nullable=False, default=False)
    revoked_amount = Column(U64, nullable=False, default=0)
    bump = Column(Integer, nullable=False)
    vault_bump = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    def calculate_vested_amount(self, current_time: int) -> int:
        return vesting_math.vested_amount(self, current_time)

    def calculate_claimable_amount(self, current_time: int) -> int:
        return vesting_math.claimable_amount(self, current_time)

    def calculate_unvested_amount(self, current_time: int) -> int:
        return vesting_math.unvested_amount(self, current_time)

    def is_cliff_reached(self, current_time: int) -> bool:
        return vesting_math.is_cliff_reached(self, current_time)

    def is_fully_vested(self, current_time: int) -> bool:
        return vesting_math.is_fully_vested(self, current_time)

    @property
    def remaining_amount(self) -> int:
        """Not yet released to the beneficiary"""
        return self.total_amount - self.claimed_amount

    @property
    def is_fully_claimed(self) -> bool:
        return self.claimed_amount == self.total_amount

    def status(self, current_time: int) -> VestingStatus:
        if self.is_revoked:
            return VestingStatus.REVOKED
        if self.is_fully_claimed:
            return VestingStatus.COMPLETED
        if self.is_fully_vested(current_time):
            return VestingStatus.FULLY_VESTED
        if current_time < self.start_time:
            return VestingStatus.PENDING
        if not self.is_cliff_reached(current_time):
            return VestingStatus.CLIFF
        return VestingStatus.VESTING

    def __repr__(self):
        return f"<VestingSchedule {self.address[:8]}... ({self.claimed_amount}/{self.total_amount})>"
