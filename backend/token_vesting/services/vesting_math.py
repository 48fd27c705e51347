"""Linear vesting with cliff.

Pure functions over a schedule's fields and the current time. Nothing here
touches the database; the ``VestingSchedule`` model delegates to these.

Amounts are u64 and timestamps/durations are i64 in the stored record. Python
integers never wrap, so the widths are enforced explicitly: boundary additions
are checked against the i64 range and raise ``CalculationOverflow``, and the
linear interpolation multiplies the full u128 product before dividing.
"""
from typing import Protocol

from token_vesting.constants import I64_MAX, I64_MIN, U64_MAX, U128_MAX
from token_vesting.errors import CalculationOverflow


class ScheduleState(Protocol):
    """Fields of a vesting schedule the math reads."""
    total_amount: int
    claimed_amount: int
    start_time: int
    cliff_duration: int
    vesting_duration: int
    is_revoked: bool
    revoked_amount: int


def checked_add_i64(a: int, b: int) -> int:
    """Add two i64 values, raising CalculationOverflow instead of wrapping."""
    result = a + b
    if result < I64_MIN or result > I64_MAX:
        raise CalculationOverflow(
            details={"operation": "i64_add", "lhs": a, "rhs": b}
        )
    return result


def checked_add_u64(a: int, b: int) -> int:
    """Add two u64 values, raising CalculationOverflow instead of wrapping."""
    result = a + b
    if result > U64_MAX:
        raise CalculationOverflow(
            details={"operation": "u64_add", "lhs": a, "rhs": b}
        )
    return result


def saturating_sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def mul_div_u128(value: int, numerator: int, denominator: int) -> int:
    """floor(value * numerator / denominator) at double width.

    The product is formed in full before dividing; it must fit u128 and the
    quotient must fit back into u64.
    """
    if denominator <= 0:
        raise CalculationOverflow(details={"operation": "div", "denominator": denominator})
    product = value * numerator
    if product < 0 or product > U128_MAX:
        raise CalculationOverflow(
            details={"operation": "u128_mul", "lhs": value, "rhs": numerator}
        )
    result = product // denominator
    if result > U64_MAX:
        raise CalculationOverflow(details={"operation": "u64_narrow", "value": result})
    return result


def cliff_end(schedule: ScheduleState) -> int:
    return checked_add_i64(schedule.start_time, schedule.cliff_duration)


def vesting_end(schedule: ScheduleState) -> int:
    return checked_add_i64(schedule.start_time, schedule.vesting_duration)


def vested_amount(schedule: ScheduleState, current_time: int) -> int:
    """Amount vested at ``current_time``.

    Revoked schedules are frozen at ``total - revoked``. Otherwise nothing
    vests before the cliff, everything vests at the end, and in between the
    amount grows linearly from ``start_time`` (the cliff releases the
    proportional amount accrued since start at once).
    """
    if schedule.is_revoked:
        return saturating_sub(schedule.total_amount, schedule.revoked_amount)

    if current_time < cliff_end(schedule):
        return 0

    if current_time >= vesting_end(schedule):
        return schedule.total_amount

    elapsed = current_time - schedule.start_time
    return mul_div_u128(schedule.total_amount, elapsed, schedule.vesting_duration)


def claimable_amount(schedule: ScheduleState, current_time: int) -> int:
    """Vested minus already claimed, floored at zero."""
    return saturating_sub(vested_amount(schedule, current_time), schedule.claimed_amount)


def unvested_amount(schedule: ScheduleState, current_time: int) -> int:
    """Total minus vested, floored at zero."""
    return saturating_sub(schedule.total_amount, vested_amount(schedule, current_time))


def is_cliff_reached(schedule: ScheduleState, current_time: int) -> bool:
    return current_time >= cliff_end(schedule)


def is_fully_vested(schedule: ScheduleState, current_time: int) -> bool:
    return current_time >= vesting_end(schedule)


def percent_vested(schedule: ScheduleState, current_time: int) -> int:
    """Whole-percent progress, for display."""
    if schedule.total_amount == 0:
        return 0
    return vested_amount(schedule, current_time) * 100 // schedule.total_amount


def cliff_percentage(cliff_duration: int, vesting_duration: int) -> int:
    """Cliff as a truncated whole percentage of the vesting duration.

    Truncation is intentional: a cliff of 50.9% reports 50.
    """
    return mul_div_u128(cliff_duration, 100, vesting_duration)
