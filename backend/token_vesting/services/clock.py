"""Trusted clock sources for the vesting transitions"""
import time
from typing import Optional, Protocol


class Clock(Protocol):
    """Anything that reports the current unix time in whole seconds"""

    async def current_time(self) -> int:
        ...


class SystemClock:
    """Wall-clock time of the host"""

    async def current_time(self) -> int:
        return int(time.time())


# Singleton instance
_clock: Optional[Clock] = None


def get_clock() -> Clock:
    """Get the process clock (FastAPI dependency)"""
    global _clock
    if _clock is None:
        _clock = SystemClock()
    return _clock
