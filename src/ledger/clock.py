"""
Clock

Every time-dependent operation receives its notion of "now" from an
injected clock, so the engines can be driven from fixed instants in tests.
"""

from datetime import datetime, timezone
from typing import Callable


Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current wall-clock time (UTC)."""
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """A clock that always returns `moment`."""
    return lambda: moment
