"""
Ersatz Common Utilities

Polling, timeout and small string helpers shared by the engine.
"""

import random
import string
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple


# Verification polling interval in seconds
POLL_INTERVAL = 0.05

BOUNDARY_LENGTH = 18

_UNIT_SECONDS = {
    'milliseconds': 0.001,
    'ms': 0.001,
    'seconds': 1.0,
    's': 1.0,
    'minutes': 60.0,
    'm': 60.0,
}


@dataclass(frozen=True)
class WaitFor:
    """
    Maximum time to wait for an expectation to be satisfied.

    A `seconds` value of None waits forever.

    Example:
        expectations.verify(WaitFor.at_most(500, 'milliseconds'))
    """

    seconds: Optional[float] = 1.0

    @classmethod
    def at_most(cls, time_value: float, unit: str = 'seconds') -> 'WaitFor':
        """Build a timeout from a value and a unit name (ms, seconds, minutes)."""
        try:
            factor = _UNIT_SECONDS[unit.lower()]
        except KeyError:
            raise ValueError(f"Unknown time unit: {unit}") from None

        return cls(seconds=time_value * factor)

    @classmethod
    def of(cls, value: 'Optional[object]', default: 'WaitFor') -> 'WaitFor':
        """Coerce None, a number of seconds or a WaitFor into a WaitFor."""
        if value is None:
            return default
        if isinstance(value, WaitFor):
            return value
        return cls(seconds=float(value))

    @property
    def forever(self) -> bool:
        return self.seconds is None


WaitFor.ONE_SECOND = WaitFor(1.0)
WaitFor.FOREVER = WaitFor(None)


def is_true_before(
    condition: Callable[[], bool],
    wait: WaitFor = WaitFor.ONE_SECOND,
    interval: float = POLL_INTERVAL
) -> bool:
    """
    Poll a condition until it holds or the timeout elapses.

    The condition is always evaluated at least once. Between checks the
    caller sleeps for `interval` seconds.

    Args:
        condition: Zero-argument callable returning a bool
        wait: Maximum time to wait
        interval: Sleep between checks in seconds

    Returns:
        True if the condition held before the timeout
    """
    deadline = None if wait.forever else time.monotonic() + wait.seconds

    while True:
        if condition():
            return True

        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            time.sleep(min(interval, remaining))
        else:
            time.sleep(interval)


def random_boundary(length: int = BOUNDARY_LENGTH) -> str:
    """Generate a random alphanumeric multipart boundary."""
    alphabet = string.ascii_letters + string.digits
    return ''.join(random.choice(alphabet) for _ in range(length))


def group_headers(headers: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    """
    Group raw header pairs by name, keeping the first spelling of each name.

    Every header line contributes exactly one value. Values are never split
    on commas, so `Date: Mon, 01 Jan 2024` stays a single value and a
    multi-valued header is one sent as several lines with the same name.
    """
    grouped: Dict[str, List[str]] = {}
    spelling: Dict[str, str] = {}

    for key, value in headers:
        name = spelling.setdefault(key.lower(), key)
        grouped.setdefault(name, []).append(value)

    return grouped
