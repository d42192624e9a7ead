"""Countdowns anchored on server-assigned timestamps.

Every client recomputes the remaining time from the same anchor, so a client
joining mid-countdown or with a drifting clock lands on the same value at its
next tick.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional


def remaining(anchor_ms: int, duration_s: float, now_ms: int) -> int:
    """Whole seconds left before `anchor + duration`, never negative."""
    left_ms = anchor_ms + duration_s * 1000 - now_ms
    return max(0, math.ceil(left_ms / 1000))


def _local_clock_ms() -> int:
    return int(time.time() * 1000)


class ServerClock:
    """A local clock corrected by the store's server time offset."""

    def __init__(self, local_clock: Optional[Callable[[], int]] = None, offset_ms: int = 0):
        self.local_clock = local_clock or _local_clock_ms
        self.offset_ms = offset_ms

    def __call__(self) -> int:
        return self.local_clock() + self.offset_ms


@dataclass(frozen=True)
class Countdown:
    """A named countdown bound to one anchor."""
    name: str
    anchor_ms: int
    duration_s: float

    def remaining(self, now_ms: int) -> int:
        return remaining(self.anchor_ms, self.duration_s, now_ms)

    def expired(self, now_ms: int) -> bool:
        return self.remaining(now_ms) == 0


class CountdownRegistry:
    """The local countdowns a client is currently running.

    Activation is keyed by anchor: activating the same name with the same
    anchor again is a no-op, so replayed snapshots do not restart anything.
    """

    def __init__(self):
        self._countdowns: dict[str, Countdown] = {}
        self._fired: set[Countdown] = set()
        self.activations = 0

    def __contains__(self, name: str) -> bool:
        return name in self._countdowns

    def __len__(self) -> int:
        return len(self._countdowns)

    def get(self, name: str) -> Optional[Countdown]:
        return self._countdowns.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._countdowns)

    def activate(self, name: str, anchor_ms: int, duration_s: float) -> Countdown:
        """Start `name` unless it already runs on this anchor."""
        current = self._countdowns.get(name)
        if current is not None and current.anchor_ms == anchor_ms and current.duration_s == duration_s:
            return current

        if current is not None:
            self._fired.discard(current)
        countdown = Countdown(name=name, anchor_ms=anchor_ms, duration_s=duration_s)
        self._countdowns[name] = countdown
        self.activations += 1
        return countdown

    def cancel(self, name: str) -> None:
        countdown = self._countdowns.pop(name, None)
        self._fired.discard(countdown)

    def cancel_all(self) -> None:
        self._countdowns.clear()
        self._fired.clear()

    def keep_only(self, names: set[str]) -> None:
        """Cancel every countdown not named in `names`."""
        for name in list(self._countdowns):
            if name not in names:
                self.cancel(name)

    def snapshot(self, now_ms: int) -> dict[str, int]:
        """Seconds left on every running countdown."""
        return {name: c.remaining(now_ms) for name, c in self._countdowns.items()}

    def expired(self, now_ms: int) -> list[str]:
        """Names of countdowns that reached zero since the last call.

        Each countdown is reported once per anchor. Replacing or cancelling a
        countdown forgets that it fired.
        """
        names = []
        for name, countdown in self._countdowns.items():
            if countdown not in self._fired and countdown.expired(now_ms):
                self._fired.add(countdown)
                names.append(name)
        return names

