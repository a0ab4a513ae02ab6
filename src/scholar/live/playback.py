from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class Slot:
    start: float
    end: float


class PlaybackScheduler:
    """
    Assigns gapless, non-overlapping start times to buffers in arrival order.
    Each slot starts at the later of "now" and the previous slot's end.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._next_start = 0.0
        self._slots: deque[Slot] = deque()

    def schedule(self, duration: float) -> Slot:
        start = max(self._next_start, self._clock())
        slot = Slot(start=start, end=start + duration)
        self._next_start = slot.end
        self._slots.append(slot)
        return slot

    def prune(self) -> None:
        now = self._clock()
        while self._slots and self._slots[0].end <= now:
            self._slots.popleft()

    @property
    def pending(self) -> int:
        self.prune()
        return len(self._slots)

    def is_idle(self) -> bool:
        return self.pending == 0

    @property
    def next_start(self) -> float:
        return self._next_start

    def reset(self) -> None:
        self._slots.clear()
        self._next_start = 0.0
