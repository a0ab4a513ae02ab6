from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from scholar.core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class LiveStatus(str, Enum):
    INITIALIZING = "initializing"
    CONNECTING = "connecting"
    LISTENING = "listening"
    SPEAKING = "speaking"
    ERROR = "error"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


_EXITS = {LiveStatus.ERROR, LiveStatus.CLOSED}

TRANSITIONS: dict[LiveStatus, frozenset[LiveStatus]] = {
    LiveStatus.INITIALIZING: frozenset({LiveStatus.CONNECTING} | _EXITS),
    LiveStatus.CONNECTING: frozenset({LiveStatus.LISTENING} | _EXITS),
    LiveStatus.LISTENING: frozenset({LiveStatus.SPEAKING} | _EXITS),
    LiveStatus.SPEAKING: frozenset({LiveStatus.LISTENING} | _EXITS),
    LiveStatus.ERROR: frozenset({LiveStatus.RECONNECTING, LiveStatus.CLOSED}),
    LiveStatus.RECONNECTING: frozenset({LiveStatus.INITIALIZING} | _EXITS),
    LiveStatus.CLOSED: frozenset(),
}

STATUS_TEXT = {
    LiveStatus.INITIALIZING: "Initializing...",
    LiveStatus.CONNECTING: "Connecting...",
    LiveStatus.LISTENING: "Listening",
    LiveStatus.SPEAKING: "Speaking",
    LiveStatus.ERROR: "Connection Error",
    LiveStatus.RECONNECTING: "Reconnecting...",
    LiveStatus.CLOSED: "Closed",
}


class StatusMachine:
    """Holds the live session status and rejects moves not in TRANSITIONS."""

    def __init__(
        self,
        initial: LiveStatus = LiveStatus.INITIALIZING,
        on_change: Optional[Callable[[LiveStatus, LiveStatus], None]] = None,
    ) -> None:
        self._status = initial
        self._on_change = on_change

    @property
    def status(self) -> LiveStatus:
        return self._status

    def can(self, to: LiveStatus) -> bool:
        return to == self._status or to in TRANSITIONS[self._status]

    def transition(self, to: LiveStatus) -> None:
        prev = self._status
        if to == prev:
            return
        if to not in TRANSITIONS[prev]:
            raise InvalidTransitionError(f"Invalid live status transition {prev.value} -> {to.value}")
        self._status = to
        logger.debug("Live status %s -> %s", prev.value, to.value)
        if self._on_change is not None:
            self._on_change(prev, to)
