from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ReleaseGuards:
    """
    Ordered release steps for resources that fail independently.

    `release_all` runs every step in push order; a failing step is logged
    and the remaining steps still run.
    """

    def __init__(self) -> None:
        self._steps: list[tuple[str, Callable[[], Any]]] = []

    def push(self, name: str, fn: Callable[[], Any]) -> None:
        self._steps.append((name, fn))

    def __len__(self) -> int:
        return len(self._steps)

    async def release_all(self) -> list[str]:
        """Run and consume all steps. Returns the names of the steps that failed."""
        steps, self._steps = self._steps, []
        failed: list[str] = []
        for name, fn in steps:
            try:
                result = fn()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Release step %r failed", name, exc_info=True)
                failed.append(name)
        return failed
