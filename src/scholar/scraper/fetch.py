from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence
from urllib.parse import quote

import requests

from scholar.core.config import DEFAULT_RELAYS
from scholar.core.errors import NetworkError

logger = logging.getLogger(__name__)


class RelayFetcher:
    """
    Fetches page markup through a rotating list of public relay endpoints.
    A failed relay is skipped for the next attempt (and the next call).
    """

    def __init__(
        self,
        relays: Sequence[str] = DEFAULT_RELAYS,
        attempts: int = 3,
        timeout_s: float = 10.0,
        backoff_s: float = 0.5,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not relays:
            raise ValueError("RelayFetcher needs at least one relay")
        self._relays = list(relays)
        self._attempts = attempts
        self._timeout_s = timeout_s
        self._backoff_s = backoff_s
        self._session = session or requests.Session()
        self._sleep = sleep
        self._index = 0

    @property
    def current_relay(self) -> str:
        return self._relays[self._index]

    def fetch(self, url: str) -> str:
        last_error: Optional[Exception] = None

        for attempt in range(self._attempts):
            relay_url = self.current_relay + quote(url, safe="")
            try:
                resp = self._session.get(
                    relay_url,
                    headers={"Accept": "text/html,application/xhtml+xml"},
                    timeout=self._timeout_s,
                )
                if resp.status_code >= 400:
                    raise NetworkError(f"HTTP {resp.status_code}", code=resp.status_code)
                return resp.text
            except (requests.RequestException, NetworkError) as e:
                last_error = e
                logger.warning("Relay %d failed for %s: %s", self._index, url, e)
                self._index = (self._index + 1) % len(self._relays)
                if attempt < self._attempts - 1:
                    self._sleep(self._backoff_s * (attempt + 1))

        raise NetworkError(f"All relays failed for {url}: {last_error}") from last_error
