from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from google import genai
from google.genai import types

from scholar.core.config import GeminiConfig

logger = logging.getLogger(__name__)


class GeminiClientHandle:
    """
    One reusable authenticated Gemini client, created on first use.

    Providers share a handle and call `reset()` when a connection looks stuck;
    the next `get()` builds a fresh client.
    """

    def __init__(
        self,
        config: Optional[GeminiConfig] = None,
        loader: Callable[[], GeminiConfig] = GeminiConfig.from_env,
    ) -> None:
        self._config = config
        self._loader = loader
        self._client: Optional[genai.Client] = None
        self._lock = threading.Lock()

    @property
    def config(self) -> GeminiConfig:
        # Raises ConfigurationError when no key is available.
        if self._config is None:
            self._config = self._loader()
        return self._config

    def get(self) -> genai.Client:
        with self._lock:
            if self._client is None:
                cfg = self.config
                logger.info("Creating Gemini client (key %s)", cfg.masked_key)
                self._client = genai.Client(
                    api_key=cfg.api_key,
                    http_options=types.HttpOptions(timeout=int(cfg.timeout_s * 1000)),
                )
            return self._client

    def reset(self) -> None:
        with self._lock:
            if self._client is not None:
                logger.info("Resetting Gemini client")
            self._client = None
