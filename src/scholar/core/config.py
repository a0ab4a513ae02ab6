from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from scholar.core.errors import ConfigurationError

DEFAULT_RELAYS = (
    "https://api.allorigins.win/raw?url=",
    "https://corsproxy.io/?",
    "https://api.codetabs.com/v1/proxy?quest=",
)


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str
    model: str = "gemini-2.5-flash"
    fast_model: str = "gemini-2.5-flash-lite-preview-09-2025"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    live_model: str = "gemini-2.0-flash-live-001"
    voice: str = "Kore"
    timeout_s: float = 60.0

    @property
    def masked_key(self) -> str:
        return f"{self.api_key[:8]}..." if self.api_key else "UNDEFINED"

    @staticmethod
    def from_env() -> "GeminiConfig":
        api_key = (os.getenv("GEMINI_API_KEY", "") or os.getenv("API_KEY", "")).strip()
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")

        return GeminiConfig(
            api_key=api_key,
            model=_env_str("GEMINI_MODEL", "gemini-2.5-flash"),
            fast_model=_env_str("GEMINI_FAST_MODEL", "gemini-2.5-flash-lite-preview-09-2025"),
            tts_model=_env_str("GEMINI_TTS_MODEL", "gemini-2.5-flash-preview-tts"),
            live_model=_env_str("GEMINI_LIVE_MODEL", "gemini-2.0-flash-live-001"),
            voice=_env_str("GEMINI_VOICE", "Kore"),
            timeout_s=_env_float("GEMINI_TIMEOUT_S", 60.0),
        )


@dataclass(frozen=True)
class AssistantConfig:
    app_name: str = "SIT Scholar"
    history_window: int = 10
    answer_max_attempts: int = 4
    title_max_attempts: int = 3
    transcribe_max_attempts: int = 3
    tts_max_attempts: int = 2
    retry_base_delay_s: float = 1.0
    rate_limit_floor_s: float = 5.0
    tts_max_chars: int = 1500
    site_search: bool = True
    data_dir: Path = Path(".scholar")

    @staticmethod
    def from_env() -> "AssistantConfig":
        return AssistantConfig(
            app_name=_env_str("SCHOLAR_APP_NAME", "SIT Scholar"),
            history_window=_env_int("SCHOLAR_HISTORY_WINDOW", 10),
            answer_max_attempts=_env_int("SCHOLAR_ANSWER_MAX_ATTEMPTS", 4),
            title_max_attempts=_env_int("SCHOLAR_TITLE_MAX_ATTEMPTS", 3),
            transcribe_max_attempts=_env_int("SCHOLAR_TRANSCRIBE_MAX_ATTEMPTS", 3),
            tts_max_attempts=_env_int("SCHOLAR_TTS_MAX_ATTEMPTS", 2),
            retry_base_delay_s=_env_float("SCHOLAR_RETRY_BASE_DELAY_S", 1.0),
            rate_limit_floor_s=_env_float("SCHOLAR_RATE_LIMIT_FLOOR_S", 5.0),
            tts_max_chars=_env_int("SCHOLAR_TTS_MAX_CHARS", 1500),
            site_search=_env_bool("SCHOLAR_SITE_SEARCH", True),
            data_dir=Path(_env_str("SCHOLAR_DATA_DIR", ".scholar")),
        )


@dataclass(frozen=True)
class ScraperConfig:
    cache_ttl_s: float = 30 * 60
    timeout_s: float = 10.0
    attempts: int = 3
    backoff_s: float = 0.5
    relays: tuple[str, ...] = DEFAULT_RELAYS

    @staticmethod
    def from_env() -> "ScraperConfig":
        relays_raw = os.getenv("SCHOLAR_SCRAPER_RELAYS", "").strip()
        relays = tuple(r.strip() for r in relays_raw.split(",") if r.strip()) or DEFAULT_RELAYS
        return ScraperConfig(
            cache_ttl_s=_env_float("SCHOLAR_SCRAPER_CACHE_TTL_S", 30 * 60),
            timeout_s=_env_float("SCHOLAR_SCRAPER_TIMEOUT_S", 10.0),
            attempts=_env_int("SCHOLAR_SCRAPER_ATTEMPTS", 3),
            backoff_s=_env_float("SCHOLAR_SCRAPER_BACKOFF_S", 0.5),
            relays=relays,
        )


@dataclass(frozen=True)
class LiveVoiceConfig:
    input_rate: int = 16000
    output_rate: int = 24000
    frame_size: int = 4096
    max_retries: int = 3
    retry_base_delay_s: float = 1.0
    retry_max_delay_s: float = 5.0
    context_documents: int = 5
    context_chars: int = 6000
    input_device: Optional[str] = None
    output_device: Optional[str] = None

    def retry_delay(self, retry_count: int) -> float:
        return min(self.retry_base_delay_s * (2 ** retry_count), self.retry_max_delay_s)

    @staticmethod
    def from_env() -> "LiveVoiceConfig":
        return LiveVoiceConfig(
            frame_size=_env_int("SCHOLAR_LIVE_FRAME_SIZE", 4096),
            max_retries=_env_int("SCHOLAR_LIVE_MAX_RETRIES", 3),
            context_documents=_env_int("SCHOLAR_LIVE_CONTEXT_DOCUMENTS", 5),
            context_chars=_env_int("SCHOLAR_LIVE_CONTEXT_CHARS", 6000),
            input_device=os.getenv("PREFERRED_INPUT", "").strip() or None,
            output_device=os.getenv("PREFERRED_OUTPUT", "").strip() or None,
        )
