from __future__ import annotations

from typing import Iterable, Optional

from scholar.core.config import AssistantConfig, LiveVoiceConfig, ScraperConfig
from scholar.core.interfaces import LLMProvider, STTProvider, TTSProvider
from scholar.core.models import Document, Role
from scholar.live.session import LiveVoiceSession
from scholar.orchestrators.answer_agent import AnswerAgent
from scholar.providers.gemini_client import GeminiClientHandle
from scholar.providers.live_gemini import GeminiLiveConnector
from scholar.providers.llm_gemini import GeminiLLM
from scholar.providers.llm_openai import OpenAILLM, OpenAILLMConfig
from scholar.providers.stt_gemini import GeminiSTT
from scholar.providers.tts_gemini import GeminiTTS
from scholar.scraper.fetch import RelayFetcher
from scholar.scraper.service import PageScraper


def _key(name: str) -> str:
    return (name or "").strip().lower()


def get_llm_provider(name: str, handle: Optional[GeminiClientHandle] = None) -> LLMProvider:
    key = _key(name)

    if key in {"gemini", "google"}:
        return GeminiLLM(handle or GeminiClientHandle())

    if key in {"openai", "gpt"}:
        cfg = OpenAILLMConfig.from_env()
        return OpenAILLM(cfg)

    raise ValueError(f"Unknown LLM provider: {name}")


def get_stt_provider(
    name: str,
    handle: Optional[GeminiClientHandle] = None,
    config: Optional[AssistantConfig] = None,
) -> STTProvider:
    if _key(name) in {"gemini", "google"}:
        return GeminiSTT(handle or GeminiClientHandle(), config or AssistantConfig.from_env())

    raise ValueError(f"Unknown STT provider: {name}")


def get_tts_provider(
    name: str,
    handle: Optional[GeminiClientHandle] = None,
    config: Optional[AssistantConfig] = None,
) -> TTSProvider:
    if _key(name) in {"gemini", "google"}:
        return GeminiTTS(handle or GeminiClientHandle(), config or AssistantConfig.from_env())

    raise ValueError(f"Unknown TTS provider: {name}")


def build_scraper(config: Optional[ScraperConfig] = None) -> PageScraper:
    cfg = config or ScraperConfig.from_env()
    fetcher = RelayFetcher(
        cfg.relays, attempts=cfg.attempts, timeout_s=cfg.timeout_s, backoff_s=cfg.backoff_s
    )
    return PageScraper(fetcher, ttl_s=cfg.cache_ttl_s)


def build_answer_agent(
    llm_name: str = "gemini",
    handle: Optional[GeminiClientHandle] = None,
    config: Optional[AssistantConfig] = None,
    scraper: Optional[PageScraper] = None,
) -> AnswerAgent:
    """
    Wire an AnswerAgent; site search is skipped when SCHOLAR_SITE_SEARCH is off.
    Pass `scraper` to share one page cache between agents.
    """
    cfg = config or AssistantConfig.from_env()
    if not cfg.site_search:
        scraper = None
    elif scraper is None:
        scraper = build_scraper()
    return AnswerAgent(get_llm_provider(llm_name, handle), scraper=scraper, config=cfg)


def build_live_session(
    documents: Iterable[Document],
    role: Role = Role.PUBLIC,
    handle: Optional[GeminiClientHandle] = None,
    config: Optional[LiveVoiceConfig] = None,
    app_name: str = "SIT Scholar",
    on_status=None,
) -> LiveVoiceSession:
    # sounddevice loads PortAudio on import; keep it out of the chat path.
    from scholar.live.devices import SoundDeviceBackend

    cfg = config or LiveVoiceConfig.from_env()
    return LiveVoiceSession(
        connector=GeminiLiveConnector(handle or GeminiClientHandle(), input_rate=cfg.input_rate),
        audio=SoundDeviceBackend(cfg.input_device, cfg.output_device),
        documents=documents,
        config=cfg,
        role=role,
        app_name=app_name,
        on_status=on_status,
    )
