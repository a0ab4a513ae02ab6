from __future__ import annotations

import logging

from google.genai import types

from scholar.core.config import AssistantConfig
from scholar.core.interfaces import STTProvider
from scholar.core.retry import with_retry
from scholar.providers.gemini_client import GeminiClientHandle

logger = logging.getLogger(__name__)

TRANSCRIBE_PROMPT = "Transcribe this audio exactly. Return only the transcription."


class GeminiSTT(STTProvider):
    """
    Transcribes a short recorded question by sending it inline to Gemini.
    Returns an empty string on failure so the caller can ask the user to retry.
    """

    def __init__(self, handle: GeminiClientHandle, config: AssistantConfig = AssistantConfig()) -> None:
        self._handle = handle
        self._cfg = config

    def _call(self, audio_bytes: bytes, mime_type: str) -> str:
        resp = self._handle.get().models.generate_content(
            model=self._handle.config.model,
            contents=[
                types.Part.from_bytes(data=audio_bytes, mime_type=mime_type),
                TRANSCRIBE_PROMPT,
            ],
        )
        return (resp.text or "").strip()

    def transcribe(self, audio_bytes: bytes, mime_type: str = "audio/webm") -> str:
        if not audio_bytes:
            raise ValueError("GeminiSTT.transcribe received empty audio.")

        try:
            return with_retry(
                lambda: self._call(audio_bytes, mime_type),
                max_attempts=self._cfg.transcribe_max_attempts,
                base_delay=self._cfg.retry_base_delay_s,
                rate_limit_floor=self._cfg.rate_limit_floor_s,
                on_network_error=self._handle.reset,
            )
        except Exception:
            logger.exception("Transcription failed")
            return ""
