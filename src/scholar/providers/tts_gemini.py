from __future__ import annotations

import logging
import re
from typing import Iterator

from google.genai import types

from scholar.core.config import AssistantConfig
from scholar.core.errors import ScholarError
from scholar.core.interfaces import TTSProvider
from scholar.core.retry import with_retry
from scholar.live.pcm import pcm_to_wav
from scholar.providers.gemini_client import GeminiClientHandle

logger = logging.getLogger(__name__)

TTS_SAMPLE_RATE = 24000
CHUNK_CHARS = 200
MAX_CHUNKS = 10

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")


class GeminiTTSError(ScholarError):
    pass


def clean_for_speech(text: str, max_chars: int = 1500) -> str:
    """Strip markdown and citation tags that read badly aloud."""
    text = text.replace("**", "")
    text = re.sub(r"\[Source:.*?\]", "", text)
    text = text.replace("|", ", ")
    text = re.sub(r"#+\s", "", text)
    return text.strip()[:max_chars]


def split_for_speech(text: str) -> list[str]:
    sentences = _SENTENCE_RE.findall(text) or [text]
    chunks: list[str] = []
    current = ""
    for sentence in sentences:
        if len(current) + len(sentence) < CHUNK_CHARS:
            current += sentence
        else:
            if current.strip():
                chunks.append(current.strip())
            current = sentence
    if current.strip():
        chunks.append(current.strip())
    return chunks[:MAX_CHUNKS]


class GeminiTTS(TTSProvider):
    """
    Gemini speech synthesis. Returns 24 kHz mono WAV bytes.
    """

    def __init__(self, handle: GeminiClientHandle, config: AssistantConfig = AssistantConfig()) -> None:
        self._handle = handle
        self._cfg = config

    def _speak(self, text: str) -> bytes:
        cfg = self._handle.config
        resp = self._handle.get().models.generate_content(
            model=cfg.tts_model,
            contents=text,
            config=types.GenerateContentConfig(
                response_modalities=["AUDIO"],
                speech_config=types.SpeechConfig(
                    voice_config=types.VoiceConfig(
                        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=cfg.voice)
                    )
                ),
            ),
        )
        try:
            pcm = resp.candidates[0].content.parts[0].inline_data.data
        except (AttributeError, IndexError, TypeError) as e:
            raise GeminiTTSError("Gemini returned no audio content.") from e
        if not pcm:
            raise GeminiTTSError("Gemini returned no audio content.")
        return pcm_to_wav(pcm, TTS_SAMPLE_RATE)

    def synthesize(self, text: str) -> bytes:
        text = clean_for_speech(text or "", self._cfg.tts_max_chars)
        if not text:
            raise ValueError("GeminiTTS.synthesize received empty text.")

        return with_retry(
            lambda: self._speak(text),
            max_attempts=self._cfg.tts_max_attempts,
            base_delay=self._cfg.retry_base_delay_s,
            rate_limit_floor=self._cfg.rate_limit_floor_s,
            on_network_error=self._handle.reset,
        )

    def synthesize_chunks(self, text: str) -> Iterator[tuple[bytes, int, bool]]:
        """
        Yield (wav_bytes, index, is_last) per sentence group so playback can
        begin before the whole answer is synthesized. Failed chunks are skipped.
        """
        chunks = split_for_speech(clean_for_speech(text or "", self._cfg.tts_max_chars))
        logger.info("Generating %d audio chunks", len(chunks))
        for i, chunk in enumerate(chunks):
            try:
                audio = self._speak(chunk)
            except Exception:
                logger.exception("TTS chunk %d failed", i)
                continue
            yield audio, i, i == len(chunks) - 1
