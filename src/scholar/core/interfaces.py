from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Optional, Protocol, Sequence

import numpy as np

from scholar.core.models import Citation


@dataclass(frozen=True)
class Generation:
    text: str
    grounding: list[Citation] = field(default_factory=list)


class LLMProvider(Protocol):
    """Large Language Model provider interface."""

    def generate(
        self,
        system_instruction: str,
        history: Sequence[dict[str, str]],
        query: str,
        web_search: bool = False,
    ) -> Generation:
        """
        Answer `query` given prior turns and a system instruction.
        """
        ...

    def complete(self, prompt: str, fast: bool = False) -> str:
        """
        Single-shot prompt completion (titles, summaries).
        """
        ...

    def reset(self) -> None:
        """
        Drop the underlying client so the next call reconnects.
        """
        ...


class STTProvider(Protocol):
    """Speech-to-text provider interface."""

    def transcribe(self, audio_bytes: bytes, mime_type: str = "audio/webm") -> str:
        """
        Convert audio bytes into text.
        """
        ...


class TTSProvider(Protocol):
    """Text-to-speech provider interface."""

    def synthesize(self, text: str) -> bytes:
        """
        Convert text into audio bytes (wav).
        """
        ...


class AudioCapture(Protocol):
    def frames(self) -> AsyncIterator[np.ndarray]:
        """Yield float32 mono frames in capture order until stopped."""
        ...

    def stop(self) -> None:
        ...

    def close(self) -> None:
        ...


class AudioPlayback(Protocol):
    def play(self, samples: np.ndarray) -> None:
        """Append float32 samples after whatever is already queued."""
        ...

    def stop(self) -> None:
        """Drop queued and in-progress audio immediately."""
        ...

    def close(self) -> None:
        ...


class AudioBackend(Protocol):
    def open_capture(self, sample_rate: int, frame_size: int) -> AudioCapture:
        ...

    def open_playback(self, sample_rate: int) -> AudioPlayback:
        ...


class LiveEventKind(str, Enum):
    AUDIO = "audio"
    INTERRUPTED = "interrupted"
    TURN_COMPLETE = "turn_complete"


@dataclass(frozen=True)
class LiveEvent:
    kind: LiveEventKind
    audio: Optional[bytes] = None


class LiveTransport(Protocol):
    async def send_audio(self, pcm: bytes) -> None:
        ...

    def receive(self) -> AsyncIterator[LiveEvent]:
        ...

    async def close(self) -> None:
        ...


class LiveConnector(Protocol):
    def prepare(self) -> None:
        """Acquire the API handle; raises ConfigurationError without credentials."""
        ...

    async def connect(self, system_instruction: str) -> LiveTransport:
        ...
