from __future__ import annotations

import base64
import logging
from contextlib import AsyncExitStack
from typing import AsyncIterator

from google.genai import types

from scholar.core.interfaces import LiveConnector, LiveEvent, LiveEventKind, LiveTransport
from scholar.providers.gemini_client import GeminiClientHandle

logger = logging.getLogger(__name__)


def events_from_message(message: types.LiveServerMessage) -> list[LiveEvent]:
    """Flatten one server message into audio / interrupted / turn-complete events."""
    content = message.server_content
    if content is None:
        return []

    events: list[LiveEvent] = []
    if content.model_turn is not None:
        for part in content.model_turn.parts or []:
            blob = part.inline_data
            if blob is None or not blob.data:
                continue
            data = blob.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            events.append(LiveEvent(LiveEventKind.AUDIO, audio=data))
    if content.interrupted:
        events.append(LiveEvent(LiveEventKind.INTERRUPTED))
    if content.turn_complete:
        events.append(LiveEvent(LiveEventKind.TURN_COMPLETE))
    return events


class GeminiLiveTransport(LiveTransport):
    def __init__(self, session, stack: AsyncExitStack, input_rate: int) -> None:
        self._session = session
        self._stack = stack
        self._mime_type = f"audio/pcm;rate={input_rate}"

    async def send_audio(self, pcm: bytes) -> None:
        await self._session.send_realtime_input(
            audio=types.Blob(data=pcm, mime_type=self._mime_type)
        )

    async def receive(self) -> AsyncIterator[LiveEvent]:
        # session.receive() stops after each turn; keep reading turns until
        # the connection itself ends.
        while True:
            got_any = False
            async for message in self._session.receive():
                got_any = True
                for event in events_from_message(message):
                    yield event
            if not got_any:
                return

    async def close(self) -> None:
        await self._stack.aclose()


class GeminiLiveConnector(LiveConnector):
    """Opens Gemini Live sessions that answer with synthesized speech."""

    def __init__(self, handle: GeminiClientHandle, input_rate: int = 16000) -> None:
        self._handle = handle
        self._input_rate = input_rate

    def prepare(self) -> None:
        self._handle.get()

    async def connect(self, system_instruction: str) -> GeminiLiveTransport:
        cfg = self._handle.config
        config = types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=cfg.voice)
                )
            ),
            system_instruction=system_instruction,
        )

        stack = AsyncExitStack()
        try:
            session = await stack.enter_async_context(
                self._handle.get().aio.live.connect(model=cfg.live_model, config=config)
            )
        except BaseException:
            await stack.aclose()
            raise
        logger.info("Live session opened (model %s)", cfg.live_model)
        return GeminiLiveTransport(session, stack, self._input_rate)
