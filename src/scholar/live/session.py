from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterable, Optional

import numpy as np

from scholar.core.config import LiveVoiceConfig
from scholar.core.errors import SessionClosedError
from scholar.core.interfaces import (
    AudioBackend,
    AudioCapture,
    AudioPlayback,
    LiveConnector,
    LiveEventKind,
    LiveTransport,
)
from scholar.core.models import Document, Role
from scholar.live.guards import ReleaseGuards
from scholar.live.pcm import duration_s, float_to_pcm16, pcm16_to_float
from scholar.live.playback import PlaybackScheduler
from scholar.live.state import LiveStatus, StatusMachine

logger = logging.getLogger(__name__)

MAX_RETRIES_MESSAGE = "Maximum retry attempts reached. Please try again later."
UNEXPECTED_CLOSE_MESSAGE = "Connection closed unexpectedly"

VOICE_INSTRUCTION = """You are {app_name}, a helpful voice assistant.
CRITICAL: Use the following knowledge base to answer questions about students, faculty, and fees.
If asked about a specific person, look them up.
Keep responses concise for voice output.
KNOWLEDGE BASE:
{knowledge}"""


class LiveVoiceSession:
    """
    A duplex voice conversation over one streaming session.

    Microphone frames flow capture -> encode -> send through one task; server
    audio flows receive -> decode -> inbound queue -> playback through two
    more. `interrupt()` drops everything queued at once. `close()` releases
    every resource, each step independently.
    """

    def __init__(
        self,
        connector: LiveConnector,
        audio: AudioBackend,
        documents: Iterable[Document] = (),
        config: LiveVoiceConfig = LiveVoiceConfig(),
        role: Role = Role.PUBLIC,
        app_name: str = "SIT Scholar",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_status: Optional[Callable[[LiveStatus, str], None]] = None,
    ) -> None:
        self._connector = connector
        self._audio = audio
        self._documents = list(documents)
        self._cfg = config
        self._role = role
        self._app_name = app_name
        self._clock = clock
        self._sleep = sleep
        self._on_status = on_status

        self._machine = StatusMachine(on_change=self._status_changed)
        self._changed = asyncio.Event()
        self.error_message = ""
        self.muted = False
        self.retry_count = 0

        self._closing = False
        self._transport: Optional[LiveTransport] = None
        self._capture: Optional[AudioCapture] = None
        self._playback: Optional[AudioPlayback] = None
        self._inbound: asyncio.Queue[tuple[int, np.ndarray]] = asyncio.Queue()
        self._epoch = 0
        self._scheduler = PlaybackScheduler(clock)
        self._idle_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: list[asyncio.Task] = []

    # -- status ---------------------------------------------------------

    @property
    def status(self) -> LiveStatus:
        return self._machine.status

    @property
    def queued_buffers(self) -> int:
        """Buffers waiting in the inbound queue or still scheduled to play."""
        return self._inbound.qsize() + self._scheduler.pending

    def _status_changed(self, prev: LiveStatus, to: LiveStatus) -> None:
        logger.info("Live session %s -> %s", prev.value, to.value)
        self._changed.set()
        if self._on_status is not None:
            self._on_status(to, self.error_message)

    async def wait_for(self, *statuses: LiveStatus) -> LiveStatus:
        while self.status not in statuses:
            self._changed.clear()
            await self._changed.wait()
        return self.status

    def build_system_instruction(self) -> str:
        docs = [d for d in self._documents if self._role.is_privileged or not d.is_restricted]
        docs = docs[: self._cfg.context_documents]
        knowledge = "\n\n".join(f"[Internal Document: {d.title}]\n{d.content}" for d in docs)
        return VOICE_INSTRUCTION.format(
            app_name=self._app_name, knowledge=knowledge[: self._cfg.context_chars]
        )

    # -- lifecycle ------------------------------------------------------

    async def start(self) -> None:
        if self._closing:
            return
        self._machine.transition(LiveStatus.INITIALIZING)
        self.error_message = ""

        try:
            self._connector.prepare()
            self._playback = self._audio.open_playback(self._cfg.output_rate)
            self._capture = self._audio.open_capture(self._cfg.input_rate, self._cfg.frame_size)
            self._machine.transition(LiveStatus.CONNECTING)
            transport = await self._connector.connect(self.build_system_instruction())
        except Exception as e:
            logger.error("Session start error: %s", e)
            await self._fail(str(e) or "Failed to start live session")
            return

        self._transport = transport
        if self._closing:
            # close() ran while we were connecting.
            await transport.close()
            return

        self._machine.transition(LiveStatus.LISTENING)
        self.retry_count = 0
        self._tasks = [
            asyncio.create_task(self._capture_pump(), name="live-capture"),
            asyncio.create_task(self._receive_pump(), name="live-receive"),
            asyncio.create_task(self._playback_drainer(), name="live-playback"),
        ]

    async def retry(self) -> bool:
        """Tear down and reconnect after an error. Bounded by `max_retries`."""
        if self.status is not LiveStatus.ERROR:
            return False
        if self.retry_count >= self._cfg.max_retries:
            self.error_message = MAX_RETRIES_MESSAGE
            if self._on_status is not None:
                self._on_status(self.status, self.error_message)
            return False

        delay = self._cfg.retry_delay(self.retry_count)
        self.retry_count += 1
        self._machine.transition(LiveStatus.RECONNECTING)
        await self._release_resources()
        await self._sleep(delay)
        if self._closing:
            return False
        await self.start()
        return self.status in (LiveStatus.LISTENING, LiveStatus.SPEAKING)

    async def close(self) -> None:
        if self.status is LiveStatus.CLOSED:
            return
        self._closing = True
        await self._release_resources()
        self._machine.transition(LiveStatus.CLOSED)

    # -- controls -------------------------------------------------------

    def set_muted(self, muted: bool) -> None:
        self.muted = muted
        logger.info("Microphone %s", "muted" if muted else "unmuted")

    def toggle_mute(self) -> bool:
        self.set_muted(not self.muted)
        return self.muted

    def interrupt(self) -> None:
        """Stop playback now and discard everything still queued."""
        self._epoch += 1
        dropped = 0
        while not self._inbound.empty():
            self._inbound.get_nowait()
            dropped += 1
        if self._playback is not None:
            self._playback.stop()
        self._scheduler.reset()
        self._cancel_idle_check()
        if self.status is LiveStatus.SPEAKING:
            self._machine.transition(LiveStatus.LISTENING)
        logger.info("Playback interrupted; dropped %d queued buffers", dropped)

    # -- pumps ----------------------------------------------------------

    async def _capture_pump(self) -> None:
        assert self._capture is not None and self._transport is not None
        try:
            async for frame in self._capture.frames():
                if self._closing:
                    return
                if self.muted:
                    continue
                await self._transport.send_audio(float_to_pcm16(frame))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Audio send failed: %s", e)
            await self._fail(f"Audio send failed: {e}")

    async def _receive_pump(self) -> None:
        assert self._transport is not None
        try:
            async for event in self._transport.receive():
                if self._closing:
                    return
                if event.kind is LiveEventKind.AUDIO and event.audio:
                    self._inbound.put_nowait((self._epoch, pcm16_to_float(event.audio)))
                elif event.kind is LiveEventKind.INTERRUPTED:
                    self.interrupt()
                elif event.kind is LiveEventKind.TURN_COMPLETE:
                    logger.debug("Turn complete")
            raise SessionClosedError(UNEXPECTED_CLOSE_MESSAGE)
        except asyncio.CancelledError:
            raise
        except SessionClosedError as e:
            logger.warning("Live session ended: %s", e)
            await self._fail(str(e))
        except Exception as e:
            logger.error("Live session error: %s", e)
            await self._fail(str(e) or UNEXPECTED_CLOSE_MESSAGE)

    async def _playback_drainer(self) -> None:
        try:
            while True:
                epoch, samples = await self._inbound.get()
                if self._closing:
                    return
                if epoch != self._epoch or self._playback is None:
                    continue
                slot = self._scheduler.schedule(duration_s(len(samples), self._cfg.output_rate))
                self._playback.play(samples)
                if self.status is LiveStatus.LISTENING:
                    self._machine.transition(LiveStatus.SPEAKING)
                self._arm_idle_check(slot.end)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Audio playback failed: %s", e)
            await self._fail(f"Audio playback failed: {e}")

    def _arm_idle_check(self, at: float) -> None:
        self._cancel_idle_check()
        delay = max(0.0, at - self._clock())
        self._idle_handle = asyncio.get_running_loop().call_later(delay, self._check_idle)

    def _cancel_idle_check(self) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
            self._idle_handle = None

    def _check_idle(self) -> None:
        self._idle_handle = None
        if self.status is not LiveStatus.SPEAKING:
            return
        if self._inbound.empty() and self._scheduler.is_idle():
            self._machine.transition(LiveStatus.LISTENING)
        elif not self._scheduler.is_idle():
            self._arm_idle_check(max(self._scheduler.next_start, self._clock() + 0.01))

    # -- failure & teardown ---------------------------------------------

    async def _fail(self, message: str) -> None:
        if self._closing or self.status in (LiveStatus.ERROR, LiveStatus.CLOSED):
            return
        self.error_message = message
        self._machine.transition(LiveStatus.ERROR)
        await self._release_resources()

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        tasks, self._tasks = self._tasks, []
        others = [t for t in tasks if t is not current and not t.done()]
        for t in others:
            t.cancel()
        if others:
            await asyncio.gather(*others, return_exceptions=True)

    def _build_guards(self) -> ReleaseGuards:
        guards = ReleaseGuards()
        guards.push("pump tasks", self._cancel_tasks)
        if self._playback is not None:
            guards.push("playback nodes", self._playback.stop)
        if self._capture is not None:
            guards.push("microphone", self._capture.stop)
            guards.push("capture device", self._capture.close)
        if self._playback is not None:
            guards.push("playback device", self._playback.close)
        if self._transport is not None:
            guards.push("live session", self._transport.close)
        return guards

    async def _release_resources(self) -> None:
        guards = self._build_guards()
        self._cancel_idle_check()
        self._epoch += 1
        while not self._inbound.empty():
            self._inbound.get_nowait()
        self._scheduler.reset()
        self._transport = None
        self._capture = None
        self._playback = None

        failed = await guards.release_all()
        if failed:
            logger.warning("Cleanup finished with failures: %s", ", ".join(failed))
