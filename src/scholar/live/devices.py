from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Optional

import numpy as np
import sounddevice as sd

from scholar.core.errors import PermissionDeniedError, ScholarError
from scholar.core.interfaces import AudioBackend, AudioCapture, AudioPlayback

logger = logging.getLogger(__name__)


def find_device(name: Optional[str], kind: str) -> Optional[int]:
    """Index of the first input/output device whose name contains `name`."""
    if not name:
        return None
    channels_key = "max_input_channels" if kind == "input" else "max_output_channels"
    for idx, dev in enumerate(sd.query_devices()):
        if dev.get(channels_key, 0) <= 0:
            continue
        if name.lower() in (dev.get("name") or "").lower():
            return idx
    logger.warning("No %s device matching %r; using default", kind, name)
    return None


class SoundDeviceCapture(AudioCapture):
    """
    Microphone input. The PortAudio callback thread hands each block to the
    event loop through `call_soon_threadsafe`.
    """

    def __init__(
        self,
        sample_rate: int,
        frame_size: int,
        device: Optional[int] = None,
        max_queued: int = 256,
    ) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[Optional[np.ndarray]] = asyncio.Queue(maxsize=max_queued)
        self._stopped = False
        try:
            self._stream = sd.InputStream(
                samplerate=sample_rate,
                channels=1,
                dtype="float32",
                blocksize=frame_size,
                device=device,
                callback=self._on_audio,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            raise PermissionDeniedError(f"Microphone access denied: {e}") from e

    def _put(self, frame: Optional[np.ndarray]) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.debug("Capture queue full; dropping frame")

    def _on_audio(self, indata, frames, time_info, status) -> None:  # PortAudio thread
        if status:
            logger.debug("Input status: %s", status)
        if self._stopped:
            return
        self._loop.call_soon_threadsafe(self._put, indata[:, 0].copy())

    async def frames(self) -> AsyncIterator[np.ndarray]:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._stream.stop()
        self._loop.call_soon_threadsafe(self._put, None)

    def close(self) -> None:
        self._stopped = True
        self._stream.close()


class SoundDevicePlayback(AudioPlayback):
    """Speaker output fed from a locked sample buffer; silence when empty."""

    def __init__(self, sample_rate: int, device: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self._buffer = np.zeros(0, dtype=np.float32)
        try:
            self._stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=1,
                dtype="float32",
                device=device,
                callback=self._on_audio,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            raise ScholarError(f"Audio initialization failed: {e}") from e

    def _on_audio(self, outdata, frames, time_info, status) -> None:  # PortAudio thread
        with self._lock:
            chunk = self._buffer[:frames]
            self._buffer = self._buffer[frames:]
        outdata[: len(chunk), 0] = chunk
        outdata[len(chunk):, 0] = 0.0

    def play(self, samples: np.ndarray) -> None:
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        with self._lock:
            self._buffer = np.concatenate([self._buffer, samples])

    def stop(self) -> None:
        with self._lock:
            self._buffer = np.zeros(0, dtype=np.float32)

    def close(self) -> None:
        self.stop()
        self._stream.stop()
        self._stream.close()


class SoundDeviceBackend(AudioBackend):
    def __init__(self, input_device: Optional[str] = None, output_device: Optional[str] = None) -> None:
        self._input_device = input_device
        self._output_device = output_device

    def open_capture(self, sample_rate: int, frame_size: int) -> SoundDeviceCapture:
        return SoundDeviceCapture(
            sample_rate, frame_size, device=find_device(self._input_device, "input")
        )

    def open_playback(self, sample_rate: int) -> SoundDevicePlayback:
        return SoundDevicePlayback(sample_rate, device=find_device(self._output_device, "output"))
