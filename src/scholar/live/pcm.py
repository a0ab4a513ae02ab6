from __future__ import annotations

import base64
import io
import wave
from typing import Union

import numpy as np


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Clip float samples to [-1, 1] and encode as little-endian int16."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


def pcm16_to_float(data: Union[bytes, str], channels: int = 1) -> np.ndarray:
    """
    Decode int16 PCM (raw bytes or base64 text) into float32 samples.
    Multi-channel input comes back shaped (frames, channels).
    """
    if isinstance(data, str):
        data = base64.b64decode(data)
    usable = len(data) - (len(data) % (2 * channels))
    ints = np.frombuffer(data[:usable], dtype="<i2")
    samples = ints.astype(np.float32) / 32768.0
    if channels > 1:
        samples = samples.reshape(-1, channels)
    return samples


def duration_s(n_samples: int, sample_rate: int) -> float:
    return n_samples / float(sample_rate)


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int = 1) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()
