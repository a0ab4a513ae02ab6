import base64
import io
import wave

import numpy as np

from scholar.live.pcm import duration_s, float_to_pcm16, pcm16_to_float, pcm_to_wav


def test_float_to_pcm16_clips_and_scales():
    pcm = float_to_pcm16(np.array([0.0, 1.0, -1.0, 2.0, -3.0], dtype=np.float32))
    ints = np.frombuffer(pcm, dtype="<i2")

    assert ints.tolist() == [0, 32767, -32767, 32767, -32767]


def test_pcm16_to_float_accepts_bytes_and_base64():
    raw = np.array([0, 16384, -32768], dtype="<i2").tobytes()

    from_bytes = pcm16_to_float(raw)
    from_text = pcm16_to_float(base64.b64encode(raw).decode("ascii"))

    assert from_bytes.dtype == np.float32
    assert from_bytes.tolist() == [0.0, 0.5, -1.0]
    assert np.array_equal(from_bytes, from_text)


def test_pcm16_to_float_ignores_trailing_partial_sample_and_shapes_channels():
    raw = np.array([1, 2, 3, 4], dtype="<i2").tobytes() + b"\x01"

    stereo = pcm16_to_float(raw, channels=2)

    assert stereo.shape == (2, 2)


def test_encode_then_decode_stays_close():
    samples = np.linspace(-0.9, 0.9, 64, dtype=np.float32)
    back = pcm16_to_float(float_to_pcm16(samples))
    assert np.max(np.abs(back - samples)) < 1e-3


def test_pcm_to_wav_header():
    pcm = float_to_pcm16(np.zeros(2400, dtype=np.float32))
    with wave.open(io.BytesIO(pcm_to_wav(pcm, 24000)), "rb") as wf:
        assert wf.getframerate() == 24000
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.getnframes() == 2400


def test_duration():
    assert duration_s(4096, 16000) == 0.256
    assert duration_s(24000, 24000) == 1.0
