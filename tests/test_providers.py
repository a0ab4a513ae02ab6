import io
import wave
from types import SimpleNamespace

import pytest

from scholar.core.config import AssistantConfig, GeminiConfig, ScraperConfig
from scholar.core.errors import ConfigurationError
from scholar.core.factory import (
    build_answer_agent,
    build_scraper,
    get_llm_provider,
    get_stt_provider,
    get_tts_provider,
)
from scholar.core.interfaces import LiveEventKind
from scholar.core.models import SourceType
from scholar.providers.gemini_client import GeminiClientHandle
from scholar.providers.live_gemini import events_from_message
from scholar.providers.llm_gemini import GeminiLLM, _grounding_citations
from scholar.providers.llm_openai import OpenAILLM, OpenAILLMConfig, OpenAIProviderError
from scholar.providers.stt_gemini import TRANSCRIBE_PROMPT, GeminiSTT
from scholar.providers.tts_gemini import GeminiTTS, clean_for_speech, split_for_speech


class FakeModels:
    def __init__(self, respond):
        self.respond = respond
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.respond(kwargs)


class FakeHandle:
    def __init__(self, respond):
        self.config = GeminiConfig(api_key="test-key")
        self.models = FakeModels(respond)
        self.resets = 0

    def get(self):
        return SimpleNamespace(models=self.models)

    def reset(self):
        self.resets += 1


def _audio_response(pcm=b"\x00\x00" * 10):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=pcm))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def test_grounding_chunks_become_external_citations():
    web = SimpleNamespace(uri="https://news.example/a", title=None)
    resp = SimpleNamespace(
        candidates=[
            SimpleNamespace(
                grounding_metadata=SimpleNamespace(
                    grounding_chunks=[SimpleNamespace(web=web), SimpleNamespace(web=None)]
                )
            )
        ]
    )

    citations = _grounding_citations(resp)

    assert len(citations) == 1
    assert citations[0].title == "Web Result"
    assert citations[0].source_type is SourceType.EXTERNAL_WEB


def test_gemini_llm_maps_history_roles_and_model():
    handle = FakeHandle(lambda kw: SimpleNamespace(text="The HOD is ...", candidates=[]))
    llm = GeminiLLM(handle)

    gen = llm.generate(
        "system",
        [{"role": "user", "content": "hi"}, {"role": "model", "content": "hello"}],
        "Who is the HOD?",
        web_search=True,
    )

    call = handle.models.calls[0]
    assert gen.text == "The HOD is ..."
    assert gen.grounding == []
    assert call["model"] == "gemini-2.5-flash"
    assert [c.role for c in call["contents"]] == ["user", "model", "user"]
    assert call["config"].tools


def test_gemini_llm_complete_uses_fast_model_and_reset_drops_client():
    handle = FakeHandle(lambda kw: SimpleNamespace(text="  Hostel Fees  "))
    llm = GeminiLLM(handle)

    assert llm.complete("title please", fast=True) == "Hostel Fees"
    assert handle.models.calls[0]["model"] == GeminiConfig(api_key="x").fast_model

    llm.reset()
    assert handle.resets == 1


def test_gemini_llm_rejects_empty_query():
    with pytest.raises(ValueError):
        GeminiLLM(FakeHandle(lambda kw: None)).generate("s", [], "   ")


def test_stt_sends_prompt_and_returns_text():
    handle = FakeHandle(lambda kw: SimpleNamespace(text=" who is the hod \n"))

    text = GeminiSTT(handle, AssistantConfig()).transcribe(b"RIFF....", mime_type="audio/wav")

    assert text == "who is the hod"
    assert TRANSCRIBE_PROMPT in handle.models.calls[0]["contents"]


def test_stt_failure_returns_empty_string():
    def boom(kw):
        raise ValueError("bad audio")

    assert GeminiSTT(FakeHandle(boom), AssistantConfig()).transcribe(b"abc") == ""


def test_stt_rejects_empty_audio():
    with pytest.raises(ValueError):
        GeminiSTT(FakeHandle(lambda kw: None), AssistantConfig()).transcribe(b"")


def test_clean_for_speech_strips_markdown_and_caps():
    text = "## Fees\n**Hostel** | 90000 [Source: https://sit.ac.in]"
    assert clean_for_speech(text) == "Fees\nHostel ,  90000"
    assert len(clean_for_speech("a" * 5000, 1500)) == 1500


def test_split_for_speech_groups_sentences_under_limit():
    text = " ".join(f"Sentence number {i} is here." for i in range(40))

    chunks = split_for_speech(text)

    assert 1 < len(chunks) <= 10
    assert all(len(c) < 200 for c in chunks)


def test_tts_returns_wav():
    handle = FakeHandle(lambda kw: _audio_response())

    wav = GeminiTTS(handle, AssistantConfig()).synthesize("**Hello** there")

    with wave.open(io.BytesIO(wav), "rb") as wf:
        assert wf.getframerate() == 24000
        assert wf.getnframes() == 10
    assert handle.models.calls[0]["contents"] == "Hello there"


def test_tts_chunks_skip_failures():
    seen = []

    def respond(kw):
        seen.append(kw["contents"])
        if len(seen) == 2:
            raise RuntimeError("chunk failed")
        return _audio_response()

    tts = GeminiTTS(FakeHandle(respond), AssistantConfig())
    text = "A" * 150 + ". " + "B" * 150 + ". " + "C" * 150 + "."

    out = list(tts.synthesize_chunks(text))

    assert [i for _, i, _ in out] == [0, 2]
    assert out[-1][2] is True


def test_live_message_events():
    part = SimpleNamespace(inline_data=SimpleNamespace(data=b"\x01\x00"))
    msg = SimpleNamespace(
        server_content=SimpleNamespace(
            model_turn=SimpleNamespace(parts=[part, SimpleNamespace(inline_data=None)]),
            interrupted=True,
            turn_complete=True,
        )
    )

    events = events_from_message(msg)

    assert [e.kind for e in events] == [
        LiveEventKind.AUDIO,
        LiveEventKind.INTERRUPTED,
        LiveEventKind.TURN_COMPLETE,
    ]
    assert events[0].audio == b"\x01\x00"
    assert events_from_message(SimpleNamespace(server_content=None)) == []


def test_live_message_base64_audio_is_decoded():
    part = SimpleNamespace(inline_data=SimpleNamespace(data="AQA="))
    msg = SimpleNamespace(
        server_content=SimpleNamespace(
            model_turn=SimpleNamespace(parts=[part]), interrupted=False, turn_complete=False
        )
    )

    assert events_from_message(msg)[0].audio == b"\x01\x00"


class FakeCompletions:
    def __init__(self, text):
        self.text = text
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _openai(text):
    llm = OpenAILLM(OpenAILLMConfig(api_key="sk-test", fast_model="gpt-fast"))
    completions = FakeCompletions(text)
    llm._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return llm, completions


def test_openai_generate_builds_messages():
    llm, completions = _openai("answer")

    gen = llm.generate("system", [{"role": "model", "content": "earlier"}], "q")

    assert gen.text == "answer"
    assert gen.grounding == []
    assert [m["role"] for m in completions.calls[0]["messages"]] == ["system", "assistant", "user"]


def test_openai_complete_fast_and_empty_response():
    llm, completions = _openai("Title")
    assert llm.complete("p", fast=True) == "Title"
    assert completions.calls[0]["model"] == "gpt-fast"

    empty, _ = _openai("  ")
    with pytest.raises(OpenAIProviderError):
        empty.complete("p")


def test_factory_names():
    handle = FakeHandle(lambda kw: None)

    assert isinstance(get_llm_provider("Gemini", handle), GeminiLLM)
    assert isinstance(get_stt_provider("gemini", handle, AssistantConfig()), GeminiSTT)
    assert isinstance(get_tts_provider("gemini", handle, AssistantConfig()), GeminiTTS)
    with pytest.raises(ValueError):
        get_llm_provider("unknown")
    with pytest.raises(ValueError):
        get_tts_provider("unknown")


def test_answer_agent_shares_the_given_scraper():
    handle = FakeHandle(lambda kw: None)
    scraper = build_scraper(ScraperConfig())

    first = build_answer_agent("gemini", handle, AssistantConfig(site_search=True), scraper=scraper)
    second = build_answer_agent("gemini", handle, AssistantConfig(site_search=True), scraper=scraper)
    offline = build_answer_agent("gemini", handle, AssistantConfig(site_search=False), scraper=scraper)

    assert first._scraper is scraper
    assert second._scraper is scraper
    assert offline._scraper is None


def test_client_handle_requires_key():
    def missing():
        raise ConfigurationError("GEMINI_API_KEY is not configured")

    handle = GeminiClientHandle(loader=missing)
    with pytest.raises(ConfigurationError):
        handle.get()


def test_client_handle_caches_and_resets():
    handle = GeminiClientHandle(GeminiConfig(api_key="test-key"))

    first = handle.get()
    assert handle.get() is first

    handle.reset()
    assert handle.get() is not first
