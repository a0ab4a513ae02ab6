from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Sequence

from openai import OpenAI

from scholar.core.errors import ConfigurationError, ScholarError
from scholar.core.interfaces import Generation, LLMProvider


class OpenAIProviderError(ScholarError):
    pass


@dataclass(frozen=True)
class OpenAILLMConfig:
    api_key: str
    model: str = "gpt-4o-mini"
    fast_model: str = "gpt-4o-mini"
    temperature: float = 0.3

    @staticmethod
    def from_env() -> "OpenAILLMConfig":
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY in environment.")

        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        fast_model = os.getenv("OPENAI_FAST_MODEL", model).strip()
        temperature = float(os.getenv("OPENAI_TEMPERATURE", "0.3"))
        return OpenAILLMConfig(
            api_key=api_key, model=model, fast_model=fast_model, temperature=temperature
        )


class OpenAILLM(LLMProvider):
    """
    OpenAI chat completions as an alternative answer backend.
    Has no search grounding, so `web_search` is ignored.
    """

    def __init__(self, config: OpenAILLMConfig, timeout_s: float = 60.0) -> None:
        self._cfg = config
        self._timeout_s = timeout_s
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self._cfg.api_key, timeout=self._timeout_s)
        return self._client

    def _chat(self, messages: list[dict], model: str) -> str:
        resp = self._get_client().chat.completions.create(
            model=model,
            messages=messages,
            temperature=self._cfg.temperature,
        )
        text = (resp.choices[0].message.content or "").strip()
        if not text:
            raise OpenAIProviderError("OpenAI returned empty response text.")
        return text

    def generate(
        self,
        system_instruction: str,
        history: Sequence[dict[str, str]],
        query: str,
        web_search: bool = False,
    ) -> Generation:
        query = (query or "").strip()
        if not query:
            raise ValueError("OpenAILLM.generate received empty query.")

        messages: list[dict] = [{"role": "system", "content": system_instruction}]
        for h in history:
            role = "user" if h["role"] == "user" else "assistant"
            messages.append({"role": role, "content": h["content"]})
        messages.append({"role": "user", "content": query})

        return Generation(text=self._chat(messages, self._cfg.model))

    def complete(self, prompt: str, fast: bool = False) -> str:
        model = self._cfg.fast_model if fast else self._cfg.model
        return self._chat([{"role": "user", "content": prompt}], model)

    def reset(self) -> None:
        self._client = None
