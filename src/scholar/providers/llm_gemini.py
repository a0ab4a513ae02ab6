from __future__ import annotations

from typing import Sequence

from google.genai import types

from scholar.core.interfaces import Generation, LLMProvider
from scholar.core.models import Citation, SourceType
from scholar.providers.gemini_client import GeminiClientHandle


def _grounding_citations(response: types.GenerateContentResponse) -> list[Citation]:
    candidates = response.candidates or []
    if not candidates or candidates[0].grounding_metadata is None:
        return []

    out: list[Citation] = []
    for chunk in candidates[0].grounding_metadata.grounding_chunks or []:
        web = chunk.web
        if web is None or not web.uri:
            continue
        out.append(
            Citation(
                title=web.title or "Web Result",
                url=web.uri,
                source_type=SourceType.EXTERNAL_WEB,
            )
        )
    return out


class GeminiLLM(LLMProvider):
    """
    Gemini text generation with optional Google Search grounding.
    """

    def __init__(self, handle: GeminiClientHandle) -> None:
        self._handle = handle

    def generate(
        self,
        system_instruction: str,
        history: Sequence[dict[str, str]],
        query: str,
        web_search: bool = False,
    ) -> Generation:
        query = (query or "").strip()
        if not query:
            raise ValueError("GeminiLLM.generate received empty query.")

        contents = [
            types.Content(
                role="user" if h["role"] == "user" else "model",
                parts=[types.Part(text=h["content"])],
            )
            for h in history
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=query)]))

        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            tools=[types.Tool(google_search=types.GoogleSearch())] if web_search else None,
        )

        resp = self._handle.get().models.generate_content(
            model=self._handle.config.model,
            contents=contents,
            config=config,
        )
        return Generation(text=resp.text or "", grounding=_grounding_citations(resp))

    def complete(self, prompt: str, fast: bool = False) -> str:
        cfg = self._handle.config
        resp = self._handle.get().models.generate_content(
            model=cfg.fast_model if fast else cfg.model,
            contents=prompt,
        )
        return (resp.text or "").strip()

    def reset(self) -> None:
        self._handle.reset()
