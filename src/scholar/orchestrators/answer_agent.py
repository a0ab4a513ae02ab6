from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Protocol, Sequence

from scholar.core.config import AssistantConfig
from scholar.core.errors import ErrorKind, RequestCancelled, classify_error
from scholar.core.interfaces import Generation, LLMProvider
from scholar.core.metrics import Timer
from scholar.core.models import Citation, Document, Role, SourceType
from scholar.core.retry import with_retry
from scholar.scraper.service import SiteSearch
from scholar.storage.search import filter_documents

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

CANCELLED_MESSAGE = "Request cancelled."
DEFAULT_TITLE = "Search Session"
INTERNAL_SNIPPET = "Verified Internal Record"
SEARCH_ERROR_HEADER = "⚠️ **Search Error**\n\n"

SEARCH_ENGINE_INSTRUCTION = """
You are SIT Scholar, an ACADEMIC SEARCH ENGINE for Siddaganga Institute of Technology (SIT), Tumkur.

## CRITICAL: YOU ARE A SEARCH ENGINE, NOT A CHATBOT

You MUST:
1. ONLY answer based on the SCRAPED WEB DATA and INTERNAL RECORDS provided below
2. NEVER fabricate or hallucinate information
3. ALWAYS cite the exact source URL for every fact taken from the web
4. If data is not in the provided content, say "This information was not found on the SIT website"
5. Present data in structured formats (tables, lists)

## MANDATORY CITATION FORMAT
Every factual statement from the web MUST end with [Source: URL]
Example: "The HOD of MCA is Dr. Premasudha B G [Source: https://sit.ac.in/html/department.php?deptid=15]"

## DATA PRESENTATION RULES
1. Use MARKDOWN TABLES for lists of people, courses, fees
2. Bold important names, titles, dates
3. Start with a direct answer, then provide details
4. Include contact information when available

## DEPARTMENT ASSUMPTION
If no department is specified, assume MCA (Master of Computer Applications)

## RESPONSE STRUCTURE
1. **Direct Answer** (1-2 sentences)
2. **Detailed Information** (tables/lists from the provided data)
3. **Source Citations** (list all URLs used)

## PRIVACY
- PUBLIC users: Hide USNs, personal emails, phone numbers
- ADMIN users: Show all information
""".strip()

TITLE_PROMPT = (
    'Generate a short, professional title (max 4-5 words) for this search query: "{query}". '
    "Return ONLY the title text."
)

_ERROR_TEXT = {
    ErrorKind.RATE_LIMITED: "The search service is busy. Please wait a moment and try again.",
    ErrorKind.AUTHENTICATION: "Configuration error. Please contact the administrator.",
    ErrorKind.CONFIGURATION: "Configuration error. Please contact the administrator.",
    ErrorKind.NETWORK: "Network error. Please check your internet connection.",
}


class SiteSearcher(Protocol):
    def search_site(self, query: str) -> SiteSearch:
        ...


@dataclass(frozen=True)
class AnswerResult:
    text: str
    citations: list[Citation] = field(default_factory=list)
    needs_web_search_approval: bool = False
    scraped_pages: list[str] = field(default_factory=list)
    metrics: dict[str, float] = field(default_factory=dict)
    failed: bool = False


def user_error_message(exc: BaseException) -> str:
    """Render a failure as the markdown notice shown in place of an answer."""
    text = _ERROR_TEXT.get(classify_error(exc))
    if text is None:
        text = f"{str(exc) or 'An unexpected error occurred.'}\n\nPlease try again."
    return SEARCH_ERROR_HEADER + text


def build_system_instruction(
    role: Role,
    site: Optional[SiteSearch],
    documents: Sequence[Document],
) -> str:
    parts = [SEARCH_ENGINE_INSTRUCTION, "", f"CURRENT USER ROLE: {role.value}", ""]

    parts.append("## SCRAPED WEB DATA FROM SIT WEBSITE:")
    parts.append((site.content if site else "") or "No data could be scraped from the website.")

    if documents:
        parts.append("")
        parts.append("## INTERNAL RECORDS:")
        parts.append("\n\n".join(f"[Document: {d.title}]\n{d.content}" for d in documents))

    if site and site.relevant_pages:
        parts.append("")
        parts.append("## SCRAPED SOURCES:")
        parts.extend(f"- {url}" for url in site.relevant_pages)

    return "\n".join(parts)


def merge_citations(
    scraped: Iterable[Citation],
    grounding: Iterable[Citation],
    documents: Iterable[Document],
) -> list[Citation]:
    citations = list(scraped)
    for c in grounding:
        if not any(existing.url == c.url for existing in citations):
            citations.append(c)
    for doc in documents:
        if not any(existing.title == doc.title for existing in citations):
            citations.append(
                Citation(title=doc.title, source_type=SourceType.INTERNAL, snippet=INTERNAL_SNIPPET)
            )
    return citations


class AnswerAgent:
    """
    Answer pipeline: site search -> internal records -> LLM -> citations.

    Never raises; failures come back as a user-facing message in
    `AnswerResult.text` with no citations.
    """

    def __init__(
        self,
        llm: LLMProvider,
        scraper: Optional[SiteSearcher] = None,
        config: AssistantConfig = AssistantConfig(),
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._llm = llm
        self._scraper = scraper
        self._cfg = config
        self._sleep = sleep

    def _retry_kwargs(self, cancel_event: Optional[threading.Event]) -> dict:
        kwargs = dict(
            base_delay=self._cfg.retry_base_delay_s,
            rate_limit_floor=self._cfg.rate_limit_floor_s,
            on_network_error=self._llm.reset,
            cancel_event=cancel_event,
        )
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return kwargs

    def generate_answer(
        self,
        query: str,
        history: Sequence[dict[str, str]],
        role: Role,
        documents: Iterable[Document],
        web_search_enabled: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AnswerResult:
        timer = Timer()
        progress = on_progress or (lambda _status: None)

        def _check_cancel() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise RequestCancelled(CANCELLED_MESSAGE)

        try:
            # Step 1: college website
            site: Optional[SiteSearch] = None
            if self._scraper is not None:
                progress("Searching college website...")
                site = timer.measure("scrape_ms", lambda: self._scraper.search_site(query))
                logger.info("Scraped data from: %s", site.relevant_pages)
            _check_cancel()

            # Step 2: internal records
            progress("Checking internal records...")
            matched = timer.measure(
                "records_ms", lambda: filter_documents(query, documents, role)
            )

            # Step 3: generation
            system_instruction = build_system_instruction(role, site, matched)
            window = list(history)[-self._cfg.history_window :] if self._cfg.history_window else []
            progress("Generating response...")
            _check_cancel()

            generation: Generation = timer.measure(
                "llm_ms",
                lambda: with_retry(
                    lambda: self._llm.generate(
                        system_instruction, window, query, web_search=web_search_enabled
                    ),
                    self._cfg.answer_max_attempts,
                    **self._retry_kwargs(cancel_event),
                ),
            )
        except RequestCancelled:
            logger.info("Answer cancelled for %r", query)
            return AnswerResult(text=CANCELLED_MESSAGE, metrics=timer.summary(), failed=True)
        except Exception as e:
            logger.error("Search engine error: %s", e)
            return AnswerResult(text=user_error_message(e), metrics=timer.summary(), failed=True)

        citations = merge_citations(
            site.citations if site else [], generation.grounding, matched
        )
        return AnswerResult(
            text=generation.text or "",
            citations=citations,
            needs_web_search_approval=False,
            scraped_pages=list(site.relevant_pages) if site else [],
            metrics=timer.summary(),
        )

    def generate_chat_title(self, first_message: str, first_response: str = "") -> str:
        prompt = TITLE_PROMPT.format(query=first_message)
        try:
            title = with_retry(
                lambda: self._llm.complete(prompt, fast=True),
                self._cfg.title_max_attempts,
                **self._retry_kwargs(None),
            )
        except Exception as e:
            logger.warning("Title generation failed: %s", e)
            return DEFAULT_TITLE

        title = " ".join((title or "").strip().strip('"').split()[:5])
        return title or DEFAULT_TITLE
