from __future__ import annotations

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Protocol

from scholar.core.models import Citation, SourceType
from scholar.scraper.extract import ExtractedPage, extract_page

logger = logging.getLogger(__name__)

COLLEGE_DOMAIN = "sit.ac.in"

SITE_PAGES = {
    "home": "https://sit.ac.in/html/home.html",
    "mca": "https://sit.ac.in/html/department.php?deptid=15",
    "principal": "https://sit.ac.in/html/principal.html",
    "administration": "https://sit.ac.in/html/admin.html",
    "departments": "https://sit.ac.in/html/departments.html",
    "admissions": "https://sit.ac.in/html/admissions.html",
    "contact": "https://sit.ac.in/html/contact.html",
    "facilities": "https://sit.ac.in/html/facilities.html",
    "placement": "https://sit.ac.in/html/placement.html",
    "cse": "https://sit.ac.in/html/department.php?deptid=1",
    "ece": "https://sit.ac.in/html/department.php?deptid=2",
    "civil": "https://sit.ac.in/html/department.php?deptid=3",
    "mech": "https://sit.ac.in/html/department.php?deptid=4",
}

PAGE_KEYWORDS = {
    "mca": ("mca", "msc computer", "master of computer", "computer application"),
    "cse": ("cse", "computer science", "cs department"),
    "ece": ("ece", "electronics", "communication"),
    "civil": ("civil", "construction"),
    "mech": ("mechanical", "mech department"),
    "principal": ("principal", "director", "head of institution"),
    "administration": ("administration", "admin", "office", "registrar"),
    "admissions": ("admission", "apply", "fee", "fees", "eligibility", "criteria"),
    "placement": ("placement", "job", "career", "recruit", "company", "package", "salary"),
    "facilities": ("facility", "facilities", "hostel", "library", "lab", "canteen", "sports"),
    "contact": ("contact", "address", "phone", "email", "location", "reach"),
    "departments": ("department", "departments", "branch", "branches"),
}

COMMON_PAGES = ("home", "mca", "principal", "admissions")

UNAVAILABLE_MESSAGE = (
    "Unable to fetch data from SIT website. The website may be temporarily unavailable."
)

_FACULTY_RE = re.compile(r"hod|head|faculty|professor|teacher|staff")
_SYLLABUS_RE = re.compile(r"syllabus|curriculum|subject|course")


class PageFetcher(Protocol):
    def fetch(self, url: str) -> str:
        ...


@dataclass(frozen=True)
class ScrapeResult:
    success: bool
    url: str
    data: Optional[ExtractedPage] = None
    error: Optional[str] = None
    from_cache: bool = False


@dataclass(frozen=True)
class SiteSearch:
    content: str
    citations: list[Citation] = field(default_factory=list)
    relevant_pages: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _CachedPage:
    data: ExtractedPage
    scraped_at: float


def relevant_pages(query: str) -> list[str]:
    """Route a query to the college pages most likely to answer it."""
    q = query.lower()
    pages: list[str] = []

    for page, keywords in PAGE_KEYWORDS.items():
        if any(kw in q for kw in keywords):
            pages.append(SITE_PAGES[page])

    if _FACULTY_RE.search(q) and ("mca" in q or not pages):
        pages.append(SITE_PAGES["mca"])

    if _SYLLABUS_RE.search(q):
        pages.append(SITE_PAGES["mca"])

    if not pages:
        pages = [SITE_PAGES["home"], SITE_PAGES["mca"]]

    return list(dict.fromkeys(pages))


def format_for_context(results: Iterable[ScrapeResult]) -> str:
    parts: list[str] = []
    for result in results:
        if not result.success or result.data is None:
            continue
        data = result.data
        parts.append(f"\n--- SOURCE: {result.url} ---")
        parts.append(f"Title: {data.title}")
        if data.headings:
            parts.append(f"Sections: {', '.join(data.headings[:10])}")
        if data.tables:
            parts.append("\nTables Found:")
            for i, table in enumerate(data.tables[:3], start=1):
                parts.append(f"Table {i}:")
                parts.extend(f"  {row}" for row in table[:10])
        if data.emails:
            parts.append(f"Emails: {', '.join(data.emails)}")
        if data.phones:
            parts.append(f"Phone Numbers: {', '.join(data.phones)}")
        if data.names:
            parts.append(f"People Mentioned: {', '.join(data.names[:15])}")
        parts.append(f"\nContent Summary:\n{data.main_content[:3000]}")
    return "\n".join(parts)


def _snippet(content: str, query: str) -> str:
    snippet = content[:200]
    lowered = content.lower()
    for word in (w for w in query.lower().split(" ") if len(w) > 2):
        idx = lowered.find(word)
        if idx > 0:
            start = max(0, idx - 50)
            snippet = "..." + content[start : idx + 150] + "..."
            break
    return re.sub(r"\s+", " ", snippet).strip()


def build_citations(results: Iterable[ScrapeResult], query: str) -> list[Citation]:
    citations: list[Citation] = []
    for result in results:
        if not result.success or result.data is None:
            continue
        source = SourceType.COLLEGE_WEB if COLLEGE_DOMAIN in result.url else SourceType.EXTERNAL_WEB
        citations.append(
            Citation(
                title=result.data.title,
                source_type=source,
                url=result.url,
                snippet=_snippet(result.data.main_content, query),
            )
        )
    return citations


class PageScraper:
    """
    Scrapes college pages through a PageFetcher and keeps parsed results
    in memory for `ttl_s` seconds.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        ttl_s: float = 30 * 60,
        clock: Callable[[], float] = time.time,
        max_workers: int = 4,
    ) -> None:
        self._fetcher = fetcher
        self._ttl_s = ttl_s
        self._clock = clock
        self._max_workers = max_workers
        self._cache: dict[str, _CachedPage] = {}
        self._lock = threading.Lock()

    def scrape_page(self, url: str, force_refresh: bool = False) -> ScrapeResult:
        if not force_refresh:
            with self._lock:
                cached = self._cache.get(url)
            if cached is not None and self._clock() - cached.scraped_at < self._ttl_s:
                logger.debug("Cache hit: %s", url)
                return ScrapeResult(success=True, url=url, data=cached.data, from_cache=True)

        try:
            html = self._fetcher.fetch(url)
            data = extract_page(html, url)
        except Exception as e:
            logger.error("Failed to scrape %s: %s", url, e)
            return ScrapeResult(success=False, url=url, error=str(e))

        with self._lock:
            self._cache[url] = _CachedPage(data=data, scraped_at=self._clock())
        logger.info("Scraped %s (%d chars)", url, len(data.main_content))
        return ScrapeResult(success=True, url=url, data=data)

    def relevant_pages(self, query: str) -> list[str]:
        return relevant_pages(query)

    def _scrape_all(self, urls: list[str]) -> list[ScrapeResult]:
        if len(urls) <= 1:
            return [self.scrape_page(u) for u in urls]
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(urls))) as pool:
            return list(pool.map(self.scrape_page, urls))

    def search_site(self, query: str) -> SiteSearch:
        pages = relevant_pages(query)
        logger.info("Searching site for %r across %d pages", query, len(pages))

        ok = [r for r in self._scrape_all(pages) if r.success]
        if not ok:
            return SiteSearch(content=UNAVAILABLE_MESSAGE, relevant_pages=pages)

        return SiteSearch(
            content=format_for_context(ok),
            citations=build_citations(ok, query),
            relevant_pages=pages,
        )

    def prefetch(self, urls: Optional[Iterable[str]] = None) -> int:
        """Warm the cache. Returns how many pages were scraped successfully."""
        targets = list(urls) if urls is not None else [SITE_PAGES[p] for p in COMMON_PAGES]
        done = sum(1 for r in self._scrape_all(targets) if r.success)
        logger.info("Prefetch complete: %d/%d pages", done, len(targets))
        return done

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
        logger.info("Scraper cache cleared")

    def cache_stats(self) -> dict[str, object]:
        with self._lock:
            urls = list(self._cache)
        return {"size": len(urls), "urls": urls}
