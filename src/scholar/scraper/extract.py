from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from scholar.core.errors import ExtractionError

MAX_CONTENT_CHARS = 10000
MAX_LINKS = 50
MAX_NAMES = 30

_STRIP_SELECTORS = "script, style, nav, header, footer, .navigation, #menu, .menu"

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_RE = re.compile(r"(?:\+91[-.\s]?)?(?:\d{10}|\d{5}[-.\s]?\d{5}|\d{4}[-.\s]?\d{6})")
NAME_RE = re.compile(r"(?:(?:Dr|Prof|Mr|Mrs|Ms)\.\s*)?[A-Z][a-z]+(?: [A-Z][a-z]+)+")


@dataclass(frozen=True)
class Link:
    text: str
    href: str


@dataclass(frozen=True)
class ExtractedPage:
    title: str
    main_content: str
    tables: list[list[str]] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    phones: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    headings: list[str] = field(default_factory=list)


def _unique(items) -> list[str]:
    return list(dict.fromkeys(items))


def _text(node) -> str:
    return node.get_text(" ", strip=True)


def extract_page(html: str, url: str) -> ExtractedPage:
    """Parse page markup into the structured fields used for prompt context."""
    if not html or not html.strip():
        raise ExtractionError(f"Empty response from {url}")
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    h1 = soup.find("h1")
    title = (title_tag and _text(title_tag)) or (h1 and _text(h1)) or "Untitled Page"

    tables: list[list[str]] = []
    for table in soup.find_all("table"):
        rows = []
        for tr in table.find_all("tr"):
            cells = [_text(c) for c in tr.find_all(["td", "th"])]
            row = " | ".join(c for c in cells if c)
            if row:
                rows.append(row)
        if rows:
            tables.append(rows)

    links: list[Link] = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        text = _text(a)
        if not href or href.startswith("#") or not text:
            continue
        links.append(Link(text=text, href=urljoin(url, href)))

    headings = [
        t for t in (_text(h) for h in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])) if len(t) > 2
    ]

    for el in soup.select(_STRIP_SELECTORS):
        el.decompose()
    body = soup.body or soup
    main_content = re.sub(r"\s+", " ", body.get_text(" ")).strip()

    names = [n.strip() for n in NAME_RE.findall(main_content)]
    names = _unique(n for n in names if 5 < len(n) < 50)

    return ExtractedPage(
        title=title,
        main_content=main_content[:MAX_CONTENT_CHARS],
        tables=tables,
        links=links[:MAX_LINKS],
        emails=_unique(EMAIL_RE.findall(main_content)),
        phones=_unique(PHONE_RE.findall(main_content)),
        names=names[:MAX_NAMES],
        headings=headings,
    )
