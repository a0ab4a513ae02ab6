from __future__ import annotations

from typing import Iterable

from scholar.core.models import Document, Role


def query_tokens(query: str) -> list[str]:
    """Lower-cased whitespace tokens longer than two characters."""
    return [t for t in (query or "").lower().split() if len(t) > 2]


def matches(document: Document, tokens: Iterable[str]) -> bool:
    haystack = f"{document.title} {document.content}".lower()
    return any(t in haystack for t in tokens)


def filter_documents(query: str, documents: Iterable[Document], role: Role = Role.ADMIN) -> list[Document]:
    """
    Plain boolean keyword filter: no ranking, no stemming. Restricted
    documents are never returned to the public role.
    """
    tokens = query_tokens(query)
    if not tokens:
        return []
    return [
        d
        for d in documents
        if (role.is_privileged or not d.is_restricted) and matches(d, tokens)
    ]
