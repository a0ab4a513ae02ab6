from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Role(str, Enum):
    PUBLIC = "PUBLIC"
    AUTHORIZED = "AUTHORIZED"  # Student/Faculty
    ADMIN = "ADMIN"

    @property
    def is_privileged(self) -> bool:
        return self is not Role.PUBLIC


class SourceType(str, Enum):
    INTERNAL = "Internal Records"
    COLLEGE_WEB = "College Website"
    EXTERNAL_WEB = "External Web Search"


DOCUMENT_CATEGORIES = ("student_list", "faculty_file", "curriculum", "other")


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Citation:
    """A source reference attached to an answer."""

    title: str
    source_type: SourceType
    url: Optional[str] = None
    snippet: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "source_type": self.source_type.value,
            "url": self.url,
            "snippet": self.snippet,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Citation":
        return Citation(
            title=data["title"],
            source_type=SourceType(data["source_type"]),
            url=data.get("url"),
            snippet=data.get("snippet"),
        )


@dataclass(frozen=True)
class Document:
    """A locally stored plain-text record."""

    id: str
    title: str
    content: str
    category: str = "other"
    is_restricted: bool = False
    uploaded_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "category": self.category,
            "is_restricted": self.is_restricted,
            "uploaded_at": self.uploaded_at,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Document":
        return Document(
            id=data["id"],
            title=data["title"],
            content=data["content"],
            category=data.get("category", "other"),
            is_restricted=bool(data.get("is_restricted", False)),
            uploaded_at=data.get("uploaded_at", ""),
        )


@dataclass(frozen=True)
class StoredFile:
    id: str
    name: str
    type: str
    size: int
    content: str
    uploaded_at: str


@dataclass
class Message:
    role: str  # "user" or "model"
    content: str
    citations: list[Citation] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("msg-"))
    timestamp: int = field(default_factory=now_ms)
    needs_web_search_approval: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "citations": [c.to_dict() for c in self.citations],
            "timestamp": self.timestamp,
            "needs_web_search_approval": self.needs_web_search_approval,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Message":
        return Message(
            id=data["id"],
            role=data["role"],
            content=data["content"],
            citations=[Citation.from_dict(c) for c in data.get("citations") or []],
            timestamp=int(data.get("timestamp", 0)),
            needs_web_search_approval=bool(data.get("needs_web_search_approval", False)),
        )


@dataclass
class Thread:
    """An append-only conversation log; saved as a whole snapshot."""

    title: str = "New Search"
    messages: list[Message] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("thread-"))
    updated_at: int = field(default_factory=now_ms)

    def history(self) -> list[dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Thread":
        return Thread(
            id=data["id"],
            title=data.get("title", "New Search"),
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            updated_at=int(data.get("updated_at", 0)),
        )
