from __future__ import annotations

import logging
import mimetypes
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from scholar.core.models import Document, StoredFile, new_id
from scholar.storage.search import filter_documents

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'other',
    is_restricted INTEGER NOT NULL DEFAULT 0,
    uploaded_at TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_documents_category ON documents(category);
CREATE INDEX IF NOT EXISTS idx_documents_title ON documents(title);

CREATE TABLE IF NOT EXISTS files (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    size INTEGER NOT NULL,
    content TEXT NOT NULL,
    uploaded_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_files_type ON files(type);
CREATE INDEX IF NOT EXISTS idx_files_uploaded_at ON files(uploaded_at);
"""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        title=row["title"],
        content=row["content"],
        category=row["category"],
        is_restricted=bool(row["is_restricted"]),
        uploaded_at=row["uploaded_at"],
    )


def _row_to_file(row: sqlite3.Row) -> StoredFile:
    return StoredFile(
        id=row["id"],
        name=row["name"],
        type=row["type"],
        size=row["size"],
        content=row["content"],
        uploaded_at=row["uploaded_at"],
    )


class DocumentDatabase:
    """
    SQLite-backed store for documents and uploaded text files.
    Writes replace whole records; the last writer wins.
    """

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            self._conn.executescript(_SCHEMA)

    def close(self) -> None:
        self._conn.close()

    # Documents

    def save(self, doc: Document) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO documents "
                "(id, title, content, category, is_restricted, uploaded_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    doc.id,
                    doc.title,
                    doc.content,
                    doc.category,
                    int(doc.is_restricted),
                    doc.uploaded_at or _utc_now(),
                ),
            )

    def get(self, doc_id: str) -> Optional[Document]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM documents WHERE id = ?", (doc_id,)).fetchone()
        return _row_to_document(row) if row else None

    def get_all(self, category: Optional[str] = None) -> list[Document]:
        with self._lock:
            if category:
                rows = self._conn.execute(
                    "SELECT * FROM documents WHERE category = ? ORDER BY rowid", (category,)
                ).fetchall()
            else:
                rows = self._conn.execute("SELECT * FROM documents ORDER BY rowid").fetchall()
        return [_row_to_document(r) for r in rows]

    def delete(self, doc_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,))

    def search(self, query: str) -> list[Document]:
        return filter_documents(query, self.get_all())

    # Files

    def save_file(self, stored: StoredFile) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO files (id, name, type, size, content, uploaded_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    stored.id,
                    stored.name,
                    stored.type,
                    stored.size,
                    stored.content,
                    stored.uploaded_at,
                ),
            )

    def get_file(self, file_id: str) -> Optional[StoredFile]:
        with self._lock:
            row = self._conn.execute("SELECT * FROM files WHERE id = ?", (file_id,)).fetchone()
        return _row_to_file(row) if row else None

    def get_all_files(self) -> list[StoredFile]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM files ORDER BY uploaded_at DESC").fetchall()
        return [_row_to_file(r) for r in rows]

    def delete_file(self, file_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM files WHERE id = ?", (file_id,))

    def upload_text(
        self,
        name: str,
        content: str,
        mime_type: str = "text/plain",
        is_restricted: bool = False,
    ) -> StoredFile:
        """Store an uploaded text file and index it as a searchable document."""
        stored = StoredFile(
            id=new_id("file-"),
            name=name,
            type=mime_type,
            size=len(content.encode("utf-8")),
            content=content,
            uploaded_at=_utc_now(),
        )
        self.save_file(stored)
        self.save(
            Document(
                id=f"doc-{stored.id}",
                title=name,
                content=content,
                category="other",
                is_restricted=is_restricted,
                uploaded_at=stored.uploaded_at,
            )
        )
        logger.info("Uploaded %s (%d bytes)", name, stored.size)
        return stored

    def upload_file(self, path: Union[str, Path], is_restricted: bool = False) -> StoredFile:
        path = Path(path)
        mime_type = mimetypes.guess_type(path.name)[0] or "text/plain"
        content = path.read_text(encoding="utf-8", errors="replace")
        return self.upload_text(path.name, content, mime_type, is_restricted)

    # Maintenance

    def clear_all(self) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM documents")
            self._conn.execute("DELETE FROM files")

    def size(self) -> dict[str, int]:
        with self._lock:
            docs = self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
            files = self._conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]
        return {"documents": docs, "files": files}
