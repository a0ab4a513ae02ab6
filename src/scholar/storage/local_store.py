from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Union

from scholar.core.models import Role, Thread

logger = logging.getLogger(__name__)

THREADS_KEY = "threads"
ROLE_KEY = "role"
THEME_KEY = "theme"
DATA_INITIALIZED_KEY = "data_initialized"


class LocalStore:
    """
    Small JSON key-value file for threads and user settings.
    Every write rewrites the whole file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.exception("Failed to load %s; starting empty", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._write(data)

    # Threads

    def get_threads(self) -> list[Thread]:
        raw = self.get(THREADS_KEY, [])
        threads: list[Thread] = []
        for item in raw:
            try:
                threads.append(Thread.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed thread record")
        return threads

    def save_thread(self, thread: Thread) -> None:
        with self._lock:
            data = self._load()
            threads = data.get(THREADS_KEY, [])
            snapshot = thread.to_dict()
            for i, existing in enumerate(threads):
                if existing.get("id") == thread.id:
                    threads[i] = snapshot
                    break
            else:
                threads.insert(0, snapshot)
            data[THREADS_KEY] = threads
            self._write(data)

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            data = self._load()
            data[THREADS_KEY] = [t for t in data.get(THREADS_KEY, []) if t.get("id") != thread_id]
            self._write(data)

    def clear_history(self) -> None:
        self.remove(THREADS_KEY)

    # Settings

    def get_role(self) -> Role:
        try:
            return Role(self.get(ROLE_KEY, Role.PUBLIC.value))
        except ValueError:
            return Role.PUBLIC

    def set_role(self, role: Role) -> None:
        self.set(ROLE_KEY, role.value)

    def get_theme(self) -> str:
        theme = self.get(THEME_KEY, "dark")
        return theme if theme in ("light", "dark") else "dark"

    def set_theme(self, theme: str) -> None:
        if theme not in ("light", "dark"):
            raise ValueError(f"Unknown theme: {theme}")
        self.set(THEME_KEY, theme)
