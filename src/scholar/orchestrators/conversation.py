from __future__ import annotations

import logging
import threading
from typing import Optional

from scholar.core.models import Message, Role, Thread, now_ms
from scholar.orchestrators.answer_agent import AnswerAgent, AnswerResult, ProgressCallback
from scholar.storage.database import DocumentDatabase
from scholar.storage.local_store import LocalStore

logger = logging.getLogger(__name__)


class ChatService:
    """Threads on top of AnswerAgent: append, answer, title, persist."""

    def __init__(self, agent: AnswerAgent, database: DocumentDatabase, local_store: LocalStore) -> None:
        self._agent = agent
        self._database = database
        self._store = local_store
        self.last_result: Optional[AnswerResult] = None

    def new_thread(self) -> Thread:
        thread = Thread()
        self._store.save_thread(thread)
        return thread

    def ask(
        self,
        thread: Thread,
        query: str,
        role: Role,
        web_search_enabled: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Message:
        query = (query or "").strip()
        if not query:
            raise ValueError("ChatService.ask received empty query.")

        history = thread.history()
        first_exchange = not thread.messages
        thread.messages.append(Message(role="user", content=query))

        result = self._agent.generate_answer(
            query,
            history,
            role,
            self._database.get_all(),
            web_search_enabled=web_search_enabled,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )
        self.last_result = result

        reply = Message(
            role="model",
            content=result.text,
            citations=list(result.citations),
            needs_web_search_approval=result.needs_web_search_approval,
        )
        thread.messages.append(reply)

        if first_exchange and not result.failed:
            thread.title = self._agent.generate_chat_title(query, result.text)
        thread.updated_at = now_ms()
        self._store.save_thread(thread)
        logger.info("Thread %s now has %d messages", thread.id, len(thread.messages))
        return reply
