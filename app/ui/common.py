from __future__ import annotations

import threading

import streamlit as st
from dotenv import load_dotenv

from scholar.core.config import AssistantConfig
from scholar.core.factory import (
    build_answer_agent,
    build_scraper,
    get_stt_provider,
    get_tts_provider,
)
from scholar.core.interfaces import STTProvider, TTSProvider
from scholar.core.log import configure_logging
from scholar.core.models import Citation, Role, SourceType
from scholar.orchestrators.conversation import ChatService
from scholar.providers.gemini_client import GeminiClientHandle
from scholar.scraper.service import PageScraper
from scholar.storage.database import DocumentDatabase
from scholar.storage.local_store import LocalStore
from scholar.storage.seed import initialize_data

load_dotenv()
configure_logging()

ROLE_LABELS = {
    Role.PUBLIC: "Public",
    Role.AUTHORIZED: "Student / Faculty",
    Role.ADMIN: "Admin",
}

_SOURCE_ICONS = {
    SourceType.INTERNAL: "🗂️",
    SourceType.COLLEGE_WEB: "🏫",
    SourceType.EXTERNAL_WEB: "🌐",
}


@st.cache_resource
def get_config() -> AssistantConfig:
    return AssistantConfig.from_env()


@st.cache_resource
def get_stores() -> tuple[DocumentDatabase, LocalStore]:
    cfg = get_config()
    database = DocumentDatabase(cfg.data_dir / "documents.db")
    local_store = LocalStore(cfg.data_dir / "settings.json")
    initialize_data(database, local_store)
    return database, local_store


@st.cache_resource
def get_handle() -> GeminiClientHandle:
    return GeminiClientHandle()


@st.cache_resource
def get_scraper() -> PageScraper:
    """One page cache per server; common pages are warmed in the background."""
    scraper = build_scraper()
    threading.Thread(target=scraper.prefetch, name="scraper-prefetch", daemon=True).start()
    return scraper


@st.cache_resource
def get_chat_service(llm_name: str) -> ChatService:
    database, local_store = get_stores()
    cfg = get_config()
    scraper = get_scraper() if cfg.site_search else None
    agent = build_answer_agent(llm_name, handle=get_handle(), config=cfg, scraper=scraper)
    return ChatService(agent, database, local_store)


@st.cache_resource
def get_speech() -> tuple[STTProvider, TTSProvider]:
    handle = get_handle()
    cfg = get_config()
    return get_stt_provider("gemini", handle, cfg), get_tts_provider("gemini", handle, cfg)


def render_role_sidebar() -> Role:
    """
    Sidebar widget:
      - Role selector, persisted in the local store
      - Returns the active role
    """
    _, local_store = get_stores()
    current = local_store.get_role()
    roles = list(ROLE_LABELS)

    st.subheader("Access Level")
    chosen = st.selectbox(
        "Role",
        roles,
        index=roles.index(current),
        format_func=lambda r: ROLE_LABELS[r],
        help="Restricted internal records are hidden from the Public role.",
    )
    if chosen != current:
        local_store.set_role(chosen)
    if chosen.is_privileged:
        st.caption("Restricted internal records are visible.")
    return chosen


def render_citations(citations: list[Citation]) -> None:
    if not citations:
        return
    with st.expander(f"Sources ({len(citations)})"):
        for c in citations:
            icon = _SOURCE_ICONS.get(c.source_type, "📄")
            title = f"[{c.title}]({c.url})" if c.url else f"**{c.title}**"
            st.markdown(f"{icon} {title} · _{c.source_type.value}_")
            if c.snippet:
                st.caption(c.snippet)


_THEME_CSS = {
    "light": """
<style>
[data-testid="stAppViewContainer"], [data-testid="stHeader"] {
    background-color: #ffffff; color: #1f2937;
}
[data-testid="stSidebar"] { background-color: #f3f4f6; }
</style>
""",
    "dark": """
<style>
[data-testid="stAppViewContainer"], [data-testid="stHeader"] {
    background-color: #0e1117; color: #e5e7eb;
}
[data-testid="stSidebar"] { background-color: #161b22; }
</style>
""",
}


def render_theme_toggle() -> str:
    """Sidebar light/dark switch, persisted in the local store and applied with CSS."""
    _, local_store = get_stores()
    dark = st.toggle("Dark mode", value=local_store.get_theme() == "dark")
    theme = "dark" if dark else "light"
    if theme != local_store.get_theme():
        local_store.set_theme(theme)
    st.markdown(_THEME_CSS[theme], unsafe_allow_html=True)
    return theme
