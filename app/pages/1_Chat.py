from __future__ import annotations

import time

import streamlit as st
from dotenv import load_dotenv

from scholar.core.errors import ConfigurationError
from scholar.core.models import Thread
from ui.common import (
    get_chat_service,
    get_speech,
    get_stores,
    render_citations,
    render_role_sidebar,
    render_theme_toggle,
)

# Load .env once per Streamlit server start
load_dotenv()

st.set_page_config(page_title="Chat | SIT Scholar", page_icon="🎓", layout="wide")

st.title("🔎 Search")
st.caption("Answers come from the SIT website and internal records, with sources.")

_, local_store = get_stores()

if "thread_id" not in st.session_state:
    st.session_state["thread_id"] = None
if "speech" not in st.session_state:
    st.session_state["speech"] = {}  # message id -> wav bytes


def _current_thread(threads: list[Thread]) -> Thread:
    for t in threads:
        if t.id == st.session_state["thread_id"]:
            return t
    thread = Thread()
    st.session_state["thread_id"] = thread.id
    return thread


# ---- Sidebar controls ----
with st.sidebar:
    st.header("Settings")
    llm_choice = st.selectbox("Answer model", ["Gemini", "OpenAI"], index=0)
    web_search = st.toggle(
        "Google Search grounding",
        value=False,
        help="Let the model search the wider web. Gemini only.",
    )
    st.divider()
    role = render_role_sidebar()
    render_theme_toggle()

    st.divider()
    st.subheader("Search History")
    threads = local_store.get_threads()

    if st.button("New search", use_container_width=True):
        st.session_state["thread_id"] = None
        st.rerun()

    if not threads:
        st.caption("No saved searches yet.")
    for t in threads:
        label = t.title if t.id != st.session_state["thread_id"] else f"▶ {t.title}"
        cols = st.columns([5, 1])
        if cols[0].button(label, key=f"open-{t.id}", use_container_width=True):
            st.session_state["thread_id"] = t.id
            st.rerun()
        if cols[1].button("🗑️", key=f"del-{t.id}"):
            local_store.delete_thread(t.id)
            if st.session_state["thread_id"] == t.id:
                st.session_state["thread_id"] = None
            st.rerun()

    if threads and st.button("Clear history", use_container_width=True):
        local_store.clear_history()
        st.session_state["thread_id"] = None
        st.rerun()

try:
    service = get_chat_service(llm_choice.lower())
except ConfigurationError as e:
    st.error("**Configuration Error**")
    st.markdown(
        f"""
        {e}

        Add the key to your `.env` file and restart the app.
        """
    )
    st.stop()

thread = _current_thread(threads)

# ---- Conversation ----
for msg in thread.messages:
    with st.chat_message("user" if msg.role == "user" else "assistant"):
        st.markdown(msg.content)
        if msg.role != "model":
            continue
        render_citations(msg.citations)
        audio = st.session_state["speech"].get(msg.id)
        if audio:
            st.audio(audio, format="audio/wav")
        elif st.button("🔊 Read aloud", key=f"tts-{msg.id}"):
            _, tts = get_speech()
            try:
                with st.spinner("Generating speech..."):
                    st.session_state["speech"][msg.id] = tts.synthesize(msg.content)
                st.rerun()
            except Exception as e:
                st.error(f"**Speech Generation Failed** ({type(e).__name__})")
                st.caption(str(e))

# ---- Input ----
voice = st.audio_input("Ask by voice")
query = st.chat_input("Ask about SIT: faculty, fees, admissions...")

if voice is not None and st.session_state.get("last_voice") != voice.file_id:
    st.session_state["last_voice"] = voice.file_id
    stt, _ = get_speech()
    with st.spinner("Transcribing..."):
        query = stt.transcribe(voice.getvalue(), mime_type=voice.type or "audio/wav")
    if not query:
        st.warning("Could not understand the recording. Please try again.")

if query:
    with st.chat_message("user"):
        st.markdown(query)

    with st.chat_message("assistant"):
        with st.status("Searching...", expanded=False) as status:
            started = time.perf_counter()
            service.ask(
                thread,
                query,
                role,
                web_search_enabled=web_search,
                on_progress=lambda s: status.update(label=s),
            )
            elapsed = (time.perf_counter() - started) * 1000.0
            status.update(label=f"Done in {elapsed:.0f} ms", state="complete")

    st.session_state["thread_id"] = thread.id
    result = service.last_result
    if result is not None and result.metrics:
        st.session_state["last_metrics"] = result.metrics
    st.rerun()

if st.session_state.get("last_metrics"):
    with st.sidebar.expander("Latency of last answer"):
        st.json(st.session_state["last_metrics"])
