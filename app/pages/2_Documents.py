from __future__ import annotations

from datetime import datetime, timezone

import streamlit as st
from dotenv import load_dotenv

from scholar.core.models import DOCUMENT_CATEGORIES, Document, Role, new_id
from scholar.storage.seed import reset_data
from ui.common import get_stores, render_role_sidebar, render_theme_toggle

load_dotenv()

st.set_page_config(page_title="Documents | SIT Scholar", page_icon="🗂️", layout="wide")

st.title("🗂️ Internal Records")

with st.sidebar:
    role = render_role_sidebar()
    render_theme_toggle()

if role is not Role.ADMIN:
    st.warning("Switch to the **Admin** role in the sidebar to manage internal records.")
    st.stop()

database, local_store = get_stores()

counts = database.size()
c1, c2 = st.columns(2)
c1.metric("Documents", counts["documents"])
c2.metric("Uploaded files", counts["files"])

st.divider()

# ---- Add / edit ----
docs = database.get_all()
editing_id = st.session_state.get("editing_id")
editing = database.get(editing_id) if editing_id else None

st.subheader("Edit record" if editing else "Add record")
with st.form("document_form", clear_on_submit=editing is None):
    title = st.text_input("Title", value=editing.title if editing else "")
    category = st.selectbox(
        "Category",
        DOCUMENT_CATEGORIES,
        index=DOCUMENT_CATEGORIES.index(editing.category) if editing else len(DOCUMENT_CATEGORIES) - 1,
    )
    content = st.text_area("Content", value=editing.content if editing else "", height=200)
    restricted = st.checkbox(
        "Restricted (hidden from Public role)",
        value=editing.is_restricted if editing else False,
    )
    cols = st.columns(2)
    saved = cols[0].form_submit_button("Save", type="primary", use_container_width=True)
    cancelled = cols[1].form_submit_button("Cancel", use_container_width=True)

if cancelled:
    st.session_state.pop("editing_id", None)
    st.rerun()

if saved:
    if not title.strip() or not content.strip():
        st.warning("Title and content are required.")
    else:
        database.save(
            Document(
                id=editing.id if editing else new_id("doc-"),
                title=title.strip(),
                content=content.strip(),
                category=category,
                is_restricted=restricted,
                uploaded_at=datetime.now(timezone.utc).isoformat(),
            )
        )
        st.session_state.pop("editing_id", None)
        st.success(f"Saved **{title.strip()}**")
        st.rerun()

# ---- Upload ----
st.subheader("Upload text file")
uploaded = st.file_uploader("Plain text, markdown or CSV", type=["txt", "md", "csv"])
upload_restricted = st.checkbox("Mark uploaded file as restricted", key="upload_restricted")
if uploaded is not None and st.button("Import file"):
    text = uploaded.getvalue().decode("utf-8", errors="replace")
    database.upload_text(uploaded.name, text, uploaded.type or "text/plain", upload_restricted)
    st.success(f"Imported **{uploaded.name}**")
    st.rerun()

st.divider()

# ---- Listing ----
st.subheader("Records")
category_filter = st.selectbox("Filter by category", ["all", *DOCUMENT_CATEGORIES])
shown = docs if category_filter == "all" else database.get_all(category_filter)

if not shown:
    st.caption("No records.")
for doc in shown:
    badge = " 🔒" if doc.is_restricted else ""
    with st.expander(f"{doc.title}{badge} · {doc.category}"):
        st.text(doc.content[:2000])
        cols = st.columns(2)
        if cols[0].button("Edit", key=f"edit-{doc.id}", use_container_width=True):
            st.session_state["editing_id"] = doc.id
            st.rerun()
        if cols[1].button("Delete", key=f"delete-{doc.id}", use_container_width=True):
            database.delete(doc.id)
            st.rerun()

files = database.get_all_files()
if files:
    st.subheader("Uploaded files")
    for f in files:
        cols = st.columns([4, 1])
        cols[0].write(f"**{f.name}** · {f.type} · {f.size} bytes · {f.uploaded_at[:19]}")
        if cols[1].button("Remove", key=f"file-{f.id}"):
            database.delete_file(f.id)
            database.delete(f"doc-{f.id}")
            st.rerun()

st.divider()
if st.button("Reset to built-in records", type="secondary"):
    reset_data(database, local_store)
    st.session_state.pop("editing_id", None)
    st.success("Records reset.")
    st.rerun()
