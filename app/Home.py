import streamlit as st

st.set_page_config(page_title="SIT Scholar", page_icon="🎓", layout="wide")

st.title("🎓 SIT Scholar")
st.subheader("Academic search for Siddaganga Institute of Technology")
st.write(
    """
Ask questions about departments, faculty, fees and admissions. Answers are built from
the college website and the internal records, and every answer lists its sources.

- **Chat**: typed or spoken questions, saved search threads, read-aloud answers.
- **Documents**: manage internal records (Admin role).
- **Live voice**: run `python scripts/live_voice.py` for a hands-free conversation.
"""
)

st.info("Go to **Chat** in the left sidebar to start searching.")
