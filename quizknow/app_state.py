import streamlit as st

from quizknow.logging_config import setup_logging
from quizknow.db import init_db


def init_app():
    setup_logging()
    init_db()

    if "user" not in st.session_state:
        st.session_state.user = None

    # the attempt being taken on the quiz page; answers are mirrored locally
    # so a failed incremental save never loses what the student typed
    if "active_session_id" not in st.session_state:
        st.session_state.active_session_id = None

    if "local_answers" not in st.session_state:
        st.session_state.local_answers = {}

    if "last_submission_id" not in st.session_state:
        st.session_state.last_submission_id = None

    if "draft_questions" not in st.session_state:
        st.session_state.draft_questions = []


def current_user():
    return st.session_state.get("user")


def current_role() -> str:
    user = current_user()
    return user.get("role", "student") if user else "student"


def reset_attempt_state():
    for key in list(st.session_state.keys()):
        if key.startswith("ans_"):
            del st.session_state[key]
    st.session_state.active_session_id = None
    st.session_state.local_answers = {}
