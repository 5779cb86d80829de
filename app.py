import streamlit as st

from quizknow.app_state import init_app, current_user
from quizknow.ui import apply_global_styles, render_sidebar, render_hero, format_score
from quizknow.quizzes import (
    get_published_quizzes,
    get_quizzes_for_author,
    get_submissions_for_student,
    get_submissions_for_quiz,
)

st.set_page_config(
    page_title="QuizKnow",
    page_icon="📚",
    layout="wide",
    initial_sidebar_state="expanded"
)

init_app()
apply_global_styles()
render_sidebar()

render_hero("📚 QuizKnow", "Take quizzes, track your scores, and author quizzes for your students.")

user = current_user()
if user is None:
    st.info("Sign in from the sidebar to get started.")
    st.stop()

if user["role"] == "student":
    submissions = get_submissions_for_student(user["id"])
    col1, col2, col3 = st.columns(3)
    col1.metric("Available quizzes", len(get_published_quizzes()))
    col2.metric("Submitted attempts", len(submissions))
    graded = [s for s in submissions if not s["pending_review"]]
    avg = round(sum(s["percentage"] for s in graded) / len(graded)) if graded else 0
    col3.metric("Average score", f"{avg}%")

    st.subheader("Recent attempts")
    if submissions:
        for s in submissions[:5]:
            status = "awaiting review" if s["pending_review"] else ("passed" if s["passed"] else "not passed")
            st.write(f"- **{s['quiz_title']}**: {s['percentage']}% ({format_score(s['score'], s['max_score'])}), {status}")
    else:
        st.info("No attempts yet. Head to the Quizzes page.")
    st.page_link("pages/1_Quizzes.py", label="Go to quizzes", icon="📝")
else:
    quizzes = get_quizzes_for_author(user["id"])
    published = [q for q in quizzes if q.published]
    pending = sum(len(get_submissions_for_quiz(q.id, pending_only=True)) for q in quizzes)
    col1, col2, col3 = st.columns(3)
    col1.metric("My quizzes", len(quizzes))
    col2.metric("Published", len(published))
    col3.metric("Submissions awaiting review", pending)
    st.page_link("pages/2_Create_Quiz.py", label="Create a quiz", icon="🛠️")
    st.page_link("pages/3_Results.py", label="Review submissions", icon="📊")
