import json
import logging

import streamlit as st

from quizknow.app_state import init_app, current_user
from quizknow.errors import QuizError
from quizknow.quizzes import (
    get_quizzes_for_author,
    get_submission_detail,
    get_submissions_for_quiz,
    get_submissions_for_student,
)
from quizknow.sessions import grade_essay
from quizknow.ui import apply_global_styles, render_sidebar, render_hero, format_score

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Results", page_icon="📊", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

render_hero("Results", "Scores, answer review and essay grading.")

user = current_user()
if user is None:
    st.info("Please sign in first.")
    st.stop()


def _answer_text(answer):
    if answer is None or answer == "" or answer == [] or answer == {}:
        return "Not answered"
    if isinstance(answer, list):
        return ", ".join(str(a) for a in answer)
    if isinstance(answer, dict):
        return "; ".join(f"{k} → {v}" for k, v in answer.items())
    return str(answer)


def render_detail(submission_id, grader=None):
    detail = get_submission_detail(submission_id)
    for idx, item in enumerate(detail["questions"], start=1):
        if item["pending_review"]:
            verdict = "⏳ Awaiting review"
        elif item["is_correct"]:
            verdict = "✅ Correct"
        else:
            verdict = "❌ Incorrect"
        st.markdown(f"**{idx}. {item['question_text']}** ({item['points']:g} pt) {verdict}")
        st.write(f"Answer: {_answer_text(item['answer'])}")
        if item.get("correct_answer"):
            st.caption(f"Correct answer: {item['correct_answer']}")
        if item.get("explanation"):
            st.caption(item["explanation"])
        if grader and item["pending_review"]:
            col_ok, col_no = st.columns(2)
            for col, verdict_value, label in ((col_ok, True, "Mark correct"), (col_no, False, "Mark incorrect")):
                with col:
                    if st.button(label, key=f"grade_{submission_id}_{item['question_id']}_{verdict_value}"):
                        try:
                            grade_essay(submission_id, item["question_id"], verdict_value, grader["id"])
                            st.rerun()
                        except (QuizError, PermissionError) as e:
                            st.error(str(e))
                        except Exception:
                            logger.exception("Essay grading failed")
                            st.error("The grade could not be saved. Please try again.")


def _summary_label(s):
    status = "awaiting review" if s["pending_review"] else ("passed" if s["passed"] else "not passed")
    when = (s["submitted_at"] or "")[:16].replace("T", " ")
    return f"{when} | {s['quiz_title']} | {s['percentage']}% ({format_score(s['score'], s['max_score'])}) | {status}"


if user["role"] == "student":
    submissions = get_submissions_for_student(user["id"])
    if not submissions:
        st.info("No submissions yet.")
    for s in submissions:
        with st.expander(_summary_label(s)):
            render_detail(s["submission_id"])
else:
    quizzes = get_quizzes_for_author(user["id"])
    if not quizzes:
        st.info("You have not created any quizzes yet.")
        st.stop()
    quiz_map = {f"{q.title} (#{q.id})": q for q in quizzes}
    sel = st.selectbox("Quiz", list(quiz_map.keys()))
    active_quiz = quiz_map[sel]
    pending_only = st.checkbox("Only submissions awaiting review")
    submissions = get_submissions_for_quiz(active_quiz.id, pending_only=pending_only)
    if not submissions:
        st.info("No submissions for this quiz.")
    else:
        st.download_button(
            "Download scores (JSON)",
            data=json.dumps(submissions, indent=2),
            file_name=f"quiz_{active_quiz.id}_scores.json",
            mime="application/json",
        )
    for s in submissions:
        with st.expander(f"Student {s['student_id']} | {_summary_label(s)}"):
            render_detail(s["submission_id"], grader=user)
