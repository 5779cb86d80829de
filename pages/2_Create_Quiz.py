import logging
from datetime import datetime

import streamlit as st

from quizknow import settings
from quizknow.app_state import init_app, current_user
from quizknow.auth import require_role
from quizknow.errors import QuizError
from quizknow.questions import QuestionType, normalize_question
from quizknow.quizzes import (
    create_quiz,
    delete_quiz,
    get_questions_for_quiz,
    get_quizzes_for_author,
    publish_quiz,
)
from quizknow.ui import apply_global_styles, render_sidebar, render_hero

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Create quiz", page_icon="🛠️", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

render_hero("Create a quiz", "Build questions, save the quiz as a draft, then publish it when it is ready.")

user = current_user()
if user is None:
    st.info("Please sign in first.")
    st.stop()
try:
    require_role(user, "instructor", "admin")
except PermissionError:
    st.error("Only instructors can author quizzes.")
    st.stop()


def _lines(text: str):
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


TYPE_LABELS = {
    QuestionType.MULTIPLE_CHOICE: "Multiple choice",
    QuestionType.TRUE_FALSE: "True / false",
    QuestionType.SELECT_ALL: "Select all that apply",
    QuestionType.SHORT_ANSWER: "Short answer",
    QuestionType.FILL_IN_THE_BLANK: "Fill in the blank",
    QuestionType.ESSAY: "Essay",
    QuestionType.MATCHING: "Matching",
    QuestionType.ORDERING: "Ordering",
}

st.subheader("Add a question")
qtype = st.selectbox("Question type", list(TYPE_LABELS), format_func=TYPE_LABELS.get)
text = st.text_area("Question text", key="builder_text")
points = st.number_input("Points", min_value=0.5, value=1.0, step=0.5)
explanation = st.text_input("Explanation (shown in review)", key="builder_explanation")

question = {"type": qtype.value, "text": text, "points": points, "explanation": explanation}
if qtype in (QuestionType.MULTIPLE_CHOICE, QuestionType.SELECT_ALL):
    options = _lines(st.text_area("Options, one per line", key="builder_options"))
    question["options"] = options
    if qtype is QuestionType.MULTIPLE_CHOICE:
        question["correct_answer"] = st.selectbox("Correct answer", options, index=None)
    else:
        question["correct_answer"] = st.multiselect("Correct answers", options)
elif qtype is QuestionType.TRUE_FALSE:
    question["correct_answer"] = st.radio("Correct answer", ["true", "false"], horizontal=True)
elif qtype in (QuestionType.SHORT_ANSWER, QuestionType.FILL_IN_THE_BLANK):
    question["correct_answer"] = st.text_input(
        "Accepted keywords", help="Comma separated; an answer containing any of them is correct"
    )
elif qtype is QuestionType.ESSAY:
    question["correct_answer"] = st.text_area("Rubric / grading guidelines")
elif qtype is QuestionType.MATCHING:
    col_l, col_r = st.columns(2)
    with col_l:
        question["options"] = _lines(st.text_area("Left items, one per line", key="builder_left"))
    with col_r:
        question["correct_answer"] = _lines(st.text_area("Matching right items, same order", key="builder_right"))
elif qtype is QuestionType.ORDERING:
    question["options"] = _lines(st.text_area("Items in the correct order, one per line", key="builder_items"))

if st.button("Add question"):
    try:
        normalize_question(question, ref=len(st.session_state.draft_questions) + 1)
        st.session_state.draft_questions.append(question)
        st.success("Question added.")
    except QuizError as e:
        st.error(str(e))

if st.session_state.draft_questions:
    st.markdown("---")
    st.subheader(f"Draft questions ({len(st.session_state.draft_questions)})")
    for idx, dq in enumerate(st.session_state.draft_questions):
        col_q, col_del = st.columns([0.9, 0.1])
        with col_q:
            st.write(f"{idx + 1}. [{dq['type']}] {dq['text']} ({dq['points']:g} pt)")
        with col_del:
            if st.button("\U0001F5D1", key=f"del_draft_{idx}", help="Remove question"):
                st.session_state.draft_questions.pop(idx)
                st.rerun()

    st.subheader("Quiz settings")
    title = st.text_input("Quiz title", value="New quiz")
    description = st.text_area("Description")
    col1, col2, col3 = st.columns(3)
    with col1:
        time_limit = st.number_input("Time limit (minutes, 0 = none)", min_value=0, value=settings.DEFAULT_TIME_LIMIT)
    with col2:
        max_attempts = st.number_input("Max attempts (0 = unlimited)", min_value=0, value=settings.DEFAULT_MAX_ATTEMPTS)
    with col3:
        passing_score = st.number_input("Passing score (%)", min_value=0, max_value=100,
                                        value=settings.DEFAULT_PASSING_SCORE)
    randomize = st.checkbox("Randomize question order")
    show_answers = st.checkbox("Show correct answers in review", value=True)

    if st.button("Save quiz as draft", type="primary"):
        try:
            quiz = create_quiz(
                user["id"],
                title,
                st.session_state.draft_questions,
                description=description,
                time_limit=int(time_limit),
                max_attempts=int(max_attempts),
                passing_score=int(passing_score),
                randomize_questions=randomize,
                show_correct_answers=show_answers,
            )
            st.session_state.draft_questions = []
            st.success(f"Quiz saved: {quiz.title}")
            st.rerun()
        except QuizError as e:
            st.error(str(e))
        except Exception:
            logger.exception("Quiz save failed")
            st.error("The quiz could not be saved. Please try again.")

st.markdown("---")
st.subheader("My quizzes")
quizzes = get_quizzes_for_author(user["id"])
if not quizzes:
    st.info("You have not created any quizzes yet.")
for q in quizzes:
    with st.expander(f"{q.title} - {'Published' if q.published else 'Draft'}"):
        created = q.created_at.strftime("%Y-%m-%d %H:%M") if isinstance(q.created_at, datetime) else q.created_at
        st.caption(f"Created {created} · {q.time_limit} min · {q.max_attempts or 'unlimited'} attempts")
        for idx, qq in enumerate(get_questions_for_quiz(q.id), start=1):
            st.write(f"- {idx}. ({qq.type}) {qq.text} [{qq.points:g} pt]")
        col_a, col_b = st.columns([1, 0.2])
        with col_a:
            if st.button("Publish" if not q.published else "Unpublish", key=f"pub_{q.id}"):
                try:
                    publish_quiz(q.id, user["id"], publish=not q.published)
                    st.rerun()
                except QuizError as e:
                    st.error(f"Cannot publish: {e}")
                except Exception:
                    logger.exception("Quiz publish failed")
                    st.error("Could not update the quiz. Please try again.")
        with col_b:
            if st.button("\U0001F5D1", key=f"del_quiz_{q.id}", help="Delete quiz"):
                try:
                    delete_quiz(q.id, user["id"])
                    st.rerun()
                except (QuizError, PermissionError) as e:
                    st.error(str(e))
