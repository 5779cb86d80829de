import logging

import streamlit as st

from quizknow import settings
from quizknow.app_state import init_app, current_user, reset_attempt_state
from quizknow.errors import QuizError
from quizknow.policy import attempts_remaining
from quizknow.questions import KEYWORD_TYPES, QuestionType, parse_question_type
from quizknow.quizzes import (
    get_attempt_count,
    get_published_quizzes,
    get_questions_for_quiz,
    get_quiz,
    get_submission_detail,
    student_view,
)
from quizknow.sessions import (
    SessionStatus,
    get_active_session,
    get_session_state,
    session_answers,
    session_question_order,
    start_session,
    submit_if_expired,
    submit_session,
    time_remaining,
    update_answer,
)
from quizknow.ui import apply_global_styles, render_sidebar, render_hero, format_score, format_seconds

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Quizzes", page_icon="📝", layout="wide")

init_app()
apply_global_styles()
render_sidebar()

render_hero("Quizzes", "Pick a published quiz and answer at your own pace; answers are saved as you go.")

user = current_user()
if user is None:
    st.info("Please sign in first.")
    st.stop()


def _save_answer(session_id, question_id, value):
    """Best-effort save; the local copy is what gets submitted in the end."""
    st.session_state.local_answers[question_id] = value
    try:
        update_answer(session_id, question_id, value)
    except QuizError as e:
        st.session_state.answer_save_error = str(e)
    except Exception:
        logger.warning("Could not save answer for session %s question %s", session_id, question_id, exc_info=True)


def _on_simple_change(session_id, question_id):
    _save_answer(session_id, question_id, st.session_state.get(f"ans_{question_id}"))


def _on_matching_change(session_id, question_id, left_items):
    mapping = {}
    for idx, left in enumerate(left_items):
        right = st.session_state.get(f"ans_{question_id}_{idx}")
        if right is not None:
            mapping[left] = right
    _save_answer(session_id, question_id, mapping)


def render_question(session_id, number, view, stored):
    qid = view["id"]
    st.markdown(f"**{number}. {view['text']}** _({view['points']:g} pt)_")
    kwargs = {"on_change": _on_simple_change, "args": (session_id, qid), "label_visibility": "collapsed"}
    qtype = parse_question_type(view["type"], qid)
    if qtype in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        options = view.get("options") or []
        index = options.index(stored) if stored in options else None
        st.radio(f"q_{qid}", options, index=index, key=f"ans_{qid}", **kwargs)
    elif qtype is QuestionType.SELECT_ALL:
        st.caption("Select all that apply")
        st.multiselect(f"q_{qid}", view.get("options") or [], default=stored or [], key=f"ans_{qid}", **kwargs)
    elif qtype in KEYWORD_TYPES:
        st.text_input(f"q_{qid}", value=stored or "", key=f"ans_{qid}", **kwargs)
    elif qtype is QuestionType.ESSAY:
        st.text_area(f"q_{qid}", value=stored or "", key=f"ans_{qid}", **kwargs)
    elif qtype is QuestionType.MATCHING:
        lefts = view["left_items"]
        stored = stored or {}
        for idx, left in enumerate(lefts):
            rights = view["right_items"]
            current = stored.get(left)
            st.selectbox(
                left,
                rights,
                index=rights.index(current) if current in rights else None,
                key=f"ans_{qid}_{idx}",
                on_change=_on_matching_change,
                args=(session_id, qid, lefts),
            )
    elif qtype is QuestionType.ORDERING:
        st.caption("Pick the items in the correct order")
        st.multiselect(f"q_{qid}", view["items"], default=stored or [], key=f"ans_{qid}", **kwargs)
    else:
        raise TypeError(f"no widget for question type {qtype!r}")


def render_result(submission_id):
    detail = get_submission_detail(submission_id)
    st.subheader("Your result")
    if detail["pending_review"]:
        st.info(
            f"Auto-graded part: {detail['percentage']}% ({format_score(detail['score'], detail['max_score'])}). "
            "Some answers are waiting for your instructor."
        )
    elif detail["passed"]:
        st.success(f"Passed with {detail['percentage']}% ({format_score(detail['score'], detail['max_score'])})")
    else:
        st.error(f"Scored {detail['percentage']}%; {detail['passing_score']}% needed to pass")
    st.page_link("pages/3_Results.py", label="Review answers", icon="📊")


active_id = st.session_state.get("active_session_id")

if active_id:
    try:
        quiz_session = get_session_state(active_id)
        if settings.AUTO_SUBMIT_ON_EXPIRY:
            expired = submit_if_expired(active_id)
            if expired:
                st.session_state.last_submission_id = expired.id
                reset_attempt_state()
                st.warning("Time is up; your saved answers were submitted.")
                st.rerun()
    except QuizError as e:
        st.error(str(e))
        reset_attempt_state()
        st.stop()

    if quiz_session.status != SessionStatus.IN_PROGRESS.value:
        reset_attempt_state()
        st.rerun()

    quiz = get_quiz(quiz_session.quiz_id)
    st.subheader(quiz.title)
    remaining = time_remaining(quiz_session)
    if remaining is not None:
        if remaining > 0:
            st.caption(f"Time remaining: {format_seconds(remaining)} (advisory)")
        else:
            st.warning("Time is up. Please submit your answers.")

    if st.session_state.get("answer_save_error"):
        st.warning(st.session_state.pop("answer_save_error"))

    stored = session_answers(quiz_session)
    stored.update(st.session_state.local_answers)
    questions = {q.id: q for q in get_questions_for_quiz(quiz_session.quiz_id)}
    for number, qid in enumerate(session_question_order(quiz_session), start=1):
        if qid in questions:
            render_question(active_id, number, student_view(questions[qid]), stored.get(qid))
            st.markdown("---")

    col_a, col_b = st.columns([1, 1])
    with col_a:
        if st.button("Submit answers", type="primary"):
            try:
                submission = submit_session(active_id, st.session_state.local_answers)
                st.session_state.last_submission_id = submission.id
                reset_attempt_state()
                st.rerun()
            except QuizError as e:
                st.error(str(e))
            except Exception:
                logger.exception("Quiz submission failed")
                st.error("Your answers could not be submitted. Please try again.")
    with col_b:
        if st.button("Back to list"):
            st.session_state.active_session_id = None
            st.rerun()
    st.stop()

if st.session_state.get("last_submission_id"):
    render_result(st.session_state.last_submission_id)
    st.markdown("---")

st.subheader("Published quizzes")
quizzes = get_published_quizzes()
if not quizzes:
    st.info("No quizzes have been published yet.")

for quiz in quizzes:
    with st.expander(quiz.title):
        if quiz.description:
            st.write(quiz.description)
        used = get_attempt_count(quiz.id, user["id"])
        left = attempts_remaining(quiz.max_attempts, used)
        limit_text = "unlimited attempts" if left is None else f"{left} of {quiz.max_attempts} attempts left"
        time_text = f"{quiz.time_limit} min" if quiz.time_limit else "untimed"
        st.caption(f"{time_text} · pass mark {quiz.passing_score}% · {limit_text}")
        resumable = get_active_session(quiz.id, user["id"]) is not None
        label = "Resume" if resumable else "Start"
        if st.button(label, key=f"start_{quiz.id}", disabled=left == 0 or user["role"] != "student"):
            try:
                quiz_session = start_session(quiz.id, user["id"])
                reset_attempt_state()
                st.session_state.active_session_id = quiz_session.id
                st.session_state.local_answers = session_answers(quiz_session)
                st.session_state.last_submission_id = None
                st.rerun()
            except QuizError as e:
                st.error(str(e))
            except Exception:
                logger.exception("Could not start quiz session")
                st.error("The quiz could not be started. Please try again.")
