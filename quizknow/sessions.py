"""One student's attempt at a quiz, from start to scored submission.

A session is created in memory and persisted straight away as in-progress;
submitting moves it to completed, which is terminal. Submission is guarded by
a conditional UPDATE on the status column, so of two racing submits only one
scores and the other gets AlreadySubmitted.
"""
import dataclasses
import json
import logging
import random
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlmodel import select, func

from quizknow.auth import require_role
from quizknow.db import get_session
from quizknow.errors import AlreadySubmitted, AttemptLimitExceeded, NotFound, SessionClosed, ValidationError
from quizknow.models import Quiz, Question, QuizSession, Submission, User, now_utc
from quizknow.policy import check_attempt_allowed
from quizknow.quizzes import keyed_questions
from quizknow.scoring import QuestionResult, score_answers, summarize

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    SUBMITTED = "completed"


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands datetimes back without tzinfo; they were written as UTC
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _question_id(raw) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise NotFound("Question", raw) from None


def _jsonable(value):
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def session_answers(quiz_session: QuizSession) -> Dict[int, Any]:
    return {int(k): v for k, v in json.loads(quiz_session.answers or "{}").items()}


def session_question_order(quiz_session: QuizSession) -> List[int]:
    return json.loads(quiz_session.question_order or "[]")


def _count_submissions(session, quiz_id: int, student_id: int) -> int:
    q = select(func.count(Submission.id)).where(
        Submission.quiz_id == quiz_id, Submission.student_id == student_id
    )
    return session.exec(q).one()


def _active_session(session, quiz_id: int, student_id: int) -> Optional[QuizSession]:
    q = select(QuizSession).where(
        QuizSession.quiz_id == quiz_id,
        QuizSession.student_id == student_id,
        QuizSession.status == SessionStatus.IN_PROGRESS.value,
    )
    return session.exec(q).first()


def get_active_session(quiz_id: int, student_id: int) -> Optional[QuizSession]:
    with get_session() as session:
        return _active_session(session, quiz_id, student_id)


def get_session_state(session_id: int) -> QuizSession:
    with get_session() as session:
        quiz_session = session.get(QuizSession, session_id)
        if not quiz_session:
            raise NotFound("Session", session_id)
        return quiz_session


def start_session(quiz_id: int, student_id: int, now: Optional[datetime] = None,
                  rng: Optional[random.Random] = None) -> QuizSession:
    """Open an attempt, or hand back the one the student already has open.

    Raises NotFound, ValidationError (quiz not published) or AttemptLimitExceeded.
    """
    with get_session() as session:
        quiz = session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz", quiz_id)
        if not quiz.published:
            raise ValidationError(quiz_id, "is not published", subject="Quiz")

        existing = _count_submissions(session, quiz_id, student_id)
        try:
            check_attempt_allowed(quiz.max_attempts, existing)
        except AttemptLimitExceeded:
            logger.info("Attempt rejected for quiz %s, student %s (%d/%d)",
                        quiz_id, student_id, existing, quiz.max_attempts)
            raise

        active = _active_session(session, quiz_id, student_id)
        if active:
            return active

        q = select(Question.id).where(Question.quiz_id == quiz_id).order_by(Question.position, Question.id)
        question_ids = list(session.exec(q))
        if quiz.randomize_questions:
            (rng or random.Random()).shuffle(question_ids)

        quiz_session = QuizSession(
            quiz_id=quiz_id,
            student_id=student_id,
            status=SessionStatus.IN_PROGRESS.value,
            question_order=json.dumps(question_ids),
            time_limit_seconds=quiz.time_limit * 60 if quiz.time_limit else None,
            started_at=now or now_utc(),
        )
        session.add(quiz_session)
        session.commit()
        session.refresh(quiz_session)

    logger.info("Session %s started: quiz %s, student %s, attempt %d",
                quiz_session.id, quiz_id, student_id, existing + 1)
    return quiz_session


def update_answer(session_id: int, question_id, value) -> Dict[int, Any]:
    """Record one answer, overwriting any earlier one for the same question."""
    question_id = _question_id(question_id)
    with get_session() as session:
        quiz_session = session.get(QuizSession, session_id)
        if not quiz_session:
            raise NotFound("Session", session_id)
        if quiz_session.status != SessionStatus.IN_PROGRESS.value:
            raise SessionClosed(session_id)
        if question_id not in session_question_order(quiz_session):
            raise NotFound("Question", question_id)

        answers = session_answers(quiz_session)
        answers[question_id] = _jsonable(value)
        stmt = (
            update(QuizSession)
            .where(QuizSession.id == session_id, QuizSession.status == SessionStatus.IN_PROGRESS.value)
            .values(answers=json.dumps(answers))
        )
        result = session.connection().execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            raise SessionClosed(session_id)
        session.commit()
        return answers


def submit_session(session_id: int, answers: Optional[Dict[Any, Any]] = None,
                   now: Optional[datetime] = None) -> Submission:
    """Close the session and score it.

    ``answers`` are merged over whatever update_answer already stored, so a
    client whose incremental saves failed can send everything here.
    """
    with get_session() as session:
        quiz_session = session.get(QuizSession, session_id)
        if not quiz_session:
            raise NotFound("Session", session_id)
        if quiz_session.status != SessionStatus.IN_PROGRESS.value:
            raise AlreadySubmitted(session_id)

        merged = session_answers(quiz_session)
        for raw_id, value in (answers or {}).items():
            merged[_question_id(raw_id)] = _jsonable(value)
        submitted_at = now or now_utc()

        stmt = (
            update(QuizSession)
            .where(QuizSession.id == session_id, QuizSession.status == SessionStatus.IN_PROGRESS.value)
            .values(status=SessionStatus.SUBMITTED.value, answers=json.dumps(merged), submitted_at=submitted_at)
        )
        result = session.connection().execute(stmt)
        if result.rowcount != 1:
            session.rollback()
            raise AlreadySubmitted(session_id)

        quiz = session.get(Quiz, quiz_session.quiz_id)
        rows = list(session.exec(select(Question).where(Question.quiz_id == quiz_session.quiz_id)))
        order = {qid: idx for idx, qid in enumerate(session_question_order(quiz_session))}
        rows.sort(key=lambda q: (order.get(q.id, len(order)), q.position, q.id))

        scored = score_answers(keyed_questions(rows), merged)
        submission = Submission(
            quiz_id=quiz_session.quiz_id,
            student_id=quiz_session.student_id,
            session_id=session_id,
            answers=json.dumps([r.to_dict() for r in scored.results]),
            score=scored.score,
            max_score=scored.max_score,
            percentage=scored.percentage,
            passed=not scored.pending_review and scored.percentage >= quiz.passing_score,
            pending_review=scored.pending_review,
            submitted_at=submitted_at,
        )
        session.add(submission)
        session.commit()
        session.refresh(submission)

    logger.info("Session %s submitted: %s/%s (%d%%)%s", session_id, submission.score,
                submission.max_score, submission.percentage,
                " pending review" if submission.pending_review else "")
    return submission


def time_remaining(quiz_session: QuizSession, now: Optional[datetime] = None) -> Optional[int]:
    """Advisory seconds left; None for an untimed quiz."""
    if not quiz_session.time_limit_seconds:
        return None
    elapsed = ((now or now_utc()) - as_utc(quiz_session.started_at)).total_seconds()
    return max(0, int(quiz_session.time_limit_seconds - elapsed))


def submit_if_expired(session_id: int, now: Optional[datetime] = None) -> Optional[Submission]:
    """Submit a timed session whose time has run out, with the answers it has.

    Only runs when called; nothing schedules it.
    """
    quiz_session = get_session_state(session_id)
    if quiz_session.status != SessionStatus.IN_PROGRESS.value:
        return None
    remaining = time_remaining(quiz_session, now)
    if remaining is None or remaining > 0:
        return None
    logger.info("Session %s expired, submitting stored answers", session_id)
    return submit_session(session_id, now=now)


def grade_essay(submission_id: int, question_id, is_correct: bool, grader_id: int) -> Submission:
    """Record an instructor's verdict on an essay and recompute the totals."""
    question_id = _question_id(question_id)
    with get_session() as session:
        submission = session.get(Submission, submission_id)
        if not submission:
            raise NotFound("Submission", submission_id)
        grader = session.get(User, grader_id)
        if not grader:
            raise NotFound("User", grader_id)
        require_role(grader, "instructor", "admin")
        quiz = session.get(Quiz, submission.quiz_id)
        if grader.role != "admin" and quiz.author_id != grader_id:
            raise PermissionError("Quiz owner mismatch")

        results = [QuestionResult.from_dict(e) for e in json.loads(submission.answers)]
        for idx, res in enumerate(results):
            if res.question_id == question_id:
                break
        else:
            raise NotFound("Question", question_id)
        if not results[idx].pending_review:
            raise ValidationError(question_id, "is not awaiting review")
        results[idx] = dataclasses.replace(results[idx], is_correct=bool(is_correct), pending_review=False)

        summary = summarize(results)
        submission.answers = json.dumps([r.to_dict() for r in summary.results])
        submission.score = summary.score
        submission.max_score = summary.max_score
        submission.percentage = summary.percentage
        submission.pending_review = summary.pending_review
        submission.passed = not summary.pending_review and summary.percentage >= quiz.passing_score
        session.add(submission)
        session.commit()
        session.refresh(submission)

    logger.info("Submission %s question %s graded by %s: %s",
                submission_id, question_id, grader_id, "correct" if is_correct else "incorrect")
    return submission
