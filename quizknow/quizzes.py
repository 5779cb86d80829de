import json
import logging
from typing import List, Dict, Any, Optional

from sqlmodel import select, func

from quizknow import settings
from quizknow.db import get_session
from quizknow.errors import NotFound, ValidationError
from quizknow.models import Quiz, Question, QuizSession, Submission
from quizknow.questions import (
    AnswerKey,
    KeywordKey,
    ManualReviewKey,
    MatchingKey,
    OptionSetKey,
    OrderingKey,
    SingleChoiceKey,
    QuestionType,
    key_from_dict,
    key_to_dict,
    normalize_question,
    parse_question_type,
    question_points,
)
from quizknow.scoring import KeyedQuestion

logger = logging.getLogger(__name__)


def _dump(value) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _load(value):
    if value is None:
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def _question_rows(quiz_id: int, questions: List[Dict[str, Any]]) -> List[Question]:
    """Normalize every question first so a single defect rejects the whole set."""
    rows = []
    for position, q in enumerate(questions):
        ref = q.get("id") or position + 1
        key = normalize_question(q, ref=ref)
        options, correct = q.get("options"), q.get("correct_answer")
        if isinstance(key, MatchingKey):
            # stored as parallel left/right lists whatever shape it was authored in
            options = [left for left, _ in key.pairs]
            correct = [right for _, right in key.pairs]
        rows.append(Question(
            quiz_id=quiz_id,
            position=position,
            type=parse_question_type(q.get("type"), ref).value,
            text=str(q.get("text") or q.get("question")).strip(),
            options=_dump(options),
            correct_answer=_dump(correct),
            answer_key=json.dumps(key_to_dict(key)),
            points=question_points(q, ref=ref),
            explanation=q.get("explanation") or None,
        ))
    return rows


def create_quiz(author_id: int, title: str, questions: List[Dict[str, Any]],
                description: Optional[str] = None, time_limit: Optional[int] = None,
                max_attempts: Optional[int] = None, passing_score: Optional[int] = None,
                randomize_questions: bool = False, show_correct_answers: bool = True) -> Quiz:
    """questions: list of dicts: {type, text, options(optional), correct_answer, pairs(optional), points, explanation}

    The quiz is stored as a draft; publish_quiz makes it visible to students.
    """
    if not str(title or "").strip():
        raise ValidationError(title, "title is empty", subject="Quiz")
    # validate before touching the database
    _question_rows(0, questions)
    settings_values = {
        "time_limit": settings.DEFAULT_TIME_LIMIT if time_limit is None else time_limit,
        "max_attempts": settings.DEFAULT_MAX_ATTEMPTS if max_attempts is None else max_attempts,
        "passing_score": settings.DEFAULT_PASSING_SCORE if passing_score is None else passing_score,
    }
    for name, value in settings_values.items():
        if value < 0:
            raise ValidationError(title, f"{name} must not be negative", subject="Quiz")

    with get_session() as session:
        quiz = Quiz(
            title=title.strip(),
            description=description,
            author_id=author_id,
            randomize_questions=randomize_questions,
            show_correct_answers=show_correct_answers,
            **settings_values,
        )
        session.add(quiz)
        session.commit()
        session.refresh(quiz)

        for row in _question_rows(quiz.id, questions):
            session.add(row)
        session.commit()

    logger.info("Quiz %s created by user %s with %d questions", quiz.id, author_id, len(questions))
    return quiz


def replace_questions(quiz_id: int, author_id: int, questions: List[Dict[str, Any]]) -> List[Question]:
    with get_session() as session:
        quiz = session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz", quiz_id)
        if quiz.author_id != author_id:
            raise PermissionError("Quiz owner mismatch")
        if quiz.published:
            raise ValidationError(quiz_id, "unpublish the quiz before editing its questions", subject="Quiz")
        rows = _question_rows(quiz.id, questions)
        for old in session.exec(select(Question).where(Question.quiz_id == quiz_id)):
            session.delete(old)
        for row in rows:
            session.add(row)
        session.commit()
        for row in rows:
            session.refresh(row)
        return rows


def get_quiz(quiz_id: int) -> Quiz:
    with get_session() as session:
        quiz = session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz", quiz_id)
        return quiz


def get_questions_for_quiz(quiz_id: int) -> List[Question]:
    with get_session() as session:
        q = select(Question).where(Question.quiz_id == quiz_id).order_by(Question.position, Question.id)
        return list(session.exec(q))


def get_published_quizzes() -> List[Quiz]:
    with get_session() as session:
        q = select(Quiz).where(Quiz.published == True).order_by(Quiz.created_at.desc())  # noqa: E712
        return list(session.exec(q))


def get_quizzes_for_author(author_id: int) -> List[Quiz]:
    with get_session() as session:
        q = select(Quiz).where(Quiz.author_id == author_id).order_by(Quiz.created_at.desc())
        return list(session.exec(q))


def question_to_authoring(question: Question) -> Dict[str, Any]:
    return {
        "id": question.id,
        "type": question.type,
        "text": question.text,
        "options": _load(question.options),
        "correct_answer": _load(question.correct_answer),
        "points": question.points,
        "explanation": question.explanation,
    }


def answer_key_for(question: Question) -> AnswerKey:
    return key_from_dict(json.loads(question.answer_key))


def keyed_questions(questions: List[Question]) -> List[KeyedQuestion]:
    return [KeyedQuestion(q.id, answer_key_for(q), q.points) for q in questions]


def publish_quiz(quiz_id: int, author_id: int, publish: bool = True) -> Quiz:
    """Publishing re-validates the stored questions; any defect blocks it."""
    with get_session() as session:
        quiz = session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz", quiz_id)
        if quiz.author_id != author_id:
            raise PermissionError("Quiz owner mismatch")
        if publish:
            questions = list(session.exec(select(Question).where(Question.quiz_id == quiz_id)))
            if not questions:
                raise ValidationError(quiz_id, "has no questions", subject="Quiz")
            for row in questions:
                key = normalize_question(question_to_authoring(row), ref=row.id)
                row.answer_key = json.dumps(key_to_dict(key))
                session.add(row)
        quiz.published = publish
        session.add(quiz)
        session.commit()
        session.refresh(quiz)
    logger.info("Quiz %s %s", quiz_id, "published" if publish else "unpublished")
    return quiz


def delete_quiz(quiz_id: int, user_id: int) -> bool:
    with get_session() as session:
        quiz = session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz", quiz_id)
        if quiz.author_id != user_id:
            raise PermissionError("Quiz owner mismatch")
        for model in (Submission, QuizSession, Question):
            for row in session.exec(select(model).where(model.quiz_id == quiz_id)):
                session.delete(row)
        session.flush()
        session.delete(quiz)
        session.commit()
    logger.info("Quiz %s deleted by user %s", quiz_id, user_id)
    return True


def get_attempt_count(quiz_id: int, student_id: int) -> int:
    with get_session() as session:
        q = select(func.count(Submission.id)).where(
            Submission.quiz_id == quiz_id, Submission.student_id == student_id
        )
        return session.exec(q).one()


def _submission_summary(sub: Submission, quiz: Optional[Quiz]) -> Dict[str, Any]:
    return {
        'submission_id': sub.id,
        'session_id': sub.session_id,
        'quiz_id': sub.quiz_id,
        'quiz_title': quiz.title if quiz else '',
        'student_id': sub.student_id,
        'score': sub.score,
        'max_score': sub.max_score,
        'percentage': sub.percentage,
        'passed': sub.passed,
        'pending_review': sub.pending_review,
        'submitted_at': sub.submitted_at.isoformat() if sub.submitted_at else None,
    }


def get_submissions_for_student(student_id: int, quiz_id: Optional[int] = None) -> List[Dict[str, Any]]:
    with get_session() as session:
        q = select(Submission).where(Submission.student_id == student_id)
        if quiz_id is not None:
            q = q.where(Submission.quiz_id == quiz_id)
        subs = list(session.exec(q.order_by(Submission.submitted_at.desc())))
        return [_submission_summary(s, session.get(Quiz, s.quiz_id)) for s in subs]


def get_submissions_for_quiz(quiz_id: int, pending_only: bool = False) -> List[Dict[str, Any]]:
    with get_session() as session:
        quiz = session.get(Quiz, quiz_id)
        if not quiz:
            raise NotFound("Quiz", quiz_id)
        q = select(Submission).where(Submission.quiz_id == quiz_id)
        if pending_only:
            q = q.where(Submission.pending_review == True)  # noqa: E712
        subs = list(session.exec(q.order_by(Submission.submitted_at.desc())))
        return [_submission_summary(s, quiz) for s in subs]


def describe_key(key: AnswerKey) -> str:
    """Human-readable correct answer for review screens."""
    if isinstance(key, SingleChoiceKey):
        if key.question_type is QuestionType.TRUE_FALSE:
            return key.value.capitalize()
        return key.value
    if isinstance(key, OptionSetKey):
        return ", ".join(sorted(key.options))
    if isinstance(key, KeywordKey):
        return ", ".join(key.keywords)
    if isinstance(key, ManualReviewKey):
        return key.rubric or "Graded by the instructor"
    if isinstance(key, MatchingKey):
        return "; ".join(f"{left} → {right}" for left, right in key.pairs)
    if isinstance(key, OrderingKey):
        return " → ".join(key.items)
    raise TypeError(f"unsupported answer key {key!r}")


def student_view(question: Question) -> Dict[str, Any]:
    """What a student may see while answering: no correctness flags, no order hints."""
    key = answer_key_for(question)
    view = {
        "id": question.id,
        "type": question.type,
        "text": question.text,
        "points": question.points,
    }
    if isinstance(key, MatchingKey):
        view["left_items"] = [left for left, _ in key.pairs]
        view["right_items"] = sorted(right for _, right in key.pairs)
    elif isinstance(key, OrderingKey):
        view["items"] = sorted(key.items)
    elif isinstance(key, SingleChoiceKey) and key.question_type is QuestionType.TRUE_FALSE:
        view["options"] = ["True", "False"]
    else:
        options = _load(question.options) or []
        view["options"] = [o.get("text") if isinstance(o, dict) else o for o in options]
    return view


def get_submission_detail(submission_id: int) -> Dict[str, Any]:
    """Return rich submission details including question texts and per-question correctness"""
    with get_session() as session:
        sub = session.get(Submission, submission_id)
        if not sub:
            raise NotFound("Submission", submission_id)
        quiz = session.get(Quiz, sub.quiz_id)
        show_answers = bool(quiz and quiz.show_correct_answers)
        detailed = []
        for entry in json.loads(sub.answers):
            qobj = session.get(Question, entry.get('question_id'))
            item = {
                'question_id': entry.get('question_id'),
                'question_text': qobj.text if qobj else '',
                'type': qobj.type if qobj else '',
                'answer': entry.get('answer'),
                'is_correct': entry.get('is_correct'),
                'pending_review': entry.get('pending_review', False),
                'points': entry.get('points'),
            }
            if show_answers and qobj:
                item['correct_answer'] = describe_key(answer_key_for(qobj))
                item['explanation'] = qobj.explanation
            detailed.append(item)
        summary = _submission_summary(sub, quiz)
        summary['passing_score'] = quiz.passing_score if quiz else None
        summary['questions'] = detailed
        return summary
