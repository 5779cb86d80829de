"""Scoring of a submitted answer set against canonical answer keys.

Everything here is a pure function of (questions, answers). Policies:

* select-all, matching and ordering are all-or-nothing;
* keyword questions are correct when the answer contains any one keyword;
* essays are never auto-scored: they stay pending review and are left out of
  both score and max score until an instructor grades them;
* unanswered questions are incorrect.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from quizknow.questions import (
    AnswerKey,
    KeywordKey,
    ManualReviewKey,
    MatchingKey,
    OptionSetKey,
    OrderingKey,
    SingleChoiceKey,
    normalize_answer,
)


@dataclass(frozen=True)
class KeyedQuestion:
    id: Any
    key: AnswerKey
    points: float = 1.0


@dataclass(frozen=True)
class QuestionResult:
    question_id: Any
    answer: Any
    is_correct: Optional[bool]
    pending_review: bool
    points: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "answer": self.answer,
            "is_correct": self.is_correct,
            "pending_review": self.pending_review,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "QuestionResult":
        return cls(
            question_id=data["question_id"],
            answer=data.get("answer"),
            is_correct=data.get("is_correct"),
            pending_review=bool(data.get("pending_review")),
            points=float(data.get("points", 1.0)),
        )


@dataclass(frozen=True)
class ScoreResult:
    results: Tuple[QuestionResult, ...]
    score: float
    max_score: float
    percentage: int
    pending_review: bool

    def by_question(self) -> Dict[Any, QuestionResult]:
        return {r.question_id: r for r in self.results}


def is_correct(key: AnswerKey, value) -> Optional[bool]:
    """Correctness of one answer; None means it needs manual review."""
    if isinstance(key, ManualReviewKey):
        return None
    submitted = normalize_answer(key, value)
    if submitted is None:
        return False
    if isinstance(key, SingleChoiceKey):
        return submitted == key.value
    if isinstance(key, OptionSetKey):
        return submitted == key.options
    if isinstance(key, KeywordKey):
        return any(kw in submitted for kw in key.keywords)
    if isinstance(key, MatchingKey):
        return submitted == key.as_mapping()
    if isinstance(key, OrderingKey):
        return submitted == key.items
    raise TypeError(f"unsupported answer key {key!r}")


def round_percentage(score: float, max_score: float) -> int:
    if max_score <= 0:
        return 0
    # half-up, not banker's rounding
    return int(math.floor(100.0 * score / max_score + 0.5))


def summarize(results: Iterable[QuestionResult]) -> ScoreResult:
    results = tuple(results)
    graded = [r for r in results if not r.pending_review]
    score = sum(r.points for r in graded if r.is_correct)
    max_score = sum(r.points for r in graded)
    return ScoreResult(
        results=results,
        score=score,
        max_score=max_score,
        percentage=round_percentage(score, max_score),
        pending_review=any(r.pending_review for r in results),
    )


def score_answers(questions: Iterable[KeyedQuestion], answers: Mapping) -> ScoreResult:
    results = []
    for question in questions:
        value = answers.get(question.id)
        correct = is_correct(question.key, value)
        results.append(
            QuestionResult(
                question_id=question.id,
                answer=value,
                is_correct=correct,
                pending_review=correct is None,
                points=question.points,
            )
        )
    return summarize(results)
