"""Question types and their canonical answer keys.

Authoring tools hand us questions in loose shapes: options as plain strings
or as ``{"text", "isCorrect", "explanation"}`` objects, matching questions as
left/right pairs or as two parallel lists, ordering questions as the options
in correct order. ``normalize_question`` turns any of these into one frozen
key per question type. Grading only ever looks at the key.

Text rules, shared by authoring and grading:

* option identifiers (choice, select-all, matching, ordering) compare exactly
  after trimming surrounding whitespace;
* true/false values are folded to ``"true"`` / ``"false"``;
* keywords and free-text answers are accent-stripped, lower-cased, stripped of
  punctuation and whitespace-collapsed before comparison.
"""
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from quizknow.errors import ValidationError


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    ESSAY = "essay"
    FILL_IN_THE_BLANK = "fill-in-the-blank"
    SELECT_ALL = "select-all"
    MATCHING = "matching"
    ORDERING = "ordering"


KEYWORD_TYPES = (QuestionType.SHORT_ANSWER, QuestionType.FILL_IN_THE_BLANK)

# older/shorthand type names seen in stored quizzes
_TYPE_ALIASES = {
    "mcq": QuestionType.MULTIPLE_CHOICE,
    "fill-blank": QuestionType.FILL_IN_THE_BLANK,
}


@dataclass(frozen=True)
class SingleChoiceKey:
    question_type: QuestionType
    value: str


@dataclass(frozen=True)
class OptionSetKey:
    options: frozenset
    question_type: QuestionType = QuestionType.SELECT_ALL


@dataclass(frozen=True)
class KeywordKey:
    question_type: QuestionType
    keywords: Tuple[str, ...]


@dataclass(frozen=True)
class ManualReviewKey:
    rubric: str = ""
    question_type: QuestionType = QuestionType.ESSAY


@dataclass(frozen=True)
class MatchingKey:
    pairs: Tuple[Tuple[str, str], ...]
    question_type: QuestionType = QuestionType.MATCHING

    def as_mapping(self) -> Dict[str, str]:
        return dict(self.pairs)


@dataclass(frozen=True)
class OrderingKey:
    items: Tuple[str, ...]
    question_type: QuestionType = QuestionType.ORDERING


AnswerKey = Union[SingleChoiceKey, OptionSetKey, KeywordKey, ManualReviewKey, MatchingKey, OrderingKey]


def _strip_accents(text: str) -> str:
    return "".join(
        ch for ch in unicodedata.normalize("NFKD", text)
        if not unicodedata.combining(ch)
    )


def normalize_text(t: Optional[str]) -> str:
    if t is None:
        return ""
    text = _strip_accents(str(t)).lower().strip()
    text = "".join(e for e in text if e.isalnum() or e.isspace())
    return " ".join(text.split())


def normalize_true_false(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = _strip_accents(str(value)).strip().lower()
    if text in ("true", "t", "1", "yes", "y"):
        return "true"
    if text in ("false", "f", "0", "no", "n"):
        return "false"
    return text


def parse_question_type(raw, ref=None) -> QuestionType:
    if isinstance(raw, QuestionType):
        return raw
    name = str(raw or "").strip().lower().replace("_", "-")
    if name in _TYPE_ALIASES:
        return _TYPE_ALIASES[name]
    try:
        return QuestionType(name)
    except ValueError:
        raise ValidationError(ref, f"unknown question type '{raw}'") from None


def _question_ref(question: Mapping, ref=None):
    if ref is not None:
        return ref
    if question.get("id") is not None:
        return question["id"]
    text = str(question.get("text") or question.get("question") or "").strip()
    return f"'{text[:40]}'" if text else "?"


def _options(question: Mapping, ref) -> List[Tuple[str, Optional[bool], str]]:
    """Return (text, is_correct, explanation) per option; the flag is None for plain strings."""
    parsed = []
    seen = set()
    for idx, opt in enumerate(question.get("options") or [], start=1):
        if isinstance(opt, Mapping):
            text = str(opt.get("text") or "").strip()
            flag = bool(opt.get("isCorrect", opt.get("is_correct", False)))
            explanation = str(opt.get("explanation") or "").strip()
        else:
            text = str(opt if opt is not None else "").strip()
            flag = None
            explanation = ""
        if not text:
            raise ValidationError(ref, f"option {idx} is blank")
        if text in seen:
            raise ValidationError(ref, f"duplicate option '{text}'")
        seen.add(text)
        parsed.append((text, flag, explanation))
    return parsed


def _resolve_option(value, texts: List[str], ref) -> str:
    # an int picks an option by position, as the review screens stored it
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value < len(texts):
            return texts[value]
        raise ValidationError(ref, f"correct answer index {value} is out of range")
    text = str(value).strip()
    if text not in texts:
        raise ValidationError(ref, f"correct answer '{text}' is not one of the options")
    return text


def _choice_options(question: Mapping, ref) -> List[Tuple[str, Optional[bool], str]]:
    options = _options(question, ref)
    if len(options) < 2:
        raise ValidationError(ref, f"needs at least 2 options, got {len(options)}")
    return options


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def split_keywords(raw) -> Tuple[str, ...]:
    keywords = []
    for chunk in _as_list(raw):
        for part in str(chunk).split(","):
            kw = normalize_text(part)
            if kw and kw not in keywords:
                keywords.append(kw)
    return tuple(keywords)


def _normalize_multiple_choice(question, ref) -> SingleChoiceKey:
    options = _choice_options(question, ref)
    texts = [o[0] for o in options]
    correct = question.get("correct_answer")
    if correct is None or correct == "":
        flagged = [text for text, flag, _ in options if flag]
        if len(flagged) != 1:
            raise ValidationError(ref, "exactly one option must be marked correct")
        correct = flagged[0]
    return SingleChoiceKey(QuestionType.MULTIPLE_CHOICE, _resolve_option(correct, texts, ref))


def _normalize_true_false_question(question, ref) -> SingleChoiceKey:
    correct = question.get("correct_answer")
    if correct is None or correct == "":
        raise ValidationError(ref, "missing correct answer")
    value = normalize_true_false(correct)
    if value not in ("true", "false"):
        raise ValidationError(ref, f"correct answer '{correct}' is not true or false")
    return SingleChoiceKey(QuestionType.TRUE_FALSE, value)


def _normalize_select_all(question, ref) -> OptionSetKey:
    options = _choice_options(question, ref)
    texts = [o[0] for o in options]
    correct = _as_list(question.get("correct_answer"))
    if correct:
        chosen = frozenset(_resolve_option(c, texts, ref) for c in correct)
    else:
        chosen = frozenset(text for text, flag, _ in options if flag)
    if not chosen:
        raise ValidationError(ref, "at least one option must be marked correct")
    return OptionSetKey(chosen)


def _normalize_keywords(question, qtype, ref) -> KeywordKey:
    keywords = split_keywords(question.get("correct_answer"))
    if not keywords:
        raise ValidationError(ref, "no keywords given for the correct answer")
    return KeywordKey(qtype, keywords)


def _matching_pairs(question, ref) -> List[Tuple[str, str]]:
    if question.get("pairs"):
        pairs = []
        for idx, pair in enumerate(question["pairs"], start=1):
            if isinstance(pair, Mapping):
                pairs.append((pair.get("left"), pair.get("right")))
            elif isinstance(pair, (list, tuple)) and len(pair) == 2:
                pairs.append((pair[0], pair[1]))
            else:
                raise ValidationError(ref, f"pair {idx} must have two sides")
        return pairs

    options = _options(question, ref)
    rights = _as_list(question.get("correct_answer"))
    if not rights:
        # option objects carry the right-hand item in their explanation
        return [(text, explanation) for text, _, explanation in options]
    if len(rights) != len(options):
        raise ValidationError(ref, f"{len(options)} left items but {len(rights)} right items")
    return list(zip((o[0] for o in options), rights))


def _normalize_matching(question, ref) -> MatchingKey:
    pairs = []
    lefts = set()
    for idx, (left, right) in enumerate(_matching_pairs(question, ref), start=1):
        left = str(left if left is not None else "").strip()
        right = str(right if right is not None else "").strip()
        if not left or not right:
            raise ValidationError(ref, f"pair {idx} has a blank side")
        if left in lefts:
            raise ValidationError(ref, f"duplicate left item '{left}'")
        lefts.add(left)
        pairs.append((left, right))
    if len(pairs) < 2:
        raise ValidationError(ref, f"needs at least 2 pairs, got {len(pairs)}")
    return MatchingKey(tuple(pairs))


def _normalize_ordering(question, ref) -> OrderingKey:
    correct = _as_list(question.get("correct_answer"))
    if correct:
        items = [str(item if item is not None else "").strip() for item in correct]
    else:
        items = [o[0] for o in _options(question, ref)]
    if any(not item for item in items):
        raise ValidationError(ref, "ordering items must not be blank")
    if len(set(items)) != len(items):
        raise ValidationError(ref, "ordering items must be unique")
    if len(items) < 2:
        raise ValidationError(ref, f"needs at least 2 items, got {len(items)}")
    return OrderingKey(tuple(items))


def normalize_question(question: Mapping, ref=None) -> AnswerKey:
    """Build the canonical answer key for an authoring-time question.

    Raises ValidationError naming the question and the defect.
    """
    ref = _question_ref(question, ref)
    qtype = parse_question_type(question.get("type"), ref)
    text = str(question.get("text") or question.get("question") or "").strip()
    if not text:
        raise ValidationError(ref, "question text is empty")

    if qtype is QuestionType.MULTIPLE_CHOICE:
        return _normalize_multiple_choice(question, ref)
    if qtype is QuestionType.TRUE_FALSE:
        return _normalize_true_false_question(question, ref)
    if qtype is QuestionType.SELECT_ALL:
        return _normalize_select_all(question, ref)
    if qtype in KEYWORD_TYPES:
        return _normalize_keywords(question, qtype, ref)
    if qtype is QuestionType.ESSAY:
        return ManualReviewKey(str(question.get("correct_answer") or "").strip())
    if qtype is QuestionType.MATCHING:
        return _normalize_matching(question, ref)
    if qtype is QuestionType.ORDERING:
        return _normalize_ordering(question, ref)
    raise ValidationError(ref, f"unhandled question type '{qtype.value}'")


def question_points(question: Mapping, ref=None) -> float:
    ref = _question_ref(question, ref)
    raw = question.get("points", 1.0)
    try:
        points = float(raw if raw is not None else 1.0)
    except (TypeError, ValueError):
        raise ValidationError(ref, f"points '{raw}' is not a number") from None
    if points <= 0:
        raise ValidationError(ref, "points must be positive")
    return points


def validate_questions(questions: List[Mapping]) -> List[AnswerKey]:
    """Normalize every question; the first defect raises."""
    keys = []
    for idx, question in enumerate(questions, start=1):
        ref = question.get("id", idx)
        keys.append(normalize_question(question, ref=ref))
        question_points(question, ref=ref)
    return keys


def key_to_dict(key: AnswerKey) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": key.question_type.value}
    if isinstance(key, SingleChoiceKey):
        data["value"] = key.value
    elif isinstance(key, OptionSetKey):
        data["options"] = sorted(key.options)
    elif isinstance(key, KeywordKey):
        data["keywords"] = list(key.keywords)
    elif isinstance(key, ManualReviewKey):
        data["rubric"] = key.rubric
    elif isinstance(key, MatchingKey):
        data["pairs"] = [list(p) for p in key.pairs]
    elif isinstance(key, OrderingKey):
        data["items"] = list(key.items)
    else:
        raise TypeError(f"unsupported answer key {key!r}")
    return data


def key_from_dict(data: Mapping) -> AnswerKey:
    qtype = parse_question_type(data.get("type"))
    if qtype in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        return SingleChoiceKey(qtype, data["value"])
    if qtype is QuestionType.SELECT_ALL:
        return OptionSetKey(frozenset(data["options"]))
    if qtype in KEYWORD_TYPES:
        return KeywordKey(qtype, tuple(data["keywords"]))
    if qtype is QuestionType.ESSAY:
        return ManualReviewKey(data.get("rubric", ""))
    if qtype is QuestionType.MATCHING:
        return MatchingKey(tuple((left, right) for left, right in data["pairs"]))
    if qtype is QuestionType.ORDERING:
        return OrderingKey(tuple(data["items"]))
    raise TypeError(f"unsupported answer key type {qtype!r}")


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def normalize_answer(key: AnswerKey, value):
    """Bring a submitted answer into the shape its key compares against.

    Returns None for an unanswered question.
    """
    if _is_blank(value):
        return None
    if isinstance(key, SingleChoiceKey):
        if key.question_type is QuestionType.TRUE_FALSE:
            return normalize_true_false(value)
        return str(value).strip()
    if isinstance(key, OptionSetKey):
        return frozenset(str(v).strip() for v in _as_list(value) if str(v).strip())
    if isinstance(key, KeywordKey):
        return normalize_text(" ".join(str(v) for v in _as_list(value)))
    if isinstance(key, ManualReviewKey):
        return str(value).strip()
    if isinstance(key, MatchingKey):
        if isinstance(value, Mapping):
            return {str(k).strip(): str(v).strip() for k, v in value.items() if v is not None}
        if not isinstance(value, (list, tuple)):
            # any other shape can never match a key
            return {}
        items = list(value)
        if items and all(isinstance(i, (list, tuple)) and len(i) == 2 for i in items):
            return {str(k).strip(): str(v).strip() for k, v in items}
        # a plain list gives the right items by position of the left items
        lefts = [left for left, _ in key.pairs]
        return {left: str(v).strip() for left, v in zip(lefts, items) if v is not None}
    if isinstance(key, OrderingKey):
        return tuple(str(v).strip() for v in _as_list(value))
    raise TypeError(f"unsupported answer key {key!r}")
