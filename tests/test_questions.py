import pytest

from quizknow.errors import ValidationError
from quizknow.questions import (
    KeywordKey,
    ManualReviewKey,
    MatchingKey,
    OptionSetKey,
    OrderingKey,
    QuestionType,
    SingleChoiceKey,
    key_from_dict,
    key_to_dict,
    normalize_answer,
    normalize_question,
    validate_questions,
)


ALL_TYPES = [
    {'type': 'multiple-choice', 'text': 'Capital?', 'options': ['Paris', 'Lyon'], 'correct_answer': 'Paris'},
    {'type': 'true-false', 'text': 'Sky is blue', 'correct_answer': True},
    {'type': 'short-answer', 'text': 'Tower?', 'correct_answer': 'Eiffel, eiffel tower'},
    {'type': 'essay', 'text': 'Discuss.', 'correct_answer': 'Mentions two causes'},
    {'type': 'fill-in-the-blank', 'text': 'The [blank] is red', 'correct_answer': 'apple'},
    {'type': 'select-all', 'text': 'Pick', 'options': ['opt1', 'opt2', 'opt3'], 'correct_answer': ['opt1', 'opt3']},
    {'type': 'matching', 'text': 'Match', 'options': ['dog', 'cat'], 'correct_answer': ['bark', 'meow']},
    {'type': 'ordering', 'text': 'Order', 'options': ['A', 'B', 'C']},
]


@pytest.mark.parametrize('question', ALL_TYPES, ids=[q['type'] for q in ALL_TYPES])
def test_normalize_is_deterministic(question):
    first = normalize_question(question)
    second = normalize_question(dict(question))
    assert first == second
    assert key_to_dict(first) == key_to_dict(second)


@pytest.mark.parametrize('question', ALL_TYPES, ids=[q['type'] for q in ALL_TYPES])
def test_key_survives_storage(question):
    key = normalize_question(question)
    assert key_from_dict(key_to_dict(key)) == key


def test_multiple_choice_key_from_correct_answer_or_flag():
    assert normalize_question(ALL_TYPES[0]) == SingleChoiceKey(QuestionType.MULTIPLE_CHOICE, 'Paris')
    flagged = {
        'type': 'multiple-choice',
        'text': 'Capital?',
        'options': [{'text': 'Paris', 'isCorrect': True}, {'text': 'Lyon', 'isCorrect': False}],
    }
    assert normalize_question(flagged).value == 'Paris'


def test_multiple_choice_accepts_option_index():
    q = {'type': 'multiple-choice', 'text': 'Capital?', 'options': ['Paris', 'Lyon'], 'correct_answer': 1}
    assert normalize_question(q).value == 'Lyon'


def test_true_false_spellings():
    for raw, expected in ((True, 'true'), ('False', 'false'), ('yes', 'true'), ('0', 'false')):
        key = normalize_question({'type': 'true-false', 'text': 'x', 'correct_answer': raw})
        assert key.value == expected


def test_select_all_key_is_a_set():
    key = normalize_question(ALL_TYPES[5])
    assert key == OptionSetKey(frozenset({'opt1', 'opt3'}))


def test_keywords_are_split_trimmed_and_folded():
    key = normalize_question({'type': 'short-answer', 'text': 'x', 'correct_answer': ' Éiffel ,  Tower, eiffel'})
    assert key == KeywordKey(QuestionType.SHORT_ANSWER, ('eiffel', 'tower'))


def test_essay_key_needs_review():
    assert normalize_question(ALL_TYPES[3]) == ManualReviewKey('Mentions two causes')


def test_matching_shapes_agree():
    parallel = normalize_question(ALL_TYPES[6])
    pairs = normalize_question({
        'type': 'matching', 'text': 'Match',
        'pairs': [{'left': 'dog', 'right': 'bark'}, {'left': 'cat', 'right': 'meow'}],
    })
    explained = normalize_question({
        'type': 'matching', 'text': 'Match',
        'options': [{'text': 'dog', 'explanation': 'bark'}, {'text': 'cat', 'explanation': 'meow'}],
    })
    assert parallel == pairs == explained == MatchingKey((('dog', 'bark'), ('cat', 'meow')))


def test_ordering_uses_correct_answer_when_given():
    key = normalize_question({'type': 'ordering', 'text': 'x', 'options': ['C', 'A', 'B'],
                              'correct_answer': ['A', 'B', 'C']})
    assert key == OrderingKey(('A', 'B', 'C'))


def test_type_aliases():
    key = normalize_question({'type': 'mcq', 'text': 'x', 'options': ['a', 'b'], 'correct_answer': 'a'})
    assert key.question_type is QuestionType.MULTIPLE_CHOICE


@pytest.mark.parametrize('question, defect', [
    ({'type': 'multiple-choice', 'text': 'x', 'options': ['only'], 'correct_answer': 'only'}, 'at least 2 options'),
    ({'type': 'select-all', 'text': 'x', 'options': ['a'], 'correct_answer': ['a']}, 'at least 2 options'),
    ({'type': 'multiple-choice', 'text': 'x', 'options': ['a', 'b'], 'correct_answer': 'c'}, 'not one of the options'),
    ({'type': 'multiple-choice', 'text': 'x', 'options': ['a', 'a'], 'correct_answer': 'a'}, 'duplicate option'),
    ({'type': 'multiple-choice', 'text': 'x', 'options': ['a', ' '], 'correct_answer': 'a'}, 'blank'),
    ({'type': 'multiple-choice', 'text': 'x', 'options': ['a', 'b']}, 'exactly one option'),
    ({'type': 'select-all', 'text': 'x', 'options': ['a', 'b'], 'correct_answer': []}, 'at least one option'),
    ({'type': 'true-false', 'text': 'x', 'correct_answer': 'maybe'}, 'not true or false'),
    ({'type': 'short-answer', 'text': 'x', 'correct_answer': ' , '}, 'no keywords'),
    ({'type': 'matching', 'text': 'x', 'options': ['a', 'b'], 'correct_answer': ['1']}, '2 left items but 1'),
    ({'type': 'matching', 'text': 'x', 'pairs': [['a', '1']]}, 'at least 2 pairs'),
    ({'type': 'ordering', 'text': 'x', 'options': ['a']}, 'at least 2 items'),
    ({'type': 'ordering', 'text': 'x', 'correct_answer': ['a', 'a']}, 'unique'),
    ({'type': 'matching', 'text': 'x', 'pairs': [['a', 'b', 'c'], ['d', 'e']]}, 'pair 1 must have two sides'),
    ({'type': 'matching', 'text': 'x', 'pairs': ['ab', ['d', 'e']]}, 'pair 1 must have two sides'),
    ({'type': 'hotspot', 'text': 'x'}, 'unknown question type'),
    ({'type': 'essay', 'text': '  '}, 'text is empty'),
])
def test_validation_errors_name_question_and_defect(question, defect):
    question = dict(question, id=42)
    with pytest.raises(ValidationError) as exc:
        normalize_question(question)
    assert exc.value.question_ref == 42
    assert defect in exc.value.defect
    assert 'Question 42' in str(exc.value)


def test_validate_questions_reports_position():
    good = ALL_TYPES[0]
    bad = {'type': 'multiple-choice', 'text': 'x', 'options': ['a']}
    with pytest.raises(ValidationError) as exc:
        validate_questions([good, bad])
    assert exc.value.question_ref == 2


def test_validate_questions_rejects_bad_points():
    with pytest.raises(ValidationError):
        validate_questions([dict(ALL_TYPES[0], points=0)])


def test_normalize_answer_blank_is_unanswered():
    key = normalize_question(ALL_TYPES[5])
    for blank in (None, '', '   ', [], {}):
        assert normalize_answer(key, blank) is None


def test_normalize_answer_matching_list_is_positional():
    key = normalize_question(ALL_TYPES[6])
    assert normalize_answer(key, ['bark', 'meow']) == {'dog': 'bark', 'cat': 'meow'}
    assert normalize_answer(key, [['cat', 'meow'], ['dog', 'bark']]) == {'dog': 'bark', 'cat': 'meow'}
