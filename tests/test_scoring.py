from itertools import permutations

import pytest

from quizknow.questions import normalize_question
from quizknow.scoring import KeyedQuestion, is_correct, round_percentage, score_answers


def _key(question):
    return normalize_question(question)


SELECT_ALL = _key({'type': 'select-all', 'text': 'Pick', 'options': ['opt1', 'opt2', 'opt3'],
                   'correct_answer': ['opt1', 'opt3']})
ORDERING = _key({'type': 'ordering', 'text': 'Order', 'options': ['A', 'B', 'C', 'D']})
MATCHING = _key({'type': 'matching', 'text': 'Match', 'pairs': [['dog', 'bark'], ['cat', 'meow'], ['cow', 'moo']]})
SHORT = _key({'type': 'short-answer', 'text': 'Tower?', 'correct_answer': 'eiffel, iron lady'})
MC = _key({'type': 'multiple-choice', 'text': 'Capital?', 'options': ['Paris', 'Lyon'], 'correct_answer': 'Paris'})
TF = _key({'type': 'true-false', 'text': 'Sky is blue', 'correct_answer': 'true'})
ESSAY = _key({'type': 'essay', 'text': 'Discuss.'})


def test_multiple_choice_exact_after_trim():
    assert is_correct(MC, ' Paris ') is True
    assert is_correct(MC, 'paris') is False
    assert is_correct(MC, 'Lyon') is False


def test_true_false_folds_spellings():
    assert is_correct(TF, True) is True
    assert is_correct(TF, 'TRUE') is True
    assert is_correct(TF, 'false') is False


@pytest.mark.parametrize('submitted', [['opt1', 'opt3'], ['opt3', 'opt1'], {'opt3', 'opt1'}, ('opt1', 'opt3', 'opt1')])
def test_select_all_equal_set_in_any_order_is_correct(submitted):
    assert is_correct(SELECT_ALL, submitted) is True


@pytest.mark.parametrize('submitted', [['opt1'], ['opt3'], ['opt1', 'opt2', 'opt3'], ['opt2'], 'opt1'])
def test_select_all_subset_or_superset_is_incorrect(submitted):
    assert is_correct(SELECT_ALL, submitted) is False


def test_ordering_only_exact_sequence_scores():
    correct = ['A', 'B', 'C', 'D']
    assert is_correct(ORDERING, correct) is True
    for perm in permutations(correct):
        if list(perm) != correct:
            assert is_correct(ORDERING, list(perm)) is False
    assert is_correct(ORDERING, ['A', 'B', 'C']) is False


def test_matching_is_all_or_nothing():
    assert is_correct(MATCHING, {'dog': 'bark', 'cat': 'meow', 'cow': 'moo'}) is True
    assert is_correct(MATCHING, ['bark', 'meow', 'moo']) is True
    assert is_correct(MATCHING, {'dog': 'bark', 'cat': 'moo', 'cow': 'meow'}) is False
    assert is_correct(MATCHING, {'dog': 'bark', 'cat': 'meow'}) is False


def test_keyword_match_any_keyword_case_insensitive():
    assert is_correct(SHORT, 'It is the EIFFEL tower') is True
    assert is_correct(SHORT, 'They call it the Iron Lady!') is True
    assert is_correct(SHORT, 'Big Ben') is False


def test_essay_is_never_auto_scored():
    assert is_correct(ESSAY, 'A thoughtful essay') is None
    assert is_correct(ESSAY, None) is None


def test_unanswered_is_incorrect_not_an_error():
    result = score_answers([KeyedQuestion(1, MC), KeyedQuestion(2, ORDERING)], {})
    assert [r.is_correct for r in result.results] == [False, False]
    assert result.percentage == 0


def test_essay_excluded_from_denominator():
    questions = [KeyedQuestion(1, MC, 1), KeyedQuestion(2, ESSAY, 5)]
    result = score_answers(questions, {1: 'Paris', 2: 'My essay'})
    assert result.score == 1
    assert result.max_score == 1
    assert result.percentage == 100
    assert result.pending_review is True
    essay = result.by_question()[2]
    assert essay.pending_review and essay.is_correct is None


def test_points_weight_the_percentage():
    questions = [KeyedQuestion(1, MC, 3), KeyedQuestion(2, TF, 1)]
    result = score_answers(questions, {1: 'Paris', 2: 'false'})
    assert result.score == 3
    assert result.max_score == 4
    assert result.percentage == 75


def test_round_half_up():
    assert round_percentage(1, 8) == 13  # 12.5
    assert round_percentage(2, 3) == 67
    assert round_percentage(1, 3) == 33
    assert round_percentage(0, 0) == 0


def test_scoring_is_pure():
    questions = [KeyedQuestion(1, SELECT_ALL), KeyedQuestion(2, MATCHING)]
    answers = {1: ['opt1', 'opt3'], 2: {'dog': 'bark'}}
    assert score_answers(questions, answers) == score_answers(questions, answers)
    assert answers == {1: ['opt1', 'opt3'], 2: {'dog': 'bark'}}


@pytest.mark.parametrize('submitted', [5, 'bark', 3.5, True])
def test_matching_odd_answer_shapes_are_incorrect(submitted):
    assert is_correct(MATCHING, submitted) is False
