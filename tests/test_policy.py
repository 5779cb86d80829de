import pytest

from quizknow.errors import AttemptLimitExceeded
from quizknow.policy import attempts_remaining, can_start_attempt, check_attempt_allowed


def test_single_attempt_quiz():
    assert can_start_attempt(1, 0) is True
    assert can_start_attempt(1, 1) is False


def test_zero_means_unlimited():
    for existing in (0, 1, 50, 10_000):
        assert can_start_attempt(0, existing) is True
    assert attempts_remaining(0, 7) is None


def test_check_attempt_allowed_raises_with_counts():
    check_attempt_allowed(3, 2)
    with pytest.raises(AttemptLimitExceeded) as exc:
        check_attempt_allowed(3, 3)
    assert exc.value.count == 3 and exc.value.limit == 3
    assert '3/3' in str(exc.value)


def test_attempts_remaining_never_negative():
    assert attempts_remaining(3, 1) == 2
    assert attempts_remaining(2, 5) == 0
