"""Attempt policy: may a student start another attempt at a quiz?"""
from typing import Optional

from quizknow.errors import AttemptLimitExceeded


def can_start_attempt(max_attempts: int, existing_count: int) -> bool:
    # 0 means unlimited
    return max_attempts == 0 or existing_count < max_attempts


def check_attempt_allowed(max_attempts: int, existing_count: int):
    if not can_start_attempt(max_attempts, existing_count):
        raise AttemptLimitExceeded(existing_count, max_attempts)


def attempts_remaining(max_attempts: int, existing_count: int) -> Optional[int]:
    if max_attempts == 0:
        return None
    return max(0, max_attempts - existing_count)
