"""Errors raised by the quiz core.

Every error here is a final decision handed back to the caller; nothing in the
core retries. Pages show ``str(exc)`` to the user.
"""


class QuizError(Exception):
    """Base class for quiz workflow errors."""


class ValidationError(QuizError):
    """A question (or a whole quiz) is structurally invalid."""

    def __init__(self, question_ref, defect: str, subject: str = "Question"):
        self.question_ref = question_ref
        self.defect = defect
        super().__init__(f"{subject} {question_ref}: {defect}")


class SessionClosed(QuizError):
    """An answer was sent to a session that is no longer in progress."""

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already closed")


class AlreadySubmitted(QuizError):
    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id} was already submitted")


class AttemptLimitExceeded(QuizError):
    def __init__(self, count: int, limit: int):
        self.count = count
        self.limit = limit
        super().__init__(f"Attempt limit reached ({count}/{limit})")


class NotFound(QuizError, LookupError):
    def __init__(self, kind: str, ref):
        self.kind = kind
        self.ref = ref
        super().__init__(f"{kind} not found: {ref}")
