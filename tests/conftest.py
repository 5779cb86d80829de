import os
import uuid

import pytest

TEST_DB = os.path.join(os.getcwd(), 'test_quizknow.db')
# must be set before quizknow.settings is imported
os.environ['DATABASE_URL'] = f'sqlite:///{TEST_DB}'

from quizknow.db import init_db, get_session  # noqa: E402
from quizknow.models import User  # noqa: E402
from quizknow.quizzes import create_quiz, publish_quiz, get_questions_for_quiz  # noqa: E402


@pytest.fixture(scope='session', autouse=True)
def reset_db():
    # Ensure a clean DB for the test session
    try:
        os.remove(TEST_DB)
    except FileNotFoundError:
        pass
    init_db()
    yield
    try:
        os.remove(TEST_DB)
    except OSError:
        pass


@pytest.fixture
def make_user():
    def _make(role='student'):
        with get_session() as s:
            user = User(email=f'{role}_{uuid.uuid4().hex[:8]}@example.com', password_hash='x',
                        full_name=role.title(), role=role)
            s.add(user)
            s.commit()
            s.refresh(user)
            return user
    return _make


@pytest.fixture
def instructor(make_user):
    return make_user('instructor')


@pytest.fixture
def student(make_user):
    return make_user('student')


@pytest.fixture
def make_quiz(instructor):
    """Create and publish a quiz; returns (quiz, questions)."""
    def _make(questions, publish=True, **settings):
        quiz = create_quiz(instructor.id, 'Test Quiz', questions, **settings)
        if publish:
            quiz = publish_quiz(quiz.id, instructor.id)
        return quiz, get_questions_for_quiz(quiz.id)
    return _make
