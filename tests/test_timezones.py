from datetime import timezone
from quizknow.db import init_db, get_session
from quizknow.models import User, Quiz, Question, QuizSession, Submission


def test_datetime_fields_are_timezone_aware():
    init_db()
    with get_session() as s:
        instructor = User(email='tz_instructor@example.com', password_hash='x', full_name='T', role='instructor')
        s.add(instructor)
        s.flush()  # ensure defaults applied but before DB roundtrip
        # in-memory default should be timezone-aware
        assert instructor.created_at.tzinfo is not None and instructor.created_at.tzinfo == timezone.utc
        s.commit()

        quiz = Quiz(title='TZ Quiz', author_id=instructor.id)
        s.add(quiz)
        s.flush()
        assert (
            quiz.created_at.tzinfo is not None and quiz.created_at.tzinfo == timezone.utc
        )
        s.commit()

        question = Question(quiz_id=quiz.id, type='essay', text='Why?', answer_key='{"type": "essay"}')
        s.add(question)
        student = User(email='tz_student@example.com', password_hash='x', full_name='S', role='student')
        s.add(student)
        s.commit()

        quiz_session = QuizSession(quiz_id=quiz.id, student_id=student.id)
        s.add(quiz_session)
        s.flush()
        assert (
            quiz_session.started_at is not None and quiz_session.started_at.tzinfo is not None
            and quiz_session.started_at.tzinfo == timezone.utc
        )
        s.commit()

        submission = Submission(quiz_id=quiz.id, student_id=student.id, session_id=quiz_session.id, answers='[]')
        s.add(submission)
        s.flush()
        assert submission.submitted_at.tzinfo == timezone.utc
        s.commit()
