import argparse
import random
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from sqlmodel import select

from quizknow.auth import create_user
from quizknow.db import get_session, init_db
from quizknow.errors import QuizError
from quizknow.logging_config import setup_logging
from quizknow.models import User, Quiz
from quizknow.quizzes import create_quiz, delete_quiz, publish_quiz, get_questions_for_quiz
from quizknow.sessions import start_session, submit_session


SEED_USER_PREFIX = "seed_student"
SEED_INSTRUCTOR_EMAIL = "seed_instructor@example.com"
SEED_QUIZ_PREFIX = "[SEED]"
SEED_PASSWORD = "seed-password"

DEMO_QUESTIONS = [
    {
        "type": "multiple-choice",
        "text": "What is the capital of France?",
        "options": ["Paris", "Lyon", "Marseille"],
        "correct_answer": "Paris",
    },
    {
        "type": "true-false",
        "text": "The Seine flows through Paris.",
        "correct_answer": "true",
    },
    {
        "type": "select-all",
        "text": "Which of these are French cities?",
        "options": ["Nice", "Porto", "Lille", "Genoa"],
        "correct_answer": ["Nice", "Lille"],
    },
    {
        "type": "short-answer",
        "text": "Name the tower built for the 1889 World's Fair.",
        "correct_answer": "Eiffel",
    },
    {
        "type": "fill-in-the-blank",
        "text": "The Louvre is a [blank].",
        "correct_answer": "museum, gallery",
    },
    {
        "type": "matching",
        "text": "Match each city to its region.",
        "pairs": [
            {"left": "Lyon", "right": "Auvergne-Rhône-Alpes"},
            {"left": "Rennes", "right": "Brittany"},
            {"left": "Nice", "right": "Provence"},
        ],
    },
    {
        "type": "ordering",
        "text": "Order these cities from north to south.",
        "options": ["Lille", "Paris", "Lyon", "Marseille"],
    },
    {
        "type": "essay",
        "text": "Describe one thing you would visit in Paris and why.",
        "correct_answer": "Mentions a landmark and gives a reason",
        "points": 2,
    },
]


def _get_or_create(session, email, full_name, role):
    user = session.exec(select(User).where(User.email == email)).first()
    if user:
        return user
    return create_user(email, SEED_PASSWORD, full_name=full_name, role=role)


def _correct_answer(question):
    if question["type"] == "matching":
        return {p["left"]: p["right"] for p in question["pairs"]}
    if question["type"] == "ordering":
        return question["options"]
    if question["type"] in ("short-answer", "fill-in-the-blank"):
        return question["correct_answer"].split(",")[0]
    if question["type"] == "essay":
        return "The Louvre, to see the paintings."
    return question["correct_answer"]


def seed(students: int, attempts: int):
    with get_session() as session:
        instructor = _get_or_create(session, SEED_INSTRUCTOR_EMAIL, "Seed Instructor", "instructor")
        existing = session.exec(select(Quiz).where(Quiz.author_id == instructor.id)).all()
        if any(q.title.startswith(SEED_QUIZ_PREFIX) for q in existing):
            raise SystemExit("Seed quiz already exists. Run with --cleanup first.")
        users = [
            _get_or_create(session, f"{SEED_USER_PREFIX}_{i + 1}@example.com", f"Seed Student {i + 1}", "student")
            for i in range(students)
        ]

    quiz = create_quiz(
        instructor.id,
        f"{SEED_QUIZ_PREFIX} France basics",
        DEMO_QUESTIONS,
        description="Every question type in one quiz.",
        max_attempts=attempts,
    )
    publish_quiz(quiz.id, instructor.id)
    questions = get_questions_for_quiz(quiz.id)

    for user in users:
        for _ in range(random.randint(1, attempts)):
            quiz_session = start_session(quiz.id, user.id)
            # each question is answered correctly about 60% of the time, otherwise left blank
            answers = {
                q.id: _correct_answer(question)
                for q, question in zip(questions, DEMO_QUESTIONS)
                if random.random() < 0.6
            }
            submit_session(quiz_session.id, answers)

    print(f"Seed complete: quiz #{quiz.id}, students={students}, instructor={SEED_INSTRUCTOR_EMAIL}")


def cleanup():
    with get_session() as session:
        instructor = session.exec(select(User).where(User.email == SEED_INSTRUCTOR_EMAIL)).first()
        if not instructor:
            raise SystemExit("Nothing to clean up.")
        quizzes = session.exec(select(Quiz).where(Quiz.author_id == instructor.id)).all()
    removed = 0
    for quiz in quizzes:
        if quiz.title.startswith(SEED_QUIZ_PREFIX):
            delete_quiz(quiz.id, instructor.id)
            removed += 1
    print(f"Removed {removed} seed quizzes.")


def main():
    parser = argparse.ArgumentParser(description="Seed a demo quiz with scored attempts.")
    parser.add_argument("--students", type=int, default=5)
    parser.add_argument("--attempts", type=int, default=2, help="Max attempts per student.")
    parser.add_argument("--cleanup", action="store_true", help="Remove seeded quizzes instead.")
    args = parser.parse_args()

    random.seed(42)
    setup_logging()
    init_db()

    try:
        if args.cleanup:
            cleanup()
        else:
            seed(args.students, max(1, args.attempts))
    except QuizError as e:
        raise SystemExit(f"Seeding failed: {e}")


if __name__ == "__main__":
    main()
