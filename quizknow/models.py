from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone

def now_utc():
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    password_hash: str
    full_name: Optional[str] = None
    role: str = Field(default="student")  # admin|instructor|student
    created_at: datetime = Field(default_factory=now_utc)

class Quiz(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    author_id: int = Field(foreign_key="user.id")
    published: bool = Field(default=False)
    time_limit: int = Field(default=30)  # minutes, 0 = untimed
    max_attempts: int = Field(default=1)  # 0 = unlimited
    passing_score: int = Field(default=70)
    randomize_questions: bool = Field(default=False)
    show_correct_answers: bool = Field(default=True)
    created_at: datetime = Field(default_factory=now_utc)

class Question(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    position: int = Field(default=0)
    type: str
    text: str
    options: Optional[str] = None  # JSON, authoring shape
    correct_answer: Optional[str] = None  # JSON, authoring shape
    answer_key: str  # JSON, canonical key
    points: float = Field(default=1.0)
    explanation: Optional[str] = None

class QuizSession(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    student_id: int = Field(foreign_key="user.id", index=True)
    status: str = Field(default="in-progress")  # in-progress|completed
    answers: str = Field(default="{}")  # JSON: {question_id: answer}
    question_order: str = Field(default="[]")  # JSON list of question ids
    time_limit_seconds: Optional[int] = None
    started_at: datetime = Field(default_factory=now_utc)
    submitted_at: Optional[datetime] = None

class Submission(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    student_id: int = Field(foreign_key="user.id", index=True)
    session_id: int = Field(foreign_key="quizsession.id", unique=True)
    answers: str  # JSON: list of {question_id, answer, is_correct, pending_review, points}
    score: float = 0.0
    max_score: float = 0.0
    percentage: int = 0
    passed: bool = False
    pending_review: bool = False
    submitted_at: datetime = Field(default_factory=now_utc)
