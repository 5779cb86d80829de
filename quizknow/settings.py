import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./quizknow.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Defaults applied to new quizzes when the author leaves a setting out
DEFAULT_TIME_LIMIT = int(os.getenv("QUIZ_DEFAULT_TIME_LIMIT", 30))
DEFAULT_MAX_ATTEMPTS = int(os.getenv("QUIZ_DEFAULT_MAX_ATTEMPTS", 1))
DEFAULT_PASSING_SCORE = int(os.getenv("QUIZ_DEFAULT_PASSING_SCORE", 70))

AUTO_SUBMIT_ON_EXPIRY = _env_bool("QUIZ_AUTO_SUBMIT_ON_EXPIRY")
