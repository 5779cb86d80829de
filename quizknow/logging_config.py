import logging

from quizknow import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str | None = None):
    """Configure the root logger once per process (Streamlit reruns call this on every page load)."""
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
    logging.getLogger("passlib").setLevel(logging.ERROR)
    _configured = True
