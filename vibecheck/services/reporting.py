import logging
import time
from collections import deque
from typing import Protocol

logger = logging.getLogger("vibecheck.reporting")


class ErrorReporter(Protocol):
    """Sink for exceptions and breadcrumbs emitted by the session controller."""

    def capture_exception(self, exc: BaseException, **context) -> None: ...

    def add_breadcrumb(self, category: str, message: str, **data) -> None: ...


class LoggingReporter:
    """Keeps the last *limit* breadcrumbs and logs them with each captured exception."""

    def __init__(self, limit: int = 50) -> None:
        self.breadcrumbs: deque[dict] = deque(maxlen=limit)

    def add_breadcrumb(self, category: str, message: str, **data) -> None:
        self.breadcrumbs.append(
            {"ts": time.time(), "category": category, "message": message, "data": data}
        )

    def capture_exception(self, exc: BaseException, **context) -> None:
        trail = " | ".join(f"{b['category']}:{b['message']}" for b in self.breadcrumbs)
        logger.error(
            "event=exception type=%s error=%s context=%s breadcrumbs=[%s]",
            type(exc).__name__,
            exc,
            context,
            trail,
            exc_info=exc,
        )
