import logging
from typing import Callable, Protocol

from vibecheck.errors import UnsupportedEnvironment
from vibecheck.models import RecognitionEvent

logger = logging.getLogger("vibecheck.capture")

ResultCallback = Callable[[RecognitionEvent], None]


class Recognizer(Protocol):
    """A continuous, interim-results speech-to-text stream.

    ``on_result`` is always invoked on the event loop thread.
    """

    async def start(self, locale: str, on_result: ResultCallback) -> None:
        """Begin streaming.  Raises ``UnsupportedEnvironment`` if unavailable."""
        ...

    async def stop(self) -> None:
        """Halt the stream, delivering any final result before returning."""
        ...

    async def abort(self) -> None:
        """Halt the stream and discard anything not yet delivered."""
        ...


class ClientRecognizer:
    """Recognition runs in the presenter (the browser's speech API).

    The presenter streams result batches over the session websocket and the
    route hands each one to :meth:`feed`.  Starting fails when no presenter
    is connected to do the listening.
    """

    def __init__(self, is_available: Callable[[], bool]) -> None:
        self._is_available = is_available
        self._on_result: ResultCallback | None = None
        self.locale: str | None = None
        self.active = False

    async def start(self, locale: str, on_result: ResultCallback) -> None:
        if not self._is_available():
            raise UnsupportedEnvironment(
                "no presenter connected to stream speech recognition results"
            )
        self.locale = locale
        self._on_result = on_result
        self.active = True
        logger.info("event=capture_start backend=client locale=%s", locale)

    def feed(self, event: RecognitionEvent) -> bool:
        """Deliver one result batch.  Returns False once the stream is halted."""
        if not self.active or self._on_result is None:
            return False
        self._on_result(event)
        return True

    async def stop(self) -> None:
        self.active = False

    async def abort(self) -> None:
        self.active = False
