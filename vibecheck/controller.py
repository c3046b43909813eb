import asyncio
import dataclasses
import logging
from functools import partial
from typing import Callable

from vibecheck.capture import Recognizer
from vibecheck.errors import AnalysisError, InvalidTransition, SessionBusy, UnsupportedEnvironment
from vibecheck.languages import get_language_pack
from vibecheck.models import AnalysisOutcome, Language, RecognitionEvent, Session, SessionError
from vibecheck.services.analyzer import FeedbackAnalyzer
from vibecheck.services.reporting import ErrorReporter
from vibecheck.services.responder import Responder

logger = logging.getLogger("vibecheck.session")

SessionListener = Callable[[Session], None]


class FeedbackSessionController:
    """Owns the one feedback session: capture, analysis and response.

    Phases::

        idle --start--> listening --stop--> analyzing --done/failed--> idle
                                      \\--(empty transcript)--> idle
        any  --set_language--> idle

    Every change replaces ``state`` with a new immutable :class:`Session`
    and is pushed to the registered listeners.  Each capture cycle gets a
    new generation; recognition results and analysis replies tagged with an
    older generation never touch the session.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        analyzer: FeedbackAnalyzer,
        responder: Responder,
        recognizer_factory: Callable[[], Recognizer],
        *,
        language: Language | str = Language.EN,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.responder = responder
        self.recognizer_factory = recognizer_factory
        self.reporter = reporter
        self._state = Session(language=Language(language))
        self._recognizer: Recognizer | None = None
        self._analysis_task: asyncio.Task | None = None
        self._listeners: list[SessionListener] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> Session:
        return self._state

    @property
    def recognizer(self) -> Recognizer | None:
        """The recognizer of the running capture, if any."""
        return self._recognizer

    def snapshot(self) -> dict:
        """JSON-ready view of the session for the presenter."""
        data = self._state.to_dict()
        data["locale"] = get_language_pack(self._state.language).locale
        return data

    def subscribe(self, listener: SessionListener) -> None:
        """Register *listener*, called with the new state after every change."""
        self._listeners.append(listener)

    def _update(self, **changes) -> Session:
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("event=listener_failed")
        return self._state

    def _breadcrumb(self, message: str, **data) -> None:
        if self.reporter is not None:
            self.reporter.add_breadcrumb("session", message, **data)

    def _report(self, exc: BaseException, **context) -> None:
        if self.reporter is not None:
            self.reporter.capture_exception(exc, **context)

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def start(self) -> Session:
        """Begin a new capture cycle.

        Raises ``SessionBusy`` while a capture or analysis is running and
        ``UnsupportedEnvironment`` when no recognizer is available (the
        session is then back in idle).  Raises ``InvalidTransition`` when a
        language change lands while the recognizer is still starting.
        """
        if self._state.busy:
            raise SessionBusy("an analysis is still in progress")
        if self._state.listening:
            raise SessionBusy("already listening")

        generation = self._state.generation + 1
        language = self._state.language
        # Claim the phase before the first await; a concurrent start now
        # sees listening=True.  The reset also precedes the stream, so no
        # result can arrive ahead of it.
        self._update(
            generation=generation,
            transcript="",
            analysis=None,
            error=None,
            listening=True,
        )
        self._breadcrumb("capture started", generation=generation, language=language.value)

        try:
            await self.responder.cancel_speech()
            if self._state.generation != generation:
                raise InvalidTransition("language changed while capture was starting")
            recognizer = self.recognizer_factory()
            await recognizer.start(
                get_language_pack(language).locale,
                partial(self._on_result, generation),
            )
        except InvalidTransition:
            logger.info("event=capture_start_superseded generation=%d", generation)
            raise
        except asyncio.CancelledError:
            if self._state.generation == generation:
                self._update(listening=False)
            raise
        except Exception as exc:
            if self._state.generation == generation:
                self._update(listening=False)
            if isinstance(exc, UnsupportedEnvironment):
                logger.warning("event=capture_unsupported error=%s", exc)
            else:
                logger.exception("event=capture_start_failed")
            self._report(exc, phase="capture", generation=generation)
            raise

        if self._state.generation != generation:
            # set_language ran while the recognizer was starting
            logger.info("event=capture_start_superseded generation=%d", generation)
            await recognizer.abort()
            raise InvalidTransition("language changed while capture was starting")

        self._recognizer = recognizer
        logger.info("event=capture_started generation=%d language=%s", generation, language.value)
        return self._state

    def _on_result(self, generation: int, event: RecognitionEvent) -> None:
        if generation != self._state.generation or not self._state.listening:
            logger.debug("event=result_discarded generation=%d", generation)
            return
        self._update(transcript=event.transcript)

    async def stop(self) -> AnalysisOutcome | None:
        """End the capture and analyze the transcript.

        Returns ``None`` when the transcript is empty (nothing is analyzed),
        otherwise the outcome of the single analysis call.  A recognizer
        that fails while stopping yields a ``capture_error`` outcome.
        """
        if not self._state.listening:
            raise InvalidTransition("not listening")
        if self._recognizer is None:
            raise InvalidTransition("capture is starting or already stopping")

        generation = self._state.generation
        recognizer, self._recognizer = self._recognizer, None
        failure: Exception | None = None
        try:
            await recognizer.stop()
        except Exception as exc:
            failure = exc
            logger.exception("event=capture_stop_failed generation=%d", generation)
            self._report(exc, phase="capture", generation=generation)
        finally:
            if self._state.generation == generation:
                self._update(listening=False)

        if self._state.generation != generation:
            # set_language ran while the recognizer was stopping
            return AnalysisOutcome(generation=generation, kind="stale")

        if failure is not None:
            self._update(error=SessionError(kind="capture_error", message=str(failure)))
            return AnalysisOutcome(generation=generation, kind="capture_error", message=str(failure))

        text = self._state.transcript
        if not text.strip():
            logger.info("event=capture_empty generation=%d", generation)
            return None

        self._update(busy=True)
        self._breadcrumb("analysis started", generation=generation, chars=len(text))
        task = asyncio.get_running_loop().create_task(
            self._analyze(text, self._state.language, generation), name="analysis"
        )
        self._analysis_task = task
        await asyncio.wait({task})
        if task.cancelled():
            return AnalysisOutcome(generation=generation, kind="cancelled")
        return task.result()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _analyze(self, text: str, language: Language, generation: int) -> AnalysisOutcome:
        try:
            record = await self.analyzer.analyze(text, language)
        except AnalysisError as exc:
            logger.warning(
                "event=analysis_failed generation=%d kind=%s error=%s",
                generation,
                exc.kind,
                exc,
            )
            self._report(exc, phase="analysis", generation=generation, kind=exc.kind)
            if self._state.generation != generation:
                return AnalysisOutcome(generation=generation, kind="stale", message=str(exc))
            self._update(busy=False, error=SessionError(kind=exc.kind, message=str(exc)))
            return AnalysisOutcome(generation=generation, kind=exc.kind, message=str(exc))
        except BaseException:
            # cancellation or a bug; busy must not stick
            if self._state.generation == generation:
                self._update(busy=False)
            raise

        if self._state.generation != generation:
            logger.info("event=analysis_stale generation=%d current=%d", generation, self._state.generation)
            return AnalysisOutcome(generation=generation, kind="stale")

        self._update(busy=False, analysis=record)
        if record is not None:
            self.responder.respond(record, language)
            self.responder.notify(record)
        return AnalysisOutcome(generation=generation, record=record)

    # ------------------------------------------------------------------
    # Language
    # ------------------------------------------------------------------

    async def set_language(self, language: Language | str) -> Session:
        """Switch language from any phase.

        Aborts a running capture (its transcript is not analyzed), cancels
        an outstanding analysis and any speech, clears transcript, analysis
        and error, and lands in idle.  Raises ``ValueError`` for an unknown
        language code.
        """
        language = Language(language)
        generation = self._state.generation + 1

        recognizer, self._recognizer = self._recognizer, None
        task, self._analysis_task = self._analysis_task, None

        self._update(
            language=language,
            generation=generation,
            listening=False,
            busy=False,
            transcript="",
            analysis=None,
            error=None,
        )
        self._breadcrumb("language changed", generation=generation, language=language.value)
        logger.info("event=language_changed language=%s generation=%d", language.value, generation)

        if task is not None and not task.done():
            task.cancel()
        if recognizer is not None:
            await recognizer.abort()
        await self.responder.cancel_speech()
        return self._state

    async def aclose(self) -> None:
        """Halt capture and analysis; used on shutdown."""
        if self._recognizer is not None:
            recognizer, self._recognizer = self._recognizer, None
            await recognizer.abort()
        if self._analysis_task is not None and not self._analysis_task.done():
            self._analysis_task.cancel()
