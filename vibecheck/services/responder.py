import asyncio
import logging

from vibecheck.clients import WebhookClient
from vibecheck.languages import LanguagePack, get_language_pack
from vibecheck.models import FeedbackRecord, Language
from vibecheck.services.speech import SpeechSink, SpeechSynthesizer

logger = logging.getLogger("vibecheck.responder")


class Responder:
    """Speaks the record's reply and notifies the webhook.

    Both run as background tasks on the current event loop.  Errors in those
    tasks are logged and never reach the caller or the session; a sink's
    ``play`` is expected to replace whatever it is currently playing.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        sink: SpeechSink,
        webhook: WebhookClient | None = None,
    ) -> None:
        self.synthesizer = synthesizer
        self.sink = sink
        self.webhook = webhook
        self._speech_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def respond(self, record: FeedbackRecord, language: Language | str) -> asyncio.Task | None:
        """Speak ``record.voice_response``, preempting any pending utterance."""
        if not record.voice_response:
            return None
        self._cancel_speech_task()
        pack = get_language_pack(language)
        self._speech_task = self._spawn(
            self._speak(record.voice_response, pack), name="speech"
        )
        return self._speech_task

    async def cancel_speech(self) -> None:
        """Drop pending synthesis and stop whatever the sink is playing."""
        self._cancel_speech_task()
        try:
            await self.sink.stop()
        except Exception:
            logger.warning("event=speech_cancel_failed", exc_info=True)

    async def _speak(self, text: str, pack: LanguagePack) -> None:
        audio = await self.synthesizer.synthesize(text, pack.voice)
        await self.sink.play(audio, text=text, locale=pack.locale)
        logger.info("event=speech_played locale=%s words=%d", pack.locale, len(text.split()))

    def _cancel_speech_task(self) -> None:
        if self._speech_task is not None and not self._speech_task.done():
            self._speech_task.cancel()
        self._speech_task = None

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def notify(self, record: FeedbackRecord) -> asyncio.Task | None:
        """POST the record JSON to the webhook.  Fire-and-forget."""
        if self.webhook is None:
            return None
        return self._spawn(self.webhook.post(record.model_dump_json()), name="notify")

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _spawn(self, coro, *, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("event=task_cancelled task=%s", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "event=task_failed task=%s type=%s error=%s",
                task.get_name(),
                type(exc).__name__,
                exc,
            )

    async def aclose(self) -> None:
        """Wait for outstanding background tasks (used on shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self.webhook is not None:
            await self.webhook.aclose()
