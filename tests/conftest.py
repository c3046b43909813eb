import asyncio
import json

from vibecheck.controller import FeedbackSessionController
from vibecheck.errors import UnsupportedEnvironment
from vibecheck.models import RecognitionEvent
from vibecheck.services.analyzer import FeedbackAnalyzer
from vibecheck.services.responder import Responder

VALID_RECORD = {
    "summary": "Likes the product, support is slow",
    "sentiment": "Positive",
    "score": 7,
    "category": "Product",
    "action_item": "Speed up support responses",
    "voice_response": "Thanks, we will make support faster.",
}


def reply(record: dict = VALID_RECORD, before: str = "Here you go: ", after: str = " Thanks!") -> str:
    return before + json.dumps(record, ensure_ascii=False) + after


async def settle(rounds: int = 10) -> None:
    """Let pending callbacks and tasks on the loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeGroq:
    """Stands in for GroqClient.  Optionally blocks on *gate* before replying."""

    def __init__(self, content: str = "", error: Exception | None = None, gate=None, ignore_cancel=False):
        self.content = content
        self.error = error
        self.gate = gate
        self.ignore_cancel = ignore_cancel
        self.calls: list[list[dict]] = []

    async def chat(self, messages, **kwargs):
        self.calls.append(messages)
        if self.gate is not None:
            try:
                await self.gate.wait()
            except asyncio.CancelledError:
                if not self.ignore_cancel:
                    raise
        if self.error is not None:
            raise self.error
        return self.content

    async def aclose(self):
        pass


class FakeRecognizer:
    def __init__(self, final: tuple[str, ...] = (), unsupported: bool = False, gate=None, stop_error=None):
        self.final = final
        self.unsupported = unsupported
        self.gate = gate
        self.stop_error = stop_error
        self.locale = None
        self.on_result = None
        self.stopped = False
        self.aborted = False

    async def start(self, locale, on_result):
        if self.unsupported:
            raise UnsupportedEnvironment("no speech recognition here")
        if self.gate is not None:
            await self.gate.wait()
        self.locale = locale
        self.on_result = on_result

    def emit(self, result_index: int, *results: str) -> None:
        self.on_result(RecognitionEvent(result_index=result_index, results=tuple(results)))

    async def stop(self):
        self.stopped = True
        if self.stop_error is not None:
            raise self.stop_error
        if self.final:
            self.emit(0, *self.final)

    async def abort(self):
        self.aborted = True


class FakeSynthesizer:
    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, text, voice):
        self.calls.append((text, voice))
        return b"mp3-bytes"


class FakeSink:
    def __init__(self, pause: bool = False):
        self.pause = pause
        self.played: list[dict] = []
        self.stops = 0

    async def play(self, audio, *, text, locale):
        self.played.append({"audio": audio, "text": text, "locale": locale})

    async def stop(self):
        self.stops += 1
        if self.pause:
            # like a websocket send, yields to the loop
            await asyncio.sleep(0)


class FakeWebhook:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.posts: list[str] = []

    async def post(self, body):
        self.posts.append(body)
        if self.error is not None:
            raise self.error
        return 200

    async def aclose(self):
        pass


class RecordingReporter:
    def __init__(self):
        self.exceptions: list[tuple[BaseException, dict]] = []
        self.breadcrumbs: list[tuple[str, str, dict]] = []

    def capture_exception(self, exc, **context):
        self.exceptions.append((exc, context))

    def add_breadcrumb(self, category, message, **data):
        self.breadcrumbs.append((category, message, data))


class Harness:
    """A controller wired to fakes, plus handles on every fake."""

    def __init__(self, groq=None, recognizer_kwargs=None, webhook=None, language="en"):
        self.groq = groq or FakeGroq(reply())
        self.synth = FakeSynthesizer()
        self.sink = FakeSink()
        self.webhook = webhook or FakeWebhook()
        self.reporter = RecordingReporter()
        self.recognizers: list[FakeRecognizer] = []
        self.states = []
        self._recognizer_kwargs = recognizer_kwargs or {}

        self.controller = FeedbackSessionController(
            FeedbackAnalyzer(self.groq),
            Responder(self.synth, self.sink, self.webhook),
            self._make_recognizer,
            language=language,
            reporter=self.reporter,
        )
        self.controller.subscribe(self.states.append)

    def _make_recognizer(self):
        recognizer = FakeRecognizer(**self._recognizer_kwargs)
        self.recognizers.append(recognizer)
        return recognizer

    @property
    def recognizer(self) -> FakeRecognizer:
        return self.recognizers[-1]

    async def drain(self):
        await self.controller.responder.aclose()
