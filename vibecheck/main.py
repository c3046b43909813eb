import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from vibecheck.broadcast import Broadcaster
from vibecheck.capture import ClientRecognizer, WhisperRecognizer
from vibecheck.clients import GroqClient, WebhookClient
from vibecheck.config import Settings, settings
from vibecheck.controller import FeedbackSessionController
from vibecheck.logging_utils import setup_logging
from vibecheck.models import Session
from vibecheck.routes import session
from vibecheck.services.analyzer import FeedbackAnalyzer
from vibecheck.services.reporting import LoggingReporter
from vibecheck.services.responder import Responder
from vibecheck.services.speech import BroadcastSpeechSink, EdgeSpeechSynthesizer

logger = logging.getLogger("vibecheck")


def build_controller(cfg: Settings, broadcaster: Broadcaster) -> FeedbackSessionController:
    """Wire the session controller from configuration."""
    if cfg.recognizer_backend == "client":
        def recognizer_factory():
            return ClientRecognizer(lambda: broadcaster.has_clients)
    elif cfg.recognizer_backend == "whisper":
        recognizer_factory = WhisperRecognizer
    else:
        raise ValueError(f"unknown recognizer backend {cfg.recognizer_backend!r}")

    responder = Responder(
        EdgeSpeechSynthesizer(),
        BroadcastSpeechSink(broadcaster),
        WebhookClient(cfg.webhook_url, timeout=cfg.webhook_timeout_seconds),
    )
    analyzer = FeedbackAnalyzer(
        GroqClient(cfg.default_model, cfg.groq_api_key),
        temperature=cfg.analysis_temperature,
    )
    controller = FeedbackSessionController(
        analyzer,
        responder,
        recognizer_factory,
        language=cfg.default_language,
        reporter=LoggingReporter(cfg.breadcrumb_limit),
    )
    controller.subscribe(_session_publisher(controller, broadcaster))
    return controller


def _session_publisher(controller: FeedbackSessionController, broadcaster: Broadcaster):
    """Push every session change to presenters, plus ``analysis.failed``
    when a new error appears."""
    last_error = None

    def publish(state: Session) -> None:
        nonlocal last_error
        broadcaster.publish({"type": "session.updated", "session": controller.snapshot()})
        if state.error is not None and state.error is not last_error:
            broadcaster.publish({
                "type": "analysis.failed",
                "kind": state.error.kind,
                "message": state.error.message,
            })
        last_error = state.error

    return publish


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the single feedback session; halt it and drain background
    tasks on shutdown."""
    setup_logging(settings.log_level, settings.log_dir)
    broadcaster = Broadcaster()
    controller = build_controller(settings, broadcaster)
    app.state.broadcaster = broadcaster
    app.state.controller = controller
    logger.info("event=startup recognizer=%s model=%s", settings.recognizer_backend, settings.default_model)
    yield
    await controller.aclose()
    await controller.responder.aclose()
    await controller.analyzer.groq.aclose()


app = FastAPI(
    title="vibecheck",
    description="Voice feedback capture with Groq-powered sentiment analysis",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(session.router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(app, host=settings.host, port=settings.port)
