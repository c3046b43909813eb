import json
import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from vibecheck.broadcast import Broadcaster
from vibecheck.capture import ClientRecognizer
from vibecheck.controller import FeedbackSessionController
from vibecheck.errors import InvalidTransition, SessionBusy, UnsupportedEnvironment
from vibecheck.languages import LANGUAGE_PACKS
from vibecheck.models import Language, RecognitionEvent

logger = logging.getLogger("vibecheck.routes")

router = APIRouter(tags=["session"])


# ------------------------------------------------------------------
# Request bodies
# ------------------------------------------------------------------


class LanguageChange(BaseModel):
    language: Language


class RecognitionResult(BaseModel):
    result_index: int = 0
    results: list[str]


def _controller(request: Request) -> FeedbackSessionController:
    return request.app.state.controller


# ==================================================================
# REST endpoints
# ==================================================================


@router.get("/api/session")
async def get_session(request: Request) -> dict:
    return _controller(request).snapshot()


@router.post("/api/session/start")
async def start_capture(request: Request) -> dict:
    """Start listening.  Clears the previous transcript and analysis."""
    controller = _controller(request)
    try:
        await controller.start()
    except (SessionBusy, InvalidTransition) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UnsupportedEnvironment as e:
        raise HTTPException(status_code=503, detail=str(e))
    return controller.snapshot()


@router.post("/api/session/stop")
async def stop_capture(request: Request) -> dict:
    """Stop listening and analyze the transcript.

    ``outcome`` is ``null`` when nothing was said.
    """
    controller = _controller(request)
    try:
        outcome = await controller.stop()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "session": controller.snapshot(),
        "outcome": outcome.to_dict() if outcome else None,
    }


@router.post("/api/session/language")
async def change_language(request: Request, body: LanguageChange) -> dict:
    controller = _controller(request)
    await controller.set_language(body.language)
    return controller.snapshot()


@router.get("/api/languages")
async def list_languages() -> dict:
    """UI strings of every language pack, keyed by language code."""
    return {
        language.value: {"locale": pack.locale, "labels": pack.labels}
        for language, pack in LANGUAGE_PACKS.items()
    }


# ==================================================================
# WebSocket endpoint
# ==================================================================


@router.websocket("/ws/session")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Live session updates; also carries browser recognition results."""
    controller: FeedbackSessionController = websocket.app.state.controller
    broadcaster: Broadcaster = websocket.app.state.broadcaster

    await websocket.accept()
    broadcaster.add(websocket)
    await websocket.send_json({"type": "session.updated", "session": controller.snapshot()})

    try:
        while True:
            message = _decode(await websocket.receive_text())
            if message.get("type") == "recognition.result":
                _feed_result(controller, message)
            # anything else is a keep-alive ping
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.remove(websocket)


def _decode(raw: str) -> dict:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return message if isinstance(message, dict) else {}


def _feed_result(controller: FeedbackSessionController, message: dict) -> None:
    try:
        body = RecognitionResult.model_validate(message)
    except ValidationError:
        logger.warning("event=bad_recognition_result")
        return
    recognizer = controller.recognizer
    if not isinstance(recognizer, ClientRecognizer):
        logger.debug("event=recognition_result_ignored reason=no_client_capture")
        return
    recognizer.feed(
        RecognitionEvent(result_index=body.result_index, results=tuple(body.results))
    )
