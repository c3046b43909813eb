import base64
import logging
from dataclasses import dataclass
from typing import Protocol

from vibecheck.config import settings

logger = logging.getLogger("vibecheck.tts")


@dataclass
class TTSConfig:
    rate: str = settings.tts_rate
    pitch: str = settings.tts_pitch
    volume: str = settings.tts_volume


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str, voice: str) -> bytes: ...


class SpeechSink(Protocol):
    """Where synthesized audio is played."""

    async def play(self, audio: bytes, *, text: str, locale: str) -> None: ...

    async def stop(self) -> None: ...


class EdgeSpeechSynthesizer:
    """Neural text-to-speech through Microsoft Edge's online voices (mp3 output)."""

    mime_type = "audio/mpeg"

    def __init__(self, cfg: TTSConfig | None = None) -> None:
        self.cfg = cfg or TTSConfig()

    async def synthesize(self, text: str, voice: str) -> bytes:
        # Lazy import so the server still starts without edge_tts.
        import edge_tts  # type: ignore

        communicate = edge_tts.Communicate(
            text=text,
            voice=voice,
            rate=self.cfg.rate,
            volume=self.cfg.volume,
            pitch=self.cfg.pitch,
        )

        out = bytearray()
        async for chunk in communicate.stream():
            if chunk.get("type") == "audio":
                out.extend(chunk["data"])
        logger.debug("event=tts_done voice=%s bytes=%d", voice, len(out))
        return bytes(out)


class BroadcastSpeechSink:
    """Plays speech on every connected presenter by pushing the audio over
    the session websocket."""

    def __init__(self, broadcaster, mime_type: str = EdgeSpeechSynthesizer.mime_type) -> None:
        self.broadcaster = broadcaster
        self.mime_type = mime_type

    async def play(self, audio: bytes, *, text: str, locale: str) -> None:
        await self.broadcaster.send_to_all({
            "type": "speech.play",
            "text": text,
            "locale": locale,
            "mime_type": self.mime_type,
            "audio": base64.b64encode(audio).decode("ascii"),
        })

    async def stop(self) -> None:
        await self.broadcaster.send_to_all({"type": "speech.cancel"})
