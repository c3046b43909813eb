import asyncio
import logging
import threading

import numpy as np

from vibecheck.capture.recognizer import ResultCallback
from vibecheck.config import settings
from vibecheck.errors import UnsupportedEnvironment
from vibecheck.models import RecognitionEvent

logger = logging.getLogger("vibecheck.capture")


class WhisperService:
    """Lazy singleton around a faster-whisper model.

    The model is downloaded and loaded on the first call to ``get()``,
    not at import time or server startup.
    """

    _instance: "WhisperService | None" = None

    def __init__(self) -> None:
        try:
            from faster_whisper import WhisperModel
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise UnsupportedEnvironment(
                "faster-whisper is required for local speech recognition."
            ) from exc

        logger.info("event=whisper_load model=%s", settings.whisper_model)
        self.model = WhisperModel(
            settings.whisper_model,
            device=settings.whisper_device,
            compute_type=settings.whisper_compute_type,
        )

    @classmethod
    def get(cls) -> "WhisperService":
        """Return the singleton, creating it (and downloading the model) if needed."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def transcribe(self, samples: np.ndarray, language: str | None = None) -> str:
        """Transcribe mono float32 samples at 16 kHz.  Blocking."""
        segments, _info = self.model.transcribe(samples, language=language, beam_size=5)
        # segments is a lazy generator; the join forces evaluation
        return " ".join(seg.text.strip() for seg in segments).strip()


class WhisperRecognizer:
    """Microphone capture with rolling re-transcription.

    Threading model (three contexts):

    1. **Audio callback** runs in sounddevice's audio thread.  It only
       appends to the buffer and bumps the sample counter.

    2. **Worker loop** runs in a daemon thread.  Every
       ``interim_interval`` seconds it re-transcribes the whole utterance
       recorded so far and emits it as a single interim result at index 0.

    3. **Event loop** receives every result through
       ``loop.call_soon_threadsafe``, so ``on_result`` never runs off-loop.

    ``stop()`` runs one last transcription over the full buffer and delivers
    it before returning.
    """

    def __init__(
        self,
        whisper_loader=WhisperService.get,
        *,
        sample_rate: int | None = None,
        interim_interval: float | None = None,
        min_final_seconds: float | None = None,
    ) -> None:
        self._whisper_loader = whisper_loader
        self.sample_rate = sample_rate or settings.sample_rate
        self.interim_interval = interim_interval or settings.interim_interval_seconds
        self.min_final_seconds = (
            min_final_seconds
            if min_final_seconds is not None
            else settings.min_final_seconds
        )

        # Audio buffer, guarded by _lock
        self._buffer: list[np.ndarray] = []
        self._total_samples = 0
        self._lock = threading.Lock()

        self._whisper = None
        self._language: str | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._on_result: ResultCallback | None = None
        self._stream = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------
    # Recognizer API (event loop)
    # ------------------------------------------------------------------

    async def start(self, locale: str, on_result: ResultCallback) -> None:
        try:
            import sounddevice as sd
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise UnsupportedEnvironment("sounddevice is required for microphone capture.") from exc

        try:
            sd.query_devices(kind="input")
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise UnsupportedEnvironment("No microphone input device found.") from exc

        self._stop_event.clear()
        self._loop = asyncio.get_running_loop()
        self._whisper = await self._loop.run_in_executor(None, self._whisper_loader)
        if self._stop_event.is_set():
            # aborted while the model was loading
            logger.info("event=capture_start_aborted backend=whisper")
            return
        self._language = locale.split("-")[0]
        self._on_result = on_result

        with self._lock:
            self._buffer = []
            self._total_samples = 0

        self._stream = sd.InputStream(
            samplerate=self.sample_rate,
            channels=1,
            dtype="float32",
            callback=self._audio_callback,
            blocksize=1024,
        )
        self._stream.start()
        self._thread = threading.Thread(target=self._worker_loop, daemon=True)
        self._thread.start()
        logger.info("event=capture_start backend=whisper locale=%s", locale)

    async def stop(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._halt)

        samples = self._snapshot()
        if samples is None or len(samples) < self.min_final_seconds * self.sample_rate:
            return
        text = await loop.run_in_executor(
            None, self._whisper.transcribe, samples, self._language
        )
        if text and self._on_result is not None:
            self._on_result(RecognitionEvent(result_index=0, results=(text,)))

    async def abort(self) -> None:
        await asyncio.get_running_loop().run_in_executor(None, self._halt)

    def _halt(self) -> None:
        self._stop_event.set()
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        if self._thread is not None:
            self._thread.join(timeout=10)
            self._thread = None

    # ------------------------------------------------------------------
    # Audio callback (audio thread)
    # ------------------------------------------------------------------

    def _audio_callback(self, indata: np.ndarray, frames: int, timeinfo, status) -> None:  # noqa: ANN001
        with self._lock:
            self._buffer.append(indata.copy())
            self._total_samples += frames

    # ------------------------------------------------------------------
    # Worker loop (daemon thread)
    # ------------------------------------------------------------------

    def _snapshot(self) -> np.ndarray | None:
        with self._lock:
            if not self._buffer:
                return None
            return np.concatenate(self._buffer, axis=0).flatten()

    def _worker_loop(self) -> None:
        transcribed = 0
        while not self._stop_event.wait(self.interim_interval):
            with self._lock:
                total = self._total_samples
            if total == transcribed:
                continue
            samples = self._snapshot()
            if samples is None:
                continue
            try:
                text = self._whisper.transcribe(samples, self._language)
            except Exception:
                logger.exception("event=interim_transcription_failed")
                continue
            transcribed = total
            if text and not self._stop_event.is_set():
                event = RecognitionEvent(result_index=0, results=(text,))
                self._loop.call_soon_threadsafe(self._on_result, event)
