from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Language(str, Enum):
    EN = "en"
    FR = "fr"


class Phase(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    ANALYZING = "analyzing"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class Category(str, Enum):
    SERVICE = "service"
    PRODUCT = "product"
    PRICING = "pricing"
    OTHER = "other"


class FeedbackRecord(BaseModel):
    """Structured result of one analysis.  ``sentiment`` and ``category`` hold
    the label of the language the analysis ran in (e.g. "Positif")."""

    model_config = ConfigDict(frozen=True)

    summary: str = Field(min_length=1)
    sentiment: str = Field(min_length=1)
    score: int = Field(ge=1, le=10, strict=True)
    category: str = Field(min_length=1)
    action_item: str = Field(min_length=1)
    voice_response: str = ""


@dataclass(frozen=True)
class RecognitionEvent:
    """One batch of recognition results from a speech-to-text stream."""

    result_index: int
    results: tuple[str, ...]

    @property
    def transcript(self) -> str:
        # Only the span from result_index onward is kept, earlier
        # batches are dropped.
        return "".join(self.results[self.result_index:])


@dataclass(frozen=True)
class SessionError:
    kind: str
    message: str


@dataclass(frozen=True)
class Session:
    language: Language = Language.EN
    listening: bool = False
    transcript: str = ""
    analysis: FeedbackRecord | None = None
    busy: bool = False
    generation: int = 0
    error: SessionError | None = None

    def __post_init__(self) -> None:
        if self.listening and self.busy:
            raise ValueError("a session cannot listen and analyze at the same time")

    @property
    def phase(self) -> Phase:
        if self.listening:
            return Phase.LISTENING
        if self.busy:
            return Phase.ANALYZING
        return Phase.IDLE

    def to_dict(self) -> dict:
        return {
            "language": self.language.value,
            "phase": self.phase.value,
            "listening": self.listening,
            "transcript": self.transcript,
            "analysis": self.analysis.model_dump() if self.analysis else None,
            "busy": self.busy,
            "generation": self.generation,
            "error": (
                {"kind": self.error.kind, "message": self.error.message}
                if self.error
                else None
            ),
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Tagged result of one analysis cycle.

    ``kind`` is ``"ok"`` on success, otherwise one of ``service_error``,
    ``malformed_response``, ``capture_error``, ``cancelled`` or ``stale``.
    """

    generation: int
    kind: str = "ok"
    record: FeedbackRecord | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.kind == "ok"

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "kind": self.kind,
            "generation": self.generation,
            "record": self.record.model_dump() if self.record else None,
            "message": self.message,
        }
