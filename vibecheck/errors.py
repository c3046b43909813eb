class VibeCheckError(Exception):
    """Base class for every error raised by the feedback session."""


class UnsupportedEnvironment(VibeCheckError):
    """The host exposes no usable speech-recognition capability."""


class SessionBusy(VibeCheckError):
    """A capture or analysis is already running for this session."""


class InvalidTransition(VibeCheckError):
    """The requested operation is not valid in the session's current phase."""


class AnalysisError(VibeCheckError):
    """Base for failures of the inference call.  ``kind`` tags the outcome."""

    kind = "analysis_error"


class ServiceError(AnalysisError):
    """Transport failure or non-2xx status from the chat-completion service."""

    kind = "service_error"


class MalformedResponse(AnalysisError):
    """The model reply held no parseable, valid feedback object."""

    kind = "malformed_response"


class NotificationFailure(VibeCheckError):
    """The webhook POST failed.  Logged, never surfaced to the session."""
