"""
PARLEY Error Taxonomy
=====================
Every failure is scoped to the current user action. Malformed model output is
not represented here: it resolves to default payloads in `parsing`.
"""


class InterviewError(Exception):
    """Base class for all interview service errors."""


class InvalidInputError(InterviewError, ValueError):
    """A precondition failed before any external call was made."""


class SessionNotFoundError(InterviewError, LookupError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InvalidTransitionError(InterviewError, RuntimeError):
    """The requested action is not valid in the session's current state."""


class ExternalServiceError(InterviewError, RuntimeError):
    """A hosted model or speech service failed. The user may retry the action."""

    service = "external"


class LLMError(ExternalServiceError):
    service = "language-model"


class TranscriptionError(ExternalServiceError):
    service = "transcription"


class SpeechSynthesisError(ExternalServiceError):
    service = "speech-synthesis"
