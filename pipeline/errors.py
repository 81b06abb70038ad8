"""Error taxonomy for recording and the post-recording pipeline.

Every error here is session-terminal: the orchestrator records it on the
session and stops. Nothing is retried automatically.
"""


class VoiceNoteError(Exception):
    """Base class for all voice note errors."""
    
    def __init__(self, message: str, *, status: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.detail = detail
    
    @property
    def kind(self) -> str:
        """Short name of the failure, e.g. ``NoAudioCaptured``."""
        return type(self).__name__
    
    def describe(self) -> str:
        """Human-readable description including upstream status/detail."""
        parts = [self.message]
        if self.status is not None:
            parts.append(f"(status {self.status})")
        if self.detail and self.detail not in self.message:
            parts.append(f"- {self.detail}")
        return " ".join(parts)


class SpawnFailure(VoiceNoteError):
    """The capture subprocess could not be started."""


class RecordingAlreadyActive(VoiceNoteError):
    """A capture is already running on this supervisor."""


class NoAudioCaptured(VoiceNoteError):
    """The capture produced no file, or an empty one."""


class EmptyTranscription(VoiceNoteError):
    """The transcription service answered without any text."""


class TranscriptionFailed(VoiceNoteError):
    """The transcription request failed (status, timeout or network)."""


class CleanupFailed(VoiceNoteError):
    """The transcript cleanup request failed."""


class PublishNotConfigured(VoiceNoteError):
    """Publishing credentials or destination are missing."""


class PublishFailed(VoiceNoteError):
    """The publishing request failed."""


class InvalidTransition(VoiceNoteError):
    """A session was asked to move to a state it cannot reach."""
