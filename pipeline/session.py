"""Session state machine and event log for one record -> publish attempt."""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Callable, TYPE_CHECKING

from .errors import InvalidTransition, VoiceNoteError

if TYPE_CHECKING:
    from publisher.notion import PublishedPage
    from recorder.supervisor import ShutdownOutcome


class SessionState(StrEnum):
    """Lifecycle states of a recording session."""

    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"
    TRANSCRIBING = "transcribing"
    CLEANING = "cleaning"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED)


# Linear order; each state may only advance to the next one (or fail).
_NEXT_STATE: dict[SessionState, SessionState] = {
    SessionState.IDLE: SessionState.RECORDING,
    SessionState.RECORDING: SessionState.STOPPING,
    SessionState.STOPPING: SessionState.TRANSCRIBING,
    SessionState.TRANSCRIBING: SessionState.CLEANING,
    SessionState.CLEANING: SessionState.PUBLISHING,
    SessionState.PUBLISHING: SessionState.SUCCEEDED,
}


def transition(current: SessionState, target: SessionState) -> SessionState:
    """Return ``target`` if the move from ``current`` is allowed.

    Args:
        current: The state the session is in.
        target: The requested next state.

    Returns:
        The new state.

    Raises:
        InvalidTransition: If the move is not part of the linear lifecycle.
    """
    if current.is_terminal:
        raise InvalidTransition(f"Session is already {current}; start a new session")
    if target == SessionState.FAILED:
        return target
    if _NEXT_STATE.get(current) != target:
        raise InvalidTransition(f"Cannot move from {current} to {target}")
    return target


class EventStyle(StrEnum):
    """Presentation hint for a status notification."""

    ANIMATED = "animated"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class PipelineEvent:
    """A status notification emitted while a session progresses."""

    style: EventStyle
    title: str
    message: str | None = None

    def __str__(self) -> str:
        return f"{self.title}: {self.message}" if self.message else self.title


EventCallback = Callable[[PipelineEvent], None]


@dataclass
class RecordingSession:
    """Mutable record of one end-to-end attempt.

    Owned by a single writer (the controller while recording, the orchestrator
    afterwards), so no locking is needed. ``log`` is append-only.
    """

    state: SessionState = SessionState.IDLE
    started_at: float | None = None
    finished_at: float | None = None
    audio_path: Path | None = None
    log: list[str] = field(default_factory=list)
    last_error: str | None = None
    failure_kind: str | None = None

    transcript: str | None = None
    document: str | None = None
    published: "PublishedPage | None" = None
    cleanup_degraded: bool = False
    shutdown: "ShutdownOutcome | None" = None

    def append(self, line: str) -> None:
        """Append a line to the session log."""
        self.log.append(line)

    def advance(self, target: SessionState) -> "RecordingSession":
        """Move to ``target`` through the transition rules."""
        self.state = transition(self.state, target)
        if self.state == SessionState.RECORDING:
            self.started_at = time.time()
        elif self.state.is_terminal:
            self.finished_at = time.time()
        return self

    def fail(self, error: VoiceNoteError, stage: str | None = None) -> "RecordingSession":
        """Move to ``failed`` and record the error.

        Args:
            error: The terminal error.
            stage: Optional stage marker to prefix the log line with.
        """
        self.state = transition(self.state, SessionState.FAILED)
        self.finished_at = time.time()
        self.last_error = error.describe()
        self.failure_kind = error.kind
        prefix = f"[{stage}] " if stage else ""
        self.append(f"{prefix}Failed ({error.kind}): {self.last_error}")
        return self

    @property
    def succeeded(self) -> bool:
        return self.state == SessionState.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.state == SessionState.FAILED

    @property
    def elapsed(self) -> float:
        """Seconds since recording started (frozen once the session ends)."""
        if self.started_at is None:
            return 0.0
        end = self.finished_at or time.time()
        return max(0.0, end - self.started_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to serializable dictionary."""
        return {
            "state": str(self.state),
            "started_at": _iso(self.started_at),
            "finished_at": _iso(self.finished_at),
            "audio_path": str(self.audio_path) if self.audio_path else None,
            "last_error": self.last_error,
            "failure_kind": self.failure_kind,
            "transcript": self.transcript,
            "document": self.document,
            "published": self.published.to_dict() if self.published else None,
            "cleanup_degraded": self.cleanup_degraded,
            "shutdown": str(self.shutdown) if self.shutdown else None,
            "log": list(self.log),
        }

    def save(self, path: Path) -> None:
        """Save a JSON snapshot of the session."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)


def _iso(ts: float | None) -> str | None:
    return datetime.fromtimestamp(ts).isoformat() if ts is not None else None
