"""Pipeline module: session state and the post-recording stages.

The Start/Stop/Run facade lives in ``pipeline.controller``.
"""

from .errors import (
    CleanupFailed,
    EmptyTranscription,
    InvalidTransition,
    NoAudioCaptured,
    PublishFailed,
    PublishNotConfigured,
    RecordingAlreadyActive,
    SpawnFailure,
    TranscriptionFailed,
    VoiceNoteError,
)
from .session import EventStyle, PipelineEvent, RecordingSession, SessionState, transition
from .orchestrator import PipelineOrchestrator, Stage

__all__ = [
    # Errors
    "CleanupFailed",
    "EmptyTranscription",
    "InvalidTransition",
    "NoAudioCaptured",
    "PublishFailed",
    "PublishNotConfigured",
    "RecordingAlreadyActive",
    "SpawnFailure",
    "TranscriptionFailed",
    "VoiceNoteError",
    # Session
    "EventStyle",
    "PipelineEvent",
    "RecordingSession",
    "SessionState",
    "transition",
    # Orchestration
    "PipelineOrchestrator",
    "Stage",
]
