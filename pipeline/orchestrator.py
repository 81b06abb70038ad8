"""Post-recording pipeline: validate capture -> transcribe -> clean -> publish."""

import wave
from enum import StrEnum
from pathlib import Path
from typing import Protocol, TYPE_CHECKING

from rich.markup import escape

from .errors import (
    CleanupFailed,
    EmptyTranscription,
    NoAudioCaptured,
    PublishFailed,
    PublishNotConfigured,
    TranscriptionFailed,
    VoiceNoteError,
)
from .session import EventCallback, EventStyle, PipelineEvent, RecordingSession, SessionState

if TYPE_CHECKING:
    from cleanup.transcript_cleaner import CleanupResult
    from publisher.notion import PublishedPage
    from utils.logger import NoteLogger
    from utils.tracking import CostTracker


class Stage(StrEnum):
    """Pipeline stages; the value is the marker used in the session log."""

    VALIDATE = "validate"
    TRANSCRIBE = "transcribe"
    CLEAN = "clean"
    PUBLISH = "publish"


class TranscriptionService(Protocol):
    model: str

    def transcribe_file(self, audio_path: Path) -> str: ...


class CleanupService(Protocol):
    def clean(self, text: str) -> "CleanupResult": ...


class PublishingService(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def publish(self, markdown: str, explicit_title: str | None = None) -> "PublishedPage": ...


class PipelineOrchestrator:
    """Drives one RecordingSession through its post-recording stages.

    Each stage takes the session and returns it either advanced or failed;
    ``run`` stops at the first failure and never attempts later stages.
    """

    def __init__(
        self,
        transcriber: TranscriptionService,
        cleaner: CleanupService,
        publisher: PublishingService | None,
        logger: "NoteLogger | None" = None,
        on_event: EventCallback | None = None,
        cost_tracker: "CostTracker | None" = None,
        explicit_title: str | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            transcriber: Speech-to-text collaborator.
            cleaner: Transcript cleanup collaborator.
            publisher: Publishing collaborator; None means not configured.
            logger: Optional NoteLogger.
            on_event: Optional callback receiving every PipelineEvent.
            cost_tracker: Optional CostTracker for audio minutes.
            explicit_title: Page title overriding the document's H1.
        """
        self.transcriber = transcriber
        self.cleaner = cleaner
        self.publisher = publisher
        self.logger = logger
        self.on_event = on_event
        self.cost_tracker = cost_tracker
        self.explicit_title = explicit_title

    def run(self, session: RecordingSession) -> RecordingSession:
        """Run every stage in order, short-circuiting on the first failure."""
        if session.state != SessionState.STOPPING:
            raise ValueError(f"Pipeline needs a stopped recording, session is {session.state}")

        for stage in (self.validate_capture, self.transcribe, self.clean, self.publish):
            session = stage(session)
            if session.failed:
                break
        return session

    # -- stages ---------------------------------------------------------------

    def validate_capture(self, session: RecordingSession) -> RecordingSession:
        """Fail fast on a missing or empty capture, before any paid call."""
        path = session.audio_path
        if path is not None and not path.exists():
            # Nothing on disk to recover
            session.audio_path = None
            path = None
        if path is None or path.stat().st_size == 0:
            return self._fail(session, Stage.VALIDATE, NoAudioCaptured(
                "No audio file written. Check the input device and permissions."
            ))

        size = path.stat().st_size
        duration = wav_duration(path)
        detail = f"{size:,} bytes" + (f", {duration:.1f}s" if duration is not None else "")
        self._log(session, Stage.VALIDATE, f"Audio captured: {path.name} ({detail})")
        self._emit(session, PipelineEvent(EventStyle.SUCCESS, "Recording saved", path.name))
        return session

    def transcribe(self, session: RecordingSession) -> RecordingSession:
        """Transcribe the capture and delete the audio once text is in hand."""
        self._advance(session, Stage.TRANSCRIBE, SessionState.TRANSCRIBING)
        self._emit(session, PipelineEvent(EventStyle.ANIMATED, "Transcribing audio…"))

        path = session.audio_path
        duration = wav_duration(path) if path else None
        try:
            text = self.transcriber.transcribe_file(path)
        except (TranscriptionFailed, EmptyTranscription) as e:
            # Audio stays on disk so the recording can be recovered
            return self._fail(session, Stage.TRANSCRIBE, e)
        except Exception as e:
            return self._fail(session, Stage.TRANSCRIBE, TranscriptionFailed(
                f"Transcription failed: {e}", detail=str(e),
            ))

        if self.cost_tracker and duration is not None:
            self.cost_tracker.add_audio(duration, getattr(self.transcriber, "model", "unknown"))

        session.transcript = text
        self._log(session, Stage.TRANSCRIBE, "Transcription:")
        session.append(text)
        self._delete_audio(session)
        self._emit(session, PipelineEvent(EventStyle.SUCCESS, "Transcription complete", text))
        return session

    def clean(self, session: RecordingSession) -> RecordingSession:
        """Clean the transcript; on failure keep the raw transcript as fallback."""
        self._advance(session, Stage.CLEAN, SessionState.CLEANING)
        self._emit(session, PipelineEvent(EventStyle.ANIMATED, "Cleaning transcription…"))

        transcript = session.transcript or ""
        try:
            result = self.cleaner.clean(transcript)
        except Exception as e:
            error = e if isinstance(e, CleanupFailed) else CleanupFailed(f"Cleanup failed: {e}", detail=str(e))
            self._log(session, Stage.CLEAN, "Cleanup failed; original transcript kept as fallback")
            return self._fail(session, Stage.CLEAN, error)

        session.document = result.text
        session.cleanup_degraded = result.degraded
        if result.degraded:
            self._log(session, Stage.CLEAN, "Cleanup returned no content; using the original transcript")
            if self.logger:
                self.logger.warning("Cleanup returned no content; publishing the original transcript")
        self._log(session, Stage.CLEAN, "Cleaned transcript:")
        session.append(result.text)
        self._emit(session, PipelineEvent(EventStyle.SUCCESS, "Cleaning complete", result.text))
        return session

    def publish(self, session: RecordingSession) -> RecordingSession:
        """Publish the cleaned document; requires a configured publisher."""
        self._advance(session, Stage.PUBLISH, SessionState.PUBLISHING)

        if self.publisher is None or not self.publisher.is_configured:
            return self._fail(session, Stage.PUBLISH, PublishNotConfigured(
                "No Notion token or database ID configured"
            ))

        self._emit(session, PipelineEvent(EventStyle.ANIMATED, "Creating Notion page…"))
        try:
            page = self.publisher.publish(session.document or "", explicit_title=self.explicit_title)
        except (PublishFailed, PublishNotConfigured) as e:
            return self._fail(session, Stage.PUBLISH, e)
        except Exception as e:
            return self._fail(session, Stage.PUBLISH, PublishFailed(
                f"Failed to create Notion page: {e}", detail=str(e),
            ))

        session.published = page
        self._log(session, Stage.PUBLISH, f"Page created: {page.title} ({page.page_id})")
        if page.url:
            session.append(page.url)
        self._advance(session, Stage.PUBLISH, SessionState.SUCCEEDED)
        self._emit(session, PipelineEvent(EventStyle.SUCCESS, "Notion page created", page.title))
        return session

    # -- helpers --------------------------------------------------------------

    def _delete_audio(self, session: RecordingSession) -> None:
        path = session.audio_path
        if path is None:
            return
        try:
            path.unlink()
            self._log(session, Stage.TRANSCRIBE, f"Deleted audio file: {path}")
        except FileNotFoundError:
            self._log(session, Stage.TRANSCRIBE, f"Audio file already gone: {path}")
        except OSError as e:
            self._log(session, Stage.TRANSCRIBE, f"Failed to delete audio file: {e}")
            if self.logger:
                self.logger.warning(f"Failed to delete audio file: {e}")
            return
        session.audio_path = None

    def _advance(self, session: RecordingSession, stage: Stage, state: SessionState) -> None:
        session.advance(state)
        self._log(session, stage, f"State: {state}")

    def _log(self, session: RecordingSession, stage: Stage, line: str) -> None:
        session.append(f"[{stage}] {line}")

    def _fail(self, session: RecordingSession, stage: Stage, error: VoiceNoteError) -> RecordingSession:
        session.fail(error, stage=str(stage))
        title = _FAILURE_TITLES.get(error.kind, error.kind)
        self._emit(session, PipelineEvent(EventStyle.FAILURE, title, session.last_error))
        return session

    def _emit(self, session: RecordingSession, event: PipelineEvent) -> None:
        if self.logger:
            if event.style == EventStyle.FAILURE:
                self.logger.error(escape(str(event)))
            elif event.style == EventStyle.SUCCESS:
                self.logger.success(escape(event.title))
            else:
                self.logger.step(escape(event.title))
        if self.on_event:
            self.on_event(event)


_FAILURE_TITLES = {
    "NoAudioCaptured": "No audio captured",
    "EmptyTranscription": "No transcription text received",
    "TranscriptionFailed": "Transcription failed",
    "CleanupFailed": "Cleanup failed",
    "PublishNotConfigured": "Publishing not configured",
    "PublishFailed": "Failed to create Notion page",
}


def wav_duration(path: Path | None) -> float | None:
    """Duration of a WAV file in seconds, or None if the header is unusable.

    A force-killed ffmpeg can leave a header that claims zero frames, so this
    is informational only.
    """
    if path is None:
        return None
    try:
        with wave.open(str(path), "rb") as wf:
            rate = wf.getframerate()
            frames = wf.getnframes()
    except (wave.Error, EOFError, OSError):
        return None
    if rate <= 0:
        return None
    return frames / rate
