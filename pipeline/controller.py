"""Start / Stop / Run facade used by the CLI (or any other front end)."""

from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape

from recorder.paths import make_temp_dir, remove_if_empty, wav_in
from recorder.supervisor import (
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
    RecordingSupervisor,
    StopTimeouts,
)
from .errors import RecordingAlreadyActive, SpawnFailure
from .orchestrator import PipelineOrchestrator
from .session import EventCallback, EventStyle, PipelineEvent, RecordingSession, SessionState

if TYPE_CHECKING:
    from recorder.process import ProcessHandle
    from utils.logger import NoteLogger


class VoiceNoteController:
    """Owns the supervisor and the current session across start, stop and run."""

    def __init__(
        self,
        supervisor: RecordingSupervisor,
        orchestrator: PipelineOrchestrator,
        device: str,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        stop_timeouts: StopTimeouts | None = None,
        recordings_root: Path | None = None,
        logger: "NoteLogger | None" = None,
        on_event: EventCallback | None = None,
        echo_output: bool = True,
    ):
        self.supervisor = supervisor
        self.orchestrator = orchestrator
        self.device = device
        self.sample_rate = sample_rate
        self.channels = channels
        self.stop_timeouts = stop_timeouts or StopTimeouts()
        self.recordings_root = recordings_root
        self.logger = logger
        self.on_event = on_event
        self.echo_output = echo_output

        self.session: RecordingSession | None = None
        self._handle: "ProcessHandle | None" = None

    def start(self, device: str | None = None) -> RecordingSession:
        """Begin a new session and start capturing.

        On a spawn failure the new session ends in ``failed`` and is returned.

        Raises:
            RecordingAlreadyActive: If a capture is still running.
        """
        if self._handle is not None and self.supervisor.is_recording:
            raise RecordingAlreadyActive("A recording is already in progress")

        session = RecordingSession()
        self.session = session
        output_dir = make_temp_dir(root=self.recordings_root)
        output_path = wav_in(output_dir)
        device = device or self.device

        try:
            self._handle = self.supervisor.start(
                device,
                output_path,
                sample_rate=self.sample_rate,
                channels=self.channels,
                on_output=self._on_output,
            )
        except SpawnFailure as e:
            self._handle = None
            remove_if_empty(output_dir)
            if e.detail:
                session.append(e.detail)
            session.fail(e)
            self._emit(PipelineEvent(EventStyle.FAILURE, "Failed to start recording", session.last_error))
            return session

        session.audio_path = output_path
        session.advance(SessionState.RECORDING)
        session.append(f"Recording from {device} into {output_path}")
        self._emit(PipelineEvent(EventStyle.ANIMATED, "Recording started"))
        return session

    def stop(self) -> RecordingSession:
        """Stop the capture with the three-tier shutdown."""
        session = self.session
        if session is None or session.state != SessionState.RECORDING or self._handle is None:
            raise ValueError("No recording in progress")

        session.advance(SessionState.STOPPING)
        session.append("Stopping capture")
        self._emit(PipelineEvent(EventStyle.ANIMATED, "Stopping…"))

        handle, self._handle = self._handle, None
        outcome = self.supervisor.stop(handle, self.stop_timeouts)
        session.shutdown = outcome
        session.append(f"ffmpeg exited (code {handle.returncode}, {outcome})")
        return session

    def run(self) -> RecordingSession:
        """Run the post-recording pipeline on the stopped session."""
        if self.session is None:
            raise ValueError("No session to process")
        return self.orchestrator.run(self.session)

    def _on_output(self, line: str) -> None:
        session = self.session
        # Output pumps run on their own threads; only record while capturing
        if session is not None and session.state == SessionState.RECORDING:
            session.append(line)
        if self.logger and self.echo_output:
            self.logger.output(line)

    def _emit(self, event: PipelineEvent) -> None:
        if self.logger:
            if event.style == EventStyle.FAILURE:
                self.logger.error(escape(str(event)))
            else:
                self.logger.step(escape(event.title))
        if self.on_event:
            self.on_event(event)
