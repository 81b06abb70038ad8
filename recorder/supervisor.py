"""Capture subprocess supervision using ffmpeg.

Starts ffmpeg against an input device, writing a single linear-PCM WAV
stream, and stops it with an escalating three-tier shutdown:

    1. polite   write ``q`` to stdin, close it, wait ``polite_ms``
    2. interrupt  SIGINT, wait ``interrupt_ms``
    3. force-kill SIGKILL, wait ``FORCE_KILL_GRACE_MS`` and give up

Each tier only runs if the previous wait timed out. Stopping never raises;
callers must check the output file afterwards since a killed ffmpeg may have
written nothing.
"""

import os
import signal
import subprocess
import sys
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from pipeline.errors import RecordingAlreadyActive, SpawnFailure
from .process import OutputCallback, ProcessHandle

if TYPE_CHECKING:
    from utils.logger import NoteLogger


POLITE_TIMEOUT_MS = 700
INTERRUPT_TIMEOUT_MS = 1100
FORCE_KILL_GRACE_MS = 200

# Total time the output pumps get to drain after the process is gone
OUTPUT_FLUSH_S = 0.2

# How long an early exit still counts as a failed start (bad device, etc.)
STARTUP_CHECK_S = 0.25

QUIT_TOKEN = b"q"

DEFAULT_SAMPLE_RATE = 16000
DEFAULT_CHANNELS = 1


def default_input_format() -> str:
    """ffmpeg input device format for the current platform."""
    if sys.platform == "darwin":
        return "avfoundation"
    if sys.platform == "win32":
        return "dshow"
    return "pulse"


@dataclass(frozen=True)
class StopTimeouts:
    """Wait ceilings for the first two shutdown tiers, in milliseconds."""

    polite_ms: int = POLITE_TIMEOUT_MS
    interrupt_ms: int = INTERRUPT_TIMEOUT_MS

    def __post_init__(self):
        if self.polite_ms < 0 or self.interrupt_ms < 0:
            raise ValueError("Stop timeouts must be >= 0")


class ShutdownOutcome(StrEnum):
    """How the capture subprocess ended."""

    ALREADY_EXITED = "already_exited"
    EXITED_POLITELY = "exited_politely"
    EXITED_ON_INTERRUPT = "exited_on_interrupt"
    FORCE_KILLED = "force_killed"


def build_capture_command(
    ffmpeg_path: str,
    input_format: str,
    device: str,
    output_path: Path,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = DEFAULT_CHANNELS,
) -> list[str]:
    """Build the ffmpeg command line for a mono/stereo 16-bit PCM capture."""
    return [
        ffmpeg_path,
        "-hide_banner",
        "-loglevel", "warning",
        "-y",
        "-f", input_format,
        "-i", device,
        "-ar", str(sample_rate),
        "-ac", str(channels),
        "-c:a", "pcm_s16le",
        str(output_path),
    ]


class RecordingSupervisor:
    """Runs at most one ffmpeg capture at a time and shuts it down reliably."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        input_format: str | None = None,
        startup_check_s: float = STARTUP_CHECK_S,
        logger: "NoteLogger | None" = None,
    ):
        """Initialize the supervisor.

        Args:
            ffmpeg_path: ffmpeg executable (absolute path or name on PATH).
            input_format: ffmpeg ``-f`` input format; platform default if None.
            startup_check_s: Window after spawn in which an exit means the
                capture failed to start.
            logger: Optional NoteLogger.
        """
        self.ffmpeg_path = ffmpeg_path
        self.input_format = input_format or default_input_format()
        self.startup_check_s = startup_check_s
        self.logger = logger
        self._active: ProcessHandle | None = None

    @property
    def is_recording(self) -> bool:
        return self._active is not None and self._active.is_running

    @property
    def active(self) -> ProcessHandle | None:
        return self._active

    def start(
        self,
        device: str,
        output_path: Path,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        on_output: OutputCallback | None = None,
    ) -> ProcessHandle:
        """Start capturing ``device`` into ``output_path``.

        Returns:
            Handle to the running capture.

        Raises:
            RecordingAlreadyActive: If a capture is already running.
            SpawnFailure: If ffmpeg cannot be started or exits immediately.
        """
        if self.is_recording:
            raise RecordingAlreadyActive("A recording is already in progress")
        self._active = None

        output_path = Path(output_path)
        cmd = build_capture_command(
            self.ffmpeg_path,
            self.input_format,
            device,
            output_path,
            sample_rate=sample_rate,
            channels=channels,
        )

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                # Own session: a terminal Ctrl+C must not reach ffmpeg directly
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            raise SpawnFailure(
                f"Failed to start {self.ffmpeg_path}: {e.strerror or e}",
                detail=str(e),
            ) from e

        handle = ProcessHandle(process, on_output=on_output)

        if self.startup_check_s > 0 and handle.wait(self.startup_check_s):
            handle.join_output()
            tail = "\n".join(handle.output_tail)
            if output_path.exists() and output_path.stat().st_size == 0:
                output_path.unlink()
            raise SpawnFailure(
                f"ffmpeg exited immediately (code {handle.returncode}); check the input device '{device}'",
                detail=tail or None,
            )

        self._active = handle
        if self.logger:
            self.logger.step(f"Capture started (pid {handle.pid}): [cyan]{output_path}[/cyan]")
        return handle

    def stop(
        self,
        handle: ProcessHandle | None = None,
        timeouts: StopTimeouts | None = None,
    ) -> ShutdownOutcome:
        """Stop a capture with polite -> interrupt -> kill escalation.

        Never raises. Returns once the process has exited or the force-kill
        grace period has elapsed, so the total wait is bounded by
        ``polite_ms + interrupt_ms + FORCE_KILL_GRACE_MS``.
        """
        handle = handle or self._active
        timeouts = timeouts or StopTimeouts()
        if handle is None:
            return ShutdownOutcome.ALREADY_EXITED

        try:
            outcome = self._shutdown(handle, timeouts)
        finally:
            if handle is self._active:
                self._active = None

        handle.join_output(timeout=OUTPUT_FLUSH_S)
        if self.logger:
            self.logger.info(f"Capture stopped: {outcome} (code {handle.returncode})")
        return outcome

    def _shutdown(self, handle: ProcessHandle, timeouts: StopTimeouts) -> ShutdownOutcome:
        if not handle.is_running:
            _quietly(handle.close_stdin)
            return ShutdownOutcome.ALREADY_EXITED

        # Tier 1: ask ffmpeg to finish the file and quit
        _quietly(handle.write_stdin, QUIT_TOKEN)
        _quietly(handle.close_stdin)
        if handle.wait(timeouts.polite_ms / 1000):
            return ShutdownOutcome.EXITED_POLITELY

        # Tier 2
        _quietly(handle.send_signal, signal.SIGINT)
        if handle.wait(timeouts.interrupt_ms / 1000):
            return ShutdownOutcome.EXITED_ON_INTERRUPT

        # Tier 3: no further escalation after this
        if self.logger:
            self.logger.warning("ffmpeg ignored quit and SIGINT; killing it")
        _quietly(handle.kill)
        handle.wait(FORCE_KILL_GRACE_MS / 1000)
        return ShutdownOutcome.FORCE_KILLED


def _quietly(fn, *args) -> None:
    """Call ``fn``; a failure means the process is already gone."""
    try:
        fn(*args)
    except (OSError, ValueError):
        pass


def list_input_devices(
    ffmpeg_path: str = "ffmpeg",
    input_format: str | None = None,
    timeout_s: float = 10.0,
) -> list[str]:
    """List capture devices as reported by ffmpeg.

    ffmpeg prints the device list on stderr and exits non-zero, so the exit
    code is ignored.

    Raises:
        SpawnFailure: If ffmpeg cannot be run or does not answer in time.
    """
    input_format = input_format or default_input_format()
    if input_format in ("avfoundation", "dshow"):
        dummy = "dummy" if input_format == "dshow" else ""
        cmd = [ffmpeg_path, "-hide_banner", "-f", input_format, "-list_devices", "true", "-i", dummy]
    else:
        cmd = [ffmpeg_path, "-hide_banner", "-sources", input_format]

    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout_s,
        )
    except FileNotFoundError as e:
        raise SpawnFailure(f"ffmpeg not found: {ffmpeg_path}", detail=str(e)) from e
    except subprocess.TimeoutExpired as e:
        raise SpawnFailure(f"ffmpeg did not list devices within {timeout_s:.0f}s") from e
    except OSError as e:
        raise SpawnFailure(f"Failed to run {ffmpeg_path}: {e}", detail=str(e)) from e

    output = (result.stdout + result.stderr).decode("utf-8", errors="replace")
    return [line.rstrip() for line in output.splitlines() if line.strip()]
