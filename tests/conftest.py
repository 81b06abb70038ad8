"""Shared fixtures: a fake ffmpeg executable and fake pipeline collaborators."""

import os
import stat
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from cleanup.transcript_cleaner import CleanupResult
from pipeline.session import RecordingSession, SessionState
from publisher.notion import PublishedPage


FAKE_FFMPEG = """#!{python}
import os
import signal
import sys
import time

mode = os.environ.get("FAKE_FFMPEG_MODE", "polite")

if "-list_devices" in sys.argv or "-sources" in sys.argv:
    sys.stderr.write("[AVFoundation indev] AVFoundation audio devices:\\n")
    sys.stderr.write("[AVFoundation indev] [0] Built-in Microphone\\n")
    sys.exit(1)

if mode == "crash":
    sys.stderr.write("Error opening input: device not found\\n")
    sys.exit(1)

if mode == "stubborn":
    signal.signal(signal.SIGINT, signal.SIG_IGN)
else:
    signal.signal(signal.SIGINT, lambda *args: sys.exit(255))

with open(sys.argv[-1], "wb") as f:
    f.write(b"\\0" * int(os.environ.get("FAKE_FFMPEG_BYTES", "500")))

ready = os.environ.get("FAKE_FFMPEG_READY")
if ready:
    open(ready, "w").close()

sys.stderr.write("fake ffmpeg recording\\n")
sys.stderr.flush()

if mode == "polite":
    sys.stdin.buffer.read(1)
    sys.exit(0)

while True:
    time.sleep(0.05)
"""


@pytest.fixture
def fake_ffmpeg(tmp_path, monkeypatch):
    """Path to an executable that behaves like ffmpeg for the supervisor.

    Behaviour is picked with ``FAKE_FFMPEG_MODE``:
    polite (quits on "q"), ignore_q (quits on SIGINT only),
    stubborn (needs SIGKILL), crash (exits immediately).
    """
    if os.name != "posix":
        pytest.skip("fake ffmpeg relies on POSIX signals and shebangs")

    script = tmp_path / "fake-ffmpeg"
    script.write_text(FAKE_FFMPEG.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    ready = tmp_path / "ffmpeg.ready"
    monkeypatch.setenv("FAKE_FFMPEG_READY", str(ready))
    monkeypatch.setenv("FAKE_FFMPEG_MODE", "polite")
    return script


def wait_for_file(path: Path, timeout: float = 10.0) -> None:
    """Block until ``path`` exists (the fake ffmpeg signals readiness this way)."""
    deadline = time.monotonic() + timeout
    while not path.exists():
        if time.monotonic() > deadline:
            raise AssertionError(f"{path} was not created within {timeout}s")
        time.sleep(0.01)


@pytest.fixture
def stopped_session(tmp_path):
    """Factory for a session that finished recording ``size`` bytes of audio."""

    def make(size: int = 500, create: bool = True) -> RecordingSession:
        audio = tmp_path / "note.wav"
        if create:
            audio.write_bytes(b"\0" * size)
        session = RecordingSession()
        session.advance(SessionState.RECORDING)
        session.audio_path = audio
        session.advance(SessionState.STOPPING)
        return session

    return make


class FakeTranscriber:
    model = "gpt-4o-mini-transcribe"

    def __init__(self, text: str = "hello world um yeah", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[Path] = []
        self.file_existed_during_call: bool | None = None

    def transcribe_file(self, audio_path: Path) -> str:
        self.calls.append(audio_path)
        self.file_existed_during_call = Path(audio_path).exists()
        if self.error:
            raise self.error
        return self.text


class FakeCleaner:
    def __init__(self, text: str = "# Greeting\nHello world.", degraded: bool = False, error: Exception | None = None):
        self.result = CleanupResult(text=text, degraded=degraded)
        self.error = error
        self.calls: list[str] = []

    def clean(self, text: str) -> CleanupResult:
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.result


@dataclass
class FakePublisher:
    configured: bool = True
    page: PublishedPage = field(default_factory=lambda: PublishedPage(page_id="p1", title="Greeting"))
    error: Exception | None = None
    calls: list[tuple[str, Any]] = field(default_factory=list)

    @property
    def is_configured(self) -> bool:
        return self.configured

    def publish(self, markdown: str, explicit_title: str | None = None) -> PublishedPage:
        self.calls.append((markdown, explicit_title))
        if self.error:
            raise self.error
        return self.page
