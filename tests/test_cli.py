"""Tests for the typer CLI commands."""

import json
import time

import pytest
from typer.testing import CliRunner

from conftest import FakeCleaner, FakePublisher, FakeTranscriber
from config import reset_config
from main import app
from pipeline.errors import CleanupFailed, TranscriptionFailed


runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    for name in ("OPENAI_API_KEY", "NOTION_TOKEN", "NOTION_DATABASE_ID", "VOICE_NOTE_FFMPEG_PATH"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def test_config_warns_about_missing_keys():
    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0
    assert "ffmpeg_path" in result.output
    assert "OPENAI_API_KEY is not set" in result.output
    assert "publishing will fail" in result.output


def test_config_masks_secrets(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-abcdefgh1234")

    result = runner.invoke(app, ["config"])

    assert "sk-abcdefgh1234" not in result.output
    assert "OPENAI_API_KEY is not set" not in result.output


def test_devices_lists_ffmpeg_output(fake_ffmpeg, monkeypatch):
    monkeypatch.setenv("VOICE_NOTE_FFMPEG_PATH", str(fake_ffmpeg))
    monkeypatch.setenv("VOICE_NOTE_INPUT_FORMAT", "avfoundation")

    result = runner.invoke(app, ["devices"])

    assert result.exit_code == 0
    assert "Built-in Microphone" in result.output


def test_devices_missing_ffmpeg(tmp_path, monkeypatch):
    monkeypatch.setenv("VOICE_NOTE_FFMPEG_PATH", str(tmp_path / "no-ffmpeg"))

    result = runner.invoke(app, ["devices"])

    assert result.exit_code == 1
    assert "not found" in result.output


# -- record -------------------------------------------------------------------

@pytest.fixture
def record_env(fake_ffmpeg, tmp_path, monkeypatch):
    """Run ``record`` in ``tmp_path`` against the fake ffmpeg."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("VOICE_NOTE_FFMPEG_PATH", str(fake_ffmpeg))
    monkeypatch.setenv("VOICE_NOTE_INPUT_FORMAT", "avfoundation")
    monkeypatch.setenv("VOICE_NOTE_RECORDINGS_DIR", str(tmp_path / "recordings"))
    reset_config()

    def use(transcriber=None, cleaner=None, publisher=None):
        transcriber = transcriber or FakeTranscriber()
        cleaner = cleaner or FakeCleaner()
        publisher = publisher or FakePublisher()
        monkeypatch.setattr("recorder.transcriber.Transcriber", lambda *args, **kwargs: transcriber)
        monkeypatch.setattr("cleanup.transcript_cleaner.TranscriptCleaner", lambda *args, **kwargs: cleaner)
        monkeypatch.setattr("publisher.notion.NotionPublisher", lambda *args, **kwargs: publisher)
        return transcriber, cleaner, publisher

    return use


def _saved_session(tmp_path) -> dict:
    (path,) = (tmp_path / "sessions").glob("session_*.json")
    return json.loads(path.read_text())


def test_record_runs_until_time_limit_without_a_terminal(record_env, tmp_path):
    _, _, publisher = record_env()

    started = time.monotonic()
    result = runner.invoke(app, ["record", "--max-seconds", "1", "--title", "Standup"])
    elapsed = time.monotonic() - started

    assert result.exit_code == 0, result.output
    # Empty stdin must not count as Enter
    assert elapsed >= 1.0
    assert "Published" in result.output
    assert publisher.calls == [("# Greeting\nHello world.", "Standup")]

    data = _saved_session(tmp_path)
    assert data["state"] == "succeeded"
    assert data["shutdown"] == "exited_politely"
    assert data["audio_path"] is None
    assert list((tmp_path / "recordings").rglob("*.wav")) == []
    assert list((tmp_path / "logs").glob("record_*.log"))


def test_record_cleanup_failure_prints_fallback_and_exits_nonzero(record_env, tmp_path):
    _, _, publisher = record_env(cleaner=FakeCleaner(error=CleanupFailed("Cleanup failed", status=429)))

    result = runner.invoke(app, ["record", "--max-seconds", "0.5"])

    assert result.exit_code == 1
    assert "Original Transcript (fallback)" in result.output
    assert "hello world um yeah" in result.output
    assert publisher.calls == []

    data = _saved_session(tmp_path)
    assert data["state"] == "failed"
    assert data["failure_kind"] == "CleanupFailed"
    assert data["transcript"] == "hello world um yeah"


def test_record_transcription_failure_keeps_audio(record_env, tmp_path):
    record_env(transcriber=FakeTranscriber(error=TranscriptionFailed("OpenAI transcription failed: 500", status=500)))

    result = runner.invoke(app, ["record", "--max-seconds", "0.5", "--no-save-session"])

    assert result.exit_code == 1
    assert "Audio Kept" in result.output
    assert len(list((tmp_path / "recordings").rglob("*.wav"))) == 1
    assert not (tmp_path / "sessions").exists()


def test_record_missing_ffmpeg_exits_nonzero(record_env, tmp_path, monkeypatch):
    monkeypatch.setenv("VOICE_NOTE_FFMPEG_PATH", str(tmp_path / "no-ffmpeg"))
    reset_config()
    transcriber, _, _ = record_env()

    result = runner.invoke(app, ["record", "--max-seconds", "0.5"])

    assert result.exit_code == 1
    assert transcriber.calls == []
    assert _saved_session(tmp_path)["failure_kind"] == "SpawnFailure"
