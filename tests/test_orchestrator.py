"""Tests for PipelineOrchestrator stages and end-to-end scenarios."""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from conftest import FakeCleaner, FakePublisher, FakeTranscriber
from pipeline.errors import CleanupFailed, PublishFailed, TranscriptionFailed
from pipeline.orchestrator import PipelineOrchestrator, Stage
from pipeline.session import EventStyle, RecordingSession, SessionState
from publisher.notion import NotionPublisher
from recorder.transcriber import Transcriber


def _orchestrator(transcriber=None, cleaner=None, publisher=None, **kwargs):
    return PipelineOrchestrator(
        transcriber=transcriber or FakeTranscriber(),
        cleaner=cleaner or FakeCleaner(),
        publisher=publisher if publisher is not None else FakePublisher(),
        **kwargs,
    )


def _marker_index(log: list[str], stage: Stage) -> int:
    return next(i for i, line in enumerate(log) if line.startswith(f"[{stage}]"))


# -- validate_capture ---------------------------------------------------------

def test_validate_fails_on_zero_byte_file(stopped_session):
    session = stopped_session(size=0)

    session = _orchestrator().validate_capture(session)

    assert session.failed
    assert session.failure_kind == "NoAudioCaptured"


def test_validate_fails_on_missing_file(stopped_session):
    session = stopped_session(create=False)

    session = _orchestrator().validate_capture(session)

    assert session.failure_kind == "NoAudioCaptured"
    assert session.audio_path is None


def test_validate_keeps_path_of_empty_file(stopped_session):
    session = stopped_session(size=0)

    session = _orchestrator().validate_capture(session)

    assert session.audio_path.exists()


@pytest.mark.parametrize("size", [1, 44, 500])
def test_validate_accepts_any_non_empty_file(stopped_session, size):
    session = stopped_session(size=size)

    session = _orchestrator().validate_capture(session)

    assert not session.failed
    assert session.state == SessionState.STOPPING


# -- transcribe ---------------------------------------------------------------

def test_successful_transcription_deletes_audio(stopped_session):
    session = stopped_session()
    audio = session.audio_path
    transcriber = FakeTranscriber(text="hello world")

    session = _orchestrator(transcriber=transcriber).transcribe(session)

    assert session.state == SessionState.TRANSCRIBING
    assert session.transcript == "hello world"
    assert session.audio_path is None
    assert not audio.exists()
    assert transcriber.file_existed_during_call is True


def test_failed_transcription_keeps_audio(stopped_session):
    session = stopped_session()
    audio = session.audio_path
    transcriber = FakeTranscriber(error=TranscriptionFailed("OpenAI transcription failed: 500", status=500))

    session = _orchestrator(transcriber=transcriber).transcribe(session)

    assert session.failure_kind == "TranscriptionFailed"
    assert session.audio_path == audio
    assert audio.exists()


def test_unexpected_transcriber_error_is_contained(stopped_session):
    session = stopped_session()
    transcriber = FakeTranscriber(error=RuntimeError("socket closed"))

    session = _orchestrator(transcriber=transcriber).transcribe(session)

    assert session.failure_kind == "TranscriptionFailed"
    assert "socket closed" in session.last_error
    assert session.audio_path.exists()


def test_audio_deletion_failure_does_not_fail_stage(stopped_session, monkeypatch):
    session = stopped_session()
    audio = session.audio_path

    def refuse(self, *args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr(type(audio), "unlink", refuse)
    session = _orchestrator().transcribe(session)

    assert not session.failed
    assert session.transcript
    assert any("Failed to delete audio file" in line for line in session.log)


# -- clean --------------------------------------------------------------------

def _transcribed(stopped_session, orchestrator):
    session = stopped_session()
    return orchestrator.transcribe(orchestrator.validate_capture(session))


def test_cleanup_failure_preserves_transcript(stopped_session):
    orchestrator = _orchestrator(cleaner=FakeCleaner(error=CleanupFailed("Cleanup failed", status=429)))
    session = _transcribed(stopped_session, orchestrator)

    session = orchestrator.clean(session)

    assert session.failure_kind == "CleanupFailed"
    assert session.transcript == "hello world um yeah"
    assert any("original transcript kept" in line for line in session.log)


def test_degraded_cleanup_passes_transcript_through(stopped_session):
    orchestrator = _orchestrator(cleaner=FakeCleaner(text="hello world um yeah", degraded=True))
    session = _transcribed(stopped_session, orchestrator)

    session = orchestrator.clean(session)

    assert not session.failed
    assert session.cleanup_degraded
    assert session.document == "hello world um yeah"


# -- publish ------------------------------------------------------------------

def test_publish_not_configured_makes_no_call(stopped_session):
    publisher = FakePublisher(configured=False)
    orchestrator = _orchestrator(publisher=publisher)

    session = orchestrator.run(stopped_session())

    assert session.failure_kind == "PublishNotConfigured"
    assert publisher.calls == []
    assert session.document == "# Greeting\nHello world."


def test_publish_failure_is_terminal(stopped_session):
    publisher = FakePublisher(error=PublishFailed("Notion API error", status=400, detail="validation_error"))

    session = _orchestrator(publisher=publisher).run(stopped_session())

    assert session.failure_kind == "PublishFailed"
    assert "validation_error" in session.last_error


def test_explicit_title_forwarded(stopped_session):
    publisher = FakePublisher()

    _orchestrator(publisher=publisher, explicit_title="Standup").run(stopped_session())

    assert publisher.calls[0][1] == "Standup"


def test_run_requires_stopped_session():
    with pytest.raises(ValueError):
        _orchestrator().run(RecordingSession())


def test_events_are_emitted_in_order(stopped_session):
    events = []

    _orchestrator(on_event=events.append).run(stopped_session())

    titles = [e.title for e in events]
    assert titles.index("Transcribing audio…") < titles.index("Cleaning transcription…") < titles.index("Creating Notion page…")
    assert events[-1].style == EventStyle.SUCCESS


# -- end-to-end scenarios -----------------------------------------------------

def _notion_transport(requests_seen: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"properties": {"Name": {"type": "title"}}})
        return httpx.Response(200, json={"id": "p1", "url": "https://www.notion.so/p1"})

    return httpx.MockTransport(handler)


def test_scenario_a_full_success(stopped_session):
    requests_seen: list[httpx.Request] = []
    transcriber = FakeTranscriber(text="hello world um yeah")
    cleaner = FakeCleaner(text="# Greeting\nHello world.")
    publisher = NotionPublisher("secret", "db1", transport=_notion_transport(requests_seen))
    session = stopped_session(size=500)
    audio = session.audio_path

    session = _orchestrator(transcriber, cleaner, publisher).run(session)

    assert session.state == SessionState.SUCCEEDED
    assert session.last_error is None
    assert session.published.page_id == "p1"
    assert session.published.title == "Greeting"
    assert cleaner.calls == ["hello world um yeah"]
    assert not audio.exists()

    markers = [_marker_index(session.log, stage) for stage in Stage]
    assert markers == sorted(markers)
    assert "[transcribe] State: transcribing" in session.log
    assert session.log[-2:] == ["https://www.notion.so/p1", "[publish] State: succeeded"]

    page_body = json.loads(requests_seen[-1].content)
    assert page_body["properties"]["Name"]["title"][0]["text"]["content"] == "Greeting"
    assert [c["type"] for c in page_body["children"]] == ["paragraph"]


def test_scenario_b_empty_capture_makes_no_calls(stopped_session):
    transcriber = FakeTranscriber()
    cleaner = FakeCleaner()
    publisher = FakePublisher()

    session = _orchestrator(transcriber, cleaner, publisher).run(stopped_session(size=0))

    assert session.state == SessionState.FAILED
    assert session.failure_kind == "NoAudioCaptured"
    assert transcriber.calls == [] and cleaner.calls == [] and publisher.calls == []


def test_scenario_c_transcription_timeout_keeps_audio(stopped_session):
    def create(**kwargs):
        raise openai.APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions"))

    client = SimpleNamespace(audio=SimpleNamespace(transcriptions=SimpleNamespace(create=create)))
    transcriber = Transcriber(api_key="sk-test", timeout_s=90, client=client)
    cleaner = FakeCleaner()
    session = stopped_session(size=500)

    session = _orchestrator(transcriber=transcriber, cleaner=cleaner).run(session)

    assert session.failure_kind == "TranscriptionFailed"
    assert "timed out" in session.last_error
    assert session.audio_path.exists()
    assert cleaner.calls == []
