#!/usr/bin/env python3
"""
Voice Note CLI

Record a voice note, transcribe it, clean it up and publish it to Notion.
"""

import sys
import threading
from datetime import datetime
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from config import get_config
from utils.logger import THEME

# Create Typer app
app = typer.Typer(
    name="voice-note",
    help="Record, transcribe, clean up and publish voice notes",
    rich_markup_mode="rich",
)

console = Console(theme=THEME)


@app.command()
def record(
    device: Annotated[
        Optional[str],
        typer.Option("-d", "--device", help="ffmpeg input device (e.g. ':1' on macOS)"),
    ] = None,
    title: Annotated[
        Optional[str],
        typer.Option("-t", "--title", help="Page title (default: the note's first heading)"),
    ] = None,
    max_seconds: Annotated[
        Optional[float],
        typer.Option("--max-seconds", help="Stop automatically after this many seconds"),
    ] = None,
    save_session: Annotated[
        bool,
        typer.Option("--save-session/--no-save-session", help="Write a JSON snapshot of the session"),
    ] = True,
) -> None:
    """Record a voice note and publish it (press Enter or Ctrl+C to stop)."""
    from cleanup.transcript_cleaner import TranscriptCleaner
    from pipeline.controller import VoiceNoteController
    from pipeline.errors import RecordingAlreadyActive
    from pipeline.orchestrator import PipelineOrchestrator
    from publisher.notion import NotionPublisher
    from recorder.supervisor import RecordingSupervisor, StopTimeouts
    from recorder.transcriber import Transcriber
    from utils.llm import LLMClient
    from utils.logger import NoteLogger
    from utils.tracking import CostTracker, Timer

    cfg = get_config()

    # Initialize logger and tracking
    logger = NoteLogger("record", logs_dir=cfg.logs_dir, console=console)
    cost_tracker = CostTracker()
    timer = Timer("Session")

    llm_client = LLMClient(
        cost_tracker,
        logger,
        openai_api_key=cfg.openai_api_key,
        anthropic_api_key=cfg.anthropic_api_key,
        google_api_key=cfg.google_api_key,
    )
    orchestrator = PipelineOrchestrator(
        transcriber=Transcriber(
            api_key=cfg.openai_api_key,
            model=cfg.models.transcription,
            language=cfg.transcription_language or None,
            timeout_s=cfg.transcription_timeout_s,
        ),
        cleaner=TranscriptCleaner(
            llm_client,
            model=cfg.models.cleanup,
            temperature=cfg.cleanup_temperature,
            timeout_s=cfg.cleanup_timeout_s,
        ),
        publisher=NotionPublisher(
            cfg.notion_token,
            cfg.notion_database_id,
            timeout_s=cfg.publish_timeout_s,
            logger=logger,
        ),
        logger=logger,
        cost_tracker=cost_tracker,
        explicit_title=title,
    )
    controller = VoiceNoteController(
        supervisor=RecordingSupervisor(
            ffmpeg_path=cfg.ffmpeg_path,
            input_format=cfg.input_format or None,
            logger=logger,
        ),
        orchestrator=orchestrator,
        device=cfg.mic_device,
        sample_rate=cfg.sample_rate,
        channels=cfg.channels,
        stop_timeouts=StopTimeouts(cfg.polite_timeout_ms, cfg.interrupt_timeout_ms),
        recordings_root=cfg.recordings_dir,
        logger=logger,
    )

    try:
        timer.start()
        logger.header("Voice Note")
        logger.info(f"Device: [cyan]{escape(device or cfg.mic_device)}[/cyan]")
        logger.info(f"Models: [cyan]{cfg.models.transcription}[/cyan] → [cyan]{cfg.models.cleanup}[/cyan]")

        try:
            session = controller.start(device)
        except RecordingAlreadyActive as e:
            logger.error(str(e))
            raise typer.Exit(1)

        if not session.failed:
            _wait_for_stop(controller, logger, max_seconds)
            controller.stop()
            session = controller.run()

        timer.stop()

        if session.document:
            logger.document(session.document, title=session.published.title if session.published else "Cleaned Transcript")
        elif session.transcript:
            logger.document(session.transcript, title="Original Transcript (fallback)")

        session_file = None
        if save_session:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            session_file = cfg.sessions_dir / f"session_{stamp}.json"
            session.save(session_file)

        # Print summary
        logger.header("Summary")
        status = "[green]Published[/green]" if session.succeeded else f"[red]{escape(session.last_error or 'Failed')}[/red]"
        summary_data = {
            "Status": status,
            "Recorded": f"{session.elapsed:.1f}s" if session.started_at else "-",
            "Duration": timer.elapsed_str,
        }
        if session.published:
            summary_data["Page"] = session.published.url or session.published.page_id
        if session.audio_path and session.audio_path.exists():
            summary_data["Audio Kept"] = str(session.audio_path)
        summary_data.update(cost_tracker.get_summary())
        if session_file:
            summary_data["Session File"] = str(session_file)
        if logger.log_file:
            summary_data["Log File"] = str(logger.log_file)
        logger.summary("Voice Note", summary_data, style="green" if session.succeeded else "red")

        if not session.succeeded:
            raise typer.Exit(1)

    finally:
        if controller.supervisor.is_recording:
            controller.supervisor.stop()
        logger.close()


def _wait_for_stop(controller, logger, max_seconds: float | None) -> None:
    """Block until Enter, Ctrl+C, ``max_seconds`` or ffmpeg exiting on its own."""
    stop_requested = threading.Event()

    def wait_for_enter() -> None:
        try:
            line = sys.stdin.readline()
        except (OSError, ValueError):
            return
        # "" means EOF (no terminal attached), not Enter
        if line:
            stop_requested.set()

    threading.Thread(target=wait_for_enter, daemon=True).start()

    session = controller.session
    try:
        with logger.status("Recording… press [bold]Enter[/bold] to stop") as status:
            while not stop_requested.wait(0.5):
                elapsed = session.elapsed
                status.update(f"Recording… ({elapsed:.0f}s) press [bold]Enter[/bold] to stop")
                if max_seconds is not None and elapsed >= max_seconds:
                    logger.info(f"Reached {max_seconds:.0f}s limit")
                    break
                if not controller.supervisor.is_recording:
                    logger.warning("ffmpeg exited on its own")
                    break
    except KeyboardInterrupt:
        console.print()


@app.command()
def devices() -> None:
    """List audio input devices as ffmpeg sees them."""
    from pipeline.errors import SpawnFailure
    from recorder.supervisor import default_input_format, list_input_devices

    cfg = get_config()
    input_format = cfg.input_format or default_input_format()

    console.print(f"[dim]$ {escape(cfg.ffmpeg_path)} ({input_format})[/dim]")
    try:
        lines = list_input_devices(cfg.ffmpeg_path, input_format)
    except SpawnFailure as e:
        console.print(f"[red]✗[/red] {escape(e.describe())}")
        raise typer.Exit(1)

    for line in lines:
        console.print(escape(line))
    console.print()
    console.print("[dim]Tip: set VOICE_NOTE_MIC_DEVICE to the device to record from (e.g. :0, :1).[/dim]")


@app.command("config")
def show_config() -> None:
    """Show the effective configuration (secrets masked)."""
    from rich.table import Table

    cfg = get_config()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in cfg.masked().items():
        table.add_row(key, escape(value))
    console.print(table)

    if not cfg.openai_api_key:
        console.print("[yellow]⚠[/yellow] OPENAI_API_KEY is not set; transcription will fail")
    if not cfg.notion_configured:
        console.print("[yellow]⚠[/yellow] NOTION_TOKEN / NOTION_DATABASE_ID not set; publishing will fail")


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
