"""Logging utility with Rich console output and file logging."""

from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.theme import Theme


# Custom theme for consistent styling
THEME = Theme({
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red bold",
    "step": "blue",
    "api": "magenta",
    "dim": "dim",
})


class NoteLogger:
    """Logger that outputs to Rich console and optionally to a file."""

    def __init__(
        self,
        command: str,
        logs_dir: Path | str | None = "./logs",
        console: Console | None = None,
    ):
        """Initialize the logger.

        Args:
            command: The command name (e.g., 'record') for the log filename.
            logs_dir: Directory to store log files. ``None`` disables the file.
            console: Optional Rich console instance.
        """
        self.command = command
        self.log_file: Path | None = None
        self._file_handle = None

        if logs_dir is not None:
            self.logs_dir = Path(logs_dir)
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.log_file = self.logs_dir / f"{command}_{timestamp}.log"
            self._file_handle = open(self.log_file, "w", encoding="utf-8")

        # Rich console for terminal output
        self.console = console or Console(theme=THEME)

    def _write_to_file(self, level: str, message: str) -> None:
        """Write a log entry to the file."""
        if self._file_handle is None or self._file_handle.closed:
            return
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self._file_handle.write(f"[{timestamp}] {level}: {message}\n")
        self._file_handle.flush()

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self.console.print(f"[info]ℹ[/info] {message}", **kwargs)
        self._write_to_file("INFO", message)

    def success(self, message: str, **kwargs: Any) -> None:
        """Log a success message."""
        self.console.print(f"[success]✓[/success] {message}", **kwargs)
        self._write_to_file("SUCCESS", message)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self.console.print(f"[warning]⚠[/warning] {message}", **kwargs)
        self._write_to_file("WARNING", message)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message."""
        self.console.print(f"[error]✗[/error] {message}", **kwargs)
        self._write_to_file("ERROR", message)

    def step(self, message: str, **kwargs: Any) -> None:
        """Log a step/progress message."""
        self.console.print(f"[step]→[/step] {message}", **kwargs)
        self._write_to_file("STEP", message)

    def output(self, line: str) -> None:
        """Log a line of subprocess output (dimmed, never parsed as markup)."""
        self.console.print(f"[dim]│ {escape(line)}[/dim]")
        self._write_to_file("FFMPEG", line)

    def api(self, input_tokens: int, output_tokens: int, model: str | None = None) -> None:
        """Log API token usage."""
        message = f"Tokens: {input_tokens:,} in, {output_tokens:,} out"
        if model:
            message += f" ({model})"
        self.console.print(f"[api]⚡[/api] {message}")
        self._write_to_file("API", message)

    def document(self, text: str, title: str = "Document") -> None:
        """Render a markdown document in a panel."""
        self.console.print(Panel(Markdown(text), title=f"[bold]{escape(title)}[/bold]", border_style="blue"))
        self._write_to_file("DOCUMENT", text)

    def header(self, title: str, **kwargs: Any) -> None:
        """Print a section header."""
        self.console.print()
        self.console.rule(f"[bold]{title}[/bold]", **kwargs)
        self.console.print()
        self._write_to_file("HEADER", title)

    def summary(
        self,
        title: str,
        data: dict[str, str],
        style: str = "green",
    ) -> None:
        """Print a summary panel with key-value data."""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Key", style="bold")
        table.add_column("Value")

        for key, value in data.items():
            table.add_row(key, value)

        panel = Panel(table, title=f"[bold]{title}[/bold]", border_style=style)
        self.console.print(panel)

        # Write plain text version to file
        self._write_to_file("SUMMARY", title)
        for key, value in data.items():
            self._write_to_file("SUMMARY", f"  {key}: {value}")

    def status(self, message: str) -> Status:
        """Spinner context for a long-running step.

        Usage:
            with logger.status("Transcribing..."):
                ...
        """
        self._write_to_file("STATUS", message)
        return self.console.status(message)

    def close(self) -> None:
        """Close the log file."""
        if self._file_handle:
            self._file_handle.close()

    def __enter__(self) -> "NoteLogger":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
