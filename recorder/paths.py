"""Temp-file path helpers for captured audio."""

import tempfile
from datetime import datetime
from pathlib import Path


def make_temp_dir(prefix: str = "voice-note-", root: Path | None = None) -> Path:
    """Create a fresh directory under the OS temp root (or ``root``)."""
    if root is not None:
        Path(root).mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=prefix, dir=root))


def wav_in(directory: Path, stem: str = "note") -> Path:
    """Timestamped WAV path inside ``directory``, e.g. ``note-2025-01-01T10-00-00-000000.wav``."""
    ts = datetime.now().isoformat().replace(":", "-").replace(".", "-")
    return Path(directory) / f"{stem}-{ts}.wav"


def remove_if_empty(directory: Path) -> None:
    """Remove ``directory`` if nothing was written into it."""
    try:
        Path(directory).rmdir()
    except OSError:
        # Not empty or already gone
        pass
