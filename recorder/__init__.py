"""Recording module for voice notes.

This module provides:
- RecordingSupervisor: Run an ffmpeg capture and stop it with escalating force
- ProcessHandle: Wrapper around the running capture subprocess
- Transcriber: Transcribe audio using OpenAI Speech-to-Text API
"""

from .process import ProcessHandle
from .supervisor import (
    RecordingSupervisor,
    ShutdownOutcome,
    StopTimeouts,
    build_capture_command,
    list_input_devices,
)
from .transcriber import Transcriber

__all__ = [
    "ProcessHandle",
    "RecordingSupervisor",
    "ShutdownOutcome",
    "StopTimeouts",
    "build_capture_command",
    "list_input_devices",
    "Transcriber",
]
