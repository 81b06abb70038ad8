"""Configuration and settings for voice note recording and publishing."""

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path

from dotenv import load_dotenv


def _env(name: str, default: str = "") -> str:
    """Read an env var, trimmed. Empty means "not configured"."""
    return (os.getenv(name) or default).strip()


def _env_number(name: str, default: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def default_mic_device() -> str:
    """ffmpeg device spec for the default microphone on this platform."""
    if sys.platform == "darwin":
        return ":1"  # avfoundation audio device index
    if sys.platform == "win32":
        return "audio=Microphone"
    return "default"


@dataclass
class ModelConfig:
    """Model configuration for the remote stages.

    The cleanup model may come from any provider the LLM client supports
    (gpt-*, claude-*, gemini-*); transcription always uses OpenAI.
    """

    transcription: str = "gpt-4o-mini-transcribe"  # or "whisper-1"
    cleanup: str = "gpt-4.1-mini"

    @classmethod
    def from_env(cls) -> "ModelConfig":
        """Create a config with overrides from the environment."""
        defaults = cls()
        return cls(
            transcription=_env("VOICE_NOTE_TRANSCRIPTION_MODEL", defaults.transcription),
            cleanup=_env("VOICE_NOTE_CLEANUP_MODEL", defaults.cleanup),
        )


@dataclass
class Config:
    """Application configuration."""

    # API keys (loaded from .env file)
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""

    # Publishing
    notion_token: str = ""
    notion_database_id: str = ""

    # Capture settings
    ffmpeg_path: str = "ffmpeg"
    input_format: str = ""  # empty = platform default
    mic_device: str = field(default_factory=default_mic_device)
    sample_rate: int = 16000
    channels: int = 1

    # Shutdown tiers
    polite_timeout_ms: int = 700
    interrupt_timeout_ms: int = 1100

    # Remote stages
    models: ModelConfig = field(default_factory=ModelConfig.from_env)
    transcription_language: str = "en"
    transcription_timeout_s: float = 90.0
    cleanup_temperature: float = 0.2
    cleanup_timeout_s: float = 60.0
    publish_timeout_s: float = 30.0

    # Storage paths
    logs_dir: Path = Path("./logs")
    sessions_dir: Path = Path("./sessions")
    recordings_dir: Path | None = None  # None = OS temp dir

    def __post_init__(self):
        """Load settings from environment after initialization."""
        self.openai_api_key = _env("OPENAI_API_KEY", self.openai_api_key)
        self.anthropic_api_key = _env("ANTHROPIC_API_KEY", self.anthropic_api_key)
        self.google_api_key = _env("GOOGLE_API_KEY", self.google_api_key) or _env("GEMINI_API_KEY")
        self.notion_token = _env("NOTION_TOKEN", self.notion_token)
        self.notion_database_id = _env("NOTION_DATABASE_ID", self.notion_database_id)

        self.ffmpeg_path = _env("VOICE_NOTE_FFMPEG_PATH", self.ffmpeg_path) or "ffmpeg"
        self.input_format = _env("VOICE_NOTE_INPUT_FORMAT", self.input_format)
        self.mic_device = _env("VOICE_NOTE_MIC_DEVICE", self.mic_device) or default_mic_device()
        self.transcription_language = _env("VOICE_NOTE_LANGUAGE", self.transcription_language)

        self.polite_timeout_ms = int(_env_number("VOICE_NOTE_POLITE_TIMEOUT_MS", self.polite_timeout_ms))
        self.interrupt_timeout_ms = int(_env_number("VOICE_NOTE_INTERRUPT_TIMEOUT_MS", self.interrupt_timeout_ms))
        self.transcription_timeout_s = _env_number("VOICE_NOTE_TRANSCRIPTION_TIMEOUT_S", self.transcription_timeout_s)
        self.cleanup_timeout_s = _env_number("VOICE_NOTE_CLEANUP_TIMEOUT_S", self.cleanup_timeout_s)
        self.publish_timeout_s = _env_number("VOICE_NOTE_PUBLISH_TIMEOUT_S", self.publish_timeout_s)

        recordings_dir = _env("VOICE_NOTE_RECORDINGS_DIR")
        if recordings_dir:
            self.recordings_dir = Path(recordings_dir)

    @property
    def notion_configured(self) -> bool:
        return bool(self.notion_token and self.notion_database_id)

    def masked(self) -> dict[str, str]:
        """Settings for display, with secrets masked."""
        secrets = {"openai_api_key", "anthropic_api_key", "google_api_key", "notion_token"}
        shown: dict[str, str] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in secrets:
                shown[f.name] = _mask(value)
            elif isinstance(value, ModelConfig):
                shown["transcription_model"] = value.transcription
                shown["cleanup_model"] = value.cleanup
            else:
                shown[f.name] = "" if value is None else str(value)
        return shown


def _mask(secret: str) -> str:
    if not secret:
        return "(not set)"
    if len(secret) <= 8:
        return "****"
    return f"{secret[:4]}…{secret[-4:]}"


# Global config instance (created on first use so .env is loaded first)
config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global config
    if config is None:
        load_dotenv()
        config = Config()
    return config


def update_config(**kwargs) -> Config:
    """Update configuration with new values."""
    cfg = get_config()
    for key, value in kwargs.items():
        if hasattr(cfg, key):
            setattr(cfg, key, value)
    return cfg


def reset_config() -> None:
    """Drop the global instance so the next get_config() re-reads the environment."""
    global config
    config = None
