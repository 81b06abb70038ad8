"""Cost and time tracking utilities."""

import time
from dataclasses import dataclass, field
from typing import Any


# Chat model pricing per million tokens (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    # OpenAI
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4.1": (2.0, 8.0),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.0),
    # Anthropic
    "claude-haiku-4-5": (1.0, 5.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-sonnet-4-5": (3.0, 15.0),
    # Gemini
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-3-flash-preview": (0.5, 3.0),
}

# Transcription pricing per minute of audio
# From: https://platform.openai.com/docs/pricing
TRANSCRIPTION_PRICING: dict[str, float] = {
    "gpt-4o-mini-transcribe": 0.003,
    "gpt-4o-transcribe": 0.006,
    "whisper-1": 0.006,
}

# Default pricing (gpt-4.1-mini)
DEFAULT_PRICING = (0.40, 1.60)
DEFAULT_TRANSCRIPTION_PRICE = 0.006


def get_model_pricing(model: str) -> tuple[float, float]:
    """Get pricing for a model. Returns (input_price_per_mtok, output_price_per_mtok)."""
    return MODEL_PRICING.get(model, DEFAULT_PRICING)


def detect_provider(model: str) -> str:
    """Detect the provider based on model name.

    Returns: "anthropic", "openai", or "gemini"
    """
    if model.startswith("claude"):
        return "anthropic"
    if model.startswith("gemini"):
        return "gemini"
    # gpt-*, o1/o3/o4 and anything else default to OpenAI
    return "openai"


@dataclass
class CostTracker:
    """Tracks API costs and token usage across multiple calls."""

    total_input_tokens: int = 0
    total_output_tokens: int = 0
    audio_seconds: float = 0.0
    api_calls: int = 0
    total_cost_dollars: float = 0.0

    # Per-model tracking
    model_stats: dict[str, dict[str, Any]] = field(default_factory=dict)

    def _model_entry(self, model: str) -> dict[str, Any]:
        if model not in self.model_stats:
            self.model_stats[model] = {"input": 0, "output": 0, "seconds": 0.0, "calls": 0, "cost": 0.0}
        return self.model_stats[model]

    def add_usage(self, input_tokens: int, output_tokens: int, model: str) -> float:
        """Record token usage from a chat API call.

        Returns:
            The cost of this API call in dollars.
        """
        input_price, output_price = get_model_pricing(model)
        call_cost = (
            (input_tokens / 1_000_000) * input_price +
            (output_tokens / 1_000_000) * output_price
        )

        self.total_input_tokens += input_tokens
        self.total_output_tokens += output_tokens
        self.api_calls += 1
        self.total_cost_dollars += call_cost

        stats = self._model_entry(model)
        stats["input"] += input_tokens
        stats["output"] += output_tokens
        stats["calls"] += 1
        stats["cost"] += call_cost
        return call_cost

    def add_audio(self, seconds: float, model: str) -> float:
        """Record a transcription call over ``seconds`` of audio."""
        price = TRANSCRIPTION_PRICING.get(model, DEFAULT_TRANSCRIPTION_PRICE)
        call_cost = (max(0.0, seconds) / 60) * price

        self.audio_seconds += max(0.0, seconds)
        self.api_calls += 1
        self.total_cost_dollars += call_cost

        stats = self._model_entry(model)
        stats["seconds"] += max(0.0, seconds)
        stats["calls"] += 1
        stats["cost"] += call_cost
        return call_cost

    @property
    def total_cost(self) -> float:
        """Get total cost in dollars."""
        return self.total_cost_dollars

    def get_summary(self) -> dict[str, str]:
        """Get a summary dictionary for display."""
        models_used = list(self.model_stats.keys())
        models_str = ", ".join(models_used) if models_used else "None"

        return {
            "Models Used": models_str,
            "API Calls": str(self.api_calls),
            "Audio": f"{self.audio_seconds:.1f}s",
            "Input Tokens": f"{self.total_input_tokens:,}",
            "Output Tokens": f"{self.total_output_tokens:,}",
            "Total Cost": f"${self.total_cost:.4f}",
        }


class Timer:
    """Wall-clock timer for a command run."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time: float | None = None
        self.end_time: float | None = None

    @property
    def elapsed(self) -> float:
        """Get elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.time()
        return end - self.start_time

    @property
    def elapsed_str(self) -> str:
        """Get elapsed time as a formatted string."""
        return format_duration(self.elapsed)

    def start(self) -> None:
        """Start the timer."""
        self.start_time = time.time()

    def stop(self) -> float:
        """Stop the timer and return elapsed time."""
        self.end_time = time.time()
        return self.elapsed


def format_duration(seconds: float) -> str:
    """Format seconds as ``4.2s``, ``3m 12s`` or ``1h 5m 3s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    if minutes < 60:
        return f"{minutes}m {secs:.0f}s"
    hours = minutes // 60
    mins = minutes % 60
    return f"{hours}h {mins}m {secs:.0f}s"
