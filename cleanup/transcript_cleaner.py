"""Transcript cleanup with a chat model."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pipeline.errors import CleanupFailed
from prompts.cleanup_prompts import CLEANUP_SYSTEM_PROMPT, CLEANUP_USER_PROMPT

if TYPE_CHECKING:
    from utils.llm import LLMClient


DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_TIMEOUT_S = 60.0


@dataclass
class CleanupResult:
    """Outcome of a cleanup call.

    ``degraded`` is set when the model answered without content and the
    original transcript was passed through unchanged.
    """

    text: str
    degraded: bool = False


class TranscriptCleaner:
    """Removes fillers and false starts and adds a title heading."""

    def __init__(
        self,
        llm_client: "LLMClient",
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature
        self.timeout_s = timeout_s

    def clean(self, text: str) -> CleanupResult:
        """Clean a transcript into a markdown document starting with an H1.

        Empty or whitespace-only input returns an empty result without a
        remote call.

        Raises:
            CleanupFailed: Missing credentials or any error from the model call.
        """
        if not text or not text.strip():
            return CleanupResult(text="")

        if not self.llm_client.has_credentials(self.model):
            raise CleanupFailed(f"No API key configured for cleanup model {self.model}")

        try:
            content = self.llm_client.generate(
                model=self.model,
                system_prompt=CLEANUP_SYSTEM_PROMPT,
                user_prompt=CLEANUP_USER_PROMPT.format(transcript=text),
                temperature=self.temperature,
                timeout_s=self.timeout_s,
            )
        except Exception as e:
            status = getattr(e, "status_code", None)
            raise CleanupFailed(
                f"Cleanup failed: {type(e).__name__}",
                status=status if isinstance(status, int) else None,
                detail=str(e),
            ) from e

        content = (content or "").strip()
        if not content:
            return CleanupResult(text=text, degraded=True)
        return CleanupResult(text=content)
