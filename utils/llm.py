"""Unified chat-completion client with provider abstraction and cost tracking."""

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

from .tracking import CostTracker, detect_provider

if TYPE_CHECKING:
    from .logger import NoteLogger


DEFAULT_TIMEOUT_S = 60.0


@dataclass
class LLMResponse:
    """Standardized response from any LLM provider."""

    text: str
    input_tokens: int
    output_tokens: int
    model: str


class LLMClient:
    """Unified LLM client with provider abstraction and built-in cost tracking.

    Supports OpenAI, Anthropic and Gemini with automatic detection based on
    model name. Provider clients are created lazily with retries disabled: a
    failed or timed-out call surfaces immediately to the caller.

    Example:
        >>> client = LLMClient(openai_api_key="sk-...")
        >>> client.generate(
        ...     model="gpt-4.1-mini",
        ...     system_prompt="You are a helpful assistant.",
        ...     user_prompt="Hello!",
        ...     timeout_s=30,
        ... )
    """

    def __init__(
        self,
        cost_tracker: CostTracker | None = None,
        logger: "NoteLogger | None" = None,
        openai_api_key: str | None = None,
        anthropic_api_key: str | None = None,
        google_api_key: str | None = None,
    ):
        """Initialize the LLM client.

        Args:
            cost_tracker: Optional CostTracker for tracking usage and costs.
            logger: Optional NoteLogger for logging API calls.
            openai_api_key: Key for OpenAI models (env var if None).
            anthropic_api_key: Key for Anthropic models (env var if None).
            google_api_key: Key for Gemini models (env var if None).
        """
        self.cost_tracker = cost_tracker
        self.logger = logger
        self.openai_api_key = openai_api_key or None
        self.anthropic_api_key = anthropic_api_key or None
        self.google_api_key = google_api_key or None

        # Lazy-loaded provider clients
        self._anthropic_client: Any = None
        self._openai_client: Any = None
        self._gemini_client: Any = None

    def _get_anthropic_client(self) -> Any:
        """Get or create Anthropic client."""
        if self._anthropic_client is None:
            from anthropic import Anthropic
            self._anthropic_client = Anthropic(api_key=self.anthropic_api_key, max_retries=0)
        return self._anthropic_client

    def _get_openai_client(self) -> Any:
        """Get or create OpenAI client."""
        if self._openai_client is None:
            from openai import OpenAI
            self._openai_client = OpenAI(api_key=self.openai_api_key, max_retries=0)
        return self._openai_client

    def _get_gemini_client(self) -> Any:
        """Get or create Gemini client using the google-genai package."""
        if self._gemini_client is None:
            import os
            from google import genai

            api_key = self.google_api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
            self._gemini_client = genai.Client(api_key=api_key)
        return self._gemini_client

    def has_credentials(self, model: str) -> bool:
        """Whether an explicit key is configured for the model's provider."""
        provider = detect_provider(model)
        if provider == "anthropic":
            return bool(self.anthropic_api_key)
        if provider == "gemini":
            return bool(self.google_api_key)
        return bool(self.openai_api_key)

    def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
        max_tokens: int = 4096,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> str:
        """Generate a response from an LLM.

        Args:
            model: Model name (e.g., "gpt-4.1-mini", "claude-haiku-4-5").
            system_prompt: System prompt for the model.
            user_prompt: User message.
            temperature: Sampling temperature, provider default if None.
            max_tokens: Maximum tokens for response.
            timeout_s: Request timeout; the in-flight call is aborted on expiry.

        Returns:
            Response text; empty string when the provider returned no content.
        """
        provider = detect_provider(model)

        if provider == "anthropic":
            response = self._call_anthropic(model, system_prompt, user_prompt, temperature, max_tokens, timeout_s)
        elif provider == "gemini":
            response = self._call_gemini(model, system_prompt, user_prompt, temperature, max_tokens, timeout_s)
        else:
            response = self._call_openai(model, system_prompt, user_prompt, temperature, max_tokens, timeout_s)

        if self.cost_tracker:
            self.cost_tracker.add_usage(response.input_tokens, response.output_tokens, model=model)
        if self.logger:
            self.logger.api(response.input_tokens, response.output_tokens, model=model)

        return response.text

    def _call_anthropic(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
        timeout_s: float,
    ) -> LLMResponse:
        """Call Anthropic API."""
        client = self._get_anthropic_client()

        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            timeout=timeout_s,
            **kwargs,
        )

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        )
        return LLMResponse(
            text=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
        )

    def _call_openai(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
        timeout_s: float,
    ) -> LLMResponse:
        """Call OpenAI API."""
        client = self._get_openai_client()

        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = client.chat.completions.create(
            model=model,
            max_completion_tokens=max_tokens,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            timeout=timeout_s,
            **kwargs,
        )

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        return LLMResponse(
            text=text,
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
            model=model,
        )

    def _call_gemini(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
        timeout_s: float,
    ) -> LLMResponse:
        """Call Gemini API using the google-genai package."""
        from google.genai import types

        client = self._get_gemini_client()

        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=max_tokens,
            temperature=temperature,
            # HttpOptions.timeout is in milliseconds
            http_options=types.HttpOptions(timeout=int(timeout_s * 1000)),
        )

        response = client.models.generate_content(
            model=model,
            contents=user_prompt,
            config=config,
        )

        usage = response.usage_metadata
        return LLMResponse(
            text=response.text or "",
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
            model=model,
        )
