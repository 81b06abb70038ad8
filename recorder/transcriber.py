"""Audio transcription using OpenAI Speech-to-Text API."""

from pathlib import Path
from typing import Any

import openai
from openai import OpenAI

from pipeline.errors import EmptyTranscription, TranscriptionFailed


DEFAULT_MODEL = "gpt-4o-mini-transcribe"  # "whisper-1" also works
DEFAULT_LANGUAGE = "en"
DEFAULT_TIMEOUT_S = 90.0


class Transcriber:
    """Transcribes audio files using OpenAI's Speech-to-Text API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        language: str | None = DEFAULT_LANGUAGE,
        response_format: str = "json",
        timeout_s: float = DEFAULT_TIMEOUT_S,
        client: Any = None,
    ):
        """Initialize the transcriber.

        Args:
            api_key: OpenAI API key. Transcription fails without one.
            model: Transcription model.
            language: ISO-639-1 language hint, or None to auto-detect.
            response_format: "json" or "text".
            timeout_s: Request timeout; the upload is aborted on expiry.
            client: Pre-built OpenAI client (mainly for tests).
        """
        self.api_key = (api_key or "").strip()
        self.model = model
        self.language = language
        self.response_format = response_format
        self.timeout_s = timeout_s
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    @property
    def client(self) -> Any:
        if self._client is None:
            # No automatic retries: a timeout must end the stage
            self._client = OpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    def transcribe_file(self, audio_path: Path) -> str:
        """Transcribe an audio file.

        Args:
            audio_path: Path to the audio file (WAV, MP3, etc.)

        Returns:
            The transcribed text (never empty).

        Raises:
            TranscriptionFailed: Missing key, unreadable file, remote error,
                timeout or network failure.
            EmptyTranscription: The response carried no text.
        """
        if not self.is_configured:
            raise TranscriptionFailed("No OpenAI API key configured")

        kwargs: dict[str, Any] = {}
        if self.language:
            kwargs["language"] = self.language

        try:
            with open(audio_path, "rb") as audio_file:
                response = self.client.audio.transcriptions.create(
                    model=self.model,
                    file=audio_file,
                    response_format=self.response_format,
                    timeout=self.timeout_s,
                    **kwargs,
                )
        except openai.APITimeoutError as e:
            raise TranscriptionFailed(
                f"Transcription timed out after {self.timeout_s:.0f}s",
                detail=str(e),
            ) from e
        except openai.APIStatusError as e:
            raise TranscriptionFailed(
                f"OpenAI transcription failed: {e.status_code}",
                status=e.status_code,
                detail=_error_detail(e),
            ) from e
        except openai.APIConnectionError as e:
            raise TranscriptionFailed(
                "Could not reach the transcription service",
                detail=str(e),
            ) from e
        except OSError as e:
            raise TranscriptionFailed(f"Could not read audio file: {e}", detail=str(e)) from e

        text = self._parse_response(response)
        if not text:
            raise EmptyTranscription("No text in transcription response")
        return text

    def _parse_response(self, response: Any) -> str:
        """Pull the text out of a "text" (str) or "json" (object/dict) response."""
        if isinstance(response, str):
            return response.strip()
        if isinstance(response, dict):
            return (response.get("text") or "").strip()
        return (getattr(response, "text", None) or "").strip()


def _error_detail(error: "openai.APIStatusError") -> str:
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
    return error.message
