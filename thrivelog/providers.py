"""Clients for the generative-AI providers.

Gemini goes through the ``google-genai`` SDK. Groq, OpenAI, Anthropic and
Fal.ai are plain JSON over HTTPS and share ``_HttpProvider``. Every failure
surfaces as ``ProviderError`` with an ``ErrorKind`` so callers can decide
whether to fall back, retry or show an advisory.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_MODEL,
    FAL_API_KEY,
    GEMINI_API_KEY,
    GEMINI_VISION_MODEL,
    GROQ_API_KEY,
    GROQ_TEXT_MODEL,
    HTTP_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
    OPENAI_CHAT_MODEL,
    WHISPER_MODEL,
)
from .errors import ErrorKind, ProviderError, error_kind_for_status, provider_error_for_status

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 4
BASE_DELAY = 1.0  # Base delay in seconds
MAX_DELAY = 60.0  # Maximum delay in seconds
JITTER_RANGE = 0.1  # Jitter factor for randomization

GROQ_CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_TRANSCRIPTION_URL = "https://api.openai.com/v1/audio/transcriptions"
ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
FAL_FLUX_URL = "https://fal.run/fal-ai/flux/dev"

# User-facing wording for Gemini status codes on the image path
GEMINI_STATUS_MESSAGES = {
    429: "Gemini API rate limit exceeded. Please wait a moment before trying again.",
    400: "Invalid request to Gemini API. Please check your image format.",
    403: "Gemini API access denied. Please check your API key.",
}


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is retryable (503 overload errors)."""
    error_str = str(error).lower()
    return (
        "503" in error_str
        or "overloaded" in error_str
        or "unavailable" in error_str
        or "try again later" in error_str
    )


def calculate_retry_delay(attempt: int) -> float:
    """Calculate exponential backoff delay with jitter."""
    delay = min(BASE_DELAY * (2**attempt), MAX_DELAY)
    jitter = random.uniform(-JITTER_RANGE, JITTER_RANGE) * delay
    return max(0.1, delay + jitter)


def _missing_key(provider: str, label: str) -> ProviderError:
    return ProviderError(provider, ErrorKind.MISSING_KEY, f"{label} API key not found")


# Gemini


@dataclass
class GeminiReply:
    text: str
    model: str
    finish_reason: Optional[str] = None


def _finish_reason(response: Any) -> Optional[str]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    reason = getattr(candidates[0], "finish_reason", None)
    if reason is None:
        return None
    return getattr(reason, "name", None) or str(reason)


def gemini_error(exc: genai_errors.APIError) -> ProviderError:
    """Translate an SDK error into a ``ProviderError``."""
    status_code = getattr(exc, "code", None)
    kind = error_kind_for_status(status_code)
    message = GEMINI_STATUS_MESSAGES.get(status_code) or (
        f"Gemini API error: {status_code} - {getattr(exc, 'message', None) or exc}"
    )
    if kind is ErrorKind.UNKNOWN and is_retryable_error(exc):
        kind = ErrorKind.UNAVAILABLE
    return ProviderError("gemini", kind, message, status_code=status_code)


class GeminiClient:
    """Async wrapper over ``genai.Client`` with retry on overload errors."""

    name = "gemini"

    def __init__(
        self,
        api_key: str = GEMINI_API_KEY,
        model: str = GEMINI_VISION_MODEL,
        client: Optional[genai.Client] = None,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.max_retries = max_retries
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                # Surface the missing key only when a call is attempted
                raise _missing_key(self.name, "Gemini")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        contents: Sequence[Any],
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 300,
    ) -> GeminiReply:
        """Call ``generate_content``, retrying transient overload errors."""
        target_model = model or self.model
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        client = self.client

        for attempt in range(self.max_retries):
            try:
                response = await asyncio.to_thread(
                    client.models.generate_content,
                    model=target_model,
                    contents=list(contents),
                    config=config,
                )
            except genai_errors.APIError as exc:
                if not is_retryable_error(exc) or attempt == self.max_retries - 1:
                    raise gemini_error(exc) from exc
                delay = calculate_retry_delay(attempt)
                logger.warning(
                    "Gemini call failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt + 1,
                    self.max_retries,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                continue

            if attempt > 0:
                logger.info("Gemini call succeeded on attempt %d", attempt + 1)
            return GeminiReply(
                text=(getattr(response, "text", None) or "").strip(),
                model=target_model,
                finish_reason=_finish_reason(response),
            )

        raise ProviderError(
            self.name, ErrorKind.UNAVAILABLE, "Gemini service is currently unavailable"
        )

    async def generate_text(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        temperature: float = 0.8,
        max_output_tokens: int = 1000,
    ) -> GeminiReply:
        return await self.generate(
            [prompt],
            model=model,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    async def analyze_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 300,
    ) -> str:
        reply = await self.generate(
            [prompt, types.Part.from_bytes(data=image_bytes, mime_type=mime_type)],
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        if not reply.text:
            raise ProviderError(self.name, ErrorKind.MALFORMED, "No content generated")
        return reply.text


# HTTP providers


class _HttpProvider:
    name = "provider"
    label = "Provider"

    def __init__(self, api_key: str, timeout: float = HTTP_TIMEOUT_SECONDS) -> None:
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _post(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        if not self.api_key:
            raise _missing_key(self.name, self.label)

        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                self.name,
                ErrorKind.TIMEOUT,
                f"{self.label} request timeout after {self.timeout:g}s",
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderError(
                self.name, ErrorKind.NETWORK, f"{self.label} network error: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise provider_error_for_status(
                self.name, response.status_code, _error_detail(response), label=self.label
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                self.name, ErrorKind.MALFORMED, f"{self.label} returned invalid JSON"
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(
                self.name, ErrorKind.MALFORMED, f"{self.label} returned an unexpected payload"
            )
        return data


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or "")
        if error:
            return str(error)
    return ""


class _ChatCompletionsProvider(_HttpProvider):
    url = ""
    default_model = ""

    async def chat(
        self,
        messages: List[Mapping[str, Any]],
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 150,
    ) -> str:
        """Send an OpenAI-style chat completion and return the message text."""
        data = await self._post(
            self.url,
            json={
                "model": model or self.default_model,
                "messages": list(messages),
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(
                self.name, ErrorKind.MALFORMED, f"No content generated from {self.label}"
            ) from exc
        if not content:
            raise ProviderError(
                self.name, ErrorKind.MALFORMED, f"No content generated from {self.label}"
            )
        return content.strip()


class GroqClient(_ChatCompletionsProvider):
    name = "groq"
    label = "Groq"
    url = GROQ_CHAT_URL

    def __init__(
        self,
        api_key: str = GROQ_API_KEY,
        model: str = GROQ_TEXT_MODEL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(api_key, timeout)
        self.default_model = model


class OpenAIClient(_ChatCompletionsProvider):
    name = "openai"
    label = "OpenAI"
    url = OPENAI_CHAT_URL

    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        model: str = OPENAI_CHAT_MODEL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(api_key, timeout)
        self.default_model = model

    async def transcribe(
        self,
        audio_bytes: bytes,
        filename: str = "recording.m4a",
        content_type: str = "audio/m4a",
        model: str = WHISPER_MODEL,
    ) -> str:
        """Transcribe audio with Whisper; the language is auto-detected."""
        data = await self._post(
            OPENAI_TRANSCRIPTION_URL,
            files={"file": (filename, audio_bytes, content_type)},
            data={"model": model},
        )
        return data.get("text", "")


class AnthropicClient(_HttpProvider):
    name = "anthropic"
    label = "Anthropic"

    def __init__(
        self,
        api_key: str = ANTHROPIC_API_KEY,
        model: str = ANTHROPIC_MODEL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(api_key, timeout)
        self.model = model

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}

    async def messages(
        self, prompt: str, *, model: Optional[str] = None, max_tokens: int = 1000
    ) -> str:
        data = await self._post(
            ANTHROPIC_MESSAGES_URL,
            json={
                "model": model or self.model,
                "max_tokens": max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        blocks = data.get("content") or []
        text = "".join(
            block.get("text", "") for block in blocks if isinstance(block, dict)
        )
        if not text:
            raise ProviderError(
                self.name, ErrorKind.MALFORMED, "No content generated from Anthropic"
            )
        return text


class FalClient(_HttpProvider):
    name = "fal"
    label = "Fal.ai"

    def __init__(
        self, api_key: str = FAL_API_KEY, timeout: float = HTTP_TIMEOUT_SECONDS
    ) -> None:
        super().__init__(api_key, timeout)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Key {self.api_key}"}

    async def generate_image(
        self,
        prompt: str,
        *,
        num_inference_steps: int = 20,
        guidance_scale: float = 7.5,
        seed: Optional[int] = None,
    ) -> str:
        """Render ``prompt`` with flux/dev and return the first image URL."""
        data = await self._post(
            FAL_FLUX_URL,
            json={
                "prompt": prompt,
                "num_inference_steps": num_inference_steps,
                "guidance_scale": guidance_scale,
                "seed": seed if seed is not None else random.randint(0, 999_999),
            },
        )
        images = data.get("images") or []
        if not images or not images[0].get("url"):
            raise ProviderError(self.name, ErrorKind.MALFORMED, "No image generated")
        return images[0]["url"]
