"""
Gemini API gateway for the interview analysis pipeline.

One call to ``invoke`` is one logical request to Gemini: the attachment is
size-checked up front, then the request is attempted up to ``max_attempts``
times. Failed attempts are classified from the provider's error code and
each kind backs off differently:

- overloaded (503): escalating fixed schedule, e.g. 30s -> 2min -> 5min
- rate limited (429): base delay x attempt number
- bad request (400): no retry
- anything else: base delay x attempt number

All waits go through ``asyncio.sleep`` so other sessions keep running.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from .errors import ErrorKind, GatewayError, ProviderError, classify
from ..utils.config import (
    GEMINI_API_KEY,
    GEMINI_MODEL_NAME,
    GEMINI_API_BASE,
    GEMINI_GENERATION_CONFIG,
    GEMINI_SAFETY_SETTINGS,
    REQUEST_TIMEOUT_SECONDS,
    MAX_ATTACHMENT_MB,
    OVERLOAD_BACKOFF_SECONDS,
    RATE_LIMIT_BASE_DELAY_SECONDS,
    RETRY_BASE_DELAY_SECONDS,
    HEALTH_CHECK_ATTEMPTS,
)
from ..utils.logger import setup_logger

logger = setup_logger("gemini_gateway")

HEALTH_CHECK_PROMPT = "Please respond with 'API Working' to test connectivity."


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff tables for the gateway, in seconds."""
    overload_schedule: Tuple[float, ...] = OVERLOAD_BACKOFF_SECONDS
    rate_limit_base_delay: float = RATE_LIMIT_BASE_DELAY_SECONDS
    retry_base_delay: float = RETRY_BASE_DELAY_SECONDS

    def overload_delay(self, attempt: int) -> float:
        # Attempts past the end of the schedule reuse its last entry
        index = min(attempt, len(self.overload_schedule)) - 1
        return self.overload_schedule[index]

    def rate_limit_delay(self, attempt: int) -> float:
        return self.rate_limit_base_delay * attempt

    def retry_delay(self, attempt: int) -> float:
        return self.retry_base_delay * attempt

    @classmethod
    def immediate(cls) -> "RetryPolicy":
        """Policy with no waiting at all, for tests."""
        return cls(overload_schedule=(0.0,), rate_limit_base_delay=0.0, retry_base_delay=0.0)


@dataclass(frozen=True)
class Attachment:
    """Inline file sent alongside a prompt."""
    mime_type: str
    data: str  # base64

    @property
    def size_mb(self) -> float:
        """Decoded payload size, computed without decoding."""
        padding = self.data[-2:].count("=")
        return (len(self.data) * 3 // 4 - padding) / (1024 * 1024)


class GeminiGateway:
    """
    Async client for Gemini's ``generateContent`` endpoint with retry,
    backoff and error classification.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        max_attachment_mb: float = MAX_ATTACHMENT_MB,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the gateway.

        Args:
            api_key: Gemini API key. If None, uses GEMINI_API_KEY.
            model_name: Model name. If None, uses config default.
            api_base: API root URL. If None, uses config default.
            timeout: Per-attempt network timeout in seconds.
            max_attachment_mb: Largest decoded attachment accepted.
            retry_policy: Backoff tables. If None, uses config defaults.
            transport: Optional httpx transport (tests use httpx.MockTransport).
            sleep: Awaitable used for backoff waits.
        """
        api_key = api_key or GEMINI_API_KEY
        if not api_key:
            raise ValueError("GEMINI_API_KEY not found. Please set it in environment or config.")

        self.api_key = api_key
        self.model_name = model_name or GEMINI_MODEL_NAME
        self.url = f"{(api_base or GEMINI_API_BASE).rstrip('/')}/models/{self.model_name}:generateContent"
        self.timeout = timeout
        self.max_attachment_mb = max_attachment_mb
        self.retry_policy = retry_policy or RetryPolicy()
        self._transport = transport
        self._sleep = sleep

        logger.info(f"✅ Gemini gateway initialized: {self.model_name} (timeout={self.timeout}s)")

    def _build_request(self, prompt: str, attachment: Optional[Attachment]) -> Dict[str, Any]:
        parts = [{"text": prompt}]
        if attachment is not None:
            parts.append({
                "inline_data": {
                    "mime_type": attachment.mime_type,
                    "data": attachment.data,
                }
            })
        return {
            "contents": [{"parts": parts}],
            "generationConfig": dict(GEMINI_GENERATION_CONFIG),
            "safetySettings": list(GEMINI_SAFETY_SETTINGS),
        }

    async def _attempt(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> str:
        """One network call. Raises ProviderError on any failure."""
        try:
            response = await client.post(
                self.url,
                json=body,
                headers={"X-goog-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            error = payload.get("error") if isinstance(payload, dict) else None
            if isinstance(error, dict):
                raise ProviderError(
                    str(error.get("message", response.text[:500])),
                    code=error.get("code", response.status_code),
                )
            raise ProviderError(response.text[:500], code=response.status_code)

        if not isinstance(payload, dict):
            raise ProviderError("Response body is not a JSON object", malformed=True)

        candidates = payload.get("candidates")
        candidate = candidates[0] if isinstance(candidates, list) and candidates else None
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        part = parts[0] if isinstance(parts, list) and parts else None
        if not isinstance(part, dict) or not isinstance(part.get("text"), str):
            raise ProviderError("Invalid response format from Gemini API", malformed=True)
        return part["text"]

    async def invoke(
        self,
        prompt: str,
        attachment: Optional[Attachment] = None,
        max_attempts: int = 3,
    ) -> str:
        """
        Generate text for a prompt, retrying according to the policy.

        Args:
            prompt: Text prompt
            attachment: Optional inline file
            max_attempts: Attempt budget for this call site (>= 1)

        Returns:
            Text of the first generated content part

        Raises:
            GatewayError: with the kind of the final failure
        """
        if attachment is not None:
            size_mb = attachment.size_mb
            logger.info(f"Processing file of size: {size_mb:.2f} MB")
            if size_mb > self.max_attachment_mb:
                raise GatewayError(
                    ErrorKind.PAYLOAD_TOO_LARGE,
                    f"File too large for processing. Please use a smaller file (< {self.max_attachment_mb:g}MB).",
                )

        max_attempts = max(1, max_attempts)
        body = self._build_request(prompt, attachment)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for attempt in range(1, max_attempts + 1):
                logger.info(f"Gemini API attempt {attempt}/{max_attempts}")
                try:
                    text = await self._attempt(client, body)
                    logger.info("Gemini API call successful")
                    return text
                except ProviderError as e:
                    kind = classify(e)
                    logger.error(f"Gemini API error (attempt {attempt}, {kind.value}): {e.message}")
                    delay = self._next_delay(kind, attempt, max_attempts, e)

                logger.info(f"Waiting {delay:g}s before retry...")
                await self._sleep(delay)

        raise GatewayError(ErrorKind.FAILED_AFTER_RETRIES, "No attempts made", attempts=max_attempts)

    def _next_delay(self, kind: ErrorKind, attempt: int, max_attempts: int, error: ProviderError) -> float:
        """Return the wait before the next attempt, or raise when done."""
        exhausted = attempt >= max_attempts

        if kind is ErrorKind.INVALID_REQUEST:
            raise GatewayError(kind, error.message, attempts=attempt)

        if kind is ErrorKind.OVERLOADED:
            if exhausted:
                raise GatewayError(kind, error.message, attempts=attempt)
            return self.retry_policy.overload_delay(attempt)

        if kind is ErrorKind.RATE_LIMITED:
            if exhausted:
                raise GatewayError(kind, error.message, attempts=attempt)
            return self.retry_policy.rate_limit_delay(attempt)

        if exhausted:
            final = ErrorKind.MALFORMED_RESPONSE if kind is ErrorKind.MALFORMED_RESPONSE else ErrorKind.FAILED_AFTER_RETRIES
            raise GatewayError(final, error.message, attempts=attempt)
        return self.retry_policy.retry_delay(attempt)

    async def health_check(self) -> float:
        """
        Ping Gemini with a single attempt.

        Returns:
            Response time in milliseconds

        Raises:
            GatewayError: when the API does not answer
        """
        start = time.perf_counter()
        await self.invoke(HEALTH_CHECK_PROMPT, max_attempts=HEALTH_CHECK_ATTEMPTS)
        return (time.perf_counter() - start) * 1000
