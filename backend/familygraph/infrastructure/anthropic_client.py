"""Resilient Anthropic Client — wraps AsyncAnthropic with retry, capped backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, 529 overloaded, connection): max_retries with exponential backoff
    - Client errors (4xx except 429) and timeouts: immediate failure, no retry
    - APITimeoutError is caught before APIConnectionError (it subclasses it)
    - Backoff never exceeds max_delay_ms
    - All failures mapped to ExternalServiceError (core/errors.py)

Design Decisions:
    - Wrapper over raw client: isolates retry logic from the classifier
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - Timeout is a short SDK timeout per attempt; the caller adds an overall bound
      with asyncio.wait_for so a suggestion request cannot hang on retries
"""

import asyncio
import random
import logging

import anthropic
from anthropic import (
    APIError,
    APIConnectionError,
    APIStatusError,
    RateLimitError,
    APITimeoutError,
    InternalServerError,
)

from familygraph.core.errors import ExternalServiceError, ErrorContext

logger = logging.getLogger(__name__)

SERVICE_NAME = "anthropic"

# OverloadedError (HTTP 529) is not re-exported by every SDK version.
# Detect via status code on APIStatusError instead of relying on private import.
_OVERLOADED_STATUS = 529


def _is_overloaded(e: APIError) -> bool:
    """Check if error is Anthropic 529 Overloaded."""
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


class ResilientAnthropicClient:
    """Wraps Anthropic client with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 8_000,
        timeout_seconds: int = 30,
    ):
        # SDK-level retries disabled: this wrapper owns the retry policy
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        """Create message with automatic retry on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    system=system,
                    messages=messages,
                )
                self._log_success(response, attempt)
                return response

            except RateLimitError as e:
                await self._handle_rate_limit(e, attempt, context)

            except APITimeoutError as e:
                raise ExternalServiceError(
                    "API timeout", SERVICE_NAME, "timeout", context=context,
                ) from e

            except (APIConnectionError, InternalServerError) as e:
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if _is_overloaded(e):
                    await self._handle_transient_error(e, attempt, context)
                    continue
                raise ExternalServiceError(
                    str(e), SERVICE_NAME, "client_error", context=context,
                ) from e

        raise ExternalServiceError(
            "Retries exhausted", SERVICE_NAME, "retries_exhausted", context=context,
        )

    def _log_success(self, response, attempt: int) -> None:
        usage = getattr(response, "usage", None)
        logger.info(
            "Anthropic API success",
            extra={
                "attempt": attempt + 1,
                "input_tokens": getattr(usage, "input_tokens", None),
                "output_tokens": getattr(usage, "output_tokens", None),
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle rate limit error with retry or raise."""
        retry_after_ms = self._extract_retry_after(e)
        if attempt >= self.max_retries:
            raise ExternalServiceError(
                "Rate limit exceeded after retries",
                SERVICE_NAME,
                "rate_limit",
                retry_after_ms=retry_after_ms,
                context=context,
            ) from e
        delay = min(retry_after_ms or self._backoff(attempt), self.max_delay_ms)
        logger.warning(
            f"Rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise ExternalServiceError(
                f"Transient failure after {self.max_retries} retries: {e}",
                SERVICE_NAME,
                "connection_error",
                context=context,
            ) from e
        delay = self._backoff(attempt)
        logger.warning(f"Transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter, capped at max_delay_ms."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return min(self.max_delay_ms, int(delay * random.uniform(0.75, 1.25)))  # nosec B311

    def _extract_retry_after(self, error: RateLimitError) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        val = response.headers.get("retry-after")
        try:
            return int(float(val) * 1000) if val else None
        except ValueError:
            return None
