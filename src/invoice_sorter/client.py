"""Rate-limit aware retries around the generative model call."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

from invoice_sorter.errors import RetriesExhaustedError
from invoice_sorter.gemini import build_request, extract_text

if TYPE_CHECKING:
    from collections.abc import Callable

    from invoice_sorter.config import Settings
    from invoice_sorter.models import Attachment

logger = logging.getLogger(__name__)

RATE_LIMIT_PHRASES = (
    "rate limit",
    "quota exceeded",
    "exceeded your current quota",
    "resource exhausted",
    "resource has been exhausted",
    "resource_exhausted",
)


class Transport(Protocol):
    def generate(self, payload: dict[str, Any]) -> dict[str, Any]: ...


def is_retryable(exc: BaseException) -> bool:
    """Return True if ``exc`` signals rate limiting or quota exhaustion."""
    if getattr(exc, "status_code", None) == 429:
        return True
    message = str(exc).lower()
    return any(phrase in message for phrase in RATE_LIMIT_PHRASES)


def backoff_delay(attempt: int, initial_delay_ms: int, max_delay_ms: int) -> int:
    """Delay in milliseconds before retrying after 0-indexed ``attempt``."""
    return min(initial_delay_ms * 2**attempt, max_delay_ms)


class RetryingModelClient:
    """Send a prompt plus one attachment, retrying only rate-limited calls.

    Makes at most ``max_retries + 1`` attempts. Any error that is not
    retryable, including a response without text, propagates immediately.
    """

    def __init__(
        self,
        transport: Transport,
        settings: Settings,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.settings = settings
        self.sleep = sleep

    def ask(self, prompt: str, attachment: Attachment) -> str:
        """Return the trimmed model answer to ``prompt`` about ``attachment``."""
        payload = build_request(
            prompt,
            attachment,
            temperature=self.settings.temperature,
            max_output_tokens=self.settings.max_output_tokens,
        )
        max_retries = self.settings.max_retries

        for attempt in range(max_retries + 1):
            try:
                return extract_text(self.transport.generate(payload))
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                if attempt == max_retries:
                    raise RetriesExhaustedError(attempt + 1, exc) from exc

                delay = backoff_delay(
                    attempt,
                    self.settings.initial_delay_ms,
                    self.settings.max_delay_ms,
                )
                logger.info(
                    "Rate limit hit. Retrying in %dms (attempt %d of %d)",
                    delay,
                    attempt + 1,
                    max_retries,
                )
                self.sleep(delay / 1000)

        raise AssertionError("unreachable")
