"""Retry policy with exponential backoff for HTTP provider calls."""

from __future__ import annotations

import logging
import random

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RetryPolicy(BaseModel):
    """Retry policy configuration.

    ``max_retries`` counts the extra attempts made after the first request,
    so the total number of requests is at most ``max_retries + 1``.
    """

    max_retries: int = Field(default=2, ge=0)
    base_delay: float = Field(default=0.5, ge=0.0)  # seconds
    max_delay: float = Field(default=8.0, ge=0.0)  # seconds
    exponential_base: float = Field(default=2.0, ge=1.0)
    jitter: bool = False
    jitter_range: float = 0.1  # ±10% jitter
    retry_on_server_errors: bool = True

    def calculate_delay(self, retry: int) -> float:
        """Return the delay before retry number ``retry`` (1-based)."""

        if retry <= 0 or self.base_delay <= 0:
            return 0.0

        delay = self.base_delay * (self.exponential_base ** (retry - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay = max(0.0, delay + random.uniform(-jitter_amount, jitter_amount))

        return delay

    def should_retry(self, retries_done: int) -> bool:
        return retries_done < self.max_retries

    def retryable_status(self, status_code: int) -> bool:
        """Server-side failures are worth another attempt; client errors are not."""

        return self.retry_on_server_errors and status_code >= 500
