"""Throttling-only retry hook for boto3 clients."""

from __future__ import annotations

import random
from typing import Any

import structlog
from botocore.exceptions import ConnectionError as BotoConnectionError
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "RequestThrottled",
        "LimitExceededException",
        "SlowDown",
    }
)
THROTTLING_STATUS_CODE = 429


class ThrottlingRetryPolicy(BaseModel):
    """Retries throttled calls and dropped connections with exponential backoff.

    Installed on each client as a ``needs-retry`` handler while botocore's
    own retries are switched off, so server errors and other failures
    surface on the first attempt.

    Attributes:
        max_attempts: Total attempts per call, the first one included.
        backoff_base: Base delay in seconds for exponential backoff.
        backoff_max: Maximum delay in seconds.
        jitter: If ``True``, the delay is uniformly distributed between 0
            and the computed value.
    """

    max_attempts: int = Field(default=10, ge=1, le=50)
    backoff_base: float = Field(default=0.5, ge=0.0)
    backoff_max: float = Field(default=20.0, ge=0.0)
    jitter: bool = True

    model_config = {"frozen": True}

    def is_retryable(self, response: Any = None, caught_exception: Exception | None = None) -> bool:
        if caught_exception is not None:
            # Connect failures only; a read timeout may follow a processed request.
            return isinstance(caught_exception, BotoConnectionError)
        if response is None:
            return False
        http_response, parsed = response
        if getattr(http_response, "status_code", None) == THROTTLING_STATUS_CODE:
            return True
        code = ((parsed or {}).get("Error") or {}).get("Code")
        return code in THROTTLING_ERROR_CODES

    def _compute_delay(self, attempt: int) -> float:
        """Backoff before retry number *attempt* (1-indexed)."""
        delay: float = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay

    def needs_retry(
        self,
        attempts: int,
        response: Any = None,
        caught_exception: Exception | None = None,
        **kwargs: Any,
    ) -> float | None:
        """``needs-retry`` event handler: a delay in seconds, or ``None`` to stop."""
        if attempts >= self.max_attempts:
            return None
        if not self.is_retryable(response, caught_exception):
            return None
        delay = self._compute_delay(attempts)
        logger.info("request_retry_scheduled", attempt=attempts, delay=round(delay, 3))
        return delay

    def install(self, client: Any) -> Any:
        """Register this policy on *client* and return the client."""
        client.meta.events.register("needs-retry", self.needs_retry)
        return client
