"""Support utilities: logging, rate limiting, cancellation."""

from .cancellation import CancellationToken
from .logging_config import mask_secret, preview, setup_logging
from .rate_limiter import AsyncRateLimiter, retry_with_backoff

__all__ = [
    "CancellationToken",
    "mask_secret",
    "preview",
    "setup_logging",
    "AsyncRateLimiter",
    "retry_with_backoff",
]
