"""Exponential backoff retry decorator for Drive API reads."""

import functools
import time
from typing import Any, Callable, Optional, TypeVar

from googleapiclient.errors import HttpError

from .exceptions import RateLimitError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded"}


def http_status(error: HttpError) -> Optional[int]:
    """Return the HTTP status code carried by an HttpError, if any."""
    status = getattr(error, "status_code", None)
    if status is None and getattr(error, "resp", None) is not None:
        status = getattr(error.resp, "status", None)
    return int(status) if status is not None else None


def is_rate_limited(error: HttpError) -> bool:
    """Check whether an HttpError is a rate-limit rejection.

    Drive reports per-user rate limits as 403 with a rateLimitExceeded reason.
    """
    status = http_status(error)
    if status == 429:
        return True
    if status != 403:
        return False
    details = getattr(error, "error_details", None) or []
    for detail in details:
        if isinstance(detail, dict) and detail.get("reason") in RATE_LIMIT_REASONS:
            return True
    return False


def is_transient(error: HttpError) -> bool:
    """Check whether an HttpError is worth retrying."""
    status = http_status(error)
    return status is None or status >= 500 or is_rate_limited(error)


def exponential_backoff(
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry with exponential backoff for transient errors.

    Retries 5xx responses, rate-limit rejections and connection errors.
    Other client errors are raised immediately.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Decorator function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except HttpError as e:
                    if not is_transient(e):
                        raise
                    if attempt == max_retries:
                        if is_rate_limited(e):
                            raise RateLimitError("Rate limit exceeded") from e
                        raise
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                except (ConnectionError, TimeoutError) as e:
                    if attempt == max_retries:
                        raise
                    logger.warning(
                        f"Connection error (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )

                time.sleep(delay)
                delay = min(delay * 2, max_delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper
    return decorator
