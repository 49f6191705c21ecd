#!/usr/bin/env python3
"""
Retry utility with exponential backoff for vendor downloads
"""
import logging
import random
import time
from functools import wraps

logger = logging.getLogger(__name__)


def retry_with_backoff(max_retries=3, base_delay=1, exceptions=(Exception,)):
    """
    Decorator that retries a function with exponential backoff

    Args:
        max_retries: Maximum number of attempts
        base_delay: Base delay in seconds (doubled after every attempt)
        exceptions: Exception types that trigger a retry; others propagate

    Returns:
        Decorated function that retries on failure. The last exception is
        re-raised once attempts are exhausted.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries):
                try:
                    response = func(*args, **kwargs)
                    # Back off on rate limiting if the result is an HTTP response
                    if getattr(response, 'status_code', None) == 429 and attempt < max_retries - 1:
                        wait_time = (2 ** attempt) * base_delay + random.uniform(0, 1)
                        logger.warning("%s rate limited, retrying in %.1fs", func.__name__, wait_time)
                        time.sleep(wait_time)
                        continue
                    return response
                except exceptions as exc:
                    if attempt == max_retries - 1:
                        raise
                    wait_time = (2 ** attempt) * base_delay + random.uniform(0, 1)
                    logger.warning(
                        "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                        func.__name__, attempt + 1, max_retries, exc, wait_time,
                    )
                    time.sleep(wait_time)
            return None
        return wrapper
    return decorator
