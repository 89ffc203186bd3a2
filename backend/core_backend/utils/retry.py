"""
Bounded retry with exponential backoff for database transactions.
"""

import logging
import time
from functools import wraps

from django.db import DatabaseError, OperationalError

from core_backend.config import app_settings
from core_backend.exceptions import TransactionFailure

logger = logging.getLogger(__name__)


def run_with_retry(func, *, max_attempts=None, delay=None, description="transaction"):
    """
    Run ``func`` and retry it on ``OperationalError`` (locks, dropped
    connections) with exponential backoff.

    ``func`` must open its own ``transaction.atomic()`` block so a failed
    attempt is fully rolled back before the next one starts.

    Raises:
        TransactionFailure: attempts exhausted, or a non-retryable database error.
    """
    if max_attempts is None:
        max_attempts = app_settings.order_write_max_attempts
    if delay is None:
        delay = app_settings.order_write_retry_delay

    for attempt in range(max_attempts):
        try:
            return func()
        except OperationalError as e:
            if attempt < max_attempts - 1:
                wait_time = delay * (2 ** attempt)  # Exponential backoff
                logger.warning(
                    f"{description} failed ({e}), retrying in {wait_time:.2f}s "
                    f"(attempt {attempt + 1}/{max_attempts})"
                )
                time.sleep(wait_time)
                continue
            logger.error(f"{description} failed after {max_attempts} attempts: {e}")
            raise TransactionFailure(
                f"{description} did not commit after {max_attempts} attempts", attempts=max_attempts
            ) from e
        except DatabaseError as e:
            logger.error(f"{description} failed with a non-retryable database error: {e}")
            raise TransactionFailure(f"{description} did not commit: {e}") from e


def retry_on_db_error(description=None):
    """Decorator form of :func:`run_with_retry`."""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            return run_with_retry(
                lambda: func(*args, **kwargs),
                description=description or func.__name__,
            )

        return wrapper

    return decorator
