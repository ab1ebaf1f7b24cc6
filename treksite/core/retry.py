"""
Exponential backoff retries for calls to the hosted backend.

Only transient failures are retried: errors that carry no HTTP status
(connection refused, timeouts, DNS) and 5xx responses. Client errors,
rate limiting (429) included, are raised on the first failure.

Delays are in milliseconds:
    delay = base_delay * 2 ** retry_number + uniform(0, 100)
where retry_number counts from 1, so the first retry waits about twice
the base delay.
"""
import asyncio
import logging
import random
import time

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 1000
MAX_JITTER_MS = 100


def get_error_status(error):
    """Return the HTTP status carried by an error, or None"""
    status = getattr(error, 'status', None)
    if status is None:
        response = getattr(error, 'response', None)
        status = getattr(response, 'status_code', None)
    return status


def is_retryable(error) -> bool:
    status = get_error_status(error)
    if not status:
        return True
    return 500 <= status < 600


def compute_delay(base_delay: float, retry_number: int) -> float:
    """Backoff delay in milliseconds for the given (1-based) retry"""
    return base_delay * (2 ** retry_number) + random.uniform(0, MAX_JITTER_MS)


def _log_retry(delay: float, retry_number: int, max_retries: int):
    logger.warning(
        f"Request failed. Retrying in {round(delay)}ms... (Attempt {retry_number}/{max_retries})"
    )


async def with_exponential_backoff(operation, max_retries: int = DEFAULT_MAX_RETRIES,
                                   base_delay: float = DEFAULT_BASE_DELAY_MS):
    """
    Await ``operation()`` and retry it on transient failures.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_retries: Retries allowed after the first attempt
        base_delay: Base delay in milliseconds

    Returns:
        Whatever the operation returns.

    Raises:
        The operation's own exception, unchanged, when it is not retryable
        or when the last permitted attempt fails.
    """
    for retries in range(max_retries):
        try:
            return await operation()
        except Exception as error:
            if not is_retryable(error):
                raise
            delay = compute_delay(base_delay, retries + 1)
            _log_retry(delay, retries + 1, max_retries)
            await asyncio.sleep(delay / 1000)

    # Last permitted attempt: success returns, any failure propagates
    return await operation()


def retry_call(operation, max_retries: int = DEFAULT_MAX_RETRIES,
               base_delay: float = DEFAULT_BASE_DELAY_MS):
    """Blocking counterpart of with_exponential_backoff for synchronous callables"""
    for retries in range(max_retries):
        try:
            return operation()
        except Exception as error:
            if not is_retryable(error):
                raise
            delay = compute_delay(base_delay, retries + 1)
            _log_retry(delay, retries + 1, max_retries)
            time.sleep(delay / 1000)

    return operation()


def retry_call_with_settings(operation):
    """retry_call using the RETRY_* values from Django settings"""
    from django.conf import settings

    return retry_call(
        operation,
        max_retries=getattr(settings, 'RETRY_MAX_RETRIES', DEFAULT_MAX_RETRIES),
        base_delay=getattr(settings, 'RETRY_BASE_DELAY_MS', DEFAULT_BASE_DELAY_MS),
    )
