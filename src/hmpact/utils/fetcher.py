"""Network fetch helpers with retry logic.

The store never talks HTTP itself; these are the default collaborators
handed to callers such as the registry importer.
"""
import json
import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from ..settings import fetch_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Transport-level failures worth retrying. HTTP status errors are not.
RETRYABLE_EXCEPTIONS = (
    httpx.TransportError,
    ConnectionResetError,
    TimeoutError,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = RETRYABLE_EXCEPTIONS,
) -> Callable:
    """Decorator factory for retry logic with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exceptions: Tuple of exception types to retry on
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception_type(exceptions),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return func(*args, **kwargs)

        return wrapper

    return decorator


@with_retry()
def _get(url: str, client: httpx.Client) -> httpx.Response:
    logger.debug(f"GET {url}")
    response = client.get(url)
    response.raise_for_status()
    return response


def fetch_bytes(url: str, client: Optional[httpx.Client] = None) -> bytes:
    """Fetch the raw body of ``url``.

    Raises:
        httpx.HTTPError: On transport failure (after retries) or a non-2xx status
    """
    if client is not None:
        return _get(url, client).content

    with httpx.Client(timeout=fetch_timeout(), follow_redirects=True) as owned:
        return _get(url, owned).content


def fetch_json(url: str, client: Optional[httpx.Client] = None) -> Any:
    """Fetch ``url`` and decode the body as JSON.

    Raises:
        httpx.HTTPError: On transport failure or a non-2xx status
        ValueError: If the body is not valid JSON
    """
    body = fetch_bytes(url, client=client)
    return json.loads(body.decode("utf-8"))
