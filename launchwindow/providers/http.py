"""Shared HTTP request helper for upstream sources.

Retry Strategy:
- Exponential backoff: 1s, 2s, 4s, ... (capped at RETRY_MAX_DELAY)
- Jitter: ±50% randomization to prevent thundering herd
- Retryable: timeouts, connection failures, 429, 5xx
- Never retried: any other 4xx
"""

import logging
import random
import time
from collections.abc import Callable

import httpx

from launchwindow.config import RETRY_BASE_DELAY, RETRY_COUNT, RETRY_MAX_DELAY
from launchwindow.core import (
    ClientSourceError,
    MalformedRecordError,
    NotFoundError,
    TransientSourceError,
)

logger = logging.getLogger(__name__)


def calculate_backoff(
    attempt: int,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    jitter: bool = True,
) -> float:
    """Delay before the next attempt.

    Formula: min(max_delay, base_delay * 2^attempt) * random(0.5, 1.5)

    Args:
        attempt: Attempt that just failed (0-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        jitter: Apply ±50% randomization
    """
    delay = min(max_delay, base_delay * (2**attempt))
    if jitter:
        delay *= random.uniform(0.5, 1.5)
    return delay


def _classify(response: httpx.Response, source: str) -> None:
    """Raise the typed error for a non-2xx response."""
    status = response.status_code
    if status < 400:
        return
    message = f"{source} returned HTTP {status} for {response.request.url}"
    if status == 404:
        raise NotFoundError(message, source=source)
    if status == 429 or status >= 500:
        raise TransientSourceError(message, source=source, status_code=status)
    raise ClientSourceError(message, source=source, status_code=status)


def request_json(
    client: httpx.Client,
    url: str,
    *,
    source: str,
    params: dict | None = None,
    timeout: float | None = None,
    retry_count: int = RETRY_COUNT,
    sleep: Callable[[float], None] = time.sleep,
    classify: Callable[[httpx.Response, str], None] | None = None,
) -> dict:
    """GET a JSON document with bounded retry.

    Args:
        client: httpx client to issue the call on
        url: Absolute URL
        source: Source name for logs and error messages
        params: Query parameters
        timeout: Per-call timeout override
        retry_count: Total attempts (not extra retries)
        sleep: Sleep function (injectable for tests)
        classify: Optional source-specific response classifier, run before
            the generic one (e.g. to detect quota errors in a 403 body)

    Returns:
        Decoded JSON object

    Raises:
        TransientSourceError: Retries exhausted
        ClientSourceError/NotFoundError: 4xx, raised on first occurrence
        MalformedRecordError: Body was not a JSON object
    """
    last_error: TransientSourceError | None = None

    retry_count = max(1, retry_count)
    for attempt in range(retry_count):
        try:
            kwargs = {"params": params}
            if timeout is not None:
                kwargs["timeout"] = timeout
            response = client.get(url, **kwargs)
            if classify is not None:
                classify(response, source)
            _classify(response, source)
            try:
                data = response.json()
            except ValueError as e:
                raise MalformedRecordError(f"{source} returned invalid JSON: {e}", source=source) from e
            if not isinstance(data, dict):
                raise MalformedRecordError(f"{source} returned a non-object body", source=source)
            return data

        except httpx.TimeoutException as e:
            last_error = TransientSourceError(f"{source} timed out: {e}", source=source)
        except httpx.RequestError as e:
            last_error = TransientSourceError(f"{source} request failed: {e}", source=source)
        except TransientSourceError as e:
            last_error = e

        logger.warning(f"[HTTP] {source} attempt {attempt + 1}/{retry_count} failed: {last_error}")
        if attempt < retry_count - 1:
            delay = calculate_backoff(attempt)
            logger.debug(f"[HTTP] {source} waiting {delay:.1f}s before retry")
            sleep(delay)

    raise last_error
