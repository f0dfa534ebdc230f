"""HTTP requests with a per-attempt timeout and exponential-backoff retry."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import requests

from tweetwatch.errors import HTTPStatusError, RequestFailedError, wrap_error
from tweetwatch.result import Err, Ok, Result

logger = logging.getLogger(__name__)

# ``None`` disables the timeout; a tuple is ``(connect, read)``.
Timeout = float | tuple[float, float | None] | None

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def request_with_retry(
    session: requests.Session,
    url: str,
    *,
    method: str = "GET",
    params: dict[str, Any] | None = None,
    json: Any = None,
    timeout: Timeout = DEFAULT_TIMEOUT,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    stream: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> Result[requests.Response]:
    """Send one request, retrying 429s, 5xx and transport failures.

    Attempt *n* (zero-based) that fails with a retryable outcome waits
    ``retry_delay * 2**n`` seconds before the next one, for at most
    *max_retries* retries. Any 2xx response is returned as ``Ok``; every
    other terminal outcome is an ``Err`` and its response is closed.
    """
    attempt = 0
    while True:
        delay = retry_delay * 2**attempt
        try:
            resp = session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=timeout,
                stream=stream,
            )
        except requests.RequestException as exc:
            if attempt < max_retries:
                logger.debug(
                    "Retrying %s %s (attempt %d/%d) in %.1fs after %s",
                    method, url, attempt + 1, max_retries, delay, type(exc).__name__,
                )
                sleep(delay)
                attempt += 1
                continue
            return Err(wrap_error(RequestFailedError, f"Failed to fetch {url}", exc))

        if 200 <= resp.status_code < 300:
            return Ok(resp)

        # Nothing below reads the body, so free the connection now.
        resp.close()

        if _is_retryable_status(resp.status_code) and attempt < max_retries:
            logger.debug(
                "Retrying %s %s (attempt %d/%d) in %.1fs after HTTP %d %s",
                method, url, attempt + 1, max_retries, delay, resp.status_code, resp.reason,
            )
            sleep(delay)
            attempt += 1
            continue

        return Err(HTTPStatusError(url, resp.status_code, resp.reason or ""))
