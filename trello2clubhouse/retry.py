"""Retry loop shared by the requests-based API clients."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

logger = logging.getLogger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}
MAX_RETRIES = 3
BASE_DELAY = 1.0


def request_with_retry(
    method: str,
    url: str,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    **kwargs: Any,
) -> requests.Response:
    """Send a request, retrying 429/5xx and network errors with exponential backoff (1s, 2s)

    Keyword arguments are passed to ``requests.request``. Callers map the
    raised exceptions onto their own error hierarchy.

    Raises:
        requests.HTTPError: At once for a non-retryable status, or with the
            last response once retries are exhausted
        requests.RequestException: When a network error persists on the last attempt
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    for attempt in range(max_retries):
        last_attempt = attempt == max_retries - 1
        delay = base_delay * (2**attempt)
        try:
            response = requests.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            if status_code not in RETRY_STATUSES or last_attempt:
                raise
            logger.debug("HTTP %d on %s %s, retrying in %.0fs", status_code, method, url, delay)
        except requests.RequestException as e:
            if last_attempt:
                raise
            logger.debug("%s on %s %s, retrying in %.0fs", e, method, url, delay)
        time.sleep(delay)

    raise AssertionError("unreachable")
