"""HTTP client with retry and exponential backoff for JSON APIs."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from .config import Config

logger = logging.getLogger(__name__)


class HTTPClient:
    """HTTP client wrapping a requests Session.

    Features:
    - Default headers merged into every request (API keys, host)
    - Automatic retries with exponential backoff on network errors,
      5xx and 429 responses
    - Other 4xx responses raise immediately
    """

    BACKOFF_BASE = 2.0

    def __init__(
        self,
        config: Config | None = None,
        default_headers: dict[str, str] | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or Config()
        self._session = session or requests.Session()
        self._default_headers = dict(default_headers or {})
        self._sleep = sleep

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a GET request and decode the JSON body.

        Args:
            url: Target URL.
            params: Query parameters.
            headers: Extra headers (merged with defaults).

        Returns:
            Decoded JSON payload.

        Raises:
            requests.RequestException: After all retries exhausted, or
                immediately on a non-retryable 4xx response.
            ValueError: If the body is not valid JSON.
        """
        merged_headers = dict(self._default_headers)
        if headers:
            merged_headers.update(headers)

        attempts = max(self.config.max_retries, 1)
        last_exc: Exception | None = None
        for attempt in range(attempts):
            try:
                resp = self._session.get(
                    url,
                    params=params,
                    headers=merged_headers,
                    timeout=self.config.request_timeout,
                )
                resp.raise_for_status()
                return resp.json()

            except requests.RequestException as exc:
                last_exc = exc

                # 4xx other than 429 are permanent failures
                if (
                    isinstance(exc, requests.HTTPError)
                    and exc.response is not None
                    and 400 <= exc.response.status_code < 500
                    and exc.response.status_code != 429
                ):
                    logger.warning("Request failed (4xx, no retry): %s", exc)
                    raise

                if attempt + 1 >= attempts:
                    break

                wait_time = self.BACKOFF_BASE ** attempt
                logger.warning(
                    "Request failed (attempt %d/%d): %s — retrying in %.1fs",
                    attempt + 1,
                    attempts,
                    exc,
                    wait_time,
                )
                self._sleep(wait_time)

        raise last_exc  # type: ignore[misc]

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> HTTPClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
