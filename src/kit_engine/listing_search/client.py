"""Marketplace listing search client (RapidAPI real-time Amazon data).

Fetches raw product records for a free-text query. Failures of any kind
(network, auth, quota, malformed body) surface as AcquisitionError so the
orchestrator can degrade a single category to an empty pool.

API docs: https://rapidapi.com/letscrape-6bRBa3QguO5/api/real-time-amazon-data
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from src.common.config import Settings, get_rapidapi_key, settings as default_settings
from src.common.errors import AcquisitionError

from ..common.config import Config
from ..common.http_client import HTTPClient

logger = logging.getLogger(__name__)

SEARCH_PATH = "/search"


class ListingSearchClient:
    """Client for the marketplace product search endpoint.

    The API key is resolved at construction, so a missing key fails fast
    with ConfigurationError instead of on the first category.

    Usage:
        client = ListingSearchClient(config)
        records = client.fetch_candidates("yoga yoga mat")
    """

    def __init__(
        self,
        config: Config | None = None,
        settings: Settings | None = None,
        http_client: HTTPClient | None = None,
    ) -> None:
        self.config = config or Config()
        self.settings = settings or default_settings
        self._api_key = get_rapidapi_key()
        self._http = http_client or HTTPClient(
            self.config,
            default_headers={
                "x-rapidapi-key": self._api_key,
                "x-rapidapi-host": self.settings.acquisition.api_host,
            },
        )

    def search(self, query: str, page: int = 1) -> list[dict[str, Any]]:
        """Fetch one page of raw product records.

        Args:
            query: Free-text marketplace query.
            page: 1-based result page.

        Returns:
            Raw product records; [] when the response carries none.

        Raises:
            AcquisitionError: On network, auth, quota or decoding failure.
        """
        acquisition = self.settings.acquisition
        params = {
            "query": query,
            "page": str(page),
            "country": acquisition.country,
            "sort_by": acquisition.sort_by,
            "product_condition": acquisition.product_condition,
        }
        url = f"{self.config.listing_search_base_url.rstrip('/')}{SEARCH_PATH}"

        try:
            data = self._http.get_json(url, params=params)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise AcquisitionError(
                _describe_status(status), query=query, page=page, status_code=status
            ) from e
        except requests.RequestException as e:
            raise AcquisitionError(
                f"Network error connecting to listing search API: {e}",
                query=query,
                page=page,
            ) from e
        except ValueError as e:
            raise AcquisitionError(
                "Listing search API returned a non-JSON body", query=query, page=page
            ) from e

        payload = data.get("data") if isinstance(data, dict) else None
        products = payload.get("products") if isinstance(payload, dict) else None
        if not isinstance(products, list):
            logger.warning("No products array in response for '%s' page %d", query, page)
            return []

        logger.debug("Fetched %d records for '%s' page %d", len(products), query, page)
        return products

    def fetch_candidates(self, query: str) -> list[dict[str, Any]]:
        """Fetch page 1, and page 2 when page 1 came back short.

        A failed second page keeps the first page's records.

        Raises:
            AcquisitionError: If page 1 fails.
        """
        acquisition = self.settings.acquisition
        records = list(self.search(query, page=1))

        if (
            0 < len(records) < acquisition.second_page_threshold
            and len(records) < acquisition.max_candidates
        ):
            try:
                records.extend(self.search(query, page=2))
            except AcquisitionError as e:
                logger.warning("Page 2 failed for '%s', keeping page 1: %s", query, e)

        logger.info("Acquired %d candidate records for '%s'", len(records), query)
        return records

    def close(self) -> None:
        self._http.close()


def _describe_status(status: int | None) -> str:
    if status in (401, 403):
        return (
            f"Listing search API authentication or permission error "
            f"(status {status}). Check API key."
        )
    if status == 429:
        return f"Listing search API rate limit exceeded (status {status})."
    return f"Listing search API request failed with status {status}."
