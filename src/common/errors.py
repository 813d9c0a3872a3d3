"""Error taxonomy for the starter kit service.

"No qualifying candidates" is never an error: the tier selector returns an
empty or partial result instead. Malformed listings are dropped by the
candidate filter and counted, not raised.
"""

from __future__ import annotations


class StarterKitError(Exception):
    """Base class for all service errors."""


class ConfigurationError(StarterKitError):
    """A required credential or setting is missing. Fatal at startup."""


class AcquisitionError(StarterKitError):
    """The listing search service failed (network, auth or quota).

    Isolated per category: the pipeline degrades the category to an empty
    candidate pool instead of aborting the kit.
    """

    def __init__(
        self,
        message: str,
        query: str = "",
        page: int = 1,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.query = query
        self.page = page
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def is_quota_failure(self) -> bool:
        return self.status_code == 429


class RateLimitExceeded(StarterKitError):
    """The client exceeded its request budget for the current window."""

    def __init__(self, client_id: str, retry_after: int) -> None:
        super().__init__(
            f"Too many requests from {client_id}. "
            f"Please try again in {retry_after} seconds."
        )
        self.client_id = client_id
        self.retry_after = retry_after
