"""Error types raised while fetching and refreshing NOTAMs."""
from typing import Dict, Optional


class NotamError(Exception):
    """Base class for all NOTAM watcher errors."""


class TransientFetchError(NotamError):
    """A fetch failure worth retrying (network, 5xx, rate limit)."""


class NetworkUnavailableError(TransientFetchError):
    """Connection failed or the request timed out."""

    def __init__(self, message: str = "Network unavailable. Please check your connection."):
        super().__init__(message)


class ServerError(TransientFetchError):
    """The endpoint answered with a 5xx status."""

    def __init__(self, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(f"Server error ({status_code}). Please try again later.")


class RateLimitedError(TransientFetchError):
    """The endpoint answered with 429."""

    def __init__(self):
        super().__init__("Too many requests. Please wait and try again.")


class ApiError(NotamError):
    """Client-side HTTP error (4xx other than 429) or an error reported in the payload."""

    def __init__(self, status_code: Optional[int] = None, message: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message or f"API error occurred (status {status_code})")


class InvalidResponseError(NotamError):
    """The endpoint answered with something that is not a usable HTTP response."""

    def __init__(self, message: str = "Invalid response from server"):
        super().__init__(message)


class ParsingFailedError(NotamError):
    """The payload as a whole matched none of the known response schemas."""

    def __init__(self, cause: Optional[Exception] = None):
        self.cause = cause
        message = "Failed to parse NOTAM data"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class InvalidRequestError(NotamError):
    """The request could not be built (bad URL or region code)."""


class AllFetchesFailedError(NotamError):
    """Every requested region failed; maps region code to its cause."""

    def __init__(self, errors: Dict[str, Exception]):
        self.errors = dict(errors)
        details = ", ".join(f"{region}: {error}" for region, error in self.errors.items())
        super().__init__(f"Failed to fetch NOTAMs for all locations ({details})")


class RefreshCancelledError(NotamError):
    """The refresh was cancelled by the host before it finished."""

    def __init__(self, step: str):
        self.step = step
        super().__init__(f"Refresh cancelled before {step}")


def is_transient(error: Exception) -> bool:
    """Return True when a failed attempt may be retried."""
    return isinstance(error, TransientFetchError)
