from __future__ import annotations

__all__ = [
    "Cancelled",
    "ExtractionError",
    "ExtractionFailure",
    "FetchError",
    "InvalidInput",
    "InvalidUrl",
    "NetworkFailure",
    "NoReadableContent",
    "UpstreamFetchFailure",
    "URL_REQUIRED_MESSAGE",
    "URL_SCHEME_MESSAGE",
    "NO_CONTENT_MESSAGE",
    "FETCH_FAILED_MESSAGE",
    "CORS_BLOCKED_MESSAGE",
]

URL_REQUIRED_MESSAGE = "URL is required."
URL_SCHEME_MESSAGE = "Enter a URL starting with http:// or https://."
NO_CONTENT_MESSAGE = "Unable to extract readable text from this page."
FETCH_FAILED_MESSAGE = "Failed to fetch the URL."
CORS_BLOCKED_MESSAGE = "Fetch blocked (CORS). Try another source or paste the text instead."


class ExtractionError(Exception):
    """Base class for failures that end up as a status/message pair."""

    status_code = 500
    default_message = FETCH_FAILED_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ExtractionError):
    """Raised for a missing/malformed URL, blank text or an unsupported file."""

    status_code = 400
    default_message = URL_SCHEME_MESSAGE


class UpstreamFetchFailure(ExtractionError):
    """Raised when the article host answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        self.status_code = int(status_code)
        super().__init__(message or f"Request failed ({self.status_code}).")


class NetworkFailure(ExtractionError):
    """Raised when the request itself could not be completed."""

    status_code = 500
    default_message = FETCH_FAILED_MESSAGE

    def __init__(self, message: str | None = None, *, cors_likely: bool = False) -> None:
        self.cors_likely = cors_likely
        super().__init__(message)


class ExtractionFailure(ExtractionError):
    """Raised when no readable text could be pulled out of the page."""

    status_code = 422
    default_message = NO_CONTENT_MESSAGE


class Cancelled(ExtractionError):
    """Raised inside a superseded fetch. Callers drop it silently."""

    status_code = 499
    default_message = "Request superseded."


# Names used by the pipeline contract.
InvalidUrl = InvalidInput
FetchError = UpstreamFetchFailure
NoReadableContent = ExtractionFailure
