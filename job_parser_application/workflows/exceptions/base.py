from __future__ import annotations


class FetchError(Exception):
    """Base error for anything that goes wrong while pulling jobs from a source."""

    def __init__(self, message: str) -> None:  # noqa: D401
        super().__init__(message)
        self.message = message


class InvalidURLError(FetchError):
    """The target URL could not be parsed or built."""

    def __init__(self, url: str | None = None) -> None:
        super().__init__(f"Invalid URL: {url}" if url else "Invalid URL")
        self.url = url


class InvalidResponseError(FetchError):
    """The transport failed or returned something that is not an HTTP response."""

    def __init__(self, message: str = "Invalid response") -> None:
        super().__init__(message)


class HTTPStatusError(FetchError):
    def __init__(self, status_code: int, url: str | None = None) -> None:
        suffix = f" for {url}" if url else ""
        super().__init__(f"HTTP {status_code}{suffix}")
        self.status_code = status_code
        self.url = url


class DecodingError(FetchError):
    """Response body did not have the expected JSON/HTML shape."""

    def __init__(self, details: str) -> None:
        super().__init__(f"Decoding error: {details}")
        self.details = details


class NoJobsError(FetchError):
    """Well-formed but empty result from a source expected to list jobs."""

    def __init__(self, message: str = "No jobs found") -> None:
        super().__init__(message)


class APIError(FetchError):
    """Vendor reported an application-level error in an otherwise valid response."""

    pass
