"""
Custom exceptions for CourseStack extraction and upload.

This module defines the error taxonomy shared by the REST client,
the source adapters and the relay client.
"""


class ExtractionError(Exception):
    """Base exception for course content extraction errors."""


class FetchError(ExtractionError):
    """Error during a REST or file fetch."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {message}")


class AccessDeniedError(FetchError):
    """The platform refused access to a resource (HTTP 403)."""

    def __init__(self, url: str):
        super().__init__(url, "access denied", status_code=403)


class ResourceNotFoundError(FetchError):
    """The requested resource does not exist (HTTP 404)."""

    def __init__(self, url: str):
        super().__init__(url, "resource absent", status_code=404)


class PayloadDecodeError(ExtractionError):
    """A REST payload could not be decoded into the expected shape."""


class RelayError(Exception):
    """Error while uploading records to the relay backend."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
