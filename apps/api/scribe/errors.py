"""Application exception types."""

from scribe.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class InvalidPathSegmentError(ValueError):
    """Raised when an identifier cannot be used as a single path segment."""


class ExternalServiceError(Exception):
    """Raised when a speech-to-text or drafting call fails or is unavailable."""


class ExternalCallTimeoutError(ExternalServiceError):
    """Raised when an external call exceeds its time limit."""


class AudioProcessingError(RuntimeError):
    """Raised when audio cannot be probed or split."""


class UploadTooLargeError(Exception):
    """Raised when an upload stream exceeds the configured byte limit."""


def not_found() -> ApiError:
    return ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")


__all__ = [
    "ApiError",
    "AudioProcessingError",
    "ExternalCallTimeoutError",
    "ExternalServiceError",
    "InvalidPathSegmentError",
    "UploadTooLargeError",
    "not_found",
]
