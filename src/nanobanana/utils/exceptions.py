"""
Custom exceptions for nanobanana.

This module defines all custom exceptions used throughout the application.
"""


class NanoBananaError(Exception):
    """Base exception for all nanobanana errors."""

    pass


class ValidationError(NanoBananaError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class MissingImageError(ValidationError):
    """Raised when an edit is requested without a base image."""

    def __init__(self, message: str = "Please upload a base image first.") -> None:
        super().__init__(message, field="image")


class PromptTooShortError(ValidationError):
    """Raised when the trimmed prompt is shorter than the minimum length."""

    def __init__(
        self, message: str = "Prompt is too short. Describe your vision!", min_length: int = 5
    ) -> None:
        self.min_length = min_length
        super().__init__(message, field="prompt")


class SizeLimitExceededError(ValidationError):
    """Raised when an uploaded file is larger than the allowed upload size."""

    def __init__(self, message: str, size: int = 0, limit: int = 0) -> None:
        """
        Initialize size limit error.

        Args:
            message: Error message
            size: Size of the rejected file in bytes
            limit: Maximum allowed size in bytes
        """
        self.size = size
        self.limit = limit
        super().__init__(message, field="image")


class APIError(NanoBananaError):
    """Raised when an API call fails."""

    def __init__(self, message: str, status_code: int = 0, response: str = "") -> None:
        """
        Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw API response (if available)
        """
        self.status_code = status_code
        self.response = response
        super().__init__(message)


class ContentBlockedError(APIError):
    """Raised when the API succeeded but returned no image (e.g. a safety refusal)."""

    pass


class NetworkError(NanoBananaError):
    """Raised when a network operation fails."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """
        Initialize network error.

        Args:
            message: Error message
            original_error: The underlying exception that caused this error
        """
        self.original_error = original_error
        super().__init__(message)


class RequestTimeoutError(NanoBananaError):
    """Raised when a single request to the image API times out."""

    pass


class GenerationFailedError(NanoBananaError):
    """Raised when every generation attempt failed."""

    def __init__(
        self, message: str, attempts: int = 0, last_error: Exception | None = None
    ) -> None:
        """
        Initialize generation failure.

        Args:
            message: Error message (includes the last attempt's error)
            attempts: Number of attempts made
            last_error: The error raised by the final attempt
        """
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


class GenerationInProgressError(NanoBananaError):
    """Raised when a generation is requested while another one is still running."""

    pass


class PersistenceError(NanoBananaError):
    """Raised when the local history storage cannot be read or written."""

    pass


class ConfigurationError(NanoBananaError):
    """Raised when there is a configuration problem."""

    pass


class ImageProcessingError(NanoBananaError):
    """Raised when image processing fails."""

    def __init__(self, message: str, image_path: str = "") -> None:
        """
        Initialize image processing error.

        Args:
            message: Error message
            image_path: Path to the image that caused the error
        """
        self.image_path = image_path
        super().__init__(message)


class ImageReadError(ImageProcessingError):
    """Raised when an uploaded file cannot be read or decoded."""

    pass
