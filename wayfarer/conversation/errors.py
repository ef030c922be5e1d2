"""Session store error hierarchy.

Store implementations wrap backend-specific failures in these errors.
"""


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class StoreConnectionError(StoreError):
    """Raised when the backend cannot be reached.

    Examples:
        - Redis server unavailable
        - Network errors
    """


class SerializationError(StoreError):
    """Raised when a stored session cannot be decoded."""
