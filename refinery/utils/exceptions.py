"""Custom exceptions for the Refinery pipeline."""


class RefineryError(Exception):
    """Base exception for all Refinery errors."""

    pass


class NavigationError(RefineryError):
    """Exception raised when a page fails to load or settle within the timeout."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Navigation to {url} failed: {reason}")


class ExtractionFailure(RefineryError):
    """Exception raised when a required field is empty after all selector candidates."""

    pass


class SearchFailure(RefineryError):
    """Exception raised when a search cannot be issued or parsed."""

    pass


class GenerationFailure(RefineryError):
    """Exception raised when the generative-text call fails or returns nothing."""

    pass


class StorageError(RefineryError):
    """Base exception for storage API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StorageConflictError(StorageError):
    """Exception raised when the storage API reports an existing record."""

    pass


class StorageNotFoundError(StorageError):
    """Exception raised when the storage API cannot find the referenced record."""

    pass
