"""Custom exception types for consistent error handling."""


class InvalidInputError(Exception):
    """Raised when request input validation fails."""


class LocationUnavailableError(InvalidInputError):
    """Raised when an operation needs user coordinates that are absent."""

    def __init__(self, message: str = "user location unavailable") -> None:
        super().__init__(message)
