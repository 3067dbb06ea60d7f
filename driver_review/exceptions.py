"""
Exception classes for the driver review system.

Centralized location for all custom exceptions to avoid circular imports.
"""


class ValidationError(Exception):
    """Base exception for validation-related errors."""
    pass


class EmptySearchError(ValidationError):
    """Raised when a search is attempted without any criteria."""
    pass


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""
    pass


class DecodeError(Exception):
    """Raised when a wire string is not a valid literal."""

    def __init__(self, message: str, offset: int = 0):
        super().__init__(f"{message} (at offset {offset})")
        self.offset: int = offset


class UnknownMessageError(Exception):
    """Raised when a decoded envelope is not a known message kind."""
    pass


class FrameTooLargeError(Exception):
    """Raised when an outgoing frame exceeds the channel cap even after truncation."""

    def __init__(self, length: int, limit: int):
        super().__init__(f"Frame of {length} bytes exceeds channel cap of {limit}")
        self.length: int = length
        self.limit: int = limit
