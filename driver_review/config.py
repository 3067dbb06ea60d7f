"""
Configuration for the driver review service.
"""

from dataclasses import dataclass

from .exceptions import ConfigurationError

MAX_PREFIX_LENGTH = 16  # host limit on registered message prefixes


@dataclass
class ServiceConfig:
    """Protocol and search settings shared by every component."""

    message_prefix: str = "DriverReview"
    max_frame_length: int = 255  # channel cap, in UTF-8 bytes
    comment_limit: int = 100  # characters kept when a frame must be shortened
    truncation_marker: str = "..."
    group_match_threshold: int = 5  # below this many roster matches, search history too
    max_search_results: int = 10

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.message_prefix or len(self.message_prefix) > MAX_PREFIX_LENGTH:
            raise ConfigurationError(
                f"message_prefix must be 1-{MAX_PREFIX_LENGTH} characters, got {self.message_prefix!r}"
            )
        if self.max_frame_length <= 0:
            raise ConfigurationError(f"max_frame_length must be positive, got {self.max_frame_length}")
        if self.comment_limit < 0:
            raise ConfigurationError(f"comment_limit cannot be negative, got {self.comment_limit}")
        if not (1 <= self.group_match_threshold <= self.max_search_results):
            raise ConfigurationError(
                f"group_match_threshold must be between 1 and max_search_results ({self.max_search_results}), got {self.group_match_threshold}"
            )
