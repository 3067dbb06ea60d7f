"""
Abstract base classes defining the collaborators of the driver review system.

All interfaces are synchronous; the host delivers events one at a time and
each is processed to completion before the next.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum

from typing_extensions import NotRequired, TypedDict

from .models import Rating, RosterMember


class RatingRecord(TypedDict):
    """A rating as written on the wire and on disk."""
    driver: str
    reviewer: str
    rating: int
    driverName: NotRequired[str]
    comment: NotRequired[str]
    timestamp: NotRequired[int]


class SearchRecord(TypedDict):
    """A search-history entry."""
    name: str
    fullName: str
    realm: str
    lastSearched: int


class MetadataRecord(TypedDict, total=False):
    """A participant-metadata cache entry."""
    class_name: str | None
    faction: str | None
    race: str | None
    level: int | None
    last_updated: int


class DatabaseState(TypedDict, total=False):
    """TypedDict for the persisted database; every collection may be absent."""
    ratings: dict[str, list[RatingRecord]]  # recipient -> received ratings
    myRatings: dict[str, RatingRecord]  # target -> the rating we gave
    reviewerHistory: dict[str, int]  # reviewer -> last seen
    searchHistory: dict[str, SearchRecord]
    playerData: dict[str, MetadataRecord]


class LiveInfo(TypedDict, total=False):
    """Result of a live participant lookup; every field may be missing."""
    display_name: str
    class_name: str
    faction: str
    race: str
    level: int


class NotificationKind(str, Enum):
    """Visual flavour of a user-facing notification."""

    NORMAL = "normal"
    SUCCESS = "success"
    ERROR = "error"


class Storage(ABC):
    """Interface for persisting the rating database."""

    @abstractmethod
    def load_state(self) -> DatabaseState | None:
        """Load the persisted database, or None on first run."""
        pass

    @abstractmethod
    def save_state(self, state: DatabaseState) -> None:
        """Persist the complete database."""
        pass


class Roster(ABC):
    """Interface for the host's co-located roster."""

    @abstractmethod
    def current_roster(self) -> Sequence[RosterMember]:
        """Snapshot of co-located participants, in roster order."""
        pass

    @abstractmethod
    def channel_scope(self) -> str:
        """Scope hint for roster-wide sends (e.g. "PARTY" or "RAID")."""
        pass


class Transport(ABC):
    """Interface for the host's small-message broadcast channel."""

    @abstractmethod
    def register_prefix(self, prefix: str) -> None:
        """Register interest in frames sent under a prefix."""
        pass

    @abstractmethod
    def send(self, prefix: str, frame: str, scope: str) -> bool:
        """
        Best-effort, unacknowledged send to co-located participants.

        Returns:
            False if the host refused the frame
        """
        pass


class MetadataLookup(ABC):
    """Interface for optional live lookups of co-located participants."""

    @abstractmethod
    def lookup(self, handle: str) -> LiveInfo | None:
        """Look up a live participant; may return None or partial data."""
        pass


class Notifier(ABC):
    """Interface for user-facing notifications and alerts."""

    @abstractmethod
    def notify(self, message: str, kind: NotificationKind = NotificationKind.NORMAL) -> None:
        """Show a transient notification."""
        pass

    @abstractmethod
    def alert_new_review(self, rating: Rating) -> None:
        """Raise the alert reserved for a review from a new reviewer."""
        pass
