"""
Core dataclasses for the driver review system.

Defines Rating, participant metadata and search candidates, plus the typed
outcomes returned at component seams.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from .exceptions import ValidationError

MIN_SCORE = 1
MAX_SCORE = 5


def is_valid_score(value: object) -> bool:
    """Return True for an integer score in the accepted 1..5 range."""
    return isinstance(value, int) and not isinstance(value, bool) and MIN_SCORE <= value <= MAX_SCORE


def split_identity(identity: str, default_realm: str = "") -> tuple[str, str]:
    """Split "Name-Realm" into its parts, defaulting the realm when absent."""
    name, _, realm = identity.partition("-")
    return name, realm or default_realm


def make_identity(name: str, realm: str) -> str:
    """Join a display name and realm into an identity string."""
    return f"{name}-{realm}"


class GivenRatingKey(NamedTuple):
    """Identity tuple of a rating given by the local participant."""

    timestamp: int
    driver: str


class ReceivedRatingKey(NamedTuple):
    """Identity tuple of a rating received by the local participant."""

    timestamp: int
    reviewer: str


@dataclass
class Rating:
    """A single 1-5 rating of a driver by a reviewer."""

    driver: str
    reviewer: str
    rating: int
    comment: str = ""
    driver_name: str = ""
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def __post_init__(self) -> None:
        """Validate rating data."""
        if not self.driver:
            raise ValidationError("driver cannot be empty")
        if not self.reviewer:
            raise ValidationError("reviewer cannot be empty")
        if not is_valid_score(self.rating):
            raise ValidationError(f"rating must be an integer between {MIN_SCORE} and {MAX_SCORE}, got {self.rating!r}")

    @property
    def given_key(self) -> GivenRatingKey:
        return GivenRatingKey(self.timestamp, self.driver)

    @property
    def received_key(self) -> ReceivedRatingKey:
        return ReceivedRatingKey(self.timestamp, self.reviewer)

    def to_record(self) -> dict[str, Any]:
        """Convert to the field names used on the wire and on disk."""
        return {
            "driver": self.driver,
            "driverName": self.driver_name,
            "reviewer": self.reviewer,
            "rating": self.rating,
            "comment": self.comment,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Rating":
        """Build a rating from a record written by to_record."""
        return cls(
            driver=record["driver"],
            reviewer=record["reviewer"],
            rating=record["rating"],
            comment=record.get("comment") or "",
            driver_name=record.get("driverName") or "",
            timestamp=int(record.get("timestamp") or 0),
        )


@dataclass
class ParticipantMetadata:
    """
    Cached facts about a participant from a successful live lookup.

    Not authoritative; may be stale.
    """

    class_name: str | None = None
    faction: str | None = None
    race: str | None = None
    level: int | None = None
    last_updated: int = field(default_factory=lambda: int(time.time()))


@dataclass
class RosterMember:
    """A co-located participant as reported by the host roster."""

    identity: str
    display_name: str
    handle: str | None = None


@dataclass
class Candidate:
    """An addressable participant returned by a directory search."""

    name: str
    full_name: str
    realm: str
    handle: str | None = None
    source: str = "group"


@dataclass
class RatingSummary:
    """Average score and count of the ratings received by a participant."""

    average: float
    count: int


class DeliveryStatus(str, Enum):
    """What happened to the wire frame of a submitted rating."""

    SENT = "sent"
    DEFERRED = "deferred"
    SEND_FAILED = "send_failed"
    UNDELIVERABLE = "undeliverable"


class RouteOutcome(str, Enum):
    """Disposition of an inbound frame."""

    DISPATCHED = "dispatched"
    FOREIGN_PREFIX = "foreign_prefix"
    SELF_ECHO = "self_echo"
    MALFORMED = "malformed"
    UNKNOWN_MESSAGE = "unknown_message"


@dataclass
class ReceiveResult:
    """Outcome of reconciling an incoming rating."""

    accepted: bool
    reason: str | None = None
    is_new: bool = False
    rating: Rating | None = None

    @classmethod
    def rejected(cls, reason: str) -> "ReceiveResult":
        return cls(accepted=False, reason=reason)


@dataclass
class SubmitResult:
    """Outcome of submitting a local rating."""

    accepted: bool
    reason: str | None = None
    rating: Rating | None = None
    delivery: DeliveryStatus | None = None

    @classmethod
    def rejected(cls, reason: str) -> "SubmitResult":
        return cls(accepted=False, reason=reason)
