"""
Rating store.

Owns the process-wide rating database: ratings given by the local participant
(one per target), ratings received (one per reviewer and recipient), and the
caches of known participants. Every mutation is written through the storage
backend immediately.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import asdict, replace
from typing import Any

from .exceptions import ValidationError
from .interfaces import DatabaseState, MetadataRecord, SearchRecord, Storage
from .logging_config import get_logger
from .models import (
    Candidate,
    GivenRatingKey,
    ParticipantMetadata,
    Rating,
    RatingSummary,
    ReceivedRatingKey,
    split_identity,
)
from .storage.memory_storage import MemoryStorage

# Module-level logger
logger = get_logger("rating_store", category="rating")


class RatingStore:
    """
    Keyed collections of given and received ratings plus participant caches.

    Mutations are serialized by a re-entrant lock so a replace of a received
    rating is atomic with respect to any other caller.
    """

    def __init__(
        self,
        local_identity: str,
        storage: Storage | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the store and load any persisted database.

        Args:
            local_identity: Identity of the local participant ("Name-Realm")
            storage: Persistence backend (default: in-memory)
            clock: Source of unix time, injectable for tests
        """
        self.local_identity: str = local_identity
        self.local_realm: str = split_identity(local_identity)[1]
        self.storage: Storage = storage if storage is not None else MemoryStorage()
        self._clock = clock
        self._lock = threading.RLock()

        self._received = dict[str, dict[str, Rating]]()  # recipient -> reviewer -> rating
        self._given = dict[str, Rating]()  # target -> rating
        self._reviewer_history = dict[str, int]()
        self._search_history = dict[str, SearchRecord]()
        self._metadata = dict[str, ParticipantMetadata]()

        self._load(self.storage.load_state() or {})

    def now(self) -> int:
        """Current unix time in whole seconds."""
        return int(self._clock())

    def _load(self, state: DatabaseState) -> None:
        for recipient, records in state.get("ratings", {}).items():
            bucket = self._received.setdefault(recipient, {})
            for record in records:
                rating = self._rating_from_record(record)
                if rating is not None:
                    # Later entries from the same reviewer replace earlier ones
                    bucket.pop(rating.reviewer, None)
                    bucket[rating.reviewer] = rating

        for target, record in state.get("myRatings", {}).items():
            rating = self._rating_from_record(record)
            if rating is not None:
                self._given[target] = rating

        self._reviewer_history.update(state.get("reviewerHistory", {}))
        self._search_history.update(state.get("searchHistory", {}))
        for identity, meta in state.get("playerData", {}).items():
            self._metadata[identity] = ParticipantMetadata(**meta)

        logger.debug(
            f"Loaded {sum(len(b) for b in self._received.values())} received and {len(self._given)} given ratings"
        )

    @staticmethod
    def _rating_from_record(record: Any) -> Rating | None:
        try:
            return Rating.from_record(record)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Skipping invalid stored rating {record!r}: {e}")
            return None

    def snapshot(self) -> DatabaseState:
        """Export the complete database in its persisted layout."""
        with self._lock:
            return {
                "ratings": {
                    recipient: [r.to_record() for r in bucket.values()]  # type: ignore[misc]
                    for recipient, bucket in self._received.items()
                },
                "myRatings": {target: r.to_record() for target, r in self._given.items()},  # type: ignore[misc]
                "reviewerHistory": dict(self._reviewer_history),
                "searchHistory": dict(self._search_history),
                "playerData": {
                    identity: MetadataRecord(**asdict(meta)) for identity, meta in self._metadata.items()
                },
            }

    def _persist(self) -> None:
        self.storage.save_state(self.snapshot())

    # Given ratings

    def add_given_rating(self, target: str, rating: Rating) -> None:
        """Make rating the sole rating given to target, replacing any earlier one."""
        with self._lock:
            previous = self._given.pop(target, None)
            self._given[target] = rating
            self._persist()
        logger.debug(f"{'Replaced' if previous else 'Added'} rating for {target}: {rating.rating} stars")

    def get_given_rating(self, target: str) -> Rating | None:
        return self._given.get(target)

    def delete_given_rating(self, key: GivenRatingKey) -> bool:
        """Delete the given rating matching (timestamp, driver); False if none matches."""
        with self._lock:
            for target, rating in self._given.items():
                if rating.given_key == key:
                    del self._given[target]
                    self._persist()
                    logger.debug(f"Deleted rating for {rating.driver_name or target}")
                    return True
        return False

    def get_all_given_ratings(self) -> list[Rating]:
        """All given ratings, newest first, with missing driver names filled from the target."""
        ratings = list[Rating]()
        for target, rating in self._given.items():
            if not rating.driver_name:
                rating = replace(rating, driver_name=split_identity(target)[0] or target)
            ratings.append(rating)
        ratings.sort(key=lambda r: r.timestamp, reverse=True)
        return ratings

    # Received ratings

    def get_received_ratings(self, identity: str | None = None) -> list[Rating]:
        """Ratings received by identity (default: the local participant), oldest first."""
        return list(self._received.get(identity or self.local_identity, {}).values())

    def replace_received(self, rating: Rating) -> Rating | None:
        """
        Store a received rating as the only one from its reviewer.

        Returns:
            The rating it replaced, or None if the reviewer is new
        """
        with self._lock:
            bucket = self._received.setdefault(rating.driver, {})
            previous = bucket.pop(rating.reviewer, None)
            bucket[rating.reviewer] = rating
            self._persist()
        return previous

    def delete_received_rating(self, key: ReceivedRatingKey) -> bool:
        """Delete the local participant's received rating matching (timestamp, reviewer)."""
        with self._lock:
            bucket = self._received.get(self.local_identity, {})
            for reviewer, rating in bucket.items():
                if rating.received_key == key:
                    del bucket[reviewer]
                    self._persist()
                    logger.debug(f"Deleted review from {reviewer}")
                    return True
        return False

    def get_summary(self, identity: str | None = None) -> RatingSummary:
        """Arithmetic mean and count of the ratings received by identity."""
        ratings = self.get_received_ratings(identity)
        if not ratings:
            return RatingSummary(average=0.0, count=0)
        return RatingSummary(average=sum(r.rating for r in ratings) / len(ratings), count=len(ratings))

    # Participant caches

    def store_participant_metadata(self, identity: str, metadata: ParticipantMetadata) -> None:
        with self._lock:
            self._metadata[identity] = metadata
            self._persist()

    def get_participant_metadata(self, identity: str) -> ParticipantMetadata | None:
        return self._metadata.get(identity)

    def store_reviewer_seen(self, identity: str) -> None:
        """Record that identity has reviewed us; timestamps never move backwards."""
        with self._lock:
            self._reviewer_history[identity] = max(self._reviewer_history.get(identity, 0), self.now())
            self._persist()

    def record_search(self, candidate: Candidate) -> None:
        """Remember a selected search candidate."""
        with self._lock:
            self._search_history[candidate.full_name] = SearchRecord(
                name=candidate.name,
                fullName=candidate.full_name,
                realm=candidate.realm or self.local_realm,
                lastSearched=self.now(),
            )
            self._persist()

    def get_known_participants(self) -> list[Candidate]:
        """
        Participants we know from history, without duplicates.

        Order: those we rated, then those who rated us, then past search selections.
        """
        sources = (
            ("rated_by_me", list(self._given)),
            ("rated_me", list(self._reviewer_history)),
            ("searched", list(self._search_history)),
        )
        seen = set[str]()
        players = list[Candidate]()
        for source, identities in sources:
            for identity in identities:
                if identity in seen:
                    continue
                name, realm = split_identity(identity, self.local_realm)
                players.append(Candidate(name=name, full_name=identity, realm=realm, source=source))
                seen.add(identity)
        return players
