"""
Review service for the driver review system.

Coordinates store, reconciliation engine, sync protocol handler and peer
directory, and exposes the operations the presentation layer calls.
"""

from .config import ServiceConfig
from .exceptions import EmptySearchError
from .interfaces import MetadataLookup, NotificationKind, Notifier, Roster, Transport
from .directory import PeerDirectory
from .logging_config import get_logger
from .models import (
    Candidate,
    DeliveryStatus,
    GivenRatingKey,
    ParticipantMetadata,
    Rating,
    RatingSummary,
    ReceivedRatingKey,
    RouteOutcome,
    SubmitResult,
    is_valid_score,
    split_identity,
)
from .rating_store import RatingStore
from .reconciliation import ReconciliationEngine
from .sync.protocol import SyncProtocolHandler

REJECT_NO_TARGET = "no target selected"
REJECT_SCORE = "score out of range"


class ReviewService:
    """Main entry point wiring every component around one local participant."""

    def __init__(
        self,
        store: RatingStore,
        transport: Transport,
        roster: Roster,
        notifier: Notifier | None = None,
        lookup: MetadataLookup | None = None,
        config: ServiceConfig | None = None,
    ):
        """Initialize the service and register the message prefix with the transport."""
        self.config: ServiceConfig = config or ServiceConfig()
        self.store: RatingStore = store
        self.transport: Transport = transport
        self.roster: Roster = roster
        self.notifier: Notifier | None = notifier
        self.lookup: MetadataLookup | None = lookup

        self.engine = ReconciliationEngine(store, notifier)
        self.sync = SyncProtocolHandler(store.local_identity, self.engine, transport, roster, self.config)
        self.directory = PeerDirectory(store, roster, self.config)

        # Target of the next submission when none is passed explicitly
        self.selected: Candidate | None = None

        self.logger = get_logger("service", category="rating")
        self.transport.register_prefix(self.config.message_prefix)
        self.logger.info(f"Review service ready for {store.local_identity} on prefix {self.config.message_prefix}")

    @property
    def local_identity(self) -> str:
        return self.store.local_identity

    def _notify(self, message: str, kind: NotificationKind = NotificationKind.NORMAL) -> None:
        if self.notifier is not None:
            self.notifier.notify(message, kind)

    def _resolve_target(self, target: Candidate | str | None) -> Candidate | None:
        if target is None:
            return self.selected
        if isinstance(target, Candidate):
            return target
        if not target.strip():
            return None
        name, realm = split_identity(target.strip(), self.store.local_realm)
        return Candidate(name=name, full_name=f"{name}-{realm}", realm=realm, source="search")

    def submit_rating(self, target: Candidate | str | None, score: object, comment: str = "") -> SubmitResult:
        """
        Rate a driver, store the rating and send it if the driver is co-located.

        Args:
            target: Candidate, identity string, or None for the selected candidate
            score: Stars from 1 to 5
            comment: Free text

        Returns:
            SubmitResult; an accepted rating is stored even when it cannot be delivered
        """
        candidate = self._resolve_target(target)
        if candidate is None:
            self.logger.debug("Cannot submit review: No driver selected")
            self._notify("Please search and select a driver to rate", NotificationKind.ERROR)
            return SubmitResult.rejected(REJECT_NO_TARGET)

        if not is_valid_score(score):
            self.logger.debug(f"Cannot submit review: Invalid rating value: {score!r}")
            self._notify("Please select a rating (1-5 stars)", NotificationKind.ERROR)
            return SubmitResult.rejected(REJECT_SCORE)

        rating = Rating(
            driver=candidate.full_name,
            driver_name=candidate.name,
            reviewer=self.local_identity,
            rating=score,  # type: ignore[arg-type]
            comment=comment or "",
            timestamp=self.store.now(),
        )
        self.store.add_given_rating(candidate.full_name, rating)
        _ = self.capture_metadata(candidate)

        delivery = self.sync.deliver(rating)
        self.logger.info(f"Rated {candidate.full_name} {score} stars, delivery: {delivery.value}")
        if delivery is DeliveryStatus.UNDELIVERABLE:
            self._notify("Review saved, but it is too long to send", NotificationKind.ERROR)
        else:
            self._notify("Review submitted!")

        return SubmitResult(accepted=True, rating=rating, delivery=delivery)

    def delete_given_rating(self, key: GivenRatingKey) -> bool:
        return self.store.delete_given_rating(key)

    def delete_received_rating(self, key: ReceivedRatingKey) -> bool:
        return self.store.delete_received_rating(key)

    def given_ratings(self) -> list[Rating]:
        return self.store.get_all_given_ratings()

    def received_ratings(self, identity: str | None = None) -> list[Rating]:
        return self.store.get_received_ratings(identity)

    def get_summary(self, identity: str | None = None) -> RatingSummary:
        """Average score and count of ratings received by identity (default: us)."""
        return self.store.get_summary(identity)

    def search(self, token: str | None) -> list[Candidate]:
        """Search for drivers; an empty token yields no candidates and an error notification."""
        try:
            return self.directory.search(token)
        except EmptySearchError as e:
            self.logger.debug(f"Rejected search: {e}")
            self._notify("Please enter a player name to search", NotificationKind.ERROR)
            return []

    def select_candidate(self, candidate: Candidate) -> None:
        """Make candidate the current target and remember it in the search history."""
        self.selected = candidate
        self.store.record_search(candidate)
        _ = self.capture_metadata(candidate)
        self.logger.debug(f"Selected search result: {candidate.name}")

    def capture_metadata(self, candidate: Candidate) -> ParticipantMetadata | None:
        """Cache live facts about a co-located candidate; a failed lookup is ignored."""
        if not candidate.handle or self.lookup is None:
            return None
        try:
            info = self.lookup.lookup(candidate.handle)
        except Exception as e:
            self.logger.warning(f"Live lookup of {candidate.full_name} failed: {e}")
            return None
        if not info:
            return None

        metadata = ParticipantMetadata(
            class_name=info.get("class_name"),
            faction=info.get("faction"),
            race=info.get("race"),
            level=info.get("level"),
            last_updated=self.store.now(),
        )
        self.store.store_participant_metadata(candidate.full_name, metadata)
        return metadata

    def handle_frame(self, prefix: str, frame: str, scope: str, sender: str) -> RouteOutcome:
        """Inbound frame event from the host."""
        return self.sync.route_incoming(prefix, frame, sender, scope)

    def state_report(self) -> dict[str, int]:
        """Sizes of every persisted collection."""
        state = self.store.snapshot()
        return {
            "received_ratings": len(self.store.get_received_ratings()),
            "recipients": len(state.get("ratings", {})),
            "given_ratings": len(state.get("myRatings", {})),
            "known_reviewers": len(state.get("reviewerHistory", {})),
            "search_history": len(state.get("searchHistory", {})),
            "participant_metadata": len(state.get("playerData", {})),
        }
