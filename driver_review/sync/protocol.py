"""
Sync protocol handler.

Frames outgoing ratings for the size-capped channel and routes inbound frames
to the reconciliation engine. Nothing raised while handling an inbound frame
escapes: every frame ends in a RouteOutcome.
"""

from dataclasses import replace

from typing_extensions import assert_never

from ..config import ServiceConfig
from ..exceptions import DecodeError, FrameTooLargeError, UnknownMessageError, ValidationError
from ..interfaces import Roster, Transport
from ..logging_config import get_logger
from ..models import DeliveryStatus, Rating, RouteOutcome
from ..reconciliation import ReconciliationEngine
from ..serialization import decode, encode
from .messages import ReviewMessage, parse_message

# Module-level logger
logger = get_logger("sync_protocol", category="sync")


def frame_length(frame: str) -> int:
    """Length of a frame as the channel counts it (UTF-8 bytes)."""
    return len(frame.encode("utf-8"))


class SyncProtocolHandler:
    """Outgoing framing, delivery decision and inbound routing."""

    def __init__(
        self,
        local_identity: str,
        engine: ReconciliationEngine,
        transport: Transport,
        roster: Roster,
        config: ServiceConfig | None = None,
    ):
        self.local_identity: str = local_identity
        self.engine: ReconciliationEngine = engine
        self.transport: Transport = transport
        self.roster: Roster = roster
        self.config: ServiceConfig = config or ServiceConfig()

    def _encode_review(self, rating: Rating) -> str:
        return encode(ReviewMessage.for_rating(rating).to_envelope())

    def prepare_outgoing(self, rating: Rating) -> str:
        """
        Encode a rating into a frame that fits the channel.

        A frame over the cap is retried once with the comment cut to
        comment_limit characters plus the truncation marker. The rating
        itself is left untouched.

        Raises:
            FrameTooLargeError: If the frame is still over the cap
        """
        cap = self.config.max_frame_length
        frame = self._encode_review(rating)
        if frame_length(frame) <= cap:
            return frame

        limit = self.config.comment_limit
        if len(rating.comment) > limit:
            logger.debug(f"Frame of {frame_length(frame)} bytes over cap, truncating comment to {limit} characters")
            shortened = replace(rating, comment=rating.comment[:limit] + self.config.truncation_marker)
            frame = self._encode_review(shortened)
            if frame_length(frame) <= cap:
                return frame

        raise FrameTooLargeError(frame_length(frame), cap)

    def deliver(self, rating: Rating) -> DeliveryStatus:
        """
        Send a rating to its driver if the driver is co-located.

        An absent driver is not an error; the rating simply stays local.
        """
        try:
            frame = self.prepare_outgoing(rating)
        except FrameTooLargeError as e:
            logger.warning(f"Rating for {rating.driver} is undeliverable: {e}")
            return DeliveryStatus.UNDELIVERABLE

        if not any(member.identity == rating.driver for member in self.roster.current_roster()):
            logger.debug(f"{rating.driver} is not in the group, keeping rating local")
            return DeliveryStatus.DEFERRED

        scope = self.roster.channel_scope()
        if self.transport.send(self.config.message_prefix, frame, scope):
            logger.debug(f"Sent {frame_length(frame)} byte frame to {scope}")
            return DeliveryStatus.SENT

        logger.warning(f"Transport refused frame for {rating.driver}")
        return DeliveryStatus.SEND_FAILED

    def route_incoming(self, prefix: str, frame: str, sender: str, scope: str | None = None) -> RouteOutcome:
        """Decode an inbound frame and hand any review in it to the engine."""
        if prefix != self.config.message_prefix:
            return RouteOutcome.FOREIGN_PREFIX
        if sender == self.local_identity:
            return RouteOutcome.SELF_ECHO

        try:
            message = parse_message(decode(frame))
        except DecodeError as e:
            logger.debug(f"Dropping malformed frame from {sender}: {e}")
            return RouteOutcome.MALFORMED
        except UnknownMessageError as e:
            logger.debug(f"Dropping unknown message from {sender}: {e}")
            return RouteOutcome.UNKNOWN_MESSAGE

        try:
            if isinstance(message, ReviewMessage):
                _ = self.engine.receive_rating(message.review, sender)
            else:
                assert_never(message)
        except (ValueError, OverflowError, TypeError, ValidationError) as e:
            logger.warning(f"Dropping frame from {sender} that could not be reconciled: {e}")
            return RouteOutcome.MALFORMED
        return RouteOutcome.DISPATCHED
