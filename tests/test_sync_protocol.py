"""
Tests for SyncProtocolHandler.

Frame sizes below use a fixed rating whose frame is 143 bytes plus the
comment, so a 112 character comment exactly fills a 255 byte frame.
"""

from collections.abc import Mapping
from typing import Any

import pytest
from typing_extensions import override

from driver_review.exceptions import FrameTooLargeError
from driver_review.host import StaticRoster
from driver_review.interfaces import Transport
from driver_review.models import DeliveryStatus, Rating, ReceiveResult, RosterMember, RouteOutcome
from driver_review.rating_store import RatingStore
from driver_review.reconciliation import ReconciliationEngine
from driver_review.serialization import decode, encode
from driver_review.sync import SyncProtocolHandler, frame_length

LOCAL = "Al-X"
DRIVER = "Bo-X"
PREFIX = "DriverReview"


class RecordingTransport(Transport):
    """Transport that records sends and answers with a fixed result."""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.prefixes = list[str]()
        self.sent = list[tuple[str, str, str]]()

    @override
    def register_prefix(self, prefix: str) -> None:
        self.prefixes.append(prefix)

    @override
    def send(self, prefix: str, frame: str, scope: str) -> bool:
        self.sent.append((prefix, frame, scope))
        return self.accept


class SpyEngine(ReconciliationEngine):
    """Engine that records what the handler passes in."""

    def __init__(self) -> None:
        super().__init__(RatingStore(LOCAL))
        self.calls = list[tuple[Any, str | None]]()

    @override
    def receive_rating(self, payload: Mapping[str, Any] | None, sender: str | None) -> ReceiveResult:
        self.calls.append((payload, sender))
        return ReceiveResult.rejected("spy")


def make_rating(comment: str = "", driver_name: str = "Bo") -> Rating:
    return Rating(driver=DRIVER, reviewer=LOCAL, rating=4, comment=comment, driver_name=driver_name, timestamp=1_700_000_000)


def make_handler(
    members: list[str] | None = None,
    accept: bool = True,
) -> tuple[SyncProtocolHandler, RecordingTransport, SpyEngine]:
    roster = StaticRoster(
        [RosterMember(identity=m, display_name=m.partition("-")[0]) for m in (members or [LOCAL, DRIVER])],
        scope="RAID",
    )
    transport = RecordingTransport(accept)
    engine = SpyEngine()
    return SyncProtocolHandler(LOCAL, engine, transport, roster), transport, engine


def sent_review(frame: str) -> dict[Any, Any]:
    envelope = decode(frame)
    assert envelope["type"] == "review"
    return envelope["review"]


class TestPrepareOutgoing:
    """Test framing and the single truncation retry."""

    def test_short_frame_is_unchanged(self) -> None:
        """Test that a frame under the cap carries the full rating."""
        # Arrange
        handler, _, _ = make_handler()
        rating = make_rating("smooth")

        # Act
        frame = handler.prepare_outgoing(rating)

        # Assert
        assert frame_length(frame) == 149
        assert sent_review(frame) == rating.to_record()

    def test_frame_exactly_at_cap_is_not_truncated(self) -> None:
        handler, _, _ = make_handler()
        comment = "c" * 112

        frame = handler.prepare_outgoing(make_rating(comment))

        assert frame_length(frame) == 255
        assert sent_review(frame)["comment"] == comment

    def test_long_comment_is_truncated_once(self) -> None:
        """Test that an oversize frame is retried with a 100 character comment plus marker."""
        # Arrange
        handler, _, _ = make_handler()
        rating = make_rating("x" * 500)

        # Act
        frame = handler.prepare_outgoing(rating)

        # Assert
        assert sent_review(frame)["comment"] == "x" * 100 + "..."
        assert frame_length(frame) <= 255
        assert rating.comment == "x" * 500, "The rating itself must not be modified"

    def test_oversize_without_long_comment_fails(self) -> None:
        """Test that a frame too large for reasons other than the comment is refused."""
        handler, _, _ = make_handler()

        with pytest.raises(FrameTooLargeError):
            _ = handler.prepare_outgoing(make_rating("short", driver_name="N" * 150))

    def test_still_oversize_after_truncation_fails(self) -> None:
        handler, _, _ = make_handler()

        with pytest.raises(FrameTooLargeError) as exc_info:
            _ = handler.prepare_outgoing(make_rating("x" * 150, driver_name="N" * 120))

        assert exc_info.value.limit == 255

    def test_multibyte_comment_counts_bytes(self) -> None:
        """Test that the cap applies to the encoded byte length, not characters."""
        # Arrange
        handler, _, _ = make_handler()
        fits = make_rating("\u00e9" * 50)  # 100 bytes
        too_wide = make_rating("\u00e9" * 110)  # 110 characters would fit, 220 bytes do not

        # Act
        frame = handler.prepare_outgoing(fits)

        # Assert
        assert frame_length(frame) == 243
        assert len(frame) < frame_length(frame)
        with pytest.raises(FrameTooLargeError):
            _ = handler.prepare_outgoing(too_wide)


class TestDeliver:
    """Test the delivery decision."""

    def test_sent_to_roster_scope_when_driver_present(self) -> None:
        # Arrange
        handler, transport, _ = make_handler()

        # Act
        status = handler.deliver(make_rating("smooth"))

        # Assert
        assert status is DeliveryStatus.SENT
        assert len(transport.sent) == 1
        prefix, frame, scope = transport.sent[0]
        assert (prefix, scope) == (PREFIX, "RAID")
        assert sent_review(frame)["comment"] == "smooth"

    def test_deferred_when_driver_absent(self) -> None:
        """Test that a driver outside the roster is not an error and nothing is sent."""
        handler, transport, _ = make_handler(members=[LOCAL, "Cy-X"])

        status = handler.deliver(make_rating())

        assert status is DeliveryStatus.DEFERRED
        assert transport.sent == []

    def test_undeliverable_when_frame_too_large(self) -> None:
        handler, transport, _ = make_handler()

        status = handler.deliver(make_rating(driver_name="N" * 150))

        assert status is DeliveryStatus.UNDELIVERABLE
        assert transport.sent == []

    def test_send_failed_when_transport_refuses(self) -> None:
        handler, transport, _ = make_handler(accept=False)

        status = handler.deliver(make_rating())

        assert status is DeliveryStatus.SEND_FAILED
        assert len(transport.sent) == 1


class TestRouteIncoming:
    """Test inbound frame routing."""

    def review_frame(self, **review: Any) -> str:
        return encode({"type": "review", "review": review})

    def test_review_dispatched_to_engine(self) -> None:
        """Test that a valid review frame reaches the engine with the sender."""
        # Arrange
        handler, _, engine = make_handler()
        frame = self.review_frame(driver=LOCAL, rating=5, comment="hi")

        # Act
        outcome = handler.route_incoming(PREFIX, frame, DRIVER, "PARTY")

        # Assert
        assert outcome is RouteOutcome.DISPATCHED
        assert engine.calls == [({"driver": LOCAL, "rating": 5, "comment": "hi"}, DRIVER)]

    def test_foreign_prefix_ignored(self) -> None:
        handler, _, engine = make_handler()

        outcome = handler.route_incoming("OtherAddon", self.review_frame(driver=LOCAL, rating=5), DRIVER)

        assert outcome is RouteOutcome.FOREIGN_PREFIX
        assert engine.calls == []

    def test_own_broadcast_ignored(self) -> None:
        """Test that the channel echo of our own frame is suppressed."""
        handler, _, engine = make_handler()

        outcome = handler.route_incoming(PREFIX, self.review_frame(driver=LOCAL, rating=5), LOCAL)

        assert outcome is RouteOutcome.SELF_ECHO
        assert engine.calls == []

    @pytest.mark.parametrize("frame", ["os.exit()", "{", "", '{["type"]="review"'])
    def test_malformed_frame_dropped(self, frame: str) -> None:
        handler, _, engine = make_handler()

        outcome = handler.route_incoming(PREFIX, frame, DRIVER)

        assert outcome is RouteOutcome.MALFORMED
        assert engine.calls == []

    @pytest.mark.parametrize(
        "envelope",
        [
            {"type": "ping"},
            {"review": {"rating": 5}},
            {"type": "review"},
            {"type": "review", "review": "not a table"},
            "just a string",
            5,
        ],
    )
    def test_unknown_message_dropped(self, envelope: Any) -> None:
        """Test that decodable but unrecognized envelopes are ignored."""
        handler, _, engine = make_handler()

        outcome = handler.route_incoming(PREFIX, encode(envelope), DRIVER)

        assert outcome is RouteOutcome.UNKNOWN_MESSAGE
        assert engine.calls == []

    def test_overflowing_timestamp_stored_as_now(self) -> None:
        """Test that a numeric literal too large for an integer timestamp still lands."""
        # Arrange
        store = RatingStore(LOCAL, clock=lambda: 1_700_000_000.0)
        transport = RecordingTransport()
        handler = SyncProtocolHandler(LOCAL, ReconciliationEngine(store), transport, StaticRoster())
        frame = '{type="review",review={driver="Al-X",rating=5,timestamp=1e999}}'

        # Act
        outcome = handler.route_incoming(PREFIX, frame, DRIVER)

        # Assert
        assert outcome is RouteOutcome.DISPATCHED
        assert [(r.reviewer, r.timestamp) for r in store.get_received_ratings()] == [(DRIVER, 1_700_000_000)]

    @pytest.mark.parametrize("error", [ValueError("bad"), OverflowError("huge"), TypeError("odd")])
    def test_engine_failure_counts_as_malformed(self, error: Exception) -> None:
        """Test that a payload the engine cannot reconcile is dropped rather than raised."""
        # Arrange
        class FailingEngine(SpyEngine):
            @override
            def receive_rating(self, payload: Mapping[str, Any] | None, sender: str | None) -> ReceiveResult:
                raise error

        handler = SyncProtocolHandler(LOCAL, FailingEngine(), RecordingTransport(), StaticRoster())

        # Act
        outcome = handler.route_incoming(PREFIX, self.review_frame(driver=LOCAL, rating=5), DRIVER)

        # Assert
        assert outcome is RouteOutcome.MALFORMED
