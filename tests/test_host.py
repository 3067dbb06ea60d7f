"""
Tests for the in-memory host collaborators.
"""

from driver_review.host import CachedRoster, MemoryChannel, StaticRoster
from driver_review.models import RosterMember


class FakeMonotonic:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestCachedRoster:
    """Test roster snapshot reuse."""

    def test_snapshot_reused_within_ttl(self) -> None:
        """Test that roster changes are only seen once the snapshot expires."""
        # Arrange
        clock = FakeMonotonic()
        inner = StaticRoster([RosterMember(identity="Al-X", display_name="Al")])
        cached = CachedRoster(inner, ttl=2.0, clock=clock)
        _ = cached.current_roster()
        inner.members.append(RosterMember(identity="Bo-X", display_name="Bo"))

        # Act
        clock.now = 1.5
        within_ttl = cached.current_roster()
        clock.now = 2.0
        after_ttl = cached.current_roster()

        # Assert
        assert [m.identity for m in within_ttl] == ["Al-X"]
        assert [m.identity for m in after_ttl] == ["Al-X", "Bo-X"]

    def test_invalidate_forces_refresh(self) -> None:
        clock = FakeMonotonic()
        inner = StaticRoster()
        cached = CachedRoster(inner, clock=clock)
        _ = cached.current_roster()
        inner.members.append(RosterMember(identity="Bo-X", display_name="Bo"))

        cached.invalidate()

        assert [m.identity for m in cached.current_roster()] == ["Bo-X"]
        assert cached.channel_scope() == "PARTY"


class TestMemoryChannel:
    """Test the simulated broadcast channel."""

    def test_broadcast_reaches_every_registered_member(self) -> None:
        """Test that frames go to all members with the prefix, sender included."""
        # Arrange
        channel = MemoryChannel()
        received = list[tuple[str, str, str]]()
        for identity in ("Al-X", "Bo-X", "Cy-X"):
            endpoint = channel.join(identity)
            endpoint.listen(lambda prefix, frame, scope, sender, me=identity: received.append((me, frame, sender)))
            if identity != "Cy-X":
                endpoint.register_prefix("DR")

        # Act
        sent = channel.broadcast("Al-X", "DR", "{}", "PARTY")

        # Assert
        assert sent
        assert received == [("Al-X", "{}", "Al-X"), ("Bo-X", "{}", "Al-X")]

    def test_oversize_and_non_member_frames_refused(self) -> None:
        channel = MemoryChannel(max_frame_length=4)
        endpoint = channel.join("Al-X")

        assert not endpoint.send("DR", "ééé", "PARTY"), "Six bytes exceed a four byte cap"
        assert not channel.broadcast("Zz-X", "DR", "{}", "PARTY")
        assert channel.history == []

    def test_roster_handles_follow_join_order(self) -> None:
        channel = MemoryChannel(scope="RAID")
        _ = channel.join("Al-X")
        _ = channel.join("Bo-X", display_name="Bobby")

        roster = channel.roster()

        assert [(m.identity, m.display_name, m.handle) for m in roster] == [
            ("Al-X", "Al", "raid1"),
            ("Bo-X", "Bobby", "raid2"),
        ]
