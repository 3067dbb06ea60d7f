"""
In-memory host collaborators.

Simulates the game client's group roster and addon-message channel so the
protocol can be exercised without a host: every frame is delivered to every
member that registered its prefix, the sender included, and frames over the
channel cap are refused.
"""

import time
from collections.abc import Callable, Sequence

from typing_extensions import override

from ..interfaces import LiveInfo, MetadataLookup, Roster, Transport
from ..logging_config import get_logger
from ..models import RosterMember

# Module-level logger
logger = get_logger("memory_host", category="sync")

FrameHandler = Callable[[str, str, str, str], object]  # (prefix, frame, scope, sender)


class StaticRoster(Roster):
    """Roster with a fixed, replaceable member list."""

    def __init__(self, members: Sequence[RosterMember] = (), scope: str = "PARTY"):
        self.members: list[RosterMember] = list(members)
        self.scope: str = scope

    @override
    def current_roster(self) -> Sequence[RosterMember]:
        return list(self.members)

    @override
    def channel_scope(self) -> str:
        return self.scope


class CachedRoster(Roster):
    """Reuses a roster snapshot for ttl seconds before asking the wrapped roster again."""

    def __init__(self, roster: Roster, ttl: float = 2.0, clock: Callable[[], float] = time.monotonic):
        self.roster: Roster = roster
        self.ttl: float = ttl
        self._clock = clock
        self._snapshot: list[RosterMember] = []
        self._taken_at: float | None = None

    @override
    def current_roster(self) -> Sequence[RosterMember]:
        now = self._clock()
        if self._taken_at is None or now - self._taken_at >= self.ttl:
            self._snapshot = list(self.roster.current_roster())
            self._taken_at = now
        return list(self._snapshot)

    @override
    def channel_scope(self) -> str:
        return self.roster.channel_scope()

    def invalidate(self) -> None:
        """Forget the snapshot, e.g. on a roster-change notification."""
        self._taken_at = None


class DictMetadataLookup(MetadataLookup):
    """Live lookup answered from a dict of handle -> info."""

    def __init__(self, infos: dict[str, LiveInfo] | None = None):
        self.infos: dict[str, LiveInfo] = dict(infos or {})

    @override
    def lookup(self, handle: str) -> LiveInfo | None:
        return self.infos.get(handle)


class MemoryChannel:
    """A simulated group with a shared broadcast channel."""

    def __init__(self, max_frame_length: int = 255, scope: str = "PARTY"):
        self.max_frame_length: int = max_frame_length
        self.scope: str = scope
        self._endpoints = dict[str, "ChannelEndpoint"]()
        self.history = list[tuple[str, str, str]]()  # (sender, prefix, frame)

    def join(self, identity: str, display_name: str | None = None) -> "ChannelEndpoint":
        """Add a participant to the group and return its host endpoint."""
        endpoint = ChannelEndpoint(self, identity, display_name or identity.partition("-")[0])
        self._endpoints[identity] = endpoint
        logger.debug(f"{identity} joined the group")
        return endpoint

    def leave(self, identity: str) -> None:
        self._endpoints.pop(identity, None)
        logger.debug(f"{identity} left the group")

    def roster(self) -> list[RosterMember]:
        return [
            RosterMember(identity=e.identity, display_name=e.display_name, handle=f"{self.scope.lower()}{i}")
            for i, e in enumerate(self._endpoints.values(), 1)
        ]

    def broadcast(self, sender: str, prefix: str, frame: str, scope: str) -> bool:
        if sender not in self._endpoints:
            return False
        if len(frame.encode("utf-8")) > self.max_frame_length:
            logger.warning(f"Refusing {len(frame.encode('utf-8'))} byte frame from {sender}")
            return False

        self.history.append((sender, prefix, frame))
        for endpoint in list(self._endpoints.values()):
            endpoint.deliver(prefix, frame, scope, sender)
        return True


class ChannelEndpoint(Transport, Roster):
    """One participant's view of a MemoryChannel: its transport and its roster."""

    def __init__(self, channel: MemoryChannel, identity: str, display_name: str):
        self.channel: MemoryChannel = channel
        self.identity: str = identity
        self.display_name: str = display_name
        self.prefixes = set[str]()
        self._handler: FrameHandler | None = None

    def listen(self, handler: FrameHandler) -> None:
        """Set the callback invoked for every frame under a registered prefix."""
        self._handler = handler

    def deliver(self, prefix: str, frame: str, scope: str, sender: str) -> None:
        if self._handler is not None and prefix in self.prefixes:
            _ = self._handler(prefix, frame, scope, sender)

    @override
    def register_prefix(self, prefix: str) -> None:
        self.prefixes.add(prefix)

    @override
    def send(self, prefix: str, frame: str, scope: str) -> bool:
        return self.channel.broadcast(self.identity, prefix, frame, scope)

    @override
    def current_roster(self) -> Sequence[RosterMember]:
        return self.channel.roster()

    @override
    def channel_scope(self) -> str:
        return self.channel.scope


class OfflineTransport(Transport):
    """Transport for a participant outside any group; every send is refused."""

    @override
    def register_prefix(self, prefix: str) -> None:
        logger.debug(f"Offline transport ignoring prefix {prefix}")

    @override
    def send(self, prefix: str, frame: str, scope: str) -> bool:
        return False
