"""
Simulated party demo.

Two participants share an in-memory channel and rate each other; a third
participant outside the group is rated too, which stays local.
"""

from dataclasses import dataclass

from .config import ServiceConfig
from .host.memory import MemoryChannel, OfflineTransport, StaticRoster
from .host.notifiers import LoggingNotifier
from .logging_config import get_logger
from .models import DeliveryStatus, RatingSummary
from .rating_store import RatingStore
from .service import ReviewService

logger = get_logger("demo")


@dataclass
class DemoReport:
    """What each step of the demo produced."""

    deliveries: list[tuple[str, DeliveryStatus]]
    summaries: dict[str, RatingSummary]
    frames_sent: int


def build_peer(channel: MemoryChannel, identity: str, config: ServiceConfig) -> ReviewService:
    """Join identity to the channel and wire a service listening on it."""
    endpoint = channel.join(identity)
    service = ReviewService(
        store=RatingStore(identity),
        transport=endpoint,
        roster=endpoint,
        notifier=LoggingNotifier(),
        config=config,
    )
    endpoint.listen(service.handle_frame)
    return service


def run_demo(config: ServiceConfig | None = None) -> DemoReport:
    """Run the scripted exchange and report deliveries and resulting summaries."""
    config = config or ServiceConfig()
    channel = MemoryChannel(max_frame_length=config.max_frame_length)
    alice = build_peer(channel, "Alice-Stormrage", config)
    bob = build_peer(channel, "Bob-Stormrage", config)
    carol = ReviewService(
        store=RatingStore("Carol-Stormrage"),
        transport=OfflineTransport(),
        roster=StaticRoster(),
        config=config,
    )

    deliveries = list[tuple[str, DeliveryStatus]]()

    logger.info("Alice searches for Bob and rates that driver")
    alice.select_candidate(alice.search("bob")[0])
    result = alice.submit_rating(None, 5, "Smooth landing on the dragon")
    deliveries.append(("alice -> bob", result.delivery or DeliveryStatus.UNDELIVERABLE))

    logger.info("Alice re-rates Bob; Bob keeps a single review from Alice")
    result = alice.submit_rating("Bob-Stormrage", 3, "Took the scenic route")
    deliveries.append(("alice -> bob (update)", result.delivery or DeliveryStatus.UNDELIVERABLE))

    logger.info("Bob rates Alice back")
    result = bob.submit_rating("Alice-Stormrage", 4, "Good driver")
    deliveries.append(("bob -> alice", result.delivery or DeliveryStatus.UNDELIVERABLE))

    logger.info("Bob writes an essay; even truncated, the frame is over the channel cap")
    result = bob.submit_rating("Alice-Stormrage", 4, "Great driver, " * 30)
    deliveries.append(("bob -> alice (essay)", result.delivery or DeliveryStatus.UNDELIVERABLE))

    logger.info("Alice rates Carol, who is not in the group")
    result = alice.submit_rating("Carol-Stormrage", 2)
    deliveries.append(("alice -> carol", result.delivery or DeliveryStatus.UNDELIVERABLE))

    summaries = {
        service.local_identity: service.get_summary()
        for service in (alice, bob, carol)
    }
    return DemoReport(deliveries=deliveries, summaries=summaries, frames_sent=len(channel.history))
