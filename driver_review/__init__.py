"""
Driver Review - Peer-to-Peer Reputation Exchange

Participants rate each other's driving on a 1-5 scale. Ratings travel between
co-located peers as compact literal frames over a small-message channel, and
each participant keeps its own store of ratings given and received.
"""

from .config import ServiceConfig
from .directory import PeerDirectory
from .interfaces import MetadataLookup, Notifier, Roster, Storage, Transport
from .models import Candidate, DeliveryStatus, Rating, RatingSummary, RouteOutcome
from .rating_store import RatingStore
from .reconciliation import ReconciliationEngine
from .service import ReviewService
from .sync.protocol import SyncProtocolHandler

__version__ = "0.1.0"
__all__ = [
    "Candidate",
    "DeliveryStatus",
    "MetadataLookup",
    "Notifier",
    "PeerDirectory",
    "Rating",
    "RatingStore",
    "RatingSummary",
    "ReconciliationEngine",
    "ReviewService",
    "Roster",
    "RouteOutcome",
    "ServiceConfig",
    "Storage",
    "SyncProtocolHandler",
    "Transport",
]
