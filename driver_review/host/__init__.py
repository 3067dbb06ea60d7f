"""
Host collaborator implementations.

In-memory stand-ins for the game client's roster, message channel and live
lookups, plus notifiers.
"""

from .memory import (
    CachedRoster,
    ChannelEndpoint,
    DictMetadataLookup,
    MemoryChannel,
    OfflineTransport,
    StaticRoster,
)
from .notifiers import LoggingNotifier, RecordingNotifier

__all__ = [
    "CachedRoster",
    "ChannelEndpoint",
    "DictMetadataLookup",
    "LoggingNotifier",
    "MemoryChannel",
    "OfflineTransport",
    "RecordingNotifier",
    "StaticRoster",
]
