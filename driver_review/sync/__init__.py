"""
Peer synchronization.

Message kinds carried over the channel and the protocol handler that frames
and routes them.
"""

from .messages import Message, MessageKind, ReviewMessage, parse_message
from .protocol import SyncProtocolHandler, frame_length

__all__ = [
    "Message",
    "MessageKind",
    "ReviewMessage",
    "SyncProtocolHandler",
    "frame_length",
    "parse_message",
]
