"""
Wire serialization.

Provides the literal table codec used to frame messages for the small-message
channel.
"""

from .literal_codec import decode, encode, quote

__all__ = ["decode", "encode", "quote"]
