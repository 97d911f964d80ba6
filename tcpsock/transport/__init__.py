"""
TCP Transport Layer

Connections, listeners, outbound connect and the chunk accumulation buffer.
"""

from .buffer import AccumulationBuffer
from .resolver import AddressResolver, AddressCandidate
from .connection import Connection
from .connector import connect
from .listener import Listener, ListenerState

__all__ = [
    "AccumulationBuffer",
    "AddressResolver",
    "AddressCandidate",
    "Connection",
    "connect",
    "Listener",
    "ListenerState"
]
