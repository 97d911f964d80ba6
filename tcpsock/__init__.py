"""
tcpsock - Minimal blocking TCP sockets

A small abstraction over stream sockets: connect out, listen and accept, move
bytes (and whole files, via sendfile) over a Connection, and accumulate
messages across chunked reads.

Quick Start:
    >>> from tcpsock import Listener, connect
    >>>
    >>> with Listener() as server:
    ...     server.listen(0, backlog=1)
    ...     client = connect("127.0.0.1", server.port)
    ...     peer = server.accept()
    ...     sent = client.write(b"ping")
    ...     peer.read_bytes(4)
    b'ping'

Concurrency:
    Every call blocks the calling thread. Run each Connection or Listener on
    its own thread when concurrency is needed; sharing one instance between
    threads requires the caller's own locking.
"""

from .config import TransportConfig
from .errors import (
    TCPSocketError,
    ResolutionFailed,
    ConnectFailed,
    BindFailed,
    ListenFailed,
    AcceptFailed,
    ReadFailed,
    AllocationFailed,
)
from .transport import (
    AccumulationBuffer,
    AddressResolver,
    AddressCandidate,
    Connection,
    connect,
    Listener,
    ListenerState,
)

__version__ = "0.1.0"

__all__ = [
    "TransportConfig",
    "TCPSocketError",
    "ResolutionFailed",
    "ConnectFailed",
    "BindFailed",
    "ListenFailed",
    "AcceptFailed",
    "ReadFailed",
    "AllocationFailed",
    "AccumulationBuffer",
    "AddressResolver",
    "AddressCandidate",
    "Connection",
    "connect",
    "Listener",
    "ListenerState",
]
