"""
TCP Listener

Binds a wildcard address for a port and hands out a Connection for every
accepted peer.

State machine: NOT_LISTENING -> LISTENING -> CLOSED. There is no stop or
restart other than close(). All calls block; a Listener must not be shared
between threads without external locking.
"""

import socket
from enum import Enum
from typing import Optional, Tuple
import logging

from ..config import TransportConfig
from ..errors import AcceptFailed, BindFailed, ListenFailed
from .connection import Connection
from .resolver import AddressResolver, Port

logger = logging.getLogger(__name__)


class ListenerState(Enum):
    """Lifecycle of a Listener."""

    NOT_LISTENING = "not_listening"
    LISTENING = "listening"
    CLOSED = "closed"


class Listener:
    """
    Owns one bound, listening stream socket.

    ``sock`` is set if and only if the listener is listening.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        resolver: Optional[AddressResolver] = None
    ):
        """
        Initialize listener (not yet listening).

        Args:
            config: Transport settings, also applied to accepted connections
            resolver: Address resolver (AF_UNSPEC by default)
        """
        self.config = config or TransportConfig()
        self.resolver = resolver or AddressResolver()

        self.sock: Optional[socket.socket] = None
        self.state = ListenerState.NOT_LISTENING

    @property
    def listening(self) -> bool:
        return self.state is ListenerState.LISTENING

    @property
    def address(self) -> Optional[Tuple]:
        """Bound local address, None while not listening."""
        if not self.listening:
            return None
        return self.sock.getsockname()

    @property
    def port(self) -> Optional[int]:
        address = self.address
        return address[1] if address else None

    def listen(self, port: Port, backlog: Optional[int] = None):
        """
        Bind a wildcard address for ``port`` and start listening.

        Calling this while already listening does nothing.

        Args:
            port: Port number or service name (0 picks an ephemeral port)
            backlog: Pending connection queue length (config.backlog if omitted)

        Raises:
            ResolutionFailed: passive lookup for port failed
            BindFailed: no candidate address could be bound
            ListenFailed: bound socket refused to listen, or listener closed
        """
        if self.state is ListenerState.LISTENING:
            return
        if self.state is ListenerState.CLOSED:
            raise ListenFailed("Listener is closed")

        if backlog is None:
            backlog = self.config.backlog

        candidates = self.resolver.resolve(None, port, passive=True)

        sock = None
        attempts = []
        for candidate in candidates:
            try:
                candidate_sock = candidate.create_socket()
            except OSError as e:
                logger.debug(f"Socket creation failed for {candidate}: {e}")
                attempts.append((candidate, e))
                continue

            try:
                if self.config.reuse_address:
                    candidate_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                candidate_sock.bind(candidate.sockaddr)
            except OSError as e:
                logger.debug(f"Bind to {candidate} failed: {e}")
                attempts.append((candidate, e))
                candidate_sock.close()
                continue

            sock = candidate_sock
            break

        if sock is None:
            raise BindFailed(None, port, attempts)

        try:
            sock.listen(backlog)
        except OSError as e:
            sock.close()
            raise ListenFailed(f"Could not listen on port {port}: {e}") from e

        self.sock = sock
        self.state = ListenerState.LISTENING

        logger.info(f"Listening on {sock.getsockname()[:2]} (backlog {backlog})")

    def accept(self) -> Connection:
        """
        Block until a peer connects.

        The peer's address is not retained.

        Raises:
            AcceptFailed: not listening or the accept call failed
        """
        if not self.listening:
            raise AcceptFailed("Listener is not listening")

        try:
            peer_sock, _addr = self.sock.accept()
        except OSError as e:
            raise AcceptFailed(f"Accept failed: {e}") from e

        return Connection(peer_sock, self.config)

    def close(self):
        """Close the listening socket if there is one. Further calls are no-ops."""
        if self.state is ListenerState.LISTENING:
            self.sock.close()
            logger.info("Listener closed")

        self.sock = None
        self.state = ListenerState.CLOSED

    def __enter__(self) -> "Listener":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"Listener(state={self.state.value}, address={self.address})"
