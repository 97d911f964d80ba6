"""
Outbound Connect

Resolves a host/port and walks the candidate addresses in order until one
accepts a connection.
"""

from typing import Optional
import logging

from ..config import TransportConfig
from ..errors import ConnectFailed
from .connection import Connection
from .resolver import AddressResolver, Port

logger = logging.getLogger(__name__)


def connect(
    host: str,
    port: Port,
    *,
    config: Optional[TransportConfig] = None,
    resolver: Optional[AddressResolver] = None
) -> Connection:
    """
    Open a TCP connection to ``host``:``port``.

    Every candidate that fails to create or connect is closed and skipped.
    Only the aggregate outcome is reported; per-candidate errors ride along on
    ConnectFailed.attempts for diagnostics.

    Args:
        host: Host name or literal address
        port: Port number or service name
        config: Settings for the returned Connection
        resolver: Address resolver (AF_UNSPEC by default)

    Returns:
        Established Connection

    Raises:
        ResolutionFailed: host/port did not resolve
        ConnectFailed: no candidate accepted the connection
    """
    resolver = resolver or AddressResolver()
    candidates = resolver.resolve(host, port)

    attempts = []
    for candidate in candidates:
        try:
            sock = candidate.create_socket()
        except OSError as e:
            logger.debug(f"Socket creation failed for {candidate}: {e}")
            attempts.append((candidate, e))
            continue

        try:
            sock.connect(candidate.sockaddr)
        except OSError as e:
            logger.debug(f"Connect to {candidate} failed: {e}")
            attempts.append((candidate, e))
            sock.close()
            continue

        logger.info(f"Connected to {candidate}")
        return Connection(sock, config)

    raise ConnectFailed(host, port, attempts)
