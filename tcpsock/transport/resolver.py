"""
Address Resolution

Turns a host/port (or a bare port for servers) into the ordered list of
candidate socket addresses the connector and listener iterate over. Both IPv4
and IPv6 results are returned unless a family is forced.
"""

import socket
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
import logging

from ..errors import ResolutionFailed

logger = logging.getLogger(__name__)


Port = Union[int, str]


@dataclass(frozen=True)
class AddressCandidate:
    """One resolved (family, type, proto, address) combination."""

    family: int
    type: int
    proto: int
    canonname: str
    sockaddr: Tuple

    @property
    def host(self) -> str:
        return self.sockaddr[0]

    @property
    def port(self) -> int:
        return self.sockaddr[1]

    def create_socket(self) -> socket.socket:
        """Create an unconnected socket suitable for this candidate."""
        return socket.socket(self.family, self.type, self.proto)

    def __str__(self) -> str:
        if self.family == socket.AF_INET6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


class AddressResolver:
    """
    Thin wrapper over the platform resolver (getaddrinfo).

    Kept as an object so connect()/Listener can be handed a different
    resolver, e.g. one restricted to a single address family.
    """

    def __init__(self, family: int = socket.AF_UNSPEC):
        """
        Initialize resolver.

        Args:
            family: Address family hint (AF_UNSPEC allows IPv4 and IPv6)
        """
        self.family = family

    def resolve(
        self,
        host: Optional[str],
        port: Port,
        *,
        type: int = socket.SOCK_STREAM,
        passive: bool = False
    ) -> List[AddressCandidate]:
        """
        Resolve ``host``/``port`` into candidate addresses.

        Args:
            host: Host name or literal address, None for the wildcard address
            port: Port number or service name
            type: Socket type hint
            passive: Resolve for bind() rather than connect()

        Returns:
            Candidates in the order the resolver returned them

        Raises:
            ResolutionFailed: lookup failed or returned nothing
        """
        flags = socket.AI_PASSIVE if passive else 0

        try:
            results = socket.getaddrinfo(host, port, self.family, type, 0, flags)
        except (socket.gaierror, UnicodeError) as e:
            raise ResolutionFailed(host, port, str(e)) from e

        candidates = [
            AddressCandidate(
                family=family,
                type=socktype,
                proto=proto,
                canonname=canonname,
                sockaddr=sockaddr
            )
            for family, socktype, proto, canonname, sockaddr in results
        ]

        if not candidates:
            raise ResolutionFailed(host, port, "no addresses returned")

        logger.debug(
            f"Resolved {host or '*'}:{port} to {len(candidates)} candidate(s): "
            + ", ".join(str(c) for c in candidates)
        )

        return candidates
