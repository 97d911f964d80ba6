"""
TCP Socket Error Taxonomy

Every failure of the transport layer is reported to the immediate caller as
one of the exceptions below. Nothing is retried internally and nothing here is
fatal to the process.
"""

from typing import List, Optional, Tuple


class TCPSocketError(Exception):
    """Base class for all tcpsock failures."""


class ResolutionFailed(TCPSocketError):
    """Name resolution produced no candidate addresses."""

    def __init__(self, host: Optional[str], port, reason: str = ""):
        self.host = host
        self.port = port
        self.reason = reason
        target = f"{host or '*'}:{port}"
        message = f"Could not resolve {target}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class _CandidateExhausted(TCPSocketError):
    """Every resolved candidate was tried without success."""

    verb = "use"

    def __init__(self, host: Optional[str], port, attempts: Optional[List[Tuple]] = None):
        self.host = host
        self.port = port
        # (AddressCandidate, OSError) pairs, diagnostics only
        self.attempts = list(attempts or [])
        super().__init__(
            f"Could not {self.verb} {host or '*'}:{port} "
            f"({len(self.attempts)} candidate(s) tried)"
        )


class ConnectFailed(_CandidateExhausted):
    """All candidate addresses were exhausted without a connection."""

    verb = "connect to"


class BindFailed(_CandidateExhausted):
    """No candidate address could be bound."""

    verb = "bind"


class ListenFailed(TCPSocketError):
    """Socket was bound but could not enter listening mode."""


class AcceptFailed(TCPSocketError):
    """Accepting an inbound connection failed."""


class ReadFailed(TCPSocketError):
    """
    Receive returned fewer than one byte.

    Covers both an orderly shutdown by the peer and an OS error; the two are
    intentionally not told apart. When an OS error occurred it is available as
    ``__cause__``.
    """


class AllocationFailed(TCPSocketError):
    """Growing an accumulation buffer failed."""
