"""
Shared fixtures for tcpsock tests.
"""

import socket
import threading

import pytest

from tcpsock.config import TransportConfig
from tcpsock.transport import AddressResolver, Connection, Listener, connect


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without real networking")
    config.addinivalue_line("markers", "integration: tests over loopback sockets")


class PeerThread(threading.Thread):
    """Runs ``target`` on a thread and keeps its return value or exception."""

    def __init__(self, target, *args):
        super().__init__(daemon=True)
        self._target_fn = target
        self._fn_args = args
        self.result = None
        self.error = None

    def run(self):
        try:
            self.result = self._target_fn(*self._fn_args)
        except Exception as e:  # surfaced by join_result()
            self.error = e

    def join_result(self, timeout: float = 10.0):
        self.join(timeout)
        assert not self.is_alive(), "peer thread did not finish"
        if self.error is not None:
            raise self.error
        return self.result


def loopback_host(listener: Listener) -> str:
    """Loopback address reachable for the listener's address family."""
    return "::1" if listener.sock.family == socket.AF_INET6 else "127.0.0.1"


def free_port() -> int:
    """Port that was free a moment ago (nothing listens on it)."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


# ===== FIXTURES =====

@pytest.fixture
def config():
    """Default transport configuration."""
    return TransportConfig()


@pytest.fixture
def ipv4_resolver():
    """Resolver limited to IPv4 so tests do not depend on host IPv6 setup."""
    return AddressResolver(family=socket.AF_INET)


@pytest.fixture
def listener(config, ipv4_resolver):
    """Listener on an ephemeral IPv4 port."""
    server = Listener(config, resolver=ipv4_resolver)
    server.listen(0, backlog=1)
    yield server
    server.close()


@pytest.fixture
def connected_pair(listener, config):
    """(client, server) Connections joined over loopback TCP."""
    client = connect(loopback_host(listener), listener.port, config=config)
    server = listener.accept()
    yield client, server
    client.close()
    server.close()


@pytest.fixture
def socket_pair(config):
    """(left, right) Connections over socket.socketpair()."""
    left_sock, right_sock = socket.socketpair()
    left = Connection(left_sock, config)
    right = Connection(right_sock, config)
    yield left, right
    left.close()
    right.close()
