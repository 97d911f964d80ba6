"""
Tests for Connection byte I/O, chunk accumulation and ownership.
"""

import select
import socket
from array import array
from unittest.mock import MagicMock

import pytest

from conftest import PeerThread
from tcpsock.config import TransportConfig
from tcpsock.errors import AllocationFailed, ReadFailed
from tcpsock.transport import AccumulationBuffer, Connection


def mock_socket():
    sock = MagicMock(spec=socket.socket)
    sock.fileno.return_value = 99
    return sock


def drain(conn: Connection, expected: int) -> bytes:
    """Read until ``expected`` bytes arrived or the peer closed."""
    chunks = []
    total = 0
    while total < expected:
        try:
            data = conn.read_bytes(65536)
        except ReadFailed:
            break
        chunks.append(data)
        total += len(data)
    return b"".join(chunks)


# ===== OWNERSHIP TESTS =====

@pytest.mark.unit
class TestOwnership:
    """A Connection closes its socket exactly once."""

    def test_close_closes_socket_once(self):
        sock = mock_socket()
        conn = Connection(sock)

        conn.close()
        conn.close()

        assert conn.closed
        sock.close.assert_called_once()

    def test_context_manager_closes(self):
        sock = mock_socket()

        with Connection(sock) as conn:
            assert not conn.closed

        assert conn.closed
        sock.close.assert_called_once()

    def test_context_manager_closes_on_error(self):
        sock = mock_socket()

        with pytest.raises(RuntimeError):
            with Connection(sock):
                raise RuntimeError("boom")

        sock.close.assert_called_once()

    def test_settings_from_config(self):
        config = TransportConfig(chunk_size=64, read_size=128, max_buffer_size=4096)
        conn = Connection(mock_socket(), config)

        assert conn.chunk_size == 64
        assert conn.read_size == 128
        assert conn.max_buffer_size == 4096

    def test_defaults(self):
        conn = Connection(mock_socket())

        assert conn.chunk_size == 512
        assert conn.read_size == 1024


# ===== READ / WRITE TESTS =====

@pytest.mark.unit
class TestReadWrite:
    """Test single-call reads and writes."""

    def test_write_then_read_bytes(self, socket_pair):
        left, right = socket_pair

        assert left.write(b"hello") == 5
        assert right.read_bytes(5) == b"hello"

    def test_write_length_limits_payload(self, socket_pair):
        left, right = socket_pair

        assert left.write(b"hello world", 5) == 5
        assert right.read_bytes(64) == b"hello"

    def test_partial_read_is_not_an_error(self, socket_pair):
        left, right = socket_pair
        left.write(b"abc")

        assert right.read_bytes(1024) == b"abc"

    def test_read_bytes_default_length(self, socket_pair):
        left, right = socket_pair
        left.write(b"x" * 2000)

        data = right.read_bytes()
        assert 0 < len(data) <= right.read_size

    def test_read_bytes_after_peer_close(self, socket_pair):
        left, right = socket_pair
        left.close()

        with pytest.raises(ReadFailed):
            right.read_bytes(16)

    def test_read_bytes_os_error_is_chained(self):
        sock = mock_socket()
        sock.recv.side_effect = ConnectionResetError("reset")
        conn = Connection(sock)

        with pytest.raises(ReadFailed) as exc_info:
            conn.read_bytes(16)

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)

    def test_read_into_returns_count(self, socket_pair):
        left, right = socket_pair
        left.write(b"data")
        storage = bytearray(16)

        assert right.read_into(storage, 16) == 4
        assert storage[:4] == b"data"

    def test_read_into_defaults_to_buffer_length(self, socket_pair):
        left, right = socket_pair
        left.write(b"abcdef")
        storage = bytearray(3)

        assert right.read_into(storage) == 3
        assert storage == bytearray(b"abc")

    def test_read_into_raw_zero_on_peer_close(self, socket_pair):
        left, right = socket_pair
        left.close()

        assert right.read_into(bytearray(8)) == 0

    def test_read_bytes_zero_length_fails_without_consuming(self, socket_pair):
        left, right = socket_pair
        left.write(b"abcdef")

        with pytest.raises(ReadFailed):
            right.read_bytes(0)

        assert right.read_bytes(16) == b"abcdef"

    def test_read_into_zero_length_returns_zero(self, socket_pair):
        left, right = socket_pair
        left.write(b"abcdef")
        storage = bytearray(6)

        assert right.read_into(storage, 0) == 0
        assert storage == bytearray(6)
        assert right.read_bytes(16) == b"abcdef"

    def test_read_into_stops_at_max_len(self, socket_pair):
        left, right = socket_pair
        left.write(b"abcdef")
        storage = bytearray(6)

        assert right.read_into(storage, 2) == 2
        assert storage[:2] == b"ab"
        assert right.read_bytes(16) == b"cdef"

    def test_read_into_max_len_counts_bytes(self, socket_pair):
        left, right = socket_pair
        storage = array("i", [0, 0])
        payload = bytes(range(2 * storage.itemsize))
        left.write(payload)

        assert right.read_into(storage, storage.itemsize) == storage.itemsize
        assert right.read_bytes(64) == payload[storage.itemsize:]

    def test_write_length_counts_bytes(self, socket_pair):
        left, right = socket_pair
        items = array("i", [1, 2, 3])

        assert left.write(items, 2) == 2
        assert right.read_bytes(64) == items.tobytes()[:2]

    def test_read_into_raw_negative_on_error(self):
        sock = mock_socket()
        error = OSError(9, "Bad file descriptor")
        sock.recv_into.side_effect = error
        conn = Connection(sock)

        assert conn.read_into(bytearray(8)) == -1
        assert conn.last_error is error

    def test_write_negative_on_error(self):
        sock = mock_socket()
        sock.send.side_effect = BrokenPipeError("pipe")
        conn = Connection(sock)

        assert conn.write(b"abc") == -1
        assert isinstance(conn.last_error, BrokenPipeError)


@pytest.mark.unit
class TestPartialWrite:
    """write() does not loop; callers resend the remainder."""

    def test_large_write_is_partial_and_completes_by_resending(self, socket_pair):
        left, right = socket_pair
        payload = bytes(range(256)) * (8 * 1024 * 4)  # 8 MiB
        left.sock.setblocking(False)

        first = left.write(payload)
        assert 0 < first < len(payload)

        reader = PeerThread(drain, right, len(payload))
        reader.start()

        sent = first
        while sent < len(payload):
            select.select([], [left.sock], [], 5)
            n = left.write(memoryview(payload)[sent:])
            if n < 0:
                assert isinstance(left.last_error, BlockingIOError)
                continue
            sent += n

        received = reader.join_result()
        assert sent == len(payload)
        assert received == payload


# ===== CHUNK ACCUMULATION TESTS =====

@pytest.mark.unit
class TestReadChunk:
    """Test chunked accumulation into a doubling buffer."""

    def test_fresh_buffer_from_none(self, socket_pair):
        left, right = socket_pair
        left.write(b"hello")

        buffer = right.read_chunk(None)

        assert isinstance(buffer, AccumulationBuffer)
        assert buffer.data == b"hello"
        assert buffer.length == 5
        assert buffer.capacity == right.chunk_size
        assert right.last_read == 5

    def test_same_buffer_is_returned(self, socket_pair):
        left, right = socket_pair
        left.write(b"one")
        buffer = right.read_chunk()
        left.write(b"two")

        assert right.read_chunk(buffer) is buffer
        assert buffer.data == b"onetwo"

    def test_reads_at_most_chunk_size(self):
        config = TransportConfig(chunk_size=8)
        left_sock, right_sock = socket.socketpair()
        with Connection(left_sock, config) as left, Connection(right_sock, config) as right:
            left.write(b"0123456789abcdef")

            buffer = right.read_chunk()
            assert buffer.length == 8
            assert buffer.capacity == 16

            right.read_chunk(buffer)
            assert buffer.data == b"0123456789abcdef"
            assert buffer.capacity == 32

    def test_read_failure_leaves_buffer_unchanged(self, socket_pair):
        left, right = socket_pair
        left.write(b"partial")
        buffer = right.read_chunk()
        left.close()

        with pytest.raises(ReadFailed):
            right.read_chunk(buffer)

        assert buffer.data == b"partial"
        assert buffer.length == 7
        assert buffer.capacity == 512
        assert right.last_read == 0

    def test_allocation_failure_leaves_buffer_unchanged(self):
        config = TransportConfig(chunk_size=4, max_buffer_size=8)
        left_sock, right_sock = socket.socketpair()
        with Connection(left_sock, config) as left, Connection(right_sock, config) as right:
            left.write(b"abc")
            buffer = right.read_chunk()
            assert buffer.capacity == 4

            left.write(b"defg")
            buffer = right.read_chunk(buffer)
            assert buffer.data == b"abcdefg"
            assert buffer.capacity == 8

            left.write(b"hijk")
            with pytest.raises(AllocationFailed):
                right.read_chunk(buffer)

            assert buffer.data == b"abcdefg"
            assert buffer.length == 7
            assert buffer.capacity == 8


# ===== SENDFILE TESTS =====

@pytest.mark.unit
class TestSendFile:
    """Test kernel-assisted file transfer."""

    def test_send_file_from_offset_moves_position(self, socket_pair, tmp_path):
        left, right = socket_pair
        path = tmp_path / "payload.bin"
        path.write_bytes(b"0123456789")

        with open(path, "rb") as f:
            sent = left.send_file(f, 4, offset=2)
            assert sent == 4
            assert f.tell() == 6

        assert right.read_bytes(16) == b"2345"

    def test_send_file_uses_current_position(self, socket_pair, tmp_path):
        left, right = socket_pair
        path = tmp_path / "payload.bin"
        path.write_bytes(b"abcdefgh")

        with open(path, "rb") as f:
            f.seek(5)
            assert left.send_file(f, 100) == 3
            assert f.tell() == 8

        assert right.read_bytes(16) == b"fgh"

    def test_send_file_at_eof_sends_nothing(self, socket_pair, tmp_path):
        left, _right = socket_pair
        path = tmp_path / "empty.bin"
        path.write_bytes(b"")

        with open(path, "rb") as f:
            assert left.send_file(f, 10) == 0

    def test_send_file_error_returns_negative(self, tmp_path):
        path = tmp_path / "payload.bin"
        path.write_bytes(b"abc")
        sock = mock_socket()
        sock.fileno.return_value = -1
        conn = Connection(sock)

        with open(path, "rb") as f:
            assert conn.send_file(f, 3) == -1
            assert f.tell() == 0

        assert isinstance(conn.last_error, OSError)
