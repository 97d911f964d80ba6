"""
TCP Connection

Byte-level I/O over one established stream socket.

Features:
- Allocating reads (read_bytes) and caller-buffer reads (read_into)
- Single-call writes that may be partial (caller loops if needed)
- Kernel-assisted file transfer (os.sendfile)
- Chunked message accumulation into a doubling AccumulationBuffer

All calls block the calling thread. A Connection must not be shared between
threads without external locking.
"""

import os
import socket
from typing import BinaryIO, Optional
import logging

from ..config import TransportConfig
from ..errors import ReadFailed
from .buffer import AccumulationBuffer

logger = logging.getLogger(__name__)


class Connection:
    """
    Owns one connected stream socket.

    The socket is closed exactly once, by close() or by leaving a ``with``
    block. Instances are normally produced by connect() or Listener.accept().
    """

    def __init__(self, sock: socket.socket, config: Optional[TransportConfig] = None):
        """
        Wrap a connected socket.

        Args:
            sock: Connected socket; ownership passes to the Connection
            config: Transport settings (defaults if omitted)
        """
        config = config or TransportConfig()

        self.sock = sock
        self.chunk_size = config.chunk_size
        self.read_size = config.read_size
        self.max_buffer_size = config.max_buffer_size

        # Byte count of the most recent read_chunk() receive
        self.last_read = 0
        # OSError behind the latest -1 from a raw primitive
        self.last_error: Optional[OSError] = None

        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        return self.sock.fileno()

    def read_bytes(self, max_len: Optional[int] = None) -> bytes:
        """
        Receive up to ``max_len`` bytes in a single call.

        Returns:
            Received bytes, possibly fewer than requested

        Raises:
            ReadFailed: nothing was received (peer closed or OS error)
        """
        if max_len is None:
            max_len = self.read_size

        # recv(0) receives nothing, which is a failed read
        if max_len < 1:
            raise ReadFailed("Zero-length read requested")

        try:
            data = self.sock.recv(max_len)
        except OSError as e:
            raise ReadFailed(f"Receive failed: {e}") from e

        if len(data) < 1:
            raise ReadFailed("Peer closed the connection")

        return data

    def read_into(self, buffer, max_len: Optional[int] = None) -> int:
        """
        Receive directly into caller-supplied writable storage.

        The result is not interpreted: byte count on success, 0 when the
        peer has closed, -1 on an OS error (see ``last_error``). Lengths are
        in bytes whatever the item size of ``buffer``.
        """
        view = memoryview(buffer).cast("B")
        if max_len is None:
            max_len = len(view)

        # recv_into() treats 0 as "whole buffer"
        if max_len < 1:
            return 0

        try:
            return self.sock.recv_into(view[:max_len], max_len)
        except OSError as e:
            self.last_error = e
            return -1

    def write(self, data, length: Optional[int] = None) -> int:
        """
        Send up to ``length`` bytes of ``data`` with one send() call.

        ``length`` counts bytes, also for buffers with wider items.

        Returns:
            Bytes actually queued (may be fewer than requested) or -1 on error
        """
        view = memoryview(data).cast("B")
        if length is not None:
            view = view[:length]

        try:
            return self.sock.send(view)
        except OSError as e:
            self.last_error = e
            return -1

    def send_file(self, file: BinaryIO, count: int, offset: Optional[int] = None) -> int:
        """
        Copy up to ``count`` bytes of ``file`` into the connection in kernel space.

        Transfer starts at ``offset`` (default: the file's current position).
        On success the file position is moved to ``offset + sent``.

        Returns:
            Bytes sent (may be fewer than count) or -1 on error
        """
        if offset is None:
            offset = file.tell()

        try:
            if hasattr(os, "sendfile"):
                sent = os.sendfile(self.sock.fileno(), file.fileno(), offset, count)
            else:
                file.seek(offset)
                sent = self.sock.send(file.read(count))
        except OSError as e:
            self.last_error = e
            return -1

        file.seek(offset + sent)
        return sent

    def read_chunk(self, buffer: Optional[AccumulationBuffer] = None) -> AccumulationBuffer:
        """
        Receive one chunk and append it to an accumulation buffer.

        Passing None starts a new buffer of ``chunk_size`` capacity. The same
        buffer is returned (grown in place when needed) and must be passed
        back on the next call. Deciding when a message is complete is up to
        the caller.

        Raises:
            ReadFailed: nothing received; buffer unchanged
            AllocationFailed: buffer could not grow; buffer unchanged and the
                received chunk is dropped
        """
        if buffer is None:
            buffer = AccumulationBuffer(self.chunk_size, max_capacity=self.max_buffer_size)
            self.last_read = 0

        try:
            chunk = self.read_bytes(self.chunk_size)
        except ReadFailed:
            self.last_read = 0
            raise

        self.last_read = len(chunk)
        buffer.append(chunk)

        return buffer

    def close(self):
        """Close the socket (no-op when already closed)."""
        if self._closed:
            return

        self._closed = True
        self.sock.close()
        logger.debug("Connection closed")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"fd={self.sock.fileno()}"
        return f"Connection({state}, chunk_size={self.chunk_size})"
