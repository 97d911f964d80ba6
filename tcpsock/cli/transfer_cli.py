#!/usr/bin/env python3
"""
File Transfer CLI

Small command-line front end over the tcpsock transport, mostly useful for
trying a link by hand.

Commands:
- serve: listen on a port and stream a file to each client via sendfile
- fetch: connect and collect everything the peer sends until it closes
- send: connect and push a file via sendfile
"""

import sys
import argparse
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config import TransportConfig
from ..errors import TCPSocketError, ReadFailed
from ..transport import Connection, Listener, connect


class TransferCLI:
    """
    CLI for moving files over raw TCP.

    Settings come from TCPSOCK_* environment variables unless a config is
    passed in.
    """

    def __init__(self, config: Optional[TransportConfig] = None):
        """Initialize CLI."""
        self.config = config

    def _load_config(self) -> TransportConfig:
        if self.config is None:
            self.config = TransportConfig.from_env()
        return self.config

    def send_whole_file(self, conn: Connection, path: Path) -> int:
        """
        Push ``path`` through ``conn`` with repeated send_file calls.

        Returns:
            Total bytes sent

        Raises:
            OSError: a transfer call failed
        """
        size = path.stat().st_size
        total = 0

        with open(path, "rb") as f:
            while total < size:
                sent = conn.send_file(f, size - total)
                if sent < 0:
                    raise conn.last_error
                if sent == 0:
                    break
                total += sent

        return total

    def serve(self, args) -> int:
        """Serve a file to incoming clients."""
        path = Path(args.file)
        if not path.is_file():
            logger.error("❌ Not a file: {}", path)
            return 1

        config = self._load_config()

        with Listener(config) as listener:
            listener.listen(args.port, backlog=args.backlog)
            logger.info("🚀 Serving {} on port {}", path, listener.port)

            for _ in range(args.clients):
                with listener.accept() as conn:
                    try:
                        total = self.send_whole_file(conn, path)
                    except OSError as e:
                        logger.error("❌ Transfer failed: {}", e)
                        return 1
                    logger.info("✅ Sent {} bytes", total)

        return 0

    def fetch(self, args) -> int:
        """Receive everything a peer sends."""
        config = self._load_config()

        with connect(args.host, args.port, config=config) as conn:
            buffer = None
            while True:
                try:
                    buffer = conn.read_chunk(buffer)
                except ReadFailed as e:
                    if isinstance(e.__cause__, OSError):
                        logger.error("❌ Receive failed: {}", e.__cause__)
                        return 1
                    break

        received = buffer.view() if buffer is not None else b""

        if args.output:
            Path(args.output).write_bytes(received)
        else:
            sys.stdout.buffer.write(received)
            sys.stdout.buffer.flush()

        logger.info("✅ Received {} bytes", len(received))
        return 0

    def send(self, args) -> int:
        """Push a file to a listening peer."""
        path = Path(args.file)
        if not path.is_file():
            logger.error("❌ Not a file: {}", path)
            return 1

        config = self._load_config()

        with connect(args.host, args.port, config=config) as conn:
            try:
                total = self.send_whole_file(conn, path)
            except OSError as e:
                logger.error("❌ Transfer failed: {}", e)
                return 1

        logger.info("✅ Sent {} bytes to {}:{}", total, args.host, args.port)
        return 0

    def create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog="tcpsock",
            description="Raw TCP file transfer",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        parser.add_argument("--log-level", default="INFO", help="Log level")
        parser.add_argument("--log-file", help="Also write logs to this file")

        subparsers = parser.add_subparsers(dest="command", help="Commands")

        serve_parser = subparsers.add_parser("serve", help="Serve a file")
        serve_parser.add_argument("file", help="File to serve")
        serve_parser.add_argument("--port", type=int, default=7777, help="Listen port")
        serve_parser.add_argument("--backlog", type=int, default=None, help="Listen backlog")
        serve_parser.add_argument("--clients", type=int, default=1, help="Clients to serve before exiting")

        fetch_parser = subparsers.add_parser("fetch", help="Receive from a peer")
        fetch_parser.add_argument("host", help="Peer host")
        fetch_parser.add_argument("port", help="Peer port")
        fetch_parser.add_argument("-o", "--output", help="Output file (stdout if omitted)")

        send_parser = subparsers.add_parser("send", help="Send a file to a peer")
        send_parser.add_argument("host", help="Peer host")
        send_parser.add_argument("port", help="Peer port")
        send_parser.add_argument("file", help="File to send")

        return parser

    def configure_logging(self, args):
        logger.remove()
        logger.add(sys.stderr, level=args.log_level.upper())
        if args.log_file:
            logger.add(
                args.log_file,
                rotation="1 day",
                retention="30 days",
                level=args.log_level.upper()
            )

    def run(self, argv=None) -> int:
        """Run CLI (entry point)."""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        self.configure_logging(args)

        commands = {
            "serve": self.serve,
            "fetch": self.fetch,
            "send": self.send,
        }

        try:
            return commands[args.command](args)
        except TCPSocketError as e:
            logger.error("❌ {}", e)
            return 1


def main():
    """CLI entry point."""
    cli = TransferCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
