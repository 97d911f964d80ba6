"""
Command-line tools for tcpsock.
"""

from .transfer_cli import TransferCLI, main

__all__ = ["TransferCLI", "main"]
