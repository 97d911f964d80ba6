"""
Transport Configuration

Validated settings shared by connections and listeners. Values can be given
explicitly or loaded from ``TCPSOCK_*`` environment variables.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator


DEFAULT_CHUNK_SIZE = 512  # Bytes per chunked receive
DEFAULT_READ_SIZE = 1024  # Default length for read_bytes()
DEFAULT_BACKLOG = 10  # Pending connection queue length


class TransportConfig(BaseModel):
    """Connection and listener settings."""

    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        gt=0,
        description="Receive granularity of read_chunk() and initial accumulation buffer capacity"
    )
    read_size: int = Field(
        default=DEFAULT_READ_SIZE,
        gt=0,
        description="Default maximum length for read_bytes()/read_into()"
    )
    backlog: int = Field(
        default=DEFAULT_BACKLOG,
        ge=0,
        description="Listen backlog used when listen() is called without one"
    )
    reuse_address: bool = Field(
        default=True,
        description="Set SO_REUSEADDR on listening sockets before bind"
    )
    max_buffer_size: Optional[int] = Field(
        default=None,
        gt=0,
        description="Upper bound on accumulation buffer capacity (None = unbounded)"
    )

    @model_validator(mode="after")
    def check_buffer_limit(self) -> "TransportConfig":
        """A buffer ceiling must leave room for the first chunk."""
        if self.max_buffer_size is not None and self.max_buffer_size < self.chunk_size:
            raise ValueError(
                f"max_buffer_size ({self.max_buffer_size}) must be >= chunk_size ({self.chunk_size})"
            )
        return self

    @classmethod
    def from_env(cls) -> "TransportConfig":
        """
        Build a config from TCPSOCK_* environment variables.

        Numeric values are coerced and validated by pydantic, so a malformed
        variable raises ValidationError.
        """
        return cls(
            chunk_size=os.getenv("TCPSOCK_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            read_size=os.getenv("TCPSOCK_READ_SIZE", DEFAULT_READ_SIZE),
            backlog=os.getenv("TCPSOCK_BACKLOG", DEFAULT_BACKLOG),
            reuse_address=os.getenv("TCPSOCK_REUSE_ADDRESS", "true").lower() == "true",
            max_buffer_size=os.getenv("TCPSOCK_MAX_BUFFER_SIZE") or None,
        )
