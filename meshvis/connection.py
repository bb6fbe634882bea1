"""
Daemon socket channel for meshvis.

A thin blocking byte-stream wrapper over the daemon's Unix socket. Each
instance is owned by exactly one role for one connect/use/close cycle.
"""

from __future__ import annotations

import logging
import socket
from enum import Enum, auto
from typing import Optional

from .exceptions import ChannelError, ConnectError, ShortReadError, ShortWriteError

logger = logging.getLogger(__name__)


class ChannelState(Enum):
    """Channel lifecycle."""
    NEW = auto()
    OPEN = auto()
    CLOSED = auto()


class UnixChannel:
    """
    Blocking stream connection to the daemon.

    No timeouts are applied; a hung daemon blocks the caller.
    """

    def __init__(self, path: str):
        self.path = path
        self.state = ChannelState.NEW
        self._sock: Optional[socket.socket] = None

    def connect(self) -> "UnixChannel":
        """
        Connect to the daemon socket.

        Raises:
            ConnectError: If the socket can't be created or reached
        """
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as e:
            self.state = ChannelState.CLOSED
            raise ConnectError(self.path, f"can't create unix socket: {e}") from e

        try:
            sock.connect(self.path)
        except OSError as e:
            sock.close()
            self.state = ChannelState.CLOSED
            raise ConnectError(self.path, str(e)) from e

        self._sock = sock
        self.state = ChannelState.OPEN
        logger.debug("Connected to %s", self.path)
        return self

    def write(self, data: bytes) -> int:
        """
        Write the whole buffer.

        Raises:
            ShortWriteError: If the daemon stops accepting data
        """
        sock = self._require_open()
        try:
            sock.sendall(data)
        except OSError as e:
            raise ShortWriteError(f"Write of {len(data)} bytes to {self.path} failed: {e}") from e
        return len(data)

    def read(self, size: int) -> bytes:
        """
        Read at most ``size`` bytes; b"" means the daemon closed the stream.

        Raises:
            ShortReadError: On socket errors
        """
        sock = self._require_open()
        try:
            return sock.recv(size)
        except OSError as e:
            raise ShortReadError(f"Read from {self.path} failed: {e}") from e

    def close(self) -> None:
        """Close the socket; safe to call more than once."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.debug("Closed %s", self.path)
        self.state = ChannelState.CLOSED

    def _require_open(self) -> socket.socket:
        if self._sock is None:
            raise ChannelError(f"Channel to {self.path} is not open")
        return self._sock

    def __enter__(self) -> "UnixChannel":
        if self.state is not ChannelState.OPEN:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
