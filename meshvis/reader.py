"""
Snapshot stream reader for the client role.

Consumes push frames from the daemon until it closes the connection. A bad
envelope ends the stream for good; a bad record inside a well-formed
envelope is logged and skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

from .config import ALFRED_PUSH_DATA, ALFRED_TYPE_NAMES
from .codec import FrameHeader, decode_frame_header, decode_push
from .exceptions import ChannelError, FrameError, RecordError
from .topology import Snapshot, unpack_snapshot

logger = logging.getLogger(__name__)


class ReaderState(Enum):
    """Stream reader state."""
    AWAITING_HEADER = auto()  # Next read is an envelope header
    HAVE_HEADER = auto()      # Header read, payload pending
    IDLE = auto()             # Snapshot handed out, caller holds control
    CLOSED = auto()           # Peer closed cleanly
    FAILED = auto()           # Framing or channel lost, nothing more is read


@dataclass
class ReaderStats:
    """Counters for one read loop."""

    frames: int = 0
    snapshots: int = 0
    skipped: int = 0


class SnapshotStreamReader:
    """
    Forward-only iterator of Snapshots received on one channel.

    Iterating ends when the daemon closes the stream. FrameError and
    ChannelError are raised to the caller after the reader moves to FAILED.
    """

    def __init__(self, channel):
        self.channel = channel
        self.state = ReaderState.AWAITING_HEADER
        self.stats = ReaderStats()

    def __iter__(self) -> Iterator[Snapshot]:
        if self.state is not ReaderState.AWAITING_HEADER:
            raise RuntimeError(f"Reader cannot be restarted from state {self.state.name}")

        while True:
            try:
                header = decode_frame_header(self.channel)
            except (FrameError, ChannelError):
                self.state = ReaderState.FAILED
                raise
            if header is None:
                self.state = ReaderState.CLOSED
                logger.debug(
                    "Stream closed after %d frames (%d snapshots, %d skipped)",
                    self.stats.frames, self.stats.snapshots, self.stats.skipped,
                )
                return

            self.state = ReaderState.HAVE_HEADER
            self.stats.frames += 1

            try:
                snapshot = self._read_snapshot(header)
            except (FrameError, ChannelError):
                self.state = ReaderState.FAILED
                raise

            if snapshot is None:
                self.stats.skipped += 1
                self.state = ReaderState.AWAITING_HEADER
                continue

            self.stats.snapshots += 1
            self.state = ReaderState.IDLE
            yield snapshot
            self.state = ReaderState.AWAITING_HEADER

    def _read_snapshot(self, header: FrameHeader):
        if header.type != ALFRED_PUSH_DATA:
            name = ALFRED_TYPE_NAMES.get(header.type, "unknown")
            raise FrameError(f"Unexpected frame type {header.type} ({name})")

        try:
            payload = decode_push(self.channel, header)
            snapshot = unpack_snapshot(payload.data)
        except RecordError as e:
            logger.warning("Skipping bogus record: %s", e)
            return None

        if snapshot.packed_size != payload.length:
            logger.warning(
                "Skipping bogus record: declared %d bytes, contents need %d",
                payload.length, snapshot.packed_size,
            )
            return None

        if not snapshot.interfaces:
            logger.debug("Skipping record without interfaces")
            return None

        return snapshot
