"""
Client role for meshvis.

Requests every published topology record from the daemon and renders them
in arrival order.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TextIO

from .codec import encode_request
from .config import VIS_PACKETTYPE, RuntimeConfig
from .connection import UnixChannel
from .reader import ReaderStats, SnapshotStreamReader
from .render import get_renderer

logger = logging.getLogger(__name__)


class VisClient:
    """
    One-shot topology fetcher.

    Args:
        config: Runtime configuration
        channel_factory: Builds an unconnected channel for a socket path
        out: Output stream for the rendered topology (stdout by default)
    """

    def __init__(
        self,
        config: RuntimeConfig,
        channel_factory: Callable[[str], UnixChannel] = UnixChannel,
        out: Optional[TextIO] = None,
    ):
        self.config = config
        self.channel_factory = channel_factory
        self.out = out
        self.stats: Optional[ReaderStats] = None

    def request(self):
        """
        Connect and send the request frame.

        Returns:
            The connected channel, now owned by the caller

        Raises:
            ChannelError: If connecting or writing fails
        """
        channel = self.channel_factory(self.config.unix_path)
        channel.connect()
        try:
            channel.write(encode_request(VIS_PACKETTYPE))
        except BaseException:
            channel.close()
            raise
        return channel

    def fetch(self) -> int:
        """
        Request, read and render the topology.

        Returns:
            Number of snapshots rendered

        Raises:
            ChannelError: Daemon unreachable or connection broken
            FrameError: The daemon's answer lost framing
        """
        renderer = get_renderer(self.config.output_format, self.out)
        channel = self.request()
        try:
            reader = SnapshotStreamReader(channel)
            self.stats = reader.stats
            count = renderer.render(reader)
        finally:
            channel.close()

        logger.debug(
            "Rendered %d snapshots from %d frames (%d skipped)",
            count, self.stats.frames, self.stats.skipped,
        )
        return count
