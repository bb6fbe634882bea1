"""
Server role for meshvis.

Every cycle: read the local mesh state, build a Snapshot, push it to the
daemon over a fresh connection, then sleep. Failures only cost one cycle.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from .builder import InterfaceRegistry, SnapshotBuilder
from .codec import encode_push
from .config import RuntimeConfig
from .connection import UnixChannel
from .debugfs import DebugfsTables
from .exceptions import ChannelError
from .interfaces import SysfsInterfaces
from .logging_setup import format_block
from .topology import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class ServerStats:
    """Publish cycle counters."""

    cycles: int = 0
    published: int = 0
    failed: int = 0


class VisServer:
    """
    Periodic topology publisher.

    Args:
        config: Runtime configuration
        interfaces: Interface discovery collaborator (sysfs by default)
        tables: Neighbor/client table collaborator (debugfs by default)
        channel_factory: Builds an unconnected channel for a socket path
        registry: Interface memo; one per server run
    """

    def __init__(
        self,
        config: RuntimeConfig,
        interfaces: Optional[SysfsInterfaces] = None,
        tables: Optional[DebugfsTables] = None,
        channel_factory: Callable[[str], UnixChannel] = UnixChannel,
        registry: Optional[InterfaceRegistry] = None,
    ):
        self.config = config
        self.interfaces = interfaces or SysfsInterfaces(config.interface, config.sys_root)
        self.tables = tables or DebugfsTables(config.interface, config.debugfs_root)
        self.registry = registry or InterfaceRegistry(self.interfaces.resolve_hardware_address)
        self.builder = SnapshotBuilder(self.registry)
        self.channel_factory = channel_factory
        self.stats = ServerStats()
        self._tx_id = 0

    def next_tx_id(self) -> int:
        self._tx_id = (self._tx_id + 1) & 0xFFFF
        return self._tx_id

    def build_snapshot(self) -> Snapshot:
        return self.builder.build(
            self.interfaces.list_interfaces(),
            self.tables.read_neighbor_table(),
            self.tables.read_association_table(),
        )

    def publish(self, snapshot: Snapshot) -> None:
        """
        Push one snapshot to the daemon.

        Raises:
            ChannelError: If connecting or writing fails
        """
        frame = encode_push(snapshot, self.next_tx_id())
        channel = self.channel_factory(self.config.unix_path)
        channel.connect()
        try:
            channel.write(frame)
        finally:
            channel.close()

    def publish_once(self) -> bool:
        """Run one cycle; returns True if the snapshot reached the daemon."""
        self.stats.cycles += 1
        snapshot = self.build_snapshot()
        try:
            self.publish(snapshot)
        except ChannelError as e:
            self.stats.failed += 1
            logger.warning("Publishing failed, retrying next cycle: %s", e)
            return False

        self.stats.published += 1
        logger.debug(format_block("PUBLISH", [
            f"tx_id      : {self._tx_id}",
            f"primary    : {snapshot.primary}",
            f"interfaces : {len(snapshot.interfaces)}",
            f"entries    : {len(snapshot.entries)}",
        ]))
        return True

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Publish until stop_event is set."""
        stop_event = stop_event or threading.Event()
        logger.info(
            "Publishing topology of %s to %s every %.1fs",
            self.config.interface, self.config.unix_path, self.config.update_interval,
        )
        while not stop_event.is_set():
            self.publish_once()
            stop_event.wait(self.config.update_interval)
        logger.info(
            "Server stopped after %d cycles (%d published, %d failed)",
            self.stats.cycles, self.stats.published, self.stats.failed,
        )
