"""
Snapshot builder for the server role.

Merges the local interface list with the neighbor and client tables into a
capacity-capped Snapshot, once per publish cycle.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

from .config import CLIENT_INDEX, MAX_ENTRIES, MAX_INTERFACES, MAX_QUALITY
from .exceptions import InterfaceError, InvalidMACError
from .topology import Entry, HardwareAddress, InterfaceRecord, Snapshot

logger = logging.getLogger(__name__)

Resolver = Callable[[str], HardwareAddress]


class NeighborRow(NamedTuple):
    """One originator table row as reported by the kernel."""

    originator: str
    neighbor: str
    interface: str
    quality: int


class InterfaceRegistry:
    """
    Interface name -> (index, address) memo.

    Lives for one server run. The first interface ever resolved gets index 0
    and stays the primary; indices only grow and entries are never removed.
    Failed lookups are not remembered, so they are retried next time.
    Once ``capacity`` interfaces are registered, new names are no longer
    resolved.
    """

    def __init__(self, resolver: Resolver, capacity: int = MAX_INTERFACES):
        self._resolver = resolver
        self.capacity = capacity
        self._index: Dict[str, int] = {}
        self._addresses: List[HardwareAddress] = []

    def resolve(self, name: str) -> Optional[Tuple[int, HardwareAddress]]:
        """Return (index, address) for an interface, resolving it on first use."""
        if not name:
            return None
        index = self._index.get(name)
        if index is not None:
            return index, self._addresses[index]

        if self.full:
            logger.debug("Interface limit %d reached, not registering %s", self.capacity, name)
            return None

        try:
            address = self._resolver(name)
        except (InterfaceError, InvalidMACError) as e:
            logger.warning("Can't resolve interface %s: %s", name, e)
            return None

        index = len(self._addresses)
        self._index[name] = index
        self._addresses.append(address)
        logger.debug("Registered interface %s as index %d (%s)", name, index, address)
        return index, address

    @property
    def full(self) -> bool:
        return len(self._addresses) >= self.capacity

    def index_of(self, name: str) -> Optional[int]:
        resolved = self.resolve(name)
        return resolved[0] if resolved is not None else None

    def addresses(self) -> List[HardwareAddress]:
        """Addresses in index order."""
        return list(self._addresses)

    def __len__(self) -> int:
        return len(self._addresses)

    def __contains__(self, name: str) -> bool:
        return name in self._index


class SnapshotBuilder:
    """Builds one Snapshot per publish cycle."""

    def __init__(self, registry: InterfaceRegistry):
        self.registry = registry

    def build(
        self,
        interface_names: Iterable[str],
        neighbor_rows: Iterable[NeighborRow],
        client_addresses: Iterable[Union[str, HardwareAddress]],
    ) -> Snapshot:
        for name in interface_names:
            if self.registry.full:
                break
            self.registry.resolve(name)

        entries: List[Entry] = []
        dropped = 0

        for row in neighbor_rows:
            if len(entries) >= MAX_ENTRIES:
                break
            entry = self._neighbor_entry(row)
            if entry is None:
                dropped += 1
                continue
            entries.append(entry)

        for client in client_addresses:
            if len(entries) >= MAX_ENTRIES:
                break
            address = _to_address(client)
            if address is None:
                dropped += 1
                continue
            entries.append(Entry(address, CLIENT_INDEX, 0))

        # Neighbor rows may have registered new interfaces, so read them last
        interfaces = [InterfaceRecord(a) for a in self.registry.addresses()[:MAX_INTERFACES]]

        logger.debug(
            "Built snapshot: %d interfaces, %d entries, %d rows dropped",
            len(interfaces), len(entries), dropped,
        )
        return Snapshot(tuple(interfaces), tuple(entries))

    def _neighbor_entry(self, row: NeighborRow) -> Optional[Entry]:
        if not 1 <= row.quality <= MAX_QUALITY:
            return None

        # Only direct neighbors: the originator is its own next hop
        address = _to_address(row.originator)
        if address is None or address != _to_address(row.neighbor):
            return None

        index = self.registry.index_of(row.interface)
        if index is None or index >= MAX_INTERFACES:
            return None
        return Entry(address, index, row.quality)


def _to_address(value: Union[str, HardwareAddress]) -> Optional[HardwareAddress]:
    if isinstance(value, HardwareAddress):
        return value
    try:
        return HardwareAddress.parse(value)
    except InvalidMACError:
        logger.debug("Skipping malformed address %r", value)
        return None
