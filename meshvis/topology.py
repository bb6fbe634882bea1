"""
Topology snapshot model for meshvis.

A Snapshot is what one mesh node publishes per cycle: the hardware
addresses of its own interfaces (the first one is the primary) followed by
its neighbor and client entries.

Packed layout (all fields single bytes or raw addresses):

    IFACE_N(1) + IFACE_N * ADDR(6) + ENTRIES_N(1) + ENTRIES_N * (ADDR(6) + IFINDEX(1) + QUAL(1))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from scapy.utils import mac2str, str2mac

from .config import (
    CLIENT_INDEX,
    CLIENT_LABEL,
    ENTRY_LEN,
    HWADDR_LEN,
    MAX_ENTRIES,
    MAX_INTERFACES,
    MAX_QUALITY,
)
from .exceptions import EncodeOverflowError, InvalidMACError, RecordError

_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}(:[0-9A-Fa-f]{2}){5}$")


@dataclass(frozen=True)
class HardwareAddress:
    """Six-byte link layer address."""

    raw: bytes

    def __post_init__(self):
        if not isinstance(self.raw, (bytes, bytearray)) or len(self.raw) != HWADDR_LEN:
            raise InvalidMACError(self.raw)
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def parse(cls, text: str) -> "HardwareAddress":
        """Parse colon separated hex (either case)."""
        if not isinstance(text, str) or not _MAC_RE.match(text.strip()):
            raise InvalidMACError(text)
        return cls(mac2str(text.strip().lower()))

    def __str__(self) -> str:
        return str2mac(self.raw)


@dataclass(frozen=True)
class InterfaceRecord:
    """One local interface of the publishing node."""

    address: HardwareAddress


@dataclass(frozen=True)
class Entry:
    """
    A neighbor or client record.

    Client entries carry CLIENT_INDEX as source_interface_index and are
    reachable via the primary interface; quality is meaningless for them.
    Neighbor entries name the local interface they were seen on and a raw
    link quality where smaller is better.
    """

    address: HardwareAddress
    source_interface_index: int
    quality: int = 0

    @property
    def is_client(self) -> bool:
        return self.source_interface_index == CLIENT_INDEX

    @property
    def metric(self) -> float:
        """Link cost derived from the raw quality (255 is best, 1.0)."""
        return float(MAX_QUALITY) / self.quality

    @property
    def label(self) -> str:
        if self.is_client:
            return CLIENT_LABEL
        return f"{self.metric:.3f}"


@dataclass(frozen=True)
class Snapshot:
    """One node's published topology."""

    interfaces: Tuple[InterfaceRecord, ...] = ()
    entries: Tuple[Entry, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "interfaces", tuple(self.interfaces))
        object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def primary(self) -> Optional[HardwareAddress]:
        if not self.interfaces:
            return None
        return self.interfaces[0].address

    @property
    def secondaries(self) -> Tuple[HardwareAddress, ...]:
        return tuple(iface.address for iface in self.interfaces[1:])

    @property
    def packed_size(self) -> int:
        return snapshot_size(len(self.interfaces), len(self.entries))

    def neighbors(self) -> Iterable[Entry]:
        return (e for e in self.entries if not e.is_client)

    def clients(self) -> Iterable[Entry]:
        return (e for e in self.entries if e.is_client)

    def interface_address(self, index: int) -> Optional[HardwareAddress]:
        """Address of interface ``index`` or None if out of range."""
        if 0 <= index < len(self.interfaces):
            return self.interfaces[index].address
        return None


def snapshot_size(iface_n: int, entries_n: int) -> int:
    """Exact packed size of a snapshot with the given counts."""
    return 1 + HWADDR_LEN * iface_n + 1 + ENTRY_LEN * entries_n


def pack_snapshot(snapshot: Snapshot) -> bytes:
    """
    Serialize a snapshot.

    Raises:
        EncodeOverflowError: If the snapshot exceeds the wire capacity
    """
    if len(snapshot.interfaces) > MAX_INTERFACES:
        raise EncodeOverflowError("interface count", len(snapshot.interfaces), MAX_INTERFACES)
    if len(snapshot.entries) > MAX_ENTRIES:
        raise EncodeOverflowError("entry count", len(snapshot.entries), MAX_ENTRIES)

    out = bytearray()
    out.append(len(snapshot.interfaces))
    for iface in snapshot.interfaces:
        out += iface.address.raw
    out.append(len(snapshot.entries))
    for entry in snapshot.entries:
        if not 0 <= entry.source_interface_index <= 0xFF:
            raise EncodeOverflowError("interface index", entry.source_interface_index, 0xFF)
        if not 0 <= entry.quality <= MAX_QUALITY:
            raise EncodeOverflowError("quality", entry.quality, MAX_QUALITY)
        out += entry.address.raw
        out.append(entry.source_interface_index)
        out.append(entry.quality)
    return bytes(out)


def unpack_snapshot(data: bytes) -> Snapshot:
    """
    Parse a packed snapshot.

    Every count is checked against the remaining buffer before any slice is
    taken. Entries whose interface index is out of range are kept as-is;
    consumers drop them individually.

    Raises:
        RecordError: If the buffer is truncated
    """
    if len(data) < 1:
        raise RecordError("Snapshot too short for interface count")

    iface_n = data[0]
    offset = 1
    need = HWADDR_LEN * iface_n + 1
    if len(data) - offset < need:
        raise RecordError(
            f"Snapshot truncated: {iface_n} interfaces need {need} bytes, "
            f"{len(data) - offset} left"
        )

    interfaces = []
    for _ in range(iface_n):
        interfaces.append(InterfaceRecord(HardwareAddress(data[offset : offset + HWADDR_LEN])))
        offset += HWADDR_LEN

    entries_n = data[offset]
    offset += 1
    need = ENTRY_LEN * entries_n
    if len(data) - offset < need:
        raise RecordError(
            f"Snapshot truncated: {entries_n} entries need {need} bytes, "
            f"{len(data) - offset} left"
        )

    entries = []
    for _ in range(entries_n):
        address = HardwareAddress(data[offset : offset + HWADDR_LEN])
        ifindex = data[offset + HWADDR_LEN]
        quality = data[offset + HWADDR_LEN + 1]
        entries.append(Entry(address, ifindex, quality))
        offset += ENTRY_LEN

    return Snapshot(tuple(interfaces), tuple(entries))
