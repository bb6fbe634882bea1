"""
Tests for meshvis.builder module.
"""

import pytest

from meshvis.builder import InterfaceRegistry, NeighborRow, SnapshotBuilder
from meshvis.config import CLIENT_INDEX, MAX_ENTRIES, MAX_INTERFACES
from meshvis.exceptions import InterfaceError
from meshvis.topology import HardwareAddress


class FakeResolver:
    """Resolver mapping names like 'eth7' to 02:00:00:00:00:07 and counting calls."""

    def __init__(self, missing=()):
        self.calls = []
        self.missing = set(missing)

    def __call__(self, name):
        self.calls.append(name)
        if name in self.missing:
            raise InterfaceError(f"no such interface {name}")
        n = int(name[3:])
        return HardwareAddress(bytes([2, 0, 0, 0, n // 256, n % 256]))


def addr(n):
    return "04:00:00:00:%02x:%02x" % (n // 256, n % 256)


@pytest.fixture
def resolver():
    return FakeResolver(missing={"eth99"})


@pytest.fixture
def builder(resolver):
    return SnapshotBuilder(InterfaceRegistry(resolver))


class TestInterfaceRegistry:
    """Tests for InterfaceRegistry."""

    def test_resolves_once(self, resolver):
        """Test the resolver is consulted once per name."""
        registry = InterfaceRegistry(resolver)

        assert registry.index_of("eth1") == 0
        assert registry.index_of("eth1") == 0
        assert registry.index_of("eth2") == 1
        assert resolver.calls == ["eth1", "eth2"]

    def test_failure_not_memoized(self, resolver):
        """Test unresolvable names are retried on the next lookup."""
        registry = InterfaceRegistry(resolver)

        assert registry.resolve("eth99") is None
        assert registry.resolve("eth99") is None
        assert resolver.calls == ["eth99", "eth99"]
        assert "eth99" not in registry
        assert len(registry) == 0

    def test_empty_name(self, resolver):
        """Test an empty name never reaches the resolver."""
        assert InterfaceRegistry(resolver).resolve("") is None
        assert resolver.calls == []

    def test_capacity(self, resolver):
        """Test a full registry refuses new names but still answers known ones."""
        registry = InterfaceRegistry(resolver, capacity=2)
        registry.resolve("eth1")
        registry.resolve("eth2")

        assert registry.full
        assert registry.resolve("eth3") is None
        assert registry.index_of("eth2") == 1
        assert resolver.calls == ["eth1", "eth2"]

    def test_addresses_in_index_order(self, resolver):
        """Test addresses come back in registration order."""
        registry = InterfaceRegistry(resolver)
        registry.resolve("eth5")
        registry.resolve("eth3")
        assert [str(a) for a in registry.addresses()] == ["02:00:00:00:00:05", "02:00:00:00:00:03"]


class TestSnapshotBuilder:
    """Tests for SnapshotBuilder."""

    def test_direct_neighbors_only(self, builder):
        """Test rows whose next hop differs from the originator are dropped."""
        rows = [
            NeighborRow(addr(1), addr(1), "eth1", 200),
            NeighborRow(addr(2), addr(1), "eth1", 150),
        ]
        snapshot = builder.build(["eth1"], rows, [])

        assert len(snapshot.entries) == 1
        entry = snapshot.entries[0]
        assert str(entry.address) == addr(1)
        assert entry.source_interface_index == 0
        assert entry.quality == 200

    def test_direct_neighbor_case_insensitive(self, builder):
        """Test originator and next hop compare as addresses, not strings."""
        rows = [NeighborRow("AA:00:00:00:00:01", "aa:00:00:00:00:01", "eth1", 10)]
        assert len(builder.build(["eth1"], rows, []).entries) == 1

    @pytest.mark.parametrize("quality", [0, -1, 256, 1000])
    def test_quality_out_of_range_rejected(self, builder, quality):
        """Test qualities outside 1..255 are rejected, not clamped."""
        rows = [NeighborRow(addr(1), addr(1), "eth1", quality)]
        assert builder.build(["eth1"], rows, []).entries == ()

    @pytest.mark.parametrize("quality", [1, 255])
    def test_quality_bounds_accepted(self, builder, quality):
        """Test the quality bounds are inclusive."""
        rows = [NeighborRow(addr(1), addr(1), "eth1", quality)]
        assert builder.build(["eth1"], rows, []).entries[0].quality == quality

    def test_unresolvable_interface_skipped(self, builder):
        """Test rows on interfaces without an address are skipped."""
        rows = [
            NeighborRow(addr(1), addr(1), "eth99", 200),
            NeighborRow(addr(2), addr(2), "eth1", 200),
        ]
        snapshot = builder.build(["eth1"], rows, [])
        assert [str(e.address) for e in snapshot.entries] == [addr(2)]

    def test_malformed_address_skipped(self, builder):
        """Test rows and clients with unparsable addresses are skipped."""
        rows = [NeighborRow("garbage", "garbage", "eth1", 200)]
        snapshot = builder.build(["eth1"], rows, ["not-a-mac", addr(3)])
        assert [str(e.address) for e in snapshot.entries] == [addr(3)]

    def test_neighbor_registers_new_interface(self, builder):
        """Test an outgoing interface not seen in discovery is still indexed."""
        rows = [NeighborRow(addr(1), addr(1), "eth2", 100)]
        snapshot = builder.build(["eth1"], rows, [])

        assert len(snapshot.interfaces) == 2
        assert snapshot.entries[0].source_interface_index == 1

    def test_clients_use_sentinel(self, builder):
        """Test client entries carry the sentinel index and zero quality."""
        snapshot = builder.build(["eth1"], [], [addr(7), HardwareAddress.parse(addr(8))])

        assert len(snapshot.entries) == 2
        for entry in snapshot.entries:
            assert entry.source_interface_index == CLIENT_INDEX
            assert entry.quality == 0
            assert entry.is_client

    def test_neighbors_before_clients(self, builder):
        """Test entry order: neighbors first, then clients."""
        rows = [NeighborRow(addr(1), addr(1), "eth1", 100)]
        snapshot = builder.build(["eth1"], rows, [addr(2)])
        assert [e.is_client for e in snapshot.entries] == [False, True]

    def test_interface_cap(self):
        """Test 300 interfaces are truncated to 254 keeping the first resolved."""
        resolver = FakeResolver()
        builder = SnapshotBuilder(InterfaceRegistry(resolver))
        names = [f"eth{i}" for i in range(300)]
        snapshot = builder.build(names, [], [])

        assert len(snapshot.interfaces) == MAX_INTERFACES
        assert str(snapshot.primary) == "02:00:00:00:00:00"
        assert str(snapshot.interfaces[-1].address) == "02:00:00:00:00:fd"
        assert len(resolver.calls) == MAX_INTERFACES

    def test_interface_cap_skips_unresolvable(self, resolver):
        """Test a failed lookup doesn't use up a slot below the cap."""
        builder = SnapshotBuilder(InterfaceRegistry(resolver))
        names = [f"eth{i}" for i in range(300)]
        snapshot = builder.build(names, [], [])

        assert len(snapshot.interfaces) == MAX_INTERFACES
        assert str(snapshot.interfaces[-1].address) == "02:00:00:00:00:fe"

    def test_full_registry_stops_resolving(self):
        """Test names beyond the cap never reach the resolver across cycles."""
        resolver = FakeResolver()
        registry = InterfaceRegistry(resolver)
        builder = SnapshotBuilder(registry)
        names = [f"eth{i}" for i in range(300)]
        builder.build(names, [], [])
        builder.build(names, [NeighborRow(addr(1), addr(1), "eth280", 100)], [])

        assert len(registry) == MAX_INTERFACES
        assert len(resolver.calls) == MAX_INTERFACES
        assert "eth280" not in registry

    def test_neighbor_on_truncated_interface_dropped(self, resolver):
        """Test entries can't point at an interface beyond the cap."""
        builder = SnapshotBuilder(InterfaceRegistry(resolver))
        names = [f"eth{i}" for i in range(300)]
        rows = [NeighborRow(addr(1), addr(1), "eth280", 100)]
        snapshot = builder.build(names, rows, [])
        assert snapshot.entries == ()

    def test_entry_cap(self, builder):
        """Test neighbors and clients share the 255 entry cap."""
        rows = [NeighborRow(addr(i), addr(i), "eth1", 100) for i in range(200)]
        clients = [addr(1000 + i) for i in range(100)]
        snapshot = builder.build(["eth1"], rows, clients)

        assert len(snapshot.entries) == MAX_ENTRIES
        assert sum(1 for e in snapshot.entries if e.is_client) == MAX_ENTRIES - 200

    def test_primary_stable_across_cycles(self, resolver):
        """Test the first interface ever resolved stays primary."""
        builder = SnapshotBuilder(InterfaceRegistry(resolver))
        first = builder.build(["eth4", "eth2"], [], [])
        second = builder.build(["eth2", "eth9"], [], [])

        assert first.primary == second.primary
        assert str(second.primary) == "02:00:00:00:00:04"
        assert len(second.interfaces) == 3
        assert resolver.calls == ["eth4", "eth2", "eth9"]

    def test_empty_inputs(self, builder):
        """Test nothing discovered gives an empty snapshot."""
        snapshot = builder.build([], [], [])
        assert snapshot.interfaces == ()
        assert snapshot.entries == ()
