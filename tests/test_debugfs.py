"""
Tests for meshvis.debugfs module.
"""

import logging

from meshvis.builder import NeighborRow
from meshvis.debugfs import DebugfsTables, parse_originators, parse_transtable_local


ORIGINATORS = """\
[B.A.T.M.A.N. adv 2013.4.0, MainIF/MAC: eth0/fe:fe:00:00:01:01 (bat0 BATMAN_IV)]
  Originator      last-seen (#/255)           Nexthop [outgoingIF]:   Potential nexthops ...
fe:fe:00:00:02:01    0.530s   (255) fe:fe:00:00:02:01 [      eth0]: fe:fe:00:00:02:01 (255)
fe:fe:00:00:03:01    0.270s   (212) fe:fe:00:00:02:01 [      eth0]: fe:fe:00:00:02:01 (212)
fe:fe:00:00:04:01    1.010s   ( 97) fe:fe:00:00:04:01 [      eth1]: fe:fe:00:00:04:01 ( 97)
broken line
fe:fe:00:00:05:01    1.010s   (abc) fe:fe:00:00:05:01 [      eth1]: fe:fe:00:00:05:01 ( 97)
"""

TRANSTABLE_LOCAL = """\
Locally retrieved addresses (from bat0) announced via TT (TTVN: 5):
 * 00:11:22:33:44:55 -1 [....]
 * fe:fe:00:00:01:01 -1 [.P..]
"""


class TestParsers:
    """Tests for the table parsers."""

    def test_parse_originators(self):
        """Test rows are split into originator, next hop, interface and quality."""
        rows = parse_originators(ORIGINATORS)
        assert rows == [
            NeighborRow("fe:fe:00:00:02:01", "fe:fe:00:00:02:01", "eth0", 255),
            NeighborRow("fe:fe:00:00:03:01", "fe:fe:00:00:02:01", "eth0", 212),
            NeighborRow("fe:fe:00:00:04:01", "fe:fe:00:00:04:01", "eth1", 97),
        ]

    def test_parse_originators_header_only(self):
        """Test a table with no originators gives no rows."""
        assert parse_originators("\n".join(ORIGINATORS.splitlines()[:2])) == []

    def test_parse_transtable_local(self):
        """Test the second column holds the client address."""
        assert parse_transtable_local(TRANSTABLE_LOCAL) == [
            "00:11:22:33:44:55",
            "fe:fe:00:00:01:01",
        ]

    def test_parse_transtable_empty(self):
        """Test an empty table gives no clients."""
        assert parse_transtable_local("") == []


class TestDebugfsTables:
    """Tests for DebugfsTables."""

    def test_reads_files(self, tmp_path):
        """Test both tables are read from the interface directory."""
        directory = tmp_path / "batman_adv" / "bat0"
        directory.mkdir(parents=True)
        (directory / "originators").write_text(ORIGINATORS)
        (directory / "transtable_local").write_text(TRANSTABLE_LOCAL)

        tables = DebugfsTables("bat0", str(tmp_path))
        assert len(tables.read_neighbor_table()) == 3
        assert len(tables.read_association_table()) == 2

    def test_missing_files(self, tmp_path, caplog):
        """Test missing tables read as empty and are logged."""
        tables = DebugfsTables("bat0", str(tmp_path))

        with caplog.at_level(logging.WARNING, logger="meshvis"):
            assert tables.read_neighbor_table() == []
            assert tables.read_association_table() == []

        assert "originators" in caplog.text
        assert "transtable_local" in caplog.text
