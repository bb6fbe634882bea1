"""
batman-adv debugfs tables for meshvis.

Parses the originator table (direct and indirect neighbors with their link
quality) and the local translation table (non-mesh clients).
"""

from __future__ import annotations

import logging
import os
import re
from typing import List, Optional

from .builder import NeighborRow
from .config import DEBUG_BATIF_DIR, DEBUGFS_ROOT, ORIGINATORS_FILE, TRANSTABLE_LOCAL_FILE

logger = logging.getLogger(__name__)

_ORIG_SPLIT = re.compile(r"[\t \[\]()]+")
_TT_SPLIT = re.compile(r"[\t ]+")

ORIGINATORS_HEADER_LINES = 2
TRANSTABLE_HEADER_LINES = 1


def _tokens(pattern: re.Pattern, line: str) -> List[str]:
    return [t for t in pattern.split(line) if t]


def parse_originators(text: str) -> List[NeighborRow]:
    """
    Parse an originators table.

    Row tokens: originator, last-seen, quality, next hop, outgoing interface.
    Rows with fewer tokens or a non-numeric quality are ignored.
    """
    rows = []
    for lnum, line in enumerate(text.splitlines()):
        if lnum < ORIGINATORS_HEADER_LINES or not line.strip():
            continue
        tokens = _tokens(_ORIG_SPLIT, line)
        if len(tokens) < 5:
            continue
        try:
            quality = int(tokens[2])
        except ValueError:
            logger.debug("Ignoring originator row with quality %r", tokens[2])
            continue
        rows.append(NeighborRow(tokens[0], tokens[3], tokens[4], quality))
    return rows


def parse_transtable_local(text: str) -> List[str]:
    """Parse a local translation table into client addresses (second column)."""
    clients = []
    for lnum, line in enumerate(text.splitlines()):
        if lnum < TRANSTABLE_HEADER_LINES:
            continue
        tokens = _tokens(_TT_SPLIT, line)
        if len(tokens) > 1:
            clients.append(tokens[1])
    return clients


class DebugfsTables:
    """
    Routing and association table collaborator backed by debugfs.

    Args:
        mesh_iface: batman-adv soft interface (e.g. bat0)
        debugfs_root: debugfs mount point
    """

    def __init__(self, mesh_iface: str, debugfs_root: str = DEBUGFS_ROOT):
        self.mesh_iface = mesh_iface
        self.debugfs_root = debugfs_root

    @property
    def directory(self) -> str:
        return os.path.join(self.debugfs_root, DEBUG_BATIF_DIR, self.mesh_iface)

    def _read(self, filename: str) -> Optional[str]:
        path = os.path.join(self.directory, filename)
        try:
            with open(path) as f:
                return f.read()
        except OSError as e:
            logger.warning("Can't read %s: %s", path, e)
            return None

    def read_neighbor_table(self) -> List[NeighborRow]:
        text = self._read(ORIGINATORS_FILE)
        return parse_originators(text) if text is not None else []

    def read_association_table(self) -> List[str]:
        text = self._read(TRANSTABLE_LOCAL_FILE)
        return parse_transtable_local(text) if text is not None else []
