"""
Topology renderers for meshvis.

Every renderer consumes the same stream of Snapshots through four hooks:
preamble(), interfaces(snapshot), entries(snapshot) and postamble().
The variant is picked once from the output format.
"""

from __future__ import annotations

import json
import logging
import sys
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, TextIO, Tuple, Type, Union

from . import __version__
from .config import JSONDOC_ALGORITHM, NETJSON_METRIC
from .topology import Entry, HardwareAddress, Snapshot

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    """Supported output grammars."""
    DOT = "dot"
    JSON = "json"
    JSONDOC = "jsondoc"
    NETJSON = "netjson"


class Renderer:
    """
    Base renderer.

    Subclasses override the four hooks; render() drives them over a
    sequence of snapshots.
    """

    format: OutputFormat

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out if out is not None else sys.stdout

    def preamble(self) -> None:
        pass

    def interfaces(self, snapshot: Snapshot) -> None:
        raise NotImplementedError

    def entries(self, snapshot: Snapshot) -> None:
        raise NotImplementedError

    def postamble(self) -> None:
        pass

    def render(self, snapshots: Iterable[Snapshot]) -> int:
        """
        Render every snapshot; returns how many were rendered.

        If the snapshot source raises, the postamble is still written so the
        partial output stays well-formed, and the error propagates.
        """
        count = 0
        self.preamble()
        try:
            for snapshot in snapshots:
                if not snapshot.interfaces:
                    logger.debug("Not rendering snapshot without interfaces")
                    continue
                self.interfaces(snapshot)
                if snapshot.entries:
                    self.entries(snapshot)
                count += 1
        finally:
            self.postamble()
        return count

    def _emit(self, line: str) -> None:
        print(line, file=self.out)

    @staticmethod
    def edges(snapshot: Snapshot) -> Iterator[Tuple[HardwareAddress, Entry]]:
        """
        Yield (router, entry) for every renderable entry, in order.

        Clients hang off the primary interface. Neighbors with an unknown
        interface index or a zero quality are logged and left out.
        """
        primary = snapshot.primary
        for entry in snapshot.entries:
            if entry.is_client:
                yield primary, entry
                continue
            router = snapshot.interface_address(entry.source_interface_index)
            if router is None:
                logger.error(
                    "Bad interface index %d for neighbor %s (node %s has %d interfaces)",
                    entry.source_interface_index, entry.address, primary,
                    len(snapshot.interfaces),
                )
                continue
            if entry.quality == 0:
                logger.error("Quality 0 for neighbor %s of node %s", entry.address, primary)
                continue
            yield router, entry


class DotRenderer(Renderer):
    """Graphviz digraph with one cluster per node."""

    format = OutputFormat.DOT

    def preamble(self) -> None:
        self._emit("digraph {")

    def interfaces(self, snapshot: Snapshot) -> None:
        self._emit(f'\tsubgraph "cluster_{snapshot.primary}" {{')
        for i, iface in enumerate(snapshot.interfaces):
            self._emit(f'\t\t"{iface.address}"' + (" [peripheries=2]" if i else ""))
        self._emit("\t}")

    def entries(self, snapshot: Snapshot) -> None:
        for router, entry in self.edges(snapshot):
            self._emit(f'\t"{router}" -> "{entry.address}" [label="{entry.label}"]')

    def postamble(self) -> None:
        self._emit("}")


class JsonRenderer(Renderer):
    """One free-standing JSON object per line, no enclosing document."""

    format = OutputFormat.JSON

    def _record(self, record: Dict[str, Any]) -> None:
        self._emit(json.dumps(record))

    def interfaces(self, snapshot: Snapshot) -> None:
        primary = str(snapshot.primary)
        self._record({"primary": primary})
        for secondary in snapshot.secondaries:
            self._record({"secondary": str(secondary), "of": primary})

    def entries(self, snapshot: Snapshot) -> None:
        for router, entry in self.edges(snapshot):
            if entry.is_client:
                self._record({"router": str(router), "gateway": str(entry.address), "label": entry.label})
            else:
                self._record({"router": str(router), "neighbor": str(entry.address), "label": entry.label})


class _DocumentRenderer(Renderer):
    """Collects one element per snapshot and writes the document at the end."""

    def preamble(self) -> None:
        self._nodes: List[Dict[str, Any]] = []
        self._current: Optional[Dict[str, Any]] = None

    def interfaces(self, snapshot: Snapshot) -> None:
        self._current = self.node(snapshot)
        self._nodes.append(self._current)

    def entries(self, snapshot: Snapshot) -> None:
        self.fill(self._current, snapshot)

    def postamble(self) -> None:
        json.dump(self.document(self._nodes), self.out, indent=2)
        self.out.write("\n")

    def node(self, snapshot: Snapshot) -> Dict[str, Any]:
        raise NotImplementedError

    def fill(self, node: Dict[str, Any], snapshot: Snapshot) -> None:
        raise NotImplementedError

    def document(self, nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
        raise NotImplementedError


class JsonDocRenderer(_DocumentRenderer):
    """Single JSON document with a 'vis' array, one element per node."""

    format = OutputFormat.JSONDOC

    def node(self, snapshot: Snapshot) -> Dict[str, Any]:
        node: Dict[str, Any] = {"primary": str(snapshot.primary)}
        if snapshot.secondaries:
            node["secondary"] = [str(a) for a in snapshot.secondaries]
        node["neighbors"] = []
        node["clients"] = []
        return node

    def fill(self, node: Dict[str, Any], snapshot: Snapshot) -> None:
        for router, entry in self.edges(snapshot):
            if entry.is_client:
                node["clients"].append(str(entry.address))
            else:
                node["neighbors"].append({
                    "router": str(router),
                    "neighbor": str(entry.address),
                    "metric": entry.label,
                })

    def document(self, nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "source_version": __version__,
            "algorithm": JSONDOC_ALGORITHM,
            "vis": nodes,
        }


class NetJsonRenderer(_DocumentRenderer):
    """NetJSON NetworkGraph; links are listed under the node that reports them."""

    format = OutputFormat.NETJSON

    def node(self, snapshot: Snapshot) -> Dict[str, Any]:
        node: Dict[str, Any] = {"id": str(snapshot.primary)}
        if snapshot.secondaries:
            node["local_addresses"] = [str(a) for a in snapshot.secondaries]
        node["links"] = []
        node["properties"] = {"clients": []}
        return node

    def fill(self, node: Dict[str, Any], snapshot: Snapshot) -> None:
        for router, entry in self.edges(snapshot):
            if entry.is_client:
                node["properties"]["clients"].append(str(entry.address))
            else:
                node["links"].append({
                    "source": str(router),
                    "target": str(entry.address),
                    "cost": round(entry.metric, 3),
                })

    def document(self, nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "type": "NetworkGraph",
            "version": __version__,
            "metric": NETJSON_METRIC,
            "nodes": nodes,
        }


RENDERERS: Dict[OutputFormat, Type[Renderer]] = {
    OutputFormat.DOT: DotRenderer,
    OutputFormat.JSON: JsonRenderer,
    OutputFormat.JSONDOC: JsonDocRenderer,
    OutputFormat.NETJSON: NetJsonRenderer,
}


def get_renderer(fmt: Union[str, OutputFormat], out: Optional[TextIO] = None) -> Renderer:
    """
    Create the renderer for an output format.

    Raises:
        ValueError: If the format is unknown
    """
    return RENDERERS[OutputFormat(fmt)](out)
