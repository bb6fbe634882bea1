"""
Packet definitions for meshvis.

Defines Scapy packet structures for the alfred envelope, push data, request
and the typed data header wrapping a topology snapshot.
"""

from __future__ import annotations

import struct

from scapy.packet import Packet, bind_layers
from scapy.fields import (
    ByteEnumField,
    ByteField,
    ShortField,
)

from .config import (
    ALFRED_PUSH_DATA,
    ALFRED_REQUEST,
    ALFRED_TYPE_NAMES,
    ALFRED_VERSION,
    VIS_PACKETTYPE,
    VIS_PACKETVERSION,
)


def _fill_length(p: bytes, pay: bytes, length) -> bytes:
    """Write len(pay) into bytes 2..4 when the length field was left unset."""
    if length is None:
        p = p[:2] + struct.pack("!H", len(pay)) + p[4:]
    return p + pay


class AlfredTLV(Packet):
    """
    Outer envelope of every message exchanged with the daemon.

    Fields:
        type: Message type (push data, request, ...)
        version: Envelope version (0)
        length: Byte count of everything following this header
    """

    name = "AlfredTLV"
    fields_desc = [
        ByteEnumField("type", ALFRED_PUSH_DATA, ALFRED_TYPE_NAMES),
        ByteField("version", ALFRED_VERSION),
        ShortField("length", None),
    ]

    def post_build(self, p: bytes, pay: bytes) -> bytes:
        return _fill_length(p, pay, self.length)


class AlfredPushData(Packet):
    """
    Push payload: transaction bookkeeping followed by one data record.
    """

    name = "AlfredPushData"
    fields_desc = [
        ShortField("tx_id", 0),
        ShortField("seqno", 0),
    ]


class AlfredDataHeader(Packet):
    """
    Typed and versioned header of the published record.

    The payload is exactly ``length`` bytes of snapshot data.
    """

    name = "AlfredData"
    fields_desc = [
        ByteField("type", VIS_PACKETTYPE),
        ByteField("version", VIS_PACKETVERSION),
        ShortField("length", None),
    ]

    def post_build(self, p: bytes, pay: bytes) -> bytes:
        return _fill_length(p, pay, self.length)

    def extract_padding(self, s: bytes):
        return s[: self.length], s[self.length :]


class AlfredRequest(Packet):
    """
    Request body: which data type the client wants, plus a transaction id.
    """

    name = "AlfredRequest"
    fields_desc = [
        ByteField("requested_type", VIS_PACKETTYPE),
        ShortField("tx_id", 0),
    ]


# Bind layers for automatic parsing
bind_layers(AlfredTLV, AlfredPushData, type=ALFRED_PUSH_DATA)
bind_layers(AlfredTLV, AlfredRequest, type=ALFRED_REQUEST)
bind_layers(AlfredPushData, AlfredDataHeader)
