"""
Wire codec for meshvis.

Frames on the daemon socket look like:

    TYPE(1) + VERSION(1) + LENGTH(2) + PAYLOAD(LENGTH)

A push payload is TX_ID(2) + SEQNO(2) followed by a typed data record
DATA_TYPE(1) + DATA_VERSION(1) + DATA_LENGTH(2) + SNAPSHOT(DATA_LENGTH).
A request payload is REQUESTED_TYPE(1) + TX_ID(2). Everything big-endian.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import NamedTuple, Optional

from scapy.packet import Raw

from .config import (
    ALFRED_PUSH_DATA,
    ALFRED_REQUEST,
    ALFRED_VERSION,
    MAX_FRAME_PAYLOAD,
    MIN_PUSH_PAYLOAD,
    TLV_HEADER_LEN,
    VIS_PACKETTYPE,
    VIS_PACKETVERSION,
)
from .exceptions import EncodeOverflowError, FrameError, RecordError
from .packets import AlfredDataHeader, AlfredPushData, AlfredRequest, AlfredTLV
from .topology import Snapshot, pack_snapshot

logger = logging.getLogger(__name__)


class FrameHeader(NamedTuple):
    """Decoded outer envelope header."""

    type: int
    version: int
    length: int


@dataclass(frozen=True)
class PushPayload:
    """Decoded push payload with the raw snapshot bytes still packed."""

    tx_id: int
    seqno: int
    data_type: int
    data_version: int
    length: int
    data: bytes


def new_tx_id() -> int:
    """Pseudo-random 16 bit transaction id."""
    return random.getrandbits(16)


def encode_request(requested_type: int = VIS_PACKETTYPE, tx_id: Optional[int] = None) -> bytes:
    """
    Build the request frame asking the daemon for every record of a type.

    Args:
        requested_type: Data type to request
        tx_id: Transaction id (random when omitted)
    """
    if tx_id is None:
        tx_id = new_tx_id()
    frame = AlfredTLV(type=ALFRED_REQUEST, version=ALFRED_VERSION) / AlfredRequest(
        requested_type=requested_type,
        tx_id=tx_id & 0xFFFF,
    )
    return bytes(frame)


def encode_push(snapshot: Snapshot, tx_id: int, seqno: int = 0) -> bytes:
    """
    Build a push frame publishing a snapshot.

    Raises:
        EncodeOverflowError: If the snapshot breaks the capacity limits
    """
    data = pack_snapshot(snapshot)
    total = MIN_PUSH_PAYLOAD + len(data)
    if total > MAX_FRAME_PAYLOAD:
        raise EncodeOverflowError("frame payload", total, MAX_FRAME_PAYLOAD)

    frame = (
        AlfredTLV(type=ALFRED_PUSH_DATA, version=ALFRED_VERSION)
        / AlfredPushData(tx_id=tx_id & 0xFFFF, seqno=seqno & 0xFFFF)
        / AlfredDataHeader(type=VIS_PACKETTYPE, version=VIS_PACKETVERSION)
        / Raw(load=data)
    )
    return bytes(frame)


def read_exact(channel, size: int) -> bytes:
    """
    Read up to ``size`` bytes, looping over partial reads.

    Returns fewer bytes only when the peer closed the stream.
    """
    buf = bytearray()
    while len(buf) < size:
        chunk = channel.read(size - len(buf))
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


def decode_frame_header(channel) -> Optional[FrameHeader]:
    """
    Read one envelope header.

    Returns:
        The header, or None if the peer closed before sending any byte

    Raises:
        FrameError: If the peer closed in the middle of the header
    """
    data = read_exact(channel, TLV_HEADER_LEN)
    if not data:
        return None
    if len(data) < TLV_HEADER_LEN:
        raise FrameError(
            f"Truncated frame header: {len(data)} < {TLV_HEADER_LEN} bytes"
        )
    tlv = AlfredTLV(data)
    return FrameHeader(tlv.type, tlv.version, tlv.length)


def decode_push(channel, header: FrameHeader) -> PushPayload:
    """
    Read and validate the payload of a push frame.

    Length checks happen before anything is read.

    Raises:
        FrameError: Declared length out of bounds or stream ended early
        RecordError: The frame was consumed but carries another data type
    """
    if header.length > MAX_FRAME_PAYLOAD:
        raise FrameError(
            f"Frame length {header.length} exceeds receive limit {MAX_FRAME_PAYLOAD}"
        )
    if header.length < MIN_PUSH_PAYLOAD:
        raise FrameError(
            f"Frame length {header.length} too small for push data "
            f"(need {MIN_PUSH_PAYLOAD})"
        )

    body = read_exact(channel, header.length)
    if len(body) < header.length:
        raise FrameError(
            f"Truncated frame: got {len(body)} of {header.length} bytes"
        )

    push = AlfredPushData(body)
    data_hdr = push[AlfredDataHeader]

    if data_hdr.type != VIS_PACKETTYPE:
        raise RecordError(f"Unexpected data type {data_hdr.type}")
    if data_hdr.version != VIS_PACKETVERSION:
        raise RecordError(f"Unexpected data version {data_hdr.version}")

    data = body[MIN_PUSH_PAYLOAD : MIN_PUSH_PAYLOAD + data_hdr.length]
    logger.debug(
        "Push frame tx_id=%d seqno=%d data_length=%d",
        push.tx_id, push.seqno, data_hdr.length,
    )
    return PushPayload(
        tx_id=push.tx_id,
        seqno=push.seqno,
        data_type=data_hdr.type,
        data_version=data_hdr.version,
        length=data_hdr.length,
        data=data,
    )
