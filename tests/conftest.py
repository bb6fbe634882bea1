"""
Pytest configuration and fixtures for meshvis tests.
"""

import io
import logging
import os
import struct
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from meshvis.exceptions import ConnectError, ShortWriteError
from meshvis.topology import Entry, HardwareAddress, InterfaceRecord, Snapshot


PRIMARY = "aa:aa:aa:aa:aa:01"
SECONDARY = "aa:aa:aa:aa:aa:02"
NEIGHBOR = "cc:cc:cc:cc:cc:03"
CLIENT = "bb:bb:bb:bb:bb:02"


def mac(text):
    return HardwareAddress.parse(text)


def make_snapshot(interfaces=(PRIMARY,), entries=()):
    """Build a Snapshot from address strings and (address, index, quality) tuples."""
    return Snapshot(
        tuple(InterfaceRecord(mac(a)) for a in interfaces),
        tuple(Entry(mac(a), idx, q) for a, idx, q in entries),
    )


def raw_push_frame(data, data_type=1, data_version=1, data_length=None, tx_id=1):
    """Hand-built push frame, for payloads the encoder refuses to produce."""
    if data_length is None:
        data_length = len(data)
    body = struct.pack("!HH", tx_id, 0) + struct.pack("!BBH", data_type, data_version, data_length) + data
    return struct.pack("!BBH", 0, 0, len(body)) + body


class FakeChannel:
    """In-memory stand-in for UnixChannel."""

    def __init__(self, data=b"", chunk=None, path="fake.sock", fail_connect=False, fail_write=False):
        self.path = path
        self._buf = io.BytesIO(data)
        self.chunk = chunk
        self.fail_connect = fail_connect
        self.fail_write = fail_write
        self.written = bytearray()
        self.connected = False
        self.closed = False

    def connect(self):
        if self.fail_connect:
            raise ConnectError(self.path, "Connection refused")
        self.connected = True
        return self

    def write(self, data):
        if self.fail_write:
            raise ShortWriteError("Broken pipe")
        self.written += data
        return len(data)

    def read(self, size):
        if self.chunk:
            size = min(size, self.chunk)
        return self._buf.read(size)

    def close(self):
        self.closed = True


class ChannelFactory:
    """Hands out FakeChannels and remembers them."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.channels = []

    def __call__(self, path):
        channel = FakeChannel(path=path, **self.kwargs)
        self.channels.append(channel)
        return channel


@pytest.fixture
def sample_snapshot():
    """Two interfaces, one neighbor per interface and one client."""
    return make_snapshot(
        interfaces=(PRIMARY, SECONDARY),
        entries=(
            (NEIGHBOR, 0, 85),
            ("cc:cc:cc:cc:cc:04", 1, 255),
            (CLIENT, 255, 0),
        ),
    )


@pytest.fixture(autouse=True)
def reset_meshvis_logger():
    """Undo setup_logging() so caplog sees records in every test."""
    yield
    logger = logging.getLogger("meshvis")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
