"""
Custom exceptions for meshvis.

Provides specific exception types for better error handling and debugging.
"""


class MeshVisError(Exception):
    """Base exception for all meshvis errors."""
    pass


# ---------------- Channel Errors ----------------

class ChannelError(MeshVisError):
    """Base class for daemon socket errors."""
    pass


class ConnectError(ChannelError):
    """Daemon socket unreachable."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Can't connect to unix socket {path}: {reason}")
        self.path = path
        self.reason = reason


class ShortWriteError(ChannelError):
    """Writing a frame to the daemon failed part-way."""
    pass


class ShortReadError(ChannelError):
    """Reading from the daemon failed."""
    pass


# ---------------- Protocol Errors ----------------

class ProtocolError(MeshVisError):
    """Base class for wire format errors."""
    pass


class FrameError(ProtocolError):
    """Malformed envelope; the stream cannot be resynchronized."""
    pass


class RecordError(ProtocolError):
    """A single decoded record is invalid and can be skipped."""
    pass


class EncodeOverflowError(ProtocolError):
    """A snapshot exceeds what the wire format can carry."""

    def __init__(self, what: str, size: int, max_size: int):
        super().__init__(f"{what} {size} exceeds maximum {max_size}")
        self.what = what
        self.size = size
        self.max_size = max_size


# ---------------- Network Errors ----------------

class NetworkError(MeshVisError):
    """Base class for host network state errors."""
    pass


class InterfaceError(NetworkError):
    """Network interface error."""
    pass


# ---------------- Input Validation Errors ----------------

class ValidationError(MeshVisError):
    """Input validation failed."""
    pass


class InvalidMACError(ValidationError):
    """Invalid MAC address format."""

    def __init__(self, value):
        super().__init__(f"Invalid MAC address: {value!r}")
        self.value = value


class ConfigError(ValidationError):
    """Configuration file or option is invalid."""
    pass
