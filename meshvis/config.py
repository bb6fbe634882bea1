"""
Configuration constants for meshvis.

All protocol constants, paths, and tunable parameters are centralized here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Optional

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


# ---------------- Alfred Envelope ----------------

ALFRED_PUSH_DATA = 0        # Published data (server -> daemon, daemon -> client)
ALFRED_ANNOUNCE_MASTER = 1
ALFRED_REQUEST = 2          # Client asks the daemon for one data type
ALFRED_STATUS_TXEND = 3
ALFRED_STATUS_ERROR = 4

ALFRED_VERSION = 0

ALFRED_TYPE_NAMES = {
    ALFRED_PUSH_DATA: "push_data",
    ALFRED_ANNOUNCE_MASTER: "announce_master",
    ALFRED_REQUEST: "request",
    ALFRED_STATUS_TXEND: "status_txend",
    ALFRED_STATUS_ERROR: "status_error",
}

TLV_HEADER_LEN = 4          # type(1) + version(1) + length(2)
PUSH_HEADER_LEN = 4         # tx_id(2) + seqno(2)
REQUEST_BODY_LEN = 3        # requested_type(1) + tx_id(2)

# Largest envelope payload we are willing to receive
MAX_FRAME_PAYLOAD = 65536 - TLV_HEADER_LEN

# Smallest push payload that still carries the data header
MIN_PUSH_PAYLOAD = PUSH_HEADER_LEN + TLV_HEADER_LEN


# ---------------- Topology Payload ----------------

VIS_PACKETTYPE = 1
VIS_PACKETVERSION = 1

HWADDR_LEN = 6
ENTRY_LEN = HWADDR_LEN + 2  # address + source interface index + quality

MAX_INTERFACES = 254        # Index 255 is reserved for client entries
MAX_ENTRIES = 255
CLIENT_INDEX = 255          # source_interface_index of client entries

MAX_QUALITY = 255
CLIENT_LABEL = "TT"

# jsondoc header
JSONDOC_ALGORITHM = 4
NETJSON_METRIC = "TQ"


# ---------------- Host Paths ----------------

ALFRED_SOCK_PATH_DEFAULT = "/var/run/alfred.sock"
DEFAULT_MESH_IFACE = "bat0"

SYS_IFACE_PATH = "/sys/class/net"
SYS_MESH_IFACE_FILE = "batman_adv/mesh_iface"
SYS_IFACE_STATUS_FILE = "batman_adv/iface_status"

DEBUGFS_ROOT = "/sys/kernel/debug"
DEBUG_BATIF_DIR = "batman_adv"
ORIGINATORS_FILE = "originators"
TRANSTABLE_LOCAL_FILE = "transtable_local"

UPDATE_INTERVAL = 10.0      # Seconds between server publish cycles

OUTPUT_FORMATS = ("dot", "json", "jsondoc", "netjson")


# ---------------- File Paths ----------------

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".meshvis")
LOG_DIR = os.path.join(CONFIG_DIR, "logs")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.yaml")


# ---------------- Logging Configuration ----------------

LOG_FILE = os.path.join(LOG_DIR, "meshvis.log")
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB per log file
LOG_BACKUP_COUNT = 5  # Keep 5 rotated log files
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class RuntimeConfig:
    """Runtime configuration assembled from defaults, config file and CLI."""

    server: bool = False
    interface: str = DEFAULT_MESH_IFACE
    output_format: str = "dot"
    unix_path: str = ALFRED_SOCK_PATH_DEFAULT
    update_interval: float = UPDATE_INTERVAL
    log_to_file: bool = False
    log_level: str = "INFO"
    sys_root: str = SYS_IFACE_PATH
    debugfs_root: str = DEBUGFS_ROOT

    def validate(self) -> None:
        """Raise ConfigError if any value is unusable."""
        if not self.interface:
            raise ConfigError("mesh interface name must not be empty")
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"unknown output format '{self.output_format}' "
                f"(expected one of {', '.join(OUTPUT_FORMATS)})"
            )
        if not self.unix_path:
            raise ConfigError("unix socket path must not be empty")
        if self.update_interval <= 0:
            raise ConfigError(
                f"update interval must be positive, got {self.update_interval}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"unknown log level '{self.log_level}'")


def ensure_config_dir() -> None:
    """Create the config directory if it doesn't exist."""
    Path(CONFIG_DIR).mkdir(parents=True, exist_ok=True)


def load_config_file(path: Optional[str] = None) -> dict:
    """
    Load configuration from YAML file.

    Args:
        path: Path to config file (defaults to CONFIG_FILE)

    Returns:
        Configuration dict (empty if file doesn't exist)

    Raises:
        ConfigError: If the file exists but is not valid YAML
    """
    config_path = path or CONFIG_FILE

    if not os.path.exists(config_path):
        return {}

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not a mapping", config_path)
        return {}
    return data


def save_default_config(path: Optional[str] = None) -> bool:
    """
    Save default configuration file.

    Args:
        path: Path to config file (defaults to CONFIG_FILE)

    Returns:
        True if saved successfully
    """
    config_path = path or CONFIG_FILE

    default_config = {
        "interface": DEFAULT_MESH_IFACE,
        "unix_path": ALFRED_SOCK_PATH_DEFAULT,
        "format": "dot",
        "server": {"update_interval": UPDATE_INTERVAL},
        "logging": {"to_file": False, "level": "INFO"},
    }

    try:
        Path(config_path).parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            f.write("# meshvis configuration\n")
            yaml.safe_dump(default_config, f, default_flow_style=False, sort_keys=False)
        return True
    except OSError as e:
        logger.error("Failed to write config file %s: %s", config_path, e)
        return False


def apply_config_file(runtime_config: RuntimeConfig, file_config: dict) -> None:
    """
    Apply file configuration to runtime config.

    File config values replace the defaults; CLI args are applied afterwards
    and take precedence.
    """
    if "interface" in file_config:
        runtime_config.interface = str(file_config["interface"])
    if "unix_path" in file_config:
        runtime_config.unix_path = os.path.expanduser(str(file_config["unix_path"]))
    if "format" in file_config:
        runtime_config.output_format = str(file_config["format"])

    server_config = _section(file_config, "server")
    if "update_interval" in server_config:
        runtime_config.update_interval = _as_float(
            server_config["update_interval"], "server.update_interval"
        )
    if "sys_root" in server_config:
        runtime_config.sys_root = str(server_config["sys_root"])
    if "debugfs_root" in server_config:
        runtime_config.debugfs_root = str(server_config["debugfs_root"])

    logging_config = _section(file_config, "logging")
    if "to_file" in logging_config:
        runtime_config.log_to_file = bool(logging_config["to_file"])
    if "level" in logging_config:
        runtime_config.log_level = str(logging_config["level"])


def apply_cli_args(runtime_config: RuntimeConfig, args: Any) -> None:
    """Override runtime config with every CLI option the user actually set."""
    if args.server:
        runtime_config.server = True
    if args.interface is not None:
        runtime_config.interface = args.interface
    if args.format is not None:
        runtime_config.output_format = args.format
    if args.unix_path is not None:
        runtime_config.unix_path = args.unix_path
    if args.interval is not None:
        runtime_config.update_interval = args.interval
    if args.log_file:
        runtime_config.log_to_file = True
    if args.log_level is not None:
        runtime_config.log_level = args.log_level


def _section(file_config: dict, name: str) -> dict:
    value = file_config.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    return value


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config value '{key}' must be a number, got {value!r}") from e
