"""
Mesh interface discovery for meshvis.

Finds the hard interfaces enslaved to a batman-adv mesh interface through
sysfs and resolves their hardware addresses.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from scapy.all import get_if_hwaddr
from scapy.error import Scapy_Exception

from .config import SYS_IFACE_PATH, SYS_IFACE_STATUS_FILE, SYS_MESH_IFACE_FILE
from .exceptions import InterfaceError, InvalidMACError
from .topology import HardwareAddress

logger = logging.getLogger(__name__)


def _read_value(path: str) -> Optional[str]:
    """Read a one-line sysfs attribute, None if it can't be read."""
    try:
        with open(path) as f:
            return f.read().strip()
    except OSError:
        return None


class SysfsInterfaces:
    """
    Interface discovery collaborator backed by /sys/class/net.

    Args:
        mesh_iface: batman-adv soft interface (e.g. bat0)
        sys_root: Directory holding one entry per network interface
    """

    def __init__(self, mesh_iface: str, sys_root: str = SYS_IFACE_PATH):
        self.mesh_iface = mesh_iface
        self.sys_root = sys_root

    def list_interfaces(self) -> List[str]:
        """Names of active hard interfaces attached to the mesh interface."""
        try:
            names = sorted(os.listdir(self.sys_root))
        except OSError as e:
            logger.error(
                "The directory '%s' could not be read: %s. "
                "Is the batman-adv module loaded and sysfs mounted?",
                self.sys_root, e,
            )
            return []

        active = []
        for name in names:
            mesh = _read_value(os.path.join(self.sys_root, name, SYS_MESH_IFACE_FILE))
            if mesh is None or mesh == "none" or mesh != self.mesh_iface:
                continue
            status = _read_value(os.path.join(self.sys_root, name, SYS_IFACE_STATUS_FILE))
            if status == "active":
                active.append(name)
        return active

    def resolve_hardware_address(self, name: str) -> HardwareAddress:
        """
        Hardware address of an interface.

        Reads the sysfs address attribute and falls back to an ioctl lookup.

        Raises:
            InterfaceError: If the address can't be determined
        """
        text = _read_value(os.path.join(self.sys_root, name, "address"))
        if text is None:
            try:
                text = get_if_hwaddr(name)
            except (OSError, ValueError, Scapy_Exception) as e:
                raise InterfaceError(f"Can't get MAC address of {name}: {e}") from e

        try:
            return HardwareAddress.parse(text)
        except InvalidMACError as e:
            raise InterfaceError(f"Interface {name} has no usable MAC address ({text!r})") from e
