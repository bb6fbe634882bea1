"""
Pre-flight checks for meshvis.

Validates that the host exposes the batman-adv state the server reads
before entering the publish loop.
"""

from __future__ import annotations

import os
import stat
from typing import List, Tuple

from .config import ORIGINATORS_FILE, RuntimeConfig
from .debugfs import DebugfsTables
from .exceptions import InterfaceError


def check_mesh_interface(config: RuntimeConfig) -> Tuple[bool, str]:
    """
    Check if the mesh interface exists.

    Returns:
        Tuple of (success, message)
    """
    path = os.path.join(config.sys_root, config.interface)
    if os.path.exists(path):
        return True, f"Interface '{config.interface}' found"
    return False, f"Interface '{config.interface}' not found in {config.sys_root}"


def check_debugfs(config: RuntimeConfig) -> Tuple[bool, str]:
    """
    Check if the batman-adv debugfs tables of the mesh interface are readable.

    Returns:
        Tuple of (success, message)
    """
    tables = DebugfsTables(config.interface, config.debugfs_root)
    path = os.path.join(tables.directory, ORIGINATORS_FILE)
    if os.access(path, os.R_OK):
        return True, f"Originator table readable at {path}"
    return False, (
        f"Can't read {path}. Is debugfs mounted at {config.debugfs_root} "
        "and the batman-adv module loaded?"
    )


def check_daemon_socket(config: RuntimeConfig) -> Tuple[bool, str]:
    """
    Check if the daemon socket exists.

    Returns:
        Tuple of (success, message)
    """
    try:
        mode = os.stat(config.unix_path).st_mode
    except OSError as e:
        return False, f"Daemon socket {config.unix_path} unavailable: {e.strerror}"
    if not stat.S_ISSOCK(mode):
        return False, f"{config.unix_path} is not a socket"
    return True, f"Daemon socket {config.unix_path} present"


def run_preflight_checks(config: RuntimeConfig) -> List[Tuple[str, bool, bool, str]]:
    """
    Run all pre-flight checks.

    Returns:
        List of (check_name, critical, success, message) tuples
    """
    checks = [
        ("Mesh interface", True, check_mesh_interface),
        ("Debugfs", True, check_debugfs),
        # The daemon may come up later; every cycle reconnects
        ("Daemon socket", False, check_daemon_socket),
    ]

    results = []
    for name, critical, check_fn in checks:
        success, message = check_fn(config)
        results.append((name, critical, success, message))
    return results


def validate_startup(config: RuntimeConfig) -> List[str]:
    """
    Validate the host is ready to run the server.

    Returns:
        Warning messages from non-critical checks

    Raises:
        InterfaceError: If any critical check fails
    """
    results = run_preflight_checks(config)
    failures = [(name, msg) for name, critical, success, msg in results if critical and not success]

    if failures:
        error_lines = ["Pre-flight checks failed:"]
        for name, msg in failures:
            error_lines.append(f"  - {name}: {msg}")
        raise InterfaceError("\n".join(error_lines))

    return [f"{name}: {msg}" for name, critical, success, msg in results if not success]
