"""
Entry point for meshvis.

Run with: python -m meshvis [--server] [--interface bat0] [--format dot]
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from . import __version__
from .client import VisClient
from .config import (
    CONFIG_FILE,
    LOG_LEVELS,
    OUTPUT_FORMATS,
    RuntimeConfig,
    apply_cli_args,
    apply_config_file,
    load_config_file,
    save_default_config,
)
from .exceptions import MeshVisError
from .logging_setup import setup_logging
from .preflight import validate_startup
from .server import VisServer

logger = logging.getLogger("meshvis")


def _setup_signal_handlers(stop_event: threading.Event) -> None:
    """Configure signal handlers for graceful shutdown."""

    def _shutdown_handler(signum: int, frame) -> None:
        """Handle shutdown signals."""
        logger.info("Received %s, shutting down...", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, _shutdown_handler)
    signal.signal(signal.SIGINT, _shutdown_handler)

    # SIGHUP (Unix only)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, _shutdown_handler)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="meshvis",
        description="batman-adv topology exchange over an alfred daemon",
    )
    ap.add_argument(
        "-s", "--server",
        action="store_true",
        help="start up in server mode, which regularly updates vis data from batman-adv",
    )
    ap.add_argument(
        "-i", "--interface",
        help="batman-adv interface configured on the system (default: bat0)",
    )
    ap.add_argument(
        "-f", "--format",
        choices=OUTPUT_FORMATS,
        help="output format for client mode (default: dot)",
    )
    ap.add_argument(
        "-u", "--unix-path",
        help="path to unix socket used for alfred server communication",
    )
    ap.add_argument(
        "-v", "--version",
        action="version",
        version=f"%(prog)s {__version__}\nVIS alfred client",
    )
    ap.add_argument(
        "--interval",
        type=float,
        help="seconds between updates in server mode (default: 10)",
    )
    ap.add_argument(
        "--log-file",
        action="store_true",
        help="also log to a rotating file",
    )
    ap.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        help="log level (default: INFO)",
    )
    ap.add_argument(
        "--config",
        help=f"path to config file (default: {CONFIG_FILE})",
    )
    ap.add_argument(
        "--init-config",
        action="store_true",
        help="generate default configuration file and exit",
    )
    return ap


def load_runtime_config(args: argparse.Namespace) -> RuntimeConfig:
    """Defaults, then config file, then CLI arguments."""
    config = RuntimeConfig()
    apply_config_file(config, load_config_file(args.config))
    apply_cli_args(config, args)
    config.validate()
    return config


def run_server(config: RuntimeConfig) -> int:
    for warning in validate_startup(config):
        logger.warning(warning)

    stop_event = threading.Event()
    _setup_signal_handlers(stop_event)
    VisServer(config).run(stop_event)
    return 0


def run_client(config: RuntimeConfig) -> int:
    VisClient(config).fetch()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for meshvis."""
    args = build_parser().parse_args(argv)

    # Generate default config if requested
    if args.init_config:
        config_path = args.config or CONFIG_FILE
        if save_default_config(config_path):
            print(f"Default configuration saved to: {config_path}")
            return 0
        print(f"Failed to save configuration to: {config_path}", file=sys.stderr)
        return 1

    try:
        config = load_runtime_config(args)
    except MeshVisError as e:
        setup_logging()
        logger.error("%s", e)
        return 1

    setup_logging(log_to_file=config.log_to_file, log_level=config.log_level)

    try:
        if config.server:
            return run_server(config)
        return run_client(config)
    except MeshVisError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
