"""Command line entry point.

Usage::

    serialmetrics [INIT_FILE] [--config PATH] [--port N] [--quiet] [--mock]

Options default to the CONFIG_FILE, HTTP_PORT, QUIET and MOCK environment
variables. INIT_FILE is an optional JSON list of initial values.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from serialmetrics.adapters.logging import configure_logging
from serialmetrics.app import App, AppOptions
from serialmetrics.core.exceptions import ConfigError
from serialmetrics.inits import load_initial_values

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="serialmetrics",
        description="Export serial device readings as Prometheus metrics.",
    )
    parser.add_argument("init_file", nargs="?", help="JSON file of initial values")
    parser.add_argument("--config", help="YAML configuration file (env CONFIG_FILE)")
    parser.add_argument("--port", type=int, help="HTTP port (env HTTP_PORT)")
    parser.add_argument("--host", help="Interface to bind")
    parser.add_argument("--quiet", action="store_true", default=None)
    parser.add_argument(
        "--mock", action="store_true", default=None, help="Use loopback devices"
    )
    return parser


def options_from_args(args: argparse.Namespace) -> AppOptions:
    """Merge command line flags over environment options."""
    overrides: dict[str, Any] = {}
    if args.config:
        overrides["config_file"] = Path(args.config).resolve()
    if args.port is not None:
        overrides["port"] = args.port
    if args.host:
        overrides["host"] = args.host
    if args.quiet:
        overrides["quiet"] = True
    if args.mock:
        overrides["mock"] = True
    return AppOptions.from_env(**overrides)


async def run(options: AppOptions, init_file: str | None = None) -> None:
    """Run the exporter until SIGINT or SIGTERM."""
    inits = load_initial_values(init_file) if init_file else []
    app = App(options)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    try:
        await app.start()
        await app.inject(inits)
        await stop.wait()
        logger.info("Shutting down")
    finally:
        await app.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    options = options_from_args(args)
    configure_logging(quiet=options.quiet)
    try:
        asyncio.run(run(options, args.init_file))
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
