"""Command-line interface for overseer.

Lists and changes port reservations on one or more chassis.

Usage:
    # Show reservations on the chassis named in the config file
    overseer --config overseer.yaml list

    # Show reservations on specific chassis
    overseer list 192.168.1.50:22606 192.168.1.51:22606

    # Reserve, release or relinquish a port
    overseer reserve 192.168.1.50:22606 0/1
    overseer release 192.168.1.50:22606 0/1

    # Act on a port according to its current state, then show the result
    overseer toggle 192.168.1.50:22606 0/1
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Callable

from overseer_core.errors import OverseerError
from overseer_core.types.common import check_resource_id
from overseer_core.types.reservation import Interfaces, Lock

from overseer_xena.config import OverseerConfig, SessionConfig, load_config
from overseer_xena.connection import Connection, connect

logger = logging.getLogger(__name__)

_LOCK_LABELS: dict[Lock, str] = {
    Lock.RELEASED: "released",
    Lock.RESERVED_BY_YOU: "reserved by you",
    Lock.RESERVED_BY_OTHER: "reserved by other",
}


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_port(value: str) -> tuple[int, int]:
    """Parse ``module/port`` text for argparse."""
    module_text, sep, port_text = value.partition("/")
    try:
        if not sep:
            raise ValueError(value)
        return (
            check_resource_id(int(module_text), "module"),
            check_resource_id(int(port_text), "port"),
        )
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"expected MODULE/PORT with ids 0-255, got {value!r}"
        ) from exc


def format_interfaces(address: str, interfaces: Interfaces) -> str:
    """Render a snapshot as an indented text listing."""
    lines = [f"{address}:"]
    if not interfaces.modules:
        lines.append("  (no ports)")
    for module, ports in interfaces.modules.items():
        lines.append(f"  module {module}")
        for port, state in ports.items():
            lines.append(f"    {module}/{port}  {_LOCK_LABELS[state.lock]}")
    return "\n".join(lines)


def cmd_list(args: argparse.Namespace, config: OverseerConfig) -> int:
    """List reservations on each requested chassis."""
    addresses = args.addresses or list(config.chassis)
    if not addresses:
        print("No chassis given and none configured", file=sys.stderr)
        return 1

    status = 0
    for address in addresses:
        try:
            with connect(address, config.session) as conn:
                print(format_interfaces(address, conn.list_interfaces()))
        except OverseerError as exc:
            print(f"{address}: error: {exc}", file=sys.stderr)
            status = 1
    return status


def _run_port_command(
    args: argparse.Namespace,
    config: OverseerConfig,
    action: Callable[[Connection, int, int], None],
) -> int:
    module, port = args.port
    try:
        with connect(args.address, config.session) as conn:
            action(conn, module, port)
            print(format_interfaces(args.address, conn.list_interfaces()))
    except OverseerError as exc:
        print(f"{args.address}: error: {exc}", file=sys.stderr)
        return 1
    return 0


def _toggle(conn: Connection, module: int, port: int) -> None:
    current = conn.list_interfaces().lock_of(module, port)
    if current is None:
        raise OverseerError(f"Chassis has no port {module}/{port}")
    logger.info("Port %s/%s is %s", module, port, current.token)
    conn.lock_action_on(current, module, port)


_PORT_ACTIONS: dict[str, Callable[[Connection, int, int], None]] = {
    "reserve": Connection.lock_interface,
    "release": Connection.unlock_interface,
    "relinquish": Connection.relinquish_interface,
    "toggle": _toggle,
}


def _load(args: argparse.Namespace) -> OverseerConfig:
    config = load_config(args.config) if args.config else OverseerConfig()
    if args.timeout is not None:
        session = replace(config.session, timeout=args.timeout, connect_timeout=args.timeout)
        config = replace(config, session=session)
    return config


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="overseer",
        description="Chassis port reservation tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", "-c", help="YAML configuration file")
    parser.add_argument(
        "--timeout", type=float, default=None,
        help=f"I/O timeout in seconds (default: {SessionConfig.timeout})"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    list_parser = subparsers.add_parser("list", help="List port reservations")
    list_parser.add_argument(
        "addresses", nargs="*",
        help="Chassis addresses (ip:port); defaults to the configured chassis"
    )

    for name, help_text in (
        ("reserve", "Reserve a released port"),
        ("release", "Release a port reserved by you"),
        ("relinquish", "Force release of a port reserved by another owner"),
        ("toggle", "Reserve, release or relinquish depending on the current state"),
    ):
        port_parser = subparsers.add_parser(name, help=help_text)
        port_parser.add_argument("address", help="Chassis address (ip:port)")
        port_parser.add_argument("port", type=parse_port, help="Port as MODULE/PORT")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = _load(args)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command == "list":
        return cmd_list(args, config)
    return _run_port_command(args, config, _PORT_ACTIONS[args.command])


if __name__ == "__main__":
    sys.exit(main())
