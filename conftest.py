"""Root conftest.py for the overseer monorepo.

This provides shared pytest configuration and fixtures across all packages.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config

    from overseer_xena.server import EmulatorServer


# Add all package src directories to path for imports
PROJECT_ROOT = Path(__file__).parent
for pkg_dir in PROJECT_ROOT.glob("overseer-*/src"):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_configure(config: Config) -> None:
    """Register custom markers.

    Args:
        config: pytest configuration object.
    """
    config.addinivalue_line(
        "markers",
        "integration: Test driving a full connection against the TCP chassis emulator",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


@pytest.fixture
def emulator_server() -> Iterator[EmulatorServer]:
    """Chassis emulator served on an ephemeral localhost port.

    Two modules of four ports, password ``xena``, all ports released.
    """
    from overseer_xena.emulator import make_chassis_emulator
    from overseer_xena.server import EmulatorServer

    server = EmulatorServer(make_chassis_emulator(), port=0)
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def emulator_address(emulator_server: EmulatorServer) -> str:
    """``ip:port`` text of the running emulator server."""
    host, port = emulator_server.address
    return f"{host}:{port}"


def pytest_report_header(config: Config) -> list[str]:
    """Add coverage mode info to pytest header.

    Args:
        config: pytest configuration object.

    Returns:
        List of header lines.
    """
    lines = ["overseer monorepo test suite"]

    if getattr(config.option, "cov_source", None):
        lines.append("Coverage: enabled")

    return lines
