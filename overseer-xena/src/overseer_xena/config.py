"""Configuration for chassis sessions.

Session settings can be built in code or loaded from a YAML file.

Example YAML configuration:
    session:
      password: "xena"
      owner: "overseer"
      timeout: 5.0
      connect_timeout: 5.0

    chassis:
      - "192.168.1.50:22606"
      - "[fe80::1]:22606"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


def _check_quoted(name: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    if '"' in value or "\n" in value or "\r" in value:
        raise ValueError(f"{name} must not contain quotes or line breaks")


@dataclass(frozen=True)
class SessionConfig:
    """Settings for logging on to a chassis.

    Attributes:
        password: Password sent with ``C_LOGON``.
        owner: Owner name claimed with ``C_OWNER``; reservations are held
            under this name.
        timeout: Seconds allowed for each line read and each write.
        connect_timeout: Seconds allowed for the TCP connect.
    """

    password: str = "xena"
    owner: str = "overseer"
    timeout: float = 5.0
    connect_timeout: float = 5.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        _check_quoted("password", self.password)
        _check_quoted("owner", self.owner)
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionConfig:
        """Create a config from a mapping, using defaults for missing keys.

        Raises:
            ValueError: If a key is unknown or a value is invalid.
        """
        known = {"password", "owner", "timeout", "connect_timeout"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown session settings: {', '.join(sorted(unknown))}")
        kwargs: dict[str, Any] = {}
        for key in ("password", "owner"):
            if key in data:
                kwargs[key] = str(data[key])
        for key in ("timeout", "connect_timeout"):
            if key in data:
                try:
                    kwargs[key] = float(data[key])
                except (TypeError, ValueError) as exc:
                    raise ValueError(f"{key} must be a number, got {data[key]!r}") from exc
        return cls(**kwargs)


@dataclass(frozen=True)
class OverseerConfig:
    """Top-level front-end configuration.

    Attributes:
        session: Logon settings shared by every chassis connection.
        chassis: Default chassis addresses (``ip:port`` text).
    """

    session: SessionConfig = field(default_factory=SessionConfig)
    chassis: tuple[str, ...] = ()


def load_config(path: str | Path) -> OverseerConfig:
    """Load front-end configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed configuration.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the config is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return OverseerConfig()
    if not isinstance(data, dict):
        raise ValueError("Config must be a YAML mapping")

    session_data = data.get("session") or {}
    if not isinstance(session_data, dict):
        raise ValueError("session must be a mapping")

    chassis_data = data.get("chassis") or []
    if not isinstance(chassis_data, list):
        raise ValueError("chassis must be a list of addresses")
    for address in chassis_data:
        if not isinstance(address, str):
            raise ValueError(f"chassis address must be a string, got {address!r}")

    return OverseerConfig(
        session=SessionConfig.from_dict(session_data),
        chassis=tuple(chassis_data),
    )
