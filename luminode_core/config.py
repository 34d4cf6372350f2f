"""Connection configuration for a LumiNode device.

The configuration mirrors what an operator fills in: either a host picked
from mDNS discovery (``bonjour_host``, formatted ``ip:port``) or a manually
entered host, plus an optional password for devices with authentication
enabled.
"""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

_LOGGER = logging.getLogger(__name__)


class ConfigLoadError(Exception):
    """Error loading a configuration file."""


@dataclass(frozen=True)
class LuminodeConfig:
    """Connection settings for one device.

    Attributes:
        host: Manually entered hostname or IP address.
        bonjour_host: Discovered ``ip:port`` pair; takes precedence over host.
        password: Password for the ``admin`` user, empty when auth is off.
    """

    host: str = ""
    bonjour_host: str = ""
    password: str = ""

    def resolve_host(self) -> str | None:
        """Return the address to connect to, or None when nothing resolves."""
        if self.bonjour_host:
            ip = self.bonjour_host.split(":")[0]
            try:
                ipaddress.IPv4Address(ip)
            except ValueError:
                _LOGGER.warning("IP %s has unexpected format", ip)
                return None
            return ip
        if self.host:
            return self.host
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LuminodeConfig:
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {
            key: "" if value is None else str(value)
            for key, value in data.items()
            if key in known
        }
        return cls(**values)


def load_config(path: Path) -> LuminodeConfig:
    """Load a device configuration from a YAML file.

    Raises:
        ConfigLoadError: If the file is missing, unparsable or not a mapping.
    """
    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {path}") from err
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Expected a mapping in {path}")
    return LuminodeConfig.from_dict(data)
