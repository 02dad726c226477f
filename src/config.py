"""
WireGuard Mesh Manager - Configuration
"""
import ipaddress
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from errors import ConfigLoadError

CONFIG_ENV = "WG_MANAGER_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"


@dataclass(frozen=True)
class ServerConfig:
    """Private configuration of this server, loaded once at startup."""
    # Identity, there must be a row in `servers` with the same name
    name: str
    private_key: str
    device_name: str
    database_url: str

    # DNS
    base_domain: str
    dns_hosts_file: str

    # Whole mesh network
    network: str
    netmask_len: int

    # Applied to every server peer
    keepalive: Optional[int] = None

    # Web interface
    web_listen_address: str = "0.0.0.0"
    web_listen_port: int = 8080
    web_static_dir: str = "static"

    # Seconds before an external command is killed, None waits forever
    command_timeout: Optional[float] = None


REQUIRED_KEYS = (
    "name",
    "private_key",
    "device_name",
    "database_url",
    "base_domain",
    "dns_hosts_file",
    "network",
)


def parse_config(data: dict) -> ServerConfig:
    """Build a ServerConfig from an already parsed mapping."""
    if not isinstance(data, dict):
        raise ConfigLoadError("Configuration must be a mapping")

    missing = [key for key in REQUIRED_KEYS if data.get(key) in (None, "")]
    if missing:
        raise ConfigLoadError(f"Missing configuration keys: {', '.join(missing)}")

    known = {f.name for f in fields(ServerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigLoadError(f"Unknown configuration keys: {', '.join(unknown)}")

    try:
        network = ipaddress.ip_network(str(data["network"]), strict=False)
    except ValueError as e:
        raise ConfigLoadError(f"Invalid network {data['network']!r}: {e}") from e

    values = dict(data)
    values["network"] = str(network)
    try:
        values["netmask_len"] = int(data.get("netmask_len", network.prefixlen))
        if values.get("keepalive") is not None:
            values["keepalive"] = int(values["keepalive"])
        values["web_listen_port"] = int(values.get("web_listen_port", 8080))
        if values.get("command_timeout") is not None:
            values["command_timeout"] = float(values["command_timeout"])
    except (TypeError, ValueError) as e:
        raise ConfigLoadError(f"Invalid numeric configuration value: {e}") from e

    if not 0 <= values["netmask_len"] <= network.max_prefixlen:
        raise ConfigLoadError(f"netmask_len {values['netmask_len']} out of range for {network}")

    return ServerConfig(**values)


def load_config(config_path: Optional[str] = None) -> ServerConfig:
    """Load configuration from a YAML file."""
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_PATH)

    config_file = Path(config_path)
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigLoadError(f"Cannot read configuration file {config_file}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML in {config_file}: {e}") from e

    return parse_config(data)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for an entry point."""
    logging.basicConfig(
        level=(level or os.environ.get("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
