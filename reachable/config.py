"""Configuration loader and process-wide defaults."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


# Seconds between probes when a Checker does not set its own interval.
DEFAULT_INTERVAL = 60.0

# Bound on a single TCP connect attempt in seconds.
DEFAULT_TIMEOUT = 3.0

# Port used when a target is given without one.
DEFAULT_PORT = 80


@dataclass
class Defaults:
    """Process-wide settings consumed by every Checker at start time.

    Mutable on purpose: driver programs adjust these once at startup
    (e.g. from command-line flags) before starting any checker.
    """

    interval: float = DEFAULT_INTERVAL
    timeout: float = DEFAULT_TIMEOUT


defaults = Defaults()


def set_defaults(interval: float | None = None, timeout: float | None = None) -> None:
    """Update the process-wide default interval and/or timeout.

    Raises:
        ConfigError: If a given value is not positive.
    """
    if interval is not None:
        if interval <= 0:
            raise ConfigError(f"Default interval must be positive (got {interval})")
        defaults.interval = float(interval)
    if timeout is not None:
        if timeout <= 0:
            raise ConfigError(f"Default timeout must be positive (got {timeout})")
        defaults.timeout = float(timeout)


def split_target(target: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split a ``host[:port]`` target into host and port.

    Accepts ``host``, ``host:port`` and ``[ipv6]:port``. A bare IPv6 literal
    (more than one colon, no brackets) is taken as a host on the default port.

    Raises:
        ConfigError: If the host is empty or the port is not a valid TCP port.
    """
    target = target.strip()
    if not target:
        raise ConfigError("Target cannot be empty")

    port_text: str | None = None
    if target.startswith("["):
        host, sep, rest = target[1:].partition("]")
        if not sep:
            raise ConfigError(f"Missing ']' in target '{target}'")
        if rest:
            if not rest.startswith(":"):
                raise ConfigError(f"Unexpected characters after ']' in target '{target}'")
            port_text = rest[1:]
    elif target.count(":") == 1:
        host, port_text = target.split(":")
    else:
        host = target

    if not host:
        raise ConfigError(f"Target '{target}' has no host")

    if port_text is None:
        return host, default_port

    try:
        port = int(port_text)
    except ValueError:
        raise ConfigError(f"Invalid port in target '{target}'")
    if not (1 <= port <= 65535):
        raise ConfigError(f"Port must be between 1 and 65535 in target '{target}'")
    return host, port


@dataclass(frozen=True)
class MonitorConfig:
    """Configuration for the poll loop."""

    interval: float = DEFAULT_INTERVAL  # seconds between probes
    timeout: float = DEFAULT_TIMEOUT  # seconds allowed for the TCP connect

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ConfigError(f"Monitor interval must be positive (got {self.interval})")
        if self.timeout <= 0:
            raise ConfigError(f"Monitor timeout must be positive (got {self.timeout})")


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    targets: list[str]
    monitor: MonitorConfig = field(default_factory=MonitorConfig)

    def __post_init__(self) -> None:
        if not self.targets:
            raise ConfigError("At least one target must be configured")
        for target in self.targets:
            split_target(target)


def _parse_monitor_config(data: dict | None) -> MonitorConfig:
    """Parse monitor configuration section."""
    if data is None:
        return MonitorConfig()
    if not isinstance(data, dict):
        raise ConfigError("'monitor' section must be a dictionary")

    try:
        return MonitorConfig(
            interval=float(data.get("interval", DEFAULT_INTERVAL)),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid monitor setting: {e}")


def _parse_targets(data: list | None) -> list[str]:
    """Parse the targets list, accepting plain strings or host/port mappings."""
    if data is None:
        raise ConfigError("Configuration must contain a 'targets' section")
    if not isinstance(data, list):
        raise ConfigError("'targets' must be a list")

    targets: list[str] = []
    for i, entry in enumerate(data):
        if isinstance(entry, str):
            targets.append(entry)
        elif isinstance(entry, dict):
            host = entry.get("host")
            if host is None:
                raise ConfigError(f"Target entry {i} is missing 'host' field")
            port = entry.get("port")
            targets.append(f"{host}:{port}" if port is not None else str(host))
        else:
            raise ConfigError(f"Target entry {i} must be a string or a dictionary")
    return targets


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - REACHABLE_MONITOR_INTERVAL: Override monitor.interval
    - REACHABLE_MONITOR_TIMEOUT: Override monitor.timeout
    - REACHABLE_TARGETS: Override targets (comma separated)
    """
    if config_data.get("monitor") is None:
        config_data["monitor"] = {}
    monitor = config_data["monitor"]

    # A malformed section is left alone so _parse_monitor_config reports it
    if isinstance(monitor, dict):
        monitor_interval = os.environ.get("REACHABLE_MONITOR_INTERVAL")
        if monitor_interval is not None:
            monitor["interval"] = monitor_interval

        monitor_timeout = os.environ.get("REACHABLE_MONITOR_TIMEOUT")
        if monitor_timeout is not None:
            monitor["timeout"] = monitor_timeout

    targets = os.environ.get("REACHABLE_TARGETS")
    if targets is not None:
        config_data["targets"] = [t.strip() for t in targets.split(",") if t.strip()]

    return config_data


def load_config(config_path: str) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    data = _apply_env_overrides(data)

    return Config(
        targets=_parse_targets(data.get("targets")),
        monitor=_parse_monitor_config(data.get("monitor")),
    )
