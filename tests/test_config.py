"""Tests for the configuration module."""

from pathlib import Path

import pytest

from reachable import config as config_module
from reachable.config import (
    DEFAULT_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    Config,
    ConfigError,
    MonitorConfig,
    load_config,
    set_defaults,
    split_target,
)


@pytest.fixture(autouse=True)
def restore_defaults():
    """Restore process-wide defaults after each test."""
    interval, timeout = config_module.defaults.interval, config_module.defaults.timeout
    yield
    config_module.defaults.interval = interval
    config_module.defaults.timeout = timeout


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure environment overrides from the host don't leak in."""
    for name in ("REACHABLE_MONITOR_INTERVAL", "REACHABLE_MONITOR_TIMEOUT", "REACHABLE_TARGETS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def valid_config_content() -> str:
    """Return a valid configuration YAML content."""
    return """targets:
  - google.com
  - bing.com:443
  - host: 10.0.0.1
    port: 22

monitor:
  interval: 5
  timeout: 2
"""


class TestSplitTarget:
    """Tests for host[:port] parsing."""

    def test_host_without_port_uses_default(self) -> None:
        """A bare hostname probes port 80."""
        assert split_target("example.com") == ("example.com", 80)
        assert DEFAULT_PORT == 80

    def test_explicit_port_is_kept(self) -> None:
        """An explicit port overrides the default."""
        assert split_target("example.com:443") == ("example.com", 443)

    def test_bracketed_ipv6_with_port(self) -> None:
        """IPv6 literals use brackets to carry a port."""
        assert split_target("[::1]:8080") == ("::1", 8080)

    def test_bracketed_ipv6_without_port(self) -> None:
        """Bracketed IPv6 without port uses the default."""
        assert split_target("[2001:db8::1]") == ("2001:db8::1", 80)

    def test_bare_ipv6_uses_default_port(self) -> None:
        """A bare IPv6 literal is a host, not host:port."""
        assert split_target("2001:db8::1") == ("2001:db8::1", 80)

    def test_whitespace_is_stripped(self) -> None:
        """Surrounding whitespace is ignored."""
        assert split_target("  example.com:22 ") == ("example.com", 22)

    def test_rejects_empty_target(self) -> None:
        """Empty target is rejected."""
        with pytest.raises(ConfigError, match="cannot be empty"):
            split_target("")

    def test_rejects_missing_host(self) -> None:
        """Target with only a port is rejected."""
        with pytest.raises(ConfigError, match="has no host"):
            split_target(":443")

    def test_rejects_non_numeric_port(self) -> None:
        """Non-numeric port is rejected."""
        with pytest.raises(ConfigError, match="Invalid port"):
            split_target("example.com:https")

    @pytest.mark.parametrize("port", ["0", "65536"])
    def test_rejects_out_of_range_port(self, port: str) -> None:
        """Ports outside 1-65535 are rejected."""
        with pytest.raises(ConfigError, match="between 1 and 65535"):
            split_target(f"example.com:{port}")

    def test_rejects_unclosed_bracket(self) -> None:
        """Unclosed IPv6 bracket is rejected."""
        with pytest.raises(ConfigError, match="Missing"):
            split_target("[::1:80")


class TestDefaults:
    """Tests for process-wide defaults."""

    def test_initial_values(self) -> None:
        """Defaults start at one minute interval and three second timeout."""
        assert DEFAULT_INTERVAL == 60.0
        assert DEFAULT_TIMEOUT == 3.0

    def test_set_defaults_updates_values(self) -> None:
        """set_defaults changes both settings."""
        set_defaults(interval=5, timeout=1.5)
        assert config_module.defaults.interval == 5.0
        assert config_module.defaults.timeout == 1.5

    def test_set_defaults_none_leaves_value(self) -> None:
        """None leaves the current value untouched."""
        set_defaults(interval=7)
        set_defaults(interval=None, timeout=None)
        assert config_module.defaults.interval == 7.0

    def test_set_defaults_rejects_non_positive(self) -> None:
        """Zero or negative values are rejected."""
        with pytest.raises(ConfigError, match="interval must be positive"):
            set_defaults(interval=0)
        with pytest.raises(ConfigError, match="timeout must be positive"):
            set_defaults(timeout=-1)


class TestMonitorConfig:
    """Tests for MonitorConfig dataclass."""

    def test_defaults(self) -> None:
        """MonitorConfig uses module defaults."""
        monitor = MonitorConfig()
        assert monitor.interval == DEFAULT_INTERVAL
        assert monitor.timeout == DEFAULT_TIMEOUT

    def test_rejects_non_positive_interval(self) -> None:
        """Interval must be positive."""
        with pytest.raises(ConfigError, match="interval must be positive"):
            MonitorConfig(interval=0)

    def test_rejects_non_positive_timeout(self) -> None:
        """Timeout must be positive."""
        with pytest.raises(ConfigError, match="timeout must be positive"):
            MonitorConfig(timeout=0)


class TestConfig:
    """Tests for the Config container."""

    def test_rejects_empty_targets(self) -> None:
        """At least one target is required."""
        with pytest.raises(ConfigError, match="At least one target"):
            Config(targets=[])

    def test_rejects_invalid_target(self) -> None:
        """Targets are validated on construction."""
        with pytest.raises(ConfigError, match="Invalid port"):
            Config(targets=["example.com:abc"])


class TestLoadConfig:
    """Tests for load_config."""

    def test_loads_valid_config(self, tmp_path: Path, valid_config_content: str) -> None:
        """Valid YAML produces a Config."""
        path = tmp_path / "config.yaml"
        path.write_text(valid_config_content)

        config = load_config(str(path))

        assert config.targets == ["google.com", "bing.com:443", "10.0.0.1:22"]
        assert config.monitor.interval == 5.0
        assert config.monitor.timeout == 2.0

    def test_monitor_section_optional(self, tmp_path: Path) -> None:
        """Missing monitor section falls back to defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("targets:\n  - example.com\n")

        config = load_config(str(path))

        assert config.monitor == MonitorConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path: Path) -> None:
        """Empty file raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="empty"):
            load_config(str(path))

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("targets: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse YAML"):
            load_config(str(path))

    def test_non_dict_root(self, tmp_path: Path) -> None:
        """Root must be a mapping."""
        path = tmp_path / "config.yaml"
        path.write_text("- example.com\n")
        with pytest.raises(ConfigError, match="YAML dictionary"):
            load_config(str(path))

    def test_missing_targets(self, tmp_path: Path) -> None:
        """targets section is required."""
        path = tmp_path / "config.yaml"
        path.write_text("monitor:\n  interval: 5\n")
        with pytest.raises(ConfigError, match="'targets'"):
            load_config(str(path))

    def test_targets_must_be_list(self, tmp_path: Path) -> None:
        """targets must be a list."""
        path = tmp_path / "config.yaml"
        path.write_text("targets: example.com\n")
        with pytest.raises(ConfigError, match="must be a list"):
            load_config(str(path))

    def test_target_mapping_requires_host(self, tmp_path: Path) -> None:
        """Mapping targets need a host."""
        path = tmp_path / "config.yaml"
        path.write_text("targets:\n  - port: 80\n")
        with pytest.raises(ConfigError, match="missing 'host'"):
            load_config(str(path))

    def test_monitor_must_be_dict(self, tmp_path: Path) -> None:
        """monitor section must be a mapping."""
        path = tmp_path / "config.yaml"
        path.write_text("targets:\n  - example.com\nmonitor: fast\n")
        with pytest.raises(ConfigError, match="'monitor' section"):
            load_config(str(path))

    def test_non_numeric_interval(self, tmp_path: Path) -> None:
        """Non-numeric interval raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("targets:\n  - example.com\nmonitor:\n  interval: soon\n")
        with pytest.raises(ConfigError, match="Invalid monitor setting"):
            load_config(str(path))


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_interval_and_timeout_override(
        self, tmp_path: Path, valid_config_content: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment overrides monitor values from the file."""
        monkeypatch.setenv("REACHABLE_MONITOR_INTERVAL", "30")
        monkeypatch.setenv("REACHABLE_MONITOR_TIMEOUT", "4.5")
        path = tmp_path / "config.yaml"
        path.write_text(valid_config_content)

        config = load_config(str(path))

        assert config.monitor.interval == 30.0
        assert config.monitor.timeout == 4.5

    def test_targets_override(
        self, tmp_path: Path, valid_config_content: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """REACHABLE_TARGETS replaces the configured targets."""
        monkeypatch.setenv("REACHABLE_TARGETS", "a.example:443, b.example")
        path = tmp_path / "config.yaml"
        path.write_text(valid_config_content)

        config = load_config(str(path))

        assert config.targets == ["a.example:443", "b.example"]

    def test_override_applies_without_monitor_section(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Overrides work when the file has no monitor section."""
        monkeypatch.setenv("REACHABLE_MONITOR_INTERVAL", "12")
        path = tmp_path / "config.yaml"
        path.write_text("targets:\n  - example.com\n")

        config = load_config(str(path))

        assert config.monitor.interval == 12.0
