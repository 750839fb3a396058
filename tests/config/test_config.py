"""
Tests for svidhelper.config loading, overrides and validation.
"""

import os
from pathlib import Path

import pytest

import svidhelper.config.config as config_module
from svidhelper.config import (
    DEFAULT_TIMEOUT_SECS,
    MAX_CONFIG_SIZE_BYTES,
    SidecarConfig,
    apply_env_overrides,
    collect_env_overrides,
    load_config,
    resolve_variables,
    validate_config,
)
from svidhelper.exceptions import ConfigError

FULL_CONFIG = """\
agent_address: /tmp/agent.sock
cmd: ghostunnel
cmd_args: server --listen localhost:8002 --target localhost:8001
cert_dir: /run/certs
renew_signal: SIGHUP
svid_file_name: svid.pem
svid_key_file_name: svid_key.pem
svid_bundle_file_name: svid_bundle.pem
timeout: 10s
logging:
  level: debug
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove helper overrides inherited from the test environment."""
    for key in list(os.environ):
        if key.startswith("SVIDHELPER_"):
            monkeypatch.delenv(key)


@pytest.fixture
def write_config(tmp_path):
    def _write(content: str, name: str = "helper.yaml") -> Path:
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write


@pytest.mark.unit
class TestSidecarConfig:
    """Test schema defaults and coercion."""

    def test_defaults(self):
        """Test an empty config validates to the documented defaults."""
        config = SidecarConfig()

        assert config.agent_address == ""
        assert config.cmd == ""
        assert config.cmd_args == ""
        assert config.cert_dir == "."
        assert config.renew_signal == "SIGUSR1"
        assert config.timeout == DEFAULT_TIMEOUT_SECS
        assert config.source is None
        assert config.logging.level == "info"

    @pytest.mark.parametrize(
        "value,expected",
        [("10s", 10.0), ("1m30s", 90.0), ("2.5", 2.5), (3, 3.0), ("", 5.0)],
    )
    def test_timeout_forms(self, value, expected):
        """Test timeouts accept durations, numbers and empty strings."""
        assert SidecarConfig(timeout=value).timeout == expected

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            SidecarConfig(timeout="soon")

    def test_negative_timeout(self):
        with pytest.raises(ValueError):
            SidecarConfig(timeout=-1)

    def test_paths(self):
        """Test file paths are joined onto cert_dir."""
        config = SidecarConfig(cert_dir="/run/certs", svid_file_name="cert.pem")

        assert config.svid_path == Path("/run/certs/cert.pem")
        assert config.key_path == Path("/run/certs/svid_key.pem")
        assert config.bundle_path == Path("/run/certs/svid_bundle.pem")

    def test_frozen(self):
        config = SidecarConfig()
        with pytest.raises(ValueError):
            config.cmd = "other"  # type: ignore[misc]

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            SidecarConfig(unknown_key=1)  # type: ignore[call-arg]

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            SidecarConfig(logging={"level": "loud"})


@pytest.mark.unit
class TestLoadConfig:
    """Test load_config with files on disk."""

    def test_full_config(self, write_config):
        """Test every documented key is read."""
        config = load_config(write_config(FULL_CONFIG))

        assert config.agent_address == "/tmp/agent.sock"
        assert config.cmd == "ghostunnel"
        assert config.cmd_args.startswith("server --listen")
        assert config.cert_dir == "/run/certs"
        assert config.renew_signal == "SIGHUP"
        assert config.timeout == 10.0
        assert config.logging.level == "debug"

    def test_empty_file(self, write_config):
        """Test an empty file yields defaults."""
        assert load_config(write_config("")) == SidecarConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, write_config):
        with pytest.raises(ConfigError, match="invalid YAML"):
            load_config(write_config("cmd: [unclosed"))

    def test_non_mapping_root(self, write_config):
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(write_config("- a\n- b\n"))

    def test_oversized_file(self, write_config):
        path = write_config("#" * (MAX_CONFIG_SIZE_BYTES + 1))

        with pytest.raises(ConfigError, match="maximum size") as exc_info:
            load_config(path)

        assert exc_info.value.context["max_size"] == MAX_CONFIG_SIZE_BYTES

    def test_validation_error(self, write_config):
        """Test schema failures name the offending key."""
        with pytest.raises(ConfigError, match="timeout") as exc_info:
            load_config(write_config("timeout: forever\n"))

        assert exc_info.value.context["file"].endswith("helper.yaml")

    def test_unknown_key(self, write_config):
        with pytest.raises(ConfigError, match="bogus"):
            load_config(write_config("bogus: 1\n"))

    def test_variable_substitution(self, write_config):
        """Test ${key} references other config values."""
        config = load_config(
            write_config("cert_dir: /run/certs\ncmd_args: -c ${cert_dir}/app.yaml\n")
        )

        assert config.cmd_args == "-c /run/certs/app.yaml"

    def test_env_overrides(self, write_config, monkeypatch):
        """Test environment variables override file values."""
        monkeypatch.setenv("SVIDHELPER_RENEW_SIGNAL", "SIGHUP")
        monkeypatch.setenv("SVIDHELPER_TIMEOUT", "30s")
        monkeypatch.setenv("SVIDHELPER_LOGGING_LEVEL", "warning")

        config = load_config(write_config(FULL_CONFIG))

        assert config.renew_signal == "SIGHUP"
        assert config.timeout == 30.0
        assert config.logging.level == "warning"

    def test_unrelated_env_variable_ignored(self, write_config, monkeypatch):
        """Test a foreign SVIDHELPER_ variable does not break loading."""
        monkeypatch.setenv("SVIDHELPER_HOME", "/opt/svid")

        config = load_config(write_config("cmd: echo\n"))

        assert config.cmd == "echo"

    def test_unreadable_file(self, write_config, monkeypatch):
        """Test an OS error while reading is reported as ConfigError."""
        path = write_config("cmd: echo\n")

        def deny(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(config_module, "open", deny, raising=False)

        with pytest.raises(ConfigError, match="cannot read") as exc_info:
            load_config(path)

        assert "Permission denied" in exc_info.value.context["error"]

    def test_env_overrides_disabled(self, write_config, monkeypatch):
        monkeypatch.setenv("SVIDHELPER_CMD", "other")

        config = load_config(write_config(FULL_CONFIG), enable_env_overrides=False)

        assert config.cmd == "ghostunnel"


@pytest.mark.unit
class TestEnvOverrides:
    """Test environment override helpers."""

    def test_collect(self, monkeypatch):
        monkeypatch.setenv("SVIDHELPER_CERT_DIR", "/certs")
        monkeypatch.setenv("SVIDHELPER_LOGGING_COLORS", "false")
        monkeypatch.setenv("SVIDHELPER_", "ignored")

        assert collect_env_overrides() == {
            "cert_dir": "/certs",
            "logging.colors": "false",
        }

    def test_unrelated_variables_skipped(self, monkeypatch):
        """Test prefixed variables naming no config field are not overrides."""
        monkeypatch.setenv("SVIDHELPER_HOME", "/opt/svid")
        monkeypatch.setenv("SVIDHELPER_LOGGING_STYLE", "fancy")
        monkeypatch.setenv("SVIDHELPER_LOGGING", "debug")
        monkeypatch.setenv("SVIDHELPER_CMD", "envoy")

        assert collect_env_overrides() == {"cmd": "envoy"}

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("MYAPP_CMD", "envoy")

        assert collect_env_overrides("MYAPP_") == {"cmd": "envoy"}

    def test_apply_creates_sections(self, monkeypatch):
        monkeypatch.setenv("SVIDHELPER_LOGGING_LEVEL", "debug")

        data = apply_env_overrides({"cmd": "envoy"})

        assert data == {"cmd": "envoy", "logging": {"level": "debug"}}

    def test_string_values_are_coerced(self, monkeypatch):
        """Test string overrides are typed by schema validation."""
        monkeypatch.setenv("SVIDHELPER_LOGGING_COLORS", "false")

        config = validate_config(apply_env_overrides({}))

        assert config.logging.colors is False


@pytest.mark.unit
class TestResolveVariables:
    """Test ${key} substitution."""

    def test_nested_reference(self):
        data = {"logging": {"level": "debug"}, "cmd_args": "--log ${logging.level}"}

        assert resolve_variables(data)["cmd_args"] == "--log debug"

    def test_non_strings_untouched(self):
        data = {"timeout": 5, "logging": {"colors": False}}

        assert resolve_variables(data) == data

    def test_undefined_variable(self):
        with pytest.raises(ConfigError, match="undefined variable") as exc_info:
            resolve_variables({"cmd": "${missing}"})

        assert exc_info.value.context["variable"] == "missing"
