"""
Configuration loading for the SVID helper.

Loads a YAML file, applies environment variable overrides and ${key}
substitution, and validates the result into an immutable SidecarConfig.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

from ..exceptions import ConfigError
from .constants import ENV_PREFIX, MAX_CONFIG_SIZE_BYTES
from .schemas import LoggingConfig, SidecarConfig

# Nested sections addressable from the environment, e.g. SVIDHELPER_LOGGING_LEVEL
_SECTIONS: dict[str, type[BaseModel]] = {"logging": LoggingConfig}

_VAR_PATTERN = re.compile(r"\$\{([a-zA-Z0-9_.]+)\}")


def _check_file_size(fname_path: Path) -> None:
    """Reject oversized config files before parsing them."""
    file_size = os.path.getsize(fname_path)
    if file_size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError(
            "configuration file exceeds maximum size",
            file=str(fname_path),
            size=file_size,
            max_size=MAX_CONFIG_SIZE_BYTES,
        )


def _read_yaml(fname_path: Path) -> dict[str, Any]:
    try:
        with open(fname_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            "invalid YAML in configuration file", file=str(fname_path), error=str(e)
        ) from e
    except OSError as e:
        raise ConfigError(
            "cannot read configuration file", file=str(fname_path), error=str(e)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping", file=str(fname_path))
    return data


def _lookup(data: dict[str, Any], path: str) -> Any:
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            raise ConfigError("undefined variable in configuration", variable=path)
        current = current[part]
    return current


def resolve_variables(data: dict[str, Any]) -> dict[str, Any]:
    """
    Replace ${key} references in string values with other config values.

    References are resolved against the document as loaded, so a value can
    point at another key but not at the result of another substitution:
    ``cmd_args: -c ${cert_dir}/envoy.yaml``.

    Raises:
        ConfigError: If a referenced key does not exist
    """

    def substitute(match: re.Match) -> str:
        return str(_lookup(data, match.group(1)))

    def resolve(content: Any) -> Any:
        if isinstance(content, dict):
            return {k: resolve(v) for k, v in content.items()}
        if isinstance(content, str):
            return _VAR_PATTERN.sub(substitute, content)
        return content

    return resolve(data)  # type: ignore[no-any-return]


def _env_key_to_path(env_key: str, env_prefix: str) -> list[str]:
    """
    Convert environment variable key to configuration path.

    Top-level keys contain underscores themselves, so only known section
    names are split off: SVIDHELPER_CERT_DIR -> ['cert_dir'],
    SVIDHELPER_LOGGING_LEVEL -> ['logging', 'level'].
    """
    rest = env_key[len(env_prefix) :].lower()
    for section in _SECTIONS:
        if rest.startswith(section + "_"):
            return [section, rest[len(section) + 1 :]]
    return [rest]


def _is_config_field(path: list[str]) -> bool:
    """Whether a config path names a SidecarConfig field or a section field."""
    if len(path) == 2:
        return path[1] in _SECTIONS[path[0]].model_fields
    return path[0] in SidecarConfig.model_fields and path[0] not in _SECTIONS


def collect_env_overrides(env_prefix: str = ENV_PREFIX) -> dict[str, str]:
    """
    Get all environment variable overrides that would be applied.

    Variables sharing the prefix but naming no config field, such as
    SVIDHELPER_HOME, are not overrides and are skipped.

    Returns:
        Mapping of dotted config path to raw string value
    """
    overrides = {}
    for key, value in os.environ.items():
        if not key.startswith(env_prefix) or len(key) == len(env_prefix):
            continue
        path = _env_key_to_path(key, env_prefix)
        if _is_config_field(path):
            overrides[".".join(path)] = value
    return overrides


def apply_env_overrides(
    data: dict[str, Any], env_prefix: str = ENV_PREFIX
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration data.

    Values stay strings; schema validation coerces them to the field type.
    """
    for dotted, value in collect_env_overrides(env_prefix).items():
        path = dotted.split(".")
        current = data
        for part in path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value
    return data


def validate_config(data: dict[str, Any], source: str | None = None) -> SidecarConfig:
    """
    Validate a raw config mapping into a SidecarConfig.

    Raises:
        ConfigError: If validation fails
    """
    try:
        return SidecarConfig.model_validate(data)
    except ValidationError as e:
        context: dict[str, Any] = {"errors": e.error_count()}
        if source:
            context["file"] = source
        first = e.errors()[0]
        location = ".".join(str(p) for p in first["loc"]) or "<root>"
        raise ConfigError(
            f"invalid configuration: {location}: {first['msg']}", **context
        ) from e


def load_config(
    fname: str | Path,
    enable_env_overrides: bool = True,
    env_prefix: str = ENV_PREFIX,
) -> SidecarConfig:
    """
    Load the helper configuration from a YAML file.

    Environment Variable Override Format:
        SVIDHELPER_<KEY>=value
        SVIDHELPER_<SECTION>_<KEY>=value

    Examples:
        SVIDHELPER_RENEW_SIGNAL=SIGHUP
        SVIDHELPER_LOGGING_LEVEL=debug

    Args:
        fname: Path to the YAML configuration file
        enable_env_overrides: Whether to apply environment variable overrides
        env_prefix: Prefix for environment variables

    Returns:
        Validated, immutable SidecarConfig

    Raises:
        ConfigError: If the file is missing, too large, malformed or invalid
    """
    fname_path = Path(fname).expanduser().resolve()
    if not fname_path.is_file():
        raise ConfigError("configuration file not found", file=str(fname))

    _check_file_size(fname_path)
    data = _read_yaml(fname_path)

    if enable_env_overrides:
        data = apply_env_overrides(data, env_prefix)

    return validate_config(resolve_variables(data), source=str(fname_path))
