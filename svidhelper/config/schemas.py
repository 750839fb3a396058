"""
Configuration schemas using Pydantic for validation.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_TIMEOUT_SECS
from .duration import InvalidDurationError, parse_duration


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="info", description="Log level")
    location: bool | int = Field(default=0, description="Show file locations in logs")
    micros: bool = Field(default=False, description="Show microsecond timestamps")
    colors: bool = Field(default=True, description="Colored console output")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: Any) -> Any:
        """Validate log level is a recognized level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if isinstance(v, str) and v.upper() not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(valid_levels)}"
            )
        return v

    model_config = ConfigDict(frozen=True, extra="forbid")


class SidecarConfig(BaseModel):
    """
    Configuration of one helper run.

    Immutable once loaded; the daemon, writer and supervisor all read from
    the same instance.
    """

    agent_address: str = Field(default="", description="Agent Workload API socket")
    cmd: str = Field(default="", description="Command to run as the child process")
    cmd_args: str = Field(
        default="", description="Child arguments, split on single spaces"
    )
    cert_dir: str = Field(default=".", description="Directory for credential files")
    renew_signal: str = Field(
        default="SIGUSR1", description="Signal sent to the child on rotation"
    )
    svid_file_name: str = Field(default="svid.pem")
    svid_key_file_name: str = Field(default="svid_key.pem")
    svid_bundle_file_name: str = Field(default="svid_bundle.pem")
    timeout: float = Field(
        default=DEFAULT_TIMEOUT_SECS, ge=0, description="Source timeout in seconds"
    )
    source: str | None = Field(
        default=None,
        description="Update source factory, 'module:callable' (default: Workload API)",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("timeout", mode="before")
    @classmethod
    def parse_timeout(cls, v: Any) -> Any:
        """Accept duration strings ("10s", "1m30s") as well as numbers."""
        if v is None or v == "":
            return DEFAULT_TIMEOUT_SECS
        if isinstance(v, str):
            try:
                return float(v)
            except ValueError:
                pass
            try:
                return parse_duration(v)
            except InvalidDurationError as e:
                raise ValueError(str(e)) from e
        return v

    @property
    def svid_path(self) -> Path:
        return Path(self.cert_dir) / self.svid_file_name

    @property
    def key_path(self) -> Path:
        return Path(self.cert_dir) / self.svid_key_file_name

    @property
    def bundle_path(self) -> Path:
        return Path(self.cert_dir) / self.svid_bundle_file_name

    model_config = ConfigDict(frozen=True, extra="forbid")
