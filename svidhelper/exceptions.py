"""
Unified exception hierarchy for the SVID helper.

Every error raised by the helper derives from HelperError, so callers can
catch all helper failures with a single except clause while still telling
rotation-local failures (credentials, supervision) apart from configuration
problems.
"""

from typing import Any


class HelperError(Exception):
    """
    Base exception for all helper errors.

    Example:
        try:
            writer.dump_bundle(update)
        except HelperError as e:
            lg.error("rotation failed", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(HelperError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found
        - Invalid YAML syntax
        - Missing or invalid configuration value
        - Update source factory cannot be imported
    """

    pass


class CredentialError(HelperError):
    """
    Raised when an identity update cannot be written to disk.

    Examples:
        - Update carries no SVIDs
        - Certificate bytes are not valid DER
        - Credential directory is missing or not writable
    """

    pass


class SupervisorError(HelperError):
    """Base class for child process supervision errors."""

    pass


class SpawnError(SupervisorError):
    """Raised when the child process cannot be started."""

    pass


class UnknownSignalError(SupervisorError):
    """Raised when a signal name is not in the recognized signal table."""

    def __init__(self, name: Any) -> None:
        self.name = name
        super().__init__(f"unrecognized signal: {name}")


class SignalDeliveryError(SupervisorError):
    """Raised when the reload signal cannot be delivered to the child."""

    pass


class SourceError(HelperError):
    """
    Fatal identity update source errors.

    Raised by update sources from start() when they can no longer deliver
    updates (e.g. the agent socket went away). Terminates the daemon.
    """

    pass
