"""
Immutable configuration for loggers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .constants import LogConstants
from .exceptions import InvalidLogLevelError


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable configuration for root loggers.

    Derived loggers share the root's handlers and therefore its display
    settings; they only differ in name.
    """

    level: int | bool = logging.INFO  # int for normal levels, False to disable logging
    location: int = 0
    micros: bool = False
    colors: bool = True

    @staticmethod
    def _resolve_level(level: str | int | bool) -> int | bool:
        """Resolve level parameter to int or False."""
        if isinstance(level, bool):
            return False if not level else logging.INFO
        if isinstance(level, str):
            if level.isnumeric():
                return int(level)
            key = level.lower()
            if key in LogConstants.LEVEL_NAMES:
                return LogConstants.LEVEL_NAMES[key]
            raise InvalidLogLevelError(level)
        return level

    @classmethod
    def from_params(
        cls,
        level: str | int | bool,
        location: bool | int = 0,
        micros: bool = False,
        colors: bool = True,
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Log level (string name, numeric value, or False to disable logging)
            location: Location display level (bool or int)
            micros: Whether to show microsecond precision
            colors: Whether to enable colored output

        Returns:
            LogConfig instance
        """
        resolved_location = (
            1 if location is True else (0 if location is False else int(location))
        )
        return cls(
            level=cls._resolve_level(level),
            location=resolved_location,
            micros=micros,
            colors=colors,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LogConfig:
        """Create LogConfig from a logging config section."""
        return cls.from_params(
            level=data.get("level", "info"),
            location=data.get("location", 0),
            micros=data.get("micros", False),
            colors=data.get("colors", True),
        )
