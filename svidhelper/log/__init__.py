"""
Logging for the SVID helper.

Extends Python's standard logging with:
- A custom TRACE log level
- Colored console output
- Structured extra fields rendered as [key:value]
- Derived "view" loggers that share the root logger's handlers

Components receive their logger as an ``lg`` constructor argument and
derive a named child from it:

    root = LoggerFactory.create_root(LogConfig.from_params("debug"))
    lg = LoggerFactory.derive(root, "daemon")
    lg.info("received update", extra={"spiffe_id": "spiffe://example.org/web"})
"""

import logging

from .config import LogConfig
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger

logging.addLevelName(LogConstants.CUSTOM_LEVELS["TRACE"], "TRACE")

__all__ = [
    "InvalidLogLevelError",
    "LogConfig",
    "LogConstants",
    "LogError",
    "LogFormatter",
    "Logger",
    "LoggerFactory",
]
