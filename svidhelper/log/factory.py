"""
Factory for creating and configuring loggers.
"""

import collections
import logging
import sys
from typing import IO, Any, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(config: LogConfig, stream: IO[str] | None = None) -> Logger:
        """
        Create the root logger ("/") with a console handler.

        Example:
            >>> lg = LoggerFactory.create_root(LogConfig.from_params("info"))
            >>> lg.info("sidecar is up", extra={"agent": "/tmp/agent.sock"})
            [12:34:56,789] [I] sidecar is up        [agent:/tmp/agent.sock] [1234] [/]
        """
        return LoggerFactory.create("/", config, stream=stream)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        extra: dict[str, Any] | collections.OrderedDict | None = None,
        stream: IO[str] | None = None,
    ) -> Logger:
        """
        Create a logger with its own console handler.

        An existing logger of the same name is returned unchanged.

        Args:
            name: Logger name
            config: Logger configuration
            extra: Pre-populated extra fields to include in all log records
            stream: Output stream (default: stderr)
        """
        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            return existing

        lg = Logger(name, config, extra)
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(LogFormatter(config))
        if config.level is not False:
            handler.setLevel(config.level)
        lg.addHandler(handler)
        lg.propagate = False
        lg.parent = logging.root

        # Register so later lookups by name find the same instance
        logging.root.manager.loggerDict[name] = lg
        return lg

    @staticmethod
    def derive(parent: Logger, tags: str | list[str]) -> Logger:
        """
        Derive a "view" logger that delegates to root's handlers.

        Examples:
            >>> root = LoggerFactory.create_root(config)  # name: "/"
            >>> LoggerFactory.derive(root, "daemon").name
            '/daemon'
            >>> LoggerFactory.derive(root, ["supervisor", "watcher"]).name
            '/supervisor/watcher'

        Args:
            parent: Parent logger instance
            tags: Single tag string OR list of tag strings to form hierarchy

        Returns:
            Derived logger sharing the parent's level and configuration
        """
        if isinstance(tags, str):
            tags = [tags]

        prefix = parent.name if parent.name == "/" else parent.name + "/"
        name = prefix + "/".join(tags)

        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            return cast(Logger, existing)

        lg = Logger(name, parent.config)
        lg.setLevel(parent.level)
        lg.disabled = parent.disabled
        lg._root_logger = parent._root_logger or parent
        lg.parent = parent
        lg.propagate = False

        logging.root.manager.loggerDict[name] = lg
        return lg
