"""
Log record formatting.

Renders records as::

    [12:34:56,789] [I] wrote credentials          [dir:/certs] [4242] [/daemon]

with extra fields as sorted ``[key:value]`` pairs, followed by the process id
and the logger name, optionally the source location, and ANSI colors per level.
"""

import collections
import logging
import os
import time
from typing import Any

from .colors import ColorManager
from .config import LogConfig
from .constants import LogConstants

EXTRA_ATTR = "__helper__extra"


def _format_value(value: Any) -> str:
    if isinstance(value, BaseException):
        return f"{value.__class__.__name__}: {value}"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _extra_items(record: logging.LogRecord) -> list[tuple[str, Any]]:
    extra = getattr(record, EXTRA_ATTR, None)
    if not extra:
        return []
    keys = list(extra.keys())
    if not isinstance(extra, collections.OrderedDict):
        keys.sort()
    return [(key, extra[key]) for key in keys]


class LogFormatter(logging.Formatter):
    """Formatter producing the helper's bracketed console lines."""

    def __init__(self, config: LogConfig) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config

    @property
    def config(self) -> LogConfig:
        return self._config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format timestamp as HH:MM:SS,mmm (plus microseconds when enabled)."""
        s = time.strftime(datefmt or "%H:%M:%S", self.converter(record.created))
        fraction = record.created % 1
        s += f",{int(fraction * 1000):03d}"
        if self._config.micros:
            s += f"{int(fraction * 1_000_000) % 1000:03d}"
        return s

    def _rule(self) -> int:
        if self._config.micros:
            return LogConstants.MICRO_RULE_WIDTH
        return LogConstants.DEFAULT_RULE_WIDTH

    def _location(self, record: logging.LogRecord) -> str:
        if self._config.location <= 0:
            return ""
        return f" [{os.path.basename(record.pathname)}:{record.lineno}]"

    def format(self, record: logging.LogRecord) -> str:
        head = (
            f"[{self.formatTime(record)}] "
            f"[{record.levelname[:1]}] {record.getMessage()}"
        )
        fields = [f"[{k}:{_format_value(v)}]" for k, v in _extra_items(record)]
        meta = f"[{record.process}] [{record.name}]"

        if self._config.colors:
            col = ColorManager.get_color_for_level(record.levelno)
            line = ColorManager.bold(col) + head + ColorManager.RESET + col + "m"
            line += " " * max(1, self._rule() - len(head))
            line += " ".join(fields + [meta]) + self._location(record)
            line += ColorManager.RESET
        else:
            line = head + " " * max(1, self._rule() - len(head))
            line += " ".join(fields + [meta]) + self._location(record)

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line
