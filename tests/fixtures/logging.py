"""
Logging fixtures for testing.

Provides fixtures for loggers and captured log output.
"""

import logging
from collections.abc import Generator
from io import StringIO

import pytest

from svidhelper.log import LogConfig, Logger, LoggerFactory


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """
    Reset Python logging global state after each test.

    Removes the helper's "/"-named loggers so every test builds a fresh
    logger tree with its own handlers.
    """
    yield

    for name in list(logging.root.manager.loggerDict.keys()):
        if name.startswith("/") or name.startswith("test"):
            del logging.root.manager.loggerDict[name]


@pytest.fixture
def log_stream() -> StringIO:
    """Stream receiving the output of the lg fixture."""
    return StringIO()


@pytest.fixture
def sample_log_config() -> LogConfig:
    """
    Provide a sample LogConfig for testing.

    Returns:
        LogConfig: Debug level, no colors
    """
    return LogConfig.from_params(level="trace", location=False, colors=False)


@pytest.fixture
def lg(sample_log_config: LogConfig, log_stream: StringIO) -> Logger:
    """
    Provide a root logger writing to log_stream.

    Returns:
        Logger: Root logger instance
    """
    return LoggerFactory.create_root(sample_log_config, stream=log_stream)
