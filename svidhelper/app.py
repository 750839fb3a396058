"""
Sidecar assembly.

Wires a configuration, a logger and an update source into a runnable
RotationDaemon.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from .credentials import CredentialWriter
from .daemon import DEFAULT_POLL_INTERVAL, RotationDaemon
from .exceptions import ConfigError, HelperError
from .log import LoggerFactory
from .source import SourceFactory, load_source_factory
from .supervisor import ProcessSupervisor, Spawner
from .workload import create_source as create_workload_source

if TYPE_CHECKING:
    from .config import SidecarConfig
    from .log import Logger
    from .source import UpdateSource


class Sidecar:
    """
    A configured helper instance.

    Example:
        config = load_config("helper.yaml")
        sidecar = Sidecar.from_config(config, lg)
        sidecar.run()
    """

    def __init__(
        self,
        config: SidecarConfig,
        lg: Logger,
        source: UpdateSource,
        spawner: Spawner | None = None,
        handle_signals: bool = True,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._config = config
        self._lg = lg
        self._source = source
        self._writer = CredentialWriter.from_config(lg, config)
        self._supervisor = ProcessSupervisor.from_config(lg, config, spawner)
        self._daemon = RotationDaemon(
            lg,
            config,
            source,
            writer=self._writer,
            supervisor=self._supervisor,
            handle_signals=handle_signals,
            poll_interval=poll_interval,
        )

    @classmethod
    def from_config(
        cls,
        config: SidecarConfig,
        lg: Logger,
        source: UpdateSource | None = None,
        **kwargs,
    ) -> Sidecar:
        """
        Build a sidecar, creating the update source from config if needed.

        Without a ``source`` key the Workload API source is used, connected
        to ``agent_address``.

        Raises:
            ConfigError: If the configured factory cannot be loaded or fails
        """
        if source is None:
            source = cls._create_source(config, lg)
        return cls(config, lg, source, **kwargs)

    @staticmethod
    def _create_source(config: SidecarConfig, lg: Logger) -> UpdateSource:
        factory: SourceFactory = create_workload_source
        if config.source:
            factory = load_source_factory(config.source)

        source_lg = LoggerFactory.derive(lg, "source")
        try:
            return factory(config, source_lg)
        except HelperError:
            raise
        except Exception as e:
            raise ConfigError(
                "cannot create update source",
                source=config.source or "workload",
                error=str(e),
            ) from e

    @property
    def config(self) -> SidecarConfig:
        return self._config

    @property
    def source(self) -> UpdateSource:
        return self._source

    @property
    def daemon(self) -> RotationDaemon:
        return self._daemon

    @property
    def supervisor(self) -> ProcessSupervisor:
        return self._supervisor

    def run(self, cancel: threading.Event | None = None) -> None:
        """Log the startup banner and run the daemon until it stops."""
        self._lg.info(
            "sidecar is up", extra={"agent": self._config.agent_address or "-"}
        )
        if not self._config.cmd:
            self._lg.warning("no cmd defined to execute")
        self._daemon.run(cancel)
