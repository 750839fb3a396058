"""
Rotation daemon.

Consumes identity updates from an update source, writes each one to disk and
then starts or signals the child process. Runs until SIGINT/SIGTERM, an
external cancellation or a fatal source error, whichever comes first.
"""

from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING

from .credentials import CredentialWriter
from .exceptions import HelperError
from .log import LoggerFactory
from .shutdown import InterruptHandler
from .supervisor import ProcessSupervisor

if TYPE_CHECKING:
    from .config import SidecarConfig
    from .log import Logger
    from .source import IdentityUpdate, UpdateSource

DEFAULT_POLL_INTERVAL = 0.1


class RotationDaemon:
    """
    The helper's event loop.

    Updates are handled one at a time in arrival order. The daemon keeps no
    queue of its own: while an update is being written, further updates wait
    in the source's queue, so slow disk writes throttle the source.

    Example:
        daemon = RotationDaemon(lg, config, source)
        daemon.run()  # returns on SIGINT/SIGTERM

    Args:
        lg: Logger
        config: Helper configuration
        source: Identity update source
        writer: Credential writer (default: built from config)
        supervisor: Process supervisor (default: built from config)
        handle_signals: Install SIGINT/SIGTERM handlers while running. Must be
            False when run() is not called from the main thread.
        poll_interval: Upper bound in seconds on how long a stop request can
            go unnoticed while no update arrives
    """

    def __init__(
        self,
        lg: Logger,
        config: SidecarConfig,
        source: UpdateSource,
        writer: CredentialWriter | None = None,
        supervisor: ProcessSupervisor | None = None,
        handle_signals: bool = True,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._lg = LoggerFactory.derive(lg, "daemon")
        self._config = config
        self._source = source
        self._writer = writer or CredentialWriter.from_config(lg, config)
        self._supervisor = supervisor or ProcessSupervisor.from_config(lg, config)
        self._interrupts = InterruptHandler(self._lg, handle_signals=handle_signals)
        self._poll_interval = poll_interval
        self._errors: queue.Queue[BaseException] = queue.Queue(maxsize=1)

    @property
    def writer(self) -> CredentialWriter:
        return self._writer

    @property
    def supervisor(self) -> ProcessSupervisor:
        return self._supervisor

    @property
    def interrupts(self) -> InterruptHandler:
        return self._interrupts

    def run(self, cancel: threading.Event | None = None) -> None:
        """
        Run until interrupted, cancelled or the source fails.

        The source is started on a background thread and stopped exactly once
        on every exit path.

        Args:
            cancel: Event that ends the loop when set

        Raises:
            Exception: The error raised by the source's start()
        """
        cancel = cancel or threading.Event()

        runner = threading.Thread(
            target=self._run_source, daemon=True, name="update-source"
        )
        with self._interrupts:
            runner.start()
            try:
                self._loop(cancel)
            finally:
                self._source.stop()
                self._lg.debug("stopped update source")

    def _loop(self, cancel: threading.Event) -> None:
        while True:
            if self._interrupts.requested:
                self._lg.info("interrupted, shutting down")
                return
            try:
                error = self._errors.get_nowait()
            except queue.Empty:
                pass
            else:
                raise error
            if cancel.is_set():
                self._lg.info("cancelled, shutting down")
                return

            try:
                update = self._source.updates.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            self.rotate(update)

    def _run_source(self) -> None:
        try:
            self._source.start()
        except Exception as e:
            self._lg.error("update source failed", extra={"exception": e})
            try:
                self._errors.put_nowait(e)
            except queue.Full:
                pass  # the loop only ever reports the first error

    def rotate(self, update: IdentityUpdate) -> None:
        """
        Write an update to disk and start or signal the child.

        Failures are logged; the child is not touched when the write fails.
        """
        self._lg.debug("received identity update", extra={"svids": len(update.svids)})
        try:
            self._writer.dump_bundle(update)
        except HelperError as e:
            self._lg.error("failed to write credentials", extra={"exception": e})
            return

        try:
            self._supervisor.ensure_running_or_signal()
        except HelperError as e:
            self._lg.error("failed to start or signal process", extra={"exception": e})
