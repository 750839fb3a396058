"""
Child process supervision.

The supervisor owns a single child process slot. The first rotation starts
the child; every later rotation while it is alive sends it the configured
reload signal so it re-reads its credentials in place. A watcher thread per
child resets the slot when the child exits, so the next rotation starts a
fresh one.

The supervisor never kills the child.
"""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from .exceptions import SignalDeliveryError, SpawnError
from .log import LoggerFactory
from .signals import resolve

if TYPE_CHECKING:
    from .config import SidecarConfig
    from .log import Logger


class ProcessHandle(Protocol):
    """The part of subprocess.Popen the supervisor relies on."""

    pid: int

    def send_signal(self, sig: int) -> None: ...

    def wait(self) -> int: ...


Spawner = Callable[[list[str]], ProcessHandle]


class ChildState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"


@dataclass
class ChildSlot:
    """Child process lifecycle state."""

    state: ChildState = ChildState.NOT_STARTED
    process: ProcessHandle | None = None
    watcher: threading.Thread | None = None
    spawn_count: int = 0


def popen_spawner(argv: list[str]) -> ProcessHandle:
    """Start argv with stdout and stderr inherited from the helper."""
    return subprocess.Popen(argv)


def build_argv(cmd: str, cmd_args: str) -> list[str]:
    """
    Build the child argv.

    Arguments are split on single spaces: quoting is not understood and
    repeated spaces yield empty arguments, as does an empty argument string.
    """
    return [cmd, *cmd_args.split(" ")]


class ProcessSupervisor:
    """
    Starts the child once, then signals it on each rotation.

    Example:
        supervisor = ProcessSupervisor(lg, "envoy", "-c /etc/envoy.yaml", "SIGHUP")
        supervisor.ensure_running_or_signal()  # spawns envoy
        supervisor.ensure_running_or_signal()  # sends SIGHUP to envoy

    Args:
        lg: Logger
        cmd: Child executable
        cmd_args: Argument string, split on single spaces
        renew_signal: Name of the reload signal, e.g. "SIGUSR1"
        spawner: Callable starting argv and returning a process handle
            (default: subprocess.Popen)
    """

    def __init__(
        self,
        lg: Logger,
        cmd: str,
        cmd_args: str = "",
        renew_signal: str = "SIGUSR1",
        spawner: Spawner | None = None,
    ) -> None:
        self._lg = LoggerFactory.derive(lg, "supervisor")
        self._cmd = cmd
        self._cmd_args = cmd_args
        self._renew_signal = renew_signal
        self._spawner = spawner or popen_spawner

        self._slot = ChildSlot()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls, lg: Logger, config: SidecarConfig, spawner: Spawner | None = None
    ) -> ProcessSupervisor:
        return cls(lg, config.cmd, config.cmd_args, config.renew_signal, spawner)

    @property
    def argv(self) -> list[str]:
        return build_argv(self._cmd, self._cmd_args)

    @property
    def running(self) -> bool:
        """Whether a spawned child has not been observed exiting yet."""
        with self._lock:
            return self._slot.state is ChildState.RUNNING

    @property
    def state(self) -> ChildState:
        with self._lock:
            return self._slot.state

    @property
    def pid(self) -> int | None:
        """Process ID of the current child, if running."""
        with self._lock:
            proc = self._slot.process
        return proc.pid if proc else None

    @property
    def spawn_count(self) -> int:
        """Number of children started so far."""
        return self._slot.spawn_count

    def ensure_running_or_signal(self) -> None:
        """
        Start the child if it is not running, otherwise signal it to reload.

        Raises:
            SpawnError: If the child cannot be started
            UnknownSignalError: If the reload signal name is not recognized
            SignalDeliveryError: If the signal cannot be delivered
        """
        with self._lock:
            proc = self._slot.process
            if self._slot.state is ChildState.NOT_STARTED or proc is None:
                self._spawn()
                return

        self._signal(proc)

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for the current child to exit and be observed by its watcher.

        Returns:
            True if no child is running afterwards
        """
        with self._lock:
            watcher = self._slot.watcher
        if watcher is not None:
            watcher.join(timeout)
        return not self.running

    def _spawn(self) -> None:
        """Spawn a new child. Called with the lock held."""
        argv = self.argv
        try:
            proc = self._spawner(argv)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            raise SpawnError(
                "error executing process", cmd=self._cmd, error=str(e)
            ) from e

        self._slot.process = proc
        self._slot.state = ChildState.RUNNING
        self._slot.spawn_count += 1

        self._lg.info("started child process", extra={"cmd": argv, "pid": proc.pid})

        watcher = threading.Thread(
            target=self._watch,
            args=(proc,),
            daemon=True,
            name=f"child-watcher-{proc.pid}",
        )
        self._slot.watcher = watcher
        watcher.start()

    def _watch(self, proc: ProcessHandle) -> None:
        """Block until the child exits, then free the slot."""
        code = None
        try:
            code = proc.wait()
        finally:
            with self._lock:
                # Only clear the slot if it still belongs to this child
                if self._slot.process is proc:
                    self._slot.process = None
                    self._slot.state = ChildState.NOT_STARTED
            self._lg.info("child process exited", extra={"pid": proc.pid, "code": code})

    def _signal(self, proc: ProcessHandle) -> None:
        sig = resolve(self._renew_signal)
        try:
            proc.send_signal(sig)
        except OSError as e:
            raise SignalDeliveryError(
                "error signaling process",
                signal=sig.name,
                pid=proc.pid,
                error=str(e),
            ) from e
        self._lg.debug("signalled child", extra={"signal": sig.name, "pid": proc.pid})
