"""
Interrupt handling for the rotation daemon.

Installs SIGINT/SIGTERM handlers that record the request instead of raising,
so the daemon loop can notice it between updates and shut down cleanly.
"""

from __future__ import annotations

import signal
import threading
from types import FrameType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .log import Logger

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class InterruptHandler:
    """
    Context manager recording SIGINT/SIGTERM.

    The previous handlers are restored on exit. Handlers can only be
    installed from the main thread; pass handle_signals=False when running
    elsewhere (the handler then only reports interrupts set via trigger()).

    Usage:
        with InterruptHandler(lg) as interrupts:
            while not interrupts.requested:
                ...
    """

    def __init__(self, lg: Logger, handle_signals: bool = True) -> None:
        self._lg = lg
        self._handle_signals = handle_signals
        self._event = threading.Event()
        self._received: signal.Signals | None = None
        self._original_handlers: dict[signal.Signals, Any] = {}

    @property
    def requested(self) -> bool:
        """True once SIGINT or SIGTERM was received."""
        return self._event.is_set()

    @property
    def received(self) -> signal.Signals | None:
        """The stop signal that was received, if any."""
        return self._received

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def trigger(self, signum: int = signal.SIGTERM) -> None:
        """Record a stop request as if the signal had been delivered."""
        self._handle_stop_signal(signum, None)

    def __enter__(self) -> InterruptHandler:
        if self._handle_signals:
            for sig in STOP_SIGNALS:
                self._original_handlers[sig] = signal.signal(
                    sig, self._handle_stop_signal
                )
        return self

    def __exit__(self, *args: object) -> None:
        for sig, handler in self._original_handlers.items():
            # None means the previous handler was not installed from Python
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)
        self._original_handlers.clear()

    def _handle_stop_signal(self, signum: int, frame: FrameType | None) -> None:
        """Handle SIGTERM/SIGINT by recording the request."""
        if self._event.is_set():
            return  # Ignore duplicate signals

        self._received = signal.Signals(signum)
        self._lg.debug(f"received {self._received.name}, stopping")
        self._event.set()
