"""
Signal name resolution.

Maps canonical POSIX signal names (as written in the config file) to the
signal values delivered to the child process on credential rotation.
"""

import signal
from types import MappingProxyType

from .exceptions import UnknownSignalError

# Case-sensitive; aliases such as SIGIOT keep their own entry.
SIGNALS: MappingProxyType[str, signal.Signals] = MappingProxyType(
    {
        "SIGABRT": signal.SIGABRT,
        "SIGALRM": signal.SIGALRM,
        "SIGBUS": signal.SIGBUS,
        "SIGCHLD": signal.SIGCHLD,
        "SIGCONT": signal.SIGCONT,
        "SIGFPE": signal.SIGFPE,
        "SIGHUP": signal.SIGHUP,
        "SIGILL": signal.SIGILL,
        "SIGIO": signal.SIGIO,
        "SIGIOT": signal.SIGIOT,
        "SIGKILL": signal.SIGKILL,
        "SIGPIPE": signal.SIGPIPE,
        "SIGPROF": signal.SIGPROF,
        "SIGQUIT": signal.SIGQUIT,
        "SIGSEGV": signal.SIGSEGV,
        "SIGSTOP": signal.SIGSTOP,
        "SIGSYS": signal.SIGSYS,
        "SIGTERM": signal.SIGTERM,
        "SIGTRAP": signal.SIGTRAP,
        "SIGTSTP": signal.SIGTSTP,
        "SIGTTIN": signal.SIGTTIN,
        "SIGTTOU": signal.SIGTTOU,
        "SIGURG": signal.SIGURG,
        "SIGUSR1": signal.SIGUSR1,
        "SIGUSR2": signal.SIGUSR2,
        "SIGVTALRM": signal.SIGVTALRM,
        "SIGWINCH": signal.SIGWINCH,
        "SIGXCPU": signal.SIGXCPU,
        "SIGXFSZ": signal.SIGXFSZ,
    }
)


def resolve(name: str) -> signal.Signals:
    """
    Resolve a signal name to its signal value.

    Args:
        name: Canonical signal name, e.g. "SIGUSR1"

    Returns:
        The matching signal.Signals member

    Raises:
        UnknownSignalError: If the name is not in the signal table

    Examples:
        >>> resolve("SIGHUP")
        <Signals.SIGHUP: 1>
    """
    try:
        return SIGNALS[name]
    except (KeyError, TypeError):
        raise UnknownSignalError(name) from None


def signal_names() -> list[str]:
    """Return all recognized signal names, sorted."""
    return sorted(SIGNALS)
