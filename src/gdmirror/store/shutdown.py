"""Process shutdown hook: never leave a task claiming to be copying."""

from __future__ import annotations

import atexit
import logging
import signal
import sys
from typing import Callable, Iterable

from .base import TaskStore

logger = logging.getLogger(__name__)

_DEFAULT_SIGNALS: tuple[signal.Signals, ...] = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def install_shutdown_hook(
    tasks: TaskStore,
    *,
    signals: Iterable[signal.Signals] = _DEFAULT_SIGNALS,
) -> Callable[[], int]:
    """
    Flip `copying` tasks to `interrupted` when the process goes down.

    Runs at interpreter exit (which includes Ctrl+C and uncaught exceptions);
    the given signals are turned into SystemExit so exit handlers run for them
    too. Returns the hook so callers can also run it explicitly.
    """

    def mark_interrupted() -> int:
        try:
            changed = tasks.interrupt_running()
        except Exception:
            logger.exception("Failed to mark running tasks as interrupted")
            return 0
        if changed:
            logger.warning("%d task(s) interrupted", changed)
        return changed

    atexit.register(mark_interrupted)

    for sig in signals:
        try:
            signal.signal(sig, _exit_on_signal)
        except ValueError:
            # signal.signal only works in the main thread.
            logger.debug("Cannot install handler for %s outside the main thread", sig)

    return mark_interrupted


def _exit_on_signal(signum: int, frame: object) -> None:
    sys.exit(128 + signum)
