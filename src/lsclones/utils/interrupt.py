"""Cooperative cancellation on termination signals.

The signal handler only records the request. Long-running steps call
CancellationToken.check() between atomic units of work (one tree insertion, one
directory classification, one report entry), so a run never stops halfway
through building the tree or the index.
"""
import logging
import signal
import threading
from types import FrameType
from typing import Any

from ..errors import Interrupted

logger = logging.getLogger(__name__)


class CancellationToken:
    """Flag set by a signal handler and polled at step boundaries."""

    def __init__(self, signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)):
        self._signals = signals
        self._event = threading.Event()
        self._previous_handlers: dict[signal.Signals, Any] = {}

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def check(self) -> None:
        """Raise Interrupted if cancellation was requested."""
        if self._event.is_set():
            raise Interrupted("interrupted by signal")

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        logger.debug("Received signal %d, cancelling", signum)
        self.cancel()

    def install(self) -> None:
        """Install the signal handlers, remembering the previous ones."""
        for signum in self._signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle)

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def __enter__(self) -> "CancellationToken":
        self.install()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.uninstall()
