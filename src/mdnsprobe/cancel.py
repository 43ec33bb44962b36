"""Deadline / explicit-stop watcher that closes the transport."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Closable(Protocol):
    def close(self) -> None: ...


class CancellationWatcher:
    """
    Brief: Close a transport when a deadline passes or stop() is called.

    Inputs:
      - transport: object with a thread-safe close().
      - timeout: seconds to wait before closing; None, 0 or anything at or
        above threading.TIMEOUT_MAX waits until stop().

    Outputs:
      - CancellationWatcher; call start() to begin watching.

    Example:
      >>> w = CancellationWatcher(transport, timeout=2.0)
      >>> w.start()  # transport.close() runs ~2s later on a daemon thread
    """

    def __init__(self, transport: Closable, timeout: Optional[float] = None) -> None:
        self._transport = transport
        if not timeout or timeout >= threading.TIMEOUT_MAX:
            timeout = None
        self._timeout = timeout
        self._stop = threading.Event()
        self._fired = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def fired(self) -> bool:
        """True once the transport has been closed by this watcher."""
        return self._fired.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._watch, name="mdnsprobe-cancel", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Request cancellation now; the watcher thread closes the transport."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _watch(self) -> None:
        if self._stop.wait(self._timeout):
            logger.debug("stop requested, closing transport")
        else:
            logger.debug("deadline of %ss reached, closing transport", self._timeout)
        try:
            self._transport.close()
        finally:
            self._fired.set()
