"""
Brief: Tests for mdnsprobe.cancel.CancellationWatcher.

Inputs:
  - None

Outputs:
  - None
"""

import threading
import time

from mdnsprobe.cancel import CancellationWatcher


class _Closable:
    def __init__(self):
        self.closed = threading.Event()

    def close(self):
        self.closed.set()


def test_deadline_closes_transport():
    t = _Closable()
    w = CancellationWatcher(t, timeout=0.05)
    w.start()
    assert t.closed.wait(2.0)
    w.join(1.0)
    assert w.fired


def test_zero_timeout_waits_for_stop():
    """
    Brief: A zero deadline means no deadline; only stop() closes.

    Inputs:
      - timeout=0

    Outputs:
      - None: Asserts transport stays open until stop()
    """
    t = _Closable()
    w = CancellationWatcher(t, timeout=0)
    w.start()
    time.sleep(0.1)
    assert not t.closed.is_set()
    assert not w.fired
    w.stop()
    assert t.closed.wait(2.0)
    w.join(1.0)
    assert w.fired


def test_stop_before_deadline_closes_early():
    t = _Closable()
    w = CancellationWatcher(t, timeout=30)
    w.start()
    w.stop()
    assert t.closed.wait(2.0)


def test_start_twice_uses_one_thread():
    t = _Closable()
    w = CancellationWatcher(t, timeout=None)
    w.start()
    first = w._thread
    w.start()
    assert w._thread is first
    w.stop()
    w.join(1.0)


def test_huge_timeout_still_honours_stop():
    """
    Brief: Timeouts beyond threading.TIMEOUT_MAX mean "wait until stop()"
    instead of killing the watcher thread.

    Inputs:
      - timeout=1e20

    Outputs:
      - None: Asserts stop() closes the transport
    """
    t = _Closable()
    w = CancellationWatcher(t, timeout=1e20)
    w.start()
    time.sleep(0.05)
    assert not t.closed.is_set()
    w.stop()
    assert t.closed.wait(2.0)
    w.join(1.0)
    assert w.fired
