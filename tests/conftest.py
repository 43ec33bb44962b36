"""
Brief: Global pytest configuration enforcing per-test 10s timeout and
shared fakes for the browsing engine.

Inputs:
  - None

Outputs:
  - None
"""

import collections
import signal
import os
import sys
import pytest

# Ensure 'src' is on sys.path so 'mdnsprobe' package is importable in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from mdnsprobe.transports.multicast import TransportClosed  # noqa: E402


def _alarm_handler(signum, frame):
    """
    Brief: Signal handler that raises TimeoutError when alarm triggers.

    Inputs:
      - signum: signal number (int)
      - frame: current frame (ignored)

    Outputs:
      - None: Raises TimeoutError to fail the test
    """
    raise TimeoutError("Test exceeded 10 seconds")


# Install handler if supported on this platform
if hasattr(signal, "SIGALRM"):
    signal.signal(signal.SIGALRM, _alarm_handler)


@pytest.fixture(autouse=True)
def enforce_test_timeout():
    """
    Brief: Enforce a hard 10-second timeout for each test.

    Inputs:
      - None

    Outputs:
      - None: Cancels alarm after test
    """
    if hasattr(signal, "SIGALRM"):
        signal.alarm(10)
        try:
            yield
        finally:
            signal.alarm(0)
    else:
        # Fallback: no-op on platforms without SIGALRM
        yield


class FakeTransport:
    """
    Brief: In-memory stand-in for MulticastTransport.

    Inputs:
      - None; queue datagrams with feed() before (or while) running.

    Outputs:
      - sent: list of (wire, addr) tuples passed to send()
      - receive() pops queued datagrams and raises TransportClosed once the
        queue is empty, which mimics the deadline closing the socket.
    """

    def __init__(self):
        self.sent = []
        self.inbox = collections.deque()
        self.closed = False
        self.on_send = None

    def feed(self, data, sender=("192.0.2.10", 5353)):
        self.inbox.append((data, sender))

    def fail(self, exc):
        self.inbox.append(exc)

    def send(self, data, addr):
        if self.closed:
            raise TransportClosed("transport is closed")
        self.sent.append((data, addr))
        if self.on_send is not None:
            self.on_send(data, addr)

    def receive(self):
        if self.closed or not self.inbox:
            self.closed = True
            raise TransportClosed("transport is closed")
        item = self.inbox.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.closed = True


@pytest.fixture
def fake_transport():
    return FakeTransport()


def build_response(qid, answers=(), additional=()):
    """
    Brief: Pack an mDNS response with the given answer/additional records.

    Inputs:
      - qid: transaction id to put in the header
      - answers: iterable of dnslib RR for the answer section
      - additional: iterable of dnslib RR for the additional section

    Outputs:
      - bytes: wire-format response
    """
    from dnslib import DNSHeader, DNSRecord

    msg = DNSRecord(DNSHeader(id=qid, qr=1, aa=1))
    for rr in answers:
        msg.add_answer(rr)
    for rr in additional:
        msg.add_ar(rr)
    return msg.pack()


@pytest.fixture
def make_response():
    return build_response
