import logging
import selectors
import socket
import threading
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

MDNS_PORT = 5353
MDNS_ADDR4: Tuple[str, int] = ("224.0.0.251", MDNS_PORT)
# Declared for completeness; the send path is IPv4 only.
MDNS_ADDR6: Tuple[str, int] = ("ff02::fb", MDNS_PORT)


class TransportError(Exception):
    """
    Brief: mDNS transport I/O error (send/receive failed for a real reason).

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


class TransportClosed(Exception):
    """
    Brief: Raised by receive() once the transport has been closed.

    Inputs:
    - None

    Outputs:
    - Exception instance
    """

    pass


class MulticastTransport:
    """
    Brief: IPv4 UDP socket bound to an ephemeral port for mDNS queries.

    Inputs:
    - bind_host: local address to bind (default all interfaces)
    - bind_port: local port (default 0, ephemeral)
    - multicast_ttl: IP_MULTICAST_TTL for outgoing queries
    - recv_size: maximum datagram size accepted by receive()

    Outputs:
    - MulticastTransport instance

    Notes:
    - close() may be called from any thread. A receive() blocked in another
      thread is woken through a socketpair and raises TransportClosed.

    Example:
        >>> with MulticastTransport("127.0.0.1") as t:
        ...     t.local_address[0]
        '127.0.0.1'
    """

    def __init__(
        self,
        bind_host: str = "0.0.0.0",
        bind_port: int = 0,
        *,
        multicast_ttl: int = 255,
        recv_size: int = 0xFFFF,
    ) -> None:
        self._recv_size = int(recv_size)
        self._lock = threading.Lock()
        self._closed = False
        self._readers = 0
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            raise TransportError(f"UDP error: {e}") from e
        try:
            self._sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, int(multicast_ttl)
            )
            self._sock.bind((bind_host, int(bind_port)))
            self._wake_r, self._wake_w = socket.socketpair()
        except OSError as e:
            self._sock.close()
            raise TransportError(f"UDP error: {e}") from e
        self._selector: Optional[selectors.BaseSelector] = selectors.DefaultSelector()
        self._selector.register(self._sock, selectors.EVENT_READ)
        self._selector.register(self._wake_r, selectors.EVENT_READ)
        logger.debug("bound mDNS socket on %s:%d", *self.local_address)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def local_address(self) -> Tuple[str, int]:
        return self._sock.getsockname()[:2]

    def send(self, data: bytes, addr: Tuple[str, int] = MDNS_ADDR4) -> None:
        """
        Brief: Send one datagram.

        Inputs:
        - data: wire bytes
        - addr: destination (host, port), the IPv4 mDNS group by default

        Outputs:
        - None

        Raises:
        - TransportClosed: the transport was already closed
        - TransportError: the socket refused the datagram
        """
        if self._closed:
            raise TransportClosed("transport is closed")
        try:
            self._sock.sendto(data, (addr[0], int(addr[1])))
        except OSError as e:
            if self._closed:
                raise TransportClosed("transport is closed") from None
            raise TransportError(f"UDP error: {e}") from e

    def receive(self) -> Tuple[bytes, Tuple[str, int]]:
        """
        Brief: Block until a datagram arrives or the transport is closed.

        Inputs:
        - None

        Outputs:
        - (data, sender): datagram bytes and sender (host, port)

        Raises:
        - TransportClosed: close() was called before or during the wait
        - TransportError: any other socket failure
        """
        with self._lock:
            if self._closed:
                raise TransportClosed("transport is closed")
            self._readers += 1
        try:
            return self._receive_one()
        finally:
            with self._lock:
                self._readers -= 1
                if self._closed and self._readers == 0:
                    self._release_wakeup()

    def _receive_one(self) -> Tuple[bytes, Tuple[str, int]]:
        while True:
            try:
                events = self._selector.select()
            except (OSError, ValueError) as e:
                if self._closed:
                    raise TransportClosed("transport is closed") from None
                raise TransportError(f"UDP error: {e}") from e
            if self._closed:
                raise TransportClosed("transport is closed")
            for key, _ in events:
                if key.fileobj is not self._sock:
                    continue
                try:
                    data, sender = self._sock.recvfrom(self._recv_size)
                except OSError as e:
                    if self._closed:
                        raise TransportClosed("transport is closed") from None
                    raise TransportError(f"UDP error: {e}") from e
                return data, sender[:2]

    def close(self) -> None:
        """Close the socket and wake any pending receive(). Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            logger.debug("closing mDNS socket")
            try:
                self._wake_w.send(b"\0")
            except OSError:  # pragma: no cover - wake socket already gone
                pass
            self._sock.close()
            self._wake_w.close()
            # A blocked reader still selects on the wake socket; it releases
            # the selector itself on the way out.
            if self._readers == 0:
                self._release_wakeup()

    def _release_wakeup(self) -> None:
        if self._selector is None:
            return
        self._selector.close()
        self._selector = None
        self._wake_r.close()

    def __enter__(self) -> "MulticastTransport":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
