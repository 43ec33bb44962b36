"""DNS-SD browsing engine.

Brief:
  Sends the '_services._dns-sd._udp.local.' enumeration query, issues one
  follow-up PTR query for every newly advertised service type, and prints one
  tab-separated line for every other response received.

Inputs:
  - A transport exposing send(data, addr), receive() and close().

Outputs:
  - Lines written to the output stream (stdout by default).
"""

from __future__ import annotations

import logging
import struct
import sys
from typing import IO, List, Optional, Tuple

from dnslib import QTYPE, DNSRecord
from dnslib.buffer import BufferError as DNSBufferError
from dnslib.dns import DNSError
from dnslib.label import DNSLabelError

from .query import Query, SeenServiceTypes, build_query, label_text
from .records import ServiceInstance, assemble
from .transports.multicast import MDNS_ADDR4, TransportClosed

logger = logging.getLogger(__name__)

SERVICES_QUERY_NAME = "_services._dns-sd._udp.local."

# Errors dnslib can surface while unpacking a hostile or truncated datagram.
_DECODE_ERRORS = (
    DNSError,
    DNSLabelError,
    DNSBufferError,
    struct.error,
    UnicodeError,
    ValueError,
    IndexError,
)


class ServiceBrowser:
    """
    Brief: Query/response state machine for one discovery run.

    Inputs:
      - transport: MulticastTransport (or anything with the same methods).
      - out: text stream for result lines (default sys.stdout).
      - group: multicast (host, port) that queries are sent to.
      - show_addresses: append the A/AAAA addresses as a fifth column.

    Outputs:
      - ServiceBrowser; call run() to block until the transport is closed.
    """

    def __init__(
        self,
        transport,
        *,
        out: Optional[IO[str]] = None,
        group: Tuple[str, int] = MDNS_ADDR4,
        show_addresses: bool = False,
    ) -> None:
        self.transport = transport
        self.out = out if out is not None else sys.stdout
        self.group = group
        self.show_addresses = show_addresses
        self.seen = SeenServiceTypes()
        self.enumeration_id: Optional[int] = None
        self.queries_sent = 0

    def _send(self, query: Query) -> None:
        self.transport.send(query.wire, self.group)
        self.queries_sent += 1
        logger.debug(
            "sent %s query id=%d for %s",
            QTYPE.get(query.qtype, query.qtype),
            query.id,
            query.name,
        )

    def start(self) -> Query:
        """Send the enumeration query and remember its id for routing."""
        query = build_query(SERVICES_QUERY_NAME, QTYPE.PTR)
        self._send(query)
        self.enumeration_id = query.id
        return query

    def handle_datagram(
        self, data: bytes, sender: Tuple[str, int]
    ) -> Optional[ServiceInstance]:
        """
        Brief: Decode one datagram and route it by transaction id.

        Inputs:
          - data: raw datagram bytes
          - sender: (host, port) of the responder

        Outputs:
          - ServiceInstance for service responses; None for enumeration
            answers and for datagrams that fail to decode.
        """
        try:
            msg = DNSRecord.parse(data)
        except _DECODE_ERRORS as e:
            logger.warning("bad response from %s:%s: %s", sender[0], sender[1], e)
            return None

        if msg.header.id == self.enumeration_id:
            self.handle_enumeration(msg)
            return None
        return self.handle_service_response(msg)

    def handle_enumeration(self, msg: DNSRecord) -> List[Query]:
        """Send one follow-up query per service type not yet queried."""
        sent: List[Query] = []
        for rr in msg.rr:
            if rr.rtype != QTYPE.PTR:
                continue
            target = rr.rdata.label
            name = label_text(target)
            if not self.seen.mark_seen(name):
                continue
            avoid = () if self.enumeration_id is None else (self.enumeration_id,)
            query = build_query(target, QTYPE.PTR, avoid=avoid)
            self._send(query)
            sent.append(query)
        return sent

    def handle_service_response(self, msg: DNSRecord) -> ServiceInstance:
        svc = assemble(list(msg.rr) + list(msg.ar))
        self.out.write(svc.format_line(include_addresses=self.show_addresses))
        self.out.flush()
        return svc

    def run(self) -> None:
        """
        Brief: Send the enumeration query and process responses until closed.

        Inputs:
          - None

        Outputs:
          - None; returns normally once the transport reports TransportClosed.

        Raises:
          - EncodingError: a query could not be built
          - TransportError: send/receive failed for a reason other than close
        """
        try:
            self.start()
        except TransportClosed:
            logger.debug("transport closed before the enumeration query was sent")
            return
        while True:
            try:
                data, sender = self.transport.receive()
            except TransportClosed:
                logger.debug(
                    "transport closed after %d queries, %d service types",
                    self.queries_sent,
                    len(self.seen),
                )
                return
            try:
                self.handle_datagram(data, sender)
            except TransportClosed:
                return
