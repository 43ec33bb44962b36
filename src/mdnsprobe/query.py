"""Outbound mDNS query construction and service-type bookkeeping.

Brief:
  Builds PTR questions with the unicast-response bit set and tracks which
  service types have already been queried during a run.
"""

from __future__ import annotations

import random
import struct
from dataclasses import dataclass
from typing import Collection, Iterator, Set, Union

from dnslib import CLASS, QTYPE, DNSHeader, DNSQuestion, DNSRecord
from dnslib.buffer import BufferError as DNSBufferError
from dnslib.dns import DNSError
from dnslib.label import DNSLabel, DNSLabelError

# Top bit of the question class: ask responders for a unicast reply
# (RFC 6762 section 5.4).
UNICAST_RESPONSE_BIT = 0x8000

NameLike = Union[str, DNSLabel]


class EncodingError(Exception):
    """
    Brief: Raised when a query cannot be serialized to wire format.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


@dataclass(frozen=True)
class Query:
    """A serialized question ready to hand to the transport."""

    id: int
    name: str
    qtype: int
    wire: bytes


def label_text(label: NameLike) -> str:
    """Brief: Render a DNS name as dotted text with a trailing dot.

    Inputs:
      - label: DNSLabel or str.

    Outputs:
      - str: Labels joined by '.', raw bytes decoded as UTF-8 without any
        zone-file escaping (so 'My Printer' stays 'My Printer').

    Example:
      >>> label_text(DNSLabel("_http._tcp.local"))
      '_http._tcp.local.'
    """

    if not isinstance(label, DNSLabel):
        label = DNSLabel(label)
    return "".join(part.decode("utf-8", "replace") + "." for part in label.label) or "."


def _next_id(avoid: Collection[int]) -> int:
    while True:
        qid = random.randint(0, 0xFFFF)
        if qid not in avoid:
            return qid


def build_query(
    name: NameLike,
    qtype: int = QTYPE.PTR,
    *,
    unicast: bool = True,
    avoid: Collection[int] = (),
) -> Query:
    """
    Brief: Build a single-question mDNS query.

    Inputs:
    - name: fully-qualified domain name (str or DNSLabel), must not be empty
    - qtype: numeric question type (default PTR)
    - unicast: set the unicast-response bit in the question class
    - avoid: transaction ids that must not be assigned

    Outputs:
    - Query: assigned id, queried name, qtype and packed wire bytes

    Raises:
    - EncodingError: the name is empty or dnslib cannot pack the message

    Example:
        >>> q = build_query("_services._dns-sd._udp.local.")
        >>> DNSRecord.parse(q.wire).q.qtype == QTYPE.PTR
        True
    """
    try:
        qname = name if isinstance(name, DNSLabel) else DNSLabel(name)
    except (UnicodeError, ValueError) as e:
        raise EncodingError(f"invalid query name {name!r}: {e}") from e
    if not qname.label:
        raise EncodingError("query name must not be empty")

    qclass = CLASS.IN | UNICAST_RESPONSE_BIT if unicast else CLASS.IN
    qid = _next_id(avoid)
    msg = DNSRecord(DNSHeader(id=qid), q=DNSQuestion(qname, qtype, qclass))
    try:
        wire = msg.pack()
    except (DNSError, DNSLabelError, DNSBufferError, struct.error, ValueError) as e:
        raise EncodingError(f"could not encode query for {label_text(qname)}: {e}") from e
    return Query(id=qid, name=label_text(qname), qtype=qtype, wire=wire)


class SeenServiceTypes:
    """Set of service-type names that already had a follow-up query."""

    def __init__(self) -> None:
        self._names: Set[str] = set()

    def seen(self, name: str) -> bool:
        return name in self._names

    def mark_seen(self, name: str) -> bool:
        """Insert name; return True only when it was not present before."""
        if name in self._names:
            return False
        self._names.add(name)
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)
