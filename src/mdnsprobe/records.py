"""Assemble one DNS-SD service description from the records of a response."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from dnslib import QTYPE, RR
from dnslib.label import DNSLabel

from .query import NameLike, label_text

logger = logging.getLogger(__name__)


@dataclass
class ServiceInstance:
    """Brief: Fields gathered from one non-enumeration response.

    Inputs:
      - instance_name: leaf instance label from the PTR target.
      - service_label: service label (e.g. 'http') from a three-label PTR owner.
      - protocol_label: protocol label (e.g. 'tcp') from the same owner.
      - host_port: '<srv target>:<port>' from the SRV record.
      - addresses: textual A/AAAA addresses in arrival order.

    Outputs:
      - ServiceInstance with empty strings for anything never seen.
    """

    instance_name: str = ""
    service_label: str = ""
    protocol_label: str = ""
    host_port: str = ""
    addresses: List[str] = field(default_factory=list)

    def format_line(self, include_addresses: bool = False) -> str:
        """Brief: Render the tab-separated output line (newline terminated).

        Inputs:
          - include_addresses: append a comma-joined address column.

        Outputs:
          - str: 'proto\\tservice\\thost:port\\tinstance\\n'.
        """

        fields = [
            self.protocol_label,
            self.service_label,
            self.host_port,
            self.instance_name,
        ]
        if include_addresses:
            fields.append(",".join(self.addresses))
        return "\t".join(fields) + "\n"


def split_service_type(name: NameLike) -> Optional[Tuple[str, str]]:
    """Brief: Split '_svc._proto.local.' into ('svc', 'proto').

    Inputs:
      - name: PTR owner name.

    Outputs:
      - (service, protocol) when the name is exactly three non-empty labels
        and the last one is literally 'local', otherwise None. The labels
        may strip down to empty strings ('_._.local.' gives ('', '')).

    Example:
      >>> split_service_type("_http._tcp.local.")
      ('http', 'tcp')
      >>> split_service_type("_printer._sub._http._tcp.local.") is None
      True
    """

    parts = label_text(name).strip(".").split(".")
    if len(parts) != 3 or not all(parts) or parts[2] != "local":
        return None
    return parts[0].lstrip("_"), parts[1].lstrip("_")


def instance_name(target: NameLike, subject: NameLike) -> str:
    """Brief: Strip the PTR owner name off the PTR target.

    Inputs:
      - target: PTR rdata, e.g. 'My Printer._http._tcp.local.'.
      - subject: PTR owner, e.g. '_http._tcp.local.'.

    Outputs:
      - str: leaf instance label ('My Printer'); the full target text when
        the target does not end with the owner name.

    Notes:
      - Labels are compared case-insensitively, unlike a plain byte-exact
        suffix strip, so 'Den TV._AirPlay._TCP.local.' under
        '_airplay._tcp.local.' still yields 'Den TV'.
    """

    tlabels = (target if isinstance(target, DNSLabel) else DNSLabel(target)).label
    slabels = (subject if isinstance(subject, DNSLabel) else DNSLabel(subject)).label
    n = len(slabels)
    if n and len(tlabels) > n:
        suffix = tuple(p.lower() for p in tlabels[-n:])
        if suffix == tuple(p.lower() for p in slabels):
            return label_text(DNSLabel(tlabels[:-n])).rstrip(".")
    return label_text(target)


def assemble(records: Iterable[RR]) -> ServiceInstance:
    """Brief: Fold answer and additional records into a ServiceInstance.

    Inputs:
      - records: dnslib RR objects in the order received.

    Outputs:
      - ServiceInstance: never raises for unexpected record kinds; TXT and
        anything unrecognized is skipped.
    """

    svc = ServiceInstance()
    for rr in records:
        if rr.rtype == QTYPE.PTR:
            svc.instance_name = instance_name(rr.rdata.label, rr.rname)
            labels = split_service_type(rr.rname)
            if labels is not None:
                svc.service_label, svc.protocol_label = labels
        elif rr.rtype == QTYPE.SRV:
            svc.host_port = f"{label_text(rr.rdata.target).rstrip('.')}:{rr.rdata.port}"
        elif rr.rtype in (QTYPE.A, QTYPE.AAAA):
            svc.addresses.append(str(rr.rdata))
        elif rr.rtype == QTYPE.TXT:
            continue
        else:
            logger.debug("ignoring %s record for %s", QTYPE.get(rr.rtype, rr.rtype), label_text(rr.rname))
    return svc
