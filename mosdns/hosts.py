"""Answer A and AAAA queries from a hosts table held in a domain matcher."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import dns.flags
import dns.message
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from mosdns.dns_msg import fake_soa
from mosdns.domain_matcher import Matcher

_HOSTS_TTL = 10


@dataclass
class IPs:
    """The addresses of one host."""

    ipv4: List[ipaddress.IPv4Address] = field(default_factory=list)
    ipv6: List[ipaddress.IPv6Address] = field(default_factory=list)


def parse_ips(s: str) -> Tuple[str, IPs]:
    """Parse "pattern addr addr ..." into the pattern and its addresses."""
    fields = s.split()
    if not fields:
        raise ValueError("empty string")
    pattern, *addrs = fields
    ips = IPs()
    for text in addrs:
        try:
            ip = ipaddress.ip_address(text)
        except ValueError as exc:
            raise ValueError(f"invalid ip addr {text}, {exc}") from exc
        if ip.version == 4:
            ips.ipv4.append(ip)
        else:
            ips.ipv6.append(ip)
    return pattern, ips


class Hosts:
    """A hosts table looked up through a domain matcher of :class:`IPs`."""

    def __init__(self, matcher: Matcher[IPs]) -> None:
        self._matcher = matcher

    def lookup(self, fqdn: str) -> Tuple[list, list]:
        """Return ``(ipv4, ipv6)`` for ``fqdn``; both empty if it is unknown."""
        ips, found = self._matcher.match(fqdn)
        if not found or ips is None:
            return [], []
        return list(ips.ipv4), list(ips.ipv6)

    def lookup_msg(self, msg: dns.message.Message) -> Optional[dns.message.Message]:
        """Build a reply to an A/AAAA query, or return None if not applicable."""
        if len(msg.question) != 1:
            return None
        question = msg.question[0]
        rdtype = question.rdtype
        if question.rdclass != dns.rdataclass.IN or rdtype not in (
            dns.rdatatype.A,
            dns.rdatatype.AAAA,
        ):
            return None

        ipv4, ipv6 = self.lookup(question.name.to_text())
        if not ipv4 and not ipv6:
            return None

        reply = dns.message.make_response(msg)
        reply.use_edns(False)
        reply.flags |= msg.flags & dns.flags.CD

        addrs = ipv4 if rdtype == dns.rdatatype.A else ipv6
        if addrs:
            reply.answer.append(
                dns.rrset.from_text_list(
                    question.name,
                    _HOSTS_TTL,
                    dns.rdataclass.IN,
                    rdtype,
                    [str(ip) for ip in addrs],
                )
            )
        else:
            reply.authority = [fake_soa(question.name)]
        return reply