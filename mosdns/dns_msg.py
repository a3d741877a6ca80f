"""TTL helpers and canned replies for DNS messages."""

from __future__ import annotations

from typing import Iterator, Union

import dns.message
import dns.name
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.rrset

_FAKE_SOA_TTL = 300
_FAKE_SOA_TEXT = (
    "fake-ns.mosdns.fake.root. fake-mbox.mosdns.fake.root. "
    "2021110400 1800 900 604800 86400"
)


def _ttl_rrsets(msg: dns.message.Message) -> Iterator[dns.rrset.RRset]:
    for section in (msg.answer, msg.authority, msg.additional):
        for rrset in section:
            if rrset.rdtype == dns.rdatatype.OPT:
                continue  # the ttl of an OPT record is not a ttl
            yield rrset


def get_minimal_ttl(msg: dns.message.Message) -> int:
    """Return the smallest ttl in ``msg``, or 0 if it has no record."""
    return min((rrset.ttl for rrset in _ttl_rrsets(msg)), default=0)


def set_ttl(msg: dns.message.Message, ttl: int) -> None:
    """Set the ttl of every record except OPT."""
    for rrset in _ttl_rrsets(msg):
        rrset.ttl = ttl


def apply_maximum_ttl(msg: dns.message.Message, ttl: int) -> None:
    """Lower every ttl above ``ttl`` to ``ttl``."""
    for rrset in _ttl_rrsets(msg):
        if rrset.ttl > ttl:
            rrset.ttl = ttl


def apply_minimal_ttl(msg: dns.message.Message, ttl: int) -> None:
    """Raise every ttl below ``ttl`` to ``ttl``."""
    for rrset in _ttl_rrsets(msg):
        if rrset.ttl < ttl:
            rrset.ttl = ttl


def subtract_ttl(msg: dns.message.Message, delta: int) -> bool:
    """Subtract ``delta`` from every ttl.

    A ttl not greater than ``delta`` becomes 1 and the function returns True.
    """
    overflowed = False
    for rrset in _ttl_rrsets(msg):
        if rrset.ttl > delta:
            rrset.ttl = rrset.ttl - delta
        else:
            rrset.ttl = 1
            overflowed = True
    return overflowed


def qclass_to_string(value: int) -> str:
    """Mnemonic of a class, or its number if it has none."""
    text = dns.rdataclass.to_text(value)
    if text.startswith(("CLASS", "RESERVED")):
        return str(value)
    return text


def qtype_to_string(value: int) -> str:
    """Mnemonic of a type, or its number if it has none."""
    text = dns.rdatatype.to_text(value)
    if text.startswith("TYPE") and text[4:].isdigit():
        return str(value)
    return text


def fake_soa(name: Union[str, dns.name.Name]) -> dns.rrset.RRset:
    """A fake SOA record owned by ``name``."""
    rdata = dns.rdata.from_text(dns.rdataclass.IN, dns.rdatatype.SOA, _FAKE_SOA_TEXT)
    return dns.rrset.from_rdata(name, _FAKE_SOA_TTL, rdata)


def gen_empty_reply(query: dns.message.Message, rcode: int) -> dns.message.Message:
    """An empty reply to ``query`` with ``rcode`` and a fake SOA record."""
    reply = dns.message.make_response(query)
    reply.use_edns(False)
    reply.set_rcode(rcode)
    if len(query.question) > 1:
        name: Union[str, dns.name.Name] = query.question[0].name
    else:
        name = "."
    reply.authority = [fake_soa(name)]
    return reply