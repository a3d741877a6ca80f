"""Extract the IP address from a PTR query name."""

from __future__ import annotations

import ipaddress
from typing import Tuple, Union

IP4_ARPA = ".in-addr.arpa."
IP6_ARPA = ".ip6.arpa."

_DIGITS = frozenset("0123456789")


def parse_ptr_qname(fqdn: str) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address]:
    """Return the address a PTR query name holds. Raises ValueError."""
    if fqdn.endswith(IP4_ARPA):
        return reverse4(fqdn[: -len(IP4_ARPA)])
    if fqdn.endswith(IP6_ARPA):
        return reverse6(fqdn[: -len(IP6_ARPA)])
    raise ValueError("domain does not has a ptr suffix")


def _prev_label(s: str, offset: int) -> Tuple[str, int]:
    while True:
        s = s[:offset]
        n = s.rfind(".")
        label = s[n + 1 : offset]
        if n != -1 and not label:
            offset = n
            continue
        return label, n


def reverse4(s: str) -> ipaddress.IPv4Address:
    """Parse the reversed labels of an in-addr.arpa name."""
    buf = bytearray()
    offset = len(s)
    while offset > 0 and len(buf) < 4:
        label, offset = _prev_label(s, offset)
        if not label or not set(label) <= _DIGITS or int(label) > 255:
            raise ValueError(f"invalid bit {label!r}")
        buf.append(int(label))
    if len(buf) < 4:
        raise ValueError(f"expect at least 4 labels, got {len(buf)}")
    return ipaddress.IPv4Address(bytes(buf))


def _hex2byte(c: str) -> int:
    code = ord(c)
    if "0" <= c <= "9":
        return code - ord("0")
    lower = code | 0x20
    if ord("a") <= lower <= ord("z"):
        return lower - ord("a") + 10
    raise ValueError(f"invalid bit {code}")


def reverse6(s: str) -> ipaddress.IPv6Address:
    """Parse the reversed nibble labels of an ip6.arpa name."""
    buf = bytearray()
    high = 0
    tail = False
    offset = len(s)
    while offset > 0 and len(buf) < 16:
        label, offset = _prev_label(s, offset)
        if len(label) != 1:
            raise ValueError(f"invalid label {label}")
        n = _hex2byte(label)
        if tail:
            buf.append(((high << 4) + n) & 0xFF)
            tail = False
        else:
            high = n
            tail = True
    if len(buf) < 16:
        raise ValueError(f"expect at least 16 bytes, got {len(buf)}")
    return ipaddress.IPv6Address(bytes(buf))