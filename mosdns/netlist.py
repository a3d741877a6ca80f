"""A sorted list of IP networks searched with binary search.

Every network is kept in the IPv6 space: IPv4 networks are stored as
IPv4-mapped IPv6 networks, so one list holds both families.
"""

from __future__ import annotations

import bisect
import ipaddress
from typing import Iterable, List, Protocol, Tuple, Union

AddressLike = Union[str, int, ipaddress.IPv4Address, ipaddress.IPv6Address]
NetworkLike = Union[
    str, ipaddress.IPv4Network, ipaddress.IPv6Network, ipaddress.IPv4Address,
    ipaddress.IPv6Address,
]

_V4_MAPPED = 0xFFFF << 32


class Matcher(Protocol):
    def match(self, addr: AddressLike) -> bool: ...


def _address_to_int(addr: AddressLike) -> int:
    if not isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        addr = ipaddress.ip_address(addr)
    if addr.version == 4:
        return _V4_MAPPED | int(addr)
    return int(addr)


def _network_to_range(net: NetworkLike) -> Tuple[int, int]:
    if not isinstance(net, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        net = ipaddress.ip_network(net, strict=False)
    if net.version == 4:
        return _V4_MAPPED | int(net.network_address), net.prefixlen + 96
    return int(net.network_address), net.prefixlen


def _contains(start: int, bits: int, addr: int) -> bool:
    shift = 128 - bits
    return (start >> shift) == (addr >> shift)


class NetList:
    """A list of networks for large, static CIDR lookups.

    Call :meth:`sort` after modifying the list and before :meth:`contains`.
    """

    def __init__(self) -> None:
        self._nets: List[Tuple[int, int]] = []
        self._starts: List[int] = []
        self._sorted = False

    def append(self, *args: NetworkLike) -> None:
        """Add networks (or single addresses). The list becomes unsorted."""
        self._nets.extend(_network_to_range(net) for net in args)
        self._sorted = False

    def sort(self) -> None:
        """Sort the list and merge networks that overlap."""
        if self._sorted:
            return
        merged: List[Tuple[int, int]] = []
        for start, bits in sorted(self._nets, key=lambda item: item[0]):
            if not merged:
                merged.append((start, bits))
                continue
            last_start, last_bits = merged[-1]
            if start == last_start:
                if bits < last_bits:
                    merged[-1] = (start, bits)
            elif not _contains(last_start, last_bits, start):
                merged.append((start, bits))
        self._nets = merged
        self._starts = [start for start, _ in merged]
        self._sorted = True

    def __len__(self) -> int:
        return len(self._nets)

    def match(self, addr: AddressLike) -> bool:
        return self.contains(addr)

    def contains(self, addr: AddressLike) -> bool:
        """Report whether ``addr`` falls into any network of the list."""
        if not self._sorted:
            raise RuntimeError("list is not sorted")
        value = _address_to_int(addr)
        i = bisect.bisect_right(self._starts, value)
        if i == 0:
            return False
        start, bits = self._nets[i - 1]
        return _contains(start, bits, value)


def load_from_text(netlist: NetList, s: str) -> None:
    """Add one network or address written as text. Raises ValueError."""
    if "/" in s:
        netlist.append(ipaddress.ip_network(s, strict=False))
    else:
        netlist.append(ipaddress.ip_address(s))


def load_from_reader(netlist: NetList, reader: Iterable[str]) -> None:
    """Add one network per line from a text stream or iterable of lines.

    '#' starts a comment and anything after the first space is ignored.
    """
    for number, line in enumerate(reader, start=1):
        line = line.strip()
        line = line.split("#", 1)[0]
        line = line.split(" ", 1)[0]
        if not line:
            continue
        try:
            load_from_text(netlist, line)
        except ValueError as exc:
            raise ValueError(f"invalid data at line #{number}: {exc}") from exc