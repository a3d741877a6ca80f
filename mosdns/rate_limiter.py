"""Per-client token bucket rate limiting."""

from __future__ import annotations

import functools
import ipaddress
import math
import operator
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

TABLE_SHARDS = 32
GC_INTERVAL = 60.0

Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class TokenBucket:
    """A token bucket refilled at ``limit`` tokens per second up to ``burst``.

    ``limit`` may be ``math.inf`` (no limit) or 0 (only ``burst`` events in
    total). Times are seconds on any monotonic clock.
    """

    def __init__(self, limit: float, burst: int, now: Optional[float] = None) -> None:
        self.limit = float(limit)
        self.burst = burst
        self._tokens = float(burst)
        self._last = time.monotonic() if now is None else now
        self._lock = threading.Lock()

    def allow(self, now: Optional[float] = None) -> bool:
        """Take one token if one is available at ``now``."""
        if now is None:
            now = time.monotonic()
        with self._lock:
            if self.limit == math.inf:
                return True
            if self.limit == 0:
                if self.burst >= 1:
                    self.burst -= 1
                    return True
                return False
            last = min(self._last, now)
            tokens = min(self._tokens + (now - last) * self.limit, float(self.burst))
            tokens -= 1
            if tokens < 0 or self.burst < 1:
                return False
            self._last = now
            self._tokens = tokens
            return True


@dataclass
class _Entry:
    bucket: TokenBucket
    last_seen: float


class _TableShard:
    __slots__ = ("lock", "table")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.table: Dict[Address, _Entry] = {}


def _shard_index(addr: Address) -> int:
    return functools.reduce(operator.xor, addr.packed, 0) % TABLE_SHARDS


def _to_address(addr: Union[str, Address]) -> Address:
    if isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return addr
    return ipaddress.ip_address(addr)


class Limiter:
    """Rate limits each client address with its own :class:`TokenBucket`.

    A background thread drops clients not seen for a minute. If the refill
    time (burst/limit) exceeds a minute, a client's effective rate may be
    higher than configured, as its state can be dropped and recreated.
    """

    def __init__(self, limit: float, burst: int) -> None:
        self._limit = limit
        self._burst = burst
        self._tables = [_TableShard() for _ in range(TABLE_SHARDS)]
        self._closed = threading.Event()
        self._gc_thread = threading.Thread(
            target=self._gc_loop, args=(GC_INTERVAL,), daemon=True
        )
        self._gc_thread.start()

    @property
    def limit(self) -> float:
        return self._limit

    @property
    def burst(self) -> int:
        return self._burst

    def allow(self, addr: Union[str, Address]) -> bool:
        """Report whether the client ``addr`` may make one more query now."""
        addr = _to_address(addr)
        now = time.monotonic()
        shard = self._tables[_shard_index(addr)]
        with shard.lock:
            entry = shard.table.get(addr)
            if entry is None:
                entry = _Entry(TokenBucket(self._limit, self._burst, now), now)
                shard.table[addr] = entry
            entry.last_seen = now
        return entry.bucket.allow(now)

    def close(self) -> None:
        """Stop the background cleaner. Calling it again does nothing."""
        self._closed.set()

    def _gc_loop(self, interval: float) -> None:
        while not self._closed.wait(interval):
            self.gc(time.monotonic(), interval)

    def gc(self, now: Optional[float] = None, interval: float = GC_INTERVAL) -> None:
        """Drop clients last seen more than ``interval`` seconds before ``now``."""
        if now is None:
            now = time.monotonic()
        for shard in self._tables:
            with shard.lock:
                stale = [a for a, e in shard.table.items() if now - e.last_seen > interval]
                for addr in stale:
                    del shard.table[addr]

    def for_each(self, func: Callable[[Address, TokenBucket], bool]) -> bool:
        """Call ``func(addr, bucket)`` per client; stop and return True if it does."""
        for shard in self._tables:
            with shard.lock:
                for addr, entry in shard.table.items():
                    if func(addr, entry.bucket):
                        return True
        return False

    def __len__(self) -> int:
        total = 0
        for shard in self._tables:
            with shard.lock:
                total += len(shard.table)
        return total