"""The per-query context that is passed through plugins."""

from __future__ import annotations

import copy
import dataclasses
import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

import dns.message
import dns.rrset

_EDNS0_SIZE = 1200
_DO_BIT = 0x8000  # DNSSEC OK
_UINT32_MASK = 0xFFFFFFFF

_context_ids = itertools.count(1)
_context_lock = threading.Lock()

_key_ids = itertools.count(1)
_key_lock = threading.Lock()


def reg_key() -> int:
    """Return a unique key for :meth:`Context.store_value`.

    It should only be called during initialization.
    """
    with _key_lock:
        key = next(_key_ids)
    if key > _UINT32_MASK:
        raise OverflowError("key id overflowed")
    return key


@dataclass
class EdnsOpt:
    """The content of an EDNS0 OPT record.

    ``flags`` is the record's TTL field: extended rcode, version and flags.
    """

    udp_size: int = _EDNS0_SIZE
    flags: int = 0
    options: List[Any] = field(default_factory=list)

    @property
    def version(self) -> int:
        return (self.flags >> 16) & 0xFF

    @property
    def do(self) -> bool:
        """Whether the DNSSEC OK bit is set."""
        return bool(self.flags & _DO_BIT)


def _opt_from_message(msg: dns.message.Message) -> EdnsOpt:
    return EdnsOpt(udp_size=msg.payload, flags=msg.ednsflags, options=list(msg.options))


def _add_new_and_swap_old_opt(msg: dns.message.Message) -> Optional[EdnsOpt]:
    old = _opt_from_message(msg) if msg.edns >= 0 else None
    msg.use_edns(0, 0, _EDNS0_SIZE)
    return old


def _pop_opt(msg: dns.message.Message) -> Optional[EdnsOpt]:
    if msg.edns < 0:
        return None
    opt = _opt_from_message(msg)
    msg.use_edns(False)
    return opt


class Context:
    """A query context. Not safe for concurrent use.

    The context owns the query: its EDNS0 record is replaced by a fresh one
    with a UDP size of 1200, and the client's record is kept in
    :attr:`client_opt`.
    """

    def __init__(self, query: dns.message.Message) -> None:
        if len(query.question) != 1:
            raise ValueError("query must have exactly one question")
        with _context_lock:
            self._id = next(_context_ids) & _UINT32_MASK
        self._start_time = time.time()
        self.client_addr: Any = None
        self._query = query
        self._client_opt = _add_new_and_swap_old_opt(query)
        self._resp: Optional[dns.message.Message] = None
        self._resp_opt: Optional[EdnsOpt] = None
        self._upstream_opt: Optional[EdnsOpt] = None
        self._kv: Dict[int, Any] = {}
        self._marks: Set[int] = set()
        if self._client_opt is not None:
            self._resp_opt = EdnsOpt()
            # RFC 3225 3: the DO bit of the query must be copied in the response.
            if self._client_opt.do:
                self._resp_opt.flags |= _DO_BIT

    @property
    def id(self) -> int:
        """A unique number per context; not the DNS message id."""
        return self._id

    @property
    def start_time(self) -> float:
        """Unix time at which the context was created."""
        return self._start_time

    @property
    def query(self) -> dns.message.Message:
        """The query forwarded upstream; it always has one question and EDNS0."""
        return self._query

    @property
    def question(self) -> dns.rrset.RRset:
        return self._query.question[0]

    @property
    def client_opt(self) -> Optional[EdnsOpt]:
        """The client's OPT record, or None if it sent none. Read-only."""
        return self._client_opt

    def set_response(self, msg: Optional[dns.message.Message]) -> None:
        """Take ``msg`` as the response; None removes the response.

        The response's EDNS0 record is moved to :attr:`upstream_opt`.
        """
        self._resp = msg
        self._upstream_opt = None if msg is None else _pop_opt(msg)

    @property
    def response(self) -> Optional[dns.message.Message]:
        """The response for the client, without EDNS0. May be None."""
        return self._resp

    @property
    def resp_opt(self) -> Optional[EdnsOpt]:
        """The OPT record sent to the client; None if the client sent none."""
        return self._resp_opt

    @property
    def upstream_opt(self) -> Optional[EdnsOpt]:
        """The upstream's OPT record, or None. Read-only."""
        return self._upstream_opt

    def info(self) -> Dict[str, Any]:
        """A brief summary of this context for logs."""
        question = self.question
        summary: Dict[str, Any] = {"uqid": self._id}
        if self.client_addr is not None:
            summary["client"] = str(self.client_addr)
        summary["qname"] = question.name.to_text()
        summary["qtype"] = int(question.rdtype)
        summary["qclass"] = int(question.rdclass)
        if self._resp is not None:
            summary["rcode"] = int(self._resp.rcode())
        summary["elapsed"] = time.time() - self._start_time
        return summary

    def copy(self) -> Context:
        """Deep copy this context. Stored values themselves are not copied."""
        new = Context.__new__(Context)
        new._id = self._id
        new._start_time = self._start_time
        new.client_addr = self.client_addr
        new._query = copy.deepcopy(self._query)
        new._client_opt = self._client_opt
        new._resp = None if self._resp is None else copy.deepcopy(self._resp)
        new._resp_opt = (
            None
            if self._resp_opt is None
            else dataclasses.replace(self._resp_opt, options=list(self._resp_opt.options))
        )
        new._upstream_opt = self._upstream_opt
        new._kv = dict(self._kv)
        new._marks = set(self._marks)
        return new

    def store_value(self, key: int, value: Any) -> None:
        """Store ``value`` under a key obtained from :func:`reg_key`."""
        self._kv[key] = value

    def get_value(self, key: int, default: Any = None) -> Any:
        return self._kv.get(key, default)

    def delete_value(self, key: int) -> None:
        self._kv.pop(key, None)

    def set_mark(self, mark: int) -> None:
        self._marks.add(mark)

    def has_mark(self, mark: int) -> bool:
        return mark in self._marks

    def delete_mark(self, mark: int) -> None:
        self._marks.discard(mark)