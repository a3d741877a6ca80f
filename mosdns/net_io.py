"""Reading and writing DNS messages over TCP streams and UDP sockets.

TCP messages use the RFC 1035 framing: a two byte big-endian length
followed by the message. Streams may be binary file objects (``read`` /
``write``) or sockets (``recv`` / ``sendall``).
"""

from __future__ import annotations

import struct
from typing import Any, Tuple

import dns.exception
import dns.message

DNS_HEADER_LEN = 12  # minimum dns msg size
MAX_MSG_SIZE = 65535
MIN_MSG_SIZE = 512


class PayloadTooSmallError(ValueError):
    """The length prefix announces a payload too small for a DNS message."""

    def __init__(self, message: str = "payload is to small for a valid dns msg") -> None:
        super().__init__(message)


def _recv(stream: Any, size: int) -> bytes:
    if hasattr(stream, "read"):
        return stream.read(size)
    return stream.recv(size)


def _read_exact(stream: Any, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = _recv(stream, size - len(buf))
        if not chunk:
            raise EOFError(f"unexpected end of stream after {len(buf)} of {size} bytes")
        buf += chunk
    return bytes(buf)


def _write(stream: Any, data: bytes) -> int:
    if hasattr(stream, "sendall"):
        stream.sendall(data)
        return len(data)
    written = stream.write(data)
    return len(data) if written is None else written


def _unpack(data: bytes) -> dns.message.Message:
    try:
        return dns.message.from_wire(data)
    except (dns.exception.DNSException, ValueError) as exc:
        raise ValueError(f"failed to unpack msg [{data.hex()}], {exc}") from exc


def read_raw_msg_from_tcp(stream: Any) -> bytes:
    """Read one length-prefixed message and return its raw bytes.

    Raises EOFError if the stream ends early and PayloadTooSmallError if the
    announced length is not larger than a DNS header.
    """
    (length,) = struct.unpack("!H", _read_exact(stream, 2))
    if length <= DNS_HEADER_LEN:
        raise PayloadTooSmallError()
    return _read_exact(stream, length)


def read_msg_from_tcp(stream: Any) -> Tuple[dns.message.Message, int]:
    """Read and parse one message; return it and the number of bytes read."""
    data = read_raw_msg_from_tcp(stream)
    return _unpack(data), len(data) + 2


def write_raw_msg_to_tcp(stream: Any, data: bytes) -> int:
    """Write ``data`` with its length prefix; return the bytes written."""
    if len(data) > MAX_MSG_SIZE:
        raise ValueError(
            f"payload length {len(data)} is greater than dns max msg size"
        )
    return _write(stream, struct.pack("!H", len(data)) + bytes(data))


def write_msg_to_tcp(stream: Any, msg: dns.message.Message) -> int:
    """Pack ``msg`` and write it with its length prefix."""
    wire = msg.to_wire()
    if len(wire) > MAX_MSG_SIZE:
        raise ValueError(f"dns payload size {len(wire)} is too large")
    return _write(stream, struct.pack("!H", len(wire)) + wire)


def write_msg_to_udp(sock: Any, msg: dns.message.Message) -> int:
    """Pack ``msg`` and send it as one datagram; return the bytes sent."""
    wire = msg.to_wire()
    if hasattr(sock, "send"):
        return sock.send(wire)
    return _write(sock, wire)


def read_msg_from_udp(sock: Any, buf_size: int = MIN_MSG_SIZE) -> Tuple[dns.message.Message, int]:
    """Receive one datagram and parse it; return the message and its size.

    ``buf_size`` is raised to the DNS minimum of 512 bytes.
    """
    buf_size = max(buf_size, MIN_MSG_SIZE)
    data = _recv(sock, buf_size)
    return _unpack(data), len(data)