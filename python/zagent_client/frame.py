"""Decoding of the agent's response frame.

A frame is a 5 byte header, a varint encoded payload length read from an
8 byte window, and the payload itself, which runs to the end of the stream::

    offset 0   5 bytes        header, normally b"ZBXD\\x01"
    offset 5   up to 8 bytes  declared payload length (varint)
    offset 13  remainder      payload

The declared length is informational. The payload is whatever arrives before
EOF unless ``strict_length`` is requested, and the header is only compared
with the magic when ``strict_header`` is requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from .config import HEADER_MAGIC
from .errors import FrameLengthMismatch, HeaderMismatch, LengthBufferTooSmall, LengthOverflow

HEADER_SIZE = 5
LENGTH_WINDOW = 8

# 7 payload bits per varint byte
MAX_VARINT_VALUE = (1 << (7 * LENGTH_WINDOW)) - 1


@dataclass(frozen=True)
class ResponseFrame:
    header: bytes
    data_length: int
    data: bytes


def decode_varint(buf: bytes) -> tuple[int, int]:
    """Decode a little-endian base-128 varint from ``buf``.

    Returns ``(value, consumed)``. Raises LengthBufferTooSmall for an empty
    buffer and LengthOverflow when no byte in ``buf`` ends the number.
    """
    if not buf:
        raise LengthBufferTooSmall()

    value = 0
    for i, b in enumerate(buf[:LENGTH_WINDOW]):
        value |= (b & 0x7F) << (7 * i)
        if b < 0x80:
            return value, i + 1
    raise LengthOverflow()


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint value must be >= 0")
    if value > MAX_VARINT_VALUE:
        raise ValueError(f"varint value must fit in {LENGTH_WINDOW} bytes")

    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def _read_up_to(stream: BinaryIO, size: int) -> bytes:
    buf = bytearray()
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


def _read_to_eof(stream: BinaryIO) -> bytes:
    buf = bytearray()
    while True:
        chunk = stream.read(4096)
        if not chunk:
            break
        buf += chunk
    return bytes(buf)


def parse_frame(stream: BinaryIO, *, strict_header: bool = False, strict_length: bool = False) -> ResponseFrame:
    header = _read_up_to(stream, HEADER_SIZE)
    length_window = _read_up_to(stream, LENGTH_WINDOW)
    data = _read_to_eof(stream)

    data_length, _ = decode_varint(length_window)

    if strict_header and header != HEADER_MAGIC:
        raise HeaderMismatch(header, HEADER_MAGIC)
    if strict_length and data_length != len(data):
        raise FrameLengthMismatch(data_length, len(data))

    return ResponseFrame(header=header, data_length=data_length, data=data)

