# picksafe/core/packets.py
"""OpenPGP packet framing (RFC 4880 sections 4 and 5)."""
import bz2
import struct
import zlib
import logging
from dataclasses import dataclass
from typing import Container, List, Type

from picksafe.core.errors import IntegrityError, MalformedEnvelopeError, SafeError

TAG_SKESK = 3
TAG_COMPRESSED = 8
TAG_SED = 9
TAG_LITERAL = 11
TAG_SEIPD = 18
TAG_MDC = 19


@dataclass
class Packet:
    tag: int
    body: bytes
    complete: bool = True


def encode_length(length: int) -> bytes:
    if length < 192:
        return bytes([length])
    if length < 8384:
        length -= 192
        return bytes([(length >> 8) + 192, length & 0xFF])
    return b'\xff' + struct.pack('>I', length)


def encode_packet(tag: int, body: bytes) -> bytes:
    """Frame ``body`` with a new-format header and a definite length."""
    return bytes([0xC0 | tag]) + encode_length(len(body)) + body


def _new_length(data: bytes, pos: int, error: Type[SafeError]):
    """Return (length, is_partial, next_pos) for a new-format length field."""
    if pos >= len(data):
        raise error("Truncated packet length")
    first = data[pos]
    if first < 192:
        return first, False, pos + 1
    if first < 224:
        if pos + 1 >= len(data):
            raise error("Truncated packet length")
        return ((first - 192) << 8) + data[pos + 1] + 192, False, pos + 2
    if first == 255:
        if pos + 5 > len(data):
            raise error("Truncated packet length")
        return struct.unpack('>I', data[pos + 1:pos + 5])[0], False, pos + 5
    return 1 << (first & 0x1F), True, pos + 1


def _read_packet(data: bytes, pos: int, error: Type[SafeError], stream_tags: Container[int]):
    header = data[pos]
    if not header & 0x80:
        raise error("Invalid packet header")
    pos += 1

    if header & 0x40:
        tag = header & 0x3F
        chunks = []
        partial = True
        while partial:
            if pos >= len(data) and tag in stream_tags:
                return Packet(tag, b''.join(chunks), complete=False), len(data)
            length, partial, pos = _new_length(data, pos, error)
            chunk = data[pos:pos + length]
            chunks.append(chunk)
            if len(chunk) != length:
                if tag in stream_tags:
                    return Packet(tag, b''.join(chunks), complete=False), len(data)
                raise error("Truncated packet body")
            pos += length
        return Packet(tag, b''.join(chunks)), pos

    tag = (header >> 2) & 0x0F
    length_type = header & 0x03
    if length_type == 3:
        # Indeterminate length: the packet runs to the end of the data.
        return Packet(tag, data[pos:]), len(data)
    size = (1, 2, 4)[length_type]
    if pos + size > len(data):
        raise error("Truncated packet length")
    length = int.from_bytes(data[pos:pos + size], 'big')
    pos += size
    body = data[pos:pos + length]
    if len(body) != length:
        if tag in stream_tags:
            return Packet(tag, body, complete=False), len(data)
        raise error("Truncated packet body")
    return Packet(tag, body), pos + length


def read_packets(data: bytes, error: Type[SafeError] = MalformedEnvelopeError,
                 stream_tags: Container[int] = ()) -> List[Packet]:
    """Split ``data`` into packets, raising ``error`` on framing problems.

    A packet whose tag is in ``stream_tags`` and whose body runs past the end
    of ``data`` is returned with ``complete`` set to False instead.
    """
    packets = []
    pos = 0
    while pos < len(data):
        packet, pos = _read_packet(data, pos, error, stream_tags)
        packets.append(packet)
    return packets


def encode_literal(data: bytes) -> bytes:
    # Binary format, no filename, zero timestamp.
    return encode_packet(TAG_LITERAL, b'b\x00' + b'\x00' * 4 + data)


def _decompress(body: bytes) -> bytes:
    if not body:
        raise IntegrityError("Empty compressed packet")
    algorithm, payload = body[0], body[1:]
    try:
        if algorithm == 0:
            return payload
        if algorithm == 1:
            return zlib.decompress(payload, -15)
        if algorithm == 2:
            return zlib.decompress(payload)
        if algorithm == 3:
            return bz2.decompress(payload)
    except (zlib.error, OSError, ValueError) as e:
        raise IntegrityError("Compressed data is corrupt") from e
    raise MalformedEnvelopeError(f"Unsupported compression algorithm {algorithm}")


def read_literal(data: bytes) -> bytes:
    """Return the contents of the literal data packet held in decrypted ``data``."""
    for packet in read_packets(data, IntegrityError):
        if packet.tag == TAG_COMPRESSED:
            logging.debug("Decompressing inner packet stream")
            return read_literal(_decompress(packet.body))
        if packet.tag == TAG_LITERAL:
            body = packet.body
            if len(body) < 2 or len(body) < 6 + body[1]:
                raise IntegrityError("Truncated literal data packet")
            return body[6 + body[1]:]
    raise IntegrityError("Encrypted message holds no literal data")
