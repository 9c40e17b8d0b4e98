# picksafe/core/armor.py
"""ASCII armor (RFC 4880 section 6) for the safe envelope."""
import base64
import binascii
from typing import Tuple

from picksafe.constants import ARMOR_LINE_LENGTH
from picksafe.core.errors import MalformedEnvelopeError

MESSAGE = "PGP MESSAGE"
# Safes written by earlier pick releases carry the signature label.
READABLE_TYPES = (MESSAGE, "PGP SIGNATURE")

CRC24_INIT = 0xB704CE
CRC24_POLY = 0x1864CFB


def _crc24_table():
    table = []
    for byte in range(256):
        crc = byte << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= CRC24_POLY
        table.append(crc & 0xFFFFFF)
    return table


CRC24_TABLE = _crc24_table()


def crc24(data: bytes) -> int:
    crc = CRC24_INIT
    for byte in data:
        crc = ((crc << 8) & 0xFFFFFF) ^ CRC24_TABLE[((crc >> 16) ^ byte) & 0xFF]
    return crc


def _checksum(data: bytes) -> str:
    return base64.b64encode(crc24(data).to_bytes(3, 'big')).decode('ascii')


def encode(data: bytes, block_type: str = MESSAGE) -> str:
    body = base64.b64encode(data).decode('ascii')
    lines = [f"-----BEGIN {block_type}-----", ""]
    lines.extend(body[i:i + ARMOR_LINE_LENGTH] for i in range(0, len(body), ARMOR_LINE_LENGTH))
    lines.append("=" + _checksum(data))
    lines.append(f"-----END {block_type}-----")
    return "\n".join(lines) + "\n"


def decode(text: str) -> Tuple[str, bytes]:
    """Return the block type and the binary payload of an armored block.

    Armor headers are skipped. The CRC-24 checksum line is optional, but when
    present it has to match the payload.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode('ascii')
        except UnicodeDecodeError as e:
            raise MalformedEnvelopeError("Envelope is not ASCII text") from e
    lines = [line.rstrip() for line in text.splitlines()]
    start = None
    block_type = None
    for index, line in enumerate(lines):
        if line.startswith("-----BEGIN ") and line.endswith("-----"):
            start = index
            block_type = line[len("-----BEGIN "):-len("-----")]
            break
    if start is None:
        raise MalformedEnvelopeError("No armored block found")
    if block_type not in READABLE_TYPES:
        raise MalformedEnvelopeError(f"Unexpected armor type '{block_type}'")

    end_line = f"-----END {block_type}-----"
    try:
        end = lines.index(end_line, start + 1)
    except ValueError:
        raise MalformedEnvelopeError("Armored block is not terminated") from None

    block = lines[start + 1:end]
    # Headers run up to the first blank line.
    if "" in block and all(":" in line for line in block[:block.index("")]):
        block = block[block.index("") + 1:]

    checksum = None
    if block and block[-1].startswith("="):
        checksum = block.pop()[1:]
    body = "".join(line.strip() for line in block)

    try:
        data = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEnvelopeError("Armored body is not valid base64") from e
    if not data:
        raise MalformedEnvelopeError("Armored block is empty")
    if checksum is not None and checksum != _checksum(data):
        raise MalformedEnvelopeError("Armor checksum mismatch")
    return block_type, data
