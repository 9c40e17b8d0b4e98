# picksafe/core/encryption.py

import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from picksafe.constants import S2K_COUNT
from picksafe.core import armor
from picksafe.core.errors import InvalidPassphraseError, IntegrityError, MalformedEnvelopeError
from picksafe.core.generator import read_random
from picksafe.core.packets import (
    TAG_SED, TAG_SEIPD, TAG_SKESK, encode_literal, encode_packet, read_literal, read_packets,
)

Passphrase = Union[str, Callable[[], str]]

AES128, AES192, AES256 = 7, 8, 9
KEY_SIZES = {AES128: 16, AES192: 24, AES256: 32}
BLOCK_SIZE = 16

SHA1, SHA256 = 2, 8
HASHES = {SHA1: 'sha1', SHA256: 'sha256', 9: 'sha384', 10: 'sha512', 11: 'sha224'}

S2K_SIMPLE, S2K_SALTED, S2K_ITERATED = 0, 1, 3

MDC_HEADER = b'\xd3\x14'
MDC_PACKET_SIZE = 22


class EncryptionService(ABC):
    """Abstract base class for encryption services."""

    @abstractmethod
    def encrypt(self, data: bytes, passphrase: Passphrase) -> str:
        """Encrypt the given data."""
        pass

    @abstractmethod
    def decrypt(self, envelope: str, passphrase: Passphrase) -> bytes:
        """Decrypt the given envelope."""
        pass


@dataclass
class S2K:
    """String-to-key specifier (RFC 4880 3.7)."""
    type: int
    hash_algo: int
    salt: bytes = b''
    coded_count: int = 0

    @property
    def count(self) -> int:
        return (16 + (self.coded_count & 15)) << ((self.coded_count >> 4) + 6)

    @classmethod
    def parse(cls, data: bytes) -> Tuple['S2K', int]:
        """Parse a specifier at the start of ``data``; return it and its size."""
        if len(data) < 2:
            raise MalformedEnvelopeError("Truncated S2K specifier")
        s2k_type, hash_algo = data[0], data[1]
        if hash_algo not in HASHES:
            raise MalformedEnvelopeError(f"Unsupported S2K hash algorithm {hash_algo}")
        if s2k_type == S2K_SIMPLE:
            return cls(s2k_type, hash_algo), 2
        if s2k_type == S2K_SALTED:
            if len(data) < 10:
                raise MalformedEnvelopeError("Truncated S2K specifier")
            return cls(s2k_type, hash_algo, data[2:10]), 10
        if s2k_type == S2K_ITERATED:
            if len(data) < 11:
                raise MalformedEnvelopeError("Truncated S2K specifier")
            return cls(s2k_type, hash_algo, data[2:10], data[10]), 11
        raise MalformedEnvelopeError(f"Unsupported S2K type {s2k_type}")

    def serialize(self) -> bytes:
        out = bytes([self.type, self.hash_algo]) + self.salt
        if self.type == S2K_ITERATED:
            out += bytes([self.coded_count])
        return out

    def derive(self, passphrase: bytes, size: int) -> bytes:
        key = b''
        preload = 0
        while len(key) < size:
            # Each extra hash context is preloaded with one more zero byte.
            h = hashlib.new(HASHES[self.hash_algo])
            h.update(b'\x00' * preload)
            if self.type == S2K_ITERATED:
                _hash_repeated(h, self.salt + passphrase, self.count)
            else:
                h.update(self.salt + passphrase)
            key += h.digest()
            preload += 1
        return key[:size]


def _hash_repeated(h, data: bytes, count: int) -> None:
    count = max(count, len(data))
    full, rest = divmod(count, len(data))
    reps = max(1, 65536 // len(data))
    block = data * reps
    while full >= reps:
        h.update(block)
        full -= reps
    h.update(data * full)
    h.update(data[:rest])


def _cfb(key: bytes, data: bytes, decrypt: bool) -> bytes:
    """Full-block AES-CFB with a zero IV, as used by SEIPD and session key packets."""
    cipher = Cipher(algorithms.AES(key), CFB(b'\x00' * BLOCK_SIZE))
    context = cipher.decryptor() if decrypt else cipher.encryptor()
    return context.update(data) + context.finalize()


@dataclass
class SessionKeyPacket:
    """A parsed version 4 symmetric-key encrypted session key packet."""
    cipher_algo: int
    s2k: S2K
    encrypted_key: bytes

    @classmethod
    def parse(cls, body: bytes) -> 'SessionKeyPacket':
        if len(body) < 2 or body[0] != 4:
            raise MalformedEnvelopeError("Unsupported session key packet version")
        cipher_algo = body[1]
        if cipher_algo not in KEY_SIZES:
            raise MalformedEnvelopeError(f"Unsupported cipher algorithm {cipher_algo}")
        s2k, size = S2K.parse(body[2:])
        return cls(cipher_algo, s2k, body[2 + size:])

    def session_key(self, passphrase: bytes) -> Optional[Tuple[int, bytes]]:
        """Return (cipher, key), or None when the passphrase cannot be right."""
        key = self.s2k.derive(passphrase, KEY_SIZES[self.cipher_algo])
        if not self.encrypted_key:
            return self.cipher_algo, key
        decrypted = _cfb(key, self.encrypted_key, decrypt=True)
        algo, session_key = decrypted[0], decrypted[1:]
        if KEY_SIZES.get(algo) != len(session_key):
            return None
        return algo, session_key


def _resolve_passphrase(passphrase: Passphrase) -> bytes:
    if callable(passphrase):
        passphrase = passphrase()
    if isinstance(passphrase, str):
        passphrase = passphrase.encode('utf-8')
    return passphrase


class OpenPGPSymmetricEncryption(EncryptionService):
    """Passphrase-based OpenPGP encryption (SKESK + SEIPD) in an ASCII-armored envelope."""

    def __init__(self, coded_count: int = S2K_COUNT):
        self.coded_count = coded_count

    def encrypt(self, data: bytes, passphrase: Passphrase) -> str:
        if isinstance(data, str):
            data = data.encode('utf-8')
        secret = _resolve_passphrase(passphrase)

        s2k = S2K(S2K_ITERATED, SHA256, read_random(8), self.coded_count)
        key = s2k.derive(secret, KEY_SIZES[AES256])
        skesk = bytes([4, AES256]) + s2k.serialize()

        prefix = read_random(BLOCK_SIZE)
        prefix += prefix[-2:]
        plaintext = prefix + encode_literal(data) + MDC_HEADER
        plaintext += hashlib.sha1(plaintext).digest()
        seipd = b'\x01' + _cfb(key, plaintext, decrypt=False)

        logging.debug(f"Encrypted {len(data)} bytes into a {len(seipd)} byte SEIPD packet")
        return armor.encode(encode_packet(TAG_SKESK, skesk) + encode_packet(TAG_SEIPD, seipd))

    def decrypt(self, envelope: str, passphrase: Passphrase) -> bytes:
        """Decrypt an armored envelope.

        ``passphrase`` is resolved exactly once. When the resulting key does
        not pass the quick check for any session key packet the call fails
        with InvalidPassphraseError; it never asks again.
        """
        _, data = armor.decode(envelope)
        packets = read_packets(data, stream_tags=(TAG_SEIPD, TAG_SED))
        key_packets = [SessionKeyPacket.parse(p.body) for p in packets if p.tag == TAG_SKESK]
        encrypted = next((p for p in packets if p.tag in (TAG_SEIPD, TAG_SED)), None)
        if not key_packets or encrypted is None:
            raise MalformedEnvelopeError("Envelope is not a symmetrically encrypted message")
        if encrypted.tag == TAG_SED:
            raise MalformedEnvelopeError("Encrypted data lacks integrity protection")
        if not encrypted.complete:
            logging.error("Decryption failed: encrypted data packet is truncated")
            raise IntegrityError("Encrypted data is truncated")
        if not encrypted.body or encrypted.body[0] != 1:
            raise MalformedEnvelopeError("Unsupported encrypted data packet version")

        secret = _resolve_passphrase(passphrase)
        logging.debug(f"Decrypting envelope with {len(key_packets)} session key packet(s)")
        for key_packet in key_packets:
            resolved = key_packet.session_key(secret)
            if resolved is None:
                continue
            plaintext = self._open(resolved[1], encrypted.body[1:])
            if plaintext is not None:
                return read_literal(plaintext)
        logging.error("Decryption failed: passphrase rejected")
        raise InvalidPassphraseError("Unable to unlock safe with provided password")

    def _open(self, key: bytes, ciphertext: bytes) -> Optional[bytes]:
        """Decrypt SEIPD contents; None means the quick check failed."""
        if len(ciphertext) < BLOCK_SIZE + 2:
            raise IntegrityError("Encrypted data is truncated")
        plaintext = _cfb(key, ciphertext, decrypt=True)
        if plaintext[BLOCK_SIZE - 2:BLOCK_SIZE] != plaintext[BLOCK_SIZE:BLOCK_SIZE + 2]:
            return None
        if len(plaintext) < BLOCK_SIZE + 2 + MDC_PACKET_SIZE:
            raise IntegrityError("Encrypted data is truncated")
        if plaintext[-MDC_PACKET_SIZE:-20] != MDC_HEADER:
            raise IntegrityError("Modification detection code is missing")
        digest = hashlib.sha1(plaintext[:-20]).digest()
        if not hmac.compare_digest(digest, plaintext[-20:]):
            logging.error("Decryption failed: modification detection code mismatch")
            raise IntegrityError("Encrypted data failed its integrity check")
        return plaintext[BLOCK_SIZE + 2:-MDC_PACKET_SIZE]


default_service = OpenPGPSymmetricEncryption()


def encrypt(plaintext, passphrase: Passphrase) -> str:
    return default_service.encrypt(plaintext, passphrase)


def decrypt(envelope: str, passphrase: Passphrase) -> bytes:
    return default_service.decrypt(envelope, passphrase)
