# picksafe/core/generator.py
import os
import string
import logging

from picksafe.core.errors import RandomSourceError

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "!@#$%^&*()-_=+,.?/:;{}[]`~<>"

# Largest multiple of len(ALPHABET) that fits in a byte; anything above is
# rejected so every character is equally likely.
MAX_ACCEPTED = 256 - (256 % len(ALPHABET))


def read_random(size: int) -> bytes:
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as e:
        logging.error("Secure random source unavailable", exc_info=e)
        raise RandomSourceError("Unable to read from the secure random source") from e


def generate(length: int) -> str:
    """Generate a random password of exactly ``length`` characters from ALPHABET."""
    if length <= 0:
        raise ValueError("Password length must be greater than zero.")

    chars = []
    batch = length + length // 4
    while True:
        for b in read_random(batch):
            if b >= MAX_ACCEPTED:
                continue
            chars.append(ALPHABET[b % len(ALPHABET)])
            if len(chars) == length:
                return "".join(chars)
