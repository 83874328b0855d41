"""Paste key generation.

Keys are short alphanumeric strings usable both as a URL path segment and as a
store key suffix. Randomness comes from an injectable byte source so tests can
feed fixed sequences.
"""
from __future__ import annotations

import random
import string
from typing import Callable, Optional

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
KEY_LENGTH = 8

# Largest multiple of len(ALPHABET) that fits in a byte; anything above is rejected.
_CUTOFF = 256 - (256 % len(ALPHABET))


class KeyGenerator:
    def __init__(self, random_bytes: Optional[Callable[[int], bytes]] = None, length: int = KEY_LENGTH) -> None:
        if length <= 0:
            raise ValueError("key length must be positive")
        self._random_bytes = random_bytes or random.Random().randbytes
        self.length = length

    def generate(self) -> str:
        chars: list[str] = []
        while len(chars) < self.length:
            for b in self._random_bytes(self.length - len(chars)):
                if b < _CUTOFF:
                    chars.append(ALPHABET[b % len(ALPHABET)])
        return "".join(chars)


_default_generator: Optional[KeyGenerator] = None


def generate_key() -> str:
    global _default_generator
    if _default_generator is None:
        _default_generator = KeyGenerator()
    return _default_generator.generate()
