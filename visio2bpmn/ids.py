"""Identifier allocation for generated BPMN elements."""

from __future__ import annotations

import random
import string

TOKEN_ALPHABET = string.digits + string.ascii_lowercase
TOKEN_LENGTH = 9


class IdAllocator:
    """Hands out ``<Prefix>_<token>`` ids that never repeat within one allocator.

    Tokens are 9 random lowercase base-36 characters. A token that was already
    issued is drawn again.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.SystemRandom()
        self._issued: set[str] = set()

    def _token(self) -> str:
        return ''.join(self._rng.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))

    def allocate(self, prefix: str) -> str:
        while True:
            candidate = f'{prefix}_{self._token()}'
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    @property
    def issued(self) -> frozenset[str]:
        return frozenset(self._issued)
