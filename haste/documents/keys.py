"""
Haste Key Generator — Short, human-readable document keys.

Keys are drawn one character per position from a repeating sequence of
alphabets. With the default sequence (UPPERCASE, LOWERCASE, LOWERCASE) and
length 10 a key looks like ``AkwMrtCpeS``.

Generated keys are not checked against the store; the probability of a
collision is accepted (see PasteService.choose_key for the optional check).
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Optional, Sequence

from haste.engine.errors import HasteConfigError

if TYPE_CHECKING:
    from haste.engine.config import KeyConfig

# Confusable glyphs are omitted from each alphabet (Il, O0, ij, 1l).
UPPERCASE = "ABCDEFGHJKMNPRSTWXYZ"
LOWERCASE = "abcdefhkmnprstwxyz"
NUMBERS = "23456789"

DEFAULT_LENGTH = 10
DEFAULT_SEQUENCE = (UPPERCASE, LOWERCASE, LOWERCASE)
# Separates a key from a trailing extension in request paths.
DEFAULT_DELIMITER = "."


class KeyGenerator:
    """Generates fixed-length keys from a position-indexed cycle of alphabets."""

    def __init__(
        self,
        length: int = DEFAULT_LENGTH,
        alphabets: Sequence[str] = DEFAULT_SEQUENCE,
        delimiter: str = DEFAULT_DELIMITER,
        rng: Optional[random.Random] = None,
    ):
        if length <= 0:
            raise HasteConfigError(f"Key length must be positive, got {length}")
        if not alphabets:
            raise HasteConfigError("Key alphabet sequence must not be empty")
        for alphabet in alphabets:
            if not alphabet:
                raise HasteConfigError("Key alphabets must not be empty")
            if delimiter in alphabet:
                raise HasteConfigError(
                    f"Key alphabet '{alphabet}' contains the extension delimiter "
                    f"'{delimiter}'; keys would break extension handling"
                )

        self._length = length
        self._alphabets = tuple(alphabets)
        self._delimiter = delimiter
        self._random = rng or random.Random()

    @classmethod
    def from_config(cls, config: "KeyConfig", rng: Optional[random.Random] = None) -> "KeyGenerator":
        return cls(length=config.length, alphabets=config.alphabets, rng=rng)

    def generate_key(self) -> str:
        """Return a new random key. Always succeeds."""
        return "".join(
            self._random.choice(self._alphabets[i % len(self._alphabets)])
            for i in range(self._length)
        )

    @property
    def length(self) -> int:
        return self._length

    @property
    def alphabets(self) -> tuple:
        return self._alphabets

    def __repr__(self) -> str:
        return f"<KeyGenerator length={self._length} alphabets={len(self._alphabets)}>"
