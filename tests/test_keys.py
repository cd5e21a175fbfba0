"""Unit tests for haste.documents.keys — KeyGenerator."""

import random

import pytest

from haste.documents.keys import (
    DEFAULT_SEQUENCE,
    LOWERCASE,
    NUMBERS,
    UPPERCASE,
    KeyGenerator,
)
from haste.engine.config import KeyConfig
from haste.engine.errors import HasteConfigError


class TestAlphabets:
    """The built-in alphabets avoid confusable glyphs."""

    @pytest.mark.parametrize("glyph", ["I", "O", "l", "i", "j", "0", "1"])
    def test_confusables_excluded(self, glyph):
        assert glyph not in UPPERCASE + LOWERCASE + NUMBERS

    def test_no_delimiter(self):
        assert "." not in UPPERCASE + LOWERCASE + NUMBERS


class TestKeyShape:

    def test_default_length(self):
        assert len(KeyGenerator().generate_key()) == 10

    def test_position_alphabets(self):
        gen = KeyGenerator(rng=random.Random(7))
        for _ in range(200):
            key = gen.generate_key()
            for i, ch in enumerate(key):
                assert ch in DEFAULT_SEQUENCE[i % 3]
            assert "." not in key

    def test_custom_sequence(self):
        gen = KeyGenerator(length=6, alphabets=[NUMBERS, UPPERCASE])
        key = gen.generate_key()
        assert len(key) == 6
        assert all(ch in NUMBERS for ch in key[0::2])
        assert all(ch in UPPERCASE for ch in key[1::2])

    def test_single_alphabet(self):
        gen = KeyGenerator(length=4, alphabets=["x"])
        assert gen.generate_key() == "xxxx"

    def test_seeded_rng_is_deterministic(self):
        a = KeyGenerator(rng=random.Random(42))
        b = KeyGenerator(rng=random.Random(42))
        assert [a.generate_key() for _ in range(5)] == [b.generate_key() for _ in range(5)]

    def test_keys_vary(self):
        gen = KeyGenerator()
        keys = {gen.generate_key() for _ in range(1000)}
        assert len(keys) == 1000


class TestKeyGeneratorValidation:

    def test_rejects_delimiter_in_alphabet(self):
        with pytest.raises(HasteConfigError, match="delimiter"):
            KeyGenerator(alphabets=["abc.def"])

    def test_rejects_custom_delimiter(self):
        with pytest.raises(HasteConfigError):
            KeyGenerator(alphabets=["abc-def"], delimiter="-")

    def test_rejects_empty_alphabet(self):
        with pytest.raises(HasteConfigError):
            KeyGenerator(alphabets=[UPPERCASE, ""])

    def test_rejects_empty_sequence(self):
        with pytest.raises(HasteConfigError):
            KeyGenerator(alphabets=[])

    def test_rejects_non_positive_length(self):
        with pytest.raises(HasteConfigError):
            KeyGenerator(length=0)

    def test_from_config(self):
        gen = KeyGenerator.from_config(KeyConfig(length=12, alphabets=[LOWERCASE]))
        assert gen.length == 12
        assert gen.alphabets == (LOWERCASE,)
        assert all(ch in LOWERCASE for ch in gen.generate_key())
