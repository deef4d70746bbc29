"""Tests for local password and passphrase generation."""

from __future__ import annotations

import random

import pytest

from vaultpop.config import PasswordGenerationConfig
from vaultpop.utils.password import (
    LOWERCASE,
    NUMBERS,
    SPECIAL,
    UPPERCASE,
    charset_for,
    generate_passphrase,
    generate_password,
    generate_random_password,
    load_wordlist,
)


@pytest.fixture
def rng():
    return random.Random(1234)


class TestRandomPassword:
    @pytest.mark.parametrize("length", [5, 16, 64])
    def test_exact_length(self, rng, length):
        assert len(generate_random_password(length=length, rng=rng)) == length

    def test_only_enabled_classes(self, rng):
        password = generate_random_password(length=200, uppercase=False, special=False, rng=rng)
        assert set(password) <= set(LOWERCASE + NUMBERS)

    def test_single_class(self, rng):
        password = generate_random_password(
            length=50, uppercase=False, lowercase=False, number=True, special=False, rng=rng
        )
        assert set(password) <= set(NUMBERS)

    def test_nothing_enabled_falls_back(self):
        assert charset_for(False, False, False, False) == LOWERCASE + NUMBERS

    def test_all_classes(self):
        assert charset_for(True, True, True, True) == UPPERCASE + LOWERCASE + NUMBERS + SPECIAL

    def test_system_random_by_default(self):
        assert generate_random_password(length=32) != generate_random_password(length=32)


class TestPassphrase:
    @pytest.mark.parametrize("words", [3, 5, 8])
    def test_word_count(self, rng, words):
        phrase = generate_passphrase(words=words, separator="-", rng=rng)
        assert len(phrase.split("-")) == words

    def test_minimum_three_words(self, rng):
        phrase = generate_passphrase(words=1, separator=".", rng=rng)
        assert len(phrase.split(".")) == 3

    def test_capitalize(self, rng):
        phrase = generate_passphrase(words=6, capitalize=True, include_number=False, rng=rng)
        assert all(word[0].isupper() for word in phrase.split("-"))

    def test_words_from_list(self, rng):
        words = set(load_wordlist())
        phrase = generate_passphrase(words=6, capitalize=False, include_number=False, rng=rng)
        assert all(word in words for word in phrase.split("-"))

    def test_include_number_appends_single_digits(self, rng):
        phrase = generate_passphrase(words=20, capitalize=False, include_number=True, rng=rng)
        for word in phrase.split("-"):
            stripped = word.rstrip(NUMBERS)
            assert len(word) - len(stripped) <= 1

    def test_custom_wordlist(self, rng):
        phrase = generate_passphrase(words=3, capitalize=False, include_number=False, rng=rng, wordlist=("x",))
        assert phrase == "x-x-x"

    def test_wordlist_is_usable(self):
        words = load_wordlist()
        assert len(words) > 100
        assert len(set(words)) == len(words)


class TestGeneratePassword:
    def test_uses_configured_type(self, rng):
        cfg = PasswordGenerationConfig(type="random", length=12)
        assert len(generate_password(cfg, rng=rng)) == 12

    def test_override_to_passphrase(self, rng):
        cfg = PasswordGenerationConfig(type="random", words=4, separator="_")
        assert len(generate_password(cfg, passphrase=True, rng=rng).split("_")) == 4

    def test_reproducible_with_seeded_rng(self):
        cfg = PasswordGenerationConfig()
        assert generate_password(cfg, rng=random.Random(7)) == generate_password(cfg, rng=random.Random(7))
