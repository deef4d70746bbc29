"""
Local password and passphrase generation.

Randomness comes from `secrets.SystemRandom` unless a caller passes its own
`random.Random` (tests do, to make output reproducible).
"""

from __future__ import annotations

import random
import secrets
from functools import lru_cache
from pathlib import Path

from vaultpop.config import PasswordGenerationConfig

UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
NUMBERS = "0123456789"
SPECIAL = "!@#$%^&*()_+-=[]{}|;:,.<>?"

MIN_PASSPHRASE_WORDS = 3

WORDLIST_PATH = Path(__file__).parent / "wordlist.txt"


@lru_cache(maxsize=1)
def load_wordlist() -> tuple[str, ...]:
    words = WORDLIST_PATH.read_text(encoding="utf-8").split()
    return tuple(w for w in words if w.isalpha())


def _rng(rng: random.Random | None) -> random.Random:
    return rng if rng is not None else secrets.SystemRandom()


def charset_for(uppercase: bool, lowercase: bool, number: bool, special: bool) -> str:
    charset = ""
    if uppercase:
        charset += UPPERCASE
    if lowercase:
        charset += LOWERCASE
    if number:
        charset += NUMBERS
    if special:
        charset += SPECIAL
    return charset or LOWERCASE + NUMBERS


def generate_random_password(
    length: int = 16,
    uppercase: bool = True,
    lowercase: bool = True,
    number: bool = True,
    special: bool = True,
    rng: random.Random | None = None,
) -> str:
    """Draw `length` characters from the union of the enabled classes."""
    r = _rng(rng)
    charset = charset_for(uppercase, lowercase, number, special)
    return "".join(r.choice(charset) for _ in range(length))


def generate_passphrase(
    words: int = 5,
    separator: str = "-",
    capitalize: bool = True,
    include_number: bool = True,
    rng: random.Random | None = None,
    wordlist: tuple[str, ...] | None = None,
) -> str:
    """Join `max(3, words)` random words, optionally capitalised with a digit suffix."""
    r = _rng(rng)
    pool = wordlist or load_wordlist()
    count = max(MIN_PASSPHRASE_WORDS, words)

    parts = []
    for _ in range(count):
        word = r.choice(pool)
        if capitalize:
            word = word[:1].upper() + word[1:]
        # Half of the words get a single trailing digit
        if include_number and r.randrange(2) == 1:
            word += str(r.randrange(10))
        parts.append(word)
    return separator.join(parts)


def generate_password(
    config: PasswordGenerationConfig,
    passphrase: bool | None = None,
    rng: random.Random | None = None,
) -> str:
    """Generate using config defaults; `passphrase` overrides the configured type."""
    if passphrase is None:
        passphrase = config.type == "passphrase"
    if passphrase:
        return generate_passphrase(
            words=config.words,
            separator=config.separator,
            capitalize=config.capitalize,
            include_number=config.include_number,
            rng=rng,
        )
    return generate_random_password(
        length=config.length,
        uppercase=config.uppercase,
        lowercase=config.lowercase,
        number=config.number,
        special=config.special,
        rng=rng,
    )
