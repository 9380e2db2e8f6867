"""Deterministic shuffling driven by a small linear congruential generator.

The same seed and input always produce the same permutation, so scrambled
letters and word banks stay put while a learner works on a question.
"""

from __future__ import annotations

from collections.abc import Sequence
import math
from typing import TypeVar

T = TypeVar("T")

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

_SCRAMBLE_ATTEMPTS = 16


class SeededRandom:
    """Linear congruential generator yielding floats in ``[0, 1)``."""

    def __init__(self, seed: int) -> None:
        self._state = int(seed) % LCG_MODULUS

    def next_float(self) -> float:
        self._state = (self._state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS


def seeded_shuffle(sequence: Sequence[T], seed: int) -> list[T]:
    """Return a Fisher-Yates permutation of ``sequence`` determined by ``seed``."""
    shuffled = list(sequence)
    rng = SeededRandom(seed)
    for i in range(len(shuffled) - 1, 0, -1):
        j = math.floor(rng.next_float() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def letter_seed(text: str, ordinal: int) -> int:
    return len(text) * 7 + ordinal * 31 + 42


def word_seed(text: str, ordinal: int) -> int:
    return len(text) * 13 + ordinal * 37 + 99


def item_seed(items: Sequence[str], ordinal: int) -> int:
    return sum(len(item) for item in items) * 11 + len(items) * 17 + ordinal * 41 + 7


def scramble_word(word: str, seed: int) -> str:
    """Shuffle the letters of ``word`` so the result differs from it whenever possible."""
    if len(set(word)) < 2:
        return word
    for attempt in range(_SCRAMBLE_ATTEMPTS):
        scrambled = "".join(seeded_shuffle(word, seed + attempt))
        if scrambled != word:
            return scrambled
    # Rotating by one always differs once the word has two distinct letters.
    return word[1:] + word[0]
