"""Deterministic shuffling keyed by an integer seed."""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


class SeededRandom:
    """Linear-congruential generator shared by the shuffle and trait sampling."""

    def __init__(self, seed: int) -> None:
        self.seed = seed

    def next_float(self) -> float:
        self.seed = (self.seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.seed / LCG_MODULUS

    def next_index(self, length: int) -> int:
        return int(self.next_float() * length)

    def shuffle(self, items: Sequence[T]) -> list[T]:
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = self.next_index(i + 1)
            result[i], result[j] = result[j], result[i]
        return result


def seeded_shuffle(items: Sequence[T], seed: int) -> list[T]:
    """Return a permutation of ``items`` that depends only on ``items`` and ``seed``."""
    return SeededRandom(seed).shuffle(items)
