"""
Deterministic shuffling for question rounds.

A round's question order is a permutation of the bank indices derived from
``(length, seed)`` alone, so a session can be resumed with the same seed or
reshuffled by picking a new one. The generator is mulberry32: fast, 32-bit
state, not cryptographic. Only coverage and fairness matter here.
"""

from __future__ import annotations

import random

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit multiply, low word only."""
    return (a * b) & _MASK32


class Mulberry32:
    """Seeded mulberry32 generator producing floats in [0, 1)."""

    def __init__(self, seed: int):
        self._state = seed & _MASK32

    def next_float(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296


def permute(length: int, seed: int) -> list[int]:
    """
    Build a permutation of ``range(length)`` for ``seed``.

    Fisher-Yates from the back. Same inputs always give the same order.

    Args:
        length: Number of items (0 or negative yields an empty list)
        seed: Any integer; only the low 32 bits are used

    Returns:
        List of distinct indices covering [0, length)
    """
    if length <= 0:
        return []

    rng = Mulberry32(seed)
    indices = list(range(length))
    for i in range(length - 1, 0, -1):
        j = int(rng.next_float() * (i + 1))
        indices[i], indices[j] = indices[j], indices[i]
    return indices


def new_seed() -> int:
    """Pick a fresh 32-bit seed for a new shuffle."""
    return random.getrandbits(32)
