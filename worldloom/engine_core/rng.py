"""
Deterministic RNG.

All randomness in the engine (weighted narrative variants, dice rolls in
rule modules) goes through an injected RNG so a seed replays a game exactly.
"""

from __future__ import annotations
from typing import Protocol, runtime_checkable
import copy
import re

DEFAULT_SEED = 1

_DICE_RE = re.compile(r"^\s*(\d*)d(\d+)([+-]\d+)?\s*$", re.IGNORECASE)


@runtime_checkable
class RNG(Protocol):
    def next(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        ...

    def roll(self, notation: str) -> int:
        """Roll dice notation such as "2d6+1"."""
        ...


class LcgRng:
    """Linear congruential generator with 32-bit state (Numerical Recipes constants)."""

    def __init__(self, seed: int = DEFAULT_SEED):
        self.state = seed & 0xFFFFFFFF

    def next(self) -> float:
        self.state = (1664525 * self.state + 1013904223) & 0xFFFFFFFF
        return self.state / 0x100000000

    def randint(self, low: int, high: int) -> int:
        if high < low:
            low, high = high, low
        return low + int(self.next() * (high - low + 1))

    def roll(self, notation: str) -> int:
        """Returns 0 for notation that does not parse."""
        match = _DICE_RE.match(notation)
        if not match:
            return 0
        count = int(match.group(1)) if match.group(1) else 1
        sides = int(match.group(2))
        modifier = int(match.group(3)) if match.group(3) else 0
        return sum(self.randint(1, sides) for _ in range(count)) + modifier

    def __repr__(self) -> str:
        return f"LcgRng(state={self.state})"


def create_default_rng(seed: int | None = None) -> LcgRng:
    return LcgRng(DEFAULT_SEED if seed is None else seed)


def fork_rng(rng: RNG) -> RNG:
    """A copy that draws the same sequence without advancing the original."""
    return copy.deepcopy(rng)
