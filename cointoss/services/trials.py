"""
Trial generator and the participant's in-progress flip sequence.
"""

import random
from typing import List, Optional

from .. import FLIP_TARGET
from ..models import HEADS, TAILS, SYMBOLS


def flip_once(rng: Optional[random.Random] = None) -> str:
    """One fair, independent coin flip."""
    value = (rng or random).random()
    return HEADS if value < 0.5 else TAILS


class TrialSequence:
    """Flips accumulated by one participant, capped at the flip target."""

    def __init__(self, flips: Optional[List[str]] = None, target: int = FLIP_TARGET,
                 rng: Optional[random.Random] = None):
        self.target = target
        self.rng = rng
        self.flips: List[str] = [f for f in (flips or []) if f in SYMBOLS][:target]

    def flip(self) -> Optional[str]:
        """Flip and record; returns None once the target is reached."""
        if self.is_complete:
            return None
        value = flip_once(self.rng)
        self.flips.append(value)
        return value

    def reset(self) -> None:
        self.flips = []

    @property
    def count(self) -> int:
        return len(self.flips)

    @property
    def is_complete(self) -> bool:
        return len(self.flips) >= self.target

    @property
    def last(self) -> Optional[str]:
        return self.flips[-1] if self.flips else None

    @property
    def heads(self) -> int:
        return self.flips.count(HEADS)

    @property
    def tails(self) -> int:
        return len(self.flips) - self.heads

    def as_string(self) -> str:
        return ''.join(self.flips)

    def progress(self) -> dict:
        return {
            'count': self.count,
            'target': self.target,
            'last': self.last,
            'heads': self.heads,
            'tails': self.tails,
            'flips': list(self.flips),
        }
