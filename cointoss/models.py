"""
Data models for the coin toss experiment.

Rows come out of the store as tuples; these dataclasses are what the
services and routes pass around.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from . import FLIP_TARGET

HEADS = 'H'
TAILS = 'T'
SYMBOLS = (HEADS, TAILS)


@dataclass(frozen=True)
class Session:
    """A bounded experiment instance with a one-way open -> closed lifecycle."""
    id: str
    is_open: bool
    created_at: str

    @classmethod
    def from_row(cls, row) -> 'Session':
        return cls(id=row[0], is_open=bool(row[1]), created_at=row[2])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Result:
    """One participant's completed set of FLIP_TARGET flips."""
    id: str
    session_id: str
    nickname: Optional[str]
    heads: int
    tails: int
    sequence: str
    created_at: str

    @classmethod
    def from_row(cls, row) -> 'Result':
        return cls(
            id=row[0],
            session_id=row[1],
            nickname=row[2],
            heads=int(row[3]),
            tails=int(row[4]),
            sequence=row[5],
            created_at=row[6],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def check_result_fields(heads: int, tails: int, sequence: str, flip_target: int = FLIP_TARGET) -> Optional[str]:
    """Return a problem description if the counts and sequence disagree, else None."""
    if len(sequence) != flip_target:
        return f'sequence must contain exactly {flip_target} flips'
    if any(symbol not in SYMBOLS for symbol in sequence):
        return 'sequence may only contain H and T'
    if heads + tails != flip_target:
        return f'heads + tails must equal {flip_target}'
    if heads != sequence.count(HEADS):
        return 'heads does not match the sequence'
    return None
