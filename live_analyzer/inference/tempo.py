"""Tempo aggregation - Confidence for beat-analyzer tempo events."""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from ..core import TempoCandidate


@dataclass(frozen=True)
class TempoState:
    """Container for the stabilized tempo."""

    bpm: Optional[int] = None
    confidence: float = 0.0  # 0.0 - 1.0, 1.0 once the analyzer is stable
    stable: bool = False


class TempoAggregator:
    """Map beat-analyzer events to a bounded tempo confidence.

    Candidate events carry a vote count; confidence is count / full_count,
    capped at 1. A stable event is authoritative until reset.
    """

    def __init__(self, full_count: int = 100):
        """
        Initialize TempoAggregator.

        Args:
            full_count: Vote count that maps to full confidence
        """
        self.full_count = full_count
        self._state = TempoState()

    @property
    def state(self) -> TempoState:
        return self._state

    def on_candidates(self, candidates: Iterable[TempoCandidate]) -> TempoState:
        """Take the top-ranked candidate of a "bpm" event."""
        top = next(iter(candidates), None)
        if top is None or not _valid_tempo(top.tempo) or self._state.stable:
            return self._state

        confidence = min(_vote_count(top.count) / self.full_count, 1.0)
        self._state = TempoState(bpm=_round_bpm(top.tempo), confidence=confidence)
        return self._state

    def on_stable(self, tempo: float) -> TempoState:
        """Accept a resolved tempo from a "bpm_stable" event."""
        if not _valid_tempo(tempo):
            return self._state
        self._state = TempoState(bpm=_round_bpm(tempo), confidence=1.0, stable=True)
        return self._state

    def reset(self) -> TempoState:
        """Deactivation/disconnect: no tempo, zero confidence."""
        self._state = TempoState()
        return self._state


def _valid_tempo(tempo) -> bool:
    try:
        tempo = float(tempo)
    except (TypeError, ValueError):
        return False
    return math.isfinite(tempo) and tempo > 0


def _vote_count(count) -> float:
    # Unusable counts carry no confidence
    try:
        count = float(count)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(count):
        return 0.0
    return max(count, 0.0)


def _round_bpm(tempo: float) -> int:
    # Half-up rounding, 120.5 -> 121
    return int(math.floor(float(tempo) + 0.5))
