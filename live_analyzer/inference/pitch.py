"""Pitch stabilization - Turn raw per-frame pitch estimates into stable notes.

Raw estimators run on every audio frame and flicker between neighbouring
notes. The stabilizer:
- rejects low-confidence and out-of-range estimates
- smooths accepted frequencies with an exponential moving average
- requires the same note+octave on consecutive frames (hysteresis)
- throttles how often a new state is surfaced to the caller
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..core import NoteInfo, PitchSample, frequency_to_note
from ..core.constants import PITCH_FMIN, PITCH_FMAX


@dataclass
class NoteStabilizerConfig:
    """Configuration for note stabilization.

    Attributes:
        ema_alpha: Weight of each new frequency in the moving average (default: 0.2)
        stability_frames: Consecutive frames of the same note before display (default: 4)
        update_interval: Minimum seconds between surfaced updates (default: 0.1)
        min_probability: Estimates at or below this confidence are rejected (default: 0.8)
        min_frequency: Lower bound of the accepted range in Hz, exclusive (default: 70)
        max_frequency: Upper bound of the accepted range in Hz, exclusive (default: 2000)
    """

    ema_alpha: float = 0.2
    stability_frames: int = 4
    update_interval: float = 0.1
    min_probability: float = 0.8
    min_frequency: float = PITCH_FMIN
    max_frequency: float = PITCH_FMAX


@dataclass(frozen=True)
class NoteUpdate:
    """A state surfaced to the caller; note is None for "no note"."""

    note: Optional[NoteInfo]
    frequency: Optional[float]


class NoteStabilizer:
    """Smooth and debounce a stream of raw pitch estimates."""

    def __init__(self, config: Optional[NoteStabilizerConfig] = None):
        self.config = config if config is not None else NoteStabilizerConfig()
        self._last_update_time: Optional[float] = None
        self._current: Optional[NoteUpdate] = None
        self.reset()

    @property
    def current(self) -> Optional[NoteInfo]:
        """Last surfaced note (None when nothing or "no note" was surfaced)."""
        return self._current.note if self._current else None

    @property
    def smoothed_frequency(self) -> Optional[float]:
        return self._smoothed

    def accepts(self, frequency: Optional[float], confidence: Optional[float]) -> bool:
        """Whether a raw estimate passes the confidence and range filters."""
        if frequency is None or confidence is None:
            return False
        if not (math.isfinite(frequency) and math.isfinite(confidence)):
            return False
        cfg = self.config
        return (
            cfg.min_frequency < frequency < cfg.max_frequency
            and confidence > cfg.min_probability
        )

    def ingest(
        self,
        frequency: Optional[float],
        confidence: Optional[float],
        now: float,
        present: bool = True,
    ) -> Optional[NoteUpdate]:
        """
        Process one frame's raw estimate.

        Args:
            frequency: Raw frequency in Hz, or None for no pitch
            confidence: Estimator confidence (0-1)
            now: Monotonic timestamp in seconds
            present: False when the signal gate reported silence

        Returns:
            NoteUpdate when a new state is surfaced this frame, else None
        """
        if not present or not self.accepts(frequency, confidence):
            if not self._interval_elapsed(now):
                return None
            self._clear_tracking()
            return self._surface(NoteUpdate(note=None, frequency=None), now)

        alpha = self.config.ema_alpha
        if self._smoothed is None:
            self._smoothed = frequency
        else:
            self._smoothed = self._smoothed * (1 - alpha) + frequency * alpha

        info = frequency_to_note(self._smoothed)
        if info is None:
            return None

        if info.name == self._last_note:
            self._consecutive += 1
        else:
            self._consecutive = 1
            self._last_note = info.name

        if self._consecutive >= self.config.stability_frames and self._interval_elapsed(now):
            return self._surface(NoteUpdate(note=info, frequency=self._smoothed), now)
        return None

    def ingest_sample(
        self, sample: PitchSample, now: float, present: bool = True
    ) -> Optional[NoteUpdate]:
        """Process a validated PitchSample."""
        return self.ingest(sample.frequency, sample.confidence, now, present)

    def reset(self) -> None:
        """Return to a cold state (teardown)."""
        self._clear_tracking()
        self._last_update_time = None
        self._current = None

    def _clear_tracking(self) -> None:
        self._smoothed: Optional[float] = None
        self._last_note: Optional[str] = None
        self._consecutive = 0

    def _interval_elapsed(self, now: float) -> bool:
        if self._last_update_time is None:
            return True
        return now - self._last_update_time >= self.config.update_interval

    def _surface(self, update: NoteUpdate, now: float) -> NoteUpdate:
        self._current = update
        self._last_update_time = now
        return update
