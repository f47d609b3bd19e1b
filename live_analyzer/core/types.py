"""Boundary types shared between estimators and stabilizers.

Raw estimators return loosely shaped values. Each one is converted into one
of these tagged results before it reaches a stabilizer.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


@dataclass
class SampleFrame:
    """One capture buffer of mono samples."""

    samples: np.ndarray  # float samples in [-1, 1]
    sample_rate: int

    def __post_init__(self):
        self.samples = np.asarray(self.samples, dtype=np.float32).reshape(-1)
        if self.samples.size == 0:
            raise ValueError("SampleFrame requires at least one sample")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")

    @property
    def duration(self) -> float:
        """Frame duration in seconds."""
        return len(self.samples) / self.sample_rate


@dataclass(frozen=True)
class PitchSample:
    """Raw pitch estimate: frequency in Hz and confidence (0-1)."""

    frequency: Optional[float] = None
    confidence: Optional[float] = None

    @classmethod
    def validated(
        cls, frequency: Optional[float], confidence: Optional[float]
    ) -> "PitchSample":
        """Build a sample, mapping unusable values to None."""
        freq = _finite_or_none(frequency)
        if freq is not None and freq <= 0:
            freq = None
        conf = _finite_or_none(confidence)
        return cls(frequency=freq, confidence=conf)

    @property
    def has_pitch(self) -> bool:
        return self.frequency is not None


@dataclass(frozen=True)
class KeyResult:
    """Raw key detection from a key extractor."""

    key: str
    scale: str  # "major" or "minor"
    strength: float


@dataclass(frozen=True)
class TempoCandidate:
    """One beat-analyzer tempo guess with its vote count."""

    tempo: float  # BPM
    count: int


class EstimatorStatus(Enum):
    """Lifecycle of an external estimator handle."""

    NOT_READY = "not_ready"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class EstimatorInit:
    """Outcome of initializing an estimator."""

    ok: bool
    error: Optional[str] = None


class EstimatorNotReady(RuntimeError):
    """Raised when an estimator is used before successful initialization."""


def _finite_or_none(value) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value
