"""Raw pitch estimation for a single sample buffer."""

from abc import ABC, abstractmethod

import numpy as np
import librosa

from ..core.types import PitchSample


class PitchEstimator(ABC):
    """Abstract base class for raw per-buffer pitch estimators."""

    @abstractmethod
    def estimate(self, samples: np.ndarray, sr: int) -> PitchSample:
        """
        Estimate the fundamental frequency of one buffer.

        Args:
            samples: Mono audio buffer
            sr: Sample rate

        Returns:
            PitchSample; frequency is None when no pitch is found
        """
        pass


class PyinPitchEstimator(PitchEstimator):
    """Per-buffer pitch estimate using librosa's probabilistic YIN."""

    def __init__(
        self,
        fmin: float = 65.0,  # C2
        fmax: float = 2093.0,  # C7
        frame_length: int = 2048,
    ):
        self.fmin = fmin
        self.fmax = fmax
        self.frame_length = frame_length

    def estimate(self, samples: np.ndarray, sr: int) -> PitchSample:
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        if len(samples) < self.frame_length:
            samples = np.pad(samples, (0, self.frame_length - len(samples)))

        f0, voiced_flag, voiced_prob = librosa.pyin(
            samples,
            fmin=self.fmin,
            fmax=min(self.fmax, sr / 2.0),
            sr=sr,
            frame_length=self.frame_length,
            center=False,
        )

        voiced = voiced_flag & np.isfinite(f0)
        if not np.any(voiced):
            confidence = float(np.nanmax(voiced_prob, initial=0.0))
            return PitchSample(frequency=None, confidence=confidence)

        return PitchSample.validated(
            float(np.median(f0[voiced])),
            float(np.mean(voiced_prob[voiced])),
        )
