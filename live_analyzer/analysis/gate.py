"""Signal presence gating based on RMS energy."""

import numpy as np

from ..core.constants import DEFAULT_RMS_THRESHOLD, FULL_SCALE_RMS


def compute_rms(buffer: np.ndarray) -> float:
    """Root-mean-square amplitude of a sample buffer (0.0 when empty)."""
    samples = np.asarray(buffer, dtype=np.float64).reshape(-1)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples * samples)))


def above_threshold(rms: float, threshold: float = DEFAULT_RMS_THRESHOLD) -> bool:
    """Presence rule: an RMS level strictly above the threshold."""
    return rms > threshold


def gate(buffer: np.ndarray, threshold: float = DEFAULT_RMS_THRESHOLD) -> bool:
    """Return True when the buffer's RMS exceeds the threshold."""
    return above_threshold(compute_rms(buffer), threshold)


def input_level(rms: float, full_scale: float = FULL_SCALE_RMS) -> float:
    """Scale an RMS value to a 0-1 meter level, capped at full scale."""
    if full_scale <= 0:
        return 0.0
    return min(1.0, max(0.0, rms / full_scale))


class SignalGate:
    """Presence/silence classifier shared by the detectors.

    Stateless: each detector may hold its own gate with a different
    threshold (e.g. 0.005 for pitch and chords, 0.01 for key collection).
    """

    def __init__(
        self,
        threshold: float = DEFAULT_RMS_THRESHOLD,
        full_scale: float = FULL_SCALE_RMS,
    ):
        """
        Initialize SignalGate.

        Args:
            threshold: RMS level a buffer must exceed to count as present
            full_scale: RMS level shown as a full input meter
        """
        self.threshold = threshold
        self.full_scale = full_scale

    def is_present(self, buffer: np.ndarray) -> bool:
        """Check whether the buffer carries signal."""
        return gate(buffer, self.threshold)

    def is_present_rms(self, rms: float) -> bool:
        """Check presence for an already computed RMS level."""
        return above_threshold(rms, self.threshold)

    def level(self, buffer: np.ndarray) -> float:
        """Input meter level (0-1) for the buffer."""
        return input_level(compute_rms(buffer), self.full_scale)

    @property
    def threshold_level(self) -> float:
        """Position of the presence threshold on the 0-1 meter."""
        return input_level(self.threshold, self.full_scale)
