"""Analysis layer - Low-level signal analysis.

This layer works directly on sample buffers:
- Signal presence gating (RMS)
- Spectral features (dB magnitude spectrum, chroma)
- Raw pitch estimation
- Raw tempo candidates (beats)
"""

from .gate import SignalGate, above_threshold, compute_rms, gate, input_level
from .features import ChromaExtractor, extract_chroma, magnitude_spectrum_db
from .pitch import PitchEstimator, PyinPitchEstimator
from .tempo import TempoAnalyzer

__all__ = [
    "SignalGate",
    "above_threshold",
    "compute_rms",
    "gate",
    "input_level",
    "ChromaExtractor",
    "extract_chroma",
    "magnitude_spectrum_db",
    "PitchEstimator",
    "PyinPitchEstimator",
    "TempoAnalyzer",
]
