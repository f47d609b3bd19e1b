"""Live Analyzer - Stable musical descriptors from a live audio stream.

Architecture Layers:
    1. core/       - Note math, constants and boundary result types
    2. input/      - Audio loading and buffer replay
    3. analysis/   - Signal-level work (gating, chroma, raw pitch, raw tempo)
    4. inference/  - Stabilization (chords, notes, key voting, tempo confidence)
    5. session     - One tick per buffer, owning every stabilizer
"""

__version__ = "0.1.0"

# Core types
from .core import (
    NoteInfo,
    SampleFrame,
    PitchSample,
    KeyResult,
    TempoCandidate,
    frequency_to_note,
)

# Input layer
from .input import AudioLoader

# Analysis layer
from .analysis import (
    SignalGate,
    ChromaExtractor,
    PyinPitchEstimator,
    TempoAnalyzer,
    gate,
    extract_chroma,
)

# Inference layer
from .inference import (
    ChordMatch,
    ChordStabilizer,
    NoteStabilizer,
    KeyVote,
    KeyInfo,
    KeyVoteAggregator,
    KeyExtractorHandle,
    ProfileKeyExtractor,
    TempoAggregator,
    TempoState,
    match_chord,
)

# Session
from .session import AnalysisSession, AnalysisSnapshot, SessionConfig

__all__ = [
    # Core
    "NoteInfo",
    "SampleFrame",
    "PitchSample",
    "KeyResult",
    "TempoCandidate",
    "frequency_to_note",
    # Input
    "AudioLoader",
    # Analysis
    "SignalGate",
    "ChromaExtractor",
    "PyinPitchEstimator",
    "TempoAnalyzer",
    "gate",
    "extract_chroma",
    # Inference
    "ChordMatch",
    "ChordStabilizer",
    "NoteStabilizer",
    "KeyVote",
    "KeyInfo",
    "KeyVoteAggregator",
    "KeyExtractorHandle",
    "ProfileKeyExtractor",
    "TempoAggregator",
    "TempoState",
    "match_chord",
    # Session
    "AnalysisSession",
    "AnalysisSnapshot",
    "SessionConfig",
]
