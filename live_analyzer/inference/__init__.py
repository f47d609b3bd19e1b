"""Inference layer - Stable musical state from noisy raw estimates.

This layer turns per-frame candidates into values fit for display:
- Chord template matching and chord stability
- Note smoothing and hysteresis
- Key voting with time decay and switch hysteresis
- Tempo confidence aggregation

Pipeline: raw estimates → [Notes, Chords, Key, Tempo] → displayed state
"""

from .chords import (
    ChordTemplate,
    ChordMatch,
    ChordStabilizer,
    CHORD_TEMPLATES,
    rotate_template,
    cosine_similarity,
    match_chord,
    chroma_from_notes,
)
from .pitch import NoteStabilizer, NoteStabilizerConfig, NoteUpdate
from .key import (
    KeyVote,
    KeyInfo,
    KeyScore,
    KeyVoteConfig,
    KeyVoteAggregator,
    KeyAudioCollector,
    KeyExtractor,
    KeyExtractorHandle,
    ProfileKeyExtractor,
)
from .tempo import TempoAggregator, TempoState

__all__ = [
    # Chords
    "ChordTemplate",
    "ChordMatch",
    "ChordStabilizer",
    "CHORD_TEMPLATES",
    "rotate_template",
    "cosine_similarity",
    "match_chord",
    "chroma_from_notes",
    # Notes
    "NoteStabilizer",
    "NoteStabilizerConfig",
    "NoteUpdate",
    # Key
    "KeyVote",
    "KeyInfo",
    "KeyScore",
    "KeyVoteConfig",
    "KeyVoteAggregator",
    "KeyAudioCollector",
    "KeyExtractor",
    "KeyExtractorHandle",
    "ProfileKeyExtractor",
    # Tempo
    "TempoAggregator",
    "TempoState",
]
