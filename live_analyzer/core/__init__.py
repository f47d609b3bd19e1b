"""Core types and constants for Live Analyzer."""

from .note import (
    NoteInfo,
    frequency_to_note,
    freq_to_midi,
    midi_to_freq,
    format_note,
    format_cents,
    tuning_status,
)
from .types import (
    SampleFrame,
    PitchSample,
    KeyResult,
    TempoCandidate,
    EstimatorStatus,
    EstimatorInit,
    EstimatorNotReady,
)
from .constants import (
    PITCH_NAMES,
    A4_FREQUENCY,
    DEFAULT_SR,
    DEFAULT_FRAME_SIZE,
)

__all__ = [
    "NoteInfo",
    "frequency_to_note",
    "freq_to_midi",
    "midi_to_freq",
    "format_note",
    "format_cents",
    "tuning_status",
    "SampleFrame",
    "PitchSample",
    "KeyResult",
    "TempoCandidate",
    "EstimatorStatus",
    "EstimatorInit",
    "EstimatorNotReady",
    "PITCH_NAMES",
    "A4_FREQUENCY",
    "DEFAULT_SR",
    "DEFAULT_FRAME_SIZE",
]
