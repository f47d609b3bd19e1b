"""Note data class and 12-tone equal temperament helpers."""

import math
from dataclasses import dataclass
from typing import Optional

from .constants import PITCH_NAMES, A4_FREQUENCY, A4_MIDI


@dataclass(frozen=True)
class NoteInfo:
    """A note derived from a frequency."""

    note: str  # Pitch class name (e.g., "A", "C#")
    octave: int
    cents: int  # Offset from the nearest equal-tempered note
    frequency: float  # Hz

    @property
    def name(self) -> str:
        """Get note name with octave (e.g., 'A4')."""
        return f"{self.note}{self.octave}"

    @property
    def pitch_class(self) -> int:
        """Get pitch class (0-11, where 0=C)."""
        return PITCH_NAMES.index(self.note)

    @property
    def midi(self) -> int:
        """Nearest MIDI pitch."""
        return (self.octave + 1) * 12 + self.pitch_class


def frequency_to_note(frequency: Optional[float]) -> Optional[NoteInfo]:
    """
    Convert a frequency in Hz to note information.

    Args:
        frequency: Frequency in Hz

    Returns:
        NoteInfo, or None for missing, non-positive or non-finite input
    """
    if frequency is None:
        return None
    try:
        frequency = float(frequency)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(frequency) or frequency <= 0:
        return None

    semitones_from_a4 = 12 * math.log2(frequency / A4_FREQUENCY)
    exact_midi = A4_MIDI + semitones_from_a4
    # Round half up, so x.5 always lands on the upper note
    midi = math.floor(exact_midi + 0.5)
    cents = math.floor((exact_midi - midi) * 100 + 0.5)

    # Python's % already wraps negative values into 0-11
    note = PITCH_NAMES[midi % 12]
    octave = midi // 12 - 1

    return NoteInfo(note=note, octave=octave, cents=cents, frequency=frequency)


def freq_to_midi(freq: float) -> int:
    """Convert frequency (Hz) to MIDI pitch."""
    if freq <= 0:
        return 0
    return int(round(A4_MIDI + 12 * math.log2(freq / A4_FREQUENCY)))


def midi_to_freq(midi: int) -> float:
    """Convert MIDI pitch to frequency (Hz)."""
    return A4_FREQUENCY * (2 ** ((midi - A4_MIDI) / 12.0))


def format_note(info: Optional[NoteInfo]) -> str:
    """Format note info for display (e.g., 'A4'), '--' when absent."""
    if info is None:
        return "--"
    return info.name


def format_cents(cents: int) -> str:
    """Format a cents offset as a tuning indicator."""
    if cents == 0:
        return "♪"
    if cents > 0:
        return f"+{cents}¢"
    return f"{cents}¢"


def tuning_status(cents: int) -> str:
    """
    Classify how in-tune a note is.

    Returns:
        'in_tune' within 5 cents, 'close' within 15 cents, else 'out_of_tune'
    """
    abs_cents = abs(cents)
    if abs_cents <= 5:
        return "in_tune"
    if abs_cents <= 15:
        return "close"
    return "out_of_tune"
