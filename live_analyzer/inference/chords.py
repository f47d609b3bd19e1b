"""Chord analysis - Match chroma vectors against chord templates.

Implements real-time chord detection with:
- Binary pitch-class templates for each chord quality
- Template rotation to every root
- Cosine similarity scoring
- Consecutive-frame stability before a chord is displayed
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..core import PITCH_NAMES


@dataclass(frozen=True)
class ChordTemplate:
    """A chord quality anchored at root = pitch class 0."""

    quality: str
    intervals: Tuple[int, ...]  # Semitones from root
    suffix: str  # Display suffix ("" for major)

    @property
    def pattern(self) -> np.ndarray:
        """12-element binary pitch-class pattern."""
        pattern = np.zeros(12)
        pattern[[i % 12 for i in self.intervals]] = 1.0
        return pattern


@dataclass
class ChordMatch:
    """Best chord fit for a chroma vector."""

    root: str  # Root note (e.g., "C", "F#")
    quality: str  # "major", "minor", "7", "maj7", "m7", "sus2", "sus4", "dim", "aug"
    name: str  # Display name (e.g., "C Major", "Am", "G7")
    confidence: float  # Cosine similarity (0-1)
    notes: List[str] = field(default_factory=list)  # Note names in the chord

    @property
    def root_pitch_class(self) -> int:
        """Get root as pitch class (0-11)."""
        return PITCH_NAMES.index(self.root)


# Ordered catalogue; on equal similarity the earlier quality wins
CHORD_TEMPLATES: Dict[str, ChordTemplate] = {
    t.quality: t
    for t in (
        ChordTemplate("major", (0, 4, 7), ""),
        ChordTemplate("minor", (0, 3, 7), "m"),
        ChordTemplate("7", (0, 4, 7, 10), "7"),
        ChordTemplate("maj7", (0, 4, 7, 11), "maj7"),
        ChordTemplate("m7", (0, 3, 7, 10), "m7"),
        ChordTemplate("sus2", (0, 2, 7), "sus2"),
        ChordTemplate("sus4", (0, 5, 7), "sus4"),
        ChordTemplate("dim", (0, 3, 6), "dim"),
        ChordTemplate("aug", (0, 4, 8), "aug"),
    )
}


def rotate_template(template: np.ndarray, semitones: int) -> np.ndarray:
    """Rotate a 12-element template up by `semitones` (new root)."""
    return np.roll(np.asarray(template, dtype=float), semitones % 12)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity; 0.0 when either vector has zero magnitude."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    magnitude_a = np.sqrt(np.dot(a, a))
    magnitude_b = np.sqrt(np.dot(b, b))
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0
    return float(np.dot(a, b) / (magnitude_a * magnitude_b))


def format_chord_name(root: str, quality: str) -> str:
    """Format a chord for display ("C Major", "Am", "G7", "Cmaj7")."""
    suffix = CHORD_TEMPLATES[quality].suffix
    return f"{root}{suffix}" if suffix else f"{root} Major"


def chord_notes(root_pc: int, quality: str) -> List[str]:
    """Note names in a chord, root first."""
    return [PITCH_NAMES[(root_pc + i) % 12] for i in CHORD_TEMPLATES[quality].intervals]


def match_chord(chroma: np.ndarray, min_confidence: float = 0.7) -> Optional[ChordMatch]:
    """
    Match a chroma vector against every rotated chord template.

    Args:
        chroma: 12-element pitch-class profile (C..B)
        min_confidence: Minimum cosine similarity to report a chord

    Returns:
        Best matching ChordMatch, or None below the confidence threshold
        or when the chroma holds non-finite values
    """
    chroma = np.asarray(chroma, dtype=float).reshape(-1)
    if chroma.size == 0:
        return None
    if chroma.size != 12:
        raise ValueError(f"Chroma must have 12 bins, got {chroma.size}")
    if not np.all(np.isfinite(chroma)):
        return None

    best: Optional[Tuple[int, str, float]] = None
    for root_pc in range(12):
        for quality, template in CHORD_TEMPLATES.items():
            similarity = cosine_similarity(chroma, rotate_template(template.pattern, root_pc))
            if best is None or similarity > best[2]:
                best = (root_pc, quality, similarity)

    if best is None or best[2] < min_confidence:
        return None

    root_pc, quality, similarity = best
    root = PITCH_NAMES[root_pc]
    return ChordMatch(
        root=root,
        quality=quality,
        name=format_chord_name(root, quality),
        confidence=similarity,
        notes=chord_notes(root_pc, quality),
    )


def chroma_from_notes(note_names: List[str]) -> np.ndarray:
    """Binary chroma vector with 1.0 at each named pitch class."""
    chroma = np.zeros(12)
    for name in note_names:
        chroma[PITCH_NAMES.index(name)] = 1.0
    return chroma


class ChordStabilizer:
    """Surface a chord only after it repeats on consecutive ticks.

    A different chord restarts the count; a tick with no confident match,
    or silence, clears the displayed chord.
    """

    def __init__(self, stability_frames: int = 2, min_confidence: float = 0.6):
        """
        Initialize ChordStabilizer.

        Args:
            stability_frames: Consecutive identical matches before display
            min_confidence: Cosine similarity threshold passed to match_chord
        """
        self.stability_frames = stability_frames
        self.min_confidence = min_confidence
        self.reset()

    @property
    def current(self) -> Optional[ChordMatch]:
        """Currently displayed chord."""
        return self._current

    def update(self, chroma: np.ndarray) -> Optional[ChordMatch]:
        """Match one tick's chroma and return the displayed chord."""
        return self.observe(match_chord(chroma, self.min_confidence))

    def observe(self, match: Optional[ChordMatch]) -> Optional[ChordMatch]:
        """Feed an already-computed match (or None) for one tick."""
        if match is None:
            self._last_name = None
            self._count = 0
            self._current = None
            return None

        if match.name == self._last_name:
            self._count += 1
        else:
            self._last_name = match.name
            self._count = 1

        if self._count >= self.stability_frames:
            self._current = match
        return self._current

    def silence(self) -> None:
        """Signal dropped below the gate: clear immediately."""
        self.reset()

    def reset(self) -> None:
        self._last_name: Optional[str] = None
        self._count = 0
        self._current: Optional[ChordMatch] = None
