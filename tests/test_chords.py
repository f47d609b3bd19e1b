"""Tests for chord template matching and chord stability.

Tests cover:
- Template rotation and cosine similarity
- Chord identification for each quality
- Confidence threshold and degenerate input
- Consecutive-tick stability and silence
"""

import pytest
import numpy as np
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from live_analyzer.core import PITCH_NAMES
from live_analyzer.inference import (
    CHORD_TEMPLATES,
    ChordMatch,
    ChordStabilizer,
    rotate_template,
    cosine_similarity,
    match_chord,
    chroma_from_notes,
)


# ============================================================================
# Test Fixtures - Helper functions to create test data
# ============================================================================

def chord_chroma(root: str, quality: str) -> np.ndarray:
    """Binary chroma for a chord."""
    root_pc = PITCH_NAMES.index(root)
    return rotate_template(CHORD_TEMPLATES[quality].pattern, root_pc)


def make_match(name: str, confidence: float = 0.9) -> ChordMatch:
    return ChordMatch(root=name[0], quality="major", name=name, confidence=confidence)


# ============================================================================
# Template Tests
# ============================================================================

class TestTemplates:
    """Test template construction and rotation."""

    def test_quality_order(self):
        assert list(CHORD_TEMPLATES) == [
            "major", "minor", "7", "maj7", "m7", "sus2", "sus4", "dim", "aug"
        ]

    def test_major_pattern(self):
        pattern = CHORD_TEMPLATES["major"].pattern
        assert list(np.nonzero(pattern)[0]) == [0, 4, 7]

    def test_rotate_to_g(self):
        """Major template rotated by 7 has G, B and D."""
        rotated = rotate_template(CHORD_TEMPLATES["major"].pattern, 7)
        active = [PITCH_NAMES[i] for i in np.nonzero(rotated)[0]]
        assert sorted(active) == sorted(["G", "B", "D"])

    def test_rotation_wraps(self):
        pattern = CHORD_TEMPLATES["minor"].pattern
        assert np.array_equal(rotate_template(pattern, 12), pattern)
        assert np.array_equal(rotate_template(pattern, -3), rotate_template(pattern, 9))


class TestCosineSimilarity:
    """Test similarity scoring."""

    def test_identical(self):
        v = chord_chroma("C", "major")
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_orthogonal(self):
        a = chroma_from_notes(["C"])
        b = chroma_from_notes(["D"])
        assert cosine_similarity(a, b) == 0.0

    def test_zero_vector(self):
        assert cosine_similarity(np.zeros(12), chord_chroma("C", "major")) == 0.0
        assert cosine_similarity(np.zeros(12), np.zeros(12)) == 0.0

    def test_bounded_for_non_negative_input(self):
        rng = np.random.default_rng(1)
        for _ in range(20):
            a = rng.random(12)
            b = rng.random(12)
            assert 0.0 <= cosine_similarity(a, b) <= 1.0 + 1e-12


# ============================================================================
# Matching Tests
# ============================================================================

class TestMatchChord:
    """Test chord identification."""

    def test_c_major(self):
        match = match_chord(chroma_from_notes(["C", "E", "G"]))
        assert match.root == "C"
        assert match.quality == "major"
        assert match.name == "C Major"
        assert match.confidence == pytest.approx(1.0)
        assert match.notes == ["C", "E", "G"]

    def test_a_minor(self):
        match = match_chord(chroma_from_notes(["A", "C", "E"]))
        assert match.name == "Am"
        assert match.root_pitch_class == 9

    @pytest.mark.parametrize(
        "root,quality,expected",
        [
            ("G", "7", "G7"),
            ("F", "maj7", "Fmaj7"),
            ("D", "m7", "Dm7"),
            ("D", "sus2", "Dsus2"),
            ("E", "sus4", "Esus4"),
            ("B", "dim", "Bdim"),
            ("F#", "major", "F# Major"),
        ],
    )
    def test_qualities(self, root, quality, expected):
        match = match_chord(chord_chroma(root, quality))
        assert match.name == expected
        assert match.confidence == pytest.approx(1.0)

    def test_symmetric_chord_first_root_wins(self):
        """Augmented triads are rotation-symmetric; the lowest root wins ties."""
        match = match_chord(chord_chroma("E", "aug"))
        assert match.quality == "aug"
        assert match.root == "C"

    def test_weighted_chroma(self):
        chroma = np.zeros(12)
        chroma[[7, 11, 2]] = [1.0, 0.7, 0.8]  # G B D
        chroma[5] = 0.1
        match = match_chord(chroma)
        assert match.name == "G Major"
        assert 0.7 <= match.confidence < 1.0

    def test_noise_below_threshold(self):
        """Flat chroma matches no template strongly enough."""
        assert match_chord(np.ones(12), min_confidence=0.9) is None

    def test_threshold_is_inclusive(self):
        chroma = chroma_from_notes(["C", "E", "G"])
        score = match_chord(chroma).confidence
        assert match_chord(chroma, min_confidence=score) is not None

    def test_all_zero_chroma(self):
        assert match_chord(np.zeros(12)) is None

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_chroma(self, bad):
        """A chord-shaped chroma with one corrupt bin is not detected."""
        chroma = chroma_from_notes(["C", "E", "G"])
        chroma[11] = bad
        assert match_chord(chroma, min_confidence=0.6) is None

    def test_non_finite_chroma_clears_stabilizer(self):
        stabilizer = ChordStabilizer()
        c_major = chroma_from_notes(["C", "E", "G"])
        stabilizer.update(c_major)
        stabilizer.update(c_major)

        corrupt = c_major.copy()
        corrupt[3] = np.nan
        assert stabilizer.update(corrupt) is None
        assert stabilizer.current is None

    def test_empty_chroma(self):
        assert match_chord(np.array([])) is None

    def test_wrong_length(self):
        with pytest.raises(ValueError):
            match_chord(np.ones(10))


# ============================================================================
# Stability Tests
# ============================================================================

class TestChordStabilizer:
    """Test consecutive-tick stability."""

    def test_needs_two_ticks(self):
        stabilizer = ChordStabilizer()
        chroma = chroma_from_notes(["C", "E", "G"])

        assert stabilizer.update(chroma) is None
        displayed = stabilizer.update(chroma)
        assert displayed.name == "C Major"
        assert stabilizer.current.name == "C Major"

    def test_change_keeps_previous_until_confirmed(self):
        stabilizer = ChordStabilizer()
        c_major = chroma_from_notes(["C", "E", "G"])
        a_minor = chroma_from_notes(["A", "C", "E"])

        stabilizer.update(c_major)
        stabilizer.update(c_major)

        # One tick of a new chord does not replace the display
        assert stabilizer.update(a_minor).name == "C Major"
        assert stabilizer.update(a_minor).name == "Am"

    def test_alternating_never_confirms(self):
        stabilizer = ChordStabilizer()
        for name in ["C Major", "Am", "C Major", "Am"]:
            assert stabilizer.observe(make_match(name)) is None

    def test_no_match_clears(self):
        stabilizer = ChordStabilizer()
        stabilizer.observe(make_match("C Major"))
        stabilizer.observe(make_match("C Major"))
        assert stabilizer.current is not None

        assert stabilizer.update(np.zeros(12)) is None
        assert stabilizer.current is None
        # Count restarts from scratch
        assert stabilizer.observe(make_match("C Major")) is None

    def test_silence_clears_immediately(self):
        stabilizer = ChordStabilizer()
        stabilizer.observe(make_match("G Major"))
        stabilizer.observe(make_match("G Major"))

        stabilizer.silence()
        assert stabilizer.current is None

    def test_confidence_threshold(self):
        stabilizer = ChordStabilizer(min_confidence=0.95)
        chroma = np.zeros(12)
        chroma[[0, 4, 7]] = 1.0
        chroma[[2, 9]] = 0.6
        stabilizer.update(chroma)
        assert stabilizer.update(chroma) is None

    def test_custom_stability_frames(self):
        stabilizer = ChordStabilizer(stability_frames=3)
        match = make_match("D Major")
        assert stabilizer.observe(match) is None
        assert stabilizer.observe(match) is None
        assert stabilizer.observe(match).name == "D Major"
