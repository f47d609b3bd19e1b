"""Tests for signal gating and chroma extraction.

Tests cover:
- RMS presence gate and input meter level
- dB magnitude spectrum of a buffer
- Folding a spectrum into 12 pitch classes
- Band limits and non-finite magnitudes
"""

import pytest
import numpy as np
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from live_analyzer.analysis import (
    SignalGate,
    ChromaExtractor,
    above_threshold,
    compute_rms,
    gate,
    input_level,
    extract_chroma,
    magnitude_spectrum_db,
)


# ============================================================================
# Test Fixtures - Helper functions to create test data
# ============================================================================

SR = 22050
N_BINS = 1024
BIN_WIDTH = SR / (N_BINS * 2)


def generate_sine_wave(freq: float, duration: float, sr: int = SR,
                       amplitude: float = 1.0) -> np.ndarray:
    """Generate a sine wave at given frequency."""
    t = np.linspace(0, duration, int(sr * duration), endpoint=False)
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def silent_spectrum(n_bins: int = N_BINS) -> np.ndarray:
    """dB spectrum with no meaningful energy."""
    return np.full(n_bins, -200.0)


def bin_for(freq: float) -> int:
    return int(round(freq / BIN_WIDTH))


# ============================================================================
# Gate Tests
# ============================================================================

class TestSignalGate:
    """Test RMS presence gating."""

    def test_silence_is_not_present(self):
        assert not gate(np.zeros(2048))

    def test_tone_is_present(self):
        assert gate(generate_sine_wave(440, 0.1, amplitude=0.5))

    def test_threshold_is_exclusive(self):
        """A buffer exactly at the threshold does not count as present."""
        buffer = np.full(4, 0.5)
        assert compute_rms(buffer) == 0.5
        assert not gate(buffer, threshold=0.5)
        assert gate(buffer, threshold=0.49)

    def test_empty_buffer(self):
        assert compute_rms(np.array([])) == 0.0
        assert not gate(np.array([]))

    def test_quiet_noise_below_default_threshold(self):
        rng = np.random.default_rng(0)
        noise = rng.normal(0, 0.001, 2048)
        assert not gate(noise)

    def test_presence_from_precomputed_rms(self):
        """The same strict rule applies to buffers and to RMS levels."""
        g = SignalGate(threshold=0.5)
        buffer = np.full(4, 0.5)
        assert g.is_present_rms(compute_rms(buffer)) == g.is_present(buffer)
        assert not g.is_present_rms(0.5)
        assert g.is_present_rms(0.51)
        assert not above_threshold(0.005)
        assert above_threshold(0.0051)

    def test_gate_object_thresholds(self):
        buffer = np.full(16, 0.008)
        assert SignalGate(threshold=0.005).is_present(buffer)
        assert not SignalGate(threshold=0.01).is_present(buffer)


class TestInputLevel:
    """Test the 0-1 input meter."""

    def test_scaled_against_full_scale(self):
        assert input_level(0.15) == pytest.approx(0.5)
        assert input_level(0.0) == 0.0

    def test_capped_at_one(self):
        assert input_level(0.6) == 1.0

    def test_gate_level(self):
        g = SignalGate(full_scale=0.3)
        assert g.level(np.full(8, 0.3)) == pytest.approx(1.0)
        assert g.threshold_level == pytest.approx(0.005 / 0.3)


# ============================================================================
# Spectrum and Chroma Tests
# ============================================================================

class TestMagnitudeSpectrum:
    """Test the dB magnitude spectrum."""

    def test_length(self):
        spectrum = magnitude_spectrum_db(np.zeros(2048), n_fft=2048)
        assert spectrum.shape == (1024,)

    def test_sine_peak(self):
        spectrum = magnitude_spectrum_db(generate_sine_wave(440, 2048 / SR))
        peak = int(np.argmax(spectrum))
        assert abs(peak - 440 / BIN_WIDTH) <= 1
        # Full-scale sine peaks near 0 dB
        assert -3.0 < spectrum[peak] < 1.0

    def test_short_buffer_is_padded(self):
        spectrum = magnitude_spectrum_db(generate_sine_wave(440, 0.02), n_fft=2048)
        assert spectrum.shape == (1024,)
        assert np.all(np.isfinite(spectrum))


class TestChromaExtraction:
    """Test folding a spectrum into pitch classes."""

    def test_single_peak_at_a(self):
        spectrum = silent_spectrum()
        spectrum[bin_for(440)] = 0.0
        chroma = extract_chroma(spectrum, SR)

        assert chroma.shape == (12,)
        assert int(np.argmax(chroma)) == 9  # A
        assert chroma.max() == pytest.approx(1.0)

    def test_max_normalized(self):
        spectrum = silent_spectrum()
        spectrum[bin_for(261.63)] = -6.0
        spectrum[bin_for(392.0)] = -12.0
        chroma = extract_chroma(spectrum, SR)

        assert chroma[0] == pytest.approx(1.0)
        assert chroma[7] == pytest.approx(10 ** (-6 / 20), rel=1e-3)
        assert np.all(chroma <= 1.0)

    def test_octaves_fold_together(self):
        spectrum = silent_spectrum()
        spectrum[bin_for(220)] = 0.0
        spectrum[bin_for(880)] = 0.0
        chroma = extract_chroma(spectrum, SR)
        assert int(np.argmax(chroma)) == 9

    def test_energy_outside_band_ignored(self):
        spectrum = silent_spectrum()
        spectrum[bin_for(3000)] = 0.0  # Above 2000 Hz
        spectrum[bin_for(40)] = 0.0  # Below 65 Hz
        spectrum[bin_for(329.63)] = -30.0
        chroma = extract_chroma(spectrum, SR)
        assert int(np.argmax(chroma)) == 4  # E

    def test_non_finite_magnitudes_count_as_zero(self):
        spectrum = np.full(N_BINS, -np.inf)
        chroma = extract_chroma(spectrum, SR)
        assert np.all(chroma == 0.0)

        spectrum[bin_for(440)] = 0.0
        spectrum[bin_for(261.63)] = np.nan
        chroma = extract_chroma(spectrum, SR)
        assert chroma[9] == pytest.approx(1.0)
        assert chroma[0] == 0.0

    def test_empty_spectrum(self):
        chroma = extract_chroma(np.array([]), SR)
        assert np.all(chroma == 0.0)

    def test_from_samples(self):
        extractor = ChromaExtractor(n_fft=2048)
        chroma = extractor.from_samples(generate_sine_wave(440, 2048 / SR), SR)
        assert int(np.argmax(chroma)) == 9

    def test_custom_band(self):
        spectrum = silent_spectrum()
        spectrum[bin_for(440)] = 0.0
        spectrum[bin_for(1500)] = 0.0
        chroma = ChromaExtractor(fmin=1000, fmax=2000).extract(spectrum, SR)
        assert chroma[9] < 1e-6
