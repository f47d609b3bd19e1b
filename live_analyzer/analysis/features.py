"""Spectral feature extraction for live analysis.

Turns a sample buffer into the decibel magnitude spectrum an analyser node
reports, and folds such a spectrum into a 12-bin chroma vector.
"""

import numpy as np
import librosa

from ..core.constants import A4_FREQUENCY, A4_MIDI, CHROMA_FMIN, CHROMA_FMAX


def magnitude_spectrum_db(samples: np.ndarray, n_fft: int = 2048) -> np.ndarray:
    """
    Compute a decibel magnitude spectrum for one buffer.

    Args:
        samples: Mono samples; zero-padded or truncated to n_fft
        n_fft: FFT size

    Returns:
        n_fft // 2 magnitudes in dB (full-scale sine peaks near 0 dB)
    """
    frame = np.zeros(n_fft, dtype=np.float64)
    samples = np.asarray(samples, dtype=np.float64).reshape(-1)[:n_fft]
    frame[: len(samples)] = samples

    window = librosa.filters.get_window("hann", n_fft, fftbins=True)
    spectrum = np.abs(np.fft.rfft(frame * window)) * 2.0 / window.sum()

    # Drop the Nyquist bin, matching an analyser's frequencyBinCount
    spectrum = spectrum[: n_fft // 2]
    return librosa.amplitude_to_db(spectrum, ref=1.0, amin=1e-10, top_db=None)


def extract_chroma(
    magnitudes_db: np.ndarray,
    sample_rate: int,
    fmin: float = CHROMA_FMIN,
    fmax: float = CHROMA_FMAX,
) -> np.ndarray:
    """
    Fold a dB magnitude spectrum into a 12-bin pitch-class profile.

    Args:
        magnitudes_db: Positive-frequency magnitudes in dB
        sample_rate: Sample rate of the analysed audio
        fmin: Lowest frequency considered (Hz)
        fmax: Highest frequency considered (Hz)

    Returns:
        Chroma vector [12] indexed C..B, max-normalized to 1.0
        (all zeros when there is no energy in range)
    """
    chroma = np.zeros(12)
    magnitudes_db = np.asarray(magnitudes_db, dtype=np.float64).reshape(-1)
    n_bins = len(magnitudes_db)
    if n_bins == 0 or sample_rate <= 0:
        return chroma

    bin_width = sample_rate / (n_bins * 2)
    min_bin = int(np.floor(fmin / bin_width))
    max_bin = min(n_bins - 1, int(np.floor(fmax / bin_width)))
    if max_bin < min_bin:
        return chroma

    bins = np.arange(min_bin, max_bin + 1)
    freqs = bins * bin_width
    in_range = freqs > 0
    bins = bins[in_range]
    freqs = freqs[in_range]

    note_numbers = 12 * np.log2(freqs / A4_FREQUENCY) + A4_MIDI
    # Half-up rounding so bins halfway between notes go to the upper note
    pitch_classes = np.floor(note_numbers + 0.5).astype(int) % 12

    db = magnitudes_db[bins]
    with np.errstate(over="ignore"):
        amplitudes = np.where(np.isfinite(db), np.power(10.0, db / 20.0), 0.0)
    amplitudes = np.where(np.isfinite(amplitudes), amplitudes, 0.0)

    chroma = np.bincount(pitch_classes, weights=amplitudes, minlength=12)[:12]

    peak = chroma.max()
    if peak > 0:
        chroma = chroma / peak
    return chroma


class ChromaExtractor:
    """Extracts chroma vectors from FFT magnitude buffers."""

    def __init__(
        self,
        n_fft: int = 2048,
        fmin: float = CHROMA_FMIN,
        fmax: float = CHROMA_FMAX,
    ):
        """
        Initialize ChromaExtractor.

        Args:
            n_fft: FFT size used when starting from raw samples
            fmin: Lowest frequency folded into the chroma (Hz)
            fmax: Highest frequency folded into the chroma (Hz)
        """
        self.n_fft = n_fft
        self.fmin = fmin
        self.fmax = fmax

    def extract(self, magnitudes_db: np.ndarray, sample_rate: int) -> np.ndarray:
        """Chroma vector from a dB magnitude spectrum."""
        return extract_chroma(magnitudes_db, sample_rate, self.fmin, self.fmax)

    def from_samples(self, samples: np.ndarray, sample_rate: int) -> np.ndarray:
        """Chroma vector straight from a sample buffer."""
        spectrum = magnitude_spectrum_db(samples, self.n_fft)
        return self.extract(spectrum, sample_rate)
