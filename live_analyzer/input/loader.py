"""Read audio files and replay them as a stream of capture buffers."""

import numpy as np
import librosa
from pathlib import Path
from typing import Iterator, Optional, Tuple

from ..core import SampleFrame
from ..core.constants import DEFAULT_SR, DEFAULT_FRAME_SIZE


class AudioLoader:
    """Stand-in for a live input: decodes a file into mono buffers."""

    SUPPORTED_FORMATS = {".wav", ".mp3", ".flac", ".ogg", ".m4a", ".mp4"}

    def __init__(self, target_sr: int = DEFAULT_SR, normalize: bool = False):
        """
        Initialize AudioLoader.

        Args:
            target_sr: Sample rate buffers are delivered at
            normalize: Peak-normalize after decoding. Off by default because
                the signal gates compare against absolute RMS levels.
        """
        self.target_sr = target_sr
        self.normalize = normalize

    def load(
        self,
        path: str,
        offset: float = 0.0,
        duration: Optional[float] = None,
    ) -> Tuple[np.ndarray, int]:
        """
        Decode a file to mono at the target rate.

        Args:
            path: Audio file
            offset: Seconds to skip at the start
            duration: Seconds to read (None reads to the end)

        Returns:
            (mono float32 samples, sample rate)

        Raises:
            FileNotFoundError: If the file is missing
            ValueError: If the extension is not a supported format
        """
        path = self._check_path(Path(path))

        audio, sr = librosa.load(
            str(path), sr=self.target_sr, mono=True, offset=offset, duration=duration
        )
        if self.normalize:
            peak = np.abs(audio).max() if audio.size else 0.0
            if peak > 0:
                audio = audio / peak
        return audio.astype(np.float32), sr

    def _check_path(self, path: Path) -> Path:
        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")
        if path.suffix.lower() not in self.SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format: {path.suffix}. "
                f"Supported: {sorted(self.SUPPORTED_FORMATS)}"
            )
        return path

    def iter_frames(
        self,
        audio: np.ndarray,
        sr: int,
        frame_size: int = DEFAULT_FRAME_SIZE,
        hop_length: Optional[int] = None,
    ) -> Iterator[Tuple[float, SampleFrame]]:
        """
        Cut audio into capture-sized buffers, as a sound card would deliver them.

        A trailing partial buffer is dropped. Timestamps are the sample
        position at the end of each buffer, in seconds, so they are monotonic
        and can be passed straight to `AnalysisSession.tick`.
        """
        hop_length = hop_length or frame_size
        audio = np.asarray(audio, dtype=np.float32).reshape(-1)
        for start in range(0, len(audio) - frame_size + 1, hop_length):
            end = start + frame_size
            yield end / sr, SampleFrame(audio[start:end], sr)

    def get_duration(self, audio: np.ndarray, sr: Optional[int] = None) -> float:
        """Get duration in seconds."""
        return len(audio) / (sr or self.target_sr)
