"""Tempo candidate analysis over a rolling audio window."""

from collections import deque
from typing import Callable, Dict, List, Optional

import numpy as np
import librosa

from ..core.types import TempoCandidate

TempoListener = Callable[[List[TempoCandidate]], None]


class TempoAnalyzer:
    """Beat analyzer that emits tempo candidate events.

    Audio is pushed buffer by buffer. Each `analyze` call estimates local
    tempo for every onset-envelope frame in the window, treats the rounded
    estimates as votes, and emits:

    - "bpm": candidates ordered by vote count (highest first)
    - "bpm_stable": the top candidate, once it has held the top spot for
      `stabilization_time` seconds
    """

    EVENTS = ("bpm", "bpm_stable")

    def __init__(
        self,
        sr: int = 22050,
        hop_length: int = 512,
        window_duration: float = 8.0,
        min_duration: float = 4.0,
        stabilization_time: float = 5.0,
        max_candidates: int = 5,
    ):
        """
        Initialize TempoAnalyzer.

        Args:
            sr: Sample rate of pushed audio
            hop_length: Samples between onset-envelope frames
            window_duration: Seconds of audio kept for analysis
            min_duration: Seconds of audio required before analysing
            stabilization_time: Seconds the top tempo must persist to be stable
            max_candidates: Number of candidates reported per event
        """
        self.sr = sr
        self.hop_length = hop_length
        self.window_duration = window_duration
        self.min_duration = min_duration
        self.stabilization_time = stabilization_time
        self.max_candidates = max_candidates

        self._listeners: Dict[str, List[TempoListener]] = {e: [] for e in self.EVENTS}
        self._chunks: deque = deque()
        self._n_samples = 0
        self._top_tempo: Optional[int] = None
        self._top_since = 0.0
        self._stable_emitted = False

    def on(self, event: str, callback: TempoListener) -> None:
        """Subscribe to "bpm" or "bpm_stable" events."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}. Supported: {self.EVENTS}")
        self._listeners[event].append(callback)

    def off(self, event: str, callback: TempoListener) -> None:
        """Remove a subscription; unknown callbacks are ignored."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}. Supported: {self.EVENTS}")
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    @property
    def buffered_duration(self) -> float:
        """Seconds of audio currently in the window."""
        return self._n_samples / self.sr

    def push(self, samples: np.ndarray) -> None:
        """Append a buffer to the rolling window."""
        chunk = np.asarray(samples, dtype=np.float32).reshape(-1)
        if chunk.size == 0:
            return
        self._chunks.append(chunk)
        self._n_samples += chunk.size

        max_samples = int(self.window_duration * self.sr)
        while self._chunks and self._n_samples - len(self._chunks[0]) >= max_samples:
            self._n_samples -= len(self._chunks.popleft())

    def candidates(self) -> List[TempoCandidate]:
        """
        Vote on tempo over the current window.

        Returns:
            Candidates ordered by count, empty when there is too little audio
        """
        if self.buffered_duration < self.min_duration:
            return []

        audio = np.concatenate(list(self._chunks))
        onset_env = librosa.onset.onset_strength(
            y=audio, sr=self.sr, hop_length=self.hop_length
        )
        if not np.any(onset_env > 0):
            return []

        local_tempo = librosa.feature.tempo(
            onset_envelope=onset_env,
            sr=self.sr,
            hop_length=self.hop_length,
            aggregate=None,
        )
        local_tempo = local_tempo[np.isfinite(local_tempo) & (local_tempo > 0)]
        if local_tempo.size == 0:
            return []

        tempos, counts = np.unique(np.round(local_tempo).astype(int), return_counts=True)
        order = sorted(range(len(tempos)), key=lambda i: (-counts[i], tempos[i]))
        return [
            TempoCandidate(tempo=float(tempos[i]), count=int(counts[i]))
            for i in order[: self.max_candidates]
        ]

    def analyze(self, now: float) -> List[TempoCandidate]:
        """
        Run one analysis pass and notify listeners.

        Args:
            now: Monotonic timestamp in seconds

        Returns:
            The candidates that were emitted
        """
        candidates = self.candidates()
        if not candidates:
            return candidates

        self._emit("bpm", candidates)

        top = int(round(candidates[0].tempo))
        if top != self._top_tempo:
            self._top_tempo = top
            self._top_since = now
            self._stable_emitted = False
        elif not self._stable_emitted and now - self._top_since >= self.stabilization_time:
            self._stable_emitted = True
            self._emit("bpm_stable", candidates[:1])

        return candidates

    def reset(self) -> None:
        """Drop buffered audio and stability tracking (listeners are kept)."""
        self._chunks.clear()
        self._n_samples = 0
        self._top_tempo = None
        self._top_since = 0.0
        self._stable_emitted = False

    def _emit(self, event: str, candidates: List[TempoCandidate]) -> None:
        for callback in self._listeners[event]:
            callback(candidates)
