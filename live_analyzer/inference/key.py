"""Key detection - Stabilize the tonal center from periodic raw detections.

Implements real-time key tracking with:
- Rolling collection of gated audio for a raw key extractor
- Krumhansl-Schmuckler key profiles as the reference extractor
- Explicitly initialized extractor handles (no hidden global state)
- Weighted voting over recent detections with exponential time decay
- Switch hysteresis so one stray detection cannot replace an established key
"""

import math
import warnings
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import librosa

from ..core import PITCH_NAMES
from ..core.constants import KEY_RMS_THRESHOLD
from ..core.types import (
    KeyResult,
    EstimatorStatus,
    EstimatorInit,
    EstimatorNotReady,
)
from ..analysis.gate import gate

KeyId = Tuple[str, str]  # (key, scale)


@dataclass(frozen=True)
class KeyVote:
    """One raw key detection."""

    key: str
    scale: str
    strength: float  # 0.0 - 1.0
    timestamp: float  # Seconds, same clock as compute(now)

    @property
    def identity(self) -> KeyId:
        return (self.key, self.scale)


@dataclass(frozen=True)
class KeyInfo:
    """Stabilized key."""

    key: str  # Key root note (e.g., "C", "F#")
    scale: str  # "major" or "minor"
    strength: float  # Average raw strength of the votes behind it

    @property
    def name(self) -> str:
        return f"{self.key} {self.scale}"


@dataclass
class KeyScore:
    """Aggregated votes for one key."""

    total_weight: float = 0.0
    total_strength: float = 0.0
    count: int = 0

    @property
    def average_strength(self) -> float:
        return self.total_strength / self.count if self.count else 0.0


@dataclass
class KeyVoteConfig:
    """Configuration for key voting.

    Attributes:
        history_size: Number of recent votes kept (default: 8)
        min_votes: Votes required before any key is reported (default: 3)
        min_strength: Weaker detections are not recorded (default: 0.3)
        switching_threshold: Weighted vote share a challenger needs to replace
            the current key (default: 0.6)
        decay_time_constant: Seconds for vote weight to fall by 1/e (default: 30)
    """

    history_size: int = 8
    min_votes: int = 3
    min_strength: float = 0.3
    switching_threshold: float = 0.6
    decay_time_constant: float = 30.0


class KeyVoteAggregator:
    """Weighted, time-decayed voting over recent key detections."""

    def __init__(self, config: Optional[KeyVoteConfig] = None):
        self.config = config if config is not None else KeyVoteConfig()
        self._votes: deque = deque(maxlen=self.config.history_size)
        self._current: Optional[KeyId] = None

    @property
    def votes(self) -> List[KeyVote]:
        """Votes in the window, oldest first."""
        return list(self._votes)

    @property
    def current_key(self) -> Optional[KeyId]:
        """Previously stabilized (key, scale), if any."""
        return self._current

    def is_strong_enough(self, strength: float) -> bool:
        """Check if a detection is strong enough to be recorded."""
        return strength >= self.config.min_strength

    def record(self, vote: KeyVote) -> bool:
        """
        Append a vote if it clears the strength floor.

        Returns:
            True if the vote was recorded
        """
        if not vote.key or not self.is_strong_enough(vote.strength):
            return False
        self._votes.append(vote)
        return True

    def recency_weight(self, age: float) -> float:
        """Exponential decay factor for a vote `age` seconds old."""
        return math.exp(-max(0.0, age) / self.config.decay_time_constant)

    def scores(self, now: float) -> Dict[KeyId, KeyScore]:
        """
        Group votes by key and sum their weighted contributions.

        Each vote contributes strength * exp(-age / tau).
        """
        scores: Dict[KeyId, KeyScore] = {}
        for vote in self._votes:
            weight = vote.strength * self.recency_weight(now - vote.timestamp)
            score = scores.setdefault(vote.identity, KeyScore())
            score.total_weight += weight
            score.total_strength += vote.strength
            score.count += 1
        return scores

    @staticmethod
    def best(scores: Dict[KeyId, KeyScore]) -> Tuple[Optional[KeyId], float, float]:
        """
        Find the key with the highest weighted score.

        Returns:
            (best key or None, its share of the total weight, total weight)
        """
        best_key: Optional[KeyId] = None
        best_weight = 0.0
        total = 0.0
        for key_id, score in scores.items():
            total += score.total_weight
            if score.total_weight > best_weight:
                best_weight = score.total_weight
                best_key = key_id
        ratio = best_weight / total if total > 0 else 0.0
        return best_key, ratio, total

    def compute(self, now: float) -> Optional[KeyInfo]:
        """
        Compute the stabilized key from the vote window.

        Args:
            now: Timestamp in seconds, same clock as the votes

        Returns:
            KeyInfo, or None when there is not enough evidence
        """
        if len(self._votes) < self.config.min_votes:
            return None

        scores = self.scores(now)
        best_key, vote_ratio, total = self.best(scores)
        if best_key is None or total == 0:
            return None

        # A challenger must hold a clear share of recent evidence to switch
        if (
            self._current is not None
            and best_key != self._current
            and vote_ratio < self.config.switching_threshold
        ):
            current = scores.get(self._current)
            strength = current.average_strength if current else 0.0
            return KeyInfo(self._current[0], self._current[1], strength)

        self._current = best_key
        return KeyInfo(best_key[0], best_key[1], scores[best_key].average_strength)

    def reset(self) -> None:
        """Forget all votes and the current key."""
        self._votes.clear()
        self._current = None


class KeyAudioCollector:
    """Rolling multi-second buffer of gated audio for key extraction."""

    def __init__(
        self,
        sample_rate: int,
        frame_size: int,
        buffer_duration: float = 3.0,
        rms_threshold: float = KEY_RMS_THRESHOLD,
    ):
        """
        Initialize KeyAudioCollector.

        Args:
            sample_rate: Sample rate of pushed frames
            frame_size: Samples per pushed frame
            buffer_duration: Seconds of audio kept
            rms_threshold: Frames at or below this RMS are skipped
        """
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self.buffer_duration = buffer_duration
        self.rms_threshold = rms_threshold
        self.max_frames = max(1, math.ceil(buffer_duration * sample_rate / frame_size))
        self._frames: deque = deque(maxlen=self.max_frames)

    def __len__(self) -> int:
        return len(self._frames)

    def push(self, samples: np.ndarray) -> bool:
        """Keep a copy of the frame if it carries signal."""
        if not gate(samples, self.rms_threshold):
            return False
        self._frames.append(np.array(samples, dtype=np.float32).reshape(-1))
        return True

    def concatenate(self) -> np.ndarray:
        """All buffered frames as one signal."""
        if not self._frames:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(list(self._frames))

    def clear(self) -> None:
        self._frames.clear()


class KeyExtractor(ABC):
    """Abstract raw key extractor over a multi-second signal."""

    def load(self) -> None:
        """Prepare heavy resources; raise on failure."""

    @abstractmethod
    def extract(self, audio: np.ndarray, sr: int) -> KeyResult:
        """
        Detect one key for the signal.

        Args:
            audio: Mono audio
            sr: Sample rate

        Returns:
            KeyResult with key, scale and strength
        """
        pass


class ProfileKeyExtractor(KeyExtractor):
    """Key extraction by correlating chroma with Krumhansl-Schmuckler profiles."""

    # Krumhansl-Schmuckler key profiles (cognitive-based)
    KRUMHANSL_MAJOR = np.array(
        [6.35, 2.23, 3.48, 2.33, 4.38, 4.09, 2.52, 5.19, 2.39, 3.66, 2.29, 2.88]
    )
    KRUMHANSL_MINOR = np.array(
        [6.33, 2.68, 3.52, 5.38, 2.60, 3.53, 2.54, 4.75, 3.98, 2.69, 3.34, 3.17]
    )

    def __init__(self, hop_length: int = 512):
        self.hop_length = hop_length
        self._profiles: List[Tuple[str, str, np.ndarray]] = []

    def load(self) -> None:
        self._profiles = []
        for shift in range(12):
            root = PITCH_NAMES[shift]
            self._profiles.append((root, "major", np.roll(self.KRUMHANSL_MAJOR, shift)))
            self._profiles.append((root, "minor", np.roll(self.KRUMHANSL_MINOR, shift)))

    def extract(self, audio: np.ndarray, sr: int) -> KeyResult:
        if not self._profiles:
            self.load()

        chroma = librosa.feature.chroma_cqt(y=audio, sr=sr, hop_length=self.hop_length)
        return self.extract_from_chroma(np.mean(chroma, axis=1))

    def extract_from_chroma(self, chroma_mean: np.ndarray) -> KeyResult:
        """Best-correlated key for a 12-bin pitch-class distribution."""
        if not self._profiles:
            self.load()

        best_root, best_scale, best_corr = "C", "major", 0.0
        for root, scale, profile in self._profiles:
            corr = self._correlate(chroma_mean, profile)
            if corr > best_corr:
                best_root, best_scale, best_corr = root, scale, corr

        return KeyResult(key=best_root, scale=best_scale, strength=min(1.0, best_corr))

    def _correlate(self, distribution: np.ndarray, profile: np.ndarray) -> float:
        """
        Pearson correlation between distribution and profile.

        Degenerate (flat) input correlates as 0.
        """
        if distribution.std() == 0 or profile.std() == 0:
            return 0.0
        corr = np.corrcoef(distribution, profile)[0, 1]
        if np.isnan(corr):
            return 0.0
        return float(corr)


class KeyExtractorHandle:
    """Caller-owned handle around a key extractor.

    The extractor must be initialized explicitly; readiness is a checkable
    state instead of a lazily cached global.
    """

    VALID_SCALES = ("major", "minor")

    def __init__(self, extractor: KeyExtractor):
        self.extractor = extractor
        self._status = EstimatorStatus.NOT_READY
        self._error: Optional[str] = None

    @property
    def status(self) -> EstimatorStatus:
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is EstimatorStatus.READY

    @property
    def error(self) -> Optional[str]:
        return self._error

    def initialize(self) -> EstimatorInit:
        """Load the extractor; failures are reported, not raised."""
        if self.is_ready:
            return EstimatorInit(ok=True)
        try:
            self.extractor.load()
        except Exception as e:
            self._status = EstimatorStatus.FAILED
            self._error = f"{type(e).__name__}: {e}"
            warnings.warn(f"Failed to load key extractor: {self._error}")
            return EstimatorInit(ok=False, error=self._error)

        self._status = EstimatorStatus.READY
        self._error = None
        return EstimatorInit(ok=True)

    def extract(self, audio: np.ndarray, sr: int) -> Optional[KeyResult]:
        """
        Run the extractor and validate its result.

        Returns:
            KeyResult, or None when the extractor returned nothing usable

        Raises:
            EstimatorNotReady: If initialize() has not succeeded
        """
        if not self.is_ready:
            raise EstimatorNotReady(f"Key extractor is {self._status.value}")

        result = self.extractor.extract(audio, sr)
        if result is None or not result.key or result.key not in PITCH_NAMES:
            return None
        if result.scale not in self.VALID_SCALES:
            return None
        try:
            strength = float(result.strength)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(strength):
            return None
        # Votes are weighted by strength, which is defined on 0-1
        strength = min(1.0, max(0.0, strength))
        return KeyResult(key=result.key, scale=result.scale, strength=strength)
