"""Analysis session - Drive every stabilizer from one tick per audio buffer.

The session owns one instance of each stabilizer for the lifetime of a
listening session. `tick` is called once per captured buffer with a
monotonic timestamp; pitch runs every tick, chords on a short interval, key
extraction on a multi-second interval, and tempo events are pushed by the
beat analyzer's callbacks. `stop` resets everything to a cold state.
"""

import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .core import NoteInfo, PitchSample, SampleFrame, TempoCandidate
from .core.constants import (
    DEFAULT_SR,
    DEFAULT_FRAME_SIZE,
    DEFAULT_RMS_THRESHOLD,
    KEY_RMS_THRESHOLD,
    FULL_SCALE_RMS,
)
from .analysis import (
    SignalGate,
    ChromaExtractor,
    PitchEstimator,
    PyinPitchEstimator,
    TempoAnalyzer,
    compute_rms,
    input_level,
)
from .inference import (
    ChordMatch,
    ChordStabilizer,
    NoteStabilizer,
    NoteStabilizerConfig,
    NoteUpdate,
    KeyVote,
    KeyInfo,
    KeyVoteAggregator,
    KeyVoteConfig,
    KeyAudioCollector,
    KeyExtractorHandle,
    TempoAggregator,
    TempoState,
)


@dataclass
class SessionConfig:
    """Configuration for an analysis session.

    Attributes:
        sample_rate: Sample rate of incoming buffers (default: 22050)
        frame_size: Samples per buffer (default: 2048)
        rms_threshold: Presence gate for pitch and chords (default: 0.005)
        key_rms_threshold: Presence gate for key audio collection (default: 0.01)
        full_scale_rms: RMS shown as a full input meter (default: 0.3)
        chord_interval: Seconds between chord analyses (default: 0.15)
        chord_min_confidence: Minimum template similarity (default: 0.6)
        chord_stability_frames: Consecutive matches before display (default: 2)
        key_interval: Seconds between key extractions (default: 2.0)
        key_buffer_duration: Seconds of audio handed to the key extractor (default: 3.0)
        tempo_interval: Seconds between tempo analyses (default: 1.0)
        note: Note stabilizer settings
        key: Key voting settings
    """

    sample_rate: int = DEFAULT_SR
    frame_size: int = DEFAULT_FRAME_SIZE
    rms_threshold: float = DEFAULT_RMS_THRESHOLD
    key_rms_threshold: float = KEY_RMS_THRESHOLD
    full_scale_rms: float = FULL_SCALE_RMS
    chord_interval: float = 0.15
    chord_min_confidence: float = 0.6
    chord_stability_frames: int = 2
    key_interval: float = 2.0
    key_buffer_duration: float = 3.0
    tempo_interval: float = 1.0
    note: NoteStabilizerConfig = field(default_factory=NoteStabilizerConfig)
    key: KeyVoteConfig = field(default_factory=KeyVoteConfig)


# Gate thresholds per sensitivity level
SENSITIVITY_PRESETS: Dict[str, Dict[str, float]] = {
    "low": {"rms_threshold": 0.01, "key_rms_threshold": 0.02},
    "medium": {"rms_threshold": 0.005, "key_rms_threshold": 0.01},
    "high": {"rms_threshold": 0.002, "key_rms_threshold": 0.005},
}


def config_for_sensitivity(sensitivity: str = "medium", **overrides) -> SessionConfig:
    """
    Build a SessionConfig from a named sensitivity preset.

    Raises:
        ValueError: If the preset name is unknown
    """
    preset = SENSITIVITY_PRESETS.get(sensitivity.lower())
    if preset is None:
        raise ValueError(
            f"Unknown sensitivity: {sensitivity}. Supported: {list(SENSITIVITY_PRESETS)}"
        )
    return SessionConfig(**{**preset, **overrides})


@dataclass
class AnalysisSnapshot:
    """Stabilized musical state after one tick."""

    time: float
    level: float  # Input meter, 0.0 - 1.0
    present: bool
    note: Optional[NoteInfo] = None
    frequency: Optional[float] = None
    chord: Optional[ChordMatch] = None
    key: Optional[KeyInfo] = None
    tempo: TempoState = field(default_factory=TempoState)
    note_updated: bool = False


class AnalysisSession:
    """One listening session over a stream of sample buffers."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        pitch_estimator: Optional[PitchEstimator] = None,
        key_extractor: Optional[KeyExtractorHandle] = None,
        tempo_analyzer: Optional[TempoAnalyzer] = None,
    ):
        """
        Initialize AnalysisSession.

        Args:
            config: Session settings
            pitch_estimator: Raw per-buffer pitch estimator (default: pYIN)
            key_extractor: Initialized key extractor handle; None disables key detection
            tempo_analyzer: Beat analyzer, subscribed to only while the session
                is active; None disables tempo detection
        """
        self.config = config if config is not None else SessionConfig()
        cfg = self.config

        self.pitch_estimator = pitch_estimator or PyinPitchEstimator(
            frame_length=cfg.frame_size
        )
        self.key_extractor = key_extractor
        self.tempo_analyzer = tempo_analyzer

        self.gate = SignalGate(cfg.rms_threshold, cfg.full_scale_rms)
        self.chroma = ChromaExtractor(n_fft=cfg.frame_size)
        self.notes = NoteStabilizer(cfg.note)
        self.chords = ChordStabilizer(cfg.chord_stability_frames, cfg.chord_min_confidence)
        self.keys = KeyVoteAggregator(cfg.key)
        self.key_audio = KeyAudioCollector(
            cfg.sample_rate,
            cfg.frame_size,
            buffer_duration=cfg.key_buffer_duration,
            rms_threshold=cfg.key_rms_threshold,
        )
        self.tempo = TempoAggregator()

        self.active = False
        self.last_error: Optional[str] = None
        self._key: Optional[KeyInfo] = None
        self._last_chord_time: Optional[float] = None
        self._last_key_time: Optional[float] = None
        self._last_tempo_time: Optional[float] = None

    @property
    def key(self) -> Optional[KeyInfo]:
        """Currently displayed key."""
        return self._key

    def start(self) -> None:
        """Begin a session from a cold state."""
        self.reset()
        if not self.active and self.tempo_analyzer is not None:
            self.tempo_analyzer.on("bpm", self._on_bpm)
            self.tempo_analyzer.on("bpm_stable", self._on_bpm_stable)
        self.active = True

    def stop(self) -> None:
        """End the session and discard all per-session state."""
        if self.active and self.tempo_analyzer is not None:
            self.tempo_analyzer.off("bpm", self._on_bpm)
            self.tempo_analyzer.off("bpm_stable", self._on_bpm_stable)
        self.active = False
        self.reset()

    def reset(self) -> None:
        """Reset every stabilizer synchronously."""
        self.notes.reset()
        self.chords.reset()
        self.keys.reset()
        self.key_audio.clear()
        self.tempo.reset()
        if self.tempo_analyzer is not None:
            self.tempo_analyzer.reset()
        self.last_error = None
        self._key = None
        self._last_chord_time = None
        self._last_key_time = None
        self._last_tempo_time = None

    def tick(self, frame: SampleFrame, now: float) -> AnalysisSnapshot:
        """
        Process one captured buffer.

        Args:
            frame: Captured samples
            now: Monotonic timestamp in seconds (non-decreasing)

        Returns:
            AnalysisSnapshot with the stabilized state

        Raises:
            RuntimeError: If the session has not been started
        """
        if not self.active:
            raise RuntimeError("Analysis session is not active; call start() first")

        samples = frame.samples
        rms = compute_rms(samples)
        present = self.gate.is_present_rms(rms)

        update = self._tick_pitch(frame, now, present)
        self._tick_chord(frame, now, present)

        if self.key_extractor is not None:
            self.key_audio.push(samples)
            if self._last_key_time is None:
                self._last_key_time = now
            elif self._due(self._last_key_time, self.config.key_interval, now):
                self._last_key_time = now
                self._analyze_key(frame.sample_rate, now)

        if self.tempo_analyzer is not None:
            self.tempo_analyzer.push(samples)
            if self._last_tempo_time is None:
                self._last_tempo_time = now
            elif self._due(self._last_tempo_time, self.config.tempo_interval, now):
                self._last_tempo_time = now
                self._analyze_tempo(now)

        return AnalysisSnapshot(
            time=now,
            level=input_level(rms, self.gate.full_scale),
            present=present,
            note=self.notes.current,
            frequency=self.notes.current.frequency if self.notes.current else None,
            chord=self.chords.current,
            key=self._key,
            tempo=self.tempo.state,
            note_updated=update is not None,
        )

    def _tick_pitch(
        self, frame: SampleFrame, now: float, present: bool
    ) -> Optional[NoteUpdate]:
        sample = PitchSample()
        if present:
            try:
                sample = self.pitch_estimator.estimate(frame.samples, frame.sample_rate)
            except Exception as e:
                self._report("pitch estimator", e)
                return None
        return self.notes.ingest_sample(sample, now, present)

    def _tick_chord(self, frame: SampleFrame, now: float, present: bool) -> None:
        if not present:
            self.chords.silence()
            return
        if not self._due(self._last_chord_time, self.config.chord_interval, now):
            return
        self._last_chord_time = now
        self.chords.update(self.chroma.from_samples(frame.samples, frame.sample_rate))

    def _analyze_key(self, sample_rate: int, now: float) -> None:
        if not self.key_extractor.is_ready or len(self.key_audio) == 0:
            return

        audio = self.key_audio.concatenate()
        try:
            result = self.key_extractor.extract(audio, sample_rate)
        except Exception as e:
            self._report("key extractor", e)
            return

        self.key_audio.clear()
        if result is not None:
            self.keys.record(
                KeyVote(result.key, result.scale, result.strength, timestamp=now)
            )
        self._key = self.keys.compute(now)

    def _analyze_tempo(self, now: float) -> None:
        try:
            self.tempo_analyzer.analyze(now)
        except Exception as e:
            self._report("tempo analyzer", e)

    def _on_bpm(self, candidates: List[TempoCandidate]) -> None:
        self.tempo.on_candidates(candidates)

    def _on_bpm_stable(self, candidates: List[TempoCandidate]) -> None:
        if candidates:
            self.tempo.on_stable(candidates[0].tempo)

    def _report(self, component: str, error: Exception) -> None:
        self.last_error = f"{component} failed: {type(error).__name__}: {error}"
        warnings.warn(self.last_error, RuntimeWarning)

    @staticmethod
    def _due(last: Optional[float], interval: float, now: float) -> bool:
        return last is None or now - last >= interval
