"""
Centralized configuration for the DinoAudio engine.
All magic numbers and default settings in one place.
"""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class PlaybackState(Enum):
    """Playback state enumeration."""
    STOPPED = auto()
    PLAYING = auto()
    PAUSED = auto()


class TransportMode(Enum):
    """Which playback session the transport drives."""
    EDITOR = auto()   # single buffer, bounded by the selection
    STUDIO = auto()   # multi-track arrangement


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Audio engine configuration."""
    default_samplerate: int = 44100
    playback_blocksize: int = 512
    playback_channels: int = 2
    mixdown_tail_seconds: float = 0.5
    default_volume: float = 1.0
    max_volume: float = 2.0
    tick_interval: float = 1.0 / 60.0  # display refresh cadence


@dataclass(frozen=True, slots=True)
class TrackConfig:
    """Multi-track defaults."""
    min_volume: float = 0.0
    max_volume: float = 1.5
    default_volume: float = 1.0
    palette: tuple[str, ...] = (
        '#f59e0b', '#ef4444', '#3b82f6', '#10b981', '#8b5cf6', '#ec4899'
    )


@dataclass(frozen=True, slots=True)
class WaveformConfig:
    """Waveform visualization settings."""
    default_bucket_count: int = 2000


@dataclass(frozen=True, slots=True)
class UndoConfig:
    """Undo/Redo configuration."""
    # None = unbounded
    max_depth: Optional[int] = None


@dataclass(frozen=True, slots=True)
class EffectsConfig:
    """Default effect parameters."""
    # Fades
    fade_duration: float = 1.0
    min_fade_duration: float = 0.1

    # Noise gate
    noise_gate_threshold: float = 0.02

    # Studio chain: compressor
    compressor_threshold_db: float = -24.0
    compressor_knee_db: float = 30.0
    compressor_ratio: float = 12.0
    compressor_attack_ms: float = 3.0
    compressor_release_ms: float = 250.0

    # Studio chain: low shelf
    low_shelf_frequency: float = 300.0
    low_shelf_gain_db: float = 3.0
    low_shelf_q: float = 0.7071


# Global config instances (immutable singletons)
AUDIO_CONFIG = AudioConfig()
TRACK_CONFIG = TrackConfig()
WAVEFORM_CONFIG = WaveformConfig()
UNDO_CONFIG = UndoConfig()
EFFECTS_CONFIG = EffectsConfig()
