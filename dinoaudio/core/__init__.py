"""
DinoAudio Core Module

This module contains the audio engine:
- AudioEngine: Facade tying editing, history, tracks and playback together
- PcmBuffer / SelectionRange: Immutable audio and the region effects act on
- effects: Typed effect dispatch over the basic and studio transforms
- HistoryManager: Snapshot undo/redo
- Project / AudioTrack: Multi-track arrangement
- PlaybackContext / Transport: Sample-accurate playback scheduling
- render_mix / encode_wav / decode_audio: Mixdown and file I/O
"""
from .audio_engine import AudioEngine
from .buffer import PcmBuffer
from .selection import SelectionRange
from .history import HistoryManager
from .project import Project
from .track import AudioTrack
from .playback import DevicePlaybackContext, PlaybackContext, ScheduledSource
from .transport import Ticker, Transport, schedule_tracks
from .mixdown import render_mix
from .codec import decode_audio, encode_wav, write_wav
from .waveform import downsample_peaks
from .effects import (
    Effect, FadeIn, FadeOut, NoiseGate, Normalize, StudioEffect, Trim, apply
)
from .errors import (
    AudioEngineError,
    DecodeError,
    EmptyMix,
    InvalidFadeDuration,
    InvalidRange,
    UnknownTrack,
    UnsupportedFormat,
)
from .config import (
    AUDIO_CONFIG,
    EFFECTS_CONFIG,
    TRACK_CONFIG,
    UNDO_CONFIG,
    WAVEFORM_CONFIG,
    PlaybackState,
    TransportMode,
)
from .types import EffectResult
from . import effects_basic
from . import effects_studio

__all__ = [
    # Main classes
    'AudioEngine',
    'PcmBuffer',
    'SelectionRange',
    'HistoryManager',
    'Project',
    'AudioTrack',
    'PlaybackContext',
    'DevicePlaybackContext',
    'ScheduledSource',
    'Transport',
    'Ticker',
    # Functions
    'schedule_tracks',
    'render_mix',
    'decode_audio',
    'encode_wav',
    'write_wav',
    'downsample_peaks',
    'apply',
    # Effects
    'Effect',
    'EffectResult',
    'Trim',
    'FadeIn',
    'FadeOut',
    'Normalize',
    'NoiseGate',
    'StudioEffect',
    # Errors
    'AudioEngineError',
    'InvalidRange',
    'DecodeError',
    'UnsupportedFormat',
    'EmptyMix',
    'InvalidFadeDuration',
    'UnknownTrack',
    # Config
    'AUDIO_CONFIG',
    'EFFECTS_CONFIG',
    'TRACK_CONFIG',
    'UNDO_CONFIG',
    'WAVEFORM_CONFIG',
    'PlaybackState',
    'TransportMode',
    # Submodules
    'effects_basic',
    'effects_studio',
]
