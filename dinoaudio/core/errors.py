from __future__ import annotations


class AudioEngineError(Exception):
    """Base error for the DinoAudio engine."""


class InvalidRange(AudioEngineError):
    """Raised when a selection is empty, reversed, or outside the buffer."""


class DecodeError(AudioEngineError):
    """Raised when source audio cannot be decoded."""


class UnsupportedFormat(DecodeError):
    """Raised for channel layouts or sample rates the engine does not handle."""


class EmptyMix(AudioEngineError):
    """Raised when a mixdown is requested with no tracks."""


class InvalidFadeDuration(AudioEngineError):
    """Raised (or reported as a warning) when a fade window collapses."""


class UnknownTrack(AudioEngineError):
    """Raised when a track id is not part of the project."""
