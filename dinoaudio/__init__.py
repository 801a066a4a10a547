"""
DinoAudio: the audio engine behind a browser-style audio editor and mixer.

Editing, undo history, sample-accurate playback scheduling, multi-track
mixdown and WAV export over immutable PCM buffers.
"""
__version__ = "1.0.0"

from .core import AudioEngine, PcmBuffer, SelectionRange

__all__ = ['AudioEngine', 'PcmBuffer', 'SelectionRange', '__version__']
