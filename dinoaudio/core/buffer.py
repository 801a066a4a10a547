"""
Immutable PCM buffer for the DinoAudio engine.

Every transform in the engine takes a PcmBuffer and returns a new one;
the backing array is flagged read-only so accidental in-place writes fail
loudly instead of corrupting a history snapshot.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence
import numpy as np

from .errors import UnsupportedFormat
from .types import AudioArray, MonoArray


@dataclass(frozen=True, eq=False)
class PcmBuffer:
    """
    Fixed-length mono or stereo float32 audio.

    Attributes:
        data: Samples, shape (frames, channels), nominal range [-1, 1]
        sample_rate: Frames per second
    """
    data: AudioArray
    sample_rate: int

    def __post_init__(self) -> None:
        data = np.array(self.data, dtype=np.float32, copy=True)
        if data.ndim == 1:
            data = data[:, np.newaxis]
        if data.ndim != 2 or data.shape[1] not in (1, 2):
            raise UnsupportedFormat(
                f"Only mono or stereo audio is supported (got shape {data.shape})"
            )
        if int(self.sample_rate) <= 0:
            raise UnsupportedFormat(f"Invalid sample rate: {self.sample_rate}")
        data.setflags(write=False)
        object.__setattr__(self, 'data', data)
        object.__setattr__(self, 'sample_rate', int(self.sample_rate))

    # --- Constructors ---

    @classmethod
    def from_array(cls, array: np.ndarray, sample_rate: int) -> "PcmBuffer":
        """Builds a buffer from a 1-D mono or (frames, channels) array."""
        return cls(array, sample_rate)

    @classmethod
    def from_channels(cls, channels: Sequence[Sequence[float]], sample_rate: int) -> "PcmBuffer":
        """Builds a buffer from per-channel sample sequences of equal length."""
        arrays = [np.asarray(ch, dtype=np.float32) for ch in channels]
        if not arrays or len(arrays) > 2:
            raise UnsupportedFormat(f"Only mono or stereo audio is supported (got {len(arrays)} channels)")
        if len({len(a) for a in arrays}) != 1:
            raise UnsupportedFormat("All channels must have the same length")
        return cls(np.column_stack(arrays), sample_rate)

    @classmethod
    def silence(cls, channels: int, frames: int, sample_rate: int) -> "PcmBuffer":
        return cls(np.zeros((frames, channels), dtype=np.float32), sample_rate)

    # --- Properties ---

    @property
    def channel_count(self) -> int:
        return self.data.shape[1]

    @property
    def frame_count(self) -> int:
        return self.data.shape[0]

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.frame_count / self.sample_rate

    @property
    def is_mono(self) -> bool:
        return self.channel_count == 1

    @property
    def is_stereo(self) -> bool:
        return self.channel_count == 2

    def channel(self, index: int) -> MonoArray:
        """Read-only view of a single channel."""
        return self.data[:, index]

    # --- Derived buffers ---

    def copy_data(self) -> AudioArray:
        """Writable copy of the samples; the starting point for every transform."""
        return self.data.copy()

    def with_data(self, data: np.ndarray) -> "PcmBuffer":
        """New buffer at the same sample rate."""
        return PcmBuffer(data, self.sample_rate)

    def slice_frames(self, start: int, end: int) -> "PcmBuffer":
        return self.with_data(self.data[start:end])

    def resampled(self, sample_rate: int) -> "PcmBuffer":
        """
        Resample to another rate.

        Returns the same instance when the rate already matches.
        """
        if int(sample_rate) == self.sample_rate:
            return self
        import librosa

        # librosa resamples along the last axis
        resampled = librosa.resample(
            np.ascontiguousarray(self.data.T),
            orig_sr=self.sample_rate,
            target_sr=int(sample_rate)
        )
        return PcmBuffer(resampled.T, sample_rate)

    def __repr__(self) -> str:
        return (
            f"PcmBuffer(channels={self.channel_count}, sample_rate={self.sample_rate}, "
            f"frames={self.frame_count}, duration={self.duration:.2f}s)"
        )
