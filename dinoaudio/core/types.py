"""
Type definitions for the DinoAudio core module.
Provides type aliases and result objects for type safety and better IDE support.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, BinaryIO, Callable, Optional, Union
import os
import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from .buffer import PcmBuffer
    from .config import PlaybackState

# Audio data types
AudioArray = NDArray[np.float32]  # Shape: (frames, channels)
MonoArray = NDArray[np.float32]   # Shape: (frames,)

# Anything the decode boundary accepts: a path, raw bytes or a binary file object
AudioSource = Union[str, os.PathLike, bytes, bytearray, BinaryIO]

# Callback types
PositionCallback = Callable[[float], None]          # seconds
StateCallback = Callable[["PlaybackState"], None]
ErrorCallback = Callable[[str], None]               # human-readable message


class EffectResult:
    """Result from applying an effect to a buffer region."""
    __slots__ = ('success', 'buffer', 'error', 'warning')

    def __init__(
        self,
        success: bool,
        buffer: Optional["PcmBuffer"] = None,
        error: Optional[str] = None,
        warning: Optional[str] = None
    ):
        self.success = success
        self.buffer = buffer
        self.error = error
        self.warning = warning

    def __repr__(self) -> str:
        if self.success:
            return f"EffectResult(success=True, warning={self.warning!r})"
        return f"EffectResult(success=False, error={self.error!r})"
