from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Optional
import uuid

from .buffer import PcmBuffer
from .config import TRACK_CONFIG


def _new_track_id() -> str:
    return uuid.uuid4().hex


def clamp_volume(volume: float) -> float:
    return min(max(float(volume), TRACK_CONFIG.min_volume), TRACK_CONFIG.max_volume)


@dataclass(frozen=True, eq=False)
class AudioTrack:
    """
    A single clip on the multi-track timeline.
    Tracks are immutable; edits produce a new track with the same id.
    """
    buffer: PcmBuffer
    name: str = "Track"
    id: str = field(default_factory=_new_track_id)
    start_time: float = 0.0  # seconds on the timeline
    volume: float = TRACK_CONFIG.default_volume
    muted: bool = False
    color: str = TRACK_CONFIG.palette[0]

    def __post_init__(self) -> None:
        object.__setattr__(self, 'start_time', max(0.0, float(self.start_time)))
        object.__setattr__(self, 'volume', clamp_volume(self.volume))

    @property
    def duration(self) -> float:
        """Duration of the track's audio in seconds."""
        return self.buffer.duration

    @property
    def end_time(self) -> float:
        """Timeline position where the track's audio ends."""
        return self.start_time + self.duration

    @property
    def sample_rate(self) -> int:
        return self.buffer.sample_rate

    def updated(
        self,
        start_time: Optional[float] = None,
        volume: Optional[float] = None,
        muted: Optional[bool] = None
    ) -> "AudioTrack":
        """Returns a copy with the given fields changed (same id)."""
        changes = {}
        if start_time is not None:
            changes['start_time'] = start_time
        if volume is not None:
            changes['volume'] = volume
        if muted is not None:
            changes['muted'] = bool(muted)
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"AudioTrack(name={self.name!r}, start={self.start_time:.2f}s, "
            f"duration={self.duration:.2f}s, volume={self.volume:.2f}, muted={self.muted})"
        )
