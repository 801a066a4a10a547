"""
Multi-track project for the DinoAudio engine.
Owns the track list; every mutation goes through add/remove/update so that
readers (the transport and the mixdown renderer) can work on a snapshot.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from .buffer import PcmBuffer
from .config import AUDIO_CONFIG, TRACK_CONFIG
from .errors import UnknownTrack
from .track import AudioTrack
from dinoaudio.utils.logger import logger


@dataclass
class Project:
    """
    Represents a multi-track arrangement.
    The first track added fixes the project sample rate; later tracks are
    resampled to it.
    """
    name: str = "Untitled Project"
    sample_rate: int = field(default_factory=lambda: AUDIO_CONFIG.default_samplerate)
    _tracks: list[AudioTrack] = field(default_factory=list, repr=False)

    @property
    def tracks(self) -> tuple[AudioTrack, ...]:
        """Immutable snapshot of the current tracks, in insertion order."""
        return tuple(self._tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    @property
    def duration(self) -> float:
        """Latest track end in seconds (0 for an empty project)."""
        return max((t.end_time for t in self._tracks), default=0.0)

    def _index_of(self, track_id: str) -> int:
        for i, track in enumerate(self._tracks):
            if track.id == track_id:
                return i
        raise UnknownTrack(f"No track with id {track_id!r} in this project.")

    def get_track(self, track_id: str) -> Optional[AudioTrack]:
        """Get track by id safely."""
        try:
            return self._tracks[self._index_of(track_id)]
        except UnknownTrack:
            return None

    def add_track(self, buffer: PcmBuffer, name: str = "Track") -> AudioTrack:
        """Add a track at the start of the timeline and return it."""
        if not self._tracks:
            self.sample_rate = buffer.sample_rate
        elif buffer.sample_rate != self.sample_rate:
            logger.info(f"Resampling '{name}' from {buffer.sample_rate} Hz to {self.sample_rate} Hz")
            buffer = buffer.resampled(self.sample_rate)

        palette = TRACK_CONFIG.palette
        track = AudioTrack(buffer=buffer, name=name, color=palette[len(self._tracks) % len(palette)])
        self._tracks.append(track)
        logger.info(f"Track added: {track!r}")
        return track

    def remove_track(self, track_id: str) -> AudioTrack:
        """Remove a track by id and return it."""
        track = self._tracks.pop(self._index_of(track_id))
        logger.info(f"Track removed: {track.name}")
        return track

    def update_track(
        self,
        track_id: str,
        *,
        start_time: Optional[float] = None,
        volume: Optional[float] = None,
        muted: Optional[bool] = None
    ) -> AudioTrack:
        """Replace a track with an updated copy and return the new version."""
        index = self._index_of(track_id)
        track = self._tracks[index].updated(start_time=start_time, volume=volume, muted=muted)
        self._tracks[index] = track
        logger.debug(f"Track updated: {track!r}")
        return track

    def clear(self) -> None:
        """Reset project to empty state."""
        self._tracks.clear()
        self.sample_rate = AUDIO_CONFIG.default_samplerate
