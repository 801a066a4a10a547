"""
Offline multi-track mixdown for the DinoAudio engine.
Uses the same gain/offset/channel math as live playback (`mix_into`),
so an exported mix matches what the transport plays.
"""
from __future__ import annotations
import logging
import math
from typing import Iterable
import numpy as np

from .buffer import PcmBuffer
from .config import AUDIO_CONFIG
from .errors import EmptyMix
from .track import AudioTrack
from .types import AudioArray

logger = logging.getLogger("DinoAudio")


def mix_into(
    out: AudioArray,
    source: AudioArray,
    out_start: int,
    src_start: int,
    length: int,
    gain: float
) -> int:
    """
    Add `length` frames of `source` (scaled by gain) into a stereo block.

    Mono sources feed both output channels. The copied span is clipped to
    both arrays, so callers may pass an optimistic length.

    Args:
        out: Destination, (frames, 2), modified in place
        source: Source samples, (frames, 1 or 2)
        out_start: First destination frame
        src_start: First source frame
        length: Frames to mix
        gain: Linear gain

    Returns:
        Number of frames actually mixed
    """
    if out_start < 0:
        src_start -= out_start
        length += out_start
        out_start = 0
    length = min(length, len(out) - out_start, len(source) - src_start)
    if length <= 0 or src_start < 0:
        return 0

    segment = source[src_start:src_start + length] * gain
    # (n, 1) broadcasts across both output channels
    out[out_start:out_start + length] += segment
    return length


def render_mix(tracks: Iterable[AudioTrack], sample_rate: int = AUDIO_CONFIG.default_samplerate) -> PcmBuffer:
    """
    Compose tracks into one stereo buffer.

    The output runs to the latest track end plus a short tail. Muted tracks
    contribute nothing; the float result is not clipped.

    Args:
        tracks: Tracks to mix (a snapshot; not mutated)
        sample_rate: Output sample rate

    Returns:
        Stereo PcmBuffer

    Raises:
        EmptyMix: if there are no tracks
    """
    tracks = tuple(tracks)
    if not tracks:
        raise EmptyMix("No tracks to render.")

    total_duration = max(t.end_time for t in tracks) + AUDIO_CONFIG.mixdown_tail_seconds
    output = np.zeros((math.ceil(total_duration * sample_rate), 2), dtype=np.float32)

    for track in tracks:
        if track.muted:
            continue
        buffer = track.buffer.resampled(sample_rate)
        mix_into(
            output, buffer.data,
            out_start=round(track.start_time * sample_rate),
            src_start=0,
            length=buffer.frame_count,
            gain=track.volume
        )

    logger.info("Rendered mix of %d track(s): %.2fs at %d Hz", len(tracks), total_duration, sample_rate)
    return PcmBuffer(output, sample_rate)
