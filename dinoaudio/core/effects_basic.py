"""
Basic region effects for the DinoAudio engine.
All functions are pure (no side effects): they take a PcmBuffer plus a
selection in seconds and return a new PcmBuffer, leaving the input intact.
Optimized with numpy vectorization for performance.
"""
from __future__ import annotations
import logging
import math
import numpy as np

from .buffer import PcmBuffer
from .config import EFFECTS_CONFIG
from .errors import InvalidRange

logger = logging.getLogger("DinoAudio")


def region_frames(buffer: PcmBuffer, start: float, end: float) -> tuple[int, int]:
    """
    Convert a selection in seconds to frame indices clamped to the buffer.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds

    Returns:
        (start_frame, end_frame) with floor rounding on both ends
    """
    sr = buffer.sample_rate
    n = buffer.frame_count
    start_frame = min(max(math.floor(start * sr), 0), n)
    end_frame = min(max(math.floor(end * sr), 0), n)
    return start_frame, end_frame


def fade_in_window(sample_rate: int, start: float, end: float, duration: float) -> tuple[int, int]:
    """Frames [start, end) covered by a fade-in ramp; empty when end <= start."""
    start_sample = math.floor(start * sample_rate)
    selection_end_sample = math.floor(end * sample_rate)
    fade_samples = math.floor(duration * sample_rate)
    return start_sample, min(start_sample + fade_samples, selection_end_sample)


def fade_out_window(sample_rate: int, start: float, end: float, duration: float) -> tuple[int, int]:
    """Frames [start, end) covered by a fade-out ramp; empty when end <= start."""
    selection_start_sample = math.floor(start * sample_rate)
    end_sample = math.floor(end * sample_rate)
    fade_samples = math.floor(duration * sample_rate)
    return max(selection_start_sample, end_sample - fade_samples), end_sample


def trim(buffer: PcmBuffer, start: float, end: float) -> PcmBuffer:
    """
    Cut the selection out as a new buffer.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds

    Returns:
        Buffer holding frames [floor(start*sr), floor(end*sr))

    Raises:
        InvalidRange: if the selection contains no frames
    """
    start_frame, end_frame = region_frames(buffer, start, end)
    if end_frame - start_frame <= 0:
        raise InvalidRange("Invalid trim range. End time must be after start time.")
    return buffer.slice_frames(start_frame, end_frame)


def _apply_ramp(buffer: PcmBuffer, window: tuple[int, int], rising: bool) -> PcmBuffer:
    start_sample, end_sample = window
    length = end_sample - start_sample
    data = buffer.copy_data()
    if length <= 0:
        logger.warning("Fade window collapsed (%d frames), buffer left unchanged", length)
        return buffer.with_data(data)

    ramp = np.arange(length, dtype=np.float64) / length
    if not rising:
        ramp = 1.0 - ramp

    # Only the part of the window that lies inside the buffer is written
    lo = max(start_sample, 0)
    hi = min(end_sample, buffer.frame_count)
    if hi > lo:
        segment = ramp[lo - start_sample:hi - start_sample, np.newaxis]
        data[lo:hi] = data[lo:hi] * segment
    return buffer.with_data(data)


def fade_in(buffer: PcmBuffer, start: float, end: float,
            duration: float = EFFECTS_CONFIG.fade_duration) -> PcmBuffer:
    """
    Apply a linear 0 -> 1 ramp starting at the selection start.

    The ramp lasts `duration` seconds but never runs past the selection end.
    Frames outside the ramp are unchanged.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds
        duration: Fade length in seconds

    Returns:
        Faded copy (an unmodified copy if the window is empty)
    """
    return _apply_ramp(buffer, fade_in_window(buffer.sample_rate, start, end, duration), rising=True)


def fade_out(buffer: PcmBuffer, start: float, end: float,
             duration: float = EFFECTS_CONFIG.fade_duration) -> PcmBuffer:
    """
    Apply a linear 1 -> 0 ramp ending at the selection end.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds
        duration: Fade length in seconds

    Returns:
        Faded copy (an unmodified copy if the window is empty)
    """
    return _apply_ramp(buffer, fade_out_window(buffer.sample_rate, start, end, duration), rising=False)


def normalize(buffer: PcmBuffer, start: float, end: float) -> PcmBuffer:
    """
    Scale the selection so its absolute peak (across channels) becomes 1.0.

    Samples outside the selection keep their level, so they may still peak
    above the normalized region afterwards.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds

    Returns:
        Normalized copy (an unmodified copy for a silent region)
    """
    start_frame, end_frame = region_frames(buffer, start, end)
    data = buffer.copy_data()
    region = data[start_frame:end_frame]
    peak = float(np.max(np.abs(region))) if region.size else 0.0
    if peak == 0.0:
        return buffer.with_data(data)

    gain = 1.0 / peak
    data[start_frame:end_frame] = region.astype(np.float64) * gain
    return buffer.with_data(data)


def noise_gate(buffer: PcmBuffer, start: float, end: float,
               threshold: float = EFFECTS_CONFIG.noise_gate_threshold) -> PcmBuffer:
    """
    Hard noise gate: zero every in-region sample quieter than the threshold.

    No attack/release smoothing; louder samples pass bit-identical.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds
        threshold: Absolute amplitude below which samples are silenced

    Returns:
        Gated copy
    """
    start_frame, end_frame = region_frames(buffer, start, end)
    data = buffer.copy_data()
    region = data[start_frame:end_frame]
    region[np.abs(region) < threshold] = 0.0
    return buffer.with_data(data)
