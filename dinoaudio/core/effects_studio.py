"""
Studio vocal chain for the DinoAudio engine.
Dynamics compression followed by a warm low-shelf boost, rendered offline
over a selected region and spliced back into the full buffer.
The DSP helpers operate on plain (frames, channels) numpy arrays.
"""
from __future__ import annotations
import logging
import math
from typing import Optional
import numpy as np
from scipy.signal import lfilter

from .buffer import PcmBuffer
from .config import EFFECTS_CONFIG
from .effects_basic import region_frames, trim
from .types import AudioArray

logger = logging.getLogger("DinoAudio")

# Floor for the level detector so log10 never sees zero (-180 dBFS)
_MIN_LEVEL = 1e-9


def low_shelf_coefficients(
    sr: int,
    cutoff: float = EFFECTS_CONFIG.low_shelf_frequency,
    gain_db: float = EFFECTS_CONFIG.low_shelf_gain_db,
    Q: float = EFFECTS_CONFIG.low_shelf_q
) -> tuple[np.ndarray, np.ndarray]:
    """
    Biquad cookbook low-shelf coefficients.

    Args:
        sr: Sample rate
        cutoff: Shelf midpoint frequency in Hz
        gain_db: Shelf gain in dB (positive = boost)
        Q: Shelf slope; 0.7071 gives the standard S=1 shelf

    Returns:
        (b, a) normalized so that a[0] == 1
    """
    A = 10 ** (gain_db / 40)
    omega = 2 * math.pi * min(cutoff, 0.499 * sr) / sr
    sn, cs = math.sin(omega), math.cos(omega)
    alpha = sn / (2 * Q)
    sqrt_a = math.sqrt(A)

    b0 = A * ((A + 1) - (A - 1) * cs + 2 * sqrt_a * alpha)
    b1 = 2 * A * ((A - 1) - (A + 1) * cs)
    b2 = A * ((A + 1) - (A - 1) * cs - 2 * sqrt_a * alpha)
    a0 = (A + 1) + (A - 1) * cs + 2 * sqrt_a * alpha
    a1 = -2 * ((A - 1) + (A + 1) * cs)
    a2 = (A + 1) + (A - 1) * cs - 2 * sqrt_a * alpha

    b = np.array([b0, b1, b2]) / a0
    a = np.array([a0, a1, a2]) / a0
    return b, a


def apply_low_shelf(
    data: AudioArray,
    sr: int,
    cutoff: float = EFFECTS_CONFIG.low_shelf_frequency,
    gain_db: float = EFFECTS_CONFIG.low_shelf_gain_db,
    Q: float = EFFECTS_CONFIG.low_shelf_q
) -> AudioArray:
    """
    Apply low-shelf EQ filter.

    Args:
        data: Audio samples, (frames, channels)
        sr: Sample rate
        cutoff: Shelf frequency in Hz
        gain_db: Gain in dB (positive = boost, negative = cut)
        Q: Q factor for shelf shape

    Returns:
        Filtered audio data
    """
    if len(data) == 0:
        return data.astype(np.float32)
    b, a = low_shelf_coefficients(sr, cutoff, gain_db, Q)
    return lfilter(b, a, data, axis=0).astype(np.float32)


def compressor_gain_curve(
    level_db: np.ndarray,
    threshold_db: float = EFFECTS_CONFIG.compressor_threshold_db,
    knee_db: float = EFFECTS_CONFIG.compressor_knee_db,
    ratio: float = EFFECTS_CONFIG.compressor_ratio
) -> np.ndarray:
    """
    Static soft-knee compression curve.

    At or below the threshold the signal passes at unity. The knee spans
    `[threshold, threshold + knee]`, where the slope blends quadratically
    down to 1/ratio; above the knee the output rises by 1/ratio dB per
    input dB.

    Args:
        level_db: Detector level in dBFS
        threshold_db: Level where gain reduction begins, in dBFS
        knee_db: Knee width in dB (0 = hard knee)
        ratio: Compression ratio (e.g., 12.0 = 12:1)

    Returns:
        Gain to apply in dB (always <= 0)
    """
    level_db = np.asarray(level_db, dtype=np.float64)
    slope = 1.0 / ratio - 1.0
    over = level_db - threshold_db

    gain_db = np.zeros_like(level_db)
    if knee_db > 0:
        in_knee = (over > 0) & (over <= knee_db)
        gain_db[in_knee] = slope * over[in_knee] ** 2 / (2 * knee_db)
        above = over > knee_db
        gain_db[above] = slope * (over[above] - knee_db / 2)
    else:
        above = over > 0
        gain_db[above] = slope * over[above]
    return gain_db


def auto_makeup_db(
    threshold_db: float = EFFECTS_CONFIG.compressor_threshold_db,
    knee_db: float = EFFECTS_CONFIG.compressor_knee_db,
    ratio: float = EFFECTS_CONFIG.compressor_ratio
) -> float:
    """
    Automatic makeup gain in dB.

    Raises the output by 0.6 of the reduction a full-scale (0 dBFS) signal
    receives, the rule WebAudio's DynamicsCompressorNode applies.
    """
    full_scale = compressor_gain_curve(np.array([0.0]), threshold_db, knee_db, ratio)[0]
    return -0.6 * float(full_scale)


def apply_compressor(
    data: AudioArray,
    sr: int,
    threshold_db: float = EFFECTS_CONFIG.compressor_threshold_db,
    knee_db: float = EFFECTS_CONFIG.compressor_knee_db,
    ratio: float = EFFECTS_CONFIG.compressor_ratio,
    attack_ms: float = EFFECTS_CONFIG.compressor_attack_ms,
    release_ms: float = EFFECTS_CONFIG.compressor_release_ms,
    makeup_db: Optional[float] = None
) -> AudioArray:
    """
    Apply feed-forward dynamic range compression.

    Channels are linked: the detector follows the loudest channel so the
    stereo image does not shift under gain reduction.

    Args:
        data: Audio samples, (frames, channels)
        sr: Sample rate
        threshold_db: Threshold level in dB
        knee_db: Soft knee width in dB
        ratio: Compression ratio
        attack_ms: Time for gain reduction to engage
        release_ms: Time for gain reduction to recover
        makeup_db: Makeup gain in dB (None = automatic, see auto_makeup_db)

    Returns:
        Compressed audio data
    """
    if ratio <= 1.0 or len(data) == 0:
        return data.astype(np.float32)
    if makeup_db is None:
        makeup_db = auto_makeup_db(threshold_db, knee_db, ratio)

    attack_samples = max(1, int(sr * attack_ms / 1000))
    release_samples = max(1, int(sr * release_ms / 1000))
    attack_coeff = 1 - math.exp(-1.0 / attack_samples)
    release_coeff = 1 - math.exp(-1.0 / release_samples)

    if data.ndim > 1:
        env_input = np.max(np.abs(data), axis=1)
    else:
        env_input = np.abs(data)

    level_db = 20 * np.log10(np.maximum(env_input, _MIN_LEVEL))
    target_db = compressor_gain_curve(level_db, threshold_db, knee_db, ratio)

    # Smooth the gain reduction: attack while it deepens, release while it recovers
    smoothed = np.empty_like(target_db)
    current = 0.0
    for i, target in enumerate(target_db.tolist()):
        coeff = attack_coeff if target < current else release_coeff
        current += coeff * (target - current)
        smoothed[i] = current

    gain = 10 ** ((smoothed + makeup_db) / 20)
    if data.ndim > 1:
        gain = gain[:, np.newaxis]

    return (data * gain).astype(np.float32)


def studio_chain(data: AudioArray, sr: int) -> AudioArray:
    """Compressor then low-shelf, with the studio preset parameters."""
    compressed = apply_compressor(data, sr)
    return apply_low_shelf(compressed, sr)


def studio_effect(buffer: PcmBuffer, start: float, end: float) -> PcmBuffer:
    """
    Render the studio chain over the selection and splice it back.

    The selection is trimmed out, processed offline, and written over the
    same frames of a copy of the full buffer. Audio before the selection
    and after the processed block is left as it was.

    Args:
        buffer: Source buffer
        start: Selection start in seconds
        end: Selection end in seconds

    Returns:
        Copy of the buffer with the processed region

    Raises:
        InvalidRange: if the selection contains no frames
    """
    segment = trim(buffer, start, end)
    logger.debug("Rendering studio chain over %d frames", segment.frame_count)
    rendered = studio_chain(segment.copy_data(), buffer.sample_rate)

    data = buffer.copy_data()
    start_sample, _ = region_frames(buffer, start, end)
    length = min(len(rendered), buffer.frame_count - start_sample)
    data[start_sample:start_sample + length] = rendered[:length]
    return buffer.with_data(data)
