"""
Waveform overview data for external renderers.
"""
from __future__ import annotations
import numpy as np

from .buffer import PcmBuffer
from .config import WAVEFORM_CONFIG


def downsample_peaks(buffer: PcmBuffer, bucket_count: int = WAVEFORM_CONFIG.default_bucket_count) -> np.ndarray:
    """
    Average absolute amplitude of channel 0 in equal contiguous blocks.

    Args:
        buffer: Source buffer
        bucket_count: Number of output values

    Returns:
        float32 array of length bucket_count; all zeros when the buffer has
        fewer frames than buckets. Trailing frames that do not fill a whole
        block are ignored.
    """
    if bucket_count <= 0:
        raise ValueError(f"bucket_count must be positive, got {bucket_count}")

    block_size = buffer.frame_count // bucket_count
    if block_size == 0:
        return np.zeros(bucket_count, dtype=np.float32)

    used = buffer.channel(0)[:block_size * bucket_count]
    blocks = np.abs(used.astype(np.float64)).reshape(bucket_count, block_size)
    return blocks.mean(axis=1).astype(np.float32)
