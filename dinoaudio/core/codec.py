"""
WAV export and audio decoding for the DinoAudio engine.

Encoding is a deterministic, byte-exact RIFF/WAVE PCM16 writer.
Decoding delegates to librosa and only normalizes the result into a PcmBuffer.
"""
from __future__ import annotations
import io
import logging
import os
import struct
import numpy as np

from .buffer import PcmBuffer
from .errors import DecodeError, UnsupportedFormat
from .types import AudioSource

logger = logging.getLogger("DinoAudio")

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1

# RIFF chunk, fmt chunk and data chunk header, little-endian
_HEADER = struct.Struct('<4sI4s4sIHHIIHH4sI')


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """
    Map float samples to int16.

    Values are clamped to [-1, 1]; negatives scale by 32768, the rest by
    32767, and the result is truncated toward zero.
    """
    s = np.clip(samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(s < 0, s * 0x8000, s * 0x7FFF)
    return np.trunc(scaled).astype('<i2')


def wav_header(channel_count: int, sample_rate: int, frame_count: int) -> bytes:
    data_length = frame_count * channel_count * 2
    return _HEADER.pack(
        b'RIFF', WAV_HEADER_SIZE + data_length - 8, b'WAVE',
        b'fmt ', 16, PCM_FORMAT, channel_count, sample_rate,
        sample_rate * 2 * channel_count, channel_count * 2, BITS_PER_SAMPLE,
        b'data', data_length,
    )


def encode_wav(buffer: PcmBuffer) -> bytes:
    """
    Encode a buffer as a 16-bit PCM WAV file.

    Args:
        buffer: Audio to encode

    Returns:
        44-byte header followed by interleaved little-endian int16 frames
    """
    header = wav_header(buffer.channel_count, buffer.sample_rate, buffer.frame_count)
    # (frames, channels) in C order is already frame-major interleaving
    pcm = float_to_pcm16(buffer.data)
    return header + pcm.tobytes()


def write_wav(buffer: PcmBuffer, path: str | os.PathLike) -> int:
    """Write `encode_wav` output to a file and return the byte count."""
    payload = encode_wav(buffer)
    with open(path, 'wb') as fh:
        fh.write(payload)
    logger.info("Wrote %d bytes to %s", len(payload), path)
    return len(payload)


def decode_audio(source: AudioSource, sample_rate: int | None = None) -> PcmBuffer:
    """
    Decode an audio file into a PcmBuffer.

    Args:
        source: File path, raw bytes, or a binary file object
        sample_rate: Resample to this rate (None keeps the file's rate)

    Returns:
        Decoded mono or stereo buffer

    Raises:
        DecodeError: if the audio is malformed, empty, or has >2 channels
    """
    import librosa

    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(bytes(source))

    try:
        data, samplerate = librosa.load(source, sr=sample_rate, mono=False)
    except Exception as e:
        logger.error("Failed to decode audio: %s", e, exc_info=True)
        raise DecodeError("Could not decode the audio file.") from e

    # librosa returns (channels, frames) for multi-channel audio
    if data.ndim > 1:
        data = data.T
    if data.ndim == 2 and data.shape[1] > 2:
        raise UnsupportedFormat(f"Only mono or stereo audio is supported (got {data.shape[1]} channels).")
    if data.shape[0] == 0:
        raise DecodeError("The audio file contains no samples.")

    buffer = PcmBuffer.from_array(data.astype(np.float32), int(samplerate))
    logger.info("Decoded %r", buffer)
    return buffer
