"""
Pytest configuration and fixtures for DinoAudio tests.
"""
import pytest
import numpy as np

from dinoaudio.core.buffer import PcmBuffer
from dinoaudio.core.config import AUDIO_CONFIG
from dinoaudio.core.history import HistoryManager
from dinoaudio.core.playback import PlaybackContext
from dinoaudio.core.project import Project

# Low rate for scheduling tests: one frame per millisecond keeps frame math exact
TEST_RATE = 1000


@pytest.fixture
def sample_mono_audio() -> np.ndarray:
    """Generate 1 second of mono sine wave audio."""
    sr = AUDIO_CONFIG.default_samplerate
    t = np.linspace(0, 1, sr, dtype=np.float32)
    return np.sin(2 * np.pi * 440 * t).astype(np.float32)


@pytest.fixture
def sample_stereo_audio() -> np.ndarray:
    """Generate 1 second of stereo sine wave audio."""
    sr = AUDIO_CONFIG.default_samplerate
    t = np.linspace(0, 1, sr, dtype=np.float32)
    left = np.sin(2 * np.pi * 440 * t).astype(np.float32)
    right = np.sin(2 * np.pi * 880 * t).astype(np.float32)
    return np.column_stack((left, right))


@pytest.fixture
def mono_buffer(sample_mono_audio) -> PcmBuffer:
    return PcmBuffer.from_array(sample_mono_audio, AUDIO_CONFIG.default_samplerate)


@pytest.fixture
def stereo_buffer(sample_stereo_audio) -> PcmBuffer:
    return PcmBuffer.from_array(sample_stereo_audio, AUDIO_CONFIG.default_samplerate)


@pytest.fixture
def ramp_buffer() -> PcmBuffer:
    """10 seconds at TEST_RATE whose sample values encode their own index."""
    frames = 10 * TEST_RATE
    return PcmBuffer.from_array(np.arange(frames, dtype=np.float32) / frames, TEST_RATE)


@pytest.fixture
def ones_buffer() -> PcmBuffer:
    """10 seconds of constant 1.0 at 10 Hz (one frame per 100 ms)."""
    return PcmBuffer.from_array(np.ones(100, dtype=np.float32), 10)


@pytest.fixture
def context() -> PlaybackContext:
    """Offline playback context; tests advance its clock by rendering."""
    return PlaybackContext(sample_rate=TEST_RATE)


@pytest.fixture
def history() -> HistoryManager:
    return HistoryManager(max_depth=10)


@pytest.fixture
def empty_project() -> Project:
    """Create an empty project."""
    return Project(name="Test Project")


@pytest.fixture
def constant_buffer():
    """Factory for buffers holding one value everywhere."""
    def make(value: float, seconds: float, channels: int = 1, sr: int = TEST_RATE) -> PcmBuffer:
        frames = int(round(seconds * sr))
        return PcmBuffer.from_array(np.full((frames, channels), value, dtype=np.float32), sr)
    return make
