"""
Playback context for the DinoAudio engine.

The context is the single owner of every sounding source. Starting a new
session replaces all active voices in one locked step, and the context's
frame counter is the monotonic clock the transport measures position with.
`PlaybackContext` renders on demand (offline, tests, export previews);
`DevicePlaybackContext` is pulled by a sounddevice output stream.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
import threading
from typing import Iterable, Optional
import weakref
import numpy as np

from .buffer import PcmBuffer
from .config import AUDIO_CONFIG
from .mixdown import mix_into
from .types import AudioArray

logger = logging.getLogger("DinoAudio")


@dataclass(frozen=True, slots=True)
class ScheduledSource:
    """
    Request to play part of a buffer.

    Attributes:
        buffer: Audio to play
        gain: Linear gain
        delay: Seconds after the session anchor before the source sounds
        offset: Seconds into the buffer where playback begins
        duration: Seconds to play (None = to the end of the buffer)
        label: Free-form tag (track id, "editor") for logging and lookups
    """
    buffer: PcmBuffer
    gain: float = 1.0
    delay: float = 0.0
    offset: float = 0.0
    duration: Optional[float] = None
    label: str = ""


class Voice:
    """An active source placed on the context timeline."""
    __slots__ = ('data', 'gain', 'start_frame', 'src_start', 'src_end', 'label')

    def __init__(self, data: AudioArray, gain: float, start_frame: int,
                 src_start: int, src_end: int, label: str = ""):
        self.data = data
        self.gain = gain
        self.start_frame = start_frame
        self.src_start = src_start
        self.src_end = src_end
        self.label = label

    @property
    def length(self) -> int:
        return self.src_end - self.src_start

    @property
    def end_frame(self) -> int:
        """Context frame after the voice's last sample."""
        return self.start_frame + self.length

    def __repr__(self) -> str:
        return f"Voice({self.label!r}, start={self.start_frame}, src={self.src_start}:{self.src_end}, gain={self.gain:.2f})"


class PlaybackContext:
    """
    Owns the active voices and the playback clock.
    Optimized for block rendering; safe to drive from an audio thread.
    """

    def __init__(self, sample_rate: int = AUDIO_CONFIG.default_samplerate) -> None:
        self._sample_rate = int(sample_rate)
        self._voices: list[Voice] = []
        self._frame: int = 0
        self._lock = threading.Lock()
        # Source buffer -> copy at the context rate
        self._resample_cache: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def frame(self) -> int:
        """Frames rendered since the context was created."""
        return self._frame

    @property
    def active_voices(self) -> tuple[Voice, ...]:
        with self._lock:
            return tuple(self._voices)

    def now(self) -> float:
        """Clock reading in seconds; only ever moves forward."""
        return self._frame / self._sample_rate

    def prepare(self, buffer: PcmBuffer) -> PcmBuffer:
        """
        Return the buffer at the context rate, resampling at most once per buffer.

        Call ahead of `start()` (e.g. when a source is loaded) so that
        starting and seeking never wait on a resample.
        """
        if buffer.sample_rate == self._sample_rate:
            return buffer
        cached = self._resample_cache.get(buffer)
        if cached is None:
            logger.debug("Resampling %r to %d Hz for playback", buffer, self._sample_rate)
            cached = buffer.resampled(self._sample_rate)
            self._resample_cache[buffer] = cached
        return cached

    def _make_voice(self, source: ScheduledSource) -> Optional[Voice]:
        """Builds a voice whose start_frame is relative to the session anchor."""
        sr = self._sample_rate
        buffer = self.prepare(source.buffer)
        src_start = min(max(round(source.offset * sr), 0), buffer.frame_count)
        src_end = buffer.frame_count
        if source.duration is not None:
            src_end = min(src_end, src_start + max(round(source.duration * sr), 0))
        if src_end <= src_start:
            return None
        delay_frames = max(round(source.delay * sr), 0)
        return Voice(buffer.data, source.gain, delay_frames, src_start, src_end, source.label)

    def start(self, sources: Iterable[ScheduledSource]) -> tuple[float, list[Voice]]:
        """
        Stop everything that is playing and schedule new sources.

        Voices are built before the lock is taken. Reading the anchor frame
        and swapping the voice list happen under one lock, so the audio
        thread never renders a mix of the old and new sessions.

        Returns:
            (anchor clock reading in seconds, the voices created)
        """
        voices = [v for v in (self._make_voice(s) for s in sources) if v is not None]
        with self._lock:
            stopped = len(self._voices)
            anchor_frame = self._frame
            for voice in voices:
                voice.start_frame += anchor_frame
            self._voices = list(voices)
        logger.debug("Context start: stopped %d voice(s), scheduled %d", stopped, len(voices))
        return anchor_frame / self._sample_rate, voices

    def stop_all(self) -> int:
        """Halt every active voice; returns how many were stopped."""
        with self._lock:
            stopped = len(self._voices)
            self._voices = []
        if stopped:
            logger.debug("Context stop_all: %d voice(s)", stopped)
        return stopped

    def render(self, frames: int) -> AudioArray:
        """
        Mix the next `frames` frames of all active voices and advance the clock.

        Voices whose last sample falls inside the block are retired.

        Returns:
            Stereo block, (frames, 2), unclipped
        """
        out = np.zeros((frames, 2), dtype=np.float32)
        with self._lock:
            block_start = self._frame
            block_end = block_start + frames
            for voice in self._voices:
                lo = max(voice.start_frame, block_start)
                hi = min(voice.end_frame, block_end)
                if hi <= lo:
                    continue
                mix_into(
                    out, voice.data,
                    out_start=lo - block_start,
                    src_start=voice.src_start + (lo - voice.start_frame),
                    length=hi - lo,
                    gain=voice.gain
                )
            self._voices = [v for v in self._voices if v.end_frame > block_end]
            self._frame = block_end
        return out

    def advance(self, seconds: float) -> AudioArray:
        """Render `seconds` worth of audio (rounded to whole frames)."""
        return self.render(max(round(seconds * self._sample_rate), 0))

    def close(self) -> None:
        self.stop_all()


class DevicePlaybackContext(PlaybackContext):
    """
    Playback context rendered by a sounddevice output stream.
    The stream is opened on first use and keeps running (outputting silence
    between sessions) so the clock stays continuous until `close()`.
    """

    def __init__(
        self,
        sample_rate: int = AUDIO_CONFIG.default_samplerate,
        blocksize: int = AUDIO_CONFIG.playback_blocksize
    ) -> None:
        super().__init__(sample_rate)
        self._blocksize = blocksize
        self._stream = None

    def _ensure_stream(self) -> None:
        if self._stream is not None:
            return
        import sounddevice as sd

        def playback_callback(outdata, frames, time, status) -> None:
            """Real-time audio callback."""
            try:
                if status and status.output_underflow:
                    logger.debug("Output underflow")
                block = self.render(frames)
                # Prevent digital clipping
                np.clip(block, -1.0, 1.0, out=outdata)
            except Exception as e:
                logger.error("Playback callback error: %s", e, exc_info=True)
                raise sd.CallbackStop()

        self._stream = sd.OutputStream(
            samplerate=self.sample_rate,
            channels=AUDIO_CONFIG.playback_channels,
            blocksize=self._blocksize,
            dtype='float32',
            callback=playback_callback
        )
        self._stream.start()
        logger.info("Output stream started at %d Hz", self.sample_rate)

    def start(self, sources: Iterable[ScheduledSource]) -> tuple[float, list[Voice]]:
        self._ensure_stream()
        return super().start(sources)

    def close(self) -> None:
        """Clean up resources."""
        super().close()
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.warning("Error stopping stream: %s", e)
            self._stream = None
