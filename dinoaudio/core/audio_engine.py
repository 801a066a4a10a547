from __future__ import annotations
import os
from typing import Optional

from dinoaudio.core import codec, effects
from dinoaudio.core.buffer import PcmBuffer
from dinoaudio.core.config import EFFECTS_CONFIG, PlaybackState, TransportMode
from dinoaudio.core.errors import AudioEngineError, InvalidFadeDuration
from dinoaudio.core.history import HistoryManager
from dinoaudio.core.mixdown import render_mix
from dinoaudio.core.playback import DevicePlaybackContext, PlaybackContext
from dinoaudio.core.project import Project
from dinoaudio.core.selection import SelectionRange
from dinoaudio.core.track import AudioTrack
from dinoaudio.core.transport import Transport
from dinoaudio.core.types import AudioSource, ErrorCallback, PositionCallback, StateCallback
from dinoaudio.core.waveform import downsample_peaks
from dinoaudio.utils.logger import logger


class AudioEngine:
    """
    Core engine for editing, playback, multi-track arrangement and export.
    Owns the undo history, the multi-track project and the transport; UI
    layers talk to it through plain method calls and callbacks.
    """

    def __init__(
        self,
        context: Optional[PlaybackContext] = None,
        on_position_changed: Optional[PositionCallback] = None,
        on_state_changed: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None
    ):
        self.context = context if context is not None else DevicePlaybackContext()
        self.transport = Transport(self.context, on_position_changed, on_state_changed)
        self.history = HistoryManager()
        self.project = Project()
        self.source_name: Optional[str] = None
        self.last_error: Optional[str] = None
        self._selection: Optional[SelectionRange] = None
        self._on_error = on_error
        logger.info("AudioEngine initialized")

    # --- Error reporting ---

    def _fail(self, action: str, error: Exception) -> None:
        """Records one human-readable message for a failed operation."""
        self.last_error = str(error)
        logger.error(f"{action} failed: {error}")
        if self._on_error:
            self._on_error(self.last_error)

    # --- Editor: source & selection ---

    @property
    def current_buffer(self) -> Optional[PcmBuffer]:
        return self.history.current

    @property
    def selection(self) -> Optional[SelectionRange]:
        return self._selection

    def load_file(self, source: AudioSource, name: Optional[str] = None) -> bool:
        """Decodes a file into the editor, discarding the previous history."""
        self.last_error = None
        self._reset_editor()
        self.source_name = name or (os.path.basename(source) if isinstance(source, (str, os.PathLike)) else None)
        logger.info(f"Loading file: {self.source_name or '<memory>'}")
        try:
            buffer = codec.decode_audio(source)
        except AudioEngineError as e:
            self._fail("Load", e)
            return False
        self.load_buffer(buffer)
        return True

    def load_buffer(self, buffer: PcmBuffer) -> None:
        """Starts a fresh editing session on an already decoded buffer."""
        self._reset_editor()
        self.history.commit(buffer)
        self._selection = SelectionRange.full(buffer)
        self._refresh_editor_source()

    def _reset_editor(self) -> None:
        """Drops the editing session; studio playback is left alone."""
        self.history.clear()
        self._selection = None
        if self.transport.mode == TransportMode.EDITOR:
            self.transport.stop()
            self.transport.set_editor_source(None)

    def set_selection(self, start: float, end: float) -> Optional[SelectionRange]:
        """Sets the selection, clamped to the current buffer."""
        buffer = self.current_buffer
        if buffer is None:
            return None
        self._selection = SelectionRange(start, end).clamped(buffer.duration)
        if self.transport.mode == TransportMode.EDITOR:
            self.transport.set_selection(self._selection)
        return self._selection

    def _refresh_editor_source(self) -> None:
        """Points editor playback at the current snapshot."""
        if self.transport.mode != TransportMode.EDITOR:
            return
        was_playing = self.transport.is_playing
        position = self.transport.tick() if was_playing else self.transport.position
        self.transport.set_editor_source(self.current_buffer, self._selection)
        if was_playing:
            self.transport.play(position)
        else:
            self.transport.seek(position)

    # --- Editor: effects & history ---

    def apply_effect(self, effect: effects.Effect) -> bool:
        """Applies an effect to the selection and commits the result."""
        self.last_error = None
        buffer = self.current_buffer
        if buffer is None or self._selection is None:
            self._fail("Effect", AudioEngineError("No audio loaded."))
            return False

        result = effects.apply(effect, buffer, self._selection)
        if not result.success:
            self._fail(effect.label, AudioEngineError(result.error))
            return False
        if result.warning:
            logger.warning(result.warning)

        self.history.commit(result.buffer)
        if isinstance(effect, effects.Trim):
            self._selection = SelectionRange.full(result.buffer)
        else:
            self._selection = self._selection.clamped(result.buffer.duration)
        self._refresh_editor_source()
        return True

    def apply_fade(self, direction: str, duration: float = EFFECTS_CONFIG.fade_duration) -> bool:
        """
        Fade the selection in or out.
        The fade never runs longer than the selection; selections shorter
        than the minimum fade are refused.
        """
        self.last_error = None
        if self._selection is None:
            self._fail("Fade", AudioEngineError("No audio loaded."))
            return False
        actual = min(duration, self._selection.length)
        if actual < EFFECTS_CONFIG.min_fade_duration:
            self._fail("Fade", InvalidFadeDuration("Selection is too short for a fade."))
            return False
        if direction == 'in':
            return self.apply_effect(effects.FadeIn(actual))
        if direction == 'out':
            return self.apply_effect(effects.FadeOut(actual))
        raise ValueError(f"Unknown fade direction: {direction!r}")

    def _after_history_move(self) -> None:
        self._selection = self._selection.clamped(self.current_buffer.duration)
        self._refresh_editor_source()

    def undo(self) -> bool:
        if self.history.undo() is None:
            return False
        self._after_history_move()
        return True

    def redo(self) -> bool:
        if self.history.redo() is None:
            return False
        self._after_history_move()
        return True

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def export_selection(self) -> Optional[bytes]:
        """Encodes the selected region of the current buffer as WAV bytes."""
        self.last_error = None
        if self.current_buffer is None or self._selection is None:
            self._fail("Export", AudioEngineError("No audio loaded."))
            return None
        result = effects.apply(effects.Trim(), self.current_buffer, self._selection)
        if not result.success:
            self._fail("Export", AudioEngineError(result.error))
            return None
        return codec.encode_wav(result.buffer)

    def peaks(self, bucket_count: int) -> Optional[list[float]]:
        """Waveform overview of the current buffer."""
        if self.current_buffer is None:
            return None
        return downsample_peaks(self.current_buffer, bucket_count).tolist()

    # --- Studio: tracks ---

    def _sync_tracks(self) -> None:
        """Hands the new track snapshot to the transport; restarts a running studio session."""
        if self.transport.mode != TransportMode.STUDIO:
            return
        self.transport.set_track_source(self.project.tracks)
        if self.transport.is_playing:
            self.transport.seek(self.transport.tick())

    def add_track_file(self, source: AudioSource, name: Optional[str] = None) -> Optional[AudioTrack]:
        """Decodes a file and appends it as a new track."""
        self.last_error = None
        if name is None:
            name = os.path.basename(source) if isinstance(source, (str, os.PathLike)) else "Track"
        try:
            # Match project samplerate if tracks exist, else adopt file's rate
            target_sr = self.project.sample_rate if len(self.project) else None
            buffer = codec.decode_audio(source, sample_rate=target_sr)
        except AudioEngineError as e:
            self._fail("Add track", e)
            return None
        return self.add_track(buffer, name)

    def add_track(self, buffer: PcmBuffer, name: str = "Track") -> AudioTrack:
        track = self.project.add_track(buffer, name)
        self._sync_tracks()
        return track

    def remove_track(self, track_id: str) -> bool:
        self.last_error = None
        try:
            self.project.remove_track(track_id)
        except AudioEngineError as e:
            self._fail("Remove track", e)
            return False
        self._sync_tracks()
        return True

    def update_track(self, track_id: str, **changes) -> Optional[AudioTrack]:
        """Changes start_time, volume and/or muted of one track."""
        self.last_error = None
        try:
            track = self.project.update_track(track_id, **changes)
        except AudioEngineError as e:
            self._fail("Update track", e)
            return None
        self._sync_tracks()
        return track

    def render_mix(self) -> Optional[PcmBuffer]:
        self.last_error = None
        try:
            return render_mix(self.project.tracks, self.project.sample_rate)
        except AudioEngineError as e:
            self._fail("Mixdown", e)
            return None

    def export_mix(self) -> Optional[bytes]:
        """Renders all tracks and encodes the mix as WAV bytes."""
        mix = self.render_mix()
        if mix is None:
            return None
        return codec.encode_wav(mix)

    # --- Playback Control ---

    @property
    def mode(self) -> TransportMode:
        return self.transport.mode

    def set_mode(self, mode: TransportMode) -> None:
        """Switches between editor and studio playback; always stops playback."""
        if mode == TransportMode.STUDIO:
            self.transport.set_track_source(self.project.tracks)
        else:
            self.transport.set_editor_source(self.current_buffer, self._selection)
        self.transport.stop()
        logger.info(f"Mode: {mode.name}")

    @property
    def state(self) -> PlaybackState:
        return self.transport.state

    @property
    def position(self) -> float:
        return self.transport.position

    @property
    def volume(self) -> float:
        return self.transport.volume

    def set_volume(self, volume: float) -> None:
        self.transport.set_volume(volume)

    def play(self) -> bool:
        return self.transport.play()

    def pause(self) -> None:
        self.transport.pause()

    def stop(self) -> None:
        self.transport.stop()

    def toggle_play_pause(self) -> None:
        self.transport.toggle_play_pause()

    def seek(self, time: float) -> None:
        self.transport.seek(time)

    def tick(self) -> float:
        return self.transport.tick()

    def close(self) -> None:
        """Stops playback and releases the output device."""
        self.transport.stop()
        self.context.close()
        logger.info("AudioEngine closed")
