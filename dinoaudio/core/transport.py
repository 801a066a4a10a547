"""
Transport scheduler for the DinoAudio engine.
Drives single-buffer (editor) and multi-track (studio) playback against the
playback context's clock. Position is always derived from clock arithmetic,
never accumulated per tick, so tick frequency only affects smoothness.
"""
from __future__ import annotations
import logging
import threading
from typing import Iterable, Optional

from .buffer import PcmBuffer
from .config import AUDIO_CONFIG, PlaybackState, TransportMode
from .playback import PlaybackContext, ScheduledSource, Voice
from .selection import SelectionRange
from .track import AudioTrack
from .types import PositionCallback, StateCallback

logger = logging.getLogger("DinoAudio")


def schedule_tracks(tracks: Iterable[AudioTrack], position: float) -> list[ScheduledSource]:
    """
    Work out which tracks sound when playback starts at `position`.

    Muted tracks and tracks that end at or before the position are skipped.
    A track starting later waits `start_time - position` seconds and plays
    from its beginning; a track already under way starts immediately from
    `position - start_time` into its buffer.

    Args:
        tracks: Track snapshot
        position: Timeline position in seconds

    Returns:
        One ScheduledSource per audible track, labelled with the track id
    """
    sources = []
    for track in tracks:
        if track.muted or track.end_time <= position:
            continue
        if track.start_time >= position:
            delay, offset = track.start_time - position, 0.0
        else:
            delay, offset = 0.0, position - track.start_time
        sources.append(ScheduledSource(
            buffer=track.buffer, gain=track.volume, delay=delay, offset=offset, label=track.id
        ))
    return sources


class Transport:
    """
    Playback state machine: STOPPED, PLAYING, PAUSED.
    Only one session is ever active; every (re)start replaces all voices in
    the context atomically.

    Public methods hold one re-entrant lock, so a Ticker thread and the
    caller's thread never interleave updates to the anchors and state.
    """
    __slots__ = (
        '_context', '_mode', '_buffer', '_selection', '_tracks', '_volume',
        '_state', '_position', '_anchor_time', '_anchor_position', '_end_position',
        '_editor_voice', '_on_position_changed', '_on_state_changed', '_lock'
    )

    def __init__(
        self,
        context: PlaybackContext,
        on_position_changed: Optional[PositionCallback] = None,
        on_state_changed: Optional[StateCallback] = None
    ) -> None:
        """
        Initialize the transport.

        Args:
            context: Playback context that owns voices and the clock
            on_position_changed: Callback for position updates (seconds)
            on_state_changed: Callback for state changes
        """
        self._context = context
        self._mode = TransportMode.EDITOR
        self._buffer: Optional[PcmBuffer] = None
        self._selection: Optional[SelectionRange] = None
        self._tracks: tuple[AudioTrack, ...] = ()
        self._volume = AUDIO_CONFIG.default_volume
        self._state = PlaybackState.STOPPED
        self._position = 0.0
        self._anchor_time = 0.0
        self._anchor_position = 0.0
        self._end_position = 0.0
        self._editor_voice: Optional[Voice] = None
        self._on_position_changed = on_position_changed
        self._on_state_changed = on_state_changed
        self._lock = threading.RLock()

    # --- State ---

    @property
    def context(self) -> PlaybackContext:
        return self._context

    @property
    def mode(self) -> TransportMode:
        return self._mode

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state == PlaybackState.PLAYING

    @property
    def position(self) -> float:
        """Last published (or frozen) position in seconds."""
        return self._position

    @property
    def selection(self) -> Optional[SelectionRange]:
        return self._selection

    @property
    def volume(self) -> float:
        return self._volume

    def _set_state(self, state: PlaybackState) -> None:
        if self._state != state:
            self._state = state
            if self._on_state_changed:
                self._on_state_changed(state)

    def _publish(self, position: float) -> None:
        self._position = position
        if self._on_position_changed:
            self._on_position_changed(position)

    def _elapsed_position(self) -> float:
        return self._anchor_position + (self._context.now() - self._anchor_time)

    def _halt(self) -> None:
        """Stop all sources and drop to STOPPED, keeping the position."""
        self._context.stop_all()
        self._editor_voice = None
        self._set_state(PlaybackState.STOPPED)

    # --- Sources ---

    def set_editor_source(self, buffer: Optional[PcmBuffer], selection: Optional[SelectionRange] = None) -> None:
        """Play a single buffer, bounded by the selection (whole buffer by default)."""
        if buffer is not None:
            self._context.prepare(buffer)
        with self._lock:
            self._halt()
            self._mode = TransportMode.EDITOR
            self._buffer = buffer
            if buffer is None:
                self._selection = None
            else:
                self._selection = selection if selection is not None else SelectionRange.full(buffer)

    def set_selection(self, selection: SelectionRange) -> None:
        """Change the editor playback window; takes effect on the next tick."""
        with self._lock:
            self._selection = selection
            if self._mode == TransportMode.EDITOR and self.is_playing:
                self._end_position = selection.end

    def set_track_source(self, tracks: Iterable[AudioTrack]) -> None:
        """Play a multi-track arrangement; switching into studio mode stops playback."""
        tracks = tuple(tracks)
        for track in tracks:
            self._context.prepare(track.buffer)
        with self._lock:
            if self._mode != TransportMode.STUDIO:
                self._halt()
                self._mode = TransportMode.STUDIO
            self._tracks = tracks

    def set_volume(self, volume: float) -> None:
        """Editor master volume, applied live to the sounding editor voice."""
        with self._lock:
            self._volume = min(max(float(volume), 0.0), AUDIO_CONFIG.max_volume)
            if self._editor_voice is not None:
                self._editor_voice.gain = self._volume

    # --- Session planning ---

    def _plan_editor(self, from_position: float) -> Optional[tuple[float, float, list[ScheduledSource]]]:
        sel = self._selection
        if self._buffer is None or sel is None or sel.is_empty:
            return None
        offset = sel.start if from_position >= sel.end else max(sel.start, from_position)
        source = ScheduledSource(
            buffer=self._buffer, gain=self._volume, offset=offset,
            duration=sel.end - offset, label="editor"
        )
        return offset, sel.end, [source]

    def _plan_studio(self, from_position: float) -> Optional[tuple[float, float, list[ScheduledSource]]]:
        if not self._tracks:
            return None
        end = max(t.end_time for t in self._tracks)
        offset = 0.0 if from_position >= end else max(from_position, 0.0)
        return offset, end, schedule_tracks(self._tracks, offset)

    # --- Transport controls ---

    def play(self, from_position: Optional[float] = None) -> bool:
        """
        Start (or restart) playback.

        Args:
            from_position: Where to start in seconds (default: current position)

        Returns:
            True if a session was started
        """
        with self._lock:
            if from_position is None:
                from_position = self._position

            if self._mode == TransportMode.EDITOR:
                plan = self._plan_editor(from_position)
            else:
                plan = self._plan_studio(from_position)
            if plan is None:
                logger.debug("Nothing to play in %s mode", self._mode.name)
                return False

            offset, end, sources = plan
            anchor, voices = self._context.start(sources)
            self._editor_voice = voices[0] if self._mode == TransportMode.EDITOR and voices else None
            self._anchor_time = anchor
            self._anchor_position = offset
            self._end_position = end
            self._set_state(PlaybackState.PLAYING)
            self._publish(offset)
        logger.info("Playback started at %.3fs (%s, %d source(s))", offset, self._mode.name, len(voices))
        return True

    def tick(self) -> float:
        """
        Recompute the position from the clock and publish it.
        Reaching the end of the selection (editor) or of the arrangement
        (studio) stops playback there.

        Returns:
            Current position in seconds
        """
        with self._lock:
            if not self.is_playing:
                return self._position

            position = self._elapsed_position()
            if position >= self._end_position:
                self._halt()
                self._publish(self._end_position)
                logger.info("Playback reached end at %.3fs", self._end_position)
            else:
                self._publish(position)
            return self._position

    def pause(self) -> None:
        """Pause playback (keep position)."""
        with self._lock:
            if not self.is_playing:
                return
            self._context.stop_all()
            self._editor_voice = None
            position = min(self._elapsed_position(), self._end_position)
            self._set_state(PlaybackState.PAUSED)
            self._publish(position)
        logger.info("Playback paused at %.3fs", position)

    def stop(self) -> None:
        """Stop playback and reset position."""
        with self._lock:
            self._halt()
            self._publish(0.0)
        logger.info("Playback stopped")

    def seek(self, time: float) -> None:
        """
        Move the playhead.

        While playing, all sources are replaced by a new session starting at
        the target; otherwise the frozen position is updated.

        Args:
            time: Target position in seconds (negative values clamp to 0)
        """
        time = max(0.0, float(time))
        with self._lock:
            if self.is_playing:
                if not self.play(time):
                    self._halt()
                    self._publish(time)
            else:
                self._publish(time)

    def toggle_play_pause(self) -> None:
        """Toggle between play and pause states."""
        with self._lock:
            if self.is_playing:
                self.pause()
            else:
                self.play()


class Ticker:
    """
    Background thread that ticks a transport at a fixed interval.
    Stands in for a UI render loop when the engine runs headless.
    """

    def __init__(self, transport: Transport, interval: float = AUDIO_CONFIG.tick_interval) -> None:
        self._transport = transport
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="dinoaudio-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._transport.tick()
            except Exception as e:
                logger.error("Transport tick failed: %s", e, exc_info=True)
