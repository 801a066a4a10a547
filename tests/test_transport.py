"""
Tests for the transport scheduler and the background ticker.
"""
import threading

import pytest
import numpy as np

from dinoaudio.core.config import PlaybackState, TransportMode
from dinoaudio.core.playback import PlaybackContext
from dinoaudio.core.selection import SelectionRange
from dinoaudio.core.track import AudioTrack
from dinoaudio.core.transport import Ticker, Transport, schedule_tracks


@pytest.fixture
def recorder():
    """Collects transport callbacks."""
    class Recorder:
        def __init__(self):
            self.positions = []
            self.states = []
    return Recorder()


@pytest.fixture
def transport(context, recorder):
    return Transport(
        context,
        on_position_changed=recorder.positions.append,
        on_state_changed=recorder.states.append
    )


@pytest.fixture
def editor(transport, ramp_buffer):
    """Editor transport over a 10 s buffer with a 2-8 s selection."""
    transport.set_editor_source(ramp_buffer, SelectionRange(2.0, 8.0))
    return transport


@pytest.fixture
def arrangement(constant_buffer):
    """Track A at 0-5 s and track B at 3-7 s."""
    a = AudioTrack(constant_buffer(0.1, 5.0), name="A", start_time=0.0)
    b = AudioTrack(constant_buffer(0.2, 4.0), name="B", start_time=3.0)
    return a, b


class TestScheduleTracks:

    def test_mid_arrangement(self, arrangement):
        a, b = arrangement
        sources = schedule_tracks([a, b], 4.0)
        assert [s.label for s in sources] == [a.id, b.id]
        assert sources[0].delay == 0.0
        assert sources[0].offset == pytest.approx(4.0)
        assert sources[1].delay == 0.0
        assert sources[1].offset == pytest.approx(1.0)

    def test_future_track_waits(self, arrangement):
        a, b = arrangement
        sources = schedule_tracks([a, b], 1.0)
        assert sources[1].delay == pytest.approx(2.0)
        assert sources[1].offset == 0.0

    def test_skips_finished_and_muted(self, arrangement):
        a, b = arrangement
        assert [s.label for s in schedule_tracks([a, b], 5.0)] == [b.id]
        assert schedule_tracks([a.updated(muted=True)], 0.0) == []

    def test_uses_track_volume(self, arrangement):
        a, _ = arrangement
        sources = schedule_tracks([a.updated(volume=0.4)], 0.0)
        assert sources[0].gain == pytest.approx(0.4)


class TestEditorTransport:

    def test_initial_state(self, transport):
        assert transport.state == PlaybackState.STOPPED
        assert transport.mode == TransportMode.EDITOR
        assert transport.position == 0.0
        assert not transport.play()

    def test_play_before_selection_starts_at_selection(self, editor):
        assert editor.play(0.0)
        assert editor.is_playing
        assert editor.position == 2.0

    def test_position_follows_clock(self, editor):
        editor.play(0.0)
        editor.context.advance(3.0)
        assert editor.tick() == pytest.approx(5.0)

    def test_stops_at_selection_end(self, editor, recorder):
        editor.play(0.0)
        editor.context.advance(6.5)
        assert editor.tick() == 8.0
        assert editor.state == PlaybackState.STOPPED
        assert recorder.states == [PlaybackState.PLAYING, PlaybackState.STOPPED]
        assert editor.context.active_voices == ()

    def test_plays_selected_audio(self, editor, ramp_buffer):
        editor.play(4.0)
        block = editor.context.render(1000)
        assert np.array_equal(block[:, 0], ramp_buffer.data[4000:5000, 0])

    def test_audio_ends_at_selection_end(self, editor):
        editor.play(7.5)
        block = editor.context.render(1000)
        assert block[499, 0] > 0
        assert not block[500:].any()

    def test_play_from_end_restarts_at_selection_start(self, editor):
        editor.play(9.0)
        assert editor.position == 2.0

    def test_play_inside_selection(self, editor):
        editor.play(3.5)
        assert editor.position == 3.5

    def test_pause_and_resume(self, editor):
        editor.play(2.0)
        editor.context.advance(1.0)
        editor.pause()
        assert editor.state == PlaybackState.PAUSED
        assert editor.position == pytest.approx(3.0)
        assert editor.context.active_voices == ()

        editor.context.advance(5.0)
        assert editor.tick() == pytest.approx(3.0)
        editor.play()
        assert editor.position == pytest.approx(3.0)
        assert editor.is_playing

    def test_toggle_play_pause(self, editor):
        editor.toggle_play_pause()
        assert editor.is_playing
        editor.toggle_play_pause()
        assert editor.state == PlaybackState.PAUSED

    def test_stop_resets_position(self, editor):
        editor.play(4.0)
        editor.stop()
        assert editor.state == PlaybackState.STOPPED
        assert editor.position == 0.0
        assert editor.context.active_voices == ()

    def test_seek_while_playing_restarts(self, editor):
        editor.play(2.0)
        editor.context.advance(1.0)
        editor.seek(6.0)
        assert editor.is_playing
        assert editor.position == 6.0
        assert len(editor.context.active_voices) == 1
        editor.context.advance(0.5)
        assert editor.tick() == pytest.approx(6.5)

    def test_seek_while_stopped(self, editor):
        editor.seek(-3.0)
        assert editor.position == 0.0
        editor.seek(5.0)
        assert editor.position == 5.0
        assert editor.state == PlaybackState.STOPPED

    def test_selection_change_moves_end(self, editor):
        editor.play(2.0)
        editor.set_selection(SelectionRange(2.0, 4.0))
        editor.context.advance(2.5)
        assert editor.tick() == 4.0
        assert editor.state == PlaybackState.STOPPED

    def test_volume_is_clamped_and_live(self, editor):
        editor.play(2.0)
        editor.set_volume(0.5)
        assert editor.context.active_voices[0].gain == 0.5
        editor.set_volume(5.0)
        assert editor.volume == 2.0
        editor.set_volume(-1.0)
        assert editor.volume == 0.0

    def test_new_source_halts_playback(self, editor, ramp_buffer):
        editor.play(2.0)
        editor.set_editor_source(ramp_buffer)
        assert editor.state == PlaybackState.STOPPED
        assert editor.selection == SelectionRange(0.0, 10.0)

    def test_callbacks_receive_positions(self, editor, recorder):
        editor.play(2.0)
        editor.context.advance(1.0)
        editor.tick()
        assert recorder.positions[0] == 2.0
        assert recorder.positions[-1] == pytest.approx(3.0)


class TestStudioTransport:

    def test_switching_mode_halts(self, editor, arrangement):
        editor.play(2.0)
        editor.set_track_source(arrangement)
        assert editor.mode == TransportMode.STUDIO
        assert editor.state == PlaybackState.STOPPED

    def test_plays_all_tracks(self, transport, arrangement):
        transport.set_track_source(arrangement)
        assert transport.play(4.0)
        assert len(transport.context.active_voices) == 2
        block = transport.context.render(500)
        assert np.allclose(block, 0.3)

    def test_future_track_enters_on_time(self, transport, arrangement):
        transport.set_track_source(arrangement)
        transport.play(2.0)
        block = transport.context.render(2000)
        assert np.allclose(block[:1000], 0.1)
        assert np.allclose(block[1000:], 0.3)

    def test_stops_at_arrangement_end(self, transport, arrangement):
        transport.set_track_source(arrangement)
        transport.play(0.0)
        transport.context.advance(7.2)
        assert transport.tick() == pytest.approx(7.0)
        assert transport.state == PlaybackState.STOPPED

    def test_play_from_end_restarts_at_zero(self, transport, arrangement):
        transport.set_track_source(arrangement)
        transport.play(7.0)
        assert transport.position == 0.0

    def test_no_tracks_does_not_play(self, transport):
        transport.set_track_source([])
        assert not transport.play()
        assert transport.state == PlaybackState.STOPPED

    def test_updating_tracks_keeps_playing(self, transport, arrangement):
        transport.set_track_source(arrangement)
        transport.play(0.0)
        transport.set_track_source(arrangement[:1])
        assert transport.is_playing


class TestTicker:

    def test_ticks_until_stopped(self):
        ticked = threading.Event()

        class FakeTransport:
            count = 0

            def tick(self):
                self.count += 1
                if self.count >= 3:
                    ticked.set()

        fake = FakeTransport()
        ticker = Ticker(fake, interval=0.001)
        ticker.start()
        assert ticker.is_running
        assert ticked.wait(timeout=2.0)
        ticker.stop()
        assert not ticker.is_running
        assert fake.count >= 3

    def test_survives_tick_errors(self):
        ticked = threading.Event()

        class FlakyTransport:
            count = 0

            def tick(self):
                self.count += 1
                if self.count == 1:
                    raise RuntimeError("boom")
                ticked.set()

        ticker = Ticker(FlakyTransport(), interval=0.001)
        ticker.start()
        assert ticked.wait(timeout=2.0)
        ticker.stop()


class TestConcurrentTick:
    """A tick on another thread and a restart on the caller's thread."""

    def test_play_waits_for_running_tick(self, ramp_buffer):
        entered = threading.Event()
        release = threading.Event()

        class GatedContext(PlaybackContext):
            """Holds clock reads made on the ticker thread until released."""

            def now(self):
                if threading.current_thread().name == "ticker":
                    entered.set()
                    release.wait(timeout=5.0)
                return super().now()

        context = GatedContext(sample_rate=1000)
        transport = Transport(context)
        transport.set_editor_source(ramp_buffer, SelectionRange(0.0, 1.0))
        transport.play()
        # Past the selection end: the pending tick will halt this session
        context.advance(2.0)

        ticker = threading.Thread(target=transport.tick, name="ticker")
        ticker.start()
        assert entered.wait(timeout=5.0)

        player = threading.Thread(target=transport.play, args=(0.5,), name="player")
        player.start()
        player.join(timeout=0.1)
        # play() is held while the tick owns the transport
        assert player.is_alive()

        release.set()
        ticker.join(timeout=5.0)
        player.join(timeout=5.0)
        assert not ticker.is_alive() and not player.is_alive()

        assert transport.state == PlaybackState.PLAYING
        assert transport.position == 0.5
        assert len(context.active_voices) == 1
        context.advance(0.25)
        assert transport.tick() == pytest.approx(0.75)

    def test_set_track_source_prepares_buffers(self, context, constant_buffer):
        track = AudioTrack(constant_buffer(0.5, 1.0, sr=2000), name="Hi-rate")
        transport = Transport(context)
        transport.set_track_source([track])
        prepared = context.prepare(track.buffer)
        assert prepared.sample_rate == context.sample_rate
        transport.play(0.0)
        assert context.active_voices[0].data is prepared.data
