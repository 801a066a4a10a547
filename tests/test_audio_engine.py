"""
Tests for the AudioEngine facade.
"""
import pytest
import numpy as np

from dinoaudio.core.audio_engine import AudioEngine
from dinoaudio.core.codec import encode_wav
from dinoaudio.core.config import PlaybackState, TransportMode
from dinoaudio.core.effects import Normalize, StudioEffect, Trim
from dinoaudio.core.selection import SelectionRange


@pytest.fixture
def errors():
    return []


@pytest.fixture
def engine(context, errors):
    engine = AudioEngine(context=context, on_error=errors.append)
    yield engine
    engine.close()


@pytest.fixture
def loaded(engine, ramp_buffer):
    engine.load_buffer(ramp_buffer)
    return engine


class TestEditing:

    def test_load_buffer(self, loaded, ramp_buffer):
        assert loaded.current_buffer is ramp_buffer
        assert loaded.selection == SelectionRange(0.0, 10.0)
        assert not loaded.can_undo
        assert loaded.state == PlaybackState.STOPPED

    def test_load_file_bytes(self, engine, constant_buffer):
        assert engine.load_file(encode_wav(constant_buffer(0.5, 1.0)), name="clip.wav")
        assert engine.source_name == "clip.wav"
        assert engine.current_buffer.frame_count == 1000
        assert np.allclose(engine.current_buffer.data, 0.5, atol=1e-4)

    def test_load_file_path(self, engine, tmp_path, constant_buffer):
        path = tmp_path / "take.wav"
        path.write_bytes(encode_wav(constant_buffer(0.5, 1.0)))
        assert engine.load_file(str(path))
        assert engine.source_name == "take.wav"

    def test_load_garbage_reports_error(self, loaded, errors):
        assert not loaded.load_file(b"not audio at all" * 8)
        assert loaded.last_error == "Could not decode the audio file."
        assert errors == ["Could not decode the audio file."]
        assert loaded.current_buffer is None
        assert loaded.peaks(10) is None

    def test_set_selection_clamps(self, loaded):
        assert loaded.set_selection(-1.0, 20.0) == SelectionRange(0.0, 10.0)
        assert loaded.set_selection(6.0, 3.0) == SelectionRange(3.0, 6.0)

    def test_set_selection_without_audio(self, engine):
        assert engine.set_selection(0.0, 1.0) is None

    def test_effect_commits_and_undo_redo(self, loaded, ramp_buffer):
        loaded.set_selection(0.0, 5.0)
        assert loaded.apply_effect(Normalize())
        assert loaded.can_undo
        normalized = loaded.current_buffer
        assert np.isclose(normalized.channel(0)[4999], 1.0)

        assert loaded.undo()
        assert loaded.current_buffer is ramp_buffer
        assert loaded.can_redo
        assert loaded.redo()
        assert loaded.current_buffer is normalized
        assert not loaded.redo()

    def test_trim_resets_selection(self, loaded):
        loaded.set_selection(2.0, 4.0)
        assert loaded.apply_effect(Trim())
        assert loaded.current_buffer.frame_count == 2000
        assert loaded.selection == SelectionRange(0.0, 2.0)

    def test_undo_clamps_selection(self, loaded):
        loaded.set_selection(2.0, 4.0)
        loaded.apply_effect(Trim())
        loaded.undo()
        assert loaded.selection == SelectionRange(0.0, 2.0)

    def test_empty_selection_effect_fails(self, loaded, errors):
        loaded.set_selection(3.0, 3.0)
        assert not loaded.apply_effect(Trim())
        assert errors == ["Invalid trim range. End time must be after start time."]
        assert not loaded.can_undo

    def test_effect_without_audio(self, engine):
        assert not engine.apply_effect(StudioEffect())
        assert engine.last_error == "No audio loaded."

    def test_fade_is_limited_to_selection(self, loaded, constant_buffer):
        loaded.load_buffer(constant_buffer(1.0, 10.0))
        loaded.set_selection(2.0, 3.0)
        assert loaded.apply_fade('in', 5.0)
        ch = loaded.current_buffer.channel(0)
        assert ch[2000] == 0.0
        assert np.isclose(ch[2999], 0.999)
        assert ch[3000] == 1.0

    def test_fade_out(self, loaded, constant_buffer):
        loaded.load_buffer(constant_buffer(1.0, 10.0))
        loaded.set_selection(2.0, 8.0)
        assert loaded.apply_fade('out', 1.0)
        ch = loaded.current_buffer.channel(0)
        assert ch[6999] == 1.0
        assert ch[7000] == 1.0
        assert np.isclose(ch[7999], 0.001)

    def test_fade_on_short_selection_fails(self, loaded, errors):
        loaded.set_selection(1.0, 1.05)
        assert not loaded.apply_fade('in')
        assert errors == ["Selection is too short for a fade."]

    def test_fade_unknown_direction(self, loaded):
        with pytest.raises(ValueError):
            loaded.apply_fade('sideways')

    def test_export_selection(self, loaded):
        loaded.set_selection(2.0, 4.0)
        payload = loaded.export_selection()
        assert payload[:4] == b'RIFF'
        assert len(payload) == 44 + 2000 * 2

    def test_export_without_audio(self, engine):
        assert engine.export_selection() is None

    def test_peaks(self, loaded):
        peaks = loaded.peaks(100)
        assert isinstance(peaks, list)
        assert len(peaks) == 100
        assert peaks[0] < peaks[-1]


class TestEditorPlayback:

    def test_play_and_tick(self, loaded):
        loaded.set_selection(2.0, 8.0)
        assert loaded.play()
        assert loaded.position == 2.0
        loaded.context.advance(1.0)
        assert loaded.tick() == pytest.approx(3.0)

    def test_effect_while_playing_continues(self, loaded):
        loaded.play()
        loaded.context.advance(1.0)
        assert loaded.apply_effect(Normalize())
        assert loaded.state == PlaybackState.PLAYING
        assert loaded.position == pytest.approx(1.0)
        assert len(loaded.context.active_voices) == 1

    def test_pause_stop_seek(self, loaded):
        loaded.play()
        loaded.context.advance(1.5)
        loaded.pause()
        assert loaded.state == PlaybackState.PAUSED
        assert loaded.position == pytest.approx(1.5)
        loaded.seek(4.0)
        assert loaded.position == 4.0
        loaded.stop()
        assert loaded.position == 0.0

    def test_toggle(self, loaded):
        loaded.toggle_play_pause()
        assert loaded.state == PlaybackState.PLAYING
        loaded.toggle_play_pause()
        assert loaded.state == PlaybackState.PAUSED

    def test_volume(self, loaded):
        loaded.set_volume(3.0)
        assert loaded.volume == 2.0

    def test_load_stops_playback(self, loaded, ramp_buffer):
        loaded.play()
        loaded.load_buffer(ramp_buffer)
        assert loaded.state == PlaybackState.STOPPED
        assert loaded.position == 0.0


class TestStudio:

    def test_add_update_remove(self, engine, constant_buffer):
        track = engine.add_track(constant_buffer(0.5, 1.0), "Drums")
        moved = engine.update_track(track.id, start_time=2.0, volume=0.5)
        assert moved.id == track.id
        assert engine.project.duration == pytest.approx(3.0)
        assert engine.remove_track(track.id)
        assert len(engine.project) == 0

    def test_unknown_track_reports_error(self, engine, errors):
        assert engine.update_track("nope", volume=0.5) is None
        assert not engine.remove_track("nope")
        assert len(errors) == 2

    def test_add_track_file(self, engine, constant_buffer):
        track = engine.add_track_file(encode_wav(constant_buffer(0.5, 1.0)), name="Bass")
        assert track.name == "Bass"
        assert engine.project.sample_rate == 1000

    def test_add_bad_file(self, engine):
        assert engine.add_track_file(b"junk" * 20) is None
        assert engine.last_error == "Could not decode the audio file."

    def test_render_mix(self, engine, constant_buffer):
        engine.add_track(constant_buffer(0.5, 1.0))
        b = engine.add_track(constant_buffer(0.25, 1.0))
        engine.update_track(b.id, start_time=1.0)
        mix = engine.render_mix()
        assert mix.frame_count == 2500
        assert np.allclose(mix.channel(0)[:1000], 0.5)
        assert np.allclose(mix.channel(0)[1000:2000], 0.25)

    def test_export_mix(self, engine, constant_buffer):
        engine.add_track(constant_buffer(0.5, 1.0))
        payload = engine.export_mix()
        assert len(payload) == 44 + 1500 * 4

    def test_empty_mix(self, engine, errors):
        assert engine.render_mix() is None
        assert engine.export_mix() is None
        assert errors[0] == "No tracks to render."

    def test_studio_playback(self, engine, constant_buffer):
        engine.add_track(constant_buffer(0.5, 1.0))
        engine.set_mode(TransportMode.STUDIO)
        assert engine.mode == TransportMode.STUDIO
        assert engine.play()
        assert np.allclose(engine.context.render(100), 0.5)

    def test_track_edit_while_playing_restarts(self, engine, constant_buffer):
        track = engine.add_track(constant_buffer(0.5, 2.0))
        engine.set_mode(TransportMode.STUDIO)
        engine.play()
        engine.context.advance(0.5)
        engine.update_track(track.id, volume=0.5)
        assert engine.state == PlaybackState.PLAYING
        assert engine.position == pytest.approx(0.5)
        assert engine.context.active_voices[0].gain == 0.5

    def test_mode_switch_stops(self, loaded, constant_buffer):
        loaded.add_track(constant_buffer(0.5, 1.0))
        loaded.play()
        loaded.set_mode(TransportMode.STUDIO)
        assert loaded.state == PlaybackState.STOPPED
        loaded.set_mode(TransportMode.EDITOR)
        assert loaded.mode == TransportMode.EDITOR
        assert loaded.play()
