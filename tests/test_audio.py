import random

import pytest
from PIL import Image

from tunedeck.audio import (
    COVER_ART_IMAGE,
    THUMBNAIL_IMAGE,
    AudioController,
    MediaPlayer,
    MediaStatus,
    PlaybackState,
    PlayingMode,
)


def make_ctrl(**kwargs):
    return AudioController(run_in_background=lambda task: None, **kwargs)


def fill(ctrl, count):
    ctrl.model.append_songs(
        {
            "path": f"/music/{i}.mp3",
            "title": f"T{i}",
            "artist": f"A{i}",
            "album": f"B{i}",
        }
        for i in range(count)
    )


def record(signal):
    calls = []
    signal.connect(lambda *args: calls.append(args))
    return calls


def test_song_index_defaults_to_zero():
    ctrl = make_ctrl()
    assert ctrl.song_index == 0
    assert ctrl.history == []
    assert ctrl.mode == PlayingMode.SHUFFLE


def test_setting_song_index_loads_song():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    changed = record(ctrl.song_index_changed)
    titles = record(ctrl.title_changed)
    ctrl.song_index = 2
    assert ctrl.song_index == 2
    assert ctrl.title == "T2 - A2"
    assert ctrl.content == "/music/2.mp3"
    assert ctrl.player.source == "/music/2.mp3"
    assert len(changed) == 1
    assert len(titles) == 1


def test_next_in_line_advances_and_plays():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.mode = PlayingMode.NEXT
    ctrl.song_index = 0
    ctrl.next()
    assert ctrl.song_index == 1
    assert ctrl.title == "T1 - A1"
    assert ctrl.is_playing


def test_next_in_line_stops_at_end():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.mode = PlayingMode.NEXT
    ctrl.song_index = 2
    ctrl.next()
    assert ctrl.song_index == 2
    assert ctrl.history == [2]


def test_previous_then_next_walks_history():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.song_index = 0
    ctrl.song_index = 2
    ctrl.previous()
    assert ctrl.song_index == 0
    assert ctrl.is_playing
    ctrl.next()
    assert ctrl.song_index == 2
    assert ctrl.history == [0, 2]


def test_previous_at_oldest_song_stays():
    ctrl = make_ctrl()
    fill(ctrl, 2)
    ctrl.song_index = 1
    ctrl.previous()
    ctrl.previous()
    assert ctrl.song_index == 1


def test_previous_without_history_does_not_fail():
    ctrl = make_ctrl()
    ctrl.previous()
    assert ctrl.song_index == 0
    assert not ctrl.is_playing


def test_loop_mode_replays_same_song():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.mode = PlayingMode.LOOP
    ctrl.song_index = 1
    ctrl.next()
    assert ctrl.song_index == 1
    assert ctrl.is_playing


def test_unique_mode_does_nothing():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.mode = PlayingMode.UNIQUE
    ctrl.song_index = 1
    ctrl.next()
    assert ctrl.history == [1]
    assert not ctrl.is_playing


def test_shuffle_picks_song_in_library():
    ctrl = make_ctrl(rng=random.Random(3))
    fill(ctrl, 5)
    for _ in range(10):
        ctrl.next()
        assert 0 <= ctrl.song_index < 5
    assert len(ctrl.history) == 10
    assert ctrl.is_playing


def test_shuffle_respects_tag_filter():
    ctrl = make_ctrl(rng=random.Random(7))
    fill(ctrl, 5)
    ctrl.model.select([3])
    ctrl.add_tag("rock")
    ctrl.filtered_tag_model.add_tag("rock")
    for _ in range(5):
        ctrl.next()
        assert ctrl.song_index == 3


def test_shuffle_on_empty_library():
    ctrl = make_ctrl()
    ctrl.next()
    assert ctrl.history == []
    assert not ctrl.is_playing


def test_end_of_media_moves_to_next_song():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.mode = PlayingMode.NEXT
    ctrl.song_index = 0
    playing = record(ctrl.playing_changed)
    ctrl.player.set_media_status(MediaStatus.END_OF_MEDIA)
    assert ctrl.song_index == 1
    assert playing


def test_mode_setter_emits_only_on_change():
    ctrl = make_ctrl()
    calls = record(ctrl.mode_changed)
    ctrl.mode = PlayingMode.SHUFFLE
    assert calls == []
    ctrl.mode = PlayingMode.LOOP
    assert ctrl.mode == PlayingMode.LOOP
    assert len(calls) == 1


def test_state_changed_is_forwarded():
    ctrl = make_ctrl()
    fill(ctrl, 1)
    states = record(ctrl.state_changed)
    ctrl.play()
    assert states == [(PlaybackState.PLAYING,)]
    ctrl.pause()
    assert states[-1] == (PlaybackState.PAUSED,)


def test_play_loads_current_song_when_no_content():
    ctrl = make_ctrl()
    fill(ctrl, 2)
    ctrl.play()
    assert ctrl.content == "/music/0.mp3"
    assert ctrl.is_playing


def test_device_index():
    ctrl = make_ctrl(outputs=["speakers", "headset"])
    assert ctrl.device_index == 0
    assert ctrl.devices.device_list == ["speakers", "headset"]
    calls = record(ctrl.device_index_changed)
    ctrl.device_index = 1
    assert ctrl.device_index == 1
    assert ctrl.player.audio_device == "headset"
    ctrl.device_index = 5
    ctrl.device_index = -1
    ctrl.device_index = 1
    assert ctrl.device_index == 1
    assert len(calls) == 1


def test_default_output_selects_index():
    ctrl = make_ctrl(outputs=["speakers", "headset"], default_output="headset")
    assert ctrl.device_index == 1
    assert make_ctrl().device_index == -1


def test_update_audio_devices_replaces_list():
    ctrl = make_ctrl(outputs=["speakers"])
    ctrl.update_audio_devices(["hdmi", "usb"])
    assert ctrl.devices.device_list == ["hdmi", "usb"]
    ctrl.device_index = 1
    assert ctrl.player.audio_device == "usb"


def test_song_image_key_and_known_image():
    ctrl = make_ctrl()
    fill(ctrl, 2)
    ctrl.song_index = 1
    assert ctrl.song_image() == "A1-B1"
    ctrl.model.images["A1-B1"] = Image.new("RGB", (2, 2))
    assert ctrl.song_image() == ""


def test_cover_art_from_metadata():
    ctrl = make_ctrl()
    fill(ctrl, 1)
    ctrl.song_index = 0
    art = record(ctrl.album_art_changed)
    cover = Image.new("RGB", (4, 4))
    ctrl.player.set_metadata({COVER_ART_IMAGE: cover})
    assert ctrl.album_art == ctrl.title
    assert ctrl.picture_provider.current_image is cover
    assert art


def test_thumbnail_used_when_no_cover():
    ctrl = make_ctrl()
    fill(ctrl, 1)
    ctrl.song_index = 0
    thumb = Image.new("RGB", (3, 3))
    ctrl.player.set_metadata({THUMBNAIL_IMAGE: thumb})
    assert ctrl.picture_provider.current_image is thumb


def test_metadata_without_image_clears_art():
    ctrl = make_ctrl()
    fill(ctrl, 1)
    ctrl.song_index = 0
    ctrl.player.set_metadata({COVER_ART_IMAGE: Image.new("RGB", (1, 1))})
    ctrl.player.set_metadata({})
    assert ctrl.album_art == ""
    assert ctrl.picture_provider.current_image is None


def test_set_content_data_plays_bytes():
    ctrl = make_ctrl()
    ctrl.set_content_data(b"abc")
    assert ctrl.player.source_data == b"abc"
    assert ctrl.is_playing


def test_find_filters_by_search_text():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.find("t2")
    assert ctrl.filtered_model.row_count() == 1
    assert ctrl.filtered_model.map_to_source(0) == 2


def test_reset_model_empties_library():
    ctrl = make_ctrl()
    fill(ctrl, 3)
    ctrl.reset_model()
    assert ctrl.model.row_count() == 0
    assert ctrl.filtered_model.row_count() == 0


def test_volume_and_mute_delegate_to_player():
    ctrl = make_ctrl()
    calls = record(ctrl.volume_changed)
    ctrl.volume = 0.5
    assert ctrl.player.volume == 0.5
    ctrl.volume = 2.0
    assert ctrl.volume == 1.0
    assert len(calls) == 2
    ctrl.set_muted(True)
    assert ctrl.player.muted is True


def test_seek_delegates_to_player():
    ctrl = make_ctrl()
    calls = record(ctrl.seek_changed)
    ctrl.seek = 500
    assert ctrl.player.position == 500
    assert ctrl.seek == 500
    assert len(calls) == 1


def test_player_play_needs_source():
    player = MediaPlayer()
    player.play()
    assert player.playback_state == PlaybackState.STOPPED
    assert player.media_status == MediaStatus.NO_MEDIA


def test_player_source_play_pause_stop():
    player = MediaPlayer()
    states = record(player.playback_state_changed)
    player.set_source("/music/a.mp3")
    assert player.media_status == MediaStatus.LOADED_MEDIA
    player.play()
    player.position = 1200
    player.pause()
    assert player.playback_state == PlaybackState.PAUSED
    player.stop()
    assert player.position == 0
    assert states == [
        (PlaybackState.PLAYING,),
        (PlaybackState.PAUSED,),
        (PlaybackState.STOPPED,),
    ]


def test_player_position_limited_by_duration():
    player = MediaPlayer()
    player.duration = 1000
    player.position = 5000
    assert player.position == 1000
    player.position = -3
    assert player.position == 0


def test_player_end_of_media_stops():
    player = MediaPlayer()
    player.set_source("/music/a.mp3")
    player.play()
    statuses = record(player.media_status_changed)
    player.set_media_status(MediaStatus.END_OF_MEDIA)
    assert player.playback_state == PlaybackState.STOPPED
    assert statuses == [(MediaStatus.END_OF_MEDIA,)]


def test_player_rejects_unknown_status():
    player = MediaPlayer()
    with pytest.raises(ValueError):
        player.set_media_status(99)


def test_video_output_forwarded():
    ctrl = make_ctrl()
    calls = record(ctrl.video_output_changed)
    sink = object()
    ctrl.video_output = sink
    assert ctrl.video_output is sink
    assert len(calls) == 1