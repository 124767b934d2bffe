import json

import pytest
from PIL import Image

from tunedeck.library import AudioFileModel
from tunedeck.playlist_files import (
    export_files_to_directory,
    find_all_audio_files,
    read_audio_list,
    read_m3u,
    write_audio_list,
)


def _model_with_songs():
    model = AudioFileModel(run_in_background=lambda task: None)
    model.append_songs(
        [
            {"path": "/music/a.mp3", "title": "Alpha", "artist": "Ann", "album": "One", "time": 125, "tags": ["rap"]},
            {"path": "/music/b.ogg", "title": "Beta", "artist": "Bob", "album": "Two", "time": 7, "tags": []},
        ]
    )
    return model


def test_read_m3u_takes_every_second_line(tmp_path):
    playlist = tmp_path / "list.m3u"
    playlist.write_text("#EXTINF:1,a\n/music/a.mp3\n#EXTINF:2,b\n/music/b.mp3\n", encoding="utf-8")
    model = AudioFileModel(run_in_background=lambda task: None)
    read_m3u(playlist, model)
    assert [song.filepath for song in model.songs()] == ["/music/a.mp3", "/music/b.mp3"]
    assert all(song.time == 0 and song.title == "" for song in model.songs())


def test_read_m3u_missing_file_raises(tmp_path):
    model = AudioFileModel(run_in_background=lambda task: None)
    with pytest.raises(OSError):
        read_m3u(tmp_path / "absent.m3u", model)


def test_audio_list_round_trip(tmp_path):
    source = _model_with_songs()
    target_file = tmp_path / "list.apl"
    write_audio_list(target_file, source)

    restored = AudioFileModel(run_in_background=lambda task: None)
    read_audio_list(target_file, restored)
    assert [
        (s.filepath, s.title, s.artist, s.album, s.time, s.tags) for s in restored.songs()
    ] == [(s.filepath, s.title, s.artist, s.album, s.time, s.tags) for s in source.songs()]


def test_audio_list_document_keys(tmp_path):
    target_file = tmp_path / "list.apl"
    write_audio_list(target_file, _model_with_songs())
    document = json.loads(target_file.read_text(encoding="utf-8"))
    assert set(document) == {"songs", "images"}
    assert set(document["songs"][0]) == {"path", "title", "artist", "album", "time", "tags"}


def test_audio_list_images_round_trip_and_skip_missing(tmp_path):
    source = _model_with_songs()
    source.images["Ann-One"] = Image.new("RGBA", (8, 6), (200, 10, 10, 255))
    source.images["Bob-Two"] = None
    target_file = tmp_path / "list.apl"
    write_audio_list(target_file, source)

    document = json.loads(target_file.read_text(encoding="utf-8"))
    assert [entry["key"] for entry in document["images"]] == ["Ann-One"]

    restored = AudioFileModel(run_in_background=lambda task: None)
    read_audio_list(target_file, restored)
    assert restored.images["Ann-One"].size == (8, 6)


def test_read_audio_list_bad_image_gives_none(tmp_path):
    target_file = tmp_path / "list.apl"
    target_file.write_text(json.dumps({"songs": [], "images": [{"key": "k", "img": "bm90IGFuIGltYWdl"}]}))
    model = AudioFileModel(run_in_background=lambda task: None)
    read_audio_list(target_file, model)
    assert "k" in model.images and model.images["k"] is None
    assert model.row_count() == 0


def test_find_all_audio_files(tmp_path):
    (tmp_path / "b.MP3").write_bytes(b"")
    (tmp_path / "a.flac").write_bytes(b"")
    (tmp_path / "notes.txt").write_bytes(b"")
    sub = tmp_path / "sub"
    sub.mkdir()
    (sub / "c.ogg").write_bytes(b"")
    found = find_all_audio_files(tmp_path)
    assert found == [str(tmp_path / "a.flac"), str(tmp_path / "b.MP3"), str(sub / "c.ogg")]


def test_export_copies_selected_files(tmp_path):
    music = tmp_path / "music"
    music.mkdir()
    first, second = music / "one.mp3", music / "two.mp3"
    first.write_bytes(b"first")
    second.write_bytes(b"second")
    model = AudioFileModel(run_in_background=lambda task: None)
    model.append_songs([{"path": str(first)}, {"path": str(second)}])
    model.add_to_export(1)
    dest = tmp_path / "out"
    dest.mkdir()
    copies = export_files_to_directory(model, dest)
    assert copies == [dest / "two.mp3"]
    assert (dest / "two.mp3").read_bytes() == second.read_bytes()
    assert not (dest / "one.mp3").exists()


def test_export_errors(tmp_path):
    model = AudioFileModel(run_in_background=lambda task: None)
    model.add_to_export(3)
    with pytest.raises(IndexError):
        export_files_to_directory(model, tmp_path)
    with pytest.raises(NotADirectoryError):
        export_files_to_directory(model, tmp_path / "missing")