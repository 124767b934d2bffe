import io
import json
import time

import pytest
from PIL import Image
from websockets.sync.client import connect

from tunedeck import constants
from tunedeck.appcontroller import AppController
from tunedeck.audio import PlaybackState, PlayingMode
from tunedeck.messages import build_message
from tunedeck.server import DEFAULT_PORT, ServerManager


class FakeClient:
    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)

    def texts(self, action=None):
        messages = [json.loads(m) for m in self.sent if isinstance(m, str)]
        if action is None:
            return messages
        return [m for m in messages if m["action"] == action]

    def binaries(self):
        return [m for m in self.sent if isinstance(m, bytes)]


def command(action, params=None, **extra):
    document = json.loads(build_message(constants.AUDIO, action, params))
    document.update(extra)
    return json.dumps(document)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture
def songs(tmp_path):
    first = tmp_path / "a.mp3"
    first.write_bytes(b"first-song")
    second = tmp_path / "b.mp3"
    second.write_bytes(b"second-song")
    return [first, second]


@pytest.fixture
def app(tmp_path, songs):
    controller = AppController(settings_path=tmp_path / "settings.json")
    controller.audio_model.append_songs(
        [
            {"path": str(songs[0]), "title": "First", "artist": "Alpha", "album": "One", "time": 100, "tags": ["rap"]},
            {"path": str(songs[1]), "title": "Second", "artist": "Beta", "album": "Two", "time": 200, "tags": ["fr"]},
        ]
    )
    return controller


@pytest.fixture
def manager(app):
    return ServerManager(app)


@pytest.fixture
def client(manager):
    fake = FakeClient()
    manager.add_client(fake)
    return fake


def test_default_port_is_source_port(manager):
    assert manager.port == 10999
    assert manager.port == DEFAULT_PORT


def test_new_client_receives_model(client, songs):
    models = client.texts(constants.MODEL)
    assert len(models) == 1
    sent_songs = models[0][constants.JSON_PARAMETER][constants.JSON_SONGS]
    assert [song["path"] for song in sent_songs] == [str(songs[0]), str(songs[1])]
    assert [song["index"] for song in sent_songs] == [0, 1]
    assert sent_songs[1]["title"] == "Second"


def test_update_client_sends_again(manager, client):
    manager.update_client(client)
    assert len(client.texts(constants.MODEL)) == 2


def test_remove_client_stops_broadcast(manager, client, app):
    manager.remove_client(client)
    app.audio_ctrl.seek = 1500
    assert client.texts(constants.SEEK) == []
    assert manager.clients == []


def test_play_with_index_selects_song(manager, client, app):
    manager.process_text(command(constants.PLAY, {"index": 1}))
    audio = app.audio_ctrl
    assert audio.song_index == 1
    assert audio.is_playing
    selected = client.texts(constants.SELECT)[-1][constants.JSON_PARAMETER]
    assert selected["title"] == "Second"
    assert selected["artist"] == "Beta"
    assert selected["album"] == "Two"
    assert selected["index"] == 1
    assert selected["time"] == 200
    states = client.texts(constants.STATE)
    assert states[-1][constants.JSON_PARAMETER][constants.STATE] == int(PlaybackState.PLAYING)


def test_stop_pauses(manager, app):
    manager.process_text(command(constants.PLAY, {"index": 0}))
    manager.process_text(command(constants.STOP))
    assert app.audio_ctrl.player.playback_state == PlaybackState.PAUSED


def test_mode_commands(manager, app):
    manager.process_text(command(constants.LOOP))
    assert app.audio_ctrl.mode == PlayingMode.LOOP
    manager.process_text(command(constants.RANDOM))
    assert app.audio_ctrl.mode == PlayingMode.SHUFFLE


def test_mute_and_volume_on(manager, app):
    manager.process_text(command(constants.MUTE))
    assert app.audio_ctrl.player.muted is True
    manager.process_text(command(constants.VOLUME_ON))
    assert app.audio_ctrl.player.muted is False


def test_set_volume(manager, app):
    manager.process_text(command(constants.VOLUME, {constants.VOLUME: 0.25}))
    assert app.audio_ctrl.volume == pytest.approx(0.25)


def test_tag_commands(manager, app):
    tag_model = app.audio_ctrl.filtered_tag_model
    manager.process_text(command(constants.SET_TAG, {constants.TAG: "rap", constants.FORBIDDEN: True}))
    assert tag_model.forbidden == frozenset({"rap"})
    assert tag_model.row_count() == 1
    manager.process_text(command(constants.REMOVE_TAG, {constants.TAG: "rap", constants.FORBIDDEN: True}))
    assert tag_model.forbidden == frozenset()
    manager.process_text(command(constants.SET_TAG, {constants.TAG: "fr", constants.FORBIDDEN: False}))
    assert tag_model.allowed == frozenset({"fr"})


def test_select_sets_search(manager, app):
    manager.process_text(command(constants.SELECT, pattern="beta"))
    assert app.audio_ctrl.filtered_model.search == "beta"
    assert app.audio_ctrl.filtered_model.row_count() == 1


def test_streaming_sends_song_file(manager, client, songs):
    manager.process_text(command(constants.STREAM_MUSIC))
    assert manager.stream_music is True
    manager.process_text(command(constants.PLAY, {"index": 1}))
    new_songs = client.texts(constants.NEW_SONG)
    assert new_songs[-1][constants.JSON_PARAMETER][constants.URI] == str(songs[1])
    music = [data for data in client.binaries() if data[:1] == b"\x00"]
    assert music[-1] == b"\x00" + songs[1].read_bytes()


def test_play_on_server_stops_streaming(manager, client):
    manager.process_text(command(constants.STREAM_MUSIC))
    manager.process_text(command(constants.PLAY_ON_SERVER))
    assert manager.stream_music is False
    manager.process_text(command(constants.PLAY, {"index": 1}))
    assert client.texts(constants.NEW_SONG) == []
    assert [data for data in client.binaries() if data[:1] == b"\x00"] == []


def test_seek_is_broadcast(client, app):
    app.audio_ctrl.seek = 1500
    values = [m[constants.JSON_PARAMETER][constants.INFO_VALUE] for m in client.texts(constants.SEEK)]
    assert values[-1] == 1500


def test_image_is_broadcast(client, app):
    image = Image.new("RGB", (2, 3), "red")
    app.audio_ctrl.picture_provider.set_current_image(image, "cover")
    data = client.binaries()[-1]
    assert data[:1] == b"\x01"
    assert Image.open(io.BytesIO(data[1:])).size == (2, 3)


def test_process_binary_reports_data(manager):
    received = []
    manager.binary_received.connect(received.append)
    manager.process_binary(b"\x05\x06")
    assert received == [b"\x05\x06"]


def test_port_setter_emits_once(manager):
    calls = []
    manager.port_changed.connect(lambda: calls.append(True))
    manager.port = 12000
    manager.port = 12000
    assert manager.port == 12000
    assert len(calls) == 1


def test_websocket_round_trip(app):
    server = ServerManager(app, port=0, host="127.0.0.1")
    try:
        assert server.start_listening() is True
        assert server.start_listening() is False
        with connect(f"ws://127.0.0.1:{server.bound_port}") as ws:
            first = json.loads(ws.recv(timeout=5))
            assert first["action"] == constants.MODEL
            assert len(first[constants.JSON_PARAMETER][constants.JSON_SONGS]) == 2
            ws.send(command(constants.LOOP))
            assert wait_for(lambda: app.audio_ctrl.mode == PlayingMode.LOOP)
    finally:
        server.close()
    assert server.bound_port is None