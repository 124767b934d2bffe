"""Remote-control front end: sends commands to the server and mirrors its state."""

from __future__ import annotations

import io
import math
from enum import IntEnum
from typing import Any, Mapping

from PIL import Image, UnidentifiedImageError

from . import constants
from .audio import AudioController, PlaybackState
from .client import ClientController
from .events import Signal

SMALL_UI_URL = "ws://192.168.1.2:10999"
DESKTOP_URL = "ws://localhost:10999"


class ClientPlayingMode(IntEnum):
    """Playing modes a client can ask the server for."""

    SHUFFLE = 0
    UNIQUE = 1
    LOOP = 2
    FORWARD = 3


_MODE_COMMANDS = {
    ClientPlayingMode.FORWARD: constants.FORWARD,
    ClientPlayingMode.LOOP: constants.LOOP,
    ClientPlayingMode.SHUFFLE: constants.RANDOM,
    ClientPlayingMode.UNIQUE: constants.UNIQUE,
}


def _fuzzy_equal(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=1e-12)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _decode_image(data: bytes) -> Image.Image | None:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    return image


class MainController:
    """State of the remote-control client: current song, position, volume and mode.

    Signals: ``playing_mode_changed``, ``sync_with_server_changed``,
    ``position_changed``, ``current_song_changed``, ``volume_changed``,
    ``play_back_state_changed`` and ``image_changed``.
    """

    def __init__(
        self,
        client_ctrl: ClientController | None = None,
        audio_ctrl: AudioController | None = None,
        small_ui: bool = True,
        autoconnect: bool = True,
    ) -> None:
        self.client_ctrl = client_ctrl if client_ctrl is not None else ClientController()
        self.audio_ctrl = audio_ctrl if audio_ctrl is not None else AudioController()
        self._small_ui = small_ui
        self._mode = ClientPlayingMode.SHUFFLE
        self._sync_with_server = False
        self._position = 0.0
        self._artist = ""
        self._title = ""
        self._duration = 0
        self._index = 0
        self._image: Image.Image | None = None
        self._volume = 1.0
        self._play_back_state = int(PlaybackState.STOPPED)

        self.playing_mode_changed = Signal()
        self.sync_with_server_changed = Signal()
        self.position_changed = Signal()
        self.current_song_changed = Signal()
        self.volume_changed = Signal()
        self.play_back_state_changed = Signal()
        self.image_changed = Signal()

        self.client_ctrl.url = SMALL_UI_URL if small_ui else DESKTOP_URL

        self.client_ctrl.song_data_changed.connect(self.audio_ctrl.set_content_data)
        self.client_ctrl.image_changed.connect(self._on_image)
        self.client_ctrl.song_file_changed.connect(self._on_song_file)
        self.client_ctrl.seek_changed.connect(self._on_seek)
        self.client_ctrl.song_info_changed.connect(self._on_song_info)
        self.client_ctrl.model_data_changed.connect(self._on_model_data)

        if autoconnect:
            self.client_ctrl.connect_to()

    def __enter__(self) -> MainController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.client_ctrl.close()

    # -- server events

    def _on_image(self, data: bytes) -> None:
        self._image = _decode_image(data)
        self.image_changed.emit()

    def _on_song_file(self, uri: str) -> None:
        self.audio_ctrl.content = uri

    def _on_seek(self, position: float) -> None:
        self.position = position

    def _on_song_info(self, obj: Mapping[str, Any]) -> None:
        self._artist = _as_str(obj.get(constants.INFO_ARTIST))
        self._title = _as_str(obj.get(constants.INFO_TITLE))
        self._index = _as_int(obj.get(constants.INFO_INDEX))
        self._duration = _as_int(obj.get(constants.INFO_TIME)) * 1000
        self.current_song_changed.emit()

    def _on_model_data(self, obj: Mapping[str, Any]) -> None:
        songs = obj.get(constants.JSON_SONGS)
        entries = []
        for song in songs if isinstance(songs, list) else []:
            if not isinstance(song, dict):
                song = {}
            tags = song.get(constants.INFO_TAGS)
            entries.append(
                {
                    "path": _as_str(song.get(constants.INFO_PATH)),
                    "artist": _as_str(song.get(constants.INFO_ARTIST)),
                    "album": _as_str(song.get(constants.INFO_ALBUM)),
                    "title": _as_str(song.get(constants.INFO_TITLE)),
                    "tags": [str(tag) for tag in tags] if isinstance(tags, list) else [],
                    "time": _as_int(song.get(constants.INFO_TIME)),
                }
            )
        self.audio_ctrl.model.append_songs(entries)

    # -- commands

    def play(self, index: int = -1) -> None:
        params = {constants.INFO_INDEX: index} if index >= 0 else {}
        self.client_ctrl.send_command(constants.PLAY, params)

    def previous(self) -> None:
        self.client_ctrl.send_command(constants.PREVIOUS)

    def next(self) -> None:
        self.client_ctrl.send_command(constants.NEXT)

    def stop(self) -> None:
        self.client_ctrl.send_command(constants.STOP)

    def pause(self) -> None:
        self.client_ctrl.send_command(constants.PAUSE)

    def set_playing_mode(self, mode: ClientPlayingMode) -> None:
        mode = ClientPlayingMode(mode)
        self.client_ctrl.send_command(_MODE_COMMANDS[mode])
        self._mode = mode

    def find(self, pattern: str) -> None:
        self.audio_ctrl.find(pattern)

    def filter_tag(self, tag: str, forbidden: bool) -> None:
        self.client_ctrl.send_command(constants.SET_TAG, {constants.TAG: tag, constants.FORBIDDEN: forbidden})

    def remove_filter_tag(self, tag: str, forbidden: bool) -> None:
        self.client_ctrl.send_command(constants.REMOVE_TAG, {constants.TAG: tag, constants.FORBIDDEN: forbidden})

    # -- properties

    @property
    def mode(self) -> ClientPlayingMode:
        return self._mode

    @property
    def small_ui(self) -> bool:
        return self._small_ui

    @property
    def sync_with_server(self) -> bool:
        return self._sync_with_server

    @sync_with_server.setter
    def sync_with_server(self, value: bool) -> None:
        value = bool(value)
        if value == self._sync_with_server:
            return
        self._sync_with_server = value
        self.sync_with_server_changed.emit()
        self.client_ctrl.send_command(constants.MUTE if value else constants.VOLUME_ON)
        self.client_ctrl.send_command(constants.STREAM_MUSIC if value else constants.PLAY_ON_SERVER)

    @property
    def position(self) -> float:
        if self._sync_with_server:
            return self.audio_ctrl.seek
        return self._position

    @position.setter
    def position(self, value: float) -> None:
        value = float(value)
        if _fuzzy_equal(self._position, value):
            return
        if self._sync_with_server:
            self.audio_ctrl.seek = int(value)
        self._position = value
        self.position_changed.emit()

    @property
    def artist(self) -> str:
        return self._artist

    @property
    def title(self) -> str:
        return self._title

    @property
    def duration(self) -> int:
        """Duration of the current song in milliseconds."""
        return self._duration

    @property
    def index(self) -> int:
        return self._index

    @property
    def image(self) -> Image.Image | None:
        return self._image

    @property
    def has_image(self) -> bool:
        return self._image is not None

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        value = float(value)
        if _fuzzy_equal(self._volume, value):
            return
        self._volume = value
        self.volume_changed.emit()
        self.client_ctrl.send_command(constants.INFO_VOLUME, {constants.VOLUME: value})

    @property
    def play_back_state(self) -> int:
        return self._play_back_state

    @play_back_state.setter
    def play_back_state(self, state: int) -> None:
        state = int(state)
        if state == self._play_back_state:
            return
        self._play_back_state = state
        self.play_back_state_changed.emit()

    @property
    def paused(self) -> bool:
        return self._play_back_state == PlaybackState.PAUSED

    @property
    def stopped(self) -> bool:
        return self._play_back_state == PlaybackState.STOPPED

    @property
    def playing(self) -> bool:
        return self._play_back_state == PlaybackState.PLAYING