"""Playback control: the play history, playing modes, output devices and cover art."""

from __future__ import annotations

import random
from enum import IntEnum
from typing import Any, Callable, Iterable, Mapping

from .devices import DeviceModel, TagModel
from .events import Signal
from .filters import FilteredModel, TagFilteredModel
from .library import AudioFileModel
from .pictures import AlbumPictureProvider

COVER_ART_IMAGE = "cover_art_image"
THUMBNAIL_IMAGE = "thumbnail_image"


class PlayingMode(IntEnum):
    """What happens when a song ends."""

    LOOP = 0
    UNIQUE = 1
    NEXT = 2
    SHUFFLE = 3


class PlaybackState(IntEnum):
    STOPPED = 0
    PLAYING = 1
    PAUSED = 2


class MediaStatus(IntEnum):
    NO_MEDIA = 0
    LOADING_MEDIA = 1
    LOADED_MEDIA = 2
    STALLED_MEDIA = 3
    BUFFERING_MEDIA = 4
    BUFFERED_MEDIA = 5
    END_OF_MEDIA = 6
    INVALID_MEDIA = 7


class MediaPlayer:
    """Playback state of one media source.

    The player keeps the source, position, volume and state and reports every
    change through its signals; an output backend drives it by setting the
    position, duration, metadata and media status as playback goes on.

    Signals: ``playback_state_changed(state)``, ``media_status_changed(status)``,
    ``position_changed(position)``, ``duration_changed(duration)``,
    ``volume_changed()``, ``metadata_changed()``, ``has_video_changed()``,
    ``video_output_changed()`` and ``audio_output_changed()``.
    """

    def __init__(self) -> None:
        self._source = ""
        self._data: bytes | None = None
        self._state = PlaybackState.STOPPED
        self._status = MediaStatus.NO_MEDIA
        self._position = 0
        self._duration = 0
        self._volume = 1.0
        self._muted = False
        self._metadata: dict[str, Any] = {}
        self._has_video = False
        self._video_output: Any = None
        self._audio_device: str | None = None
        self.playback_state_changed = Signal()
        self.media_status_changed = Signal()
        self.position_changed = Signal()
        self.duration_changed = Signal()
        self.volume_changed = Signal()
        self.metadata_changed = Signal()
        self.has_video_changed = Signal()
        self.video_output_changed = Signal()
        self.audio_output_changed = Signal()

    # -- source

    @property
    def source(self) -> str:
        return self._source

    @property
    def source_data(self) -> bytes | None:
        """The in-memory media being played, if any."""
        return self._data

    def _has_media(self) -> bool:
        return bool(self._source) or self._data is not None

    def _load(self, source: str) -> None:
        self._source = source
        self._set_state(PlaybackState.STOPPED)
        self.position = 0
        self.duration = 0
        self._metadata = {}
        self.metadata_changed.emit()
        self.set_media_status(MediaStatus.LOADED_MEDIA if self._has_media() else MediaStatus.NO_MEDIA)

    def set_source(self, source: str) -> None:
        """Play from ``source`` (a path or URL); an empty source unloads the media."""
        self._data = None
        self._load(source)

    def set_source_data(self, data: bytes, source: str = "") -> None:
        """Play from ``data`` held in memory; ``source`` names what it came from."""
        self._data = bytes(data)
        self._load(source)

    # -- state

    @property
    def playback_state(self) -> PlaybackState:
        return self._state

    def _set_state(self, state: PlaybackState) -> None:
        if state == self._state:
            return
        self._state = state
        self.playback_state_changed.emit(state)

    @property
    def media_status(self) -> MediaStatus:
        return self._status

    def set_media_status(self, status: MediaStatus) -> None:
        """Record a new media status, as reported by the output backend."""
        status = MediaStatus(status)
        if status == self._status:
            return
        self._status = status
        if status == MediaStatus.END_OF_MEDIA:
            self._set_state(PlaybackState.STOPPED)
        self.media_status_changed.emit(status)

    def play(self) -> None:
        if not self._has_media():
            return
        self._set_state(PlaybackState.PLAYING)

    def pause(self) -> None:
        if not self._has_media():
            return
        self._set_state(PlaybackState.PAUSED)

    def stop(self) -> None:
        self._set_state(PlaybackState.STOPPED)
        self.position = 0

    # -- position and output

    @property
    def position(self) -> int:
        """Position in milliseconds."""
        return self._position

    @position.setter
    def position(self, value: int) -> None:
        value = max(0, int(value))
        if self._duration > 0:
            value = min(value, self._duration)
        if value == self._position:
            return
        self._position = value
        self.position_changed.emit(value)

    @property
    def duration(self) -> int:
        """Duration in milliseconds, 0 when unknown."""
        return self._duration

    @duration.setter
    def duration(self, value: int) -> None:
        value = max(0, int(value))
        if value == self._duration:
            return
        self._duration = value
        self.duration_changed.emit(value)

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        value = min(1.0, max(0.0, float(value)))
        if value == self._volume:
            return
        self._volume = value
        self.volume_changed.emit()

    @property
    def muted(self) -> bool:
        return self._muted

    @muted.setter
    def muted(self, value: bool) -> None:
        self._muted = bool(value)

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    def set_metadata(self, metadata: Mapping[str, Any]) -> None:
        self._metadata = dict(metadata)
        self.metadata_changed.emit()

    @property
    def has_video(self) -> bool:
        return self._has_video

    @has_video.setter
    def has_video(self, value: bool) -> None:
        value = bool(value)
        if value == self._has_video:
            return
        self._has_video = value
        self.has_video_changed.emit()

    @property
    def video_output(self) -> Any:
        return self._video_output

    @video_output.setter
    def video_output(self, output: Any) -> None:
        if output is self._video_output:
            return
        self._video_output = output
        self.video_output_changed.emit()

    @property
    def audio_device(self) -> str | None:
        return self._audio_device

    @audio_device.setter
    def audio_device(self, device: str | None) -> None:
        if device == self._audio_device:
            return
        self._audio_device = device
        self.audio_output_changed.emit()


class AudioController:
    """Drives a media player from the song library.

    It keeps the history of played songs, so that ``previous`` and ``next``
    walk back and forth through it before choosing a new song by the mode.

    Signals: ``song_index_changed``, ``mode_changed``, ``volume_changed``,
    ``seek_changed``, ``duration_changed(duration)``, ``title_changed``,
    ``playing_changed``, ``album_art_changed``, ``has_video_changed``,
    ``content_changed``, ``state_changed(state)``, ``video_output_changed``
    and ``device_index_changed``.
    """

    def __init__(
        self,
        player: MediaPlayer | None = None,
        outputs: Iterable[str] = (),
        default_output: str | None = None,
        rng: random.Random | None = None,
        run_in_background: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self.model = AudioFileModel(run_in_background)
        self.filtered_tag_model = TagFilteredModel(self.model)
        self.filtered_model = FilteredModel(self.filtered_tag_model)
        self.picture_provider = AlbumPictureProvider()
        self.player = player if player is not None else MediaPlayer()
        self.devices = DeviceModel()
        self.tags = TagModel()
        self._rng = rng if rng is not None else random.Random()
        self._mode = PlayingMode.SHUFFLE
        self._content = ""
        self._title = ""
        self._pos = 0
        self._history: list[int] = []
        self._outputs: list[str] = []

        self.song_index_changed = Signal()
        self.mode_changed = Signal()
        self.volume_changed = Signal()
        self.seek_changed = Signal()
        self.duration_changed = Signal()
        self.title_changed = Signal()
        self.playing_changed = Signal()
        self.album_art_changed = Signal()
        self.has_video_changed = Signal()
        self.content_changed = Signal()
        self.state_changed = Signal()
        self.video_output_changed = Signal()
        self.device_index_changed = Signal()

        outputs = list(outputs)
        if default_output is None and outputs:
            default_output = outputs[0]
        self._device_index = outputs.index(default_output) if default_output in outputs else -1
        self.update_audio_devices(outputs)

        self.player.playback_state_changed.connect(self.state_changed.emit)
        self.player.volume_changed.connect(self.volume_changed.emit)
        self.player.position_changed.connect(lambda _position: self.seek_changed.emit())
        self.player.metadata_changed.connect(self._update_metadata)
        self.player.has_video_changed.connect(self.has_video_changed.emit)
        self.player.video_output_changed.connect(self.video_output_changed.emit)
        self.player.duration_changed.connect(self.duration_changed.emit)
        self.player.media_status_changed.connect(self.media_status)

    # -- history

    @property
    def song_index(self) -> int:
        """Library index of the current song; 0 when nothing was chosen yet."""
        if self._pos >= len(self._history):
            return 0
        return self._history[-1 - self._pos]

    @song_index.setter
    def song_index(self, index: int) -> None:
        self._history.append(index)
        self._pos = 0
        self._update_content()
        self.song_index_changed.emit()

    @property
    def history(self) -> list[int]:
        """Library indexes of the chosen songs, oldest first."""
        return list(self._history)

    def _update_content(self) -> None:
        info = self.model.song_info_at(self.song_index)
        if info is None:
            return
        self._title = f"{info.title} - {info.artist}"
        self.content = info.filepath
        self.player.set_source(self._content)
        self.title_changed.emit()

    # -- transport

    def play(self) -> None:
        if not self._content:
            self._update_content()
        self.player.play()

    def pause(self) -> None:
        self.player.pause()

    def next(self) -> None:
        """Go forward in the history, or pick a new song according to the mode."""
        if self._pos > 0:
            self._pos -= 1
            self._update_content()
            self.play()
            self.song_index_changed.emit()
            return
        if self._mode == PlayingMode.LOOP:
            self.play()
        elif self._mode == PlayingMode.NEXT:
            self._next_in_line()
        elif self._mode == PlayingMode.SHUFFLE:
            self._shuffle()

    def previous(self) -> None:
        """Go back one song in the history."""
        self._pos = max(0, min(self._pos + 1, len(self._history) - 1))
        self._update_content()
        self.play()
        self.song_index_changed.emit()

    def _next_in_line(self) -> None:
        last = self._history[-1] if self._history else -1
        following = last + 1
        if following >= self.filtered_tag_model.row_count():
            return
        self.song_index = following
        self.play()

    def _shuffle(self) -> None:
        count = self.filtered_tag_model.row_count()
        if count == 0:
            return
        index = self._rng.randint(0, count - 1)
        self.song_index = self.filtered_tag_model.song_index_to_source(index)
        self.play()

    def media_status(self, status: MediaStatus) -> None:
        """React to the player's media status: a finished song moves on."""
        if status == MediaStatus.END_OF_MEDIA:
            self.next()
        self.playing_changed.emit()

    # -- properties

    @property
    def mode(self) -> PlayingMode:
        return self._mode

    @mode.setter
    def mode(self, mode: PlayingMode) -> None:
        mode = PlayingMode(mode)
        if mode == self._mode:
            return
        self._mode = mode
        self.mode_changed.emit()

    @property
    def title(self) -> str:
        return self._title

    @property
    def content(self) -> str:
        return self._content

    @content.setter
    def content(self, source: str) -> None:
        if source == self._content:
            return
        self._content = source
        self.content_changed.emit()

    @property
    def volume(self) -> float:
        return self.player.volume

    @volume.setter
    def volume(self, value: float) -> None:
        self.player.volume = value

    @property
    def seek(self) -> int:
        return self.player.position

    @seek.setter
    def seek(self, position: int) -> None:
        self.player.position = position

    @property
    def duration(self) -> int:
        return self.player.duration

    @property
    def is_playing(self) -> bool:
        return self.player.playback_state == PlaybackState.PLAYING

    @property
    def has_video(self) -> bool:
        return self.player.has_video

    @property
    def video_output(self) -> Any:
        return self.player.video_output

    @video_output.setter
    def video_output(self, output: Any) -> None:
        self.player.video_output = output

    @property
    def album_art(self) -> str:
        return self.picture_provider.image_id

    def set_muted(self, muted: bool) -> None:
        self.player.muted = muted

    # -- devices

    @property
    def device_index(self) -> int:
        return self._device_index

    @device_index.setter
    def device_index(self, index: int) -> None:
        if index < 0 or index == self._device_index or index >= len(self._outputs):
            return
        self._device_index = index
        self.player.audio_device = self._outputs[index]
        self.device_index_changed.emit()

    def update_audio_devices(self, devices: Iterable[str]) -> None:
        """Replace the list of available audio outputs."""
        self._outputs = list(devices)
        self.devices.device_list = self._outputs

    # -- library

    def find(self, text: str) -> None:
        self.filtered_model.search = text

    def set_content_data(self, data: bytes) -> None:
        """Play media received as bytes."""
        self.player.set_source_data(data, self._content)
        self.player.play()

    def add_tag(self, tag: str) -> None:
        self.model.add_tag(tag)

    def refresh_metadata(self) -> None:
        self.model.refresh_metadata()

    def reset_model(self) -> None:
        self.model.reset_model()

    def song_image(self) -> str:
        """Key of the current song's cover when it is not among the known images, else ''."""
        info = self.model.song_info_at(self.song_index)
        key = ""
        if info is not None and info.album and info.artist:
            key = f"{info.artist}-{info.album}"
        if key in self.model.images:
            return ""
        return key

    def _update_metadata(self) -> None:
        meta = self.player.metadata
        if COVER_ART_IMAGE in meta:
            self.picture_provider.set_current_image(meta[COVER_ART_IMAGE], self._title)
        elif THUMBNAIL_IMAGE in meta:
            self.picture_provider.set_current_image(meta[THUMBNAIL_IMAGE], self._title)
        else:
            self.picture_provider.set_current_image(None, "")
        self.album_art_changed.emit()