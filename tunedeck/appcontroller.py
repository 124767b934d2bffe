"""Application controller: the play list file, settings, export and the player."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import urlparse
from urllib.request import url2pathname

from platformdirs import user_config_path

from .audio import AudioController
from .devices import DeviceModel
from .events import Signal
from .filters import FilteredModel
from .library import AudioFileModel
from .playlist_files import (
    export_files_to_directory,
    find_all_audio_files,
    read_audio_list,
    read_m3u,
    write_audio_list,
)

log = logging.getLogger(__name__)

APP_NAME = "AudioPlayer"
PLAYLIST_SUFFIX = ".apl"


def default_settings_path() -> Path:
    """Where the settings are kept when no path is given."""
    return user_config_path(APP_NAME, APP_NAME) / f"{APP_NAME}.json"


def _to_local_file(url: str | os.PathLike[str]) -> str:
    """Turn a ``file:`` URL into a local path; anything else is taken as a path."""
    text = os.fspath(url)
    parsed = urlparse(text)
    if parsed.scheme == "file":
        return url2pathname(parsed.path)
    return text


class AppController:
    """Owns the audio controller and handles the play list file and settings.

    Settings (recent files, last file, last played song) are saved as JSON.
    Signals: ``filename_changed(filename)``, ``device_index_changed``,
    ``has_video_changed`` and ``state_changed(state)``.
    """

    def __init__(
        self,
        audio_ctrl: AudioController | None = None,
        settings_path: str | Path | None = None,
    ) -> None:
        self.audio_ctrl = audio_ctrl if audio_ctrl is not None else AudioController()
        self.settings_path = Path(settings_path) if settings_path is not None else default_settings_path()
        self._filename = ""
        self._recent_files: list[str] = []

        self.filename_changed = Signal()
        self.device_index_changed = Signal()
        self.has_video_changed = Signal()
        self.state_changed = Signal()
        self.audio_ctrl.device_index_changed.connect(self.device_index_changed.emit)
        self.audio_ctrl.has_video_changed.connect(self.has_video_changed.emit)
        self.audio_ctrl.state_changed.connect(self.state_changed.emit)

        self.load_settings()
        if self._filename:
            try:
                self.load_file()
            except OSError as error:
                log.debug("cannot read %s: %s", self._filename, error)

    def __enter__(self) -> AppController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Save the settings before going away."""
        self.save_settings()

    # -- properties

    @property
    def filename(self) -> str:
        return self._filename

    @filename.setter
    def filename(self, filename: str | os.PathLike[str]) -> None:
        if os.fspath(filename) == self._filename:
            return
        self._filename = _to_local_file(filename)
        self.filename_changed.emit(self._filename)

    @property
    def recent_files(self) -> list[str]:
        return list(self._recent_files)

    @property
    def filtered_model(self) -> FilteredModel:
        return self.audio_ctrl.filtered_model

    @property
    def model(self) -> AudioFileModel:
        return self.audio_ctrl.model

    @property
    def audio_model(self) -> AudioFileModel:
        return self.audio_ctrl.model

    @property
    def output_model(self) -> DeviceModel:
        return self.audio_ctrl.devices

    @property
    def device_index(self) -> int:
        return self.audio_ctrl.device_index

    @device_index.setter
    def device_index(self, index: int) -> None:
        self.audio_ctrl.device_index = index

    @property
    def has_video(self) -> bool:
        return self.audio_ctrl.has_video

    # -- songs

    def add_files(self, files: Iterable[str | os.PathLike[str]], index: int) -> None:
        """Insert the given files (paths or ``file:`` URLs) at ``index``."""
        self.audio_model.insert_songs_at(index, [_to_local_file(item) for item in files])

    def add_directory(self, index: int, url: str | os.PathLike[str]) -> None:
        """Insert every audio file found under a directory at ``index``."""
        self.audio_model.insert_songs_at(index, find_all_audio_files(_to_local_file(url)))

    def reset_data(self) -> None:
        self.audio_ctrl.reset_model()

    def remove_selection(self) -> None:
        """Remove from the library every song matched by the current search."""
        filtered = self.filtered_model
        if not filtered.search:
            return
        tag_model = filtered.source_model
        rows = [tag_model.map_to_source(filtered.map_to_source(row)) for row in range(filtered.row_count())]
        self.audio_model.remove_songs(sorted(rows, reverse=True))

    # -- export

    def add_to_export(self, index: int) -> None:
        self.audio_model.add_to_export(index)

    def reset_export(self) -> None:
        self.audio_model.clean_export_list()

    def export_list(self, destination: str | Path) -> list[Path]:
        """Copy the songs marked for export into ``destination`` and clear the list."""
        copies = export_files_to_directory(self.audio_model, destination)
        self.reset_export()
        return copies

    # -- files

    def load_file(self) -> None:
        """Load the current file (M3U or play list) and remember it as recent."""
        if self._filename.endswith("m3u"):
            read_m3u(self._filename, self.audio_model)
        elif self._filename.endswith("apl"):
            read_audio_list(self._filename, self.audio_model)
        self._recent_files.insert(0, self._filename)
        self.save_settings()

    def save_file(self) -> None:
        """Write the library to the current file, adding the play list suffix if missing."""
        if not self._filename.endswith(PLAYLIST_SUFFIX):
            self._filename += PLAYLIST_SUFFIX
        write_audio_list(self._filename, self.audio_model)
        self.save_settings()

    # -- settings

    def save_settings(self) -> None:
        settings = {
            "recentFiles": list(self._recent_files),
            "lastFile": self._filename,
            "lastPlayedSong": self.audio_ctrl.song_index,
        }
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)
        self.settings_path.write_text(json.dumps(settings, indent=4) + "\n", encoding="utf-8")

    def _read_settings(self) -> dict[str, Any]:
        try:
            settings = json.loads(self.settings_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        return settings if isinstance(settings, dict) else {}

    def load_settings(self) -> None:
        settings = self._read_settings()
        recent = settings.get("recentFiles")
        self._recent_files = [str(item) for item in recent] if isinstance(recent, list) else []
        last = settings.get("lastFile")
        self._filename = last if isinstance(last, str) else ""
        song = settings.get("lastPlayedSong")
        song_index = song if isinstance(song, int) and not isinstance(song, bool) else 0
        self.audio_ctrl.song_index = song_index