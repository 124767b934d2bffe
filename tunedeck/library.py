"""The song library: file information, list model and tag reading."""

from __future__ import annotations

import io
import threading
import wave
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, MutableMapping

from PIL import Image

from .events import Signal

_USER_ROLE = 0x0100


class Role(IntEnum):
    """Data roles of the song list."""

    PATH = _USER_ROLE + 1
    ARTIST = _USER_ROLE + 2
    TITLE = _USER_ROLE + 3
    ALBUM = _USER_ROLE + 4
    TIME = _USER_ROLE + 5
    INDEX = _USER_ROLE + 6
    EXPORT_SELECTED = _USER_ROLE + 7
    TAGS = _USER_ROLE + 8
    SELECTED = _USER_ROLE + 9


_ROLE_NAMES = {
    Role.PATH: "path",
    Role.ARTIST: "artist",
    Role.TITLE: "title",
    Role.TIME: "time",
    Role.ALBUM: "album",
    Role.INDEX: "songIndex",
    Role.TAGS: "tags",
    Role.SELECTED: "selected",
    Role.EXPORT_SELECTED: "isSelectedForExport",
}


@dataclass(eq=False)
class AudioFileInfo:
    """One song of the library; ``time`` is in seconds."""

    filepath: str
    artist: str = ""
    title: str = ""
    album: str = ""
    time: int = 0
    tags: list[str] = field(default_factory=list)


def time_to_text(seconds: int) -> str:
    """Format a duration in seconds as ``MM:SS``."""
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes:02d}:{rest:02d}"


def _image_key(info: AudioFileInfo) -> str:
    return f"{info.artist}-{info.album}"


# ---------------------------------------------------------------- ID3v2


def _syncsafe(raw: bytes) -> int:
    return (raw[0] << 21) | (raw[1] << 14) | (raw[2] << 7) | raw[3]


def _id3v2_end(data: bytes) -> int:
    if len(data) < 10 or data[:3] != b"ID3":
        return 0
    footer = 10 if data[3] >= 4 and data[5] & 0x10 else 0
    return 10 + _syncsafe(data[6:10]) + footer


def _id3v2_frames(data: bytes):
    """Yield ``(frame_id, payload, is_v22)`` for each frame of a leading ID3v2 tag."""
    if len(data) < 10 or data[:3] != b"ID3":
        return
    major, flags = data[3], data[5]
    body = data[10 : 10 + _syncsafe(data[6:10])]
    if flags & 0x80 and major < 4:
        body = body.replace(b"\xff\x00", b"\xff")
    pos = 0
    if flags & 0x40 and major >= 3:
        pos = int.from_bytes(body[:4], "big") + 4 if major == 3 else _syncsafe(body[:4])
    is_v22 = major == 2
    id_len, header_len = (3, 6) if is_v22 else (4, 10)
    while pos + header_len <= len(body):
        frame_id = body[pos : pos + id_len]
        if not frame_id.strip(b"\x00"):
            break
        raw_size = body[pos + id_len : pos + 2 * id_len]
        size = _syncsafe(raw_size) if major >= 4 else int.from_bytes(raw_size, "big")
        start = pos + header_len
        payload = body[start : start + size]
        if major >= 4:
            format_flags = body[pos + 9]
            if format_flags & 0x02:
                payload = payload.replace(b"\xff\x00", b"\xff")
            if format_flags & 0x01:
                payload = payload[4:]
        yield frame_id.decode("latin-1"), payload, is_v22
        pos = start + size


_TEXT_ENCODINGS = {0: "latin-1", 1: "utf-16", 2: "utf-16-be", 3: "utf-8"}


def _decode_text(payload: bytes) -> str:
    if not payload:
        return ""
    encoding = _TEXT_ENCODINGS.get(payload[0], "latin-1")
    return payload[1:].decode(encoding, errors="replace").split("\x00")[0]


def _picture_data(payload: bytes, is_v22: bool) -> bytes:
    encoding = payload[0]
    pos = 4 if is_v22 else payload.index(b"\x00", 1) + 1
    pos += 1  # picture type
    if encoding in (1, 2):
        while pos + 1 < len(payload) and payload[pos : pos + 2] != b"\x00\x00":
            pos += 2
        pos += 2
    else:
        pos = payload.index(b"\x00", pos) + 1
    return payload[pos:]


def read_cover_image_from_mp3(path: str | Path) -> Image.Image | None:
    """Return the first attached picture of an MP3 file, or None."""
    try:
        data = Path(path).read_bytes()
    except OSError:
        return None
    for frame_id, payload, is_v22 in _id3v2_frames(data):
        if frame_id not in ("APIC", "PIC"):
            continue
        try:
            image = Image.open(io.BytesIO(_picture_data(payload, is_v22)))
            image.load()
        except (ValueError, IndexError, OSError):
            return None
        return image
    return None


# ---------------------------------------------------------------- MPEG audio

_MPEG1_L3_KBPS = (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320)
_MPEG2_L3_KBPS = (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160)
_SAMPLE_RATES = {3: (44100, 48000, 32000), 2: (22050, 24000, 16000), 0: (11025, 12000, 8000)}


def _mp3_length(data: bytes, start: int) -> int:
    pos = data.find(b"\xff", start)
    while 0 <= pos < len(data) - 4:
        b1, b2, b3 = data[pos + 1], data[pos + 2], data[pos + 3]
        version, layer = (b1 >> 3) & 3, (b1 >> 1) & 3
        bitrate_index, rate_index = b2 >> 4, (b2 >> 2) & 3
        if (b1 & 0xE0) == 0xE0 and version != 1 and layer == 1 and bitrate_index not in (0, 15) and rate_index != 3:
            mpeg1 = version == 3
            bitrate = (_MPEG1_L3_KBPS if mpeg1 else _MPEG2_L3_KBPS)[bitrate_index] * 1000
            sample_rate = _SAMPLE_RATES[version][rate_index]
            samples = 1152 if mpeg1 else 576
            mono = (b3 >> 6) == 3
            offset = pos + ((21 if mono else 36) if mpeg1 else (13 if mono else 21))
            if data[offset : offset + 4] in (b"Xing", b"Info"):
                flags = int.from_bytes(data[offset + 4 : offset + 8], "big")
                if flags & 1:
                    frames = int.from_bytes(data[offset + 8 : offset + 12], "big")
                    return frames * samples // sample_rate
            end = len(data) - (128 if data[-128:-125] == b"TAG" else 0)
            return max(0, end - pos) * 8 // bitrate
        pos = data.find(b"\xff", pos + 1)
    return 0


def _read_mp3(data: bytes) -> dict[str, Any]:
    v2 = {"TIT2": "", "TPE1": "", "TALB": ""}
    aliases = {"TT2": "TIT2", "TP1": "TPE1", "TAL": "TALB"}
    for frame_id, payload, _ in _id3v2_frames(data):
        key = aliases.get(frame_id, frame_id)
        if key in v2 and not v2[key]:
            v2[key] = _decode_text(payload)
    v1 = {"TIT2": "", "TPE1": "", "TALB": ""}
    if len(data) >= 128 and data[-128:-125] == b"TAG":
        tail = data[-128:]
        for key, (lo, hi) in {"TIT2": (3, 33), "TPE1": (33, 63), "TALB": (63, 93)}.items():
            v1[key] = tail[lo:hi].split(b"\x00")[0].decode("latin-1").rstrip()
    pick = {key: v2[key] or v1[key] for key in v2}
    return {
        "title": pick["TIT2"],
        "artist": pick["TPE1"],
        "album": pick["TALB"],
        "length": _mp3_length(data, _id3v2_end(data)),
    }


# ---------------------------------------------------------------- Vorbis / FLAC / WAV


def _vorbis_comments(block: bytes) -> dict[str, str]:
    comments: dict[str, str] = {}
    pos = 4 + int.from_bytes(block[:4], "little")
    count = int.from_bytes(block[pos : pos + 4], "little")
    pos += 4
    for _ in range(count):
        if pos + 4 > len(block):
            break
        size = int.from_bytes(block[pos : pos + 4], "little")
        pos += 4
        entry = block[pos : pos + size].decode("utf-8", errors="replace")
        pos += size
        key, sep, value = entry.partition("=")
        if sep:
            comments.setdefault(key.upper(), value)
    return comments


def _from_comments(comments: Mapping[str, str], length: int | None) -> dict[str, Any]:
    return {
        "title": comments.get("TITLE", ""),
        "artist": comments.get("ARTIST", ""),
        "album": comments.get("ALBUM", ""),
        "length": length,
    }


def _read_flac(data: bytes) -> dict[str, Any] | None:
    if data[:4] != b"fLaC":
        return None
    pos, comments, length = 4, {}, None
    while pos + 4 <= len(data):
        header = data[pos]
        size = int.from_bytes(data[pos + 1 : pos + 4], "big")
        block = data[pos + 4 : pos + 4 + size]
        kind = header & 0x7F
        if kind == 0 and len(block) >= 18:
            packed = int.from_bytes(block[10:18], "big")
            rate, total = packed >> 44, packed & ((1 << 36) - 1)
            length = total // rate if rate else 0
        elif kind == 4:
            comments = _vorbis_comments(block)
        pos += 4 + size
        if header & 0x80:
            break
    return _from_comments(comments, length)


def _read_ogg(data: bytes) -> dict[str, Any] | None:
    if data[:4] != b"OggS":
        return None
    ident = data.find(b"\x01vorbis")
    if ident < 0:
        return None
    rate = int.from_bytes(data[ident + 12 : ident + 16], "little")
    comment = data.find(b"\x03vorbis")
    comments = _vorbis_comments(data[comment + 7 :]) if comment >= 0 else {}
    last = data.rfind(b"OggS")
    granule = int.from_bytes(data[last + 6 : last + 14], "little")
    return _from_comments(comments, granule // rate if rate else 0)


def _read_wav(data: bytes) -> dict[str, Any] | None:
    try:
        with wave.open(io.BytesIO(data)) as reader:
            rate = reader.getframerate()
            length = reader.getnframes() // rate if rate else 0
    except (wave.Error, EOFError):
        return None
    return _from_comments({}, length)


_READERS: dict[str, Callable[[bytes], dict[str, Any] | None]] = {
    ".mp3": _read_mp3,
    ".flac": _read_flac,
    ".ogg": _read_ogg,
    ".wav": _read_wav,
}


def read_tags(path: str | Path) -> dict[str, Any] | None:
    """Read title, artist, album and length (seconds, or None) of an audio file.

    Returns None when the file cannot be read or its format is not supported.
    """
    reader = _READERS.get(Path(path).suffix.lower())
    if reader is None:
        return None
    try:
        data = Path(path).read_bytes()
    except OSError:
        return None
    return reader(data)


def read_metadata(
    infos: Iterable[AudioFileInfo],
    model: AudioFileModel,
    images: MutableMapping[str, Image.Image | None],
) -> None:
    """Fill song information and album covers from the files' tags."""
    for info in infos:
        if (
            info.time
            and info.title
            and info.artist
            and info.album
            and images.get(_image_key(info)) is not None
        ):
            continue
        tags = read_tags(info.filepath)
        if tags is None:
            continue
        info.title, info.artist, info.album = tags["title"], tags["artist"], tags["album"]
        if tags["length"] is None:
            continue
        info.time = int(tags["length"])
        key = _image_key(info)
        if images.get(key) is None and info.filepath.endswith("mp3"):
            image = read_cover_image_from_mp3(info.filepath)
            if image is not None:
                images[key] = image
        row = model._row_of(info)
        if row is not None:
            model.info_updated(row)


def _run_in_thread(task: Callable[[], None]) -> None:
    threading.Thread(target=task, daemon=True).start()


def _to_uint(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


class AudioFileModel:
    """Ordered list of songs with selection, export list and cover images.

    Signals: ``data_changed(first, last, roles)``, ``rows_inserted(first, last)``,
    ``rows_removed(first, last)`` and ``model_reset()``.
    """

    def __init__(self, run_in_background: Callable[[Callable[[], None]], None] | None = None) -> None:
        self._songs: list[AudioFileInfo] = []
        self._export: list[int] = []
        self._selection: set[int] = set()
        self.images: dict[str, Image.Image | None] = {}
        self._run_in_background = run_in_background or _run_in_thread
        self.data_changed = Signal()
        self.rows_inserted = Signal()
        self.rows_removed = Signal()
        self.model_reset = Signal()

    def __len__(self) -> int:
        return len(self._songs)

    @property
    def selection(self) -> frozenset[int]:
        return frozenset(self._selection)

    def _row_of(self, info: AudioFileInfo) -> int | None:
        return next((row for row, song in enumerate(self._songs) if song is info), None)

    def _check_row(self, row: int) -> None:
        if not 0 <= row < len(self._songs):
            raise IndexError(f"row {row} out of range")

    def row_count(self) -> int:
        return len(self._songs)

    def data(self, row: int, role: int) -> Any:
        """Return the value of ``role`` for the song at ``row``."""
        self._check_row(row)
        item = self._songs[row]
        if role == Role.PATH:
            return item.filepath
        if role == Role.ARTIST:
            return item.artist
        if role == Role.TITLE:
            return item.title or item.filepath
        if role == Role.TIME:
            return time_to_text(item.time)
        if role == Role.INDEX:
            return row
        if role == Role.SELECTED:
            return row in self._selection
        if role == Role.EXPORT_SELECTED:
            return row in self._export
        if role == Role.TAGS:
            return list(item.tags)
        return None

    def append_songs(self, entries: Iterable[Mapping[str, Any]]) -> None:
        """Append songs described by mappings with path, artist, title, album, time and tags."""
        infos = [
            AudioFileInfo(
                filepath=str(entry.get("path", "")),
                artist=str(entry.get("artist", "")).strip(),
                title=str(entry.get("title", "")).strip(),
                album=str(entry.get("album", "")),
                time=_to_uint(entry.get("time", 0)),
                tags=[str(tag) for tag in entry.get("tags") or []],
            )
            for entry in entries
        ]
        if not infos:
            return
        first = len(self._songs)
        self._songs.extend(infos)
        self.rows_inserted.emit(first, len(self._songs) - 1)

    def remove_songs(self, indexes: Iterable[int]) -> None:
        """Remove songs one by one, in the order given."""
        for row in indexes:
            self._check_row(row)
            del self._songs[row]
            self.rows_removed.emit(row, row)

    def songs(self) -> list[AudioFileInfo]:
        return list(self._songs)

    def song_info_at(self, index: int) -> AudioFileInfo | None:
        if not 0 <= index < len(self._songs):
            return None
        return self._songs[index]

    def role_names(self) -> dict[int, str]:
        return dict(_ROLE_NAMES)

    def info_updated(self, row: int) -> None:
        self.data_changed.emit(row, row, [Role.ARTIST, Role.TITLE, Role.TIME])

    def insert_songs_at(self, index: int, paths: Iterable[str | Path]) -> None:
        """Insert songs at ``index`` (each one in front of the previous) and read their tags."""
        if not 0 <= index <= len(self._songs):
            raise IndexError(f"insert position {index} out of range")
        infos = [AudioFileInfo(filepath=str(path)) for path in paths]
        if not infos:
            return
        self._songs[index:index] = reversed(infos)
        self.rows_inserted.emit(index, index + len(infos) - 1)
        self._run_in_background(lambda: read_metadata(infos, self, self.images))

    def reset_model(self) -> None:
        self._songs.clear()
        self.model_reset.emit()

    def add_tag(self, tag: str) -> None:
        """Toggle ``tag`` on every selected song."""
        for row in sorted(self._selection):
            song = self.song_info_at(row)
            if song is None:
                continue
            if tag in song.tags:
                song.tags[:] = [existing for existing in song.tags if existing != tag]
            else:
                song.tags.append(tag)
            self.data_changed.emit(row, row, [Role.TAGS])

    def add_to_export(self, index: int) -> None:
        self._export.append(index)
        self.data_changed.emit(index, index, [Role.EXPORT_SELECTED])

    def clean_export_list(self) -> None:
        self._export.clear()
        self.model_reset.emit()

    def export_list(self) -> list[int]:
        return list(self._export)

    def clear_selection(self) -> None:
        if not self._selection:
            return
        first, last = min(self._selection), max(self._selection)
        self._selection.clear()
        self.data_changed.emit(first, last, [Role.SELECTED])

    def select(self, ids: Iterable[int]) -> None:
        for row in ids:
            self._selection.add(row)
            self.data_changed.emit(row, row, [Role.SELECTED])

    def unselect(self, ids: Iterable[int]) -> None:
        for row in ids:
            self._selection.discard(row)
            self.data_changed.emit(row, row, [Role.SELECTED])

    def refresh_metadata(self) -> None:
        """Read tags again for the selected songs."""
        rows = sorted(self._selection)
        if not rows:
            return
        infos = [info for info in map(self.song_info_at, rows) if info is not None]
        first, last = rows[0], rows[-1]

        def work() -> None:
            read_metadata(infos, self, self.images)
            self.data_changed.emit(first, last, [])

        self._run_in_background(work)