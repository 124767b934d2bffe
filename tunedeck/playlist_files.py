"""Reading and writing play lists, finding audio files and exporting songs."""

from __future__ import annotations

import base64
import binascii
import io
import json
import shutil
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from .library import AudioFileModel

AUDIO_EXTENSIONS = (".mp3", ".mpc", ".wav", ".wma", ".flac", ".ogg")


def read_m3u(path: str | Path, model: AudioFileModel) -> None:
    """Append the songs of an M3U play list to ``model``.

    The file is read as pairs of lines: an ``#EXTINF`` line followed by the
    song's location. Raises OSError if the file cannot be read.
    """
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    lines = iter(text.splitlines())
    entries = []
    for _ext in lines:
        uri = next(lines, "")
        entries.append({"path": uri, "title": "", "artist": "", "album": "", "time": 0})
    model.append_songs(entries)


def _encode_image(image: Image.Image) -> str:
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _decode_image(text: str) -> Image.Image | None:
    try:
        image = Image.open(io.BytesIO(base64.b64decode(text)))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError, ValueError):
        return None
    return image


def write_audio_list(path: str | Path, model: AudioFileModel) -> None:
    """Save the songs and cover images of ``model`` as a JSON play list."""
    songs = [
        {
            "path": song.filepath,
            "title": song.title,
            "artist": song.artist,
            "album": song.album,
            "time": int(song.time),
            "tags": list(song.tags),
        }
        for song in model.songs()
    ]
    images = [
        {"key": key, "img": _encode_image(image)}
        for key, image in model.images.items()
        if image is not None
    ]
    document = {"images": images, "songs": songs}
    Path(path).write_text(json.dumps(document, indent=4) + "\n", encoding="utf-8")


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value) if float(value).is_integer() else 0


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def read_audio_list(path: str | Path, model: AudioFileModel) -> None:
    """Load a JSON play list into ``model``: its cover images, then its songs.

    Raises OSError if the file cannot be read. A document that is not valid
    JSON is read as empty.
    """
    raw = Path(path).read_bytes()
    try:
        document = json.loads(raw)
    except ValueError:
        document = {}
    if not isinstance(document, dict):
        document = {}

    songs = document.get("songs")
    entries = []
    for obj in songs if isinstance(songs, list) else []:
        if not isinstance(obj, dict):
            obj = {}
        tags = obj.get("tags")
        entries.append(
            {
                "path": _as_str(obj.get("path")),
                "title": _as_str(obj.get("title")),
                "artist": _as_str(obj.get("artist")),
                "album": _as_str(obj.get("album")),
                "tags": [str(tag) for tag in tags] if isinstance(tags, list) else [],
                "time": _as_int(obj.get("time")),
            }
        )

    images = document.get("images")
    for obj in images if isinstance(images, list) else []:
        if not isinstance(obj, dict):
            obj = {}
        model.images[_as_str(obj.get("key"))] = _decode_image(_as_str(obj.get("img")))

    model.append_songs(entries)


def _visible(entry: Path) -> bool:
    return not entry.name.startswith(".")


def find_all_audio_files(directory: str | Path) -> list[str]:
    """Return the absolute paths of the audio files under ``directory``.

    Files of a directory come first, sorted by name ignoring case, followed
    by the files of each sub-directory, visited in the same order.
    """
    root = Path(directory).absolute()
    try:
        entries = sorted(
            (entry for entry in root.iterdir() if _visible(entry)),
            key=lambda entry: entry.name.casefold(),
        )
    except OSError:
        return []
    found = [
        str(entry)
        for entry in entries
        if entry.is_file() and entry.suffix.lower() in AUDIO_EXTENSIONS
    ]
    for entry in entries:
        if entry.is_dir():
            found.extend(find_all_audio_files(entry))
    return found


def export_files_to_directory(model: AudioFileModel, destination: str | Path) -> list[Path]:
    """Copy the songs of the export list into ``destination``; return the copies."""
    target = Path(destination)
    if not target.is_dir():
        raise NotADirectoryError(f"{target} is not a directory")
    sources = []
    for index in model.export_list():
        info = model.song_info_at(index)
        if info is None:
            raise IndexError(f"song {index} out of range")
        sources.append(Path(info.filepath))
    return [Path(shutil.copy2(source, target)) for source in sources]