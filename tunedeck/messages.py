"""Building and reading the JSON and binary messages exchanged with clients."""

from __future__ import annotations

import io
import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from PIL import Image

from . import constants
from .constants import Action
from .library import AudioFileModel


def _json_default(value: Any) -> Any:
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"{type(value).__name__} cannot be sent in a message")


def build_message(service: str, action: str, parameters: Mapping[str, Any] | None = None) -> bytes:
    """Return the indented JSON document for ``action`` of ``service``."""
    document = {
        constants.JSON_SERVICE: service,
        constants.JSON_ACTION: action,
        constants.JSON_PARAMETER: dict(parameters or {}),
    }
    text = json.dumps(document, indent=4, sort_keys=True, ensure_ascii=False, default=_json_default)
    return (text + "\n").encode("utf-8")


def model_to_parameter(model: AudioFileModel) -> list[dict[str, Any]]:
    """Describe every song of ``model`` as a JSON-ready mapping."""
    return [
        {
            constants.INFO_ALBUM: song.album,
            constants.INFO_TIME: int(song.time),
            constants.INFO_TITLE: song.title,
            constants.INFO_ARTIST: song.artist,
            constants.INFO_PATH: song.filepath,
            constants.INFO_TAGS: list(song.tags),
            constants.INFO_INDEX: index,
        }
        for index, song in enumerate(model.songs())
    ]


def message_to_object(message: str | bytes) -> dict[str, Any]:
    """Parse a JSON message; anything but a JSON object gives an empty dict."""
    try:
        obj = json.loads(message)
    except (ValueError, TypeError):
        return {}
    return obj if isinstance(obj, dict) else {}


def action_to_enum(obj: Mapping[str, Any]) -> Action:
    """Return the action named in ``obj``; unknown names fall back to ``Action.PLAY``."""
    name = obj.get(constants.JSON_ACTION)
    if not isinstance(name, str):
        return Action.PLAY
    return constants.ACTION_BY_NAME.get(name, Action.PLAY)


def file_to_bytes(path: str | Path) -> bytes:
    """Return the whole content of a file; raises OSError if it cannot be read."""
    return Path(path).read_bytes()


def image_to_bytes(image: Image.Image | None) -> bytes:
    """Encode ``image`` as PNG; no image gives empty bytes."""
    if image is None:
        return b""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()