"""List models of audio output devices and of the known song tags."""

from __future__ import annotations

from typing import Any, Iterable

from .events import Signal

DISPLAY_ROLE = 0
EDIT_ROLE = 2
TAG_NAME_ROLE = 0x0100 + 1

_DEFAULT_ROLE_NAMES = {
    0: "display",
    1: "decoration",
    2: "edit",
    3: "toolTip",
    4: "statusTip",
    5: "whatsThis",
}

_DEFAULT_TAGS = (
    "L5R", "sexy", "energy", "caca", "humour", "japon", "metal", "guitarhero", "jdr",
    "film", "classic", "punk", "sad", "celte", "fr", "guitar", "rap", "us",
)


def _check_row(row: int, size: int) -> None:
    if not 0 <= row < size:
        raise IndexError(f"row {row} out of range")


class DeviceModel:
    """Names of the available audio outputs."""

    def __init__(self, devices: Iterable[str] = ()) -> None:
        self._devices: list[str] = list(devices)
        self.model_reset = Signal()
        self.device_list_changed = Signal()

    @property
    def device_list(self) -> list[str]:
        return list(self._devices)

    @device_list.setter
    def device_list(self, devices: Iterable[str]) -> None:
        devices = list(devices)
        if devices == self._devices:
            return
        self._devices = devices
        self.model_reset.emit()
        self.device_list_changed.emit()

    def row_count(self) -> int:
        return len(self._devices)

    def data(self, row: int, role: int = DISPLAY_ROLE) -> Any:
        _check_row(row, len(self._devices))
        return self._devices[row] if role == DISPLAY_ROLE else None


class TagModel:
    """The fixed list of tags offered for songs."""

    def __init__(self) -> None:
        self._tags: list[str] = list(_DEFAULT_TAGS)

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    def row_count(self) -> int:
        return len(self._tags)

    def data(self, row: int, role: int = DISPLAY_ROLE) -> Any:
        _check_row(row, len(self._tags))
        if role in (DISPLAY_ROLE, EDIT_ROLE, TAG_NAME_ROLE):
            return self._tags[row]
        return None

    def role_names(self) -> dict[int, str]:
        names = dict(_DEFAULT_ROLE_NAMES)
        names[TAG_NAME_ROLE] = "tagName"
        return names