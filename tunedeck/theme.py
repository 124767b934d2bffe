"""Day and night icon theme."""

from __future__ import annotations

from .events import Signal

DEFAULT_ICON_ROOT = "qrc:/icons/resources/icons/"
NIGHT_SELECTOR = "+dark"


class Theme:
    """Chooses icon paths according to the night mode.

    Signals: ``night_mode_changed``, ``undo_icon_changed``,
    ``redo_icon_changed`` and ``list_icon_changed``.
    """

    def __init__(self, icon_root: str = DEFAULT_ICON_ROOT) -> None:
        self.icon_root = icon_root
        self._night_mode = False
        self.night_mode_changed = Signal()
        self.undo_icon_changed = Signal()
        self.redo_icon_changed = Signal()
        self.list_icon_changed = Signal()

    @property
    def night_mode(self) -> bool:
        return self._night_mode

    @night_mode.setter
    def night_mode(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self._night_mode:
            return
        self._night_mode = enabled
        self.night_mode_changed.emit()
        self.undo_icon_changed.emit()
        self.redo_icon_changed.emit()
        self.list_icon_changed.emit()

    def image_path(self, image: str) -> str:
        """Return the path of ``image`` in the current theme."""
        folder = f"{NIGHT_SELECTOR}/" if self._night_mode else ""
        return f"{self.icon_root}{folder}{image}"

    @property
    def undo_icon(self) -> str:
        return self.image_path("undo.svg")

    @property
    def redo_icon(self) -> str:
        return self.image_path("redo.svg")

    @property
    def list_icon(self) -> str:
        return self.image_path("list.svg")