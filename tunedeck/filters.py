"""Filtering views over the song list: by tag and by search text."""

from __future__ import annotations

from typing import Any

from .events import Signal
from .library import Role

_SOURCE_SIGNALS = ("data_changed", "rows_inserted", "rows_removed", "model_reset")


class ProxyModel:
    """A view of the source rows accepted by :meth:`filter_accepts_row`.

    The view follows its source: any change there filters the rows again and
    emits ``model_reset``. A proxy can itself be the source of another proxy.
    """

    def __init__(self, source: Any = None) -> None:
        self._source: Any = None
        self._rows: list[int] = []
        self.data_changed = Signal()
        self.rows_inserted = Signal()
        self.rows_removed = Signal()
        self.model_reset = Signal()
        self.source_model = source

    @property
    def source_model(self) -> Any:
        return self._source

    @source_model.setter
    def source_model(self, source: Any) -> None:
        if self._source is not None:
            for name in _SOURCE_SIGNALS:
                getattr(self._source, name).disconnect(self._on_source_changed)
        self._source = source
        if source is not None:
            for name in _SOURCE_SIGNALS:
                getattr(source, name).connect(self._on_source_changed)
        self.invalidate_filter()

    def _on_source_changed(self, *_args: Any) -> None:
        self.invalidate_filter()

    def __len__(self) -> int:
        return len(self._rows)

    def filter_accepts_row(self, source_row: int) -> bool:
        return True

    def invalidate_filter(self) -> None:
        """Filter the source rows again."""
        if self._source is None:
            self._rows = []
        else:
            self._rows = [row for row in range(self._source.row_count()) if self.filter_accepts_row(row)]
        self.model_reset.emit()

    def row_count(self) -> int:
        return len(self._rows)

    def map_to_source(self, row: int) -> int:
        """Return the source row shown at ``row``."""
        if not 0 <= row < len(self._rows):
            raise IndexError(f"row {row} out of range")
        return self._rows[row]

    def data(self, row: int, role: int) -> Any:
        return self._source.data(self.map_to_source(row), role)


class TagFilteredModel(ProxyModel):
    """Shows songs having one of the allowed tags and none of the forbidden ones."""

    def __init__(self, source: Any = None) -> None:
        self._allowed: set[str] = set()
        self._forbidden: set[str] = set()
        super().__init__(source)

    @property
    def allowed(self) -> frozenset[str]:
        return frozenset(self._allowed)

    @property
    def forbidden(self) -> frozenset[str]:
        return frozenset(self._forbidden)

    def filter_accepts_row(self, source_row: int) -> bool:
        if not self._allowed and not self._forbidden:
            return True
        tags = self._source.data(source_row, Role.TAGS) or []
        is_allowed = not self._allowed or any(tag in self._allowed for tag in tags)
        is_forbidden = any(tag in self._forbidden for tag in tags)
        return is_allowed and not is_forbidden

    def add_tag(self, tag: str, forbidden: bool = False) -> None:
        (self._forbidden if forbidden else self._allowed).add(tag)
        self.invalidate_filter()

    def remove_tag(self, tag: str, forbidden: bool = False) -> None:
        (self._forbidden if forbidden else self._allowed).discard(tag)
        self.invalidate_filter()

    def song_index_to_source(self, index: int) -> int:
        """Return the library index of the song shown at ``index``."""
        return self._source.data(self.map_to_source(index), Role.INDEX)


class FilteredModel(ProxyModel):
    """Shows songs whose title or artist contains the search text, ignoring case."""

    def __init__(self, source: Any = None) -> None:
        self._search = ""
        super().__init__(source)

    @property
    def search(self) -> str:
        return self._search

    @search.setter
    def search(self, text: str) -> None:
        self._search = text
        self.invalidate_filter()

    def filter_accepts_row(self, source_row: int) -> bool:
        if not self._search:
            return True
        needle = self._search.casefold()
        title = str(self._source.data(source_row, Role.TITLE) or "")
        artist = str(self._source.data(source_row, Role.ARTIST) or "")
        return needle in title.casefold() or needle in artist.casefold()