"""A small synchronous signal/slot mechanism."""

from __future__ import annotations

import threading
from typing import Any, Callable


class Signal:
    """A list of callables invoked, in connection order, whenever the signal is emitted."""

    def __init__(self) -> None:
        self._slots: list[Callable[..., Any]] = []
        self._lock = threading.Lock()

    def connect(self, slot: Callable[..., Any]) -> None:
        """Call ``slot`` on every later emission."""
        if not callable(slot):
            raise TypeError(f"slot must be callable, got {slot!r}")
        with self._lock:
            self._slots.append(slot)

    def disconnect(self, slot: Callable[..., Any]) -> None:
        """Stop calling ``slot``; raises ValueError if it was never connected."""
        with self._lock:
            self._slots.remove(slot)

    def emit(self, *args: Any) -> None:
        """Call every connected slot with ``args``."""
        with self._lock:
            slots = list(self._slots)
        for slot in slots:
            slot(*args)

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)