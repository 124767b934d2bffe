"""A stand-in for a network source that hands out increasing numbers."""

from __future__ import annotations

import threading
from typing import Callable


class FakeNetworkReceiver:
    """Calls ``callback`` with 0, 1, 2, ... every ``interval`` seconds."""

    def __init__(
        self,
        callback: Callable[[int], object] | None,
        interval: float = 1.0,
        autostart: bool = True,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.callback = callback
        self.interval = interval
        self._counter = 0
        self._counter_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        if autostart:
            self.start()

    def __enter__(self) -> FakeNetworkReceiver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start calling back periodically; does nothing if already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()

    def stop(self) -> None:
        """Stop the periodic calls."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(2.0, self.interval * 2))

    def tick(self) -> None:
        """Hand the next number to the callback, if there is one."""
        if self.callback is None:
            return
        with self._counter_lock:
            value = self._counter
            self._counter += 1
        self.callback(value)