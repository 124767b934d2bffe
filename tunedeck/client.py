"""WebSocket client receiving the library and playback state from the server."""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Callable, Mapping

from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as _ws_connect

from . import constants
from .constants import Action, DataType
from .events import Signal
from .messages import action_to_enum, build_message, message_to_object

log = logging.getLogger(__name__)


def _to_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _to_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


class ClientController:
    """Talks to the music server over a WebSocket.

    Once connected, it reconnects by itself whenever the connection drops.
    Signals: ``url_changed``, ``connected_changed``, ``model_data_changed(obj)``,
    ``song_data_changed(data)``, ``image_changed(data)``, ``song_file_changed(uri)``,
    ``seek_changed(position)``, ``song_info_changed(obj)``, ``state_change(state)``
    and ``error_occurred(message)``.
    """

    def __init__(self, url: str = "", connector: Callable[[str], Any] | None = None) -> None:
        self._url = url
        self._connector = connector or _ws_connect
        self._connected = False
        self._connection: Any = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        self.url_changed = Signal()
        self.connected_changed = Signal()
        self.model_data_changed = Signal()
        self.song_data_changed = Signal()
        self.image_changed = Signal()
        self.song_file_changed = Signal()
        self.seek_changed = Signal()
        self.song_info_changed = Signal()
        self.state_change = Signal()
        self.error_occurred = Signal()

    def __enter__(self) -> ClientController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def url(self) -> str:
        return self._url

    @url.setter
    def url(self, url: str) -> None:
        if url == self._url:
            return
        self._url = url
        self.url_changed.emit()

    @property
    def connected(self) -> bool:
        return self._connected

    def _set_connected(self, value: bool) -> None:
        if value == self._connected:
            return
        self._connected = value
        self.connected_changed.emit()

    # -- connection

    def connect_to(self) -> None:
        """Open the connection in the background; does nothing if already running."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                connection = self._connector(self._url)
            except (OSError, WebSocketException) as error:
                log.debug("socket error: %s", error)
                self.error_occurred.emit(str(error))
                return
            with self._lock:
                self._connection = connection
            self._set_connected(True)
            try:
                for message in connection:
                    if isinstance(message, (bytes, bytearray)):
                        self.received_binary_data(bytes(message))
                    else:
                        self.received_text_data(message)
            except (OSError, WebSocketException) as error:
                log.debug("socket error: %s", error)
                self.error_occurred.emit(str(error))
            finally:
                with self._lock:
                    self._connection = None
                with contextlib.suppress(OSError, WebSocketException):
                    connection.close()
            self._set_connected(False)

    def wait(self, timeout: float | None = None) -> None:
        """Wait for the background connection to end."""
        if self._thread is not None:
            self._thread.join(timeout)

    def close(self) -> None:
        """Close the connection and stop reconnecting."""
        self._stop.set()
        with self._lock:
            connection = self._connection
        if connection is not None:
            with contextlib.suppress(OSError, WebSocketException):
                connection.close()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2)

    # -- messages

    def received_binary_data(self, data: bytes) -> None:
        """Dispatch a binary message by its leading data-type byte."""
        if not data:
            return
        if data[0] == DataType.MUSIC_FILE:
            self.song_data_changed.emit(data[1:])
        elif data[0] == DataType.IMAGE_FILE:
            self.image_changed.emit(data[1:])

    def received_text_data(self, message: str | bytes) -> None:
        """Dispatch a JSON message by its action."""
        msg = message_to_object(message)
        action = action_to_enum(msg)
        obj = msg.get(constants.AUDIO)
        if not isinstance(obj, dict):
            obj = {}
        if action == Action.AUDIO_MODEL:
            self.model_data_changed.emit(obj)
        elif action == Action.NEW_SONG:
            uri = obj.get(constants.URI)
            self.song_file_changed.emit(uri if isinstance(uri, str) else "")
        elif action == Action.SELECT:
            self.song_info_changed.emit(obj)
        elif action == Action.SEEK:
            self.seek_changed.emit(_to_float(obj.get(constants.INFO_VALUE)))
        elif action == Action.STATE:
            self.state_change.emit(_to_int(obj.get(constants.STATE)))

    def send_command(self, command: str, params: Mapping[str, Any] | None = None) -> bool:
        """Send ``command`` to the server; returns False when not connected."""
        with self._lock:
            connection = self._connection
        if connection is None:
            return False
        try:
            connection.send(build_message(constants.AUDIO, command, params).decode("utf-8"))
        except (OSError, WebSocketException) as error:
            log.debug("cannot send %s: %s", command, error)
            return False
        return True