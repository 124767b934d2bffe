"""WebSocket server that shares the player's library and state with remote clients."""

from __future__ import annotations

import argparse
import contextlib
import logging
import socket
import threading
from pathlib import Path
from typing import Any, Mapping, Sequence

from websockets.exceptions import WebSocketException
from websockets.sync.server import serve

from . import constants
from .appcontroller import AppController
from .audio import PlayingMode
from .constants import Action, DataType
from .events import Signal
from .messages import (
    action_to_enum,
    build_message,
    file_to_bytes,
    image_to_bytes,
    message_to_object,
    model_to_parameter,
)

log = logging.getLogger(__name__)

DEFAULT_PORT = 10999


def _text(action: str, parameters: Mapping[str, Any] | None = None) -> str:
    return build_message(constants.AUDIO, action, parameters).decode("utf-8")


def _to_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


class ServerManager:
    """Serves the player to WebSocket clients.

    Every client gets the song list when it connects, then the current song,
    position, playback state and cover picture as they change; when streaming
    is on, the song files themselves are sent too. Clients send commands as
    JSON messages. Anything with a ``send(message)`` method can act as a client.

    Signals: ``port_changed`` and ``binary_received(data)``.
    """

    def __init__(
        self,
        app_controller: AppController | None = None,
        port: int = DEFAULT_PORT,
        host: str = "",
    ) -> None:
        self.app_controller = app_controller if app_controller is not None else AppController()
        self.host = host
        self._port = port
        self._clients: list[Any] = []
        self._clients_lock = threading.Lock()
        self._stream_music = False
        self._server: Any = None
        self._socket: socket.socket | None = None
        self._thread: threading.Thread | None = None

        self.port_changed = Signal()
        self.binary_received = Signal()

        audio = self.app_controller.audio_ctrl
        audio.picture_provider.current_image_changed.connect(self._on_image_changed)
        audio.content_changed.connect(self._on_content_changed)
        audio.title_changed.connect(self._on_title_changed)
        audio.seek_changed.connect(self._on_seek_changed)
        audio.state_changed.connect(self._on_state_changed)

    def __enter__(self) -> ServerManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- properties

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, port: int) -> None:
        if port == self._port:
            return
        self._port = port
        self.port_changed.emit()

    @property
    def bound_port(self) -> int | None:
        """The port actually listened on, or None when not listening."""
        return self._socket.getsockname()[1] if self._socket is not None else None

    @property
    def stream_music(self) -> bool:
        return self._stream_music

    @property
    def clients(self) -> list[Any]:
        with self._clients_lock:
            return list(self._clients)

    # -- clients

    def add_client(self, client: Any) -> None:
        """Register a newly connected client and send it the song list."""
        with self._clients_lock:
            self._clients.append(client)
        self.update_client(client)

    def remove_client(self, client: Any) -> None:
        with self._clients_lock:
            if client in self._clients:
                self._clients.remove(client)

    def _broadcast(self, message: str | bytes) -> None:
        for client in self.clients:
            try:
                client.send(message)
            except (OSError, WebSocketException) as error:
                log.debug("cannot send to client: %s", error)

    def update_client(self, client: Any) -> None:
        """Send the whole song list to ``client``."""
        if client is None:
            return
        songs = model_to_parameter(self.app_controller.audio_model)
        client.send(_text(constants.MODEL, {constants.JSON_SONGS: songs}))

    # -- player events

    def _on_image_changed(self, image: Any) -> None:
        self._broadcast(bytes([DataType.IMAGE_FILE]) + image_to_bytes(image))

    def _on_content_changed(self) -> None:
        if not self._stream_music:
            return
        content = self.app_controller.audio_ctrl.content
        self._broadcast(_text(constants.NEW_SONG, {constants.URI: content}))
        try:
            data = file_to_bytes(content)
        except OSError as error:
            log.debug("cannot read %s: %s", content, error)
            data = b""
        self._broadcast(bytes([DataType.MUSIC_FILE]) + data)

    def _on_title_changed(self) -> None:
        audio = self.app_controller.audio_ctrl
        info = audio.model.song_info_at(audio.song_index)
        if info is None:
            return
        self._broadcast(
            _text(
                constants.SELECT,
                {
                    constants.INFO_ALBUM: info.album,
                    constants.INFO_INDEX: audio.song_index,
                    constants.INFO_TITLE: info.title,
                    constants.INFO_ARTIST: info.artist,
                    constants.INFO_TIME: int(info.time),
                },
            )
        )

    def _on_seek_changed(self) -> None:
        seek = self.app_controller.audio_ctrl.seek
        self._broadcast(_text(constants.SEEK, {constants.INFO_VALUE: seek}))

    def _on_state_changed(self, state: Any) -> None:
        self._broadcast(_text(constants.STATE, {constants.STATE: int(state)}))

    # -- client messages

    def process_text(self, message: str | bytes) -> None:
        """Carry out a command received from a client."""
        msg = message_to_object(message)
        action = action_to_enum(msg)
        params = msg.get(constants.JSON_PARAMETER)
        if not isinstance(params, dict):
            params = {}
        audio = self.app_controller.audio_ctrl
        log.debug("server processText %s", message)

        if action == Action.PLAY:
            if constants.INFO_INDEX in params:
                audio.song_index = _to_int(params[constants.INFO_INDEX])
            audio.play()
        elif action == Action.STOP:
            audio.pause()
        elif action == Action.NEXT:
            audio.next()
        elif action == Action.PREVIOUS:
            audio.previous()
        elif action == Action.LOOP:
            audio.mode = PlayingMode.LOOP
        elif action == Action.RANDOM:
            audio.mode = PlayingMode.SHUFFLE
        elif action == Action.VOLUME_ON:
            audio.set_muted(False)
        elif action == Action.MUTE:
            audio.set_muted(True)
        elif action == Action.SET_VOLUME:
            audio.volume = _to_float(params.get(constants.VOLUME))
        elif action == Action.SELECT:
            pattern = msg.get(constants.JSON_PATTERN)
            audio.filtered_model.search = pattern if isinstance(pattern, str) else ""
        elif action == Action.STREAM_MUSIC:
            self._stream_music = True
        elif action == Action.PLAY_ON_SERVER:
            self._stream_music = False
        elif action in (Action.SET_TAG, Action.REMOVE_TAG):
            tag = params.get(constants.TAG)
            tag = tag if isinstance(tag, str) else ""
            forbidden = params.get(constants.FORBIDDEN) is True
            if action == Action.SET_TAG:
                audio.filtered_tag_model.add_tag(tag, forbidden)
            else:
                audio.filtered_tag_model.remove_tag(tag, forbidden)

    def process_binary(self, data: bytes) -> None:
        """Binary messages from clients carry no command; they are only reported."""
        log.debug("server processBinary: %d bytes", len(data))
        self.binary_received.emit(bytes(data))

    # -- network

    def _handle_connection(self, connection: Any) -> None:
        log.debug("new connection")
        self.add_client(connection)
        try:
            for message in connection:
                if isinstance(message, str):
                    self.process_text(message)
                else:
                    self.process_binary(message)
        except (OSError, WebSocketException) as error:
            log.debug("connection error: %s", error)
        finally:
            self.remove_client(connection)

    def start_listening(self) -> bool:
        """Accept clients in the background; returns whether listening succeeded."""
        if self._server is not None:
            return False
        try:
            sock = socket.create_server((self.host, self._port))
        except OSError as error:
            log.debug("listening failed: %s", error)
            return False
        self._socket = sock
        self._server = serve(self._handle_connection, sock=sock)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        log.debug("server is listening on port %s", self.bound_port)
        return True

    def close(self) -> None:
        """Stop listening and close every client connection."""
        server, self._server = self._server, None
        if server is not None:
            server.shutdown()
        for client in self.clients:
            close = getattr(client, "close", None)
            if close is not None:
                with contextlib.suppress(OSError, WebSocketException):
                    close()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=2)
        self._socket = None


def main(argv: Sequence[str] | None = None) -> int:
    """Run the music server until interrupted."""
    parser = argparse.ArgumentParser(description="Share the audio player over WebSocket.")
    parser.add_argument("--host", default="", help="address to listen on (all by default)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--settings", type=Path, default=None, help="settings file")
    args = parser.parse_args(argv)

    app = AppController(settings_path=args.settings)
    manager = ServerManager(app, port=args.port, host=args.host)
    if not manager.start_listening():
        print(f"cannot listen on port {args.port}")
        app.close()
        return 1
    print(f"Server is listening on port {manager.bound_port}")
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        manager.close()
        app.close()
    return 0