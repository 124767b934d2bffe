"""A plain TCP server taking short text commands that remote-control the player."""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
from typing import Iterable

from .events import Signal

DEFAULT_PORT = 4000
_READ_SIZE = 100

log = logging.getLogger(__name__)


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


class CommandServer:
    """Listens for commands such as ``next``, ``-p``, ``-v 40`` or ``play``.

    Signals: ``next``, ``pause``, ``play``, ``previous``, ``increase``,
    ``decrease``, ``change_mode(mode)`` and ``volume(value)``. The last client
    that connected is the one commands are read from and statuses sent to.
    """

    def __init__(self) -> None:
        self.next = Signal()
        self.pause = Signal()
        self.play = Signal()
        self.previous = Signal()
        self.increase = Signal()
        self.decrease = Signal()
        self.change_mode = Signal()
        self.volume = Signal()
        self._lock = threading.Lock()
        self._server: socket.socket | None = None
        self._client: socket.socket | None = None
        self._stop = threading.Event()
        self._accept_thread: threading.Thread | None = None

    def __enter__(self) -> CommandServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def port(self) -> int | None:
        """The port listened on, or None when not listening."""
        with self._lock:
            return self._server.getsockname()[1] if self._server is not None else None

    def process_command(self, args: Iterable[str]) -> None:
        """Emit the signal matching a command split into words."""
        args = list(args)
        if not args:
            return
        command = args[0]
        if command in ("-n", "next"):
            self.next.emit()
        elif command in ("-p", "previous"):
            self.previous.emit()
        elif command in ("-i", "increase"):
            self.increase.emit()
        elif command in ("-d", "decrease"):
            self.decrease.emit()
        elif command == "-v":
            if len(args) >= 2:
                self.volume.emit(_to_int(args[1]))
        elif command == "play":
            self.play.emit()
        elif command == "pause":
            self.pause.emit()

    def handle_data(self, data: bytes) -> None:
        """Handle one read from the client: space-separated words of a command."""
        if not data:
            return
        text = data.decode("utf-8", errors="replace")
        self.process_command(word for word in text.split(" ") if word)

    def start_listening(self, host: str = "", port: int = DEFAULT_PORT) -> bool:
        """Start accepting clients in the background; returns whether listening succeeded."""
        with self._lock:
            if self._server is not None:
                return False
            try:
                server = socket.create_server((host, port))
            except OSError as error:
                log.debug("listening failed: %s", error)
                return False
            server.settimeout(0.2)
            self._server = server
            self._stop.clear()
        self._accept_thread = threading.Thread(target=self._accept_loop, args=(server,), daemon=True)
        self._accept_thread.start()
        log.debug("listening on port %s", server.getsockname()[1])
        return True

    def _accept_loop(self, server: socket.socket) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = server.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            conn.settimeout(None)
            with self._lock:
                self._client = conn
            threading.Thread(target=self._read_loop, args=(conn,), daemon=True).start()

    def _read_loop(self, conn: socket.socket) -> None:
        with contextlib.suppress(OSError):
            while data := conn.recv(_READ_SIZE):
                self.handle_data(data)

    def send_status(self, status: str) -> None:
        """Send ``status`` to the current client, if there is one."""
        with self._lock:
            client = self._client
        if client is None:
            return
        with contextlib.suppress(OSError):
            client.sendall(status.encode("utf-8"))

    def close(self) -> None:
        """Stop listening and drop the current client."""
        self._stop.set()
        with self._lock:
            server, self._server = self._server, None
            client, self._client = self._client, None
        if server is not None:
            server.close()
        if client is not None:
            with contextlib.suppress(OSError):
                client.shutdown(socket.SHUT_RDWR)
            client.close()
        if self._accept_thread is not None:
            self._accept_thread.join(timeout=2)
            self._accept_thread = None