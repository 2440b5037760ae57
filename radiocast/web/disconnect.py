from __future__ import annotations

import logging
import select
import socket
import threading
from typing import Optional

from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)

# Where WSGI servers expose the client connection (werkzeug dev server, gunicorn).
SOCKET_KEYS = ("werkzeug.socket", "gunicorn.socket")
POLL_SECONDS = 0.5


def client_socket(environ) -> Optional[socket.socket]:
    for key in SOCKET_KEYS:
        sock = environ.get(key)
        if sock is not None:
            return sock
    return None


def peer_closed(sock: socket.socket) -> bool:
    """True once the client has hung up: the socket is readable but has nothing to read."""
    try:
        readable, _, _ = select.select([sock], [], [], 0)
        if not readable:
            return False
        return sock.recv(1, socket.MSG_PEEK) == b""
    except ValueError:
        # TLS sockets refuse MSG_PEEK
        return False
    except OSError:
        return True


class DisconnectWatcher:
    """
    Cancels a request context when the client connection goes away.

    A plain WSGI view cannot notice a hang-up while it is still working, so a
    small daemon thread peeks at the connection every `interval` seconds
    until stop() is called.
    """

    def __init__(self, sock: socket.socket, ctx: RequestContext, interval: float = POLL_SECONDS):
        self._sock = sock
        self._ctx = ctx
        self._interval = interval
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="disconnect-watch", daemon=True)

    @classmethod
    def start(cls, environ, ctx: RequestContext, interval: float = POLL_SECONDS) -> Optional["DisconnectWatcher"]:
        """Watcher for the request's connection, or None when the server does not expose it."""
        sock = client_socket(environ)
        if sock is None:
            return None
        watcher = cls(sock, ctx, interval)
        watcher._thread.start()
        return watcher

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            if self._ctx.cancelled():
                return
            if peer_closed(self._sock):
                logger.warning("Client disconnected; cancelling report generation")
                self._ctx.cancel()
                return

    def stop(self) -> None:
        self._stopped.set()
