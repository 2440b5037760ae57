from __future__ import annotations

import socket
import time

import pytest

from radiocast.utils.context import RequestContext
from radiocast.web.disconnect import DisconnectWatcher, client_socket, peer_closed


@pytest.fixture
def connection():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    server_side.close()
    client_side.close()


def test_open_connection_is_not_closed(connection):
    server_side, _ = connection

    assert not peer_closed(server_side)


def test_pending_data_is_not_a_hang_up(connection):
    server_side, client_side = connection
    client_side.sendall(b"x")

    assert not peer_closed(server_side)
    assert server_side.recv(1) == b"x"


def test_hang_up_is_detected(connection):
    server_side, client_side = connection
    client_side.close()

    assert peer_closed(server_side)


@pytest.mark.parametrize("key", ["werkzeug.socket", "gunicorn.socket"])
def test_client_socket_from_environ(connection, key):
    server_side, _ = connection

    assert client_socket({key: server_side}) is server_side


def test_no_watcher_without_socket():
    assert DisconnectWatcher.start({}, RequestContext()) is None


def test_watcher_cancels_context_on_hang_up(connection):
    server_side, client_side = connection
    ctx = RequestContext()
    watcher = DisconnectWatcher.start({"werkzeug.socket": server_side}, ctx, interval=0.02)

    client_side.close()

    assert ctx.wait(2)
    assert ctx.cancelled()
    watcher.stop()


def test_stopped_watcher_leaves_context_alone(connection):
    server_side, client_side = connection
    ctx = RequestContext()
    watcher = DisconnectWatcher.start({"werkzeug.socket": server_side}, ctx, interval=0.02)

    watcher.stop()
    time.sleep(0.05)
    client_side.close()
    time.sleep(0.1)

    assert not ctx.cancelled()
