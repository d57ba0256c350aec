from __future__ import annotations

import socket
from collections.abc import Iterator

from stoppablelistener.listener import StoppableListener

import pytest


@pytest.fixture
def tcp_listener_socket() -> Iterator[socket.socket]:
    with socket.create_server(("127.0.0.1", 0)) as sock:
        yield sock


@pytest.fixture
def listener(tcp_listener_socket: socket.socket) -> Iterator[StoppableListener]:
    listener = StoppableListener(
        tcp_listener_socket,
        accept_poll_interval=0.1,
        stop_check_timeout=0.1,
        max_stop_checks=10,
    )
    try:
        yield listener
    finally:
        listener.stop()


@pytest.fixture
def listener_address(listener: StoppableListener) -> tuple[str, int]:
    host, port = listener.getsockname()[:2]
    return host, port
