from __future__ import annotations

import itertools
from collections.abc import Callable
from socket import AF_INET, AF_INET6, IPPROTO_TCP, IPPROTO_UDP, SOCK_DGRAM, SOCK_STREAM, socket as Socket
from ssl import SSLSocket
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from unittest.mock import MagicMock

    from pytest_mock import MockerFixture


@pytest.fixture
def mock_socket_factory(mocker: MockerFixture) -> Callable[..., MagicMock]:
    fileno_counter = itertools.count()

    def factory(
        family: int = -1,
        type: int = -1,
        proto: int = -1,
        fileno: int | None = None,
        *,
        spec: type[Socket] = Socket,
    ) -> MagicMock:
        if family == -1:
            family = AF_INET
        if type == -1:
            type = SOCK_STREAM
        if proto == -1:
            proto = 0
        if fileno is None:
            fileno = 123 + next(fileno_counter)
        mock_socket = mocker.NonCallableMagicMock(spec=spec)
        mock_socket.family = family
        mock_socket.type = type
        mock_socket.proto = proto
        mock_socket.fileno.return_value = fileno

        def close_side_effect() -> None:
            mock_socket.fileno.return_value = -1

        mock_socket.close.side_effect = close_side_effect
        mock_socket.shutdown.return_value = None
        mock_socket.settimeout.return_value = None
        return mock_socket

    return factory


@pytest.fixture
def mock_tcp_socket_factory(mock_socket_factory: Callable[..., MagicMock]) -> Callable[..., MagicMock]:
    def factory(family: int = -1, fileno: int | None = None) -> MagicMock:
        assert family in {AF_INET, AF_INET6, -1}
        return mock_socket_factory(family, SOCK_STREAM, IPPROTO_TCP, fileno)

    return factory


@pytest.fixture
def mock_tcp_socket(mock_tcp_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    return mock_tcp_socket_factory()


@pytest.fixture
def mock_tcp_listener_socket(mock_tcp_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    mock_socket = mock_tcp_socket_factory()
    mock_socket.getsockname.return_value = ("127.0.0.1", 12345)
    # SO_ACCEPTCONN
    mock_socket.getsockopt.return_value = 1
    return mock_socket


@pytest.fixture
def mock_udp_socket(mock_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    return mock_socket_factory(AF_INET, SOCK_DGRAM, IPPROTO_UDP)


@pytest.fixture
def mock_unix_stream_socket(mock_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    from ..fixtures.socket import AF_UNIX_or_skip

    return mock_socket_factory(AF_UNIX_or_skip(), SOCK_STREAM, 0)


@pytest.fixture
def mock_ssl_socket(mock_socket_factory: Callable[..., MagicMock]) -> MagicMock:
    return mock_socket_factory(AF_INET, SOCK_STREAM, IPPROTO_TCP, spec=SSLSocket)
