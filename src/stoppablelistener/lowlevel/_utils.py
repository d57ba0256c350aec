# Copyright 2021-2025, Francis Clairicia-Rose-Claire-Josephine
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
#
from __future__ import annotations

__all__ = [
    "ElapsedTime",
    "check_listener_socket",
    "is_ssl_socket",
    "validate_stop_checks_count",
    "validate_timeout_delay",
]

import math
import socket as _socket
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Self, TypeGuard

try:
    import ssl as _ssl
except ImportError:  # pragma: no cover
    ssl = None
else:
    ssl = _ssl
    del _ssl

if TYPE_CHECKING:
    from ssl import SSLSocket as _SSLSocket


def is_ssl_socket(socket: _socket.socket) -> TypeGuard[_SSLSocket]:
    if ssl is None:
        return False
    return isinstance(socket, ssl.SSLSocket)


def check_listener_socket(socket: Any) -> None:
    """Raise ListenerWrapError if `socket` is not an open, listening, TCP socket"""
    from ..exceptions import ListenerWrapError

    if not isinstance(socket, _socket.socket):
        raise ListenerWrapError(f"Expected a socket.socket instance, got {socket!r}")
    if is_ssl_socket(socket):
        raise ListenerWrapError("ssl.SSLSocket instances are forbidden")
    if socket.fileno() < 0:
        raise ListenerWrapError("The socket is closed")
    if socket.family not in {_socket.AF_INET, _socket.AF_INET6}:
        raise ListenerWrapError("Only these families are supported: AF_INET, AF_INET6")
    if socket.type != _socket.SOCK_STREAM:
        raise ListenerWrapError("A 'SOCK_STREAM' socket is expected")
    if hasattr(_socket, "SO_ACCEPTCONN"):
        try:
            listening = bool(socket.getsockopt(_socket.SOL_SOCKET, _socket.SO_ACCEPTCONN))
        except OSError:
            # SO_ACCEPTCONN defined but not implemented.
            listening = True
        if not listening:
            raise ListenerWrapError("The socket is not listening (listen() was not called)")


def validate_timeout_delay(delay: float, *, positive_check: bool) -> float:
    if math.isnan(delay):
        raise ValueError("Invalid delay: NaN (not a number)")
    if positive_check and delay <= 0.0:
        raise ValueError("Invalid delay: must be a strictly positive value")
    return float(delay)


def validate_stop_checks_count(count: int) -> int:
    if not isinstance(count, int) or isinstance(count, bool):
        raise TypeError(f"Expected an integer, got {count!r}")
    if count < 1:
        raise ValueError("The number of stop checks must be greater than or equal to 1")
    return count


class ElapsedTime:
    __slots__ = ("_current_time_func", "_start_time", "_end_time")

    def __init__(self) -> None:
        self._current_time_func: Callable[[], float] = time.perf_counter
        self._start_time: float | None = None
        self._end_time: float | None = None

    def __enter__(self) -> Self:
        if self._start_time is not None:
            raise RuntimeError("Already entered")
        self._start_time = self._current_time_func()
        return self

    def __exit__(self, *args: Any) -> None:
        end_time = self._current_time_func()
        if self._end_time is not None:
            raise RuntimeError("Already exited")
        self._end_time = end_time

    def get_elapsed(self) -> float:
        start_time = self._start_time
        if start_time is None:
            raise RuntimeError("Not entered")
        end_time = self._end_time
        if end_time is None:
            raise RuntimeError("Within context")
        return end_time - start_time

    def recompute_timeout(self, old_timeout: float) -> float:
        elapsed_time = self.get_elapsed()
        new_timeout = old_timeout - elapsed_time
        if new_timeout < 0.0:
            new_timeout = 0.0
        return new_timeout
