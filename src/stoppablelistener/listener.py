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
"""Stoppable TCP listener module."""

from __future__ import annotations

__all__ = ["StoppableListener"]

import logging
import socket as _socket
import warnings
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Self

from . import verifier
from .exceptions import StoppedError
from .lowlevel import _utils, constants
from .lowlevel._signal import StopSignal

if TYPE_CHECKING:
    from socket import _RetAddress
    from types import TracebackType


class _BindAddressLoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    def __init__(self, logger: logging.Logger, address: _RetAddress) -> None:
        super().__init__(logger, {"bind_address": address})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        assert self.extra is not None  # nosec assert_used
        host, port = self.extra["bind_address"][:2]
        return f"[bind-addr={host}:{port}] {msg}", kwargs


class StoppableListener:
    """
    A wrapper around a bound and listening TCP socket, whose :meth:`accept` loop can be stopped cleanly.

    :meth:`accept` is meant to be called repeatedly from a dedicated thread, while :meth:`stop` or
    :meth:`stop_safely` are called from another one (e.g. a signal handler or a shutdown coordinator).

    Example:
        >>> listener = StoppableListener(sock)
        >>> while True:
        ...     try:
        ...         conn, address = listener.accept()
        ...     except StoppedError:
        ...         break
        ...     handle(conn, address)
    """

    __slots__ = (
        "__listener",
        "__address",
        "__stop_signal",
        "__accept_poll_interval",
        "__stop_check_timeout",
        "__max_stop_checks",
        "__verbose",
        "__logger",
        "__diagnostic_logger",
        "__weakref__",
    )

    def __init__(
        self,
        listener: _socket.socket,
        *,
        stop_check_timeout: float = constants.DEFAULT_STOP_CHECK_TIMEOUT,
        max_stop_checks: int = constants.DEFAULT_MAX_STOP_CHECKS,
        verbose: bool = constants.DEFAULT_VERBOSE,
        accept_poll_interval: float = constants.ACCEPT_POLL_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Parameters:
            listener: The bound and listening :data:`~socket.SOCK_STREAM` socket to wrap.
                      The listener takes ownership of the socket: it must not be closed by the caller.
            stop_check_timeout: Number of seconds to wait for during each stop check of :meth:`stop_safely`.
            max_stop_checks: Maximum number of stop checks before :meth:`stop_safely` gives up.
            verbose: Activates diagnostic logging.
            accept_poll_interval: Number of seconds a single accept call may block before checking for a stop request.
            logger: If given, the logger instance to use. Defaults to the module's logger.

        Raises:
            ListenerWrapError: `listener` is not an open and listening TCP socket.
        """
        self.__accept_poll_interval: float = _utils.validate_timeout_delay(accept_poll_interval, positive_check=True)
        self.__stop_check_timeout: float = _utils.validate_timeout_delay(stop_check_timeout, positive_check=True)
        self.__max_stop_checks: int = _utils.validate_stop_checks_count(max_stop_checks)
        self.__verbose: bool = bool(verbose)

        _utils.check_listener_socket(listener)

        self.__listener: _socket.socket = listener
        self.__address: _RetAddress = listener.getsockname()
        self.__stop_signal: StopSignal = StopSignal()
        self.__logger: logging.Logger = logger or logging.getLogger(__name__)
        self.__diagnostic_logger = _BindAddressLoggerAdapter(self.__logger, self.__address)

    def __del__(self, *, _warn: Any = warnings.warn) -> None:
        try:
            listener: _socket.socket = self.__listener
            stop_signal: StopSignal = self.__stop_signal
        except AttributeError:
            return
        if not stop_signal.is_set() and listener.fileno() >= 0:
            _warn(f"unstopped listener {self!r}", ResourceWarning, source=self)
            listener.close()

    def __repr__(self) -> str:
        try:
            address = self.__address
        except AttributeError:
            return f"<{self.__class__.__name__} (partially initialized)>"
        return f"<{self.__class__.__name__} address={address!r} stopped={self.is_stopped()}>"

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.stop()

    def __getstate__(self) -> Any:  # pragma: no cover
        raise TypeError(f"cannot pickle {self.__class__.__name__!r} object")

    def accept(self) -> tuple[_socket.socket, _RetAddress]:
        """
        Wait for an incoming connection.

        The underlying accept call wakes up every :attr:`accept_poll_interval` seconds to check for a stop request,
        and is retried transparently on timeout.

        Raises:
            StoppedError: The listener has been stopped.
            OSError: Any other error raised by :meth:`socket.socket.accept`, unmodified.

        Returns:
            a ``(conn, address)`` pair, as returned by :meth:`socket.socket.accept`.
        """
        listener = self.__listener
        stop_signal = self.__stop_signal

        while True:
            if stop_signal.is_set():
                raise StoppedError()

            try:
                listener.settimeout(self.__accept_poll_interval)
                client_socket, address = listener.accept()
            except OSError as exc:
                if stop_signal.is_set():
                    raise StoppedError() from exc
                match exc:
                    case TimeoutError():
                        continue
                    case OSError(errno=errno) if errno in constants.CLOSED_SOCKET_ERRNOS:
                        raise StoppedError() from exc
                    case _ if listener.fileno() < 0:
                        raise StoppedError() from exc
                    case _:
                        raise

            if stop_signal.is_set():
                # Connection queued right before the socket was closed.
                self.__log(logging.INFO, "StoppableListener discarding connection from %s accepted while stopping", address)
                client_socket.close()
                raise StoppedError()

            return client_socket, address

    def stop(self) -> None:
        """
        Stop the listener. Does not wait for the port to be released.

        Pending and future :meth:`accept` calls raise :exc:`StoppedError`. Calling this method more than once is a no-op.

        Raises:
            OSError: Closing the socket failed. The listener is stopped anyway.
        """
        if not self.__stop_signal.fire():
            return
        self.__log(logging.INFO, "StoppableListener stopping listening")
        listener = self.__listener
        try:
            # Wakes up a thread blocked in accept() on platforms supporting it.
            listener.shutdown(_socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            listener.close()
        except OSError as exc:
            self.__log(logging.WARNING, "StoppableListener non-fatal error closing underlying TCP listener: %s", exc)
            raise

    def stop_safely(self) -> None:
        """
        Stop the listener, then wait until the port is no longer reachable.

        This method blocks up to :attr:`stop_check_timeout` * :attr:`max_stop_checks` seconds.

        Raises:
            OSError: Closing the socket failed.
            NotStoppedError: The port is still open after all the stop checks.
        """
        self.stop()
        verifier.wait_until_port_closed(
            self.__address,
            stop_check_timeout=self.__stop_check_timeout,
            max_stop_checks=self.__max_stop_checks,
            logger=self.__diagnostic_logger if self.__verbose else None,
        )

    def is_stopped(self) -> bool:
        """
        Checks if :meth:`stop` has been called.

        Returns:
            the listener state.
        """
        return self.__stop_signal.is_set()

    def fileno(self) -> int:
        """
        Returns the underlying socket's file descriptor, or ``-1`` if the listener is stopped.
        """
        return self.__listener.fileno()

    def getsockname(self) -> _RetAddress:
        """
        Returns the address the listener is (or was) bound to. Still available after :meth:`stop`.
        """
        return self.__address

    def __log(self, level: int, msg: str, *args: Any) -> None:
        if self.__verbose:
            self.__diagnostic_logger.log(level, msg, *args)

    @property
    def socket(self) -> _socket.socket:
        """The wrapped socket. Read-only attribute."""
        return self.__listener

    @property
    def accept_poll_interval(self) -> float:
        """Number of seconds a single accept call may block. Read-only attribute."""
        return self.__accept_poll_interval

    @property
    def stop_check_timeout(self) -> float:
        """Number of seconds to wait for during each stop check."""
        return self.__stop_check_timeout

    @stop_check_timeout.setter
    def stop_check_timeout(self, value: float) -> None:
        self.__stop_check_timeout = _utils.validate_timeout_delay(value, positive_check=True)

    @property
    def max_stop_checks(self) -> int:
        """Maximum number of stop checks before :meth:`stop_safely` gives up."""
        return self.__max_stop_checks

    @max_stop_checks.setter
    def max_stop_checks(self, value: int) -> None:
        self.__max_stop_checks = _utils.validate_stop_checks_count(value)

    @property
    def verbose(self) -> bool:
        """Diagnostic logging switch."""
        return self.__verbose

    @verbose.setter
    def verbose(self, value: bool) -> None:
        self.__verbose = bool(value)

    @property
    def logger(self) -> logging.Logger:
        """The logger instance. Read-only attribute."""
        return self.__logger
