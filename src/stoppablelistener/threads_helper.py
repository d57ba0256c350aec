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
"""Accept loop implementation tools module for thread management."""

from __future__ import annotations

__all__ = [
    "AcceptLoopThread",
]

import errno as _errno
import logging
import os
import socket as _socket
import threading as _threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .exceptions import StoppedError
from .lowlevel import _utils, constants

if TYPE_CHECKING:
    from .listener import StoppableListener


class AcceptLoopThread(_threading.Thread):
    """
    A :class:`~threading.Thread` dedicated to the accept loop of a :class:`.StoppableListener`.

    Each accepted connection is given to `connection_cb`, which becomes responsible for closing it.
    The thread exits when the listener is stopped.
    """

    def __init__(
        self,
        listener: StoppableListener,
        connection_cb: Callable[[_socket.socket, Any], None],
        group: None = None,
        name: str | None = None,
        *,
        daemon: bool | None = None,
    ) -> None:
        """
        Parameters:
            listener: the listener to accept connections from.
            connection_cb: called with each ``(conn, address)`` pair, in this thread.
            group: See :class:`threading.Thread` for details.
            name: See :class:`threading.Thread` for details.
            daemon: See :class:`threading.Thread` for details.
        """

        super().__init__(group=group, target=None, name=name, daemon=daemon)
        self.__listener: StoppableListener = listener
        self.__connection_cb: Callable[[_socket.socket, Any], None] = connection_cb
        self.__logger: logging.Logger = listener.logger
        self.__exception: OSError | None = None

    def run(self) -> None:
        """
        Method representing the thread's activity.

        Calls the listener's :meth:`~.StoppableListener.accept` method until :exc:`.StoppedError` is raised.
        Ignorable accept errors are skipped. Any other error ends the loop and is stored in :attr:`exception`.
        """
        listener = self.__listener
        logger = self.__logger
        while True:
            try:
                conn, address = listener.accept()
            except StoppedError:
                logger.debug("Listener stopped, accept loop exiting")
                return
            except OSError as exc:
                if exc.errno in constants.IGNORABLE_ACCEPT_ERRNOS:
                    logger.warning("Ignored error while accepting connection: %s", exc)
                    continue
                if exc.errno in constants.ACCEPT_CAPACITY_ERRNOS:
                    logger.error(
                        "accept returned %s (%s); retrying in %s seconds",
                        _errno.errorcode[exc.errno],
                        os.strerror(exc.errno),
                        constants.ACCEPT_CAPACITY_ERROR_SLEEP_TIME,
                        exc_info=exc,
                    )
                    time.sleep(constants.ACCEPT_CAPACITY_ERROR_SLEEP_TIME)
                    continue
                logger.error("Error while accepting connection, accept loop exiting", exc_info=exc)
                self.__exception = exc
                return

            logger.debug("Accepted new connection (address = %s)", address)
            try:
                self.__connection_cb(conn, address)
            except Exception:
                logger.exception("Error occurred when handling connection from %s", address)
                conn.close()

    def join(self, timeout: float | None = None, *, safely: bool = False) -> None:
        """
        Wait until the thread terminates.

        This calls the listener's :meth:`~.StoppableListener.stop` method (or :meth:`~.StoppableListener.stop_safely`
        if `safely` is true) and then the default :meth:`~threading.Thread.join` method.

        Parameters:
            timeout: when it present and not None, it should be a floating point number specifying a timeout
                     for the operation in seconds (or fractions thereof).
                     As :meth:`join` always returns None, you must call :meth:`~threading.Thread.is_alive` after join
                     to decide whether a timeout happened -- if the thread is still alive, the join() call timed out.
                     The time taken by :meth:`~.StoppableListener.stop_safely` is substracted.
            safely: wait for the port to be released before joining.

        Raises:
            NotStoppedError: `safely` is true and the port is still open after all the stop checks.
        """
        with _utils.ElapsedTime() as elapsed:
            if safely:
                self.__listener.stop_safely()
            else:
                self.__listener.stop()
        if timeout is not None:
            timeout = elapsed.recompute_timeout(timeout)
        super().join(timeout=timeout)

    @property
    def listener(self) -> StoppableListener:
        """The managed listener. Read-only attribute."""
        return self.__listener

    @property
    def exception(self) -> OSError | None:
        """The error which ended the accept loop, if any. Read-only attribute."""
        return self.__exception
