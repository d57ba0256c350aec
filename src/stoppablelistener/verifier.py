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
"""Shutdown verification module.

Closing a listening socket is not synchronous with the port becoming unreachable.
The only externally observable proof that the kernel still accepts connections on a port
is a successful connection, so the port is probed until a connection attempt fails.
"""

from __future__ import annotations

__all__ = [
    "probe_address",
    "to_probe_address",
    "wait_until_port_closed",
]

import logging
import socket as _socket
import time
from typing import Any

from .exceptions import NotStoppedError
from .lowlevel import _utils, constants

_UNSPECIFIED_ADDRESSES: dict[str, str] = {
    "": "127.0.0.1",
    "0.0.0.0": "127.0.0.1",  # nosec hardcoded_bind_all_interfaces
    "::": "::1",
}


def to_probe_address(address: tuple[Any, ...]) -> tuple[str, int]:
    """
    Returns the ``(host, port)`` pair to connect to in order to reach a listener bound to `address`.

    A listener bound to every interface is reached through the loopback address of the same family.
    """
    host: str = address[0]
    port: int = address[1]
    return _UNSPECIFIED_ADDRESSES.get(host, host), port


def probe_address(address: tuple[str, int], timeout: float) -> bool:
    """
    Try once to connect to `address`.

    Returns:
        :data:`True` if the connection succeeded (something is listening), :data:`False` otherwise.
    """
    try:
        probe = _socket.create_connection(address, timeout=timeout)
    except OSError:
        # Connection refused, timed out or host unreachable
        return False
    probe.close()
    return True


def wait_until_port_closed(
    address: tuple[Any, ...],
    *,
    stop_check_timeout: float = constants.DEFAULT_STOP_CHECK_TIMEOUT,
    max_stop_checks: int = constants.DEFAULT_MAX_STOP_CHECKS,
    logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
) -> None:
    """
    Block until `address` does not accept connections anymore.

    Parameters:
        address: The listener's own address (as returned by :meth:`socket.socket.getsockname`).
        stop_check_timeout: Connect timeout of each probe, in seconds.
        max_stop_checks: The total wait is bounded by ``stop_check_timeout * max_stop_checks``.
        logger: If given, progress is reported to this logger.

    Raises:
        NotStoppedError: The port is still reachable when the deadline is reached.
    """
    stop_check_timeout = _utils.validate_timeout_delay(stop_check_timeout, positive_check=True)
    max_stop_checks = _utils.validate_stop_checks_count(max_stop_checks)
    probe_addr = to_probe_address(address)

    budget: float = stop_check_timeout * max_stop_checks
    deadline: float = time.monotonic() + budget
    while time.monotonic() < deadline:
        if not probe_address(probe_addr, stop_check_timeout):
            if logger is not None:
                logger.info("wait_until_port_closed completed ok")
            return
        if logger is not None:
            logger.info("wait_until_port_closed the port is still open")
        time.sleep(constants.STOP_CHECK_RETRY_DELAY)

    if logger is not None:
        logger.error("wait_until_port_closed max checks exceeded; stop failed")
    raise NotStoppedError(probe_addr, budget)
