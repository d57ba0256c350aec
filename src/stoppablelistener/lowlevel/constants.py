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
"""stoppablelistener's constants module."""

from __future__ import annotations

__all__ = [
    "ACCEPT_CAPACITY_ERRNOS",
    "ACCEPT_CAPACITY_ERROR_SLEEP_TIME",
    "ACCEPT_POLL_INTERVAL",
    "CLOSED_SOCKET_ERRNOS",
    "DEFAULT_MAX_STOP_CHECKS",
    "DEFAULT_STOP_CHECK_TIMEOUT",
    "DEFAULT_VERBOSE",
    "IGNORABLE_ACCEPT_ERRNOS",
    "STOP_CHECK_RETRY_DELAY",
]

import errno as _errno
from typing import Final

# Errors that socket operations can return if the socket is closed
CLOSED_SOCKET_ERRNOS: Final[frozenset[int]] = frozenset(
    {
        # Unix
        _errno.EBADF,
        # Windows
        _errno.ENOTSOCK,
    }
)

# Errors that accept(2) can return, and which indicate that the system is overloaded
ACCEPT_CAPACITY_ERRNOS: Final[frozenset[int]] = frozenset(
    {
        _errno.EMFILE,
        _errno.ENFILE,
        _errno.ENOMEM,
        _errno.ENOBUFS,
    }
)

# How long to sleep when we get one of those errors
ACCEPT_CAPACITY_ERROR_SLEEP_TIME: Final[float] = 0.100

# Taken from Trio project
# Errors that accept(2) can return, and can be skipped
IGNORABLE_ACCEPT_ERRNOS: Final[frozenset[int]] = frozenset(
    {
        errno
        for name in (
            # Linux can do this when the a connection is denied by the firewall
            "EPERM",
            # BSDs with an early close/reset
            "ECONNABORTED",
            # All the other miscellany noted above -- may not happen in practice, but
            # whatever.
            "EPROTO",
            "ENETDOWN",
            "ENOPROTOOPT",
            "EHOSTDOWN",
            "ENONET",
            "EHOSTUNREACH",
            "EOPNOTSUPP",
            "ENETUNREACH",
            "ENOSR",
            "ESOCKTNOSUPPORT",
            "EPROTONOSUPPORT",
            "ETIMEDOUT",
            "ECONNRESET",
        )
        if (errno := getattr(_errno, name, None)) is not None
    }
)

# Number of seconds a single accept(2) call may block before checking for a stop request
ACCEPT_POLL_INTERVAL: Final[float] = 1.0

# Number of seconds to wait for during each stop check (the connect timeout of a probe)
DEFAULT_STOP_CHECK_TIMEOUT: Final[float] = 1.0

# Stop check limit before StoppableListener.stop_safely() gives up
DEFAULT_MAX_STOP_CHECKS: Final[int] = 3

# Default value for the verbose flag of new listeners
DEFAULT_VERBOSE: Final[bool] = False

# Pause between two successful probes, when the port is still reachable
STOP_CHECK_RETRY_DELAY: Final[float] = 0.010
