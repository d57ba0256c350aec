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
"""Exceptions definition module.

Here are all the exception classes defined and used by the library.
"""

from __future__ import annotations

__all__ = [
    "ListenerWrapError",
    "NotStoppedError",
    "StoppedError",
]


class ListenerWrapError(TypeError):
    """Error raised when the given object cannot be wrapped: it is not an open and listening TCP socket."""


class StoppedError(ConnectionError):
    """
    Error raised by :meth:`.StoppableListener.accept` once the listener has been stopped.

    This is the normal "exit the accept loop" signal, not a transport failure.
    """

    def __init__(self, message: str = "listener stopped") -> None:
        super().__init__(message)


class NotStoppedError(TimeoutError):
    """
    The listening port is still reachable after all the stop checks.

    Forceful intervention (e.g. process termination) may be required.
    """

    def __init__(self, address: tuple[str, int], timeout: float) -> None:
        """
        Parameters:
            address: The probed address.
            timeout: The total time spent waiting for the port to be released, in seconds.
        """

        super().__init__(f"listener failed to stop, {address[0]}:{address[1]} is still open after {timeout:.3f}s")

        self.address: tuple[str, int] = address
        """The probed address."""

        self.timeout: float = timeout
        """The total verification budget, in seconds."""
