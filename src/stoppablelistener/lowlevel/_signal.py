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
"""One-shot stop signal module."""

from __future__ import annotations

__all__ = ["StopSignal"]

import threading


class StopSignal:
    """
    An initially open gate which can be closed exactly once.

    Any number of threads can poll or wait for the signal without consuming it.
    """

    __slots__ = ("__lock", "__event", "__weakref__")

    def __init__(self) -> None:
        self.__lock: threading.Lock = threading.Lock()
        self.__event: threading.Event = threading.Event()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} fired={self.is_set()}>"

    def fire(self) -> bool:
        """
        Fire the signal.

        Returns:
            :data:`True` for the call which actually performed the transition,
            :data:`False` if the signal had already been fired.
        """
        with self.__lock:
            if self.__event.is_set():
                return False
            self.__event.set()
            return True

    def is_set(self) -> bool:
        return self.__event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self.__event.wait(timeout)
