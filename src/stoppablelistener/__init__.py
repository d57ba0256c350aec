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
"""A cleanly stoppable TCP listener

stoppablelistener wraps a bound listening socket so that a concurrent accept loop
can be unblocked deterministically, and optionally waits until the port is released.
"""

from __future__ import annotations

__all__ = [
    "AcceptLoopThread",
    "ListenerWrapError",
    "NotStoppedError",
    "StoppableListener",
    "StoppedError",
    "wait_until_port_closed",
]

__author__ = "FrankySnow9"
__contact__ = "clairicia.rcj.francis@gmail.com"
__copyright__ = "Copyright (c) 2021-2025, Francis Clairicia-Rose-Claire-Josephine"
__credits__ = ["FrankySnow9"]
__deprecated__ = False
__email__ = "clairicia.rcj.francis@gmail.com"
__license__ = "Apache-2.0"
__maintainer__ = "FrankySnow9"
__status__ = "Development"
__version__ = "1.0.0"

from .exceptions import ListenerWrapError, NotStoppedError, StoppedError
from .listener import StoppableListener
from .threads_helper import AcceptLoopThread
from .verifier import wait_until_port_closed
