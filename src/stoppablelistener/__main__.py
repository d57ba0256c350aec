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
"""Demonstration server: accepts connections until SIGINT/SIGTERM, then stops safely."""

from __future__ import annotations

__all__ = ["main"]

import argparse
import logging
import signal
import socket
import threading
from collections.abc import Sequence
from typing import Any

from .exceptions import NotStoppedError
from .listener import StoppableListener
from .lowlevel import constants
from .threads_helper import AcceptLoopThread

logger = logging.getLogger("stoppablelistener.app")


def _close_connection(conn: socket.socket, address: Any) -> None:
    logger.info("%s connected, closing", address)
    conn.close()


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="python -m stoppablelistener")

    parser.add_argument(
        "-v",
        "--verbose",
        dest="log_level",
        action="store_const",
        const="DEBUG",
        default="INFO",
        help="Increase verbose level",
    )
    parser.add_argument("-H", "--host", default="localhost", help="address to bind to (default: %(default)s)")
    parser.add_argument("-p", "--port", type=int, default=0, help="port to bind to (default: random)")
    parser.add_argument(
        "--stop-check-timeout",
        type=float,
        default=constants.DEFAULT_STOP_CHECK_TIMEOUT,
        help="seconds to wait for during each stop check (default: %(default)s)",
    )
    parser.add_argument(
        "--max-stop-checks",
        type=int,
        default=constants.DEFAULT_MAX_STOP_CHECKS,
        help="maximum number of stop checks (default: %(default)s)",
    )

    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="[ %(levelname)s ] [ %(name)s ] %(message)s")

    sock = socket.create_server((args.host, args.port))
    listener = StoppableListener(
        sock,
        stop_check_timeout=args.stop_check_timeout,
        max_stop_checks=args.max_stop_checks,
        verbose=args.log_level == "DEBUG",
    )

    shutdown_requested = threading.Event()

    def signal_handler(signum: int, frame: Any) -> None:
        logger.info("Received %s", signal.Signals(signum).name)
        shutdown_requested.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    accept_loop = AcceptLoopThread(listener, _close_connection, name="accept-loop")
    accept_loop.start()
    host, port = listener.getsockname()[:2]
    logger.info("Start serving at %s:%d", host, port)

    # Event.wait() without timeout would block signal delivery on some platforms.
    while not shutdown_requested.wait(0.5):
        if not accept_loop.is_alive():
            break

    try:
        accept_loop.join(safely=True)
    except NotStoppedError as exc:
        logger.error("%s", exc)
        return 1
    if accept_loop.exception is not None:
        return 1
    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
