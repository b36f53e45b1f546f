# Copyright 2025 Roger Cibrian
#
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

"""Progress and diagnostic output for cfgsmith.

Resolution, rendering and writing report through a ``Logger`` so the
library stays quiet unless the CLI (or a caller) installs one. Four
channels are used:

- step: numbered progress of ``generate`` (resolve, render, write)
- warning: always shown; optional dependencies without a manifest,
  validate-mode files missing on disk, degraded merge capability
- verbose: dependency walk, skipped modules, files written
- debug: every hierarchy lookup and the layers it was answered from

Example:
    ```python
    from cfgsmith.logging import get_logger, set_global_logger

    set_global_logger(get_logger(verbose=True))
    ```

    With verbose output, ``cfgsmith generate --service echo-server --env test -v``
    prints lines such as::

        [1/3] Resolving service echo-server...
        [RESOLVE] echo-server -> base-http
        [OUTPUT] Generated services/echo-server/configs/app.properties
"""

from __future__ import annotations

from typing import Protocol


class Logger(Protocol):
    """What resolver, renderer and writer expect from a logger.

    ``prefix`` names the stage emitting the message: CONFIG, RESOLVE,
    LOOKUP, MERGE, RENDER or OUTPUT.
    """

    def step(self, step: int, total: int, message: str) -> None: ...

    def warning(self, prefix: str, message: str) -> None: ...

    def verbose(self, prefix: str, message: str) -> None: ...

    def debug(self, prefix: str, message: str) -> None: ...


class DefaultLogger:
    """Prints ``[PREFIX] message`` lines for the enabled channels.

    Args:
        verbose: Show the verbose channel.
        debug: Show hierarchy lookups as well. Turns on verbose.
    """

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self._verbose = verbose or debug
        self._debug = debug

    def step(self, step: int, total: int, message: str) -> None:
        print(f"[{step}/{total}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        print(f"[WARNING] [{prefix}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            print(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            print(f"[{prefix}] {message}")


class SilentLogger:
    """Discards everything. Installed globally until the CLI replaces it."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Return a printing logger for the ``-v``/``-d`` flags of a command."""
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Return the logger used by code that was not handed one explicitly."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Install ``logger`` for every later call that falls back to the global one.

    Resolver, engine and writer accept a ``logger`` argument; tests pass a
    recording logger there instead of replacing the global one.
    """
    global _global_logger
    _global_logger = logger
