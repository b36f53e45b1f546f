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

"""Public API return types for cfgsmith.

This module defines dataclasses for return values from public API functions.
These types represent the results of rendering and writing configuration
files for a root entity.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from cfgsmith.core import generate_configs
        from cfgsmith.entities import EntityKind

        results = generate_configs(["echo-server"], EntityKind.SERVICE, {"env": "test"})
        for result in results:
            for written in result.files:
                print(written.path, written.status)
        ```

Note:
    Only public API return types belong in this module. Domain types (like
    ResolvedConfiguration) stay co-located with their related logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class RenderedFile:
    """A rendered artifact waiting to be written.

    Attributes:
        name: Output file name.
        target_dir: Directory the file belongs in.
        content: Rendered text, without the auto-generated banner.
        template: Template the content was rendered from.
        entity: Name of the entity that owns the template.
        clean: Clear ``target_dir`` before writing.
    """

    name: str
    target_dir: Path
    content: str
    template: str
    entity: str
    clean: bool = False

    @property
    def path(self) -> Path:
        return self.target_dir / self.name


@dataclass(frozen=True)
class WrittenFile:
    """Outcome of writing one rendered artifact.

    Attributes:
        path: Absolute output path.
        content: Content as written (banner included).
        status: "written" or "dry-run".
    """

    path: Path
    content: str
    status: str


@dataclass(frozen=True)
class GenerateResult:
    """Result from generating the configuration files of one root entity.

    Attributes:
        entity: Root entity name.
        kind: Root entity kind ("service" or "component").
        scope: Invocation scope.
        files: Outcome per output file, in write order.
        components: Components resolved for the root.
        validated: Number of files compared against existing output.
        dry_run: True if nothing was written.
        status: Always "success" for a completed root.
    """

    entity: str
    kind: str
    scope: dict[str, str]
    files: list[WrittenFile]
    components: list[str]
    validated: int
    dry_run: bool
    status: str
