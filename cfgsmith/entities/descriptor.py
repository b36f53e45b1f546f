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

"""Entity descriptors: the declared configuration surface of an entity.

An entity is a named configuration-bearing unit of one of three kinds:

- service: a deployable unit; may depend on sub-modules and components
- submodule: a reusable module pulled in by a service or another module
- component: a reusable component pulled in by a service

A descriptor lists the entity's recognized configuration keys (optionally
with defaults), its declared dependencies, and where its templates live.
Descriptors are read-only for the duration of a resolution run.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol

from cfgsmith.hierarchy.source import ABSENT

# Names taken by dependency fields and the template context
RESERVED_KEYS = frozenset({"modules", "components", "rendered_components"})


class EntityKind(str, Enum):
    """Kind of a configuration entity."""

    SERVICE = "service"
    SUBMODULE = "submodule"
    COMPONENT = "component"

    @property
    def scope_dimension(self) -> str:
        """Scope dimension narrowed to the entity name when descending."""
        return "component" if self is EntityKind.COMPONENT else "service"

    @property
    def directory(self) -> str:
        """Directory (below the entities root) holding manifests of this kind."""
        return "components" if self is EntityKind.COMPONENT else "modules"

    @property
    def is_module(self) -> bool:
        return self is not EntityKind.COMPONENT


@dataclass(frozen=True)
class Dependency:
    """A declared dependency on another entity.

    Attributes:
        name: Name of the dependency.
        optional: Skip with a warning instead of failing when it is missing.
    """

    name: str
    optional: bool = False


@dataclass(frozen=True)
class EntityDescriptor:
    """Static declaration of an entity.

    Attributes:
        name: Entity name, unique within its kind.
        kind: Entity kind.
        keys: Recognized configuration keys, in declaration order.
        defaults: Manifest default per key (lowest-priority layer).
        modules: Sub-module dependencies, in declaration order.
        components: Component dependencies, in declaration order.
        template_dir: Directory with the entity's template files, if any.
        templates: Inline template bodies by template name.
    """

    name: str
    kind: EntityKind
    keys: tuple[str, ...]
    defaults: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    modules: tuple[Dependency, ...] = ()
    components: tuple[Dependency, ...] = ()
    template_dir: Path | None = None
    templates: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def namespace(self) -> str:
        """Namespace of the entity's lookup keys."""
        return "component" if self.kind is EntityKind.COMPONENT else self.name

    def lookup_key(self, key: str) -> str:
        """Return the fully-qualified lookup key for a bare property key.

        Example:
            >>> desc = EntityDescriptor("echo-server", EntityKind.SERVICE, ("port",))
            >>> desc.lookup_key("port")
            'echo-server::port'
        """
        return f"{self.namespace}::{key}"

    def default_for(self, key: str) -> Any:
        """Return the manifest default of ``key`` or ABSENT."""
        value = self.defaults.get(key)
        return ABSENT if value is None else value


class DescriptorSource(Protocol):
    """Protocol for anything that can load entity descriptors by name and kind."""

    def load_descriptor(self, name: str, kind: EntityKind) -> EntityDescriptor:
        """Load the descriptor of ``name`` as ``kind``.

        Raises:
            EntityNotFound: If no descriptor exists.
        """
        ...
