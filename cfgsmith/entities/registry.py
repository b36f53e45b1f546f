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

"""Explicit in-memory registry of entity descriptors.

The registry is the programmatic alternative to manifest files: descriptors
are registered at build time and looked up by (name, kind). Services and
sub-modules share one namespace, so a module registered as a service can
also be pulled in as a sub-module (and vice versa).

Example:
    Register descriptors and resolve against them:
        ```python
        from cfgsmith.entities import DescriptorRegistry, EntityDescriptor, EntityKind

        registry = DescriptorRegistry()
        registry.register(
            EntityDescriptor("echo-server", EntityKind.SERVICE, ("port",))
        )
        desc = registry.load_descriptor("echo-server", EntityKind.SERVICE)
        ```
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from cfgsmith.exceptions import ConfigError, EntityNotFound

from .descriptor import DescriptorSource, EntityDescriptor, EntityKind


class DescriptorRegistry:
    """Descriptor source backed by explicit registrations.

    Args:
        descriptors: Descriptors to register immediately.
        fallback: Source consulted when the registry has no entry.
    """

    def __init__(
        self,
        descriptors: Iterable[EntityDescriptor] = (),
        *,
        fallback: DescriptorSource | None = None,
    ) -> None:
        self._entries: dict[tuple[str, str], EntityDescriptor] = {}
        self._fallback = fallback
        for descriptor in descriptors:
            self.register(descriptor)

    @staticmethod
    def _family(kind: EntityKind) -> str:
        return kind.directory

    def register(
        self, descriptor: EntityDescriptor, *, replace_existing: bool = False
    ) -> None:
        """Register a descriptor.

        Raises:
            ConfigError: If an entity with the same name is already
                registered for the same kind family and ``replace_existing``
                is False.
        """
        key = (descriptor.name, self._family(descriptor.kind))
        if key in self._entries and not replace_existing:
            raise ConfigError(
                f"{descriptor.kind.value} {descriptor.name!r} is already registered"
            )
        self._entries[key] = descriptor

    def __contains__(self, item: tuple[str, EntityKind]) -> bool:
        name, kind = item
        return (name, self._family(kind)) in self._entries

    def load_descriptor(self, name: str, kind: EntityKind) -> EntityDescriptor:
        """Return the descriptor of ``name`` as ``kind``.

        Raises:
            EntityNotFound: If neither the registry nor the fallback knows it.
        """
        descriptor = self._entries.get((name, self._family(kind)))
        if descriptor is None:
            if self._fallback is not None:
                return self._fallback.load_descriptor(name, kind)
            raise EntityNotFound(name, kind.value)
        if descriptor.kind is not kind:
            descriptor = replace(descriptor, kind=kind)
        return descriptor
