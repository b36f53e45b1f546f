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

"""Manifest files: declarative entity descriptors on disk.

Layout below the entities directory:

    modules/<name>/manifest.yaml        services and sub-modules
    modules/<name>/templates/*.j2
    components/<name>/manifest.yaml
    components/<name>/templates/*.j2

Manifest format:

    keys:                 # list of names, or mapping name -> default
      - port
      - host
    modules:              # sub-module dependencies (modules only)
      - base-http
      - name: tracing
        optional: true
    components:           # component dependencies (modules only)
      - memcached

Private Helpers:
    - _parse_keys: Normalize the keys field to (keys, defaults)
    - _parse_dependencies: Normalize dependency entries
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from cfgsmith.exceptions import ConfigError, EntityNotFound
from cfgsmith.logging import get_global_logger

from .descriptor import RESERVED_KEYS, Dependency, EntityDescriptor, EntityKind

MANIFEST_NAMES = ("manifest.yaml", "manifest.yml")
TEMPLATES_DIR_NAME = "templates"

_KNOWN_FIELDS = {"keys", "modules", "components"}


def _parse_keys(raw: Any, where: str) -> tuple[tuple[str, ...], dict[str, Any]]:
    if raw is None:
        return (), {}
    if isinstance(raw, dict):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = [(k, None) for k in raw]
    else:
        raise ConfigError(f"'keys' must be a list or mapping ({where})")

    keys: list[str] = []
    defaults: dict[str, Any] = {}
    for key, default in items:
        if not isinstance(key, str) or not key:
            raise ConfigError(f"Invalid key name {key!r} ({where})")
        if key in RESERVED_KEYS:
            raise ConfigError(f"Key name {key!r} is reserved ({where})")
        if key in keys:
            raise ConfigError(f"Duplicate key {key!r} ({where})")
        keys.append(key)
        if default is not None:
            defaults[key] = default
    return tuple(keys), defaults


def _parse_dependencies(
    raw: Any, field_name: str, where: str
) -> tuple[Dependency, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ConfigError(f"{field_name!r} must be a list ({where})")

    deps: list[Dependency] = []
    for entry in raw:
        if isinstance(entry, str) and entry:
            dep = Dependency(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
            dep = Dependency(entry["name"], optional=bool(entry.get("optional", False)))
        else:
            raise ConfigError(f"Invalid {field_name} entry {entry!r} ({where})")
        if any(d.name == dep.name for d in deps):
            raise ConfigError(f"Duplicate {field_name} entry {dep.name!r} ({where})")
        deps.append(dep)
    return tuple(deps)


def descriptor_from_manifest(
    name: str,
    kind: EntityKind,
    data: Any,
    *,
    template_dir: Path | None = None,
    where: str | None = None,
) -> EntityDescriptor:
    """Build a descriptor from parsed manifest data.

    Args:
        name: Entity name.
        kind: Kind the entity is loaded as.
        data: Parsed manifest mapping.
        template_dir: Directory holding the entity's templates.
        where: Location used in error messages.

    Returns:
        The entity descriptor.

    Raises:
        ConfigError: On unknown fields, wrong field types, reserved or
            duplicate keys, or dependencies declared on a component.
    """
    where = where or f"{kind.value} {name}"
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest must be a mapping (dict) ({where})")

    unknown = set(data) - _KNOWN_FIELDS
    if unknown:
        raise ConfigError(f"Unknown manifest field(s) {sorted(unknown)} ({where})")

    keys, defaults = _parse_keys(data.get("keys"), where)
    modules = _parse_dependencies(data.get("modules"), "modules", where)
    components = _parse_dependencies(data.get("components"), "components", where)

    if kind is EntityKind.COMPONENT and (modules or components):
        raise ConfigError(f"Components cannot declare dependencies ({where})")

    return EntityDescriptor(
        name=name,
        kind=kind,
        keys=keys,
        defaults=MappingProxyType(defaults),
        modules=modules,
        components=components,
        template_dir=template_dir,
    )


class ManifestSource:
    """Descriptor source reading manifest files below an entities directory."""

    def __init__(self, entities_dir: Path) -> None:
        self._entities_dir = Path(entities_dir)

    def entity_dir(self, name: str, kind: EntityKind) -> Path:
        return self._entities_dir / kind.directory / name

    def load_descriptor(self, name: str, kind: EntityKind) -> EntityDescriptor:
        """Load the manifest of ``name`` as ``kind``.

        Raises:
            EntityNotFound: If the entity has no manifest file.
            ConfigError: If the manifest cannot be parsed.
        """
        entity_dir = self.entity_dir(name, kind)
        manifest = next(
            (entity_dir / m for m in MANIFEST_NAMES if (entity_dir / m).is_file()),
            None,
        )
        if manifest is None:
            raise EntityNotFound(name, kind.value, str(entity_dir))

        get_global_logger().debug("MANIFEST", f"Loading {manifest}")
        try:
            with manifest.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as err:
            raise ConfigError(f"Error parsing YAML: {manifest}: {err}") from err

        template_dir = entity_dir / TEMPLATES_DIR_NAME
        return descriptor_from_manifest(
            name,
            kind,
            data,
            template_dir=template_dir if template_dir.is_dir() else None,
            where=str(manifest),
        )
