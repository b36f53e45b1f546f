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

"""Output target mapping for entity templates.

An entity may declare where its templates render to with the hierarchy key
``<entity>::target_file_names``:

    echo-server::target_file_names:
      - target_dir: deploy/echo-server
        clean: true
        files:
          - template: application.properties.j2
            name: application.properties
          - template: logback.xml.j2
            name: logback.xml

Without a declaration every template of the entity renders into the
default target directory, named after the template minus its suffix.

Relative ``target_dir`` values resolve against the project root.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cfgsmith.config import Settings
from cfgsmith.entities import EntityDescriptor
from cfgsmith.exceptions import TargetConfigError
from cfgsmith.hierarchy import HierarchicalDataSource, MergePolicy

TARGET_FILES_KEY = "target_file_names"

# Highest-priority declaration wins outright
_TARGETS_POLICY = MergePolicy(behavior="first", strategy="priority", merge_arrays=False)


@dataclass(frozen=True)
class TargetFile:
    """One template to output file association."""

    template: str
    name: str


@dataclass(frozen=True)
class TargetSpec:
    """Files written to one target directory.

    Attributes:
        target_dir: Output directory.
        files: Template to file associations.
        clean: Clear the directory before writing.
    """

    target_dir: Path
    files: tuple[TargetFile, ...]
    clean: bool = False


def targets_key(descriptor: EntityDescriptor) -> str:
    """Return the hierarchy key holding the target mapping of an entity."""
    return f"{descriptor.name}::{TARGET_FILES_KEY}"


def _output_name(template: str, suffix: str) -> str:
    return template[: -len(suffix)] if template.endswith(suffix) else template


def _parse_clean(value: Any, where: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise TargetConfigError(f"'clean' must be a boolean, got {value!r} ({where})")


def default_targets(
    templates: Sequence[str], suffix: str, target_dir: Path
) -> list[TargetSpec]:
    """Map every template to ``target_dir``, named without its suffix."""
    if not templates:
        return []
    files = tuple(TargetFile(t, _output_name(t, suffix)) for t in templates)
    return [TargetSpec(target_dir=target_dir, files=files)]


def parse_targets(
    raw: Any,
    *,
    templates: Sequence[str],
    suffix: str,
    base_dir: Path,
    where: str,
) -> list[TargetSpec]:
    """Validate and normalize a declared target mapping.

    Args:
        raw: Value of ``<entity>::target_file_names``.
        templates: Templates available to the entity.
        suffix: Template file suffix.
        base_dir: Directory relative ``target_dir`` values resolve against.
        where: Location used in error messages.

    Returns:
        Normalized target specs, in declaration order.

    Raises:
        TargetConfigError: If the mapping is not a list of
            ``{target_dir, files, clean}`` entries, a file entry has no
            template, or a template is unknown to the entity.
    """
    if not isinstance(raw, list):
        raise TargetConfigError(f"{where} must be a list of target entries")

    specs: list[TargetSpec] = []
    seen: set[Path] = set()
    for entry in raw:
        if not isinstance(entry, Mapping):
            raise TargetConfigError(f"Target entry must be a mapping, got {entry!r} ({where})")
        if "target_dir" not in entry or "files" not in entry:
            raise TargetConfigError(
                f"Each target entry must have 'target_dir' and 'files' ({where})"
            )
        target_dir = entry["target_dir"]
        if not isinstance(target_dir, str) or not target_dir:
            raise TargetConfigError(f"'target_dir' must be a non-empty string ({where})")
        if not isinstance(entry["files"], list) or not entry["files"]:
            raise TargetConfigError(f"'files' of {target_dir} must be a non-empty list ({where})")

        files: list[TargetFile] = []
        for item in entry["files"]:
            if not isinstance(item, Mapping) or not isinstance(item.get("template"), str):
                raise TargetConfigError(f"Missing template for file {item!r} ({where})")
            template = item["template"]
            if not template.endswith(suffix):
                raise TargetConfigError(
                    f"Template {template!r} must end with {suffix!r} ({where})"
                )
            if template not in templates:
                raise TargetConfigError(
                    f"Template {template!r} not found among the entity's templates "
                    f"({', '.join(templates) or 'none'}) ({where})"
                )
            name = item.get("name") or _output_name(template, suffix)
            if not isinstance(name, str) or "/" in name or "\\" in name:
                raise TargetConfigError(f"Invalid output file name {name!r} ({where})")
            files.append(TargetFile(template, name))

        path = (base_dir / target_dir).resolve()
        if path in seen:
            raise TargetConfigError(f"Duplicate target_dir {target_dir!r} ({where})")
        seen.add(path)
        specs.append(
            TargetSpec(
                target_dir=path,
                files=tuple(files),
                clean=_parse_clean(entry.get("clean", False), where),
            )
        )
    return specs


def resolve_targets(
    source: HierarchicalDataSource,
    descriptor: EntityDescriptor,
    scope: Mapping[str, str],
    *,
    templates: Sequence[str],
    settings: Settings,
) -> list[TargetSpec]:
    """Return the target mapping of an entity in ``scope``.

    Falls back to :func:`default_targets` when the hierarchy declares none.
    """
    key = targets_key(descriptor)
    result = source.lookup(key, scope, _TARGETS_POLICY)
    if result.is_absent or result.value == []:
        return default_targets(
            templates,
            settings.template_suffix,
            settings.target_dir_for(descriptor.kind.value, descriptor.name),
        )
    return parse_targets(
        result.value,
        templates=templates,
        suffix=settings.template_suffix,
        base_dir=settings.root,
        where=f"{key} ({', '.join(result.layers)})",
    )
