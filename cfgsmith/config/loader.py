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

"""Project settings loading and merging for cfgsmith.

This module implements a three-layer settings system. Built-in defaults are
overridden by the project's ``cfgsmith.yaml`` and finally by an optional,
uncommitted ``cfgsmith.local.yaml`` next to it.

Settings Layers:
    1. **Built-in defaults** (DEFAULT_SETTINGS)
       - Conventional directory names and hierarchy
       - Always present

    2. **Project settings** (cfgsmith.yaml)
       - Found by walking upward from the start directory
       - Optional; without it the start directory is the project root

    3. **Local overrides** (cfgsmith.local.yaml)
       - Developer-specific tweaks, never committed
       - Only read when it sits beside the project settings

Merge Behavior:
    The loader performs deep merging with "last wins" semantics:

    - **Dicts**: Recursively merged (keys from overlay override base)
    - **Lists**: Completely replaced (a project hierarchy is never appended
      to the default hierarchy)
    - **Scalars**: Overwritten (strings, numbers, booleans)

Path Resolution:
    ``datadir`` and ``entities_dir`` are resolved against the directory of
    the settings file, so a project can be generated from any working
    directory. ``default_target_dir`` stays a pattern and is resolved when
    an entity's output location is computed.

Error Handling:
    - ConfigError: YAML parse errors, empty files, invalid structure, or
        invalid values
    - All errors are chained with "from err" for better debugging
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from cfgsmith.exceptions import ConfigError
from cfgsmith.hierarchy.policy import MERGE_CAPABILITY, STRATEGIES
from cfgsmith.logging import get_global_logger

SETTINGS_FILE_NAME = "cfgsmith.yaml"
LOCAL_SETTINGS_FILE_NAME = "cfgsmith.local.yaml"

DEFAULT_SETTINGS: dict[str, Any] = {
    "datadir": "hieradata",
    "entities_dir": "entities",
    "hierarchy": [
        "nodes/%{node}",
        "roles/%{role}",
        "env/%{env}",
        "components/%{component}",
        "modules/%{service}",
        "common",
    ],
    "merge_behavior": "priority",
    "merge_capability": MERGE_CAPABILITY,
    "template_suffix": ".j2",
    "default_target_dir": "{kind}s/{name}/configs",
    "autogen_banner": True,
}

# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class Settings:
    """Effective project settings.

    Attributes:
        root: Project root directory (directory of the settings file).
        settings_path: Settings file that was loaded, if any.
        datadir: Root directory of hierarchy data files.
        entities_dir: Root directory of entity manifests and templates.
        hierarchy: Hierarchy level patterns, highest priority first.
        merge_behavior: Default hash-merge strategy of the data source.
        merge_capability: Merge-option capability level of the data source.
        template_suffix: File suffix that marks a template.
        default_target_dir: Output directory pattern with {kind} and {name}.
        autogen_banner: Prefix generated files with an auto-generated marker.
    """

    root: Path
    settings_path: Path | None
    datadir: Path
    entities_dir: Path
    hierarchy: tuple[str, ...]
    merge_behavior: str
    merge_capability: int
    template_suffix: str
    default_target_dir: str
    autogen_banner: bool

    def target_dir_for(self, kind: str, name: str) -> Path:
        """Return the default output directory for an entity."""
        return self.root / self.default_target_dir.format(kind=kind, name=name)


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """Load a YAML settings file and return the parsed mapping.

    Raises:
        ConfigError: On parse errors, empty files, or a non-mapping root.
    """
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML must be a mapping (dict): {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


# -------------------------------
# Settings discovery
# -------------------------------


def _find_settings_file(start_dir: Path) -> Path | None:
    """Walk upward from 'start_dir' looking for 'cfgsmith.yaml'."""
    for parent in [start_dir] + list(start_dir.parents):
        candidate = parent / SETTINGS_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def _validate(merged: dict[str, Any], source: str) -> None:
    hierarchy = merged.get("hierarchy")
    if not isinstance(hierarchy, list) or not hierarchy:
        raise ConfigError(f"'hierarchy' must be a non-empty list ({source})")
    for level in hierarchy:
        if not isinstance(level, str) or not level.strip():
            raise ConfigError(
                f"Hierarchy levels must be non-empty strings, got {level!r} ({source})"
            )
    if merged.get("merge_behavior") not in STRATEGIES:
        raise ConfigError(
            f"Unknown merge_behavior {merged.get('merge_behavior')!r} ({source}). "
            f"Supported: {', '.join(STRATEGIES)}"
        )
    if not isinstance(merged.get("merge_capability"), int):
        raise ConfigError(f"'merge_capability' must be an integer ({source})")
    for key in ("datadir", "entities_dir", "template_suffix", "default_target_dir"):
        if not isinstance(merged.get(key), str) or not merged[key]:
            raise ConfigError(f"{key!r} must be a non-empty string ({source})")


# -------------------------------
# Public API
# -------------------------------


def load_settings(
    start_dir: Path | None = None,
    *,
    settings_path: Path | None = None,
) -> Settings:
    """Load and merge the effective project settings.

    Steps
      1) Locate the settings file (explicit path > upward search).
      2) Merge built-in defaults <- cfgsmith.yaml <- cfgsmith.local.yaml.
      3) Validate the merged values.
      4) Resolve directories against the project root.

    Args:
        start_dir: Directory to start the upward search from. Defaults to
            the current working directory.
        settings_path: Explicit settings file. Skips the upward search.

    Returns:
        An immutable Settings instance.

    Raises:
        ConfigError: If an explicit settings file is missing, or on YAML or
            validation errors.
    """
    logger = get_global_logger()
    start_dir = (start_dir or Path.cwd()).resolve()

    if settings_path is not None:
        settings_path = settings_path.resolve()
        if not settings_path.is_file():
            raise ConfigError(f"Settings file not found: {settings_path}")
    else:
        settings_path = _find_settings_file(start_dir)

    merged = dict(DEFAULT_SETTINGS)
    layers = ["built-in defaults"]

    if settings_path is not None:
        root = settings_path.parent
        logger.verbose("CONFIG", f"Loading: {settings_path}")
        merged = _deep_merge_dicts(merged, _load_yaml_file(settings_path))
        layers.append(settings_path.name)

        local_path = root / LOCAL_SETTINGS_FILE_NAME
        if local_path.is_file():
            logger.verbose("CONFIG", f"Loading: {local_path}")
            merged = _deep_merge_dicts(merged, _load_yaml_file(local_path))
            layers.append(local_path.name)
    else:
        root = start_dir
        logger.verbose(
            "CONFIG", f"No {SETTINGS_FILE_NAME} found, using defaults in {root}"
        )

    logger.verbose("CONFIG", f"Deep merging {len(layers)} layer(s)")
    _validate(merged, str(settings_path or "built-in defaults"))

    return Settings(
        root=root,
        settings_path=settings_path,
        datadir=(root / merged["datadir"]).resolve(),
        entities_dir=(root / merged["entities_dir"]).resolve(),
        hierarchy=tuple(merged["hierarchy"]),
        merge_behavior=merged["merge_behavior"],
        merge_capability=merged["merge_capability"],
        template_suffix=merged["template_suffix"],
        default_target_dir=merged["default_target_dir"],
        autogen_banner=bool(merged["autogen_banner"]),
    )
