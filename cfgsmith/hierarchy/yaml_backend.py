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

"""YAML-backed hierarchical data source.

Layers are YAML files below a data directory. The hierarchy is an ordered
list of level patterns, highest priority first, whose ``%{dimension}``
placeholders are filled from the lookup scope:

    hierarchy:
      - "nodes/%{node}"
      - "roles/%{role}"
      - "env/%{env}"
      - "components/%{component}"
      - "modules/%{service}"
      - "common"

With scope ``{"env": "test", "service": "echo-server"}`` the consulted
layers are ``env/test.yaml``, ``modules/echo-server.yaml`` and
``common.yaml``. Levels referring to a dimension missing from the scope
are skipped, and missing files count as empty layers.

Each layer file is a flat mapping of fully-qualified lookup keys:

    echo-server::port: 8080
    component::memcached:
      single_client_enabled: false

An explicit ``null`` is treated like an undefined key.

Design Principles:
    - The handle is immutable; policies are passed per call
    - Files are parsed once per instance and never modified
    - Returned values are always fresh copies
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any

import yaml

from cfgsmith.exceptions import ConfigError
from cfgsmith.logging import get_global_logger

from .merge import merge_layers
from .policy import MERGE_CAPABILITY, MergePolicy
from .source import LookupResult

if TYPE_CHECKING:
    from cfgsmith.config import Settings

LOOKUP_OPTIONS_KEY = "lookup_options"

_INTERPOLATION = re.compile(r"%\{(?:::)?([A-Za-z_][A-Za-z0-9_]*)\}")

_OPTIONS_POLICY = MergePolicy(behavior="hash", strategy="deeper", merge_arrays=False)


class YamlHierarchy:
    """Hierarchical data source reading YAML layer files.

    Args:
        datadir: Directory holding the layer files.
        hierarchy: Level patterns, highest priority first.
        default_strategy: Strategy of the default hash-merge policy.
        merge_capability: Deep-merge option support level to report.
    """

    def __init__(
        self,
        datadir: Path,
        hierarchy: Sequence[str],
        *,
        default_strategy: str = "priority",
        merge_capability: int = MERGE_CAPABILITY,
    ) -> None:
        self._datadir = Path(datadir)
        self._hierarchy = tuple(hierarchy)
        self._default_policy = MergePolicy(
            behavior="hash", strategy=default_strategy, merge_arrays=False
        )
        self._merge_capability = merge_capability
        self._layers: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> YamlHierarchy:
        """Create a data source from project Settings."""
        return cls(
            settings.datadir,
            settings.hierarchy,
            default_strategy=settings.merge_behavior,
            merge_capability=settings.merge_capability,
        )

    @property
    def merge_capability(self) -> int:
        return self._merge_capability

    @property
    def default_policy(self) -> MergePolicy:
        return self._default_policy

    def layers(self, scope: Mapping[str, str]) -> list[str]:
        """Return the layer names consulted for ``scope``, highest priority first.

        Example:
            >>> source = YamlHierarchy(Path("data"), ["env/%{env}", "node/%{node}", "common"])
            >>> source.layers({"env": "test"})
            ['env/test', 'common']
        """
        names: list[str] = []
        for pattern in self._hierarchy:
            missing = False

            def _fill(match: re.Match[str]) -> str:
                nonlocal missing
                value = scope.get(match.group(1))
                if value is None or value == "":
                    missing = True
                    return ""
                return str(value)

            name = _INTERPOLATION.sub(_fill, pattern)
            if not missing and name not in names:
                names.append(name)
        return names

    def _load_layer(self, name: str) -> dict[str, Any]:
        if name in self._layers:
            return self._layers[name]

        path = self._datadir / f"{name}.yaml"
        data: Any = None
        if path.is_file():
            try:
                with path.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as err:
                raise ConfigError(f"Error parsing YAML: {path}: {err}") from err
            if data is not None and not isinstance(data, dict):
                raise ConfigError(f"Hierarchy layer must be a mapping (dict): {path}")
            get_global_logger().debug("LOOKUP", f"Loaded layer {path}")

        self._layers[name] = data or {}
        return self._layers[name]

    def lookup(
        self,
        key: str,
        scope: Mapping[str, str],
        policy: MergePolicy | None = None,
    ) -> LookupResult:
        """Look up ``key`` across the layers selected by ``scope``.

        Args:
            key: Fully-qualified lookup key.
            scope: Context dimensions (env, node, role, service, component).
            policy: Merge policy. None uses the default hash-merge policy.

        Returns:
            LookupResult with the merged value and contributing layers, or
            an absent result when no layer defines the key.
        """
        policy = policy or self._default_policy
        found: list[tuple[str, Any]] = []
        for name in self.layers(scope):
            data = self._load_layer(name)
            if data.get(key) is None:
                continue
            found.append((name, data[key]))
            if policy.behavior == "first":
                break

        if not found:
            return LookupResult()

        value = merge_layers([v for _, v in found], policy)
        return LookupResult(value=value, layers=tuple(name for name, _ in found))

    def lookup_options(self, scope: Mapping[str, str]) -> dict[str, Any]:
        """Return the merged ``lookup_options`` mapping visible in ``scope``.

        Raises:
            ConfigError: If lookup_options is not a mapping.
        """
        result = self.lookup(LOOKUP_OPTIONS_KEY, scope, _OPTIONS_POLICY)
        if result.is_absent:
            return {}
        if not isinstance(result.value, dict):
            raise ConfigError(
                f"{LOOKUP_OPTIONS_KEY} must be a mapping, got {type(result.value).__name__} "
                f"(from {', '.join(result.layers)})"
            )
        return result.value
