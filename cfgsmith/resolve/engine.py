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

"""Merge engine: resolve one property of one entity.

For a bare property key the engine builds the fully-qualified lookup key,
selects the key's merge policy, queries the hierarchical data source and
layers the manifest default underneath the result.

Policy Selection:
    1. ``lookup_options`` visible in the entity's scope is consulted for an
       entry keyed by the fully-qualified lookup key.
    2. Without an entry, component keys use DEFAULT_COMPONENT_POLICY
       (hash, deeper, arrays concatenated) and module keys use the data
       source's own default policy.

Capability Check:
    Deep-merge options (array concatenation, knockout prefix, sorting) are
    only passed to a data source reporting the same merge capability level
    as this engine. On a mismatch the engine keeps working with the plain
    behavior and strategy, and emits MergeCapabilityMismatch once.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass
from typing import Any
import warnings

from cfgsmith.entities import EntityDescriptor, EntityKind
from cfgsmith.exceptions import MergeCapabilityMismatch
from cfgsmith.hierarchy import (
    ABSENT,
    DEFAULT_COMPONENT_POLICY,
    MERGE_CAPABILITY,
    HierarchicalDataSource,
    MergePolicy,
    merge_layers,
)
from cfgsmith.logging import Logger, get_global_logger

MANIFEST_LAYER = "manifest"


@dataclass(frozen=True)
class PropertyResolution:
    """Resolved value of one property.

    Attributes:
        key: Bare property key.
        lookup_key: Fully-qualified lookup key.
        value: Resolved value, or ABSENT.
        policy: Policy the value was merged with.
        layers: Contributing layers, highest priority first.
    """

    key: str
    lookup_key: str
    value: Any
    policy: MergePolicy
    layers: tuple[str, ...] = ()

    @property
    def is_absent(self) -> bool:
        return self.value is ABSENT


class MergeEngine:
    """Resolves entity properties against a hierarchical data source.

    Args:
        source: The hierarchical data source.
        logger: Logger for progress output. Defaults to the global logger.
    """

    def __init__(
        self, source: HierarchicalDataSource, *, logger: Logger | None = None
    ) -> None:
        self._source = source
        self._logger = logger or get_global_logger()
        self._passthrough = source.merge_capability == MERGE_CAPABILITY
        self._warned = False
        self._options: dict[frozenset[tuple[str, str]], dict[str, Any]] = {}

    @property
    def options_passthrough(self) -> bool:
        """True when deep-merge options reach the data source."""
        return self._passthrough

    def _lookup_options(self, scope: Mapping[str, str]) -> dict[str, Any]:
        cache_key = frozenset(scope.items())
        if cache_key not in self._options:
            self._options[cache_key] = self._source.lookup_options(scope)
        return self._options[cache_key]

    def effective_policy(
        self, descriptor: EntityDescriptor, key: str, scope: Mapping[str, str]
    ) -> MergePolicy:
        """Return the merge policy declared for ``key`` of ``descriptor``."""
        if descriptor.kind is EntityKind.COMPONENT:
            base = DEFAULT_COMPONENT_POLICY
        else:
            base = self._source.default_policy

        entry = self._lookup_options(scope).get(descriptor.lookup_key(key))
        if entry is None:
            return base
        return MergePolicy.from_lookup_options(entry, base)

    def _degrade(self, policy: MergePolicy) -> MergePolicy:
        if self._passthrough or not policy.has_options:
            return policy
        if not self._warned:
            self._warned = True
            message = (
                f"Data source merge capability {self._source.merge_capability} "
                f"differs from engine capability {MERGE_CAPABILITY}; "
                f"per-key deep-merge options are disabled"
            )
            self._logger.warning("MERGE", message)
            warnings.warn(MergeCapabilityMismatch(message), stacklevel=3)
        return policy.without_options()

    def resolve_property(
        self, descriptor: EntityDescriptor, key: str, scope: Mapping[str, str]
    ) -> PropertyResolution:
        """Resolve one property of an entity.

        Args:
            descriptor: Owning entity.
            key: Bare property key.
            scope: Scope already narrowed to the entity.

        Returns:
            PropertyResolution with the merged value, or ABSENT when neither
            the hierarchy nor the manifest provides a value.
        """
        lookup_key = descriptor.lookup_key(key)
        policy = self._degrade(self.effective_policy(descriptor, key, scope))

        result = self._source.lookup(lookup_key, scope, policy)
        value, layers = result.value, result.layers

        default = descriptor.default_for(key)
        if default is not ABSENT:
            if value is ABSENT:
                value = deepcopy(default)
            else:
                value = merge_layers([value, default], policy)
            layers = layers + (MANIFEST_LAYER,)

        if value is ABSENT:
            self._logger.debug("LOOKUP", f"{lookup_key} -> absent")
        else:
            self._logger.debug("LOOKUP", f"{lookup_key} <- {', '.join(layers)}")

        return PropertyResolution(
            key=key, lookup_key=lookup_key, value=value, policy=policy, layers=layers
        )

    def resolve_entity(
        self, descriptor: EntityDescriptor, scope: Mapping[str, str]
    ) -> dict[str, PropertyResolution]:
        """Resolve every declared key of an entity, in declaration order."""
        return {
            key: self.resolve_property(descriptor, key, scope)
            for key in descriptor.keys
        }
