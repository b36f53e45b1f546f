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

"""Dependency resolver: walk an entity's dependency graph.

Resolution order for a service:

1. Sub-modules, depth-first in declaration order. A module's own
   dependencies are resolved before the module itself, so closer modules
   override deeper ones.
2. The service's own keys, which override every sub-module contribution.
3. Components, each resolved independently in the service's scope and kept
   under their own name.

Rules:
    - A module name repeated on the current path is a cycle
      (CircularDependencyError with the full path).
    - Every entity is resolved at most once per root; a module reached a
      second time through another branch is skipped.
    - Two sibling branches whose merged value would depend on their
      declaration order must be settled by the entity that declares both
      branches (AmbiguousOverrideError otherwise).
    - ABSENT never overrides a value contributed by a dependency.
    - Scope narrowing (``service``/``component`` set to the entity name) is
      local to the branch being walked.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from cfgsmith.entities import (
    DescriptorSource,
    EntityDescriptor,
    EntityKind,
)
from cfgsmith.exceptions import (
    AmbiguousOverrideError,
    CircularDependencyError,
    EmptyDescriptorError,
    EntityNotFound,
)
from cfgsmith.hierarchy import ABSENT, MergePolicy
from cfgsmith.hierarchy.merge import find_conflicts, merge_pair, value_at
from cfgsmith.logging import Logger, get_global_logger

from .engine import MergeEngine, PropertyResolution

# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class Contribution:
    """What one entity contributed during a resolution run.

    Attributes:
        descriptor: The entity.
        scope: Scope the entity was resolved in.
        properties: Resolution of every declared key, in declaration order.
    """

    descriptor: EntityDescriptor
    scope: Mapping[str, str]
    properties: Mapping[str, PropertyResolution]

    @property
    def values(self) -> dict[str, Any]:
        """Present values by bare key."""
        return {k: p.value for k, p in self.properties.items() if not p.is_absent}

    @property
    def absent(self) -> tuple[str, ...]:
        """Declared keys without a value."""
        return tuple(k for k, p in self.properties.items() if p.is_absent)


@dataclass(frozen=True)
class ResolvedConfiguration:
    """Flattened configuration set of one root entity.

    Attributes:
        root: The root entity.
        scope: Scope the root was resolved in (not narrowed).
        values: Final value per bare key; absent keys are not included.
        absent: Declared keys that resolved to no value.
        components: Present values of each component, by component name.
        contributions: Per-entity contributions in resolution order.
    """

    root: EntityDescriptor
    scope: Mapping[str, str]
    values: Mapping[str, Any]
    absent: frozenset[str] = frozenset()
    components: Mapping[str, Mapping[str, Any]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    contributions: tuple[Contribution, ...] = ()

    def get(self, key: str) -> Any:
        """Return the final value of ``key`` or ABSENT."""
        return self.values.get(key, ABSENT)

    def component_contributions(self) -> list[Contribution]:
        """Contributions of the service's components, in declaration order."""
        return [
            c
            for c in self.contributions
            if c.descriptor.kind is EntityKind.COMPONENT and c.descriptor.name in self.components
        ]

    def template_context(self) -> dict[str, Any]:
        """Return a fresh mapping of present values for template rendering.

        Absent keys are left out so templates can test them with
        ``is defined``; service contexts also carry ``components``.
        """
        context = {k: deepcopy(v) for k, v in self.values.items()}
        if self.root.kind is not EntityKind.COMPONENT:
            context["components"] = {
                name: deepcopy(dict(values)) for name, values in self.components.items()
            }
        return context


@dataclass
class _Branch:
    values: dict[str, Any] = field(default_factory=dict)
    policies: dict[str, MergePolicy] = field(default_factory=dict)
    declared: set[str] = field(default_factory=set)


@dataclass
class _Run:
    visited: set[tuple[str, str]] = field(default_factory=set)
    contributions: list[Contribution] = field(default_factory=list)


@dataclass(frozen=True)
class _Conflict:
    key: str
    paths: list[tuple[Any, ...]]
    branches: tuple[str, str]
    left: Any
    right: Any
    policy: MergePolicy


def narrow_scope(scope: Mapping[str, str], descriptor: EntityDescriptor) -> dict[str, str]:
    """Return a copy of ``scope`` narrowed to ``descriptor``."""
    narrowed = dict(scope)
    narrowed[descriptor.kind.scope_dimension] = descriptor.name
    return narrowed


def _is_overridden(
    own: PropertyResolution | None, conflict: _Conflict, path: tuple[Any, ...]
) -> bool:
    """Return True if the ancestor's own value decides ``path`` for either sibling order."""
    if own is None or own.is_absent:
        return False
    forward = merge_pair(
        merge_pair(conflict.left, conflict.right, conflict.policy), own.value, own.policy
    )
    backward = merge_pair(
        merge_pair(conflict.right, conflict.left, conflict.policy), own.value, own.policy
    )
    return value_at(forward, path[1:]) == value_at(backward, path[1:])


# -------------------------------
# Resolver
# -------------------------------


class DependencyResolver:
    """Resolves root entities into flattened configuration sets.

    Args:
        descriptors: Source of entity descriptors.
        engine: Merge engine used for every property lookup.
        logger: Logger for progress output. Defaults to the global logger.
    """

    def __init__(
        self,
        descriptors: DescriptorSource,
        engine: MergeEngine,
        *,
        logger: Logger | None = None,
    ) -> None:
        self._descriptors = descriptors
        self._engine = engine
        self._logger = logger or get_global_logger()

    def resolve(
        self, name: str, kind: EntityKind, scope: Mapping[str, str]
    ) -> ResolvedConfiguration:
        """Resolve a root entity.

        Args:
            name: Root entity name.
            kind: Root entity kind (service or component).
            scope: Invocation scope (env, node, role).

        Returns:
            The flattened configuration set of the root.

        Raises:
            EntityNotFound: If the root or a required dependency is missing.
            CircularDependencyError: If the module graph has a cycle.
            EmptyDescriptorError: If an entity declares no keys.
            AmbiguousOverrideError: If sibling branches conflict without an
                explicit override.
        """
        run = _Run()
        root = self._descriptors.load_descriptor(name, kind)
        self._logger.verbose("RESOLVE", f"Resolving {kind.value} {name}")

        if kind is EntityKind.COMPONENT:
            own = self._resolve_own(root, scope, run)
            return ResolvedConfiguration(
                root=root,
                scope=MappingProxyType(dict(scope)),
                values=MappingProxyType(own.values),
                absent=frozenset(own.absent),
                contributions=tuple(run.contributions),
            )

        branch = self._walk(root, scope, (), run)

        components: dict[str, dict[str, Any]] = {}
        if kind is EntityKind.SERVICE:
            service_scope = narrow_scope(scope, root)
            for dep in root.components:
                if (EntityKind.COMPONENT.directory, dep.name) in run.visited:
                    continue
                component = self._load(dep.name, EntityKind.COMPONENT, dep.optional)
                if component is None:
                    continue
                components[dep.name] = self._resolve_own(component, service_scope, run).values

        return ResolvedConfiguration(
            root=root,
            scope=MappingProxyType(dict(scope)),
            values=MappingProxyType(branch.values),
            absent=frozenset(branch.declared - set(branch.values)),
            components=MappingProxyType(components),
            contributions=tuple(run.contributions),
        )

    def _load(
        self, name: str, kind: EntityKind, optional: bool = False
    ) -> EntityDescriptor | None:
        try:
            return self._descriptors.load_descriptor(name, kind)
        except EntityNotFound:
            if not optional:
                raise
            self._logger.warning(
                "RESOLVE",
                f"Missing manifest for {kind.value} {name}. Skipping properties generation",
            )
            return None

    def _resolve_own(
        self, descriptor: EntityDescriptor, scope: Mapping[str, str], run: _Run
    ) -> Contribution:
        if not descriptor.keys:
            raise EmptyDescriptorError(descriptor.name, descriptor.kind.value)
        run.visited.add((descriptor.kind.directory, descriptor.name))

        narrowed = narrow_scope(scope, descriptor)
        contribution = Contribution(
            descriptor=descriptor,
            scope=MappingProxyType(narrowed),
            properties=MappingProxyType(self._engine.resolve_entity(descriptor, narrowed)),
        )
        run.contributions.append(contribution)
        self._logger.verbose(
            "RESOLVE",
            f"{descriptor.kind.value} {descriptor.name}: "
            f"{len(contribution.values)} value(s), {len(contribution.absent)} absent",
        )
        return contribution

    def _walk(
        self,
        descriptor: EntityDescriptor,
        scope: Mapping[str, str],
        path: tuple[str, ...],
        run: _Run,
    ) -> _Branch:
        path = path + (descriptor.name,)
        run.visited.add((descriptor.kind.directory, descriptor.name))
        narrowed = narrow_scope(scope, descriptor)

        branch = _Branch()
        origin: dict[str, str] = {}
        conflicts: list[_Conflict] = []

        for dep in descriptor.modules:
            if dep.name in path:
                raise CircularDependencyError(path + (dep.name,))
            if (EntityKind.SUBMODULE.directory, dep.name) in run.visited:
                self._logger.verbose(
                    "RESOLVE", f"Module {dep.name} already resolved, skipping"
                )
                continue
            child = self._load(dep.name, EntityKind.SUBMODULE, dep.optional)
            if child is None:
                continue

            self._logger.verbose("RESOLVE", f"{' -> '.join(path)} -> {dep.name}")
            sub = self._walk(child, narrowed, path, run)
            branch.declared |= sub.declared
            for key, value in sub.values.items():
                if key in branch.values:
                    policy = sub.policies[key]
                    found = find_conflicts(branch.values[key], value, policy, (key,))
                    if found:
                        conflicts.append(
                            _Conflict(
                                key,
                                found,
                                (origin[key], dep.name),
                                branch.values[key],
                                value,
                                policy,
                            )
                        )
                    branch.values[key] = merge_pair(branch.values[key], value, policy)
                else:
                    branch.values[key] = value
                origin[key] = dep.name
                branch.policies[key] = sub.policies[key]

        if descriptor.kind is EntityKind.SUBMODULE and descriptor.components:
            self._logger.verbose(
                "RESOLVE",
                f"Ignoring components declared by sub-module {descriptor.name}",
            )

        own = self._resolve_own(descriptor, scope, run)
        for key, prop in own.properties.items():
            branch.declared.add(key)
            branch.policies[key] = prop.policy
            if prop.is_absent:
                continue
            if key in branch.values:
                branch.values[key] = merge_pair(branch.values[key], prop.value, prop.policy)
            else:
                branch.values[key] = prop.value

        for conflict in conflicts:
            own_prop = own.properties.get(conflict.key)
            unresolved = [
                p for p in conflict.paths if not _is_overridden(own_prop, conflict, p)
            ]
            if unresolved:
                raise AmbiguousOverrideError(
                    conflict.key,
                    [".".join(str(step) for step in p) for p in unresolved],
                    conflict.branches,
                    descriptor.name,
                )

        return branch
