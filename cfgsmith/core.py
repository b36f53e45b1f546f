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

"""Core orchestration for cfgsmith.

This module provides the high-level functions that coordinate the complete
workflow for one invocation: load settings, resolve each root entity, render
its templates and write (or report) the output files.

Workflow per root entity:

1. **Resolve**: The Dependency Resolver walks the entity's sub-modules and
   components; the Merge Engine looks every declared key up in the
   hierarchy.
2. **Render**: Component templates are rendered with each component's own
   configuration, then the root's templates with the flattened set.
3. **Write**: The Output Writer validates (optionally) and writes.

Roots are processed sequentially. A failure aborts the current root before
anything of it is written; output of roots completed earlier stays on disk.

Design Principles:

- Each function has a single, clear responsibility
- Functions return structured data (dataclasses) for easy testing
- Error handling uses exceptions; the CLI layer formats for user display
- Settings, descriptors and the data source are immutable once loaded

Example:
    Programmatic usage:
        ```python
        from cfgsmith.core import build_scope, generate_configs
        from cfgsmith.entities import EntityKind

        results = generate_configs(
            ["echo-server"], EntityKind.SERVICE, build_scope(env="test"), dry_run=True
        )
        for written in results[0].files:
            print(written.path)
            print(written.content)
        ```
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from copy import deepcopy
from pathlib import Path
from typing import Any

from cfgsmith.config import Settings, load_settings
from cfgsmith.entities import DescriptorSource, EntityKind, ManifestSource
from cfgsmith.exceptions import ConfigError
from cfgsmith.hierarchy import HierarchicalDataSource, YamlHierarchy
from cfgsmith.logging import Logger, get_global_logger
from cfgsmith.output import write_outputs
from cfgsmith.render import TemplateRenderer, render_targets, resolve_targets
from cfgsmith.resolve import (
    Contribution,
    DependencyResolver,
    MergeEngine,
    ResolvedConfiguration,
    narrow_scope,
)
from cfgsmith.results import GenerateResult, RenderedFile

ROOT_KINDS = (EntityKind.SERVICE, EntityKind.COMPONENT)


def build_scope(
    env: str | None = None, node: str | None = None, role: str | None = None
) -> dict[str, str]:
    """Build the invocation scope.

    Args:
        env: Environment name.
        node: Node name. Requires ``role``.
        role: Role name. Requires ``node``.

    Returns:
        Scope mapping with the given dimensions.

    Raises:
        ConfigError: If env is combined with node/role, or only one of node
            and role is given.

    Example:
        >>> build_scope(env="test")
        {'env': 'test'}
        >>> build_scope(node="web-01", role="frontend")
        {'node': 'web-01', 'role': 'frontend'}
    """
    if env and (node or role):
        raise ConfigError("Provide either an environment or a node and role, not both")
    if bool(node) != bool(role):
        raise ConfigError("A node requires a role and a role requires a node")

    scope: dict[str, str] = {}
    if env:
        scope["env"] = env
    if node and role:
        scope["node"] = node
        scope["role"] = role
    return scope


def _open_project(
    settings: Settings | None,
    descriptors: DescriptorSource | None,
    source: HierarchicalDataSource | None,
    logger: Logger,
) -> tuple[Settings, DependencyResolver, HierarchicalDataSource]:
    settings = settings or load_settings()
    descriptors = descriptors or ManifestSource(settings.entities_dir)
    source = source or YamlHierarchy.from_settings(settings)
    engine = MergeEngine(source, logger=logger)
    return settings, DependencyResolver(descriptors, engine, logger=logger), source


def resolve_entity(
    name: str,
    kind: EntityKind,
    scope: Mapping[str, str],
    *,
    settings: Settings | None = None,
    descriptors: DescriptorSource | None = None,
    source: HierarchicalDataSource | None = None,
) -> ResolvedConfiguration:
    """Resolve the configuration of one entity without rendering it.

    Args:
        name: Entity name.
        kind: Entity kind.
        scope: Invocation scope (see :func:`build_scope`).
        settings: Project settings. Loaded from the working directory if
            omitted.
        descriptors: Descriptor source. Defaults to manifest files below
            ``settings.entities_dir``.
        source: Hierarchical data source. Defaults to the YAML hierarchy
            described by the settings.

    Returns:
        The flattened configuration set of the entity.

    Raises:
        CfgsmithError: Any resolution error (see cfgsmith.exceptions).
    """
    logger = get_global_logger()
    _, resolver, _ = _open_project(settings, descriptors, source, logger)
    return resolver.resolve(name, kind, scope)


def _render_component(
    contribution: Contribution,
    source: HierarchicalDataSource,
    settings: Settings,
) -> list[RenderedFile]:
    descriptor = contribution.descriptor
    renderer = TemplateRenderer(descriptor, suffix=settings.template_suffix)
    targets = resolve_targets(
        source,
        descriptor,
        contribution.scope,
        templates=renderer.templates,
        settings=settings,
    )
    return render_targets(renderer, targets, deepcopy(contribution.values))


def render_configuration(
    resolved: ResolvedConfiguration,
    *,
    settings: Settings,
    source: HierarchicalDataSource,
    logger: Logger | None = None,
) -> list[RenderedFile]:
    """Render the output files of a resolved root entity.

    Component templates always render with the component's own values.
    For a service root the rendered component artifacts are handed to the
    service templates as ``rendered_components`` and only the service's
    files are returned; for a component root the component's files are
    returned.

    Raises:
        UndefinedReferenceError: If a template uses an absent key unguarded.
        TargetConfigError: If a target mapping is invalid.
    """
    logger = logger or get_global_logger()
    root = resolved.root

    if root.kind is EntityKind.COMPONENT:
        files = _render_component(resolved.contributions[-1], source, settings)
    else:
        rendered_components: list[dict[str, Any]] = []
        for contribution in resolved.component_contributions():
            for rendered in _render_component(contribution, source, settings):
                rendered_components.append(
                    {
                        "component": rendered.entity,
                        "name": rendered.name,
                        "content": rendered.content,
                    }
                )

        context = resolved.template_context()
        context["rendered_components"] = rendered_components

        renderer = TemplateRenderer(root, suffix=settings.template_suffix)
        targets = resolve_targets(
            source,
            root,
            narrow_scope(resolved.scope, root),
            templates=renderer.templates,
            settings=settings,
        )
        files = render_targets(renderer, targets, context)

    if not files:
        logger.warning("RENDER", f"No templates found for {root.kind.value} {root.name}")
    for rendered in files:
        logger.verbose("RENDER", f"{rendered.template} -> {rendered.name}")
    return files


def generate_configs(
    names: Sequence[str],
    kind: EntityKind,
    scope: Mapping[str, str],
    *,
    settings: Settings | None = None,
    descriptors: DescriptorSource | None = None,
    source: HierarchicalDataSource | None = None,
    target_dir: Path | None = None,
    dry_run: bool = False,
    validate: bool = False,
    clean: bool = False,
) -> list[GenerateResult]:
    """Generate the configuration files of one or more root entities.

    Roots are processed in the given order. Each root is resolved and
    rendered completely in memory before any of its files is written.

    Args:
        names: Root entity names.
        kind: Kind shared by all roots (service or component).
        scope: Invocation scope (see :func:`build_scope`).
        settings: Project settings. Loaded from the working directory if
            omitted.
        descriptors: Descriptor source override.
        source: Hierarchical data source override.
        target_dir: Directory overriding every declared target directory.
        dry_run: Report paths and contents without touching the filesystem.
        validate: Compare with existing files and abort on a difference.
        clean: Clear target directories before writing.

    Returns:
        One GenerateResult per root, in order.

    Raises:
        ConfigError: If ``kind`` is not a root kind or no names are given.
        CfgsmithError: Any resolution, rendering or validation error.
        OSError: If output cannot be written.
    """
    if kind not in ROOT_KINDS:
        raise ConfigError(f"Cannot generate configuration for a {kind.value}")
    if not names:
        raise ConfigError("No entity names given")

    logger = get_global_logger()
    settings, resolver, source = _open_project(settings, descriptors, source, logger)

    results: list[GenerateResult] = []
    cleaned: set[Path] = set()
    for name in names:
        logger.step(1, 3, f"Resolving {kind.value} {name}...")
        resolved = resolver.resolve(name, kind, scope)

        logger.step(2, 3, "Rendering templates...")
        files = render_configuration(
            resolved, settings=settings, source=source, logger=logger
        )

        logger.step(3, 3, "Writing files..." if not dry_run else "Preparing dry run...")
        written, validated = write_outputs(
            files,
            target_dir=target_dir,
            dry_run=dry_run,
            clean=clean,
            validate=validate,
            banner=settings.autogen_banner,
            cleaned=cleaned,
            logger=logger,
        )

        results.append(
            GenerateResult(
                entity=name,
                kind=kind.value,
                scope=dict(scope),
                files=written,
                components=list(resolved.components),
                validated=validated,
                dry_run=dry_run,
                status="success",
            )
        )
    return results
