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

"""Template rendering with Jinja2.

Each entity gets its own Jinja2 environment over its template directory (and
any inline templates registered on its descriptor). Templates receive the
entity's resolved configuration as top-level variables.

Absent keys are never placed in the context. Templates guard optional
properties with ``is defined`` (or the ``present``/``absent`` tests):

    {% if port is present %}
    server.port={{ port }}
    {% endif %}

Undefined variables use StrictUndefined, so an unguarded reference to an
absent key fails the render with UndefinedReferenceError instead of
producing a blank.

Service templates additionally receive:

- ``components``: mapping of component name to its resolved values
- ``rendered_components``: list of ``{component, name, content}`` entries,
  one per rendered component template

Filters:
    - ``to_yaml``: block-style YAML dump of a value
    - ``to_json``: JSON dump of a value (``indent`` keyword supported)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import json
from pathlib import Path
from typing import Any

from jinja2 import (
    BaseLoader,
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
)
import yaml

from cfgsmith.entities import EntityDescriptor
from cfgsmith.exceptions import ConfigError, UndefinedReferenceError
from cfgsmith.results import RenderedFile

from .targets import TargetSpec


def _is_absent(value: Any) -> bool:
    return isinstance(value, Undefined)


def _to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip("\n")


def _to_json(value: Any, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, sort_keys=False)


class TemplateRenderer:
    """Renders the templates of one entity.

    Args:
        descriptor: Entity whose templates are rendered.
        suffix: File suffix that marks a template.
    """

    def __init__(self, descriptor: EntityDescriptor, *, suffix: str = ".j2") -> None:
        self.descriptor = descriptor
        self.suffix = suffix

        loaders: list[BaseLoader] = []
        if descriptor.templates:
            loaders.append(DictLoader(dict(descriptor.templates)))
        if descriptor.template_dir is not None:
            loaders.append(FileSystemLoader(str(descriptor.template_dir)))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
        self.env.tests["absent"] = _is_absent
        self.env.tests["present"] = lambda value: not _is_absent(value)
        self.env.filters["to_yaml"] = _to_yaml
        self.env.filters["to_json"] = _to_json

    @property
    def templates(self) -> list[str]:
        """Names of the entity's templates, sorted."""
        return sorted(
            self.env.list_templates(filter_func=lambda name: name.endswith(self.suffix))
        )

    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        """Render one template.

        Args:
            template_name: Template name relative to the entity's templates.
            context: Template variables.

        Returns:
            Rendered text.

        Raises:
            UndefinedReferenceError: If the template references an absent key
                without a guard.
            ConfigError: If the template is missing or has a syntax error.
        """
        where = f"{self.descriptor.name}/{template_name}"
        try:
            template = self.env.get_template(template_name)
            return template.render(**context)
        except UndefinedError as err:
            raise UndefinedReferenceError(where, str(err)) from err
        except TemplateNotFound as err:
            raise ConfigError(f"Template not found: {where}") from err
        except TemplateSyntaxError as err:
            raise ConfigError(
                f"Template syntax error in {where} line {err.lineno}: {err.message}"
            ) from err


def render_targets(
    renderer: TemplateRenderer,
    targets: Sequence[TargetSpec],
    context: Mapping[str, Any],
) -> list[RenderedFile]:
    """Render every file of a target mapping.

    Returns:
        Rendered files in mapping order. Nothing is written.
    """
    rendered: list[RenderedFile] = []
    for spec in targets:
        for target in spec.files:
            rendered.append(
                RenderedFile(
                    name=target.name,
                    target_dir=Path(spec.target_dir),
                    content=renderer.render(target.template, context),
                    template=target.template,
                    entity=renderer.descriptor.name,
                    clean=spec.clean,
                )
            )
    return rendered
