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

"""Template rendering for cfgsmith.

Public API:

- TemplateRenderer: Jinja2 renderer for one entity's templates
- render_targets: Render every file of a target mapping
- TargetSpec, TargetFile: Template to output file mapping
- resolve_targets, parse_targets, default_targets: Build target mappings
"""

from .renderer import TemplateRenderer, render_targets
from .targets import (
    TARGET_FILES_KEY,
    TargetFile,
    TargetSpec,
    default_targets,
    parse_targets,
    resolve_targets,
    targets_key,
)

__all__ = [
    "TARGET_FILES_KEY",
    "TargetFile",
    "TargetSpec",
    "TemplateRenderer",
    "default_targets",
    "parse_targets",
    "render_targets",
    "resolve_targets",
    "targets_key",
]
