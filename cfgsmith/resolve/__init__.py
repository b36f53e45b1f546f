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

"""Configuration resolution for cfgsmith.

Public API:

- MergeEngine: Resolves single properties against a hierarchical data source
- DependencyResolver: Walks an entity's dependency graph
- ResolvedConfiguration: Flattened configuration set of a root entity
- Contribution, PropertyResolution: Per-entity and per-key trace records
"""

from .engine import MANIFEST_LAYER, MergeEngine, PropertyResolution
from .resolver import (
    Contribution,
    DependencyResolver,
    ResolvedConfiguration,
    narrow_scope,
)

__all__ = [
    "MANIFEST_LAYER",
    "Contribution",
    "DependencyResolver",
    "MergeEngine",
    "PropertyResolution",
    "ResolvedConfiguration",
    "narrow_scope",
]
