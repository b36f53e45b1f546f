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

"""Hierarchical data lookups for cfgsmith.

Public API:

- YamlHierarchy: YAML-backed hierarchical data source
- HierarchicalDataSource: Protocol implemented by data sources
- MergePolicy: Per-key lookup behavior, strategy and deep-merge options
- DEFAULT_COMPONENT_POLICY: Policy for component keys without lookup_options
- LookupResult, ABSENT, is_absent: Explicit lookup results
- merge_layers: Combine layer values under a policy

Example:
    Look up a key for the test environment:

        from pathlib import Path
        from cfgsmith.hierarchy import YamlHierarchy

        source = YamlHierarchy(Path("hieradata"), ["env/%{env}", "common"])
        result = source.lookup("echo-server::port", {"env": "test"})
        print(result.value, result.layers)

"""

from .merge import merge_layers
from .policy import DEFAULT_COMPONENT_POLICY, MERGE_CAPABILITY, MergePolicy
from .source import ABSENT, HierarchicalDataSource, LookupResult, is_absent
from .yaml_backend import YamlHierarchy

__all__ = [
    "ABSENT",
    "DEFAULT_COMPONENT_POLICY",
    "HierarchicalDataSource",
    "LookupResult",
    "MERGE_CAPABILITY",
    "MergePolicy",
    "YamlHierarchy",
    "is_absent",
    "merge_layers",
]
