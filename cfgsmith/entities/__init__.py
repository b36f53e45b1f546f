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

"""Entity descriptors and descriptor sources.

Public API:

- EntityKind: service, submodule or component
- EntityDescriptor, Dependency: Immutable entity declarations
- DescriptorSource: Protocol for loading descriptors by (name, kind)
- ManifestSource: Loads descriptors from manifest.yaml files
- DescriptorRegistry: Explicit in-memory registry
"""

from .descriptor import (
    RESERVED_KEYS,
    Dependency,
    DescriptorSource,
    EntityDescriptor,
    EntityKind,
)
from .manifest import ManifestSource, descriptor_from_manifest
from .registry import DescriptorRegistry

__all__ = [
    "RESERVED_KEYS",
    "Dependency",
    "DescriptorRegistry",
    "DescriptorSource",
    "EntityDescriptor",
    "EntityKind",
    "ManifestSource",
    "descriptor_from_manifest",
]
