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

"""Project settings for cfgsmith.

Settings are read from ``cfgsmith.yaml`` (found by walking upward from the
working directory), layered over built-in defaults and under an optional
``cfgsmith.local.yaml``. Dicts are merged recursively; lists and scalars are
replaced (last wins).

Public API:

- load_settings: Load and merge the effective project settings
- Settings: Immutable settings dataclass

Example:
    Basic usage:

        from cfgsmith.config import load_settings

        settings = load_settings()
        print(settings.datadir)
        print(settings.hierarchy)

"""

from .loader import Settings, load_settings

__all__ = ["Settings", "load_settings"]
