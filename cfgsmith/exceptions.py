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

"""Exception hierarchy for cfgsmith.

This module defines a custom exception hierarchy that allows library users
to distinguish between the different ways a configuration build can fail.
All exceptions inherit from CfgsmithError, allowing users to catch every
cfgsmith error with a single except clause if needed.

- ConfigError: Settings, manifest, or target mapping problems
- EntityNotFound: A requested or declared entity has no manifest
- CircularDependencyError: A module reappears on its own dependency path
- EmptyDescriptorError: A manifest declares no configuration keys
- AmbiguousOverrideError: Two dependency branches disagree on a key
- UndefinedReferenceError: A template uses an absent key without a guard
- ValidationMismatchError: Generated output differs from the file on disk

MergeCapabilityMismatch is a warning, not an error. It is emitted through
the ``warnings`` module when the hierarchy data source and the merge engine
disagree on supported merge options.

Example:
    Catching specific error types:
        ```python
        from cfgsmith.core import generate_configs
        from cfgsmith.exceptions import CircularDependencyError, EntityNotFound

        try:
            generate_configs(["echo-server"], EntityKind.SERVICE, {"env": "test"})
        except EntityNotFound as e:
            print(f"Missing manifest: {e}")
        except CircularDependencyError as e:
            print(f"Cycle: {' -> '.join(e.path)}")
        ```

    Catching all cfgsmith errors:
        ```python
        from cfgsmith.exceptions import CfgsmithError

        try:
            generate_configs(["echo-server"], EntityKind.SERVICE, {})
        except CfgsmithError as e:
            print(f"cfgsmith error: {e}")
        ```
"""

from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "CfgsmithError",
    "ConfigError",
    "TargetConfigError",
    "EntityNotFound",
    "CircularDependencyError",
    "EmptyDescriptorError",
    "AmbiguousOverrideError",
    "UndefinedReferenceError",
    "ValidationMismatchError",
    "MergeCapabilityMismatch",
]


class CfgsmithError(Exception):
    """Base exception for all cfgsmith errors."""

    pass


class ConfigError(CfgsmithError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing of settings, manifests, or hierarchy data
    - Invalid settings values (unknown merge strategy, bad hierarchy list)
    - Malformed manifests (wrong field types, reserved key names)
    - Invalid scope combinations (env together with node/role)
    """

    pass


class TargetConfigError(ConfigError):
    """Raised when an entity's ``target_file_names`` mapping is malformed.

    Example:
        A target entry without a ``files`` list:
            ```yaml
            echo-server::target_file_names:
              - target_dir: out/
            ```
    """

    pass


class EntityNotFound(CfgsmithError):
    """Raised when a requested or dependency-declared entity has no manifest.

    Attributes:
        name: Entity name that could not be found.
        kind: Kind the entity was requested as.
    """

    def __init__(self, name: str, kind: str, location: str | None = None) -> None:
        self.name = name
        self.kind = kind
        message = f"No manifest found for {kind} {name!r}"
        if location:
            message += f" (looked in {location})"
        super().__init__(message)


class CircularDependencyError(CfgsmithError):
    """Raised when a module appears twice on one dependency path.

    Attributes:
        path: Dependency path from the root to the repeated module, with the
            repeated module appended (e.g., ``("a", "b", "a")``).
    """

    def __init__(self, path: Sequence[str]) -> None:
        self.path = tuple(path)
        super().__init__(
            f"Circular module dependency detected: {' -> '.join(self.path)}"
        )


class EmptyDescriptorError(CfgsmithError):
    """Raised when an entity manifest declares zero configuration keys.

    An entity without keys has no configuration surface, which always points
    to a broken declaration rather than an intentionally empty entity.
    """

    def __init__(self, name: str, kind: str) -> None:
        self.name = name
        self.kind = kind
        super().__init__(
            f"{kind} {name!r} declares no configuration keys. "
            f"List them under 'keys' in its manifest."
        )


class AmbiguousOverrideError(CfgsmithError):
    """Raised when independent dependency branches disagree on a key.

    The nearest common ancestor must declare the key and provide a value
    for it to settle which branch wins.

    Attributes:
        key: Bare property key with conflicting values.
        paths: Conflicting paths inside the value (dotted).
        branches: The two dependency branches that disagree.
        ancestor: Entity that must provide the explicit override.
    """

    def __init__(
        self,
        key: str,
        paths: Sequence[str],
        branches: tuple[str, str],
        ancestor: str,
    ) -> None:
        self.key = key
        self.paths = tuple(paths)
        self.branches = branches
        self.ancestor = ancestor
        super().__init__(
            f"Key {key!r} has conflicting values from modules "
            f"{branches[0]!r} and {branches[1]!r} (at {', '.join(self.paths)}). "
            f"Declare {key!r} in {ancestor!r} and set an explicit value."
        )


class UndefinedReferenceError(CfgsmithError):
    """Raised when a template references an absent key without a guard.

    Attributes:
        template: Name of the template being rendered.
    """

    def __init__(self, template: str, detail: str) -> None:
        self.template = template
        super().__init__(f"Template {template!r}: {detail}")


class ValidationMismatchError(CfgsmithError):
    """Raised in validate mode when generated output differs from disk.

    Attributes:
        path: Path of the existing file.
        diff: Unified diff (existing -> generated) as a list of lines.
    """

    def __init__(self, path: str, diff: Sequence[str]) -> None:
        self.path = path
        self.diff = list(diff)
        super().__init__(
            f"Generated content for {path} differs from the existing file:\n"
            + "".join(self.diff)
        )


class MergeCapabilityMismatch(UserWarning):
    """Warning emitted when merge-option support differs between components.

    The merge engine keeps working with plain strategies and drops the
    per-key deep-merge options (knockout prefix, array handling, sorting).
    """

    pass
