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

"""Hierarchical data source protocol and lookup result types.

A hierarchical data source answers ``lookup(key, scope, policy)`` by
consulting its ordered layers (for example node, role, environment and
common data) and combining what it finds according to the merge policy.

Absence is explicit: a key that no layer defines resolves to the ABSENT
marker, never to None, False or an empty collection. ABSENT refuses to be
used as a boolean so that ``if value:`` cannot silently conflate a missing
key with a falsy one.

Example:
    Checking a lookup result:
        ```python
        result = source.lookup("echo-server::port", {"env": "test"})
        if result.is_absent:
            print("port is not configured")
        else:
            print(result.value, "from", ", ".join(result.layers))
        ```
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from .policy import MergePolicy


class _AbsentType:
    """Type of the ABSENT singleton."""

    _instance: _AbsentType | None = None

    def __new__(cls) -> _AbsentType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        raise TypeError("ABSENT has no truth value; compare with 'is ABSENT'")

    def __copy__(self) -> _AbsentType:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _AbsentType:
        return self

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT = _AbsentType()


def is_absent(value: Any) -> bool:
    """Return True if ``value`` is the ABSENT marker."""
    return value is ABSENT


@dataclass(frozen=True)
class LookupResult:
    """Outcome of one hierarchical lookup.

    Attributes:
        value: The merged value, or ABSENT.
        layers: Names of the layers that contributed, highest priority first.
    """

    value: Any = ABSENT
    layers: tuple[str, ...] = ()

    @property
    def is_absent(self) -> bool:
        return self.value is ABSENT


class HierarchicalDataSource(Protocol):
    """Protocol for layered key/value stores queried by the merge engine.

    Layer ordering and layer contents are owned by the data source; callers
    only supply the key, the scope and the merge policy.
    """

    @property
    def merge_capability(self) -> int:
        """Level of deep-merge option support (see policy.MERGE_CAPABILITY)."""
        ...

    @property
    def default_policy(self) -> MergePolicy:
        """Policy used when a key has no lookup_options entry."""
        ...

    def lookup(
        self,
        key: str,
        scope: Mapping[str, str],
        policy: MergePolicy | None = None,
    ) -> LookupResult:
        """Look up a fully-qualified key.

        Args:
            key: Lookup key (``<namespace>::<property>``).
            scope: Context dimensions used to select layers.
            policy: Merge policy. None means ``default_policy``.

        Returns:
            LookupResult holding the merged value or ABSENT.
        """
        ...

    def lookup_options(self, scope: Mapping[str, str]) -> dict[str, Any]:
        """Return the ``lookup_options`` mapping visible in ``scope``."""
        ...
