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

"""Merge policies for hierarchical lookups.

A MergePolicy tells the hierarchy data source how to combine the values a
key has on different hierarchy levels:

- behavior ``first``: the highest-priority level that defines the key wins
- behavior ``hash``: every level that defines the key contributes, combined
  with one of the strategies below

Strategies:
    - ``priority``: mappings are merged one level deep; on a conflicting
      top-level key the higher-priority level wins outright
    - ``deep`` / ``deeper``: mappings are merged recursively; scalar
      conflicts are won by the higher-priority level

Deep-merge options (only honored when the data source supports them):
    - ``merge_arrays``: concatenate sequences instead of replacing them
    - ``knockout_prefix``: a string ``<prefix>x`` removes ``x`` from a merged
      sequence, and a value equal to the prefix removes the key
    - ``sort_merged_arrays``: sort sequences after merging

Policies are declared per key under ``lookup_options`` in the hierarchy
data, either in the long form:

    lookup_options:
      component::memcached:
        behavior: hash
        strategy: deeper
        merge_hash_arrays: true

or the short form (``merge: first|hash|deep`` or a ``merge`` mapping).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from cfgsmith.exceptions import ConfigError

BEHAVIORS = ("first", "hash")
STRATEGIES = ("priority", "deep", "deeper")

# Level of deep-merge option support this package implements. Data sources
# report their own level; a different level disables option passthrough.
MERGE_CAPABILITY = 2


def _as_bool(value: Any, field: str) -> bool:
    # quoted booleans ("true"/"false") are accepted
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ConfigError(f"lookup option {field!r} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class MergePolicy:
    """How values from several hierarchy levels are combined.

    Attributes:
        behavior: "first" or "hash".
        strategy: "priority", "deep" or "deeper" (used by "hash").
        merge_arrays: Concatenate sequences on merge.
        knockout_prefix: Prefix marking values to remove, or None.
        sort_merged_arrays: Sort merged sequences.
    """

    behavior: str = "hash"
    strategy: str = "deeper"
    merge_arrays: bool = True
    knockout_prefix: str | None = None
    sort_merged_arrays: bool = False

    def __post_init__(self) -> None:
        if self.behavior not in BEHAVIORS:
            raise ConfigError(
                f"Unknown lookup behavior {self.behavior!r}. "
                f"Supported: {', '.join(BEHAVIORS)}"
            )
        if self.strategy not in STRATEGIES:
            raise ConfigError(
                f"Unknown merge strategy {self.strategy!r}. "
                f"Supported: {', '.join(STRATEGIES)}"
            )
        if self.knockout_prefix is not None and (
            not isinstance(self.knockout_prefix, str) or not self.knockout_prefix
        ):
            raise ConfigError("knockout_prefix must be a non-empty string")

    @property
    def has_options(self) -> bool:
        """True when any deep-merge option is in effect."""
        return (
            self.merge_arrays
            or self.knockout_prefix is not None
            or self.sort_merged_arrays
        )

    def without_options(self) -> MergePolicy:
        """Return the same behavior and strategy with every option disabled."""
        return replace(
            self, merge_arrays=False, knockout_prefix=None, sort_merged_arrays=False
        )

    @classmethod
    def from_lookup_options(
        cls, options: Mapping[str, Any], base: MergePolicy | None = None
    ) -> MergePolicy:
        """Build a policy from one ``lookup_options`` entry.

        Fields missing from the entry are taken from ``base`` (or the class
        defaults).

        Args:
            options: The entry, in long form (behavior/strategy/options) or
                short form (``merge``).
            base: Policy supplying unspecified fields.

        Returns:
            The effective policy for the key.

        Raises:
            ConfigError: If the entry is not a mapping or holds invalid values.

        Example:
            >>> MergePolicy.from_lookup_options({"merge": "first"}).behavior
            'first'
            >>> MergePolicy.from_lookup_options(
            ...     {"behavior": "hash", "strategy": "priority"}
            ... ).strategy
            'priority'
        """
        if not isinstance(options, Mapping):
            raise ConfigError(f"lookup_options entry must be a mapping, got {options!r}")

        base = base or cls()
        fields: dict[str, Any] = {}
        entry: Mapping[str, Any] = options

        merge = options.get("merge")
        if isinstance(merge, str):
            if merge == "first":
                fields["behavior"] = "first"
            elif merge == "hash":
                fields.update(behavior="hash", strategy="priority")
            elif merge in ("deep", "deeper"):
                fields.update(behavior="hash", strategy=merge)
            else:
                raise ConfigError(f"Unknown merge {merge!r} in lookup_options")
        elif isinstance(merge, Mapping):
            fields["behavior"] = "hash"
            entry = merge
        elif merge is not None:
            raise ConfigError(f"Invalid merge {merge!r} in lookup_options")

        if "behavior" in entry:
            fields["behavior"] = entry["behavior"]
        if "strategy" in entry:
            fields["strategy"] = entry["strategy"]
        for key in ("merge_hash_arrays", "merge_arrays"):
            if key in entry:
                fields["merge_arrays"] = _as_bool(entry[key], key)
        if "knockout_prefix" in entry:
            fields["knockout_prefix"] = entry["knockout_prefix"]
        if "sort_merged_arrays" in entry:
            fields["sort_merged_arrays"] = _as_bool(
                entry["sort_merged_arrays"], "sort_merged_arrays"
            )

        return replace(base, **fields)


# Used for component keys without an explicit lookup_options entry
DEFAULT_COMPONENT_POLICY = MergePolicy(behavior="hash", strategy="deeper", merge_arrays=True)
