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

"""Merge strategies used by the hierarchy data source and the resolver.

All functions are pure: inputs are never mutated and every returned
structure is a fresh copy.

Layer order convention: sequences of layer values are ordered highest
priority first, matching the hierarchy order.

Array handling with ``merge_arrays`` enabled: items of the lower-priority
value come first, items of the higher-priority value are appended, and
duplicates are dropped.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from copy import deepcopy
from typing import Any

from .policy import MergePolicy
from .source import ABSENT


def merge_layers(values: Sequence[Any], policy: MergePolicy) -> Any:
    """Combine layer values according to a merge policy.

    Args:
        values: Present values ordered highest priority first.
        policy: Policy selecting behavior, strategy and options.

    Returns:
        The merged value, or ABSENT when ``values`` is empty.

    Example:
        >>> merge_layers([{"a": 1}, {"a": 2, "b": 3}], MergePolicy())
        {'a': 1, 'b': 3}
        >>> merge_layers([8080, 80], MergePolicy(behavior="first"))
        8080
    """
    if not values:
        return ABSENT
    if policy.behavior == "first":
        return _strip_knockouts(values[0], policy)

    result = _strip_knockouts(values[-1], policy)
    for higher in reversed(values[:-1]):
        result = merge_pair(result, higher, policy)
    return result


def merge_pair(base: Any, overlay: Any, policy: MergePolicy) -> Any:
    """Merge ``overlay`` (higher priority) onto ``base`` (lower priority)."""
    if policy.behavior == "first":
        return _strip_knockouts(overlay, policy)
    if policy.strategy == "priority":
        if isinstance(base, Mapping) and isinstance(overlay, Mapping):
            result = {k: deepcopy(v) for k, v in base.items()}
            for key, value in overlay.items():
                if _is_knockout(value, policy):
                    result.pop(key, None)
                else:
                    result[key] = _strip_knockouts(value, policy)
            return result
        return _strip_knockouts(overlay, policy)
    return _deep_merge(base, overlay, policy)


def _deep_merge(base: Any, overlay: Any, policy: MergePolicy) -> Any:
    if isinstance(base, Mapping) and isinstance(overlay, Mapping):
        result = {k: deepcopy(v) for k, v in base.items()}
        for key, value in overlay.items():
            if _is_knockout(value, policy):
                result.pop(key, None)
            elif key in result:
                result[key] = _deep_merge(result[key], value, policy)
            else:
                result[key] = _strip_knockouts(value, policy)
        return result

    if _is_sequence(base) and _is_sequence(overlay) and policy.merge_arrays:
        return _merge_sequences(base, overlay, policy)

    return _strip_knockouts(overlay, policy)


def _merge_sequences(
    base: Sequence[Any], overlay: Sequence[Any], policy: MergePolicy
) -> list[Any]:
    knocked = [
        item[len(policy.knockout_prefix):]
        for item in overlay
        if _is_knockout_item(item, policy)
    ]
    result: list[Any] = []
    for item in list(base) + [i for i in overlay if not _is_knockout_item(i, policy)]:
        if item in knocked or item in result:
            continue
        result.append(deepcopy(item))
    if policy.sort_merged_arrays:
        result.sort(key=lambda item: (type(item).__name__, str(item)))
    return result


def _strip_knockouts(value: Any, policy: MergePolicy) -> Any:
    """Deep-copy a value, dropping knockout markers that have nothing to remove."""
    if policy.knockout_prefix is None:
        return deepcopy(value)
    if isinstance(value, Mapping):
        return {
            k: _strip_knockouts(v, policy)
            for k, v in value.items()
            if not _is_knockout(v, policy)
        }
    if _is_sequence(value):
        return [
            _strip_knockouts(item, policy)
            for item in value
            if not _is_knockout_item(item, policy)
        ]
    return deepcopy(value)


def _is_knockout(value: Any, policy: MergePolicy) -> bool:
    return policy.knockout_prefix is not None and value == policy.knockout_prefix


def _is_knockout_item(item: Any, policy: MergePolicy) -> bool:
    return (
        policy.knockout_prefix is not None
        and isinstance(item, str)
        and item.startswith(policy.knockout_prefix)
    )


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


# -------------------------------
# Conflict detection
# -------------------------------


def find_conflicts(
    left: Any, right: Any, policy: MergePolicy, path: tuple[Any, ...] = ()
) -> list[tuple[Any, ...]]:
    """List the paths where two values cannot be merged without a winner.

    The comparison goes as deep as ``policy`` merges: "first" compares the
    whole value, "priority" compares the top-level entries of a mapping,
    "deep"/"deeper" compare leaf by leaf. Sequences only merge cleanly when
    they are concatenated (deep strategies with ``merge_arrays``).

    Args:
        left: Value contributed by one branch.
        right: Value contributed by another branch.
        policy: Policy the two values are merged with.
        path: Path prefix used for reporting.

    Returns:
        Key paths of conflicting values, empty when the values agree.

    Example:
        >>> deeper = MergePolicy(strategy="deeper")
        >>> find_conflicts({"a": 1, "b": {"c": 1}}, {"a": 1, "b": {"c": 2}}, deeper, ("k",))
        [('k', 'b', 'c')]
    """
    if policy.behavior == "first":
        return [] if _same(left, right) else [path]
    depth = 1 if policy.strategy == "priority" else None
    return _conflicts_below(left, right, policy, path, depth)


def _conflicts_below(
    left: Any,
    right: Any,
    policy: MergePolicy,
    path: tuple[Any, ...],
    depth: int | None,
) -> list[tuple[Any, ...]]:
    if depth != 0 and isinstance(left, Mapping) and isinstance(right, Mapping):
        child_depth = None if depth is None else depth - 1
        conflicts: list[tuple[Any, ...]] = []
        for key in left:
            if key in right:
                conflicts.extend(
                    _conflicts_below(left[key], right[key], policy, path + (key,), child_depth)
                )
        return conflicts
    if (
        policy.strategy != "priority"
        and policy.merge_arrays
        and _is_sequence(left)
        and _is_sequence(right)
    ):
        return []
    return [] if _same(left, right) else [path]


def _same(left: Any, right: Any) -> bool:
    return left == right and type(left) is type(right)


def value_at(value: Any, path: Sequence[Any]) -> Any:
    """Return the value at ``path`` inside nested mappings, or ABSENT."""
    current = value
    for step in path:
        if not isinstance(current, Mapping) or step not in current:
            return ABSENT
        current = current[step]
    return current
