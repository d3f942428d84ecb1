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

"""Deep merge of configuration layers.

Merge Behavior:
    Layers are merged with "overlay wins" semantics:

    - **Mappings**: Recursively merged (keys from overlay override base,
      keys only in base are kept, keys only in overlay are added)
    - **Sequences**: Completely replaced (NOT appended/extended)
    - **Scalars**: Overwritten (strings, numbers, booleans, null)

Type Mismatches:
    When a mapping in one layer meets a non-mapping in the other, the
    MergePolicy decides:

    - STRICT (default): raise InvalidStructure naming the key path
    - REPLACE: the overlay value replaces the base value

    A null value is compatible with every type; a null in the overlay
    replaces the base value like any other scalar.

Example:
    Merge an environment overlay onto a base:
        ```python
        from valuestack.config.merge import merge

        base = {"replicas": 3, "image": {"tag": "latest"}}
        merge(base, {"replicas": 5})
        # {"replicas": 5, "image": {"tag": "latest"}}
        ```
"""

from __future__ import annotations

from copy import deepcopy
from enum import Enum
from typing import Any

import yaml

from valuestack.exceptions import ConfigError, InvalidStructure

__all__ = ["MergePolicy", "merge", "merge_layers", "parse_set_overrides"]


class MergePolicy(str, Enum):
    """How to handle a mapping meeting a non-mapping during a merge."""

    STRICT = "strict"
    REPLACE = "replace"


def _join(path: str, key: Any) -> str:
    return f"{path}.{key}" if path else str(key)


def _describe(value: Any) -> str:
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, list):
        return "sequence"
    return f"scalar ({type(value).__name__})"


def _merge_into(
    result: dict[str, Any],
    overlay: dict[str, Any],
    policy: MergePolicy,
    path: str,
) -> None:
    for k, v in overlay.items():
        key_path = _join(path, k)
        if k not in result:
            result[k] = deepcopy(v)
            continue

        current = result[k]
        if isinstance(current, dict) and isinstance(v, dict):
            _merge_into(current, v, policy, key_path)
            continue

        if (
            policy is MergePolicy.STRICT
            and current is not None
            and v is not None
            and isinstance(current, dict) != isinstance(v, dict)
        ):
            raise InvalidStructure(
                f"type mismatch at '{key_path}': base has "
                f"{_describe(current)}, overlay has {_describe(v)}",
                path=key_path,
            )

        # Replace sequences and scalars entirely
        result[k] = deepcopy(v)


def merge(
    base: dict[str, Any],
    overlay: dict[str, Any],
    *,
    policy: MergePolicy = MergePolicy.STRICT,
) -> dict[str, Any]:
    """Deep-merges overlay onto base and returns a new document.

    Neither input is mutated and the result shares no mutable containers
    with them.

    Args:
        base: The base document.
        overlay: The overlay document that takes precedence.
        policy: What to do when a mapping meets a non-mapping.

    Returns:
        A new dictionary with the merged contents.

    Raises:
        InvalidStructure: On a type mismatch under MergePolicy.STRICT, or if
            either argument is not a mapping.
    """
    if not isinstance(base, dict) or not isinstance(overlay, dict):
        raise InvalidStructure(
            f"merge requires mappings at the root, got "
            f"{_describe(base)} and {_describe(overlay)}"
        )
    result = deepcopy(base)
    _merge_into(result, overlay, MergePolicy(policy), "")
    return result


def merge_layers(
    *documents: dict[str, Any],
    policy: MergePolicy = MergePolicy.STRICT,
) -> dict[str, Any]:
    """Folds any number of layers left to right; later layers win.

    Example:
        ```python
        merge_layers(shared, base, overlay)  # == merge(merge(shared, base), overlay)
        ```
    """
    merged: dict[str, Any] = {}
    for doc in documents:
        merged = merge(merged, doc, policy=policy)
    return merged


def parse_set_overrides(assignments: list[str] | tuple[str, ...]) -> dict[str, Any]:
    """Builds an overlay document from Helm-style --set assignments.

    Each assignment is "dotted.key=value". Values are typed with YAML scalar
    rules, so "replicas=5" gives an int and "debug=true" a bool. Quote the
    value to keep it a string ('tag="5"'). Later assignments win.

    Args:
        assignments: The raw assignment strings.

    Returns:
        A nested overlay document.

    Raises:
        ConfigError: If an assignment has no "=", an empty key or an empty
            key segment, or sets a key beneath an already-assigned scalar.
    """
    overlay: dict[str, Any] = {}
    for raw in assignments:
        key, sep, raw_value = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"invalid --set assignment (expected key=value): {raw!r}")
        parts = key.split(".")
        if any(not part for part in parts):
            raise ConfigError(f"invalid --set key: {key!r}")

        try:
            value = yaml.safe_load(raw_value) if raw_value.strip() else ""
        except yaml.YAMLError as err:
            raise ConfigError(f"invalid --set value for {key!r}: {err}") from err

        node = overlay
        for i, part in enumerate(parts[:-1]):
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"--set {key!r} conflicts with scalar at "
                    f"'{'.'.join(parts[: i + 1])}'"
                )
            node = child
        node[parts[-1]] = value
    return overlay
