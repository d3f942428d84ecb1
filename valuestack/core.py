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

"""Core orchestration for valuestack.

This module ties the loader, merger and resolver together into the two
workflows the CLI exposes: resolving one chart for one environment, and
comparing two environments of the same chart.

Design Principles:

- Each function has a single, clear responsibility
- Functions return structured data (dataclasses) for easy testing
- Error handling uses exceptions; the CLI layer formats them for display
- The shared section is passed explicitly into the resolver; nothing is
  kept in module state between calls

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from valuestack.core import resolve_chart

        resolved = resolve_chart(Path("charts/orders"), "prod")
        print(resolved.get("image.tag"))
        print(resolved.fingerprint)
        ```
"""

from __future__ import annotations

from pathlib import Path

import yaml

from valuestack.config.loader import discover_layers, load_layers
from valuestack.config.merge import MergePolicy, merge, merge_layers, parse_set_overrides
from valuestack.config.resolver import ResolvedConfig, resolve
from valuestack.logging import get_global_logger
from valuestack.results import DiffResult, ValueChange

__all__ = ["diff_environments", "resolve_chart"]


def resolve_chart(
    chart_dir: Path,
    environment: str,
    *,
    extra_files: tuple[Path, ...] | list[Path] = (),
    set_values: tuple[str, ...] | list[str] = (),
    required: tuple[str, ...] | list[str] = (),
    policy: MergePolicy = MergePolicy.STRICT,
) -> ResolvedConfig:
    """Resolves the configuration of one chart for one environment.

    Performs the following operations:

    1. Discover layers (shared root, base, overlay, extra files)
    2. Load and merge: shared base -> shared overlay, and separately
       base -> overlay -> extra files -> --set overrides
    3. Resolve references and documented defaults against the shared
       section and Chart.yaml

    Args:
        chart_dir: The chart directory.
        environment: Target environment name.
        extra_files: Additional values files applied after the overlay.
        set_values: Helm-style "key=value" overrides applied last.
        required: Dotted paths that must be set after resolution.
        policy: Merge policy for type mismatches between layers.

    Returns:
        The immutable ResolvedConfig.

    Raises:
        ConfigError: On missing files, parse errors or invalid input.
        InvalidStructure: On a type mismatch under the strict policy.
        MissingRequiredValue: If a reference or required path has no value.
        CircularReference: If references form a cycle.
    """
    logger = get_global_logger()

    logger.step(1, 3, "Discovering layers...")
    ctx = discover_layers(Path(chart_dir), environment, extra_files=extra_files)

    logger.step(2, 3, "Merging layers...")
    layers = load_layers(ctx)
    shared = merge_layers(*layers.shared_layers, policy=policy)

    merged: dict = {}
    sources: list[str] = []
    for label, doc in layers.chart_layers:
        merged = merge(merged, doc, policy=policy)
        sources.append(label)

    if set_values:
        merged = merge(merged, parse_set_overrides(set_values), policy=policy)
        sources.append("--set")

    logger.verbose("MERGE", f"Deep merged {len(sources)} layer(s): {', '.join(sources)}")
    top_level_keys = list(merged.keys())
    logger.verbose(
        "MERGE",
        (
            f"Merged config has {len(top_level_keys)} top-level keys: "
            f"{', '.join(str(k) for k in top_level_keys)}"
        ),
    )
    logger.debug("MERGE", "--- Merged values ---")
    for line in yaml.safe_dump(merged, default_flow_style=False, sort_keys=False).splitlines():
        logger.debug("MERGE", line)

    logger.step(3, 3, "Resolving references...")
    if layers.shared_layers:
        sources.insert(0, "shared")
    return resolve(
        merged,
        environment,
        shared=shared,
        chart=layers.chart_meta,
        required=required,
        sources=sources,
    )


def diff_environments(
    chart_dir: Path,
    left: str,
    right: str,
    *,
    policy: MergePolicy = MergePolicy.STRICT,
) -> DiffResult:
    """Compares the flat resolved values of two environments.

    Args:
        chart_dir: The chart directory.
        left: First environment (e.g., "staging").
        right: Second environment (e.g., "prod").
        policy: Merge policy used for both resolutions.

    Returns:
        A DiffResult with added, removed and changed flat keys, each sorted
        by key.
    """
    left_flat = resolve_chart(chart_dir, left, policy=policy).flatten()
    right_flat = resolve_chart(chart_dir, right, policy=policy).flatten()

    added = {k: right_flat[k] for k in sorted(right_flat.keys() - left_flat.keys())}
    removed = {k: left_flat[k] for k in sorted(left_flat.keys() - right_flat.keys())}
    changed = [
        ValueChange(path=k, left=left_flat[k], right=right_flat[k])
        for k in sorted(left_flat.keys() & right_flat.keys())
        if left_flat[k] != right_flat[k]
    ]
    return DiffResult(
        left=left, right=right, added=added, removed=removed, changed=changed
    )
