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

"""Loading and discovery of configuration layers.

A platform repository keeps chart values next to each chart and shared
platform values in a ``shared/`` directory somewhere above them:

    platform/
      shared/
        values.yaml          # shared base
        values-prod.yaml     # shared overlay for prod
      charts/
        orders/
          Chart.yaml
          values.yaml        # chart base
          values-dev.yaml    # chart overlay for dev
          values-prod.yaml   # chart overlay for prod

Configuration Layers:
    1. **Shared base** (shared/values.yaml)
       - Found by walking upward from the chart directory
       - Becomes the ``shared`` namespace, not part of the chart document
    2. **Shared overlay** (shared/values-<env>.yaml)
       - Optional; merged onto the shared base
    3. **Chart base** (<chart>/values.yaml)
       - Always required
    4. **Chart overlay** (<chart>/values-<env>.yaml)
       - Optional; a warning is logged when absent
    5. **Extra files** (-f/--values)
       - Caller supplied, applied in order
    6. **--set overrides**
       - Applied last

Error Handling:
    - ConfigError: Missing chart directory or values.yaml, YAML parse
      errors, non-mapping documents, invalid environment names
    - All errors are chained with "from err" for better debugging

Example:
    ```python
    from pathlib import Path
    from valuestack.config.loader import discover_layers, load_layers

    ctx = discover_layers(Path("charts/orders"), "prod")
    layers = load_layers(ctx)
    print(layers.context.overlay_path)  # .../charts/orders/values-prod.yaml
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import re
from typing import Any

import yaml

from valuestack.exceptions import ConfigError
from valuestack.logging import get_global_logger

__all__ = [
    "BASE_FILENAME",
    "CHART_FILENAME",
    "SHARED_DIRNAME",
    "LoadContext",
    "LoadedLayers",
    "discover_layers",
    "find_base_file",
    "list_environments",
    "load_chart_metadata",
    "load_document",
    "load_layers",
    "overlay_filename",
    "validate_environment_name",
]

BASE_FILENAME = "values.yaml"
CHART_FILENAME = "Chart.yaml"
SHARED_DIRNAME = "shared"

_ENV_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_OVERLAY_NAME = re.compile(r"^values-([A-Za-z0-9][A-Za-z0-9_.-]*)\.ya?ml$")

# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class LoadContext:
    """Which files make up the layers for one (chart, environment) pair.

    Attributes:
        chart_dir: The chart directory.
        environment: The target environment.
        shared_root: The shared/ directory, if one was found above the chart.
        shared_base_path: shared/values.yaml, if found.
        shared_overlay_path: shared/values-<env>.yaml, if present.
        base_path: <chart>/values.yaml.
        overlay_path: <chart>/values-<env>.yaml, if present.
        chart_file_path: <chart>/Chart.yaml, if present.
        extra_paths: Caller-supplied values files, in order.
    """

    chart_dir: Path
    environment: str
    shared_root: Path | None
    shared_base_path: Path | None
    shared_overlay_path: Path | None
    base_path: Path
    overlay_path: Path | None
    chart_file_path: Path | None
    extra_paths: tuple[Path, ...] = ()


@dataclass
class LoadedLayers:
    """Parsed documents for a LoadContext, ready to merge.

    Attributes:
        context: Where the documents came from.
        shared_layers: Shared base then shared overlay (missing ones skipped).
        chart_layers: (source label, document) pairs, lowest precedence first.
        chart_meta: Parsed Chart.yaml, or an empty dict.
    """

    context: LoadContext
    shared_layers: list[dict[str, Any]] = field(default_factory=list)
    chart_layers: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    chart_meta: dict[str, Any] = field(default_factory=dict)


# -------------------------------
# YAML helpers
# -------------------------------


def load_document(p: Path, *, allow_empty: bool = True) -> dict[str, Any]:
    """Loads one YAML (or JSON) values document.

    Args:
        p: Path to the file.
        allow_empty: If True, an empty file is an empty document.

    Returns:
        The parsed mapping.

    Raises:
        ConfigError: When the file does not exist, cannot be parsed, is empty
            (and allow_empty is False), or its top level is not a mapping.
    """
    if not p.exists():
        raise ConfigError(f"file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Failed to read {p}: {err}") from err
    if data is None:
        if not allow_empty:
            raise ConfigError(f"YAML file is empty: {p}")
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"top-level YAML must be a mapping (dict), got "
            f"{type(data).__name__}: {p}"
        )
    return data


def _print_yaml_content(data: dict[str, Any], indent: int = 0) -> None:
    """Dump a document through the debug logger."""
    logger = get_global_logger()
    yaml_str = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    for line in yaml_str.split("\n"):
        if line.strip():
            logger.debug("LOAD", " " * indent + line)


# -------------------------------
# Discovery
# -------------------------------


def validate_environment_name(environment: str) -> str:
    """Returns the environment name or raises ConfigError if it is unusable."""
    if not isinstance(environment, str) or not _ENV_NAME.match(environment):
        raise ConfigError(
            f"invalid environment name {environment!r}: use letters, digits, "
            "'.', '_' or '-', starting with a letter or digit"
        )
    return environment


def overlay_filename(environment: str) -> str:
    return f"values-{environment}.yaml"


def _find_shared_root(start_dir: Path) -> Path | None:
    """Walks upward from start_dir looking for shared/values.yaml.

    Returns:
        The shared/ directory if found, None otherwise.
    """
    for parent in [start_dir] + list(start_dir.parents):
        if find_base_file(parent / SHARED_DIRNAME) is not None:
            return parent / SHARED_DIRNAME
    return None


def _existing(p: Path) -> Path | None:
    if p.exists():
        return p
    alt = p.with_suffix(".yml")
    return alt if alt.exists() else None


def find_base_file(directory: Path) -> Path | None:
    """Returns directory/values.yaml (or values.yml), None if neither exists."""
    return _existing(directory / BASE_FILENAME)


def discover_layers(
    chart_dir: Path,
    environment: str,
    *,
    extra_files: tuple[Path, ...] | list[Path] = (),
) -> LoadContext:
    """Finds the files that make up each layer.

    Args:
        chart_dir: The chart directory (contains values.yaml).
        environment: Target environment name.
        extra_files: Additional values files applied after the overlay.

    Returns:
        The LoadContext describing the layers.

    Raises:
        ConfigError: If the chart directory or its values.yaml is missing, an
            extra file is missing, or the environment name is invalid.
    """
    logger = get_global_logger()
    validate_environment_name(environment)

    chart_dir = chart_dir.resolve()
    if not chart_dir.is_dir():
        raise ConfigError(f"chart directory not found: {chart_dir}")

    base_path = find_base_file(chart_dir)
    if base_path is None:
        raise ConfigError(f"chart has no {BASE_FILENAME}: {chart_dir}")

    shared_root = _find_shared_root(chart_dir)
    shared_base_path = shared_overlay_path = None
    if shared_root:
        logger.verbose("LOAD", f"Found shared root: {shared_root}")
        shared_base_path = find_base_file(shared_root)
        shared_overlay_path = _existing(shared_root / overlay_filename(environment))

    overlay_path = _existing(chart_dir / overlay_filename(environment))
    if overlay_path is None:
        logger.warning(
            "LOAD",
            f"No {overlay_filename(environment)} in {chart_dir.name}; "
            "using base values only",
        )

    extras = tuple(Path(p).resolve() for p in extra_files)
    for p in extras:
        if not p.exists():
            raise ConfigError(f"values file not found: {p}")

    return LoadContext(
        chart_dir=chart_dir,
        environment=environment,
        shared_root=shared_root,
        shared_base_path=shared_base_path,
        shared_overlay_path=shared_overlay_path,
        base_path=base_path,
        overlay_path=overlay_path,
        chart_file_path=_existing(chart_dir / CHART_FILENAME),
        extra_paths=extras,
    )


def list_environments(chart_dir: Path) -> list[str]:
    """Lists environments with an overlay in the chart or its shared root."""
    chart_dir = chart_dir.resolve()
    dirs = [chart_dir]
    shared_root = _find_shared_root(chart_dir)
    if shared_root:
        dirs.append(shared_root)

    found: set[str] = set()
    for d in dirs:
        if not d.is_dir():
            continue
        for entry in d.iterdir():
            m = _OVERLAY_NAME.match(entry.name)
            if m and entry.is_file():
                found.add(m.group(1))
    return sorted(found)


# -------------------------------
# Loading
# -------------------------------


def load_chart_metadata(path: Path | None) -> dict[str, Any]:
    """Reads Chart.yaml; returns {} when there is none."""
    if path is None:
        return {}
    return load_document(path)


def _label(p: Path, ctx: LoadContext) -> str:
    for root in (ctx.chart_dir.parent, ctx.shared_root.parent if ctx.shared_root else None):
        if root is None:
            continue
        try:
            return str(p.relative_to(root))
        except ValueError:
            continue
    return str(p)


def load_layers(ctx: LoadContext) -> LoadedLayers:
    """Parses every file named in a LoadContext.

    Args:
        ctx: The discovered layers.

    Returns:
        LoadedLayers with shared and chart documents in precedence order.

    Raises:
        ConfigError: On parse errors or non-mapping documents.
    """
    logger = get_global_logger()
    layers = LoadedLayers(context=ctx)

    for p in (ctx.shared_base_path, ctx.shared_overlay_path):
        if p is None:
            continue
        logger.verbose("LOAD", f"Loading shared: {_label(p, ctx)}")
        doc = load_document(p)
        logger.debug("LOAD", f"--- Content from {_label(p, ctx)} ---")
        _print_yaml_content(doc)
        layers.shared_layers.append(doc)

    chart_paths = [ctx.base_path]
    if ctx.overlay_path is not None:
        chart_paths.append(ctx.overlay_path)
    chart_paths.extend(ctx.extra_paths)

    for p in chart_paths:
        label = _label(p, ctx)
        logger.verbose("LOAD", f"Loading: {label}")
        doc = load_document(p)
        logger.debug("LOAD", f"--- Content from {label} ---")
        _print_yaml_content(doc)
        layers.chart_layers.append((label, doc))

    layers.chart_meta = load_chart_metadata(ctx.chart_file_path)
    if layers.chart_meta:
        logger.verbose(
            "LOAD",
            f"Chart {layers.chart_meta.get('name', ctx.chart_dir.name)} "
            f"appVersion={layers.chart_meta.get('appVersion')}",
        )
    return layers
