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

"""Chart validation module.

This module checks that every environment of a chart resolves cleanly,
collecting problems instead of stopping at the first one. It is meant for
quick feedback while editing values files and for CI pre-checks.

Validation Checks:

- Chart directory and values.yaml exist
- Every layer parses and has a mapping at the top level
- Every environment merges under the strict policy (no type mismatches)
- Every ${...} reference resolves

Example:
    Validate a chart and handle results:
        ```python
        from pathlib import Path
        from valuestack.validation import validate_chart

        result = validate_chart(Path("charts/orders"))
        if result.status == "valid":
            print(f"{len(result.environments)} environment(s) resolve")
        else:
            for error in result.errors:
                print(f"Error: {error}")
        ```

"""

from __future__ import annotations

from pathlib import Path

from valuestack.config.loader import (
    BASE_FILENAME,
    find_base_file,
    list_environments,
    load_document,
)
from valuestack.core import resolve_chart
from valuestack.exceptions import ConfigError, ValuestackError
from valuestack.logging import Logger, get_global_logger, set_global_logger
from valuestack.results import ValidationResult

__all__ = ["validate_chart"]

_DEFAULT_ENVIRONMENT = "default"


class _CollectingLogger:
    """Records warnings, drops step output, forwards the rest."""

    def __init__(self, inner: Logger) -> None:
        self._inner = inner
        self.warnings: list[str] = []

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        self.warnings.append(message)

    def verbose(self, prefix: str, message: str) -> None:
        self._inner.verbose(prefix, message)

    def debug(self, prefix: str, message: str) -> None:
        self._inner.debug(prefix, message)


def validate_chart(
    chart_dir: Path,
    environments: list[str] | tuple[str, ...] | None = None,
    verbose: bool = False,
) -> ValidationResult:
    """Validates a chart's layers without producing output files.

    Args:
        chart_dir: The chart directory.
        environments: Environments to check. Defaults to every environment
            with an overlay file in the chart or its shared root.
        verbose: If True, print validation progress.

    Returns:
        A ValidationResult; status is "valid" when no errors were found.
    """
    errors: list[str] = []
    warnings: list[str] = []

    def _result(envs: list[str]) -> ValidationResult:
        return ValidationResult(
            status="valid" if not errors else "invalid",
            errors=errors,
            warnings=warnings,
            environments=envs,
            chart_dir=str(chart_dir),
        )

    if verbose:
        print(f"Validating chart: {chart_dir}")

    if not chart_dir.is_dir():
        errors.append(f"Chart directory not found: {chart_dir}")
        return _result([])

    base_path = find_base_file(chart_dir)
    if base_path is None:
        errors.append(f"Missing required file: {BASE_FILENAME}")
        return _result([])

    try:
        load_document(base_path)
    except ConfigError as err:
        errors.append(str(err))
        return _result([])

    if verbose:
        print(f"  [OK] {base_path.name} is a valid mapping")

    envs = list(environments) if environments else list_environments(chart_dir)
    if not envs:
        warnings.append("No environment overlays found; validating base values only")
        envs = [_DEFAULT_ENVIRONMENT]

    outer = get_global_logger()
    for env in envs:
        collector = _CollectingLogger(outer)
        set_global_logger(collector)
        try:
            resolved = resolve_chart(chart_dir, env)
        except ValuestackError as err:
            errors.append(f"{env}: {err}")
            if verbose:
                print(f"  [ERROR] {env}: {err}")
            continue
        finally:
            set_global_logger(outer)
            if env != _DEFAULT_ENVIRONMENT:
                warnings.extend(f"{env}: {w}" for w in collector.warnings)

        if verbose:
            print(
                f"  [OK] {env}: {len(resolved.flatten())} value(s) "
                f"from {len(resolved.sources)} layer(s)"
            )

    if verbose:
        if not errors:
            print("  [OK] Chart is valid!")
        else:
            print(f"  [ERROR] Chart has {len(errors)} error(s)")

    return _result(envs)
