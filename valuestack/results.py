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

"""Public API return types for valuestack.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Note:
    Only public API return types belong in this module. ResolvedConfig is a
    domain type and lives with the resolver; LoadContext lives with the
    loader.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ValidationResult:
    """Result from validating a chart.

    Attributes:
        status: Validation status ("valid" or "invalid").
        errors: List of error messages (empty if valid).
        warnings: List of warning messages.
        environments: Environments that were checked.
        chart_dir: String path to the validated chart directory.
    """

    status: str
    errors: list[str]
    warnings: list[str]
    environments: list[str]
    chart_dir: str


@dataclass(frozen=True)
class ValueChange:
    """One flat key whose value differs between two environments."""

    path: str
    left: Any
    right: Any


@dataclass(frozen=True)
class DiffResult:
    """Result from comparing the resolved values of two environments.

    Attributes:
        left: Left environment name.
        right: Right environment name.
        added: Flat keys only present on the right, with their values.
        removed: Flat keys only present on the left, with their values.
        changed: Keys present on both sides with different values.
    """

    left: str
    right: str
    added: dict[str, Any]
    removed: dict[str, Any]
    changed: list[ValueChange]

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)
