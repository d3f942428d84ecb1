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

"""valuestack - layered chart values per environment

A small CLI and library that resolves Helm-style chart values for a target
environment: shared platform defaults, the chart's values.yaml, the
environment overlay (values-<env>.yaml), extra files and --set overrides
are deep-merged in that order, then ${...} references and documented
defaults are resolved into one immutable configuration.

valuestack provides:

- Deterministic deep merge (mappings merge, sequences and scalars replace)
- Strict type checking between layers (or lenient replacement)
- Cross-references with fallbacks: ${image.registry | shared.registry}
- Flat dotted-key views and stable fingerprints of the result
- Validation of every environment and environment-to-environment diffs

Quick Start:
Resolve prod values:

    $ valuestack resolve charts/orders -e prod

Validate every environment of a chart:

    $ valuestack validate charts/orders

For full CLI documentation:

    $ valuestack --help
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Layered environment configuration resolver for chart values"

# Re-export commonly used functions for convenience
from valuestack.config import MergePolicy, ResolvedConfig, merge, merge_layers, resolve
from valuestack.core import diff_environments, resolve_chart
from valuestack.exceptions import (
    CircularReference,
    ConfigError,
    InvalidStructure,
    MissingRequiredValue,
    ResolutionError,
    ValuestackError,
)
from valuestack.results import DiffResult, ValidationResult, ValueChange
from valuestack.validation import validate_chart

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "CircularReference",
    "ConfigError",
    "DiffResult",
    "InvalidStructure",
    "MergePolicy",
    "MissingRequiredValue",
    "ResolutionError",
    "ResolvedConfig",
    "ValidationResult",
    "ValueChange",
    "ValuestackError",
    "diff_environments",
    "merge",
    "merge_layers",
    "resolve",
    "resolve_chart",
    "validate_chart",
]
