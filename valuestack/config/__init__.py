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

"""Configuration loading, merging and resolution for valuestack.

This package turns a stack of YAML values files into one resolved
configuration per environment:

  - loader: finds and parses the shared, base, overlay and extra layers
  - merge: deep-merges layers (mappings merge, sequences/scalars replace)
  - resolver: resolves ${...} references and documented defaults into an
    immutable ResolvedConfig

Example:
    Basic usage:
        ```python
        from valuestack.config import merge, resolve

        merged = merge({"replicas": 3, "image": {"tag": "latest"}}, {"replicas": 5})
        resolved = resolve(merged, "prod")
        print(resolved.get("replicas"))  # 5
        ```
"""

from .loader import LoadContext, discover_layers, list_environments, load_document
from .merge import MergePolicy, merge, merge_layers, parse_set_overrides
from .resolver import ResolvedConfig, resolve

__all__ = [
    "LoadContext",
    "MergePolicy",
    "ResolvedConfig",
    "discover_layers",
    "list_environments",
    "load_document",
    "merge",
    "merge_layers",
    "parse_set_overrides",
    "resolve",
]
