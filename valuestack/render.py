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

"""Serialization of resolved configurations for deployment tools.

Formats:

- yaml: the resolved tree, keys in merge order (feed to ``helm -f``)
- json: the resolved tree, keys sorted (non-string keys written as strings)
- flat: one ``dotted.key=value`` line per leaf, sorted; plain strings are
  written as-is, everything else JSON-encoded
"""

from __future__ import annotations

import json
from typing import Any

import yaml

from valuestack.config.resolver import ResolvedConfig, stringify_keys
from valuestack.exceptions import ConfigError

__all__ = ["FORMATS", "render"]

FORMATS = ("yaml", "json", "flat")


def _flat_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def render(resolved: ResolvedConfig, fmt: str = "yaml") -> str:
    """Renders a resolved configuration as text.

    Args:
        resolved: The configuration to render.
        fmt: One of "yaml", "json" or "flat".

    Returns:
        The rendered text, ending with a newline.

    Raises:
        ConfigError: If fmt is not a supported format.
    """
    if fmt == "yaml":
        return yaml.safe_dump(
            resolved.to_dict(), default_flow_style=False, sort_keys=False
        )
    if fmt == "json":
        return (
            json.dumps(stringify_keys(resolved.values), indent=2, sort_keys=True, default=str)
            + "\n"
        )
    if fmt == "flat":
        flat = resolved.flatten()
        return "".join(f"{k}={_flat_value(flat[k])}\n" for k in sorted(flat))
    raise ConfigError(f"unsupported output format {fmt!r} (expected one of {', '.join(FORMATS)})")
