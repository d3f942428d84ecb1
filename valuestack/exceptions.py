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

"""Exception hierarchy for valuestack.

This module defines a custom exception hierarchy that allows library users
to distinguish between the ways a configuration can fail to resolve:

- ConfigError: Loading problems (missing files, YAML parse errors, non-mapping
  documents, malformed --set assignments)
- InvalidStructure: A key has incompatible types between two layers
- MissingRequiredValue: A referenced or required key has no value anywhere
- CircularReference: References that point back at themselves

All exceptions inherit from ValuestackError, allowing users to catch every
valuestack error with a single except clause if needed.

Example:
    Catching specific error types:
        ```python
        from valuestack.core import resolve_chart
        from valuestack.exceptions import InvalidStructure, MissingRequiredValue

        try:
            resolved = resolve_chart(Path("charts/orders"), "prod")
        except InvalidStructure as e:
            print(f"Layers disagree at {e.path}: {e}")
        except MissingRequiredValue as e:
            print(f"Unset value: {e.path}")
        ```

    Catching all valuestack errors:
        ```python
        from valuestack.exceptions import ValuestackError

        try:
            resolved = resolve_chart(Path("charts/orders"), "prod")
        except ValuestackError as e:
            print(f"valuestack error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "ValuestackError",
    "ConfigError",
    "InvalidStructure",
    "ResolutionError",
    "MissingRequiredValue",
    "CircularReference",
]


class ValuestackError(Exception):
    """Base exception for all valuestack errors.

    All valuestack-specific exceptions inherit from this class, allowing users
    to catch all valuestack errors with a single except clause if needed.
    """

    pass


class ConfigError(ValuestackError):
    """Raised for configuration loading errors.

    This exception is raised when there are problems with:

    - Missing chart directories or values files
    - YAML parsing (syntax errors)
    - Documents whose top level is not a mapping
    - Invalid environment names
    - Malformed --set assignments

    Example:
        Catching configuration errors:
            ```python
            from valuestack.exceptions import ConfigError

            try:
                doc = load_document(Path("values.yaml"))
            except ConfigError as e:
                print(f"Config error: {e}")
            ```
    """

    pass


class InvalidStructure(ConfigError):
    """Raised when a key's type differs incompatibly between layers.

    Only raised by a strict merge, where a mapping in one layer meets a
    non-mapping value in the other.

    Attributes:
        path: Dotted path of the offending key (e.g., "image" or "ports[0]").
    """

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class ResolutionError(ConfigError):
    """Base class for failures while resolving ${...} references."""

    pass


class MissingRequiredValue(ResolutionError):
    """Raised when a referenced or required key has no value in any layer.

    Attributes:
        path: The reference expression or dotted path that could not be
            satisfied.
    """

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path


class CircularReference(ResolutionError):
    """Raised when references form a cycle.

    Attributes:
        chain: The dotted paths visited, ending with the repeated one.
    """

    def __init__(self, chain: list[str]) -> None:
        super().__init__("circular reference: " + " -> ".join(chain))
        self.chain = list(chain)
