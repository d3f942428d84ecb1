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

"""Reference resolution and the immutable resolved configuration.

After the layers are merged, string values may still point at other values:

    image:
      registry: ${shared.registry | "docker.io"}
      repository: ${image.registry}/orders
    ingress:
      host: orders.${environment}.${shared.domain}

References:
    - ``${path}`` reads a dotted path (``ports[0].name`` indexes sequences)
    - ``${a | b | "literal"}`` tries each alternative in order; the first
      non-null value wins and a quoted literal always counts as set
    - ``$${`` escapes a literal ``${``

Namespaces:
    - ``values.*``: the merged document itself (the default for bare paths)
    - ``shared.*``: the shared platform section, passed in explicitly
    - ``chart.*``: Chart.yaml metadata (name, version, appVersion)
    - ``environment``: the environment name

A string that is exactly one reference keeps the referenced value's type
(``replicas: ${shared.replicas}`` stays an int). References embedded in a
longer string are interpolated as text.

Documented Defaults:
    Applied before references are resolved, only when the target's parent
    mapping exists and the target is null or empty:

    - image.tag <- chart.appVersion

Example:
    ```python
    from valuestack.config.resolver import resolve

    resolved = resolve(
        {"image": {"repository": "${shared.registry}/orders"}},
        "prod",
        shared={"registry": "registry.example.com"},
        chart={"appVersion": "1.4.2"},
    )
    resolved.get("image.tag")         # "1.4.2"
    resolved.get("image.repository")  # "registry.example.com/orders"
    ```
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass
import hashlib
import json
import re
from types import MappingProxyType
from typing import Any

from valuestack.exceptions import (
    CircularReference,
    MissingRequiredValue,
    ResolutionError,
)
from valuestack.logging import get_global_logger

__all__ = [
    "DOCUMENTED_DEFAULTS",
    "ResolvedConfig",
    "compute_fingerprint",
    "format_path",
    "parse_path",
    "resolve",
    "stringify_keys",
]

# target path -> source reference used when the target is unset
DOCUMENTED_DEFAULTS: tuple[tuple[str, str], ...] = (("image.tag", "chart.appVersion"),)

_TOKEN = re.compile(r"\$\$\{|\$\{([^}]*)\}")
_WHOLE = re.compile(r"\$\{([^}]*)\}")
_SEGMENT = re.compile(r"([^.\[\]]+)|\[(\d+)\]|(\.)")

_MISSING = object()


# -------------------------------
# Paths
# -------------------------------


def parse_path(text: str) -> tuple[str | int, ...]:
    """Parses "a.b[0].c" into ("a", "b", 0, "c").

    Raises:
        ResolutionError: If the path is empty or malformed.
    """
    text = text.strip()
    if not text:
        raise ResolutionError("empty path")

    segments: list[str | int] = []
    pos = 0
    expect_name = True
    while pos < len(text):
        m = _SEGMENT.match(text, pos)
        if m is None:
            raise ResolutionError(f"malformed path: {text!r}")
        name, index, dot = m.groups()
        if dot:
            if expect_name:
                raise ResolutionError(f"malformed path: {text!r}")
            expect_name = True
        elif index is not None:
            if expect_name:
                raise ResolutionError(f"malformed path: {text!r}")
            segments.append(int(index))
        else:
            if not expect_name:
                raise ResolutionError(f"malformed path: {text!r}")
            segments.append(name.strip())
            expect_name = False
        pos = m.end()
    if expect_name:
        raise ResolutionError(f"malformed path: {text!r}")
    return tuple(segments)


def format_path(segments: tuple[str | int, ...] | list[str | int]) -> str:
    """Inverse of parse_path: ("a", 0, "b") -> "a[0].b"."""
    out = ""
    for seg in segments:
        if isinstance(seg, int):
            out += f"[{seg}]"
        else:
            out = f"{out}.{seg}" if out else str(seg)
    return out


def _child(node: Any, seg: str | int) -> Any:
    if isinstance(seg, int):
        if isinstance(node, (list, tuple)) and 0 <= seg < len(node):
            return node[seg]
        return _MISSING
    if isinstance(node, Mapping) and seg in node:
        return node[seg]
    return _MISSING


def _walk(node: Any, segments: tuple[str | int, ...]) -> Any:
    for seg in segments:
        node = _child(node, seg)
        if node is _MISSING:
            return _MISSING
    return node


def _has_reference(value: Any) -> bool:
    if isinstance(value, str):
        return any(m.group(1) is not None for m in _TOKEN.finditer(value))
    return False


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(
            stringify_keys(value), sort_keys=True, separators=(",", ":"), default=str
        )
    return str(value)


def _split_alternatives(expr: str) -> list[str]:
    """Splits on "|" outside quotes."""
    parts: list[str] = []
    buf: list[str] = []
    quote: str | None = None
    for ch in expr:
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
            buf.append(ch)
        elif ch == "|":
            parts.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if quote:
        raise ResolutionError(f"unterminated quote in reference: ${{{expr}}}")
    parts.append("".join(buf).strip())
    return parts


# -------------------------------
# Resolution
# -------------------------------


class _Resolver:
    """Resolves references in one document, memoizing each resolved path."""

    def __init__(
        self,
        raw: dict[str, Any],
        environment: str,
        namespaces: dict[str, Any],
        self_names: tuple[str, ...] = ("values",),
    ) -> None:
        self._raw = raw
        self._environment = environment
        self._namespaces = namespaces
        self._self_names = self_names
        # keyed by segment tuples: "a.b" as one key and a -> b format the same
        self._done: dict[tuple[str | int, ...], Any] = {}
        self._stack: list[tuple[str | int, ...]] = []

    def resolve_all(self) -> dict[str, Any]:
        return self._resolve_at((), self._raw)

    def _resolve_at(self, segments: tuple[str | int, ...], raw: Any) -> Any:
        if segments in self._done:
            return self._done[segments]
        if segments in self._stack:
            start = self._stack.index(segments)
            raise CircularReference(
                [format_path(p) or "<root>" for p in self._stack[start:]]
                + [format_path(segments) or "<root>"]
            )

        self._stack.append(segments)
        try:
            if isinstance(raw, dict):
                value: Any = {
                    k: self._resolve_at(segments + (k,), v) for k, v in raw.items()
                }
            elif isinstance(raw, list):
                value = [
                    self._resolve_at(segments + (i,), v) for i, v in enumerate(raw)
                ]
            elif isinstance(raw, str):
                value = self._interpolate(raw, format_path(segments))
            else:
                value = raw
        finally:
            self._stack.pop()

        self._done[segments] = value
        return value

    def _lookup_self(self, segments: tuple[str | int, ...]) -> Any:
        node: Any = self._raw
        for i, seg in enumerate(segments):
            if _has_reference(node):
                # intermediate value is itself a reference; continue inside its result
                node = self._resolve_at(segments[:i], node)
                return _walk(node, segments[i:])
            node = _child(node, seg)
            if node is _MISSING:
                return _MISSING
        return self._resolve_at(segments, node)

    def _lookup(self, path: str) -> Any:
        if path == "environment":
            return self._environment

        segments = parse_path(path)
        head = segments[0]
        if head in self._self_names:
            return self._lookup_self(segments[1:]) if len(segments) > 1 else _MISSING
        if head in self._namespaces:
            return _walk(self._namespaces[head], segments[1:])
        return self._lookup_self(segments)

    def _evaluate(self, expr: str, location: str) -> Any:
        alternatives = _split_alternatives(expr)
        if not any(alternatives):
            raise ResolutionError(f"empty reference at '{location or '<root>'}'")

        for alt in alternatives:
            if not alt:
                raise ResolutionError(
                    f"empty alternative in ${{{expr}}} at '{location or '<root>'}'"
                )
            if alt[0] in "\"'":
                quote = alt[0]
                if len(alt) < 2 or alt[-1] != quote or quote in alt[1:-1]:
                    raise ResolutionError(
                        f"malformed literal {alt} in ${{{expr}}} "
                        f"at '{location or '<root>'}'"
                    )
                return alt[1:-1]
            value = self._lookup(alt)
            if value is not _MISSING and value is not None:
                return value

        raise MissingRequiredValue(
            f"unresolved reference ${{{expr}}} at '{location or '<root>'}': "
            "no value in any layer and no default",
            path=expr.strip(),
        )

    def _interpolate(self, text: str, location: str) -> Any:
        whole = _WHOLE.fullmatch(text)
        if whole:
            return deepcopy(self._evaluate(whole.group(1), location))

        if "$" not in text:
            return text

        def _sub(m: re.Match[str]) -> str:
            if m.group(1) is None:
                return "${"
            return _to_text(self._evaluate(m.group(1), location))

        return _TOKEN.sub(_sub, text)


def _apply_documented_defaults(
    values: dict[str, Any], namespaces: dict[str, Any], environment: str
) -> None:
    logger = get_global_logger()
    lookup = _Resolver({}, environment, namespaces)
    for target, source in DOCUMENTED_DEFAULTS:
        segments = parse_path(target)
        parent = _walk(values, segments[:-1])
        if not isinstance(parent, dict):
            continue
        current = parent.get(segments[-1])
        if current is not None and current != "":
            continue
        fallback = lookup._lookup(source)
        if fallback is _MISSING or fallback is None:
            continue
        parent[segments[-1]] = str(fallback)
        logger.verbose("RESOLVE", f"{target} unset, defaulting to {source} ({fallback})")


# -------------------------------
# Freezing
# -------------------------------


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def stringify_keys(value: Any) -> Any:
    """Returns a plain copy with every mapping key converted to str.

    YAML allows mixed key types (``{80: 30080, https: 30443}``), which
    json.dumps cannot sort.
    """
    if isinstance(value, Mapping):
        return {str(k): stringify_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [stringify_keys(v) for v in value]
    return value


def compute_fingerprint(values: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON form (sorted keys, compact separators)."""
    canonical = json.dumps(
        stringify_keys(values),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ResolvedConfig:
    """The final configuration for one environment.

    Immutable: values are read-only mappings with tuples in place of
    sequences. Use to_dict() for a plain mutable copy.

    Attributes:
        environment: The environment this configuration was resolved for.
        values: The resolved tree.
        sources: Layers that contributed, lowest precedence first.
        fingerprint: SHA-256 of the canonical JSON form of values.
    """

    environment: str
    values: Mapping[str, Any]
    sources: tuple[str, ...] = ()
    fingerprint: str = ""

    @classmethod
    def build(
        cls,
        environment: str,
        values: dict[str, Any],
        sources: tuple[str, ...] | list[str] = (),
    ) -> ResolvedConfig:
        return cls(
            environment=environment,
            values=_freeze(values),
            sources=tuple(sources),
            fingerprint=compute_fingerprint(values),
        )

    def to_dict(self) -> dict[str, Any]:
        return _thaw(self.values)

    def get(self, path: str, default: Any = None) -> Any:
        """Reads a dotted path ("image.tag", "ports[0].name")."""
        value = _walk(self.values, parse_path(path))
        if value is _MISSING:
            return default
        return _thaw(value)

    def flatten(self) -> dict[str, Any]:
        """Returns the flat dotted-key view of the leaves.

        Empty mappings and sequences are kept as leaves so nothing is lost.
        """
        flat: dict[str, Any] = {}

        def _visit(node: Any, segments: tuple[str | int, ...]) -> None:
            if isinstance(node, Mapping) and node:
                for k, v in node.items():
                    _visit(v, segments + (str(k),))
            elif isinstance(node, tuple) and node:
                for i, v in enumerate(node):
                    _visit(v, segments + (i,))
            else:
                flat[format_path(segments)] = _thaw(node)

        for k, v in self.values.items():
            _visit(v, (str(k),))
        return flat


def resolve(
    values: dict[str, Any],
    environment: str,
    *,
    shared: dict[str, Any] | None = None,
    chart: dict[str, Any] | None = None,
    required: tuple[str, ...] | list[str] = (),
    sources: tuple[str, ...] | list[str] = (),
) -> ResolvedConfig:
    """Resolves references and defaults in a merged document.

    The shared section is resolved first, on its own (it may reference
    ``shared.*``, ``chart.*`` and ``environment``), then handed to the
    document's resolution as the ``shared`` namespace. Inputs are not
    mutated.

    Args:
        values: The merged document.
        environment: Environment name, available as ${environment}.
        shared: The shared platform section, if any.
        chart: Chart metadata (Chart.yaml), if any.
        required: Dotted paths that must be non-null after resolution.
        sources: Layer descriptions recorded on the result.

    Returns:
        The immutable ResolvedConfig.

    Raises:
        MissingRequiredValue: A reference or required path has no value.
        CircularReference: References form a cycle.
        ResolutionError: A reference is malformed.
    """
    logger = get_global_logger()
    chart_meta = deepcopy(chart) if chart else {}

    shared_resolved: dict[str, Any] = {}
    if shared:
        shared_resolved = _Resolver(
            deepcopy(shared),
            environment,
            {"chart": chart_meta},
            self_names=("shared", "values"),
        ).resolve_all()

    namespaces = {"shared": shared_resolved, "chart": chart_meta}
    working = deepcopy(values)
    _apply_documented_defaults(working, namespaces, environment)

    resolved = _Resolver(working, environment, namespaces).resolve_all()

    for path in required:
        value = _walk(resolved, parse_path(path))
        if value is _MISSING or value is None:
            raise MissingRequiredValue(
                f"required value '{path}' is not set in any layer", path=path
            )

    result = ResolvedConfig.build(environment, resolved, sources)
    logger.verbose(
        "RESOLVE",
        f"Resolved {len(result.flatten())} value(s) for '{environment}' "
        f"(fingerprint {result.fingerprint[:12]})",
    )
    return result
