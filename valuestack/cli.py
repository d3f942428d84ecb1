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

"""Command-line interface for valuestack.

Commands:

    resolve: Resolve a chart's values for one environment
    validate: Check that every environment of a chart resolves
    diff: Compare the resolved values of two environments
    envs: List the environments a chart has overlays for

Example:
    Resolve prod values and hand them to helm:
        ```bash
        $ valuestack resolve charts/orders -e prod -o /tmp/orders-prod.yaml
        $ helm upgrade --install orders charts/orders -f /tmp/orders-prod.yaml
        ```

    Override a value for a one-off deploy:
        ```bash
        $ valuestack resolve charts/orders -e staging --set image.tag=1.4.3
        ```

    Compare environments:
        ```bash
        $ valuestack diff charts/orders staging prod
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, merge or resolution failure, invalid chart, or a
  non-empty diff when --exit-code is given)

Note:
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode and dumps every layer as it is loaded.
"""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version
import json
from pathlib import Path
import sys
from typing import Any

from valuestack.config.loader import list_environments
from valuestack.config.merge import MergePolicy
from valuestack.core import diff_environments, resolve_chart
from valuestack.exceptions import ValuestackError
from valuestack.logging import SilentLogger, get_logger, set_global_logger
from valuestack.render import FORMATS, render
from valuestack.validation import validate_chart


def _print_error(err: Exception, args: argparse.Namespace) -> None:
    print(f"Error: {err}", file=sys.stderr)
    if getattr(args, "verbose", False) or getattr(args, "debug", False):
        import traceback

        traceback.print_exc()


def _show(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handler for 'valuestack resolve' command.

    Resolves the chart for one environment and writes the result to stdout
    or --output. Progress goes to stdout only in verbose/debug mode, so the
    default stdout stays clean for piping.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    quiet_stdout = args.output is None and not (args.verbose or args.debug)
    if quiet_stdout:
        set_global_logger(SilentLogger())
    else:
        set_global_logger(get_logger(verbose=args.verbose, debug=args.debug))

    chart_dir = Path(args.chart).resolve()
    policy = MergePolicy.REPLACE if args.lenient else MergePolicy.STRICT

    try:
        resolved = resolve_chart(
            chart_dir,
            args.environment,
            extra_files=[Path(p) for p in args.values],
            set_values=args.set,
            required=args.require,
            policy=policy,
        )
        text = render(resolved, args.format)
    except ValuestackError as err:
        _print_error(err, args)
        return 1

    if args.output is None:
        sys.stdout.write(text)
        return 0

    output = Path(args.output)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
    except OSError as err:
        _print_error(err, args)
        return 1

    print("=" * 70)
    print("RESOLVE RESULTS")
    print("=" * 70)
    print(f"Chart:        {chart_dir}")
    print(f"Environment:  {resolved.environment}")
    print(f"Layers:       {', '.join(resolved.sources)}")
    print(f"Values:       {len(resolved.flatten())}")
    print(f"Fingerprint:  {resolved.fingerprint}")
    print(f"Output:       {output}")
    print("=" * 70)
    print()
    print("[SUCCESS] Configuration resolved!")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'valuestack validate' command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for a valid chart, 1 for an invalid one).
    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    chart_dir = Path(args.chart).resolve()

    print(f"Validating chart: {chart_dir}")
    print()

    result = validate_chart(chart_dir, args.environment or None, verbose=args.verbose)

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"Chart:         {result.chart_dir}")
    print(f"Status:        {result.status.upper()}")
    print(f"Environments:  {', '.join(result.environments) or '-'}")
    print()

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  [WARNING] {warning}")
        print()

    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  [X] {error}")
        print()

    print("=" * 70)

    if result.status == "valid":
        print()
        print("[SUCCESS] Chart is valid!")
        return 0
    print()
    print(f"[FAILED] Chart validation failed with {len(result.errors)} error(s).")
    return 1


def cmd_diff(args: argparse.Namespace) -> int:
    """Handler for 'valuestack diff' command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 on success; 1 on failure, or when --exit-code is given
        and the environments differ).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    chart_dir = Path(args.chart).resolve()
    policy = MergePolicy.REPLACE if args.lenient else MergePolicy.STRICT

    try:
        result = diff_environments(chart_dir, args.left, args.right, policy=policy)
    except ValuestackError as err:
        _print_error(err, args)
        return 1

    print("=" * 70)
    print(f"DIFF {result.left} -> {result.right}")
    print("=" * 70)
    for path, value in result.removed.items():
        print(f"- {path}: {_show(value)}")
    for path, value in result.added.items():
        print(f"+ {path}: {_show(value)}")
    for change in result.changed:
        print(f"~ {change.path}: {_show(change.left)} -> {_show(change.right)}")
    if result.is_empty:
        print("(no differences)")
    print("=" * 70)
    print(
        f"{len(result.added)} added, {len(result.removed)} removed, "
        f"{len(result.changed)} changed"
    )

    if args.exit_code and not result.is_empty:
        return 1
    return 0


def cmd_envs(args: argparse.Namespace) -> int:
    """Handler for 'valuestack envs' command."""
    chart_dir = Path(args.chart).resolve()
    if not chart_dir.is_dir():
        print(f"Error: Chart directory not found: {chart_dir}", file=sys.stderr)
        return 1
    for env in list_environments(chart_dir):
        print(env)
    return 0


def _package_version() -> str:
    try:
        return version("valuestack")
    except PackageNotFoundError:
        from valuestack import __version__

        return __version__


def _add_verbosity(parser: argparse.ArgumentParser, debug: bool = True) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    if debug:
        parser.add_argument(
            "-d",
            "--debug",
            action="store_true",
            help="Show detailed debugging output (implies --verbose)",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="valuestack",
        description="valuestack - resolve layered chart values per environment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"valuestack {_package_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'resolve' command
    parser_resolve = subparsers.add_parser(
        "resolve",
        help="Resolve a chart's values for one environment",
        description="Merge shared, base, environment and extra layers and resolve references.",
    )
    parser_resolve.add_argument("chart", help="Path to the chart directory")
    parser_resolve.add_argument(
        "-e",
        "--environment",
        required=True,
        help="Target environment (selects values-<env>.yaml)",
    )
    parser_resolve.add_argument(
        "-f",
        "--values",
        action="append",
        default=[],
        metavar="FILE",
        help="Extra values file applied after the environment overlay (repeatable)",
    )
    parser_resolve.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override a value, applied last (repeatable)",
    )
    parser_resolve.add_argument(
        "--require",
        action="append",
        default=[],
        metavar="PATH",
        help="Fail unless this dotted path is set after resolution (repeatable)",
    )
    parser_resolve.add_argument(
        "--format",
        choices=FORMATS,
        default="yaml",
        help="Output format (default: yaml)",
    )
    parser_resolve.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write the result to this file instead of stdout",
    )
    parser_resolve.add_argument(
        "--lenient",
        action="store_true",
        help="Let overlays replace mismatched types instead of failing",
    )
    _add_verbosity(parser_resolve)
    parser_resolve.set_defaults(func=cmd_resolve)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Check that every environment of a chart resolves",
        description="Load, strictly merge and resolve each environment, reporting all problems.",
    )
    parser_validate.add_argument("chart", help="Path to the chart directory")
    parser_validate.add_argument(
        "-e",
        "--environment",
        action="append",
        default=[],
        help="Environment to check (repeatable; default: all discovered)",
    )
    _add_verbosity(parser_validate, debug=False)
    parser_validate.set_defaults(func=cmd_validate)

    # 'diff' command
    parser_diff = subparsers.add_parser(
        "diff",
        help="Compare the resolved values of two environments",
        description="Resolve two environments and list added, removed and changed values.",
    )
    parser_diff.add_argument("chart", help="Path to the chart directory")
    parser_diff.add_argument("left", help="First environment")
    parser_diff.add_argument("right", help="Second environment")
    parser_diff.add_argument(
        "--exit-code",
        action="store_true",
        help="Exit with 1 when the environments differ",
    )
    parser_diff.add_argument(
        "--lenient",
        action="store_true",
        help="Let overlays replace mismatched types instead of failing",
    )
    _add_verbosity(parser_diff)
    parser_diff.set_defaults(func=cmd_diff)

    # 'envs' command
    parser_envs = subparsers.add_parser(
        "envs",
        help="List environments with overlay files",
        description="List environments found in the chart and its shared root.",
    )
    parser_envs.add_argument("chart", help="Path to the chart directory")
    parser_envs.set_defaults(func=cmd_envs)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the valuestack CLI.

    This function is registered as the 'valuestack' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
