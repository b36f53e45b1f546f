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

"""Command-line interface for cfgsmith.

This module provides the main CLI entry point for the cfgsmith tool,
offering commands to generate configuration files and to inspect resolved
configuration.

Commands:

    generate: Resolve services or components and write their config files
    show: Print the resolved configuration of one entity as YAML

Example:
    Generate configuration for a service in the test environment:
        ```bash
        $ cfgsmith generate --service echo-server --env test
        ```

    Generate for several components on one node:
        ```bash
        $ cfgsmith generate --components memcached,redis --node web-01 --role frontend
        ```

    Preview without writing:
        ```bash
        $ cfgsmith generate --service echo-server --env test --dry-run
        ```

    Compare with the files on disk before writing:
        ```bash
        $ cfgsmith generate --service echo-server --env prod --validate
        ```

    Inspect the merged values and their layers:
        ```bash
        $ cfgsmith show --service echo-server --env test --verbose
        ```

Exit Codes:

- 0: Success
- 1: Error (configuration, resolution, rendering, or validation failure)
- 2: Invalid command-line usage

Note:
    Each command has its own handler function (cmd_<command>). Verbose mode
    shows full tracebacks on errors. Debug mode implies verbose mode and
    shows every hierarchy lookup.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
import warnings

import yaml

from cfgsmith import __version__
from cfgsmith.config import Settings, load_settings
from cfgsmith.core import build_scope, generate_configs, resolve_entity
from cfgsmith.entities import EntityKind
from cfgsmith.exceptions import (
    CfgsmithError,
    MergeCapabilityMismatch,
    ValidationMismatchError,
)
from cfgsmith.logging import get_logger, set_global_logger


def _split_names(value: str) -> list[str]:
    """Parse a comma-separated name list, dropping blanks and duplicates."""
    names: list[str] = []
    for part in value.split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    if not names:
        raise argparse.ArgumentTypeError("expected at least one name")
    return names


def _load_settings(args: argparse.Namespace) -> Settings:
    if args.settings:
        return load_settings(settings_path=Path(args.settings))
    return load_settings()


def _report_error(err: Exception, args: argparse.Namespace) -> int:
    print(f"Error: {err}")
    if args.verbose or args.debug:
        import traceback

        traceback.print_exc()
    return 1


def cmd_generate(args: argparse.Namespace) -> int:
    """Handler for 'cfgsmith generate' command.

    Resolves each requested service (or component) with its dependencies,
    renders its templates and writes the results. Roots are processed in
    order; a failing root stops the command, leaving earlier roots written.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).

    Note:
        In dry-run mode each file's path and content are printed instead
        of written.
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    if args.service:
        names, kind = args.service, EntityKind.SERVICE
    else:
        names, kind = args.components, EntityKind.COMPONENT

    try:
        scope = build_scope(env=args.env, node=args.node, role=args.role)
        settings = _load_settings(args)
        results = generate_configs(
            names,
            kind,
            scope,
            settings=settings,
            target_dir=Path(args.target_dir).resolve() if args.target_dir else None,
            dry_run=args.dry_run,
            validate=args.validate,
            clean=args.clean,
        )
    except ValidationMismatchError as err:
        print(f"Validation failed for {err.path}:")
        print("".join(err.diff))
        return 1
    except CfgsmithError as err:
        return _report_error(err, args)

    if args.dry_run:
        for result in results:
            for written in result.files:
                print(written.path)
                print(written.content)
        return 0

    print("=" * 70)
    print("GENERATION RESULTS")
    print("=" * 70)
    for result in results:
        print(f"{result.kind.capitalize() + ':':<13}{result.entity}")
        scope_text = ", ".join(f"{k}={v}" for k, v in result.scope.items()) or "(none)"
        print(f"Scope:       {scope_text}")
        if result.components:
            print(f"Components:  {', '.join(result.components)}")
        if args.validate:
            print(f"Validated:   {result.validated} file(s)")
        print(f"Files ({len(result.files)}):")
        for written in result.files:
            print(f"  {written.path}")
        print()
    print("=" * 70)
    print()
    print(f"[SUCCESS] Generated configuration for {len(results)} {kind.value}(s)")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Handler for 'cfgsmith show' command.

    Prints the flattened configuration of one entity as YAML. Absent keys
    are listed separately. In verbose mode every contributing entity is
    listed with the hierarchy layers each of its keys came from.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    if args.service:
        name, kind = args.service, EntityKind.SERVICE
    else:
        name, kind = args.component, EntityKind.COMPONENT

    try:
        scope = build_scope(env=args.env, node=args.node, role=args.role)
        settings = _load_settings(args)
        resolved = resolve_entity(name, kind, scope, settings=settings)
    except CfgsmithError as err:
        return _report_error(err, args)

    print("=" * 70)
    print(f"RESOLVED CONFIGURATION: {kind.value} {name}")
    print("=" * 70)
    values = dict(resolved.values)
    if resolved.components:
        values["components"] = {n: dict(v) for n, v in resolved.components.items()}
    print(yaml.safe_dump(values, default_flow_style=False, sort_keys=False), end="")
    if resolved.absent:
        print(f"Absent:      {', '.join(sorted(resolved.absent))}")

    if args.verbose or args.debug:
        print()
        print("Contributions (resolution order):")
        for contribution in resolved.contributions:
            desc = contribution.descriptor
            print(f"  {desc.kind.value} {desc.name}")
            for key, prop in contribution.properties.items():
                layers = ", ".join(prop.layers) if prop.layers else "absent"
                print(f"    {key:<24} {layers}")
    print("=" * 70)
    return 0


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env",
        help="Environment to generate for (e.g., test, prod)",
    )
    parser.add_argument(
        "--node",
        help="Node to generate for (requires --role, excludes --env)",
    )
    parser.add_argument(
        "--role",
        help="Role of the node (requires --node)",
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--settings",
        default=None,
        help="Settings file (default: cfgsmith.yaml found upward from the working directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show every hierarchy lookup (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the cfgsmith CLI."""
    parser = argparse.ArgumentParser(
        prog="cfgsmith",
        description="cfgsmith - hierarchical configuration resolver and file generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"cfgsmith {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'generate' command
    parser_generate = subparsers.add_parser(
        "generate",
        help="Generate configuration files for services or components",
        description="Resolve services or components against the data hierarchy and render their templates.",
    )
    roots = parser_generate.add_mutually_exclusive_group(required=True)
    roots.add_argument(
        "--service",
        type=_split_names,
        help="Comma-separated service names",
    )
    roots.add_argument(
        "--components",
        type=_split_names,
        help="Comma-separated component names",
    )
    _add_scope_arguments(parser_generate)
    parser_generate.add_argument(
        "--target-dir",
        default=None,
        help="Write every file here instead of the declared target directories",
    )
    parser_generate.add_argument(
        "--dry-run",
        action="store_true",
        help="Print paths and contents instead of writing files",
    )
    parser_generate.add_argument(
        "--validate",
        action="store_true",
        help="Compare with existing files and abort on any difference",
    )
    parser_generate.add_argument(
        "--clean",
        action="store_true",
        help="Clear target directories before writing",
    )
    _add_common_arguments(parser_generate)
    parser_generate.set_defaults(func=cmd_generate)

    # 'show' command
    parser_show = subparsers.add_parser(
        "show",
        help="Print the resolved configuration of an entity",
        description="Resolve one service or component and print its merged values as YAML.",
    )
    entity = parser_show.add_mutually_exclusive_group(required=True)
    entity.add_argument("--service", help="Service name")
    entity.add_argument("--component", help="Component name")
    _add_scope_arguments(parser_show)
    _add_common_arguments(parser_show)
    parser_show.set_defaults(func=cmd_show)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the cfgsmith CLI.

    This function is registered as the 'cfgsmith' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Reported through the logger
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MergeCapabilityMismatch)
        exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
