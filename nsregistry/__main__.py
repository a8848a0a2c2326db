"""
nsregistry command line

Usage:
    python -m nsregistry use app.util.slugify app.ui.* --base-uri https://cdn.example.org/units/
    python -m nsregistry include app.util --base-uri ./units/
    python -m nsregistry map app.util.slugify
    python -m nsregistry exist app.util

Options left unset fall back to NSREGISTRY_* environment variables.
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import logging
import sys

from .config import RegistryConfig
from .contracts.base import NamespaceError
from .paths import own_members
from .registry import NamespaceRegistry, REGISTRY_GLOBAL


def setup_logging(verbosity: int) -> None:
    """Configure logging for command-line runs."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nsregistry",
        description="Resolve, include and import namespace units"
    )
    parser.add_argument(
        'command',
        choices=['use', 'include', 'map', 'exist'],
        help='Operation to run for each identifier'
    )
    parser.add_argument('identifiers', nargs='+', help='Identifiers to process')
    parser.add_argument('--base-uri', help='Base URI for remote units (must end with /)')
    parser.add_argument('--separator', help='Identifier segment separator')
    parser.add_argument(
        '--no-auto-include',
        action='store_true',
        help='Do not load missing targets during use'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Fail when use cannot bind a target'
    )
    parser.add_argument('-v', '--verbose', action='count', default=0)
    return parser


def build_config(args: argparse.Namespace) -> RegistryConfig:
    config = RegistryConfig.from_env()
    if args.base_uri is not None:
        config.base_uri = args.base_uri
    if args.separator is not None:
        config.separator = args.separator
    if args.no_auto_include:
        config.auto_include = False
    if args.strict:
        config.strict = True
    config.validate()
    return config


def _bound_names(registry: NamespaceRegistry) -> List[str]:
    return [name for name, _ in own_members(registry.scope) if name != REGISTRY_GLOBAL]


def run(args: argparse.Namespace) -> int:
    registry = NamespaceRegistry(config=build_config(args))

    if args.command == 'map':
        for identifier in args.identifiers:
            print(f"{identifier} -> {registry.map_identifier_to_uri(identifier)}")
        return 0

    if args.command == 'exist':
        missing = [i for i in args.identifiers if not registry.exist(i)]
        for identifier in args.identifiers:
            print(f"{identifier}: {'yes' if identifier not in missing else 'no'}")
        return 1 if missing else 0

    if args.command == 'include':
        failed = [i for i in args.identifiers if not registry.include(i)]
        for identifier in args.identifiers:
            status = 'FAILED' if identifier in failed else 'included'
            print(f"{identifier}: {status}")
        return 1 if failed else 0

    registry.use(args.identifiers)
    for name in _bound_names(registry):
        print(name)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        return run(args)
    except NamespaceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
