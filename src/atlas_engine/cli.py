"""
Command-line interface for the Atlas description engine.

Provides CLI commands for inspecting and exercising a world:
- init-db: Initialize the SQLite schema
- seed: Apply a YAML world seed
- compose: Compose a location's description
- resolve: Resolve the active layer for a location at a tick
- context: Print a location's narrative context
- chain: Print an entity's containment chain
- history: List a scope's layer history
- config: Print the effective configuration

Usage:
    atlas-engine init-db
    atlas-engine seed data/seeds/harbour.yaml
    atlas-engine compose gate --weather rain --seed data/seeds/harbour.yaml
    atlas-engine resolve gate ambient 12 --seed data/seeds/harbour.yaml

With the default in-memory backend nothing persists between invocations, so
the read commands accept ``--seed`` to load a world first.

Environment Variables:
    ATLAS_STORAGE_BACKEND: memory (default) or sqlite
    ATLAS_DB_PATH: SQLite database path (default: data/atlas.db)
    ATLAS_LOG_LEVEL: Log level (default: INFO)
"""

import argparse
import json
import sys
from typing import Any

from atlas_engine.config import config, configure_logging, get_config_status
from atlas_engine.errors import AtlasError
from atlas_engine.models import LayerType, ViewContext
from atlas_engine.services import AtlasServices, build_services


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=False))


def _services_for(args: argparse.Namespace) -> AtlasServices:
    """Build services and apply ``--seed`` when given."""
    services = build_services(config)
    seed_path = getattr(args, "seed", None)
    if seed_path:
        from atlas_engine.seeding import apply_seed, load_seed

        apply_seed(load_seed(seed_path), services)
    return services


def cmd_init_db(args: argparse.Namespace) -> int:
    """Initialize the SQLite schema."""
    from atlas_engine.store.sqlite import init_database

    try:
        init_database()
        print(f"Database initialized at {config.storage.absolute_path}")
        return 0
    except AtlasError as e:
        print(f"Error initializing database: {e}", file=sys.stderr)
        return 1


def cmd_seed(args: argparse.Namespace) -> int:
    """Apply a world seed and report what changed."""
    from atlas_engine.seeding import apply_seed, load_seed

    try:
        services = build_services(config)
        report = apply_seed(load_seed(args.path), services)
    except (AtlasError, OSError) as e:
        print(f"Error applying seed: {e}", file=sys.stderr)
        return 1

    _print_json(
        {
            "realmsCreated": report.realms_created,
            "locationsCreated": report.locations_created,
            "edgesCreated": report.edges_created,
            "layersWritten": report.layers_written,
        }
    )
    return 0


def cmd_compose(args: argparse.Namespace) -> int:
    """Compose and print a location's description."""
    try:
        services = _services_for(args)
        compiled = services.composer.compile_for_location(
            args.location,
            ViewContext(weather=args.weather, time=args.time, season=args.season),
            base_description=args.base,
        )
    except (AtlasError, OSError) as e:
        print(f"Error composing description: {e}", file=sys.stderr)
        return 1

    if args.text:
        print(compiled.text)
    else:
        _print_json(compiled.to_dict())
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve the active layer for a location."""
    try:
        services = _services_for(args)
        layer = services.layers.get_active_layer_for_location(
            args.location, LayerType(args.layer_type), args.tick
        )
    except (AtlasError, OSError) as e:
        print(f"Error resolving layer: {e}", file=sys.stderr)
        return 1

    _print_json(layer.to_dict() if layer else None)
    return 0


def cmd_context(args: argparse.Namespace) -> int:
    """Print a location's narrative context."""
    try:
        services = _services_for(args)
        context = services.context.get_location_context(args.location, args.tick)
    except (AtlasError, OSError) as e:
        print(f"Error building context: {e}", file=sys.stderr)
        return 1

    _print_json(context.to_dict())
    return 0


def cmd_chain(args: argparse.Namespace) -> int:
    """Print an entity's containment chain."""
    try:
        services = _services_for(args)
        chain = services.graph.get_containment_chain(args.entity)
    except (AtlasError, OSError) as e:
        print(f"Error walking containment: {e}", file=sys.stderr)
        return 1

    _print_json([realm.to_dict() for realm in chain])
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """List a scope's layers overlapping a tick range."""
    try:
        services = _services_for(args)
        layers = services.layers.query_layer_history(
            args.scope, LayerType(args.layer_type), args.start, args.end
        )
    except (AtlasError, OSError) as e:
        print(f"Error querying history: {e}", file=sys.stderr)
        return 1

    _print_json([layer.to_dict() for layer in layers])
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective configuration status."""
    _print_json(get_config_status())
    return 0


def _add_seed_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--seed",
        type=str,
        help="YAML world seed to apply before running the command",
    )


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="atlas-engine",
        description="Atlas - layered, hierarchy-aware location descriptions",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init-db command
    init_parser = subparsers.add_parser(
        "init-db",
        help="Initialize the SQLite schema",
        description="Create the engine tables at ATLAS_DB_PATH (or storage.path).",
    )
    init_parser.set_defaults(func=cmd_init_db)

    # seed command
    seed_parser = subparsers.add_parser(
        "seed",
        help="Apply a YAML world seed",
        description="Validate a YAML world seed and write it through the stores.",
    )
    seed_parser.add_argument("path", help="Path to the YAML seed file")
    seed_parser.set_defaults(func=cmd_seed)

    # compose command
    compose_parser = subparsers.add_parser(
        "compose",
        help="Compose a location's description",
    )
    compose_parser.add_argument("location", help="Location id")
    compose_parser.add_argument("--weather", help="Current weather label (e.g. rain)")
    compose_parser.add_argument("--time", help="Current time-of-day bucket (e.g. night)")
    compose_parser.add_argument("--season", help="Current season label")
    compose_parser.add_argument("--base", help="Fallback base description text")
    compose_parser.add_argument(
        "--text", action="store_true", help="Print only the composed text"
    )
    _add_seed_option(compose_parser)
    compose_parser.set_defaults(func=cmd_compose)

    # resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the active layer for a location at a tick",
    )
    resolve_parser.add_argument("location", help="Location id")
    resolve_parser.add_argument("layer_type", choices=[t.value for t in LayerType])
    resolve_parser.add_argument("tick", type=int, help="World tick")
    _add_seed_option(resolve_parser)
    resolve_parser.set_defaults(func=cmd_resolve)

    # context command
    context_parser = subparsers.add_parser(
        "context",
        help="Print a location's narrative context",
    )
    context_parser.add_argument("location", help="Location id")
    context_parser.add_argument("--tick", type=int, default=0, help="World tick (default: 0)")
    _add_seed_option(context_parser)
    context_parser.set_defaults(func=cmd_context)

    # chain command
    chain_parser = subparsers.add_parser(
        "chain",
        help="Print an entity's containment chain",
    )
    chain_parser.add_argument("entity", help="Location or realm id")
    _add_seed_option(chain_parser)
    chain_parser.set_defaults(func=cmd_chain)

    # history command
    history_parser = subparsers.add_parser(
        "history",
        help="List a scope's layers overlapping a tick range",
    )
    history_parser.add_argument("scope", help="Scope id, e.g. loc:gate or realm:harbour")
    history_parser.add_argument("layer_type", choices=[t.value for t in LayerType])
    history_parser.add_argument("--start", type=int, help="First tick of the range")
    history_parser.add_argument("--end", type=int, help="Last tick of the range")
    _add_seed_option(history_parser)
    history_parser.set_defaults(func=cmd_history)

    # config command
    config_parser = subparsers.add_parser("config", help="Print the effective configuration")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(config)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
