"""
Blockprint CLI - Command-line interface for the expansion engine.

Usage:
    blockprint expand <response_file>    Expand a model response into blocks
    blockprint validate <response_file>  Statically validate a compact program
    blockprint catalog <catalog_file>    Summarize a block catalog file
    blockprint serve                     Run the REST API
"""

import argparse
import json
import logging
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Blockprint - Compact blueprint interpreter",
        prog="blockprint",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Expand command
    expand_parser = subparsers.add_parser("expand", help="Expand a model response into blocks")
    expand_parser.add_argument("response_file", help="Path to the model response (JSON, optionally fenced)")
    expand_parser.add_argument("--catalog", help="JSON block catalog file")
    expand_parser.add_argument("--max-blocks", type=int, help="Output block cap")
    expand_parser.add_argument("--chunk-size", type=int, help="Print build payload chunks of this size")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a compact program")
    validate_parser.add_argument("response_file", help="Path to the model response")

    # Catalog command
    catalog_parser = subparsers.add_parser("catalog", help="Summarize a block catalog file")
    catalog_parser.add_argument("catalog_file", help="Path to the catalog file")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.command == "expand":
        return cmd_expand(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "catalog":
        return cmd_catalog(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def _read_text(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)


def cmd_expand(args):
    """Expand a model response into blocks."""
    from dataclasses import replace

    from .config import load_limits
    from .engine_core import CatalogStore, expand_response_text, load_catalog_file
    from .errors import BlueprintError, BudgetExceededError, CatalogError

    catalog = CatalogStore()
    if args.catalog:
        try:
            ids, meta = load_catalog_file(args.catalog)
        except CatalogError as e:
            print(f"Error: {e}")
            sys.exit(1)
        catalog.set_catalog(ids, version=meta["version"], source=meta["source"])

    limits = load_limits()
    if args.max_blocks is not None:
        limits = replace(limits, max_blocks=args.max_blocks)

    try:
        blueprint = expand_response_text(_read_text(args.response_file), catalog, limits)
    except BudgetExceededError as e:
        print(f"Runaway program: {e}")
        sys.exit(2)
    except BlueprintError as e:
        print(f"Malformed program: {e}")
        sys.exit(1)

    if args.chunk_size:
        for payload in blueprint.chunks(args.chunk_size):
            print(json.dumps(payload))
    else:
        print(json.dumps(blueprint.to_dict(), indent=2))

    if blueprint.truncated_from is not None:
        print(
            f"Warning: truncated {blueprint.truncated_from} blocks to {len(blueprint)}",
            file=sys.stderr,
        )


def cmd_validate(args):
    """Validate a compact program without running it."""
    from .blueprint_dsl import DocumentShape, classify_document, parse_program, validate_program
    from .engine_core import decode_response_text
    from .errors import BlueprintError

    try:
        document = decode_response_text(_read_text(args.response_file))
        shape = classify_document(document)
        if shape == DocumentShape.LEGACY:
            print("Legacy block list: nothing to validate")
            return
        if shape == DocumentShape.UNSUPPORTED:
            print("Error: response is missing both steps/defs and blocks arrays")
            sys.exit(1)
        program = parse_program(document)
    except BlueprintError as e:
        print(f"Error: {e}")
        sys.exit(1)

    result = validate_program(program)
    print(f"Defs: {len(program.defs)}")
    print(f"Top-level steps: {len(program.steps)}")

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")
        sys.exit(1)

    print("\nValid")


def cmd_catalog(args):
    """Summarize a block catalog file."""
    from .engine_core import CatalogStore, load_catalog_file
    from .errors import CatalogError

    try:
        ids, meta = load_catalog_file(args.catalog_file)
        store = CatalogStore()
        snapshot = store.set_catalog(ids, version=meta["version"], source=meta["source"])
    except CatalogError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Version: {snapshot.version}")
    print(f"Source: {snapshot.source}")
    print(f"Block types: {len(snapshot)}")
    print(f"Fallback: {snapshot.fallback}")


def cmd_serve(args):
    """Run the REST API with uvicorn."""
    import uvicorn

    from .api.app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
