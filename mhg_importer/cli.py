#!/usr/bin/env python3
"""
Command-line interface for mhg_importer

Usage: mhg-import <importer> [options]
Every option can also be given through the environment or a .env file.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from mhg_importer import utils
from mhg_importer.config import ConfigError, ImportConfig, load_config
from mhg_importer.models import ImportSummary
from mhg_importer.orchestrator import ImporterSetupError, run_import


@dataclass
class ImporterSpec:
    """A library source the CLI can import from."""
    name: str
    label: str
    handler: Callable[[ImportConfig], ImportSummary]


IMPORTERS: Dict[str, ImporterSpec] = {}


def register_importer(name: str, label: str, handler: Callable[[ImportConfig], ImportSummary]) -> ImporterSpec:
    """
    Make an importer available as ``mhg-import <name>``.

    Args:
        name: Command name
        label: Human-readable source name
        handler: Callable running the import for a resolved config

    Returns:
        The registered ImporterSpec
    """
    spec = ImporterSpec(name=name, label=label, handler=handler)
    IMPORTERS[name] = spec
    return spec


register_importer("gog-galaxy", "GOG Galaxy", run_import)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def add_import_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by every importer."""
    parser.add_argument(
        "metadata",
        nargs="?",
        help="MyHomeGames metadata path (same as --metadata-path)"
    )
    parser.add_argument("--metadata-path", help="MyHomeGames metadata path [METADATA_PATH]")
    parser.add_argument("--galaxy-db-path", help="GOG Galaxy database file [GALAXY_DB_PATH]")
    parser.add_argument("--galaxy-images-path", help="GOG Galaxy images directory [GALAXY_IMAGES_PATH]")
    parser.add_argument("--server-url", help="MyHomeGames server URL, e.g. http://localhost:3000 [SERVER_URL]")
    parser.add_argument("--api-token", help="MyHomeGames API token [API_TOKEN]")
    parser.add_argument("--twitch-client-id", help="Twitch client id for IGDB [TWITCH_CLIENT_ID]")
    parser.add_argument("--twitch-client-secret", help="Twitch client secret for IGDB [TWITCH_CLIENT_SECRET]")
    parser.add_argument("--limit", type=int, help="Maximum number of game rows to read [LIMIT]")
    parser.add_argument("--search", help="Only import titles containing this text [SEARCH]")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds [REQUEST_TIMEOUT]")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--games-only", action="store_true", help="Import games, skip collections [GAMES_ONLY]")
    mode.add_argument("--collections-only", action="store_true",
                      help="Only rebuild collections [COLLECTIONS_ONLY]")

    parser.add_argument(
        "--upload",
        action="store_true",
        help="Re-upload launchers and artwork for releases already imported [UPLOAD]"
    )
    parser.add_argument(
        "--verify-credentials",
        action="store_true",
        help="Check the Twitch credentials before importing [VERIFY_CREDENTIALS]"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per registered importer."""
    examples = "\n".join(
        f"  mhg-import {name} --metadata-path /path/to/metadata" for name in IMPORTERS
    )
    parser = argparse.ArgumentParser(
        prog="mhg-import",
        description="MyHomeGames Importer\n\n"
                    "Imports games and collections from a local library into a MyHomeGames server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               f"{examples}\n"
               "  METADATA_PATH=/path/to/metadata TWITCH_CLIENT_ID=xxx TWITCH_CLIENT_SECRET=xxx "
               "mhg-import gog-galaxy"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--ascii",
        action="store_true",
        help="Use ASCII status symbols"
    )

    subparsers = parser.add_subparsers(dest="importer", metavar="<importer>",
                                       help="Available importers")
    for spec in IMPORTERS.values():
        importer_parser = subparsers.add_parser(spec.name, help=spec.label)
        add_import_arguments(importer_parser)
    return parser


def print_summary(summary: ImportSummary) -> None:
    """Print the end-of-run counters."""
    print(f"\n{utils.SYMBOL_CHECK} Imported: {summary.imported}")
    print(f"{utils.SYMBOL_INFO} Skipped: {summary.skipped}")
    if summary.failed:
        print(f"{utils.SYMBOL_ERROR} Failed: {summary.failed}")
    print(f"{utils.SYMBOL_CHECK} Collections created: {summary.collections.created}")
    if summary.collections.skipped:
        print(f"{utils.SYMBOL_INFO} Collections skipped: {summary.collections.skipped}")
    if summary.collections.missing:
        print(f"{utils.SYMBOL_WARNING} Collection members not found: {len(summary.collections.missing)}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.importer:
        parser.print_help()
        return 0

    setup_logging(args.verbose)
    utils.setup_symbols(args.ascii)

    if not args.metadata_path and args.metadata:
        args.metadata_path = args.metadata

    spec = IMPORTERS[args.importer]

    try:
        config = load_config(args)
        if not config.metadata_path:
            print(f"{utils.SYMBOL_ERROR} METADATA_PATH environment variable, --metadata-path option, "
                  f"or path argument is required")
            return 1
        summary = spec.handler(config)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except (ConfigError, ImporterSetupError) as e:
        print(f"{utils.SYMBOL_ERROR} {e}")
        return 1
    except Exception as e:
        logging.exception("Unexpected error")
        print(f"\n{utils.SYMBOL_ERROR} Error: {e}")
        return 1

    print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
