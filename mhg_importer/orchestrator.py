"""
GOG Galaxy import run

Sequence: validate -> load import map -> read Galaxy rows -> group ->
import each release -> save import map -> read tags -> build collections.
Releases are processed one at a time, in release-date order, so the saved
map always matches exactly the releases that completed.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from mhg_importer.api import CatalogAPI, CatalogAPIError
from mhg_importer.auth import AuthError, AuthManager
from mhg_importer.collection_builder import CollectionBuilder
from mhg_importer.config import ImportConfig
from mhg_importer.galaxy_db import GalaxyDatabase
from mhg_importer.grouping import group_rows
from mhg_importer.import_map import ImportMapStore
from mhg_importer.importer import GameImporter
from mhg_importer.library import GameLibrary
from mhg_importer.models import ImportSummary, ReleaseAggregate
from mhg_importer.report import ImportReport
from mhg_importer.resolver import IdentityResolver

logger = logging.getLogger("mhg_importer.orchestrator")


class ImporterSetupError(Exception):
    """Raised when a run cannot start (missing database, path or credential)."""
    pass


def validate_config(config: ImportConfig) -> None:
    """
    Check everything a run needs before any work starts.

    Raises:
        ImporterSetupError: On the first missing prerequisite
    """
    if not config.galaxy_db_path or not Path(config.galaxy_db_path).exists():
        raise ImporterSetupError(f"GOG Galaxy database not found: {config.galaxy_db_path}")
    if not config.metadata_path or not Path(config.metadata_path).exists():
        raise ImporterSetupError(f"Metadata path does not exist: {config.metadata_path}")
    if not config.server_url:
        raise ImporterSetupError("SERVER_URL is required (e.g., http://localhost:3000)")
    if not config.api_token:
        raise ImporterSetupError("API_TOKEN is required for server authentication")
    if not config.twitch_client_id or not config.twitch_client_secret:
        raise ImporterSetupError("TWITCH_CLIENT_ID and TWITCH_CLIENT_SECRET are required for IGDB search")


def run_import(config: ImportConfig, api=None, auth: Optional[AuthManager] = None) -> ImportSummary:
    """
    Run a GOG Galaxy import.

    Args:
        config: Run configuration
        api: CatalogAPI (or compatible) to use; built from config if omitted
        auth: AuthManager to use; built from config if omitted

    Returns:
        ImportSummary with game and collection counters

    Raises:
        ImporterSetupError: If a prerequisite is missing or credentials are rejected
    """
    with ImportReport(config.metadata_path) as report:
        try:
            validate_config(config)
        except ImporterSetupError as e:
            logger.error(str(e))
            raise

        logger.info("=== GOG Galaxy Importer ===")
        logger.info(f"GOG Galaxy DB: {config.galaxy_db_path}")
        logger.info(f"GOG Galaxy Images: {config.galaxy_images_path}")
        logger.info(f"MyHomeGames Metadata: {config.metadata_path}")
        if report.path:
            logger.info(f"Report: {report.path}")

        owned = []
        try:
            if auth is None:
                auth = AuthManager(config.api_token, config.twitch_client_id, config.twitch_client_secret,
                                   timeout=config.timeout)
                owned.append(auth)
            if config.verify_credentials:
                try:
                    auth.verify()
                except AuthError as e:
                    logger.error(f"Credential check failed: {e}")
                    raise ImporterSetupError(f"Credential check failed: {e}") from e
            if api is None:
                api = CatalogAPI(config.server_url, auth, timeout=config.timeout)
                owned.append(api)
            summary = _run(config, api)
        finally:
            for client in owned:
                client.close()

        logger.info(str(summary))
        return summary


def _run(config: ImportConfig, api) -> ImportSummary:
    """Load the import map, then import games and collections from the Galaxy database."""
    store = ImportMapStore(config.metadata_path)
    store.load()
    if store.existed:
        logger.info(f"Loaded {len(store)} imported games from: {store.path}")
    else:
        logger.info(f"No existing import map found. Will create: {store.path}")

    summary = ImportSummary()
    logger.info("Opening GOG Galaxy database...")
    with GalaxyDatabase(config.galaxy_db_path) as db:
        if not config.collections_only:
            aggregates, session_map = import_games(db, config, api, store, summary)
            if config.games_only:
                logger.info("=== Skipping Collections (--games-only mode) ===")
            else:
                build_collections(db, config, api, store, summary, aggregates, session_map)
        else:
            logger.info("=== Skipping Games (--collections-only mode) ===")
            aggregates = group_rows(db.query_games())
            logger.info(f"Found {len(aggregates)} games in GOG Galaxy for collection mapping")
            build_collections(db, config, api, store, summary, aggregates, {})
    return summary


def import_games(db: GalaxyDatabase, config: ImportConfig, api, store: ImportMapStore,
                 summary: ImportSummary) -> Tuple[Dict[str, ReleaseAggregate], Dict[str, int]]:
    """
    Import every release matched by the games query.

    Returns:
        (aggregates by release key, releaseKey -> game id for releases imported now)
    """
    logger.info("=== Querying Games ===")
    if config.search:
        logger.info(f"Filtering by search term: \"{config.search}\"")
    rows = db.query_games(search=config.search, limit=config.limit)
    logger.info(f"Found {len(rows)} game entries to import")

    aggregates = group_rows(rows)
    logger.info(f"Found {len(aggregates)} unique games (some may have multiple executables)")

    try:
        existing_ids = api.get_existing_game_ids()
        logger.info(f"Loaded {len(existing_ids)} existing game ID(s) from server")
    except CatalogAPIError as e:
        logger.warning(f"Could not fetch existing game IDs: {e} (IGDB results will not be filtered)")
        existing_ids = set()

    resolver = IdentityResolver(api.search_games, existing_ids)
    importer = GameImporter(api, resolver, config.galaxy_images_path)
    session_map: Dict[str, int] = {}

    total = len(aggregates)
    logger.info(f"=== Importing Games ({total} games) ===")
    try:
        for index, (release_key, aggregate) in enumerate(aggregates.items(), 1):
            logger.info(f"[{index}/{total}] Processing game: {aggregate.title}")

            entry = store.get(release_key)
            if entry is not None and not config.upload:
                logger.info(f"  Skipping already imported releaseKey: {release_key} (IGDB ID: {entry.igdb_id})")
                summary.skipped += 1
                continue
            if entry is not None:
                logger.info(f"  Reimporting releaseKey: {release_key} (IGDB ID: {entry.igdb_id})")

            try:
                result = importer.import_one(aggregate, entry, force=entry is not None)
            except Exception as e:
                logger.error(f"  [{index}/{total}] Error importing {aggregate.title}: {e}")
                summary.failed += 1
                continue

            if result is None:
                summary.skipped += 1
                continue

            summary.imported += 1
            resolver.mark_existing(result.igdb_id)
            session_map[release_key] = result.game_id
            store.merge(release_key, result)
    finally:
        store.flush()

    logger.info("=== Import Summary ===")
    logger.info(f"Successfully imported: {summary.imported}")
    logger.info(f"Skipped: {summary.skipped}")
    if summary.failed:
        logger.info(f"Failed: {summary.failed}")
    return aggregates, session_map


def build_collections(db: GalaxyDatabase, config: ImportConfig, api, store: ImportMapStore,
                      summary: ImportSummary, aggregates: Dict[str, ReleaseAggregate],
                      session_map: Dict[str, int]) -> None:
    """Rebuild collections from Galaxy tags and record the outcome in ``summary``."""
    tag_rows = db.query_tags()
    if not tag_rows:
        logger.info("No tags found in GOG Galaxy, no collections to import")
        return

    builder = CollectionBuilder(api, GameLibrary(config.metadata_path))
    summary.collections = builder.build(tag_rows, session_map, store.id_map(), aggregates)
