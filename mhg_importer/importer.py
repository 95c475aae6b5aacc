"""
Single-release import: identity, game record, launchers and artwork
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mhg_importer import constants
from mhg_importer.api import CatalogAPIError, CatalogConflictError
from mhg_importer.models import CatalogIdentity, ImportMapEntry, ImportResult, ReleaseAggregate
from mhg_importer.resolver import IdentityResolver, date_hint_for
from mhg_importer.utils import parse_int, timestamp_to_iso_date

# Detail fields copied into the create payload as-is (missing -> None)
DETAIL_FIELDS = [
    "cover", "background", "genres", "criticRating", "userRating", "themes",
    "platforms", "gameModes", "playerPerspectives", "websites", "ageRatings",
    "developers", "publishers", "franchise", "collection", "screenshots",
    "videos", "gameEngines", "keywords", "alternativeNames", "similarGames",
]


def clean_label(label: Optional[str]) -> str:
    """
    Display label for a launcher.

    Empty labels become "script"; one trailing ".bat" or ".sh" is removed.

    >>> clean_label("Play Game.bat")
    'Play Game'
    """
    label = label or constants.DEFAULT_EXECUTABLE_LABEL
    for suffix in constants.LABEL_SUFFIXES:
        if label.endswith(suffix):
            return label[:-len(suffix)]
    return label


def stars_from_rating(rating: Optional[float]) -> Optional[float]:
    """Convert a Galaxy 0-5 rating to the server's 0-10 stars."""
    if rating is None:
        return None
    return rating * 2


def format_release_date_for_map(release_date: Any) -> Optional[str]:
    """
    Format a release date for the import map.

    Strings that already look like a date pass through, numbers of up to
    four digits are a year, anything else is a Unix timestamp rendered as
    YYYY-MM-DD (UTC).
    """
    if release_date is None:
        return None
    raw = release_date.strip() if isinstance(release_date, str) else release_date
    if isinstance(raw, str) and "-" in raw:
        return raw

    number = parse_int(raw)
    if number is None:
        return str(raw)
    if len(str(number)) <= constants.YEAR_MAX_DIGITS:
        return str(number)
    return timestamp_to_iso_date(number)


def resolve_release_date(details: Optional[Dict[str, Any]], galaxy_release_date: Any) -> Any:
    """
    Pick the release date sent to the server.

    Precedence: full IGDB timestamp, IGDB release year, Galaxy timestamp.
    """
    details = details or {}
    full = details.get("releaseDateFull")
    if isinstance(full, dict) and full.get("timestamp"):
        return full["timestamp"]
    if details.get("releaseDate"):
        return details["releaseDate"]
    return parse_int(galaxy_release_date)


def build_game_payload(identity: CatalogIdentity, details: Optional[Dict[str, Any]],
                       release_date: Any, stars: Optional[float]) -> Dict[str, Any]:
    """
    Build the body for POST /games/add-from-igdb.

    Args:
        identity: Chosen catalog identity
        details: Full IGDB details (None if the fetch failed)
        release_date: Result of resolve_release_date
        stars: Rating on the 0-10 scale

    Returns:
        Game payload
    """
    details = details or {}
    payload = {
        "igdbId": identity.id,
        "name": details.get("name") or identity.name,
        "summary": details.get("summary") or "",
        "releaseDate": release_date,
        "stars": stars,
    }
    for field_name in DETAIL_FIELDS:
        value = details.get(field_name)
        if field_name in ("criticRating", "userRating"):
            payload[field_name] = value
        else:
            payload[field_name] = value or None
    return payload


class GameImporter:
    """
    Imports one release at a time into the MyHomeGames server.

    A release goes through one of two paths:

    - fresh import: resolve the identity by title, fetch details, create the game
    - forced reimport: reuse the id from the import map and only upload
      launchers and artwork (repairs partially uploaded releases)

    Releases that are in the import map and not forced are skipped by the
    caller before any network work.
    """

    def __init__(self, api, resolver: IdentityResolver, images_path):
        """
        Initialize the importer.

        Args:
            api: CatalogAPI (or compatible) instance
            resolver: Identity resolver bound to the same server
            images_path: GOG Galaxy images directory
        """
        self.api = api
        self.resolver = resolver
        self.images_path = Path(images_path) if images_path else None
        self.logger = logging.getLogger("mhg_importer.importer")

    def import_one(self, aggregate: ReleaseAggregate, map_entry: Optional[ImportMapEntry] = None,
                   force: bool = False) -> Optional[ImportResult]:
        """
        Import a release.

        Args:
            aggregate: Grouped release data
            map_entry: Existing import map entry for the release
            force: Reimport a release that has a map entry

        Returns:
            ImportResult, or None if the release was skipped or not found

        Raises:
            CatalogAPIError: If game creation fails for a reason other than a conflict
        """
        if map_entry is not None and map_entry.igdb_id and not force:
            self.logger.info(f"  Skipping already imported releaseKey: {aggregate.release_key} "
                             f"(IGDB ID: {map_entry.igdb_id})")
            return None

        stars = stars_from_rating(aggregate.my_rating)

        if map_entry is not None and map_entry.igdb_id:
            game_id = parse_int(map_entry.igdb_id)
            if game_id is None:
                game_id = map_entry.igdb_id
            self.logger.info(f"  Skipping IGDB name search (forced reimport). Using IGDB ID: {game_id}")
            title = aggregate.title
            release_date = parse_int(aggregate.release_date)
        else:
            identity = self._resolve(aggregate)
            if identity is None:
                return None
            game_id = identity.id

            details = self._fetch_details(game_id)
            release_date = resolve_release_date(details, aggregate.release_date)
            self.logger.info(f"  Release date (final for gameData): {release_date}")
            if stars is not None:
                self.logger.info(f"  Stars (myRating {aggregate.my_rating} -> stars {stars})")

            payload = build_game_payload(identity, details, release_date, stars)
            self._create(payload)
            title = payload["name"]

        self.upload_executables(game_id, aggregate)
        self.upload_assets(game_id, aggregate.release_key)

        return ImportResult(
            game_id=game_id,
            igdb_id=game_id,
            title=title,
            release_date=format_release_date_for_map(release_date),
            stars=stars,
        )

    def _resolve(self, aggregate: ReleaseAggregate) -> Optional[CatalogIdentity]:
        self.logger.info("  Searching on MyHomeGames server...")
        hint = date_hint_for(aggregate.release_date, aggregate.release_year)
        result = self.resolver.resolve(aggregate.titles, hint)
        if not result.found:
            titles = "\", \"".join(result.attempted_titles or aggregate.titles)
            self.logger.warning(f"  Warning: Game not found with any title, skipping: \"{titles}\"")
            return None
        identity = self.resolver.pick(result)
        self.logger.info(f"  Found: {identity.name} (ID: {identity.id})")
        return identity

    def _fetch_details(self, igdb_id: int) -> Optional[Dict[str, Any]]:
        self.logger.info("  Fetching full game details...")
        try:
            return self.api.get_game_details(igdb_id)
        except CatalogAPIError as e:
            self.logger.warning(f"  Warning: Failed to fetch full game details: {e}")
            return None

    def _create(self, payload: Dict[str, Any]) -> None:
        self.logger.info("  Creating game via API...")
        try:
            self.api.create_game(payload)
        except CatalogConflictError:
            self.logger.info("  Game already exists, skipping creation")
            return
        except CatalogAPIError as e:
            if "already exists" not in str(e):
                raise
            self.logger.info("  Game already exists, skipping creation")
            return
        self.logger.info("  Created game via API")

    def upload_executables(self, game_id, aggregate: ReleaseAggregate) -> int:
        """
        Upload every launcher of a release that exists on disk.

        Returns:
            Number of launchers uploaded
        """
        uploaded = 0
        for executable in aggregate.executables:
            if not executable.path or not os.path.exists(executable.path):
                continue
            label = clean_label(executable.label)
            try:
                self.api.upload_executable(game_id, executable.path, label)
            except (CatalogAPIError, OSError) as e:
                self.logger.warning(f"  Warning: Failed to upload executable {executable.path}: {e}")
                continue
            self.logger.info(f"  Uploaded executable: {os.path.basename(executable.path)} (label: {label})")
            uploaded += 1

        self.logger.info(f"  Uploaded {uploaded} executable(s)")
        return uploaded

    def upload_assets(self, game_id, release_key: str) -> List[str]:
        """
        Upload the cover and background images Galaxy cached for a release.

        Returns:
            Asset kinds that were uploaded ("cover", "background")
        """
        uploaded = []
        if not release_key or self.images_path is None:
            return uploaded

        for kind, patterns, upload in (
            ("cover", constants.COVER_PATTERNS, self.api.upload_cover),
            ("background", constants.BACKGROUND_PATTERNS, self.api.upload_background),
        ):
            image_path = self.find_image(release_key, patterns)
            if image_path is None:
                continue
            try:
                upload(game_id, str(image_path))
            except (CatalogAPIError, OSError) as e:
                self.logger.warning(f"  Warning: Failed to upload {kind}: {e}")
                continue
            self.logger.info(f"  Uploaded {kind}: {image_path.name}")
            uploaded.append(kind)
        return uploaded

    def find_image(self, release_key: str, patterns: List[str]) -> Optional[Path]:
        """First existing image for a release, trying ``patterns`` in order."""
        for pattern in patterns:
            candidate = self.images_path / pattern.format(release_key=release_key)
            if candidate.exists():
                return candidate
        return None
