"""
Lookups in the server's on-disk game library

Each game lives in ``<metadata>/content/games/<igdb id>/`` with a
``metadata.json`` manifest. Newer manifests carry the display title in
``name``, older ones in ``title``.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from mhg_importer import constants

logger = logging.getLogger("mhg_importer.library")


class GameLibrary:
    """Read-only view of the game folders under a metadata root."""

    def __init__(self, metadata_path):
        self.games_dir = Path(metadata_path).joinpath(*constants.GAMES_CONTENT_DIR)

    def exists(self) -> bool:
        return self.games_dir.is_dir()

    def has_game(self, game_id) -> bool:
        """
        Check that a game folder exists and holds a manifest.

        Args:
            game_id: IGDB id (folder name)

        Returns:
            True if ``<games>/<id>/metadata.json`` exists
        """
        game_dir = self.games_dir / str(game_id)
        return game_dir.is_dir() and (game_dir / constants.GAME_MANIFEST_FILENAME).exists()

    def find_by_titles(self, titles: Iterable[str]) -> Optional[int]:
        """
        Scan every manifest for a title match.

        Titles are tried in order; a manifest matches when its ``name`` (or
        legacy ``title``) equals the title after trimming and lower-casing.
        Folders that are not numeric or hold invalid JSON are ignored.

        Args:
            titles: Titles to look for, in priority order

        Returns:
            Game id of the first match, or None
        """
        if not self.exists():
            return None

        manifests = []
        for game_dir in sorted(self.games_dir.iterdir()):
            manifest_path = game_dir / constants.GAME_MANIFEST_FILENAME
            if not game_dir.is_dir() or not manifest_path.exists():
                continue
            try:
                with open(manifest_path, "r", encoding="utf-8") as f:
                    manifest = json.load(f)
            except (OSError, ValueError):
                logger.debug(f"Ignoring unreadable manifest: {manifest_path}")
                continue
            if isinstance(manifest, dict):
                manifests.append((game_dir.name, manifest))

        for title in titles:
            if not title:
                continue
            wanted = title.strip().lower()
            for folder_name, manifest in manifests:
                for field_name in ("name", "title"):
                    value = manifest.get(field_name)
                    if isinstance(value, str) and value.strip().lower() == wanted:
                        if folder_name.isdigit():
                            return int(folder_name)
                        break
        return None
