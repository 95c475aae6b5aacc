"""
Persistent releaseKey -> IGDB identity map

The map lives at ``<metadata>/importer/gog-galaxy-releasekey-map.json`` and
is what makes repeated runs idempotent: a release with an entry is never
searched or created again. Reading and writing it is best-effort, a broken
file degrades to an empty map instead of aborting the run.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from mhg_importer import constants
from mhg_importer.models import ImportMapEntry, ImportResult
from mhg_importer.utils import ensure_directory


class ImportMapStore:
    """
    Load, merge and save the import map.

    Attributes:
        path: Location of the map file
        existed: Whether the file was present when loaded
        entries: In-memory map, keyed by release key
    """

    def __init__(self, metadata_path):
        self.path = Path(metadata_path) / constants.IMPORTER_DIRNAME / constants.IMPORT_MAP_FILENAME
        self.logger = logging.getLogger("mhg_importer.import_map")
        self.existed = False
        self.entries: Dict[str, ImportMapEntry] = {}
        self._dirty = False

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, release_key: str) -> bool:
        return release_key in self.entries

    def load(self) -> Dict[str, ImportMapEntry]:
        """
        Read the map from disk.

        A missing file gives an empty map. A malformed or unreadable file is
        logged as a warning and also gives an empty map.

        Returns:
            The loaded entries
        """
        self.entries = {}
        self._dirty = False

        if not self.path.exists():
            self.existed = False
            return self.entries

        self.existed = True
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Warning: Failed to read import map at {self.path}: {e}")
            return self.entries

        if isinstance(raw, dict):
            for release_key, value in raw.items():
                if not release_key:
                    continue
                self.entries[release_key] = ImportMapEntry.from_json(value)
        else:
            self.logger.warning(f"Warning: Ignoring import map with unexpected format: {self.path}")

        return self.entries

    def save(self) -> None:
        """
        Write the whole map to disk as indented JSON.

        Raises:
            OSError: If the file cannot be written
        """
        ensure_directory(self.path.parent)
        data = {key: entry.to_json() for key, entry in self.entries.items()}
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        self._dirty = False

    def flush(self) -> bool:
        """
        Save the map if it changed since the last load or save.

        Returns:
            True if the file was written
        """
        if not self._dirty:
            return False
        try:
            self.save()
        except OSError as e:
            self.logger.warning(f"Warning: Failed to save import map: {e}")
            return False
        self.logger.info(f"Saved import map: {self.path}")
        return True

    def get(self, release_key: str) -> Optional[ImportMapEntry]:
        """Entry for a release, or None if it was never imported."""
        entry = self.entries.get(release_key)
        if entry is None or not entry.igdb_id:
            return None
        return entry

    def merge(self, release_key: str, result: ImportResult) -> ImportMapEntry:
        """
        Record an import result.

        Fields already set on an existing entry are kept; only empty ones
        are filled from ``result``. The id always comes from the result.

        Args:
            release_key: Galaxy release key
            result: Successful import result

        Returns:
            The stored entry
        """
        previous = self.entries.get(release_key) or ImportMapEntry(igdb_id=None)
        entry = ImportMapEntry(
            igdb_id=result.igdb_id,
            title=previous.title or result.title or None,
            release_date=previous.release_date if previous.release_date is not None else result.release_date,
            stars=previous.stars if previous.stars is not None else result.stars,
        )
        self.entries[release_key] = entry
        self._dirty = True
        return entry

    def id_map(self) -> Dict[str, Any]:
        """releaseKey -> IGDB id for every entry that has an id."""
        return {key: entry.igdb_id for key, entry in self.entries.items() if entry.igdb_id}
