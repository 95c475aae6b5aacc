"""
Read-only access to the GOG Galaxy 2.0 SQLite database

GamePieces.value holds JSON documents; the title lives in the release's
title piece, the release date in piece type 82 and the user rating in
piece type 102. PlayTasks / PlayTaskLaunchParameters link a release to
its launchers.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import quote

from mhg_importer import constants
from mhg_importer.models import GameRow, TagRow


GAMES_QUERY = """
    SELECT
        gp.releaseKey,
        json_extract(gp.value, '$.title') AS title,
        ptlp.executablePath,
        ptlp.label,
        MAX(json_extract(rating.value, '$.myRating')) AS myRating,
        MAX(json_extract(released.value, '$.releaseDate')) AS releaseDate
    FROM GamePieces gp
    LEFT JOIN LibraryReleases lr ON gp.releaseKey = lr.releaseKey
    LEFT JOIN PlayTasks pt ON gp.releaseKey = pt.gameReleaseKey
    LEFT JOIN PlayTaskLaunchParameters ptlp ON pt.id = ptlp.playTaskId
    LEFT JOIN GamePieces rating
        ON gp.releaseKey = rating.releaseKey AND rating.gamePieceTypeId = {rating_type}
    LEFT JOIN GamePieces released
        ON gp.releaseKey = released.releaseKey AND released.gamePieceTypeId = {date_type}
    WHERE gp.value IS NOT NULL
        AND gp.value != ''
        AND gp.releaseKey IS NOT NULL
        AND lr.releaseKey IS NOT NULL
        AND json_extract(gp.value, '$.title') IS NOT NULL
        AND json_extract(gp.value, '$.title') != ''
        {search_clause}
    GROUP BY gp.releaseKey, json_extract(gp.value, '$.title'), ptlp.executablePath, ptlp.label
    ORDER BY releaseDate
    {limit_clause}
"""

TAGS_QUERY = """
    SELECT
        urt.tag,
        urt.releaseKey,
        MAX(json_extract(released.value, '$.releaseDate')) AS releaseDate
    FROM UserReleaseTags urt
    LEFT JOIN GamePieces released
        ON urt.releaseKey = released.releaseKey AND released.gamePieceTypeId = {date_type}
    WHERE urt.tag IS NOT NULL AND urt.tag != ''
        AND urt.releaseKey IS NOT NULL
    GROUP BY urt.tag, urt.releaseKey
    ORDER BY urt.tag, releaseDate
"""


def find_galaxy_database(candidates: Optional[Iterable[Path]] = None) -> Optional[Path]:
    """
    Find the GOG Galaxy database in its known install locations.

    Args:
        candidates: Paths to try (defaults to constants.GALAXY_DB_CANDIDATES)

    Returns:
        First existing path, or None
    """
    for path in candidates if candidates is not None else constants.GALAXY_DB_CANDIDATES:
        if Path(path).exists():
            return Path(path)
    return None


class GalaxyDatabase:
    """
    Read-only handle on a Galaxy database.

    Use as a context manager so the connection is closed on every exit path.
    """

    def __init__(self, db_path):
        """
        Open the database read-only.

        Args:
            db_path: Path to galaxy-2.0.db

        Raises:
            FileNotFoundError: If the database does not exist
        """
        self.db_path = Path(db_path)
        self.logger = logging.getLogger("mhg_importer.galaxy_db")

        if not self.db_path.exists():
            raise FileNotFoundError(f"GOG Galaxy database not found: {self.db_path}")

        uri = f"file:{quote(self.db_path.as_posix(), safe='/:')}?mode=ro"
        self.conn = sqlite3.connect(uri, uri=True)
        self.conn.row_factory = sqlite3.Row

    def __enter__(self) -> "GalaxyDatabase":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the connection (safe to call twice)."""
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def query_games(self, search: Optional[str] = None, limit: Optional[int] = None) -> List[GameRow]:
        """
        Query one row per release x executable, ordered by release date.

        Args:
            search: Only titles containing this substring
            limit: Maximum number of rows

        Returns:
            List of GameRow
        """
        params = []
        search_clause = ""
        if search:
            search_clause = "AND json_extract(gp.value, '$.title') LIKE '%' || ? || '%'"
            params.append(search)
        limit_clause = ""
        if limit:
            limit_clause = "LIMIT ?"
            params.append(int(limit))

        sql = GAMES_QUERY.format(
            rating_type=constants.PIECE_TYPE_MY_RATING,
            date_type=constants.PIECE_TYPE_RELEASE_DATE,
            search_clause=search_clause,
            limit_clause=limit_clause,
        )
        rows = self.conn.execute(sql, params).fetchall()
        self.logger.debug(f"Games query returned {len(rows)} rows")
        return [GameRow.from_row(dict(row)) for row in rows]

    def query_tags(self) -> List[TagRow]:
        """
        Query (tag, release) rows ordered by tag, then release date.

        Returns:
            List of TagRow
        """
        sql = TAGS_QUERY.format(date_type=constants.PIECE_TYPE_RELEASE_DATE)
        rows = self.conn.execute(sql).fetchall()
        self.logger.debug(f"Tags query returned {len(rows)} rows")
        return [TagRow.from_row(dict(row)) for row in rows]
