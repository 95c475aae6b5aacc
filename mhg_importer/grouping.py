"""
Fold Galaxy query rows into one aggregate per release
"""

import logging
from typing import Dict, Iterable

from mhg_importer.models import Executable, GameRow, ReleaseAggregate
from mhg_importer.utils import year_from_timestamp

logger = logging.getLogger("mhg_importer.grouping")


def group_rows(rows: Iterable[GameRow]) -> Dict[str, ReleaseAggregate]:
    """
    Group rows by release key.

    The same release key shows up once per executable (and per join
    fan-out). Titles are collected in arrival order; rating, release year
    and raw release date keep the first non-empty value seen. Executables
    are de-duplicated by (path, label).

    Args:
        rows: Rows in query order (ascending release date)

    Returns:
        Aggregates keyed by release key, in first-seen order
    """
    releases: Dict[str, ReleaseAggregate] = {}
    seen_executables: Dict[str, set] = {}
    row_count = 0

    for row in rows:
        row_count += 1
        if not row.release_key:
            continue

        release = releases.get(row.release_key)
        if release is None:
            release = ReleaseAggregate(
                release_key=row.release_key,
                titles=[row.title] if row.title else [],
                my_rating=row.my_rating or None,
                release_year=year_from_timestamp(row.release_date) if row.release_date else None,
                release_date=row.release_date or None,
            )
            releases[row.release_key] = release
            seen_executables[row.release_key] = set()
        else:
            if row.title and row.title not in release.titles:
                release.titles.append(row.title)
            if not release.my_rating and row.my_rating:
                release.my_rating = row.my_rating
            if not release.release_year and row.release_date:
                release.release_year = year_from_timestamp(row.release_date)
            if not release.release_date and row.release_date:
                release.release_date = row.release_date

        if row.executable_path:
            executable = Executable(path=row.executable_path, label=row.label or None)
            if executable.key not in seen_executables[row.release_key]:
                seen_executables[row.release_key].add(executable.key)
                release.executables.append(executable)

    logger.debug(f"Grouped {row_count} rows into {len(releases)} releases")
    return releases
