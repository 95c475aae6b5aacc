"""
Build server collections from Galaxy user tags

Every tag becomes a collection whose games are the tagged releases in
release-date order. A tagged release is mapped to a server game id by the
first strategy that finds one:

1. releases imported during this run
2. releases recorded in the import map
3. a live catalog search, confirmed against the game folders on disk
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from mhg_importer.api import CatalogAPIError, CatalogConflictError
from mhg_importer.library import GameLibrary
from mhg_importer.models import CollectionReport, MissingMember, ReleaseAggregate, TagRow
from mhg_importer.resolver import SearchFunc, date_hint_for, reduce_title_search
from mhg_importer.utils import parse_int, timestamp_to_iso_date


@dataclass
class MemberContext:
    """
    What is known about one tagged release while resolving it.

    Attributes:
        release_key: Galaxy release key
        tag_release_date: Release date from the tag query row
        aggregate: Grouped release data, if the release is in the games query
        searched_id: IGDB id found by the live search, kept for reporting
    """
    release_key: str
    tag_release_date: Any = None
    aggregate: Optional[ReleaseAggregate] = None
    searched_id: Optional[int] = None

    @property
    def title(self) -> str:
        return self.aggregate.title if self.aggregate else "Unknown"


MemberStrategy = Callable[[MemberContext], Optional[int]]


def group_tags(tag_rows: List[TagRow]) -> Dict[str, List[TagRow]]:
    """Group tag rows by tag text, keeping query order within and across tags."""
    grouped: Dict[str, List[TagRow]] = {}
    for row in tag_rows:
        if not row.tag or not row.release_key:
            continue
        grouped.setdefault(row.tag, []).append(row)
    return grouped


def dedupe_members(members: List[Tuple[int, Any]]) -> List[Tuple[int, Any]]:
    """Drop repeated game ids, keeping the first occurrence."""
    seen: Set[int] = set()
    unique = []
    for game_id, release_date in members:
        if game_id in seen:
            continue
        seen.add(game_id)
        unique.append((game_id, release_date))
    return unique


class CollectionBuilder:
    """Creates one collection per Galaxy tag on the MyHomeGames server."""

    def __init__(self, api, library: GameLibrary, search: Optional[SearchFunc] = None):
        """
        Initialize the builder.

        Args:
            api: CatalogAPI (or compatible) instance
            library: Game folders of the server's metadata root
            search: Catalog search function (defaults to api.search_games)
        """
        self.api = api
        self.library = library
        self.search = search or api.search_games
        self.title_cache: Dict[str, int] = {}
        self.logger = logging.getLogger("mhg_importer.collections")

        self._session_map: Dict[str, Any] = {}
        self._persisted_map: Dict[str, Any] = {}

    # ========== Member Strategies ==========

    def from_session(self, context: MemberContext) -> Optional[int]:
        """Game imported earlier in this run."""
        return parse_int(self._session_map.get(context.release_key))

    def from_import_map(self, context: MemberContext) -> Optional[int]:
        """Game recorded in the import map by an earlier run."""
        return parse_int(self._persisted_map.get(context.release_key))

    def from_search(self, context: MemberContext) -> Optional[int]:
        """
        Find the game by title.

        The catalog search gives an IGDB id, which must match a game folder
        holding a manifest. Failing that, the manifests are scanned for an
        exact (case-insensitive, trimmed) title match.
        """
        aggregate = context.aggregate
        if aggregate is None or not aggregate.titles:
            return None

        context.searched_id = self._search_id(aggregate, context.tag_release_date)

        if not self.library.exists():
            return None
        if context.searched_id is not None and self.library.has_game(context.searched_id):
            return context.searched_id
        return self.library.find_by_titles(aggregate.titles)

    def _search_id(self, aggregate: ReleaseAggregate, tag_release_date: Any) -> Optional[int]:
        hint = date_hint_for(aggregate.release_date, aggregate.release_year, fallback=tag_release_date)
        for title in aggregate.titles:
            cached = self.title_cache.get(title)
            if cached is not None:
                return cached
            try:
                result = reduce_title_search([title], hint, self.search)
            except CatalogAPIError as e:
                self.logger.debug(f"    Search failed for \"{title}\": {e}")
                continue
            if result.found:
                igdb_id = result.candidates[0].id
                self.title_cache[title] = igdb_id
                return igdb_id
        return None

    @property
    def strategies(self) -> List[MemberStrategy]:
        return [self.from_session, self.from_import_map, self.from_search]

    def resolve_member(self, context: MemberContext) -> Optional[int]:
        """Run the strategies in order, stopping at the first id."""
        for strategy in self.strategies:
            game_id = strategy(context)
            if game_id is not None:
                return game_id
        return None

    # ========== Collections ==========

    def existing_titles(self) -> Set[str]:
        """Lower-cased titles of the collections already on the server."""
        try:
            collections = self.api.get_collections()
        except CatalogAPIError as e:
            self.logger.warning(f"  Warning: Failed to get existing collections: {e}")
            return set()
        return {c["title"].lower() for c in collections if isinstance(c, dict) and c.get("title")}

    def build(self, tag_rows: List[TagRow], session_map: Dict[str, Any], persisted_map: Dict[str, Any],
              aggregates: Dict[str, ReleaseAggregate]) -> CollectionReport:
        """
        Create a collection for every tag not already on the server.

        Args:
            tag_rows: Rows of the tags query (ordered by tag, then release date)
            session_map: releaseKey -> game id for releases imported in this run
            persisted_map: releaseKey -> IGDB id from the import map
            aggregates: Grouped releases, keyed by release key

        Returns:
            CollectionReport with counts and unresolved members
        """
        self.logger.info("=== Importing Collections ===")
        self._session_map = session_map
        self._persisted_map = persisted_map

        report = CollectionReport()
        existing = self.existing_titles()

        for tag, rows in group_tags(tag_rows).items():
            if tag.lower() in existing:
                self.logger.info(f"  Skipping existing collection: {tag}")
                report.skipped += 1
                continue

            members, missing = self._resolve_members(rows, aggregates)
            report.missing.extend(missing)
            created = self._create(tag, members)
            if created is None:
                report.skipped += 1
            elif created:
                report.created += 1
                existing.add(tag.lower())
            else:
                report.failed += 1

        self.logger.info(f"Imported {report.created} collections")
        return report

    def _resolve_members(self, rows: List[TagRow],
                         aggregates: Dict[str, ReleaseAggregate]) -> Tuple[List[Tuple[int, Any]], List[MissingMember]]:
        members = []
        missing = []
        for row in rows:
            context = MemberContext(
                release_key=row.release_key,
                tag_release_date=row.release_date,
                aggregate=aggregates.get(row.release_key),
            )
            game_id = self.resolve_member(context)
            if game_id is None:
                missing.append(MissingMember(title=context.title, release_key=row.release_key,
                                             igdb_id=context.searched_id))
            else:
                members.append((game_id, row.release_date))

        if missing:
            self.logger.info(f"    Note: {len(missing)} game(s) from this collection were not found (skipped)")
            for member in missing:
                self.logger.info(f"      - Title: \"{member.title}\", ReleaseKey: {member.release_key}, "
                                 f"IGDB ID: {member.igdb_id or 'not found'}")

        unique = dedupe_members(members)
        if len(unique) != len(members):
            self.logger.info(f"    Note: Removed {len(members) - len(unique)} duplicate game ID(s) from collection")

        if unique:
            self.logger.info(f"    Games in collection ({len(unique)}):")
            for game_id, release_date in unique:
                timestamp = parse_int(release_date)
                date_text = timestamp_to_iso_date(timestamp) if timestamp is not None else None
                self.logger.info(f"      - IGDB ID: {game_id}, Release Date: {date_text or 'N/A'} "
                                 f"(timestamp: {release_date or 'null'})")
        return unique, missing

    def _create(self, tag: str, members: List[Tuple[int, Any]]) -> Optional[bool]:
        """
        Create one collection and set its games.

        Returns:
            True if created, None if it already existed, False on failure
        """
        game_ids = [game_id for game_id, _ in members]
        try:
            collection_id = self.api.create_collection(tag, "")
            if collection_id and game_ids:
                self.api.update_collection_games(collection_id, game_ids)
        except CatalogConflictError:
            self.logger.info(f"  Skipping existing collection: {tag}")
            return None
        except CatalogAPIError as e:
            if "already exists" in str(e):
                self.logger.info(f"  Skipping existing collection: {tag}")
                return None
            self.logger.warning(f"  Warning: Failed to create collection {tag}: {e}")
            return False

        self.logger.info(f"  Created collection: {tag} (ID: {collection_id}, {len(game_ids)} games)")
        return True
