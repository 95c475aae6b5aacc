"""
Resolve Galaxy releases to IGDB identities

The search tries each known title of a release in turn. When a title has
no match it is shortened one trailing word at a time ("The Great Game:
Deluxe Edition" -> "The Great Game: Deluxe" -> "The Great Game:" -> ...)
until something matches or a single word is left.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Set

from mhg_importer import constants
from mhg_importer.models import CatalogIdentity
from mhg_importer.utils import parse_int, year_start_timestamp

logger = logging.getLogger("mhg_importer.resolver")

SearchFunc = Callable[[str, Optional[str]], List[CatalogIdentity]]

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class SearchResult:
    """
    Outcome of a reducing-title search.

    Attributes:
        candidates: Matches for the title that produced results (empty if none)
        used_title: The (possibly shortened) title that matched
        attempted_titles: Every title string sent to the search
    """
    candidates: List[CatalogIdentity] = field(default_factory=list)
    used_title: Optional[str] = None
    attempted_titles: List[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.candidates)


def reduced_titles(title: str) -> List[str]:
    """
    All search strings for one title, from full title down to its first word.

    Args:
        title: Title to reduce

    Returns:
        List of progressively shorter titles
    """
    words = title.split()
    return [" ".join(words[:count]) for count in range(len(words), 0, -1)]


def normalize_date_hint(value: Any) -> Optional[str]:
    """
    Convert a release date into the server's releaseDate search parameter.

    Numbers of up to four digits are a bare year and passed as such;
    numbers of 10^10 and above are milliseconds; other numbers are Unix
    seconds. "YYYY-MM-DD" strings are passed through.

    Args:
        value: Timestamp, year or ISO date

    Returns:
        Parameter value, or None when the value gives no usable hint
    """
    if value is None or value == "":
        return None
    if isinstance(value, str) and _ISO_DATE.match(value.strip()):
        return value.strip()

    number = parse_int(value)
    if number is None:
        return None
    if len(str(abs(number))) <= constants.YEAR_MAX_DIGITS:
        return str(number)
    if number >= constants.MILLISECONDS_THRESHOLD:
        number //= 1000
    return str(number)


def date_hint_for(release_date: Any, release_year: Optional[int], fallback: Any = None) -> Optional[int]:
    """
    Best search date for a release.

    Args:
        release_date: Raw Galaxy release date
        release_year: Year derived from the release date
        fallback: Another raw date to try last (e.g. from a tag row)

    Returns:
        Unix timestamp in seconds, or None
    """
    timestamp = parse_int(release_date)
    if timestamp is not None:
        return timestamp
    if release_year is not None:
        return year_start_timestamp(release_year)
    return parse_int(fallback)


def reduce_title_search(titles: Iterable[str], date_hint: Any, search: SearchFunc) -> SearchResult:
    """
    Search each title, shortening it word by word until a match is found.

    Exceptions from ``search`` propagate to the caller.

    Args:
        titles: Candidate titles in priority order
        date_hint: Release date hint (see normalize_date_hint)
        search: Callable(title, release_date) returning candidates

    Returns:
        SearchResult; ``found`` is False if no title matched at any length
    """
    hint = normalize_date_hint(date_hint)
    attempted: List[str] = []

    for title in titles:
        if not title or not title.strip():
            continue
        for index, search_title in enumerate(reduced_titles(title.strip())):
            if index > 0:
                logger.info(f"    No results, trying shorter: \"{search_title}\"")
            attempted.append(search_title)
            candidates = search(search_title, hint)
            if candidates:
                return SearchResult(candidates=list(candidates), used_title=search_title,
                                    attempted_titles=attempted)

    return SearchResult(attempted_titles=attempted)


def choose_candidate(candidates: List[CatalogIdentity], existing_ids: Set[int]) -> CatalogIdentity:
    """
    Pick the candidate to import.

    Prefers the first candidate not yet on the server; if all are already
    there, the first one is used so launchers and artwork still reach the
    right game.

    Args:
        candidates: Non-empty candidate list, in server order
        existing_ids: IGDB ids already on the server

    Returns:
        Chosen identity
    """
    for candidate in candidates:
        if candidate.id not in existing_ids:
            return candidate
    return candidates[0]


class IdentityResolver:
    """Binds the search function and the set of ids already on the server."""

    def __init__(self, search: SearchFunc, existing_ids: Optional[Set[int]] = None):
        self.search = search
        self.existing_ids: Set[int] = existing_ids if existing_ids is not None else set()

    def resolve(self, titles: List[str], date_hint: Any) -> SearchResult:
        """Run the reducing-title search for a release."""
        if len(titles) > 1:
            logger.info(f"    Trying titles: {', '.join(repr(t) for t in titles)}")
        result = reduce_title_search(titles, date_hint, self.search)
        if result.found and len(titles) > 1:
            logger.info(f"    Found results with title: \"{result.used_title}\"")
        return result

    def pick(self, result: SearchResult) -> CatalogIdentity:
        """Apply the selection policy to a successful search."""
        return choose_candidate(result.candidates, self.existing_ids)

    def mark_existing(self, igdb_id: int) -> None:
        """Record that a game now exists on the server."""
        self.existing_ids.add(igdb_id)
