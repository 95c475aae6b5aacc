"""
Data models for Galaxy rows, release aggregates, catalog identities and import results
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class GameRow:
    """
    One row of the Galaxy games query.

    A release appears once per executable (and per join fan-out), so the
    same release key usually shows up several times.

    Attributes:
        release_key: Galaxy release key (e.g. "gog_1207658930")
        title: Title stored in the release's game piece
        executable_path: Launcher path from PlayTaskLaunchParameters
        label: Launcher label from PlayTaskLaunchParameters
        my_rating: User rating on a 0-5 scale
        release_date: Raw Galaxy release date (Unix seconds)
    """
    release_key: Optional[str]
    title: Optional[str]
    executable_path: Optional[str] = None
    label: Optional[str] = None
    my_rating: Optional[float] = None
    release_date: Optional[Any] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "GameRow":
        """Create a GameRow from a query row mapping."""
        return cls(
            release_key=row.get("releaseKey"),
            title=row.get("title"),
            executable_path=row.get("executablePath"),
            label=row.get("label"),
            my_rating=row.get("myRating"),
            release_date=row.get("releaseDate"),
        )


@dataclass
class TagRow:
    """One (tag, release) membership row with its best-known release date."""
    tag: str
    release_key: str
    release_date: Optional[Any] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TagRow":
        """Create a TagRow from a query row mapping."""
        return cls(
            tag=row.get("tag"),
            release_key=row.get("releaseKey"),
            release_date=row.get("releaseDate"),
        )


@dataclass
class Executable:
    """A launcher attached to a release."""
    path: str
    label: Optional[str] = None

    @property
    def key(self) -> str:
        """Identity used for de-duplication (path + label)."""
        return f"{self.path}|{self.label or ''}"


@dataclass
class ReleaseAggregate:
    """
    All data known about one Galaxy release, folded from its rows.

    Attributes:
        release_key: Galaxy release key
        titles: Distinct titles seen for the release, in arrival order
        executables: Launchers, de-duplicated by (path, label)
        my_rating: User rating on a 0-5 scale
        release_year: Year derived from the raw release date
        release_date: Raw Galaxy release date (Unix seconds)
    """
    release_key: str
    titles: List[str] = field(default_factory=list)
    executables: List[Executable] = field(default_factory=list)
    my_rating: Optional[float] = None
    release_year: Optional[int] = None
    release_date: Optional[Any] = None

    @property
    def title(self) -> str:
        """First title seen, used for display and logging."""
        return self.titles[0] if self.titles else "Unknown"


@dataclass
class CatalogIdentity:
    """
    A game entity from the remote catalog (IGDB through the MyHomeGames server).

    Attributes:
        id: IGDB game id, also the server's game id and folder name
        name: Catalog name
        release_date_full: Full release timestamp when the server provides it
    """
    id: int
    name: str
    release_date_full: Optional[int] = None

    @classmethod
    def from_json(cls, game_json: Dict[str, Any]) -> "CatalogIdentity":
        """Create a CatalogIdentity from a search result entry."""
        full = game_json.get("releaseDateFull")
        if isinstance(full, dict):
            full = full.get("timestamp")
        return cls(
            id=int(game_json["id"]),
            name=game_json.get("name", ""),
            release_date_full=full,
        )


@dataclass
class ImportMapEntry:
    """
    Persisted record of a release that has already been imported.

    Attributes:
        igdb_id: Resolved IGDB id
        title: Catalog title at import time
        release_date: "YYYY-MM-DD" or a bare year
        stars: Rating on the server's 0-10 scale
    """
    igdb_id: Any
    title: Optional[str] = None
    release_date: Optional[str] = None
    stars: Optional[float] = None

    @classmethod
    def from_json(cls, entry_json: Any) -> "ImportMapEntry":
        """
        Create an ImportMapEntry from its JSON value.

        Older map files stored the bare IGDB id instead of an object.
        """
        if not isinstance(entry_json, dict):
            return cls(igdb_id=entry_json)
        return cls(
            igdb_id=entry_json.get("igdbId"),
            title=entry_json.get("title"),
            release_date=entry_json.get("releaseDate"),
            stars=entry_json.get("stars"),
        )

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the on-disk shape."""
        return {
            "igdbId": self.igdb_id,
            "title": self.title,
            "releaseDate": self.release_date,
            "stars": self.stars,
        }


@dataclass
class ImportResult:
    """Outcome of a successful single-game import."""
    game_id: int
    igdb_id: int
    title: Optional[str] = None
    release_date: Optional[str] = None
    stars: Optional[float] = None


@dataclass
class MissingMember:
    """A tagged release that could not be mapped to a game on the server."""
    title: str
    release_key: str
    igdb_id: Optional[int] = None


@dataclass
class CollectionReport:
    """Counters and details from a collection build."""
    created: int = 0
    skipped: int = 0
    failed: int = 0
    missing: List[MissingMember] = field(default_factory=list)


@dataclass
class ImportSummary:
    """End-of-run counters."""
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    collections: CollectionReport = field(default_factory=CollectionReport)

    def __str__(self) -> str:
        """Human-readable summary of the run."""
        parts = [
            f"{self.imported} imported",
            f"{self.skipped} skipped",
            f"{self.failed} failed",
            f"{self.collections.created} collections created",
        ]
        if self.collections.skipped:
            parts.append(f"{self.collections.skipped} collections skipped")
        if self.collections.missing:
            parts.append(f"{len(self.collections.missing)} collection members missing")
        return "ImportSummary: " + ", ".join(parts)
