"""
Pytest fixtures for mhg_importer tests
"""
import json
import sqlite3

import pytest

from mhg_importer.api import CatalogConflictError
from mhg_importer.config import ImportConfig
from mhg_importer.models import CatalogIdentity

TITLE_PIECE = 1
ORIGINAL_TITLE_PIECE = 2
RELEASE_DATE_PIECE = 82
MY_RATING_PIECE = 102


class FakeCatalog:
    """
    In-memory stand-in for CatalogAPI that records every call.

    search_results maps a search title to a list of {"id", "name"} dicts;
    details maps an IGDB id to its detail record.
    """

    def __init__(self, search_results=None, details=None, existing_ids=None, collections=None):
        self.search_results = search_results or {}
        self.details = details or {}
        self.existing_ids = set(existing_ids or [])
        self.collections = list(collections or [])
        self.create_conflicts = set()
        self.collection_conflicts = set()
        self.created_games = []
        self.collection_games = {}
        self.calls = []
        self._next_collection_id = 100

    def calls_to(self, name):
        return [call for call in self.calls if call[0] == name]

    def search_games(self, title, release_date=None):
        self.calls.append(("search_games", title, release_date))
        return [CatalogIdentity.from_json(game) for game in self.search_results.get(title, [])]

    def get_game_details(self, igdb_id):
        self.calls.append(("get_game_details", igdb_id))
        return self.details.get(igdb_id)

    def get_existing_game_ids(self):
        self.calls.append(("get_existing_game_ids",))
        return set(self.existing_ids)

    def create_game(self, game_data):
        self.calls.append(("create_game", game_data["igdbId"]))
        if game_data["igdbId"] in self.create_conflicts:
            raise CatalogConflictError("Server error (409): Game already exists", 409)
        self.created_games.append(game_data)
        self.existing_ids.add(game_data["igdbId"])
        return {"game": {"id": game_data["igdbId"]}}

    def upload_executable(self, game_id, file_path, label=None):
        self.calls.append(("upload_executable", game_id, file_path, label))
        return {}

    def upload_cover(self, game_id, file_path):
        self.calls.append(("upload_cover", game_id, file_path))
        return {}

    def upload_background(self, game_id, file_path):
        self.calls.append(("upload_background", game_id, file_path))
        return {}

    def get_collections(self):
        self.calls.append(("get_collections",))
        return list(self.collections)

    def create_collection(self, title, summary=""):
        self.calls.append(("create_collection", title))
        if title.lower() in self.collection_conflicts:
            raise CatalogConflictError("Server error (409): Collection already exists", 409)
        collection_id = self._next_collection_id
        self._next_collection_id += 1
        self.collections.append({"id": collection_id, "title": title})
        return collection_id

    def update_collection_games(self, collection_id, game_ids):
        self.calls.append(("update_collection_games", collection_id, list(game_ids)))
        self.collection_games[collection_id] = list(game_ids)
        return {}


def build_galaxy_db(path, games, tags=()):
    """
    Create a miniature GOG Galaxy database.

    Args:
        path: Database file to create
        games: Dicts with release_key, title, and optionally original_title,
            rating, release_date, executables [(path, label)], in_library
        tags: (release_key, tag) pairs

    Returns:
        The database path
    """
    conn = sqlite3.connect(str(path))
    conn.executescript("""
        CREATE TABLE GamePieces (releaseKey TEXT, gamePieceTypeId INTEGER, value TEXT);
        CREATE TABLE LibraryReleases (releaseKey TEXT);
        CREATE TABLE PlayTasks (id INTEGER PRIMARY KEY, gameReleaseKey TEXT);
        CREATE TABLE PlayTaskLaunchParameters (playTaskId INTEGER, executablePath TEXT, label TEXT);
        CREATE TABLE UserReleaseTags (releaseKey TEXT, tag TEXT);
    """)

    for game in games:
        key = game["release_key"]
        conn.execute("INSERT INTO GamePieces VALUES (?, ?, ?)",
                     (key, TITLE_PIECE, json.dumps({"title": game["title"]})))
        if game.get("original_title"):
            conn.execute("INSERT INTO GamePieces VALUES (?, ?, ?)",
                         (key, ORIGINAL_TITLE_PIECE, json.dumps({"title": game["original_title"]})))
        if game.get("rating") is not None:
            conn.execute("INSERT INTO GamePieces VALUES (?, ?, ?)",
                         (key, MY_RATING_PIECE, json.dumps({"myRating": game["rating"]})))
        if game.get("release_date") is not None:
            conn.execute("INSERT INTO GamePieces VALUES (?, ?, ?)",
                         (key, RELEASE_DATE_PIECE, json.dumps({"releaseDate": game["release_date"]})))
        if game.get("in_library", True):
            conn.execute("INSERT INTO LibraryReleases VALUES (?)", (key,))
        for executable_path, label in game.get("executables", []):
            cursor = conn.execute("INSERT INTO PlayTasks (gameReleaseKey) VALUES (?)", (key,))
            conn.execute("INSERT INTO PlayTaskLaunchParameters VALUES (?, ?, ?)",
                         (cursor.lastrowid, executable_path, label))

    for release_key, tag in tags:
        conn.execute("INSERT INTO UserReleaseTags VALUES (?, ?)", (release_key, tag))

    conn.commit()
    conn.close()
    return path


def write_manifest(metadata_path, game_id, manifest):
    """Create <metadata>/content/games/<id>/metadata.json."""
    game_dir = metadata_path / "content" / "games" / str(game_id)
    game_dir.mkdir(parents=True, exist_ok=True)
    (game_dir / "metadata.json").write_text(json.dumps(manifest), encoding="utf-8")
    return game_dir


@pytest.fixture
def fake_catalog():
    """Empty fake catalog"""
    return FakeCatalog()


@pytest.fixture
def metadata_path(tmp_path):
    """Empty MyHomeGames metadata root"""
    path = tmp_path / "metadata"
    path.mkdir()
    return path


@pytest.fixture
def images_path(tmp_path):
    """Empty Galaxy images directory"""
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def make_config(tmp_path, metadata_path, images_path):
    """Factory for an ImportConfig pointing at tmp_path"""
    def _make(db_path, **overrides):
        values = dict(
            metadata_path=metadata_path,
            galaxy_db_path=db_path,
            galaxy_images_path=images_path,
            server_url="http://localhost:3000",
            api_token="token",
            twitch_client_id="client",
            twitch_client_secret="secret",
        )
        values.update(overrides)
        return ImportConfig(**values)
    return _make
