"""
MyHomeGames Server API Client
Provides access to the catalog (IGDB search/details), game creation,
asset uploads and collections
"""

import logging
import os
from typing import Any, Dict, List, Optional, Set

import requests

from mhg_importer import __version__, constants
from mhg_importer.auth import AuthManager
from mhg_importer.models import CatalogIdentity


class CatalogAPIError(Exception):
    """
    Exception raised when a server request fails.

    Attributes:
        status_code: HTTP status, or None for transport failures
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CatalogConflictError(CatalogAPIError):
    """Exception raised when the server reports the resource already exists (409)."""
    pass


class CatalogAPI:
    """
    Client for the MyHomeGames server.

    Every call is a single request: failures raise CatalogAPIError and are
    never retried.
    """

    def __init__(self, server_url: str, auth_manager: AuthManager,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = constants.DEFAULT_TIMEOUT,
                 verify_tls: bool = False):
        """
        Initialize the server API client.

        Args:
            server_url: Base URL of the server (e.g. http://localhost:3000)
            auth_manager: Authentication manager holding the API token
            session: Requests session to use (created if omitted)
            timeout: Request timeout in seconds (None for no timeout)
            verify_tls: Verify HTTPS certificates (self-signed servers are common)
        """
        self.server_url = server_url.rstrip("/")
        self.auth_manager = auth_manager
        self.timeout = timeout
        self.logger = logging.getLogger("mhg_importer.api")

        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            session.headers.update({
                "User-Agent": constants.USER_AGENT.format(version=__version__)
            })
            session.verify = verify_tls
        self.session = session
        self._update_auth_header()

    def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "CatalogAPI":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========== Request Helpers ==========

    def _url(self, path: str) -> str:
        """Build a full URL for a server path."""
        return f"{self.server_url}{path}"

    def _update_auth_header(self) -> None:
        """Set the authentication header on the session."""
        self.session.headers.update(self.auth_manager.get_auth_headers())

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Send a request and turn failures into CatalogAPIError.

        Args:
            method: HTTP method
            path: Server path
            **kwargs: Passed through to requests

        Returns:
            The successful response
        """
        url = self._url(path)
        self._update_auth_header()
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise CatalogAPIError(f"Request failed: {e}") from e

        self.logger.debug(f"{method} {url} -> {response.status_code}")

        if response.status_code < 200 or response.status_code >= 300:
            message = self._error_message(response)
            error_cls = CatalogConflictError if response.status_code == 409 else CatalogAPIError
            raise error_cls(f"Server error ({response.status_code}): {message}", response.status_code)

        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Extract the server's error message from a failed response."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return response.reason or f"HTTP {response.status_code}"

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        """Parse a JSON object body, treating an empty body as an empty object."""
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise CatalogAPIError(f"Failed to parse server response: {e}", response.status_code) from e
        if not isinstance(body, dict):
            raise CatalogAPIError(f"Unexpected server response: {type(body).__name__}", response.status_code)
        return body

    def _upload(self, path: str, file_path: str, fields: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Upload a file as multipart/form-data.

        Args:
            path: Server path
            file_path: Local file to send as the "file" field
            fields: Extra form fields

        Returns:
            Parsed response body
        """
        with open(file_path, "rb") as f:
            files = {"file": (os.path.basename(file_path), f)}
            response = self._request("POST", path, files=files, data=fields or {})
        return self._json(response)

    # ========== Catalog ==========

    def search_games(self, title: str, release_date: Optional[str] = None) -> List[CatalogIdentity]:
        """
        Search IGDB through the server.

        When a release date is given the server sorts results by closest date.

        Args:
            title: Title to search for
            release_date: Normalized date hint (see resolver.normalize_date_hint)

        Returns:
            Candidate identities, possibly empty
        """
        params = {"q": title}
        params.update(self.auth_manager.get_igdb_params())
        if release_date:
            params["releaseDate"] = release_date

        data = self._json(self._request("GET", constants.IGDB_SEARCH_PATH, params=params))
        games = data.get("games") or []
        return [CatalogIdentity.from_json(game) for game in games if game.get("id") is not None]

    def get_game_details(self, igdb_id: int) -> Optional[Dict[str, Any]]:
        """
        Get full IGDB details for a game.

        Args:
            igdb_id: IGDB game id

        Returns:
            Game details, or None if the server does not know the game
        """
        path = constants.IGDB_GAME_PATH.format(igdb_id=igdb_id)
        try:
            response = self._request("GET", path, params=self.auth_manager.get_igdb_params())
        except CatalogAPIError as e:
            if e.status_code == 404:
                return None
            raise
        return self._json(response) or None

    def get_existing_game_ids(self) -> Set[int]:
        """
        Get the ids of all games already on the server.

        Returns:
            Set of IGDB ids
        """
        data = self._json(self._request("GET", constants.GAME_IDS_PATH))
        ids = set()
        for value in data.get("ids") or []:
            try:
                ids.add(int(value))
            except (TypeError, ValueError):
                self.logger.debug(f"Ignoring non-numeric game id from server: {value!r}")
        return ids

    # ========== Games ==========

    def create_game(self, game_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a game from IGDB data.

        Raises:
            CatalogConflictError: If the game already exists
        """
        return self._json(self._request("POST", constants.ADD_GAME_PATH, json=game_data))

    def upload_executable(self, game_id: int, file_path: str, label: Optional[str] = None) -> Dict[str, Any]:
        """Upload a launcher script for a game."""
        path = constants.UPLOAD_EXECUTABLE_PATH.format(game_id=game_id)
        fields = {"label": label} if label else None
        return self._upload(path, file_path, fields)

    def upload_cover(self, game_id: int, file_path: str) -> Dict[str, Any]:
        """Upload the cover image for a game."""
        return self._upload(constants.UPLOAD_COVER_PATH.format(game_id=game_id), file_path)

    def upload_background(self, game_id: int, file_path: str) -> Dict[str, Any]:
        """Upload the background image for a game."""
        return self._upload(constants.UPLOAD_BACKGROUND_PATH.format(game_id=game_id), file_path)

    # ========== Collections ==========

    def get_collections(self) -> List[Dict[str, Any]]:
        """Get all collections ({id, title, ...})."""
        data = self._json(self._request("GET", constants.COLLECTIONS_PATH))
        return data.get("collections") or []

    def create_collection(self, title: str, summary: str = "") -> Optional[int]:
        """
        Create a collection.

        Returns:
            The new collection id, or None if the server did not return one

        Raises:
            CatalogConflictError: If the collection already exists
        """
        body = {"title": title, "summary": summary or ""}
        data = self._json(self._request("POST", constants.COLLECTIONS_PATH, json=body))
        collection = data.get("collection") or {}
        return collection.get("id")

    def update_collection_games(self, collection_id: int, game_ids: List[int]) -> Dict[str, Any]:
        """Replace a collection's games with ``game_ids``, in order."""
        path = constants.COLLECTION_ORDER_PATH.format(collection_id=collection_id)
        return self._json(self._request("PUT", path, json={"gameIds": list(game_ids)}))
