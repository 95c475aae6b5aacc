"""
Tests for the MyHomeGames server client
"""
import json

import pytest
import requests

from mhg_importer.api import CatalogAPI, CatalogAPIError, CatalogConflictError
from mhg_importer.auth import AuthManager


class FakeResponse:
    """Minimal requests.Response stand-in"""

    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self.content = json.dumps(body).encode() if body is not None else b""
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Records requests and replays queued responses"""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, **kwargs):
        if "files" in kwargs:
            kwargs["files"] = {name: (value[0], value[1].read()) for name, value in kwargs["files"].items()}
        self.requests.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)

    def close(self):
        self.closed = True


def make_api(*responses):
    auth = AuthManager("token-123", "client", "secret", session=FakeSession())
    session = FakeSession(*responses)
    return CatalogAPI("http://localhost:3000/", auth, session=session), session


class TestCatalogAPI:
    """Tests for request building and error mapping"""

    def test_search_sends_credentials_and_date(self):
        api, session = make_api(FakeResponse(body={"games": [
            {"id": 5, "name": "Alpha", "releaseDateFull": {"timestamp": 1300752000}},
            {"name": "No id"},
        ]}))

        games = api.search_games("Alpha", release_date="2011")

        method, url, kwargs = session.requests[0]
        assert (method, url) == ("GET", "http://localhost:3000/igdb/search")
        assert kwargs["params"] == {"q": "Alpha", "clientId": "client", "clientSecret": "secret", "releaseDate": "2011"}
        assert session.headers["X-Auth-Token"] == "token-123"
        assert [(g.id, g.name, g.release_date_full) for g in games] == [(5, "Alpha", 1300752000)]

    def test_search_without_date(self):
        api, session = make_api(FakeResponse(body={"games": []}))
        assert api.search_games("Alpha") == []
        assert "releaseDate" not in session.requests[0][2]["params"]

    def test_details_not_found_is_none(self):
        api, _ = make_api(FakeResponse(404, {"error": "Game not found"}, "Not Found"))
        assert api.get_game_details(5) is None

    def test_server_error_carries_status_and_message(self):
        api, _ = make_api(FakeResponse(500, {"error": "IGDB unavailable"}, "Internal Server Error"))
        with pytest.raises(CatalogAPIError) as excinfo:
            api.get_game_details(5)
        assert excinfo.value.status_code == 500
        assert "IGDB unavailable" in str(excinfo.value)

    def test_conflict_raises_conflict_error(self):
        api, _ = make_api(FakeResponse(409, {"error": "Game already exists"}, "Conflict"))
        with pytest.raises(CatalogConflictError):
            api.create_game({"igdbId": 5})

    def test_transport_errors_are_wrapped(self):
        api, _ = make_api(requests.ConnectionError("refused"))
        with pytest.raises(CatalogAPIError) as excinfo:
            api.get_existing_game_ids()
        assert excinfo.value.status_code is None

    def test_existing_ids(self):
        api, _ = make_api(FakeResponse(body={"ids": [1, "2", "x"]}))
        assert api.get_existing_game_ids() == {1, 2}

    def test_upload_executable_is_multipart(self, tmp_path):
        launcher = tmp_path / "play.sh"
        launcher.write_bytes(b"#!/bin/sh")
        api, session = make_api(FakeResponse(body={"ok": True}))

        api.upload_executable(5, str(launcher), "play")

        method, url, kwargs = session.requests[0]
        assert (method, url) == ("POST", "http://localhost:3000/games/5/upload-executable")
        assert kwargs["files"] == {"file": ("play.sh", b"#!/bin/sh")}
        assert kwargs["data"] == {"label": "play"}

    def test_upload_cover_and_background_paths(self, tmp_path):
        image = tmp_path / "cover.jpg"
        image.write_bytes(b"jpg")
        api, session = make_api(FakeResponse(), FakeResponse())
        api.upload_cover(5, str(image))
        api.upload_background(5, str(image))
        assert [r[1] for r in session.requests] == [
            "http://localhost:3000/games/5/upload-cover",
            "http://localhost:3000/games/5/upload-background",
        ]

    def test_collections(self):
        api, session = make_api(
            FakeResponse(body={"collections": [{"id": 1, "title": "RPG"}]}),
            FakeResponse(201, {"collection": {"id": 7}}),
            FakeResponse(body={}),
        )
        assert api.get_collections() == [{"id": 1, "title": "RPG"}]
        assert api.create_collection("Shooter") == 7
        api.update_collection_games(7, [3, 1, 2])

        assert session.requests[1][2]["json"] == {"title": "Shooter", "summary": ""}
        method, url, kwargs = session.requests[2]
        assert (method, url) == ("PUT", "http://localhost:3000/collections/7/games/order")
        assert kwargs["json"] == {"gameIds": [3, 1, 2]}

    @pytest.mark.parametrize("body", [[1, 2, 3], "ids", 7])
    def test_non_object_body_is_an_api_error(self, body):
        api, _ = make_api(FakeResponse(body=body))
        with pytest.raises(CatalogAPIError, match="Unexpected server response") as excinfo:
            api.get_existing_game_ids()
        assert excinfo.value.status_code == 200

    def test_collections_list_body_is_an_api_error(self):
        api, _ = make_api(FakeResponse(body=[{"id": 1, "title": "RPG"}]))
        with pytest.raises(CatalogAPIError):
            api.get_collections()


class TestSessionLifetime:
    """Tests for closing client sessions"""

    def test_created_session_is_closed(self, monkeypatch):
        monkeypatch.setattr(requests, "Session", FakeSession)
        auth = AuthManager("token", "client", "secret")
        with CatalogAPI("http://localhost:3000", auth) as api:
            assert api.session.closed is False
        assert api.session.closed is True
        auth.close()
        assert auth.session.closed is True

    def test_given_session_is_left_open(self):
        api, session = make_api()
        api.close()
        assert session.closed is False
