"""
Tests for credentials and the Twitch token cache
"""
import pytest
import requests
from test_api import FakeResponse, FakeSession

from mhg_importer.auth import AuthError, AuthManager, TokenCache


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTokenCache:
    """Tests for token expiry"""

    def test_empty_cache_is_expired(self):
        assert TokenCache().is_expired(now=0)

    def test_expiry_margin(self):
        cache = TokenCache()
        cache.store("abc", expires_in=3600, now=1000)
        assert not cache.is_expired(now=1000 + 3600 - 61)
        assert cache.is_expired(now=1000 + 3600 - 60)

    def test_clear(self):
        cache = TokenCache("abc", 9999999999)
        cache.clear()
        assert cache.value is None
        assert cache.is_expired(now=0)


class TestAuthManager:
    """Tests for server headers and Twitch token exchange"""

    def test_headers_and_igdb_params(self):
        auth = AuthManager(" token ", "client", "secret", session=FakeSession())
        assert auth.get_auth_headers() == {"X-Auth-Token": "token"}
        assert auth.get_igdb_params() == {"clientId": "client", "clientSecret": "secret"}

    def test_missing_credentials(self):
        auth = AuthManager("", "client", "", session=FakeSession())
        assert auth.missing_credentials() == ["API_TOKEN", "TWITCH_CLIENT_SECRET"]
        with pytest.raises(AuthError, match="API_TOKEN"):
            auth.verify()

    def test_token_is_cached_until_expiry(self):
        clock = Clock()
        session = FakeSession(
            FakeResponse(body={"access_token": "first", "expires_in": 3600}),
            FakeResponse(body={"access_token": "second", "expires_in": 3600}),
        )
        auth = AuthManager("token", "client", "secret", session=session, clock=clock)

        assert auth.get_access_token() == "first"
        assert auth.get_access_token() == "first"
        assert len(session.requests) == 1
        method, url, kwargs = session.requests[0]
        assert url == "https://id.twitch.tv/oauth2/token"
        assert kwargs["params"]["grant_type"] == "client_credentials"

        clock.now += 3600
        assert auth.get_access_token() == "second"

    def test_rejected_credentials(self):
        session = FakeSession(FakeResponse(400, {"message": "invalid client"}, "Bad Request"))
        auth = AuthManager("token", "client", "secret", session=session)
        with pytest.raises(AuthError):
            auth.verify()
        assert auth.token_cache.value is None

    def test_transport_failure(self):
        auth = AuthManager("token", "client", "secret", session=FakeSession(requests.ConnectionError("down")))
        with pytest.raises(AuthError, match="failed to obtain twitch token"):
            auth.refresh()

    def test_response_without_token(self):
        auth = AuthManager("token", "client", "secret", session=FakeSession(FakeResponse(body={})))
        with pytest.raises(AuthError, match="missing access token"):
            auth.refresh()
