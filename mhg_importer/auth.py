"""
Authentication Manager for the MyHomeGames server and IGDB (Twitch) credentials
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import requests

from mhg_importer import __version__, constants


class AuthError(Exception):
    """Raised when credentials are missing or rejected."""
    pass


@dataclass
class TokenCache:
    """
    Cached access token with its expiry time.

    Attributes:
        value: Access token, None until the first refresh
        expires_at: Unix time after which the token must be refreshed
    """
    value: Optional[str] = None
    expires_at: float = 0.0

    def is_expired(self, now: Optional[float] = None, margin: int = constants.TOKEN_EXPIRY_MARGIN) -> bool:
        """
        Check if the cached token is missing or about to expire.

        Args:
            now: Current time (defaults to time.time())
            margin: Seconds before expiry at which the token counts as expired

        Returns:
            True if a refresh is needed
        """
        if not self.value:
            return True
        current = time.time() if now is None else now
        return current >= (self.expires_at - margin)

    def store(self, value: str, expires_in: float, now: Optional[float] = None) -> None:
        """Store a fresh token valid for ``expires_in`` seconds."""
        current = time.time() if now is None else now
        self.value = value
        self.expires_at = current + expires_in

    def clear(self) -> None:
        """Forget the cached token."""
        self.value = None
        self.expires_at = 0.0


class AuthManager:
    """
    Holds the credentials needed by an import run.

    The MyHomeGames API token is sent with every server request. The Twitch
    client id/secret are forwarded to the server's IGDB endpoints; they can
    also be exchanged for an app access token to check them before a run.
    """

    def __init__(self, api_token: str, twitch_client_id: str, twitch_client_secret: str,
                 token_cache: Optional[TokenCache] = None,
                 session: Optional[requests.Session] = None,
                 timeout: Optional[float] = constants.DEFAULT_TIMEOUT,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the authentication manager.

        Args:
            api_token: MyHomeGames server API token
            twitch_client_id: Twitch application client id (IGDB)
            twitch_client_secret: Twitch application client secret (IGDB)
            token_cache: Cache for the Twitch app access token
            session: Requests session used for the token exchange
            timeout: Request timeout in seconds (None for no timeout)
            clock: Time source, injectable for tests
        """
        self.logger = logging.getLogger("mhg_importer.auth")
        self.api_token = (api_token or "").strip()
        self.twitch_client_id = (twitch_client_id or "").strip()
        self.twitch_client_secret = (twitch_client_secret or "").strip()
        self.token_cache = token_cache if token_cache is not None else TokenCache()
        self.timeout = timeout
        self.clock = clock

        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            session.headers.update({
                "User-Agent": constants.USER_AGENT.format(version=__version__)
            })
        self.session = session

    def close(self) -> None:
        """Close the token exchange session if this manager created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "AuthManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def missing_credentials(self) -> list:
        """Names of required credentials that are empty."""
        missing = []
        if not self.api_token:
            missing.append("API_TOKEN")
        if not self.twitch_client_id:
            missing.append("TWITCH_CLIENT_ID")
        if not self.twitch_client_secret:
            missing.append("TWITCH_CLIENT_SECRET")
        return missing

    def get_auth_headers(self) -> Dict[str, str]:
        """Headers authenticating a request against the MyHomeGames server."""
        return {constants.AUTH_HEADER: self.api_token}

    def get_igdb_params(self) -> Dict[str, str]:
        """Query parameters the server needs to call IGDB on our behalf."""
        return {
            "clientId": self.twitch_client_id,
            "clientSecret": self.twitch_client_secret,
        }

    def refresh(self) -> str:
        """
        Exchange the Twitch client credentials for a new app access token.

        Returns:
            The new access token

        Raises:
            AuthError: If the credentials are missing or rejected
        """
        if not self.twitch_client_id or not self.twitch_client_secret:
            raise AuthError("missing twitch client credentials")

        params = {
            "client_id": self.twitch_client_id,
            "client_secret": self.twitch_client_secret,
            "grant_type": "client_credentials",
        }

        try:
            response = self.session.post(constants.TWITCH_TOKEN_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            token_data = response.json()
        except (requests.RequestException, ValueError) as e:
            self.token_cache.clear()
            raise AuthError(f"failed to obtain twitch token: {e}") from e

        token = token_data.get("access_token")
        if not token:
            self.token_cache.clear()
            raise AuthError("missing access token in twitch response")

        self.token_cache.store(token, float(token_data.get("expires_in", 0)), now=self.clock())
        self.logger.info("Obtained Twitch app access token")
        return token

    def get_access_token(self) -> str:
        """
        Get a valid Twitch app access token, refreshing if necessary.

        Returns:
            Access token string
        """
        if self.token_cache.is_expired(now=self.clock()):
            return self.refresh()
        return self.token_cache.value

    def verify(self) -> None:
        """
        Check that every credential is present and that Twitch accepts the client credentials.

        Raises:
            AuthError: If a credential is missing or rejected
        """
        missing = self.missing_credentials()
        if missing:
            raise AuthError(f"missing required credentials: {', '.join(missing)}")
        self.get_access_token()
