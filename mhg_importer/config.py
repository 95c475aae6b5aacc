"""
Import run configuration

Values come from command-line options first, then the environment (a
``.env`` file in the working directory is loaded into it), then defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from mhg_importer import constants
from mhg_importer.galaxy_db import find_galaxy_database


class ConfigError(Exception):
    """Raised when the configuration is contradictory or unusable."""
    pass


@dataclass
class ImportConfig:
    """
    Settings for one import run.

    Attributes:
        metadata_path: MyHomeGames metadata root (holds content/ and importer/)
        galaxy_db_path: GOG Galaxy galaxy-2.0.db
        galaxy_images_path: GOG Galaxy cached images directory
        server_url: MyHomeGames server base URL
        api_token: MyHomeGames API token
        twitch_client_id: Twitch application client id (IGDB)
        twitch_client_secret: Twitch application client secret (IGDB)
        limit: Maximum number of game rows to read
        search: Only import titles containing this text
        games_only: Skip collections
        collections_only: Skip game import, only rebuild collections
        upload: Reimport releases already in the import map (launchers and artwork only)
        verify_credentials: Exchange the Twitch credentials for a token before the run
        timeout: HTTP timeout in seconds (None for no timeout)
    """
    metadata_path: Optional[Path] = None
    galaxy_db_path: Optional[Path] = None
    galaxy_images_path: Optional[Path] = None
    server_url: str = ""
    api_token: str = ""
    twitch_client_id: str = ""
    twitch_client_secret: str = ""
    limit: Optional[int] = None
    search: Optional[str] = None
    games_only: bool = False
    collections_only: bool = False
    upload: bool = False
    verify_credentials: bool = False
    timeout: Optional[float] = constants.DEFAULT_TIMEOUT

    def __post_init__(self):
        if self.games_only and self.collections_only:
            raise ConfigError("--games-only and --collections-only cannot be used together")


def _clean_text(value: Optional[str]) -> str:
    """Return ``value`` stripped of surrounding whitespace."""
    if value is None:
        return ""
    return str(value).strip()


def _coerce_positive_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Return ``value`` coerced to a positive integer or ``default`` when invalid."""
    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = int(float(text))
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_positive_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Return ``value`` coerced to a positive float or ``default`` when invalid."""
    text = _clean_text(value)
    if not text:
        return default
    try:
        numeric = float(text)
    except (TypeError, ValueError):
        return default
    return numeric if numeric > 0 else default


def _coerce_truthy_env(value: Optional[str]) -> bool:
    """Return ``True`` when ``value`` represents an affirmative flag."""
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _path_or_none(value: Any) -> Optional[Path]:
    text = _clean_text(value)
    return Path(text).expanduser() if text else None


def load_config(args: Any = None, env: Optional[Mapping[str, str]] = None,
                dotenv: bool = True) -> ImportConfig:
    """
    Resolve the run configuration.

    Args:
        args: argparse namespace (attributes named like ImportConfig fields);
            missing or None attributes fall back to the environment
        env: Environment mapping (defaults to os.environ)
        dotenv: Load ``.env`` from the working directory into os.environ first

    Returns:
        ImportConfig

    Raises:
        ConfigError: If games-only and collections-only are both set
    """
    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    def option(name: str) -> Any:
        return getattr(args, name, None) if args is not None else None

    def text(name: str, env_name: str) -> str:
        value = option(name)
        return _clean_text(value) if value else _clean_text(env.get(env_name))

    def flag(name: str, env_name: str) -> bool:
        return bool(option(name)) or _coerce_truthy_env(env.get(env_name))

    galaxy_db_path = _path_or_none(text("galaxy_db_path", "GALAXY_DB_PATH"))
    if galaxy_db_path is None:
        galaxy_db_path = find_galaxy_database() or constants.GALAXY_DB_CANDIDATES[0]

    galaxy_images_path = _path_or_none(text("galaxy_images_path", "GALAXY_IMAGES_PATH"))
    if galaxy_images_path is None:
        galaxy_images_path = constants.GALAXY_IMAGES_DEFAULT

    limit = option("limit")
    timeout = option("timeout")

    return ImportConfig(
        metadata_path=_path_or_none(text("metadata_path", "METADATA_PATH")),
        galaxy_db_path=galaxy_db_path,
        galaxy_images_path=galaxy_images_path,
        server_url=text("server_url", "SERVER_URL").rstrip("/"),
        api_token=text("api_token", "API_TOKEN"),
        twitch_client_id=text("twitch_client_id", "TWITCH_CLIENT_ID"),
        twitch_client_secret=text("twitch_client_secret", "TWITCH_CLIENT_SECRET"),
        limit=_coerce_positive_int(limit if limit is not None else env.get("LIMIT")),
        search=text("search", "SEARCH") or None,
        games_only=flag("games_only", "GAMES_ONLY"),
        collections_only=flag("collections_only", "COLLECTIONS_ONLY"),
        upload=flag("upload", "UPLOAD"),
        verify_credentials=flag("verify_credentials", "VERIFY_CREDENTIALS"),
        timeout=_coerce_positive_float(timeout if timeout is not None else env.get("REQUEST_TIMEOUT")),
    )
