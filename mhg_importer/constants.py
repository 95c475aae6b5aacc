"""
Constants for MyHomeGames server endpoints, GOG Galaxy storage and import files
"""

from pathlib import Path

# MyHomeGames server endpoints (relative to SERVER_URL)
IGDB_SEARCH_PATH = "/igdb/search"
IGDB_GAME_PATH = "/igdb/game/{igdb_id}"
GAME_IDS_PATH = "/games/ids"
ADD_GAME_PATH = "/games/add-from-igdb"
UPLOAD_EXECUTABLE_PATH = "/games/{game_id}/upload-executable"
UPLOAD_COVER_PATH = "/games/{game_id}/upload-cover"
UPLOAD_BACKGROUND_PATH = "/games/{game_id}/upload-background"
COLLECTIONS_PATH = "/collections"
COLLECTION_ORDER_PATH = "/collections/{collection_id}/games/order"

# Header carrying the server API token
AUTH_HEADER = "X-Auth-Token"

# Twitch OAuth2 (IGDB credentials are Twitch application credentials)
TWITCH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"

# Default values
DEFAULT_TIMEOUT = None  # No timeout unless configured
TOKEN_EXPIRY_MARGIN = 60  # Refresh tokens this many seconds before expiry

# Metadata layout (MyHomeGames server storage)
IMPORTER_DIRNAME = "importer"
IMPORT_MAP_FILENAME = "gog-galaxy-releasekey-map.json"
REPORT_FILENAME_TEMPLATE = "import-report-{timestamp}.log"
GAMES_CONTENT_DIR = ("content", "games")
GAME_MANIFEST_FILENAME = "metadata.json"

# GOG Galaxy GamePieceTypes ids used by the queries
PIECE_TYPE_RELEASE_DATE = 82
PIECE_TYPE_MY_RATING = 102

# Known GOG Galaxy database locations, tried in order
GALAXY_DB_CANDIDATES = [
    # macOS (shared location)
    Path("/Users/Shared/GOG.com/Galaxy/Storage/galaxy-2.0.db"),
    # Windows
    Path("C:/ProgramData/GOG.com/Galaxy/storage/galaxy-2.0.db"),
    # macOS (user library, older clients)
    Path.home() / "Library" / "Application Support" / "GOG Galaxy" / "Storage" / "galaxy-2.0.db",
]
GALAXY_IMAGES_DEFAULT = (
    Path.home() / "Library" / "Application Support" / "GOG Galaxy" / "Storage" / "GalaxyClient" / "Images"
)

# Image filename patterns probed per release key, in priority order
COVER_PATTERNS = [
    "{release_key}_cover.jpg",
    "{release_key}_cover.png",
    "{release_key}.jpg",
    "{release_key}.png",
]
BACKGROUND_PATTERNS = [
    "{release_key}_background.jpg",
    "{release_key}_background.png",
    "{release_key}_hero.jpg",
    "{release_key}_hero.png",
]

# Launcher script suffixes stripped from executable labels
LABEL_SUFFIXES = [".bat", ".sh"]
DEFAULT_EXECUTABLE_LABEL = "script"

# Numeric boundaries for date hints
YEAR_MAX_DIGITS = 4
MILLISECONDS_THRESHOLD = 10_000_000_000

# User agent
USER_AGENT = "mhg-importer/{version} (Python)"
