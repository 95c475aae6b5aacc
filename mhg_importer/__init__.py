"""
MHG Importer - Import GOG Galaxy libraries into a MyHomeGames server

This library reads the local GOG Galaxy 2.0 database, resolves every release
to its IGDB identity through the MyHomeGames server, creates the game records,
uploads launchers and artwork, and turns Galaxy tags into collections.

Repeated runs are idempotent thanks to a persisted release key map.
"""

__version__ = "0.1.0"
__author__ = "mhg-importer Contributors"
__license__ = "MIT"

from mhg_importer.api import CatalogAPI, CatalogAPIError, CatalogConflictError
from mhg_importer.auth import AuthManager
from mhg_importer.config import ImportConfig
from mhg_importer.models import CatalogIdentity, ImportMapEntry, ReleaseAggregate
from mhg_importer.orchestrator import run_import

__all__ = [
    "CatalogAPI",
    "CatalogAPIError",
    "CatalogConflictError",
    "AuthManager",
    "ImportConfig",
    "CatalogIdentity",
    "ImportMapEntry",
    "ReleaseAggregate",
    "run_import",
]
