"""
Import report file

Every record of the ``mhg_importer`` logger tree is mirrored into
``<metadata>/importer/import-report-YYYY-MM-DD-HHMMSS.log`` for the
duration of a run.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from mhg_importer import constants
from mhg_importer.utils import ensure_directory

REPORT_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


class ImportReport:
    """
    File handler attached to the package logger while an import runs.

    Usable as a context manager; opening never raises, a report that
    cannot be created just leaves ``path`` as None. The report is only
    created inside an existing metadata directory.
    """

    def __init__(self, metadata_path, logger_name: str = "mhg_importer"):
        self.metadata_path = Path(metadata_path) if metadata_path else None
        self.logger = logging.getLogger(logger_name)
        self.handler: Optional[logging.FileHandler] = None
        self.path: Optional[Path] = None
        self._previous_level: Optional[int] = None

    def open(self, now: Optional[datetime] = None) -> Optional[Path]:
        """
        Create the report file and start mirroring log records into it.

        Returns:
            Path to the report file, or None if it could not be created
        """
        self.close()
        if self.metadata_path is None or not self.metadata_path.is_dir():
            return None

        timestamp = (now or datetime.now()).strftime("%Y-%m-%d-%H%M%S")
        path = self.metadata_path / constants.IMPORTER_DIRNAME / \
            constants.REPORT_FILENAME_TEMPLATE.format(timestamp=timestamp)
        try:
            ensure_directory(path.parent)
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as e:
            self.logger.warning(f"Could not create import report: {e}")
            return None

        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter(REPORT_FORMAT))
        self.logger.addHandler(handler)
        self._previous_level = self.logger.level
        if self.logger.getEffectiveLevel() > logging.INFO:
            self.logger.setLevel(logging.INFO)

        self.handler = handler
        self.path = path
        self.logger.info("Import started")
        return path

    def close(self) -> None:
        """Write the closing line, detach the handler and restore the logger level (safe to call twice)."""
        if self.handler is None:
            return
        self.logger.info("Import finished")
        self.logger.removeHandler(self.handler)
        self.handler.close()
        self.handler = None
        if self._previous_level is not None:
            self.logger.setLevel(self._previous_level)
            self._previous_level = None

    def __enter__(self) -> "ImportReport":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
