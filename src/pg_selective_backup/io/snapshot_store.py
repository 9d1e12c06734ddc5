"""Persistence of the per-database activity snapshot between runs."""

import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from ..core.errors import SnapshotPersistenceError
from ..core.logging import get_logger
from ..core.models import Snapshot
from .stats_parser import StatsParser, split_lines

SNAPSHOT_FILENAME = "last_stats"


class SnapshotStore:
    """Reads and writes the snapshot file.

    The file holds the raw stats lines of the last successful run, verbatim.
    A missing or unreadable file loads as the empty snapshot, which makes the
    next run back up every database.
    """

    def __init__(self, path: str, parser: Optional[StatsParser] = None):
        """Initialize the snapshot store.

        Args:
            path: Location of the snapshot file
            parser: Parser used to read the stored lines
        """
        self.path = Path(path)
        self.parser = parser or StatsParser()
        self.logger = get_logger(__name__)

    def load(self) -> Snapshot:
        """Load the previous snapshot.

        Returns:
            Parsed snapshot, or an empty snapshot if the file is absent or unreadable
        """
        try:
            if not self.path.is_file():
                self.logger.info(f"No previous snapshot at {self.path}; treating as first run")
                return Snapshot()
            with open(self.path, 'r', encoding='utf-8') as f:
                lines = split_lines(f.read())
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning(f"Could not read previous snapshot {self.path}: {e}")
            return Snapshot()

        snapshot = self.parser.parse(lines)
        self.logger.debug(f"Loaded {len(snapshot)} database entries from {self.path}")
        return snapshot

    def save(self, raw_lines: Iterable[str]) -> None:
        """Persist this run's raw stats lines, replacing the previous snapshot.

        The lines are written to a temporary file next to the snapshot and
        renamed into place, so the file always holds one complete snapshot.

        Raises:
            SnapshotPersistenceError: If the snapshot could not be written
        """
        lines: List[str] = [line if line.endswith("\n") else f"{line}\n" for line in raw_lines]
        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".new", dir=str(self.path.parent)
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.writelines(lines)
            os.replace(temp_path, self.path)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise SnapshotPersistenceError(f"Could not write snapshot {self.path}: {e}") from e

        self.logger.debug(f"Saved {len(lines)} stats lines to {self.path}")
