"""Parser for pg_stat_database activity lines."""

from typing import Iterable, List, Optional

from ..core.logging import get_logger
from ..core.models import ActivityRecord, Snapshot

FIELD_DELIMITER = "|"
STATS_FIELDS = ("timestamp", "id", "name", "commits", "inserted", "updated", "deleted")
NAME_INDEX = STATS_FIELDS.index("name")


class StatsParser:
    """Converts delimited pg_stat_database lines into a Snapshot.

    Each line carries the fields timestamp|id|name|commits|inserted|updated|deleted.
    Lines without a database name (blank lines, headers, the shared-objects row)
    are ignored; lines that cannot be parsed are dropped with a warning.
    """

    def __init__(self, delimiter: str = FIELD_DELIMITER):
        self.delimiter = delimiter
        self.logger = get_logger(__name__)

    def parse(self, raw_lines: Iterable[str]) -> Snapshot:
        """Parse raw stats lines.

        Args:
            raw_lines: Lines as produced by the stats query or read from the snapshot file

        Returns:
            Snapshot keyed by database name; later duplicates replace earlier ones
        """
        snapshot = Snapshot()
        for line_number, line in enumerate(raw_lines, start=1):
            record = self.parse_line(line, line_number)
            if record is not None:
                snapshot.add(record)
        return snapshot

    def parse_line(self, line: str, line_number: int = 0) -> Optional[ActivityRecord]:
        """Parse a single stats line, returning None when it should be skipped."""
        fields = line.rstrip("\r\n").split(self.delimiter)

        if len(fields) <= NAME_INDEX or not fields[NAME_INDEX].strip():
            return None

        if len(fields) != len(STATS_FIELDS):
            self.logger.warning(
                f"Skipping malformed stats line {line_number}: expected {len(STATS_FIELDS)} fields, got {len(fields)}"
            )
            return None

        values = dict(zip(STATS_FIELDS, fields))
        try:
            return ActivityRecord(
                timestamp=values["timestamp"],
                id=values["id"],
                name=values["name"],
                commits=int(values["commits"]),
                inserted=int(values["inserted"]),
                updated=int(values["updated"]),
                deleted=int(values["deleted"]),
            )
        except ValueError as e:
            self.logger.warning(f"Skipping malformed stats line {line_number} for {values['name']}: {e}")
            return None


def split_lines(text: str) -> List[str]:
    """Split stats output into lines, keeping line endings."""
    return text.splitlines(keepends=True)
