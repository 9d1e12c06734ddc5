"""Data models and enums for pg-selective-backup."""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


# Row-mutation counters compared between runs. The commit counter is left out
# because vacuum and no-op transactions advance it without changing data.
CHANGE_COUNTERS: Tuple[str, ...] = ("inserted", "updated", "deleted")


class DumpFormat(Enum):
    """Output formats supported for the full database dump."""
    CUSTOM = "custom"
    TAR = "tar"
    PLAIN = "plain"

    @property
    def extension(self) -> str:
        """Backup file extension for this format."""
        return {
            DumpFormat.CUSTOM: ".backup",
            DumpFormat.TAR: ".tar",
            DumpFormat.PLAIN: ".sql",
        }[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> 'DumpFormat':
        """Parse a format name or its single letter alias (c, t, p).

        Raises:
            ValueError: If the value is not a known format
        """
        if isinstance(value, DumpFormat):
            return value
        aliases = {
            'c': cls.CUSTOM,
            'custom': cls.CUSTOM,
            't': cls.TAR,
            'tar': cls.TAR,
            'p': cls.PLAIN,
            'plain': cls.PLAIN,
        }
        key = (value or '').strip().lower()
        if key not in aliases:
            raise ValueError(f"Unknown dump format: {value}")
        return aliases[key]


class DumpKind(Enum):
    """The kinds of dump produced by a run."""
    GLOBALS = "globals"
    SCHEMA = "schema"
    FULL = "full"


class DumpStatus(Enum):
    """Status of a single dump operation."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ActivityRecord:
    """One database's pg_stat_database counters at a point in time."""

    timestamp: str
    id: str
    name: str
    commits: int
    inserted: int
    updated: int
    deleted: int

    def counters(self) -> Dict[str, int]:
        """Row-mutation counters used for change detection."""
        return {counter: getattr(self, counter) for counter in CHANGE_COUNTERS}


class Snapshot:
    """Mapping of database name to ActivityRecord.

    Iteration is always in ascending name order so that logging and backup
    ordering are reproducible between runs.
    """

    def __init__(self, records: Optional[Dict[str, ActivityRecord]] = None):
        self._records: Dict[str, ActivityRecord] = dict(records or {})

    def add(self, record: ActivityRecord) -> None:
        """Add a record, replacing any earlier record with the same name."""
        self._records[record.name] = record

    def names(self) -> List[str]:
        """Database names in ascending order."""
        return sorted(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __getitem__(self, name: str) -> ActivityRecord:
        return self._records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"Snapshot({self.names()!r})"

    @property
    def is_empty(self) -> bool:
        return not self._records


@dataclass(frozen=True)
class ConnectionParams:
    """Connection parameters shared by every PostgreSQL client invocation."""

    host: str = "localhost"
    port: str = "5432"
    username: str = "postgres"
    database: Optional[str] = None

    @property
    def is_local(self) -> bool:
        """True for localhost and for Unix-domain socket directories.

        libpq reads a host starting with a slash as a socket directory, so
        such a host names this machine and never becomes part of a file name.
        """
        return self.host == "localhost" or self.host.startswith("/")

    def as_options(self) -> List[str]:
        """Connection options in the form accepted by psql, pg_dump and pg_dumpall."""
        return [
            f"--username={self.username}",
            f"--host={self.host}",
            f"--port={self.port}",
        ]


@dataclass(frozen=True)
class DumpResult:
    """Result of a single dump operation."""

    label: str
    path: str
    status: DumpStatus
    message: str
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        """Check if the dump was published."""
        return self.status == DumpStatus.SUCCESS


@dataclass
class BackupRunReport:
    """Outcome of one backup run."""

    results: List[DumpResult] = field(default_factory=list)
    flagged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    snapshot_saved: bool = False

    @property
    def failed(self) -> List[DumpResult]:
        return [result for result in self.results if not result.success]

    @property
    def exit_code(self) -> int:
        """0 when every dump succeeded and the snapshot was persisted, 1 otherwise."""
        if self.failed or not self.snapshot_saved:
            return 1
        return 0
