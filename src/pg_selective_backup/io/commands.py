"""Structured commands for the PostgreSQL client tools.

Commands are argument vectors, never shell strings. Connection options are
added by the tool runner, so a command only carries what is specific to its
target.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core.errors import InvalidDumpCommandError
from ..core.models import ConnectionParams, DumpFormat, DumpKind
from .snapshot_store import SNAPSHOT_FILENAME

GLOBALS_BACKUP_NAME = "globals-only.backup.gz"
SCHEMA_BACKUP_SUFFIX = "-schema-only.backup.gz"
EXCLUDED_DATABASES = ("template0", "template1", "postgres")

STATS_QUERY = (
    "select date_trunc('minute', now()), datid, datname, "
    "xact_commit, tup_inserted, tup_updated, tup_deleted "
    "from pg_stat_database "
    "where datname not in ({excluded});"
).format(excluded=",".join(f"'{name}'" for name in EXCLUDED_DATABASES))


@dataclass(frozen=True)
class DumpCommand:
    """An executable plus its target-specific arguments."""

    program: str
    args: Tuple[str, ...] = ()
    compress: bool = False

    def __post_init__(self):
        """Validate the command before it can be run."""
        if not self.program or not self.program.strip():
            raise InvalidDumpCommandError("Dump command requires a program")
        object.__setattr__(self, 'args', tuple(self.args))
        for arg in (self.program,) + self.args:
            if not isinstance(arg, str):
                raise InvalidDumpCommandError(f"Command arguments must be strings, got {arg!r}")
            if arg == "":
                raise InvalidDumpCommandError(f"Empty argument in {self.program} command")
            if "\x00" in arg:
                raise InvalidDumpCommandError(f"NUL byte in {self.program} argument")

    def argv(self, connection: Optional[ConnectionParams] = None) -> List[str]:
        """Full argument vector, with connection options when given."""
        options = connection.as_options() if connection else []
        return [self.program] + options + list(self.args)

    def __str__(self) -> str:
        return " ".join([self.program] + list(self.args))


@dataclass(frozen=True)
class DumpTarget:
    """A dump to perform: what to run and where the result is published."""

    label: str
    kind: DumpKind
    command: DumpCommand
    path: str

    @property
    def temp_path(self) -> str:
        return f"{self.path}.new"


def _check_database_name(database: str) -> None:
    if not database:
        raise InvalidDumpCommandError("Database name is required")
    if database.startswith("-"):
        raise InvalidDumpCommandError(f"Database name may not start with '-': {database}")
    if os.sep in database or (os.altsep and os.altsep in database):
        raise InvalidDumpCommandError(f"Database name may not contain a path separator: {database}")


@dataclass(frozen=True)
class CommandBuilder:
    """Builds dump targets and the stats query for one cluster."""

    connection: ConnectionParams
    backup_dir: str
    dump_format: DumpFormat = DumpFormat.CUSTOM
    verbose: bool = False

    @property
    def backup_prefix(self) -> str:
        """Path prefix for backup files; remote hosts get their name prepended."""
        if self.connection.is_local:
            return os.path.join(self.backup_dir, "")
        host = self.connection.host.replace(os.sep, "_")
        if os.altsep:
            host = host.replace(os.altsep, "_")
        return os.path.join(self.backup_dir, f"{host}-")

    @property
    def snapshot_path(self) -> str:
        return f"{self.backup_prefix}{SNAPSHOT_FILENAME}"

    def _shared_args(self) -> List[str]:
        return ["--verbose"] if self.verbose else []

    def globals_target(self) -> DumpTarget:
        """pg_dumpall of roles and tablespaces, gzip compressed."""
        args = ["--globals-only"] + self._shared_args()
        if self.connection.database:
            _check_database_name(self.connection.database)
            args.append(f"--database={self.connection.database}")
        return DumpTarget(
            label="global data",
            kind=DumpKind.GLOBALS,
            command=DumpCommand("pg_dumpall", tuple(args), compress=True),
            path=f"{self.backup_prefix}{GLOBALS_BACKUP_NAME}",
        )

    def schema_target(self, database: str) -> DumpTarget:
        """Plain-text schema-only dump of one database, gzip compressed."""
        _check_database_name(database)
        args = ["--schema-only", "--create", "--format=plain"] + self._shared_args() + [database]
        return DumpTarget(
            label=f'schema of "{database}"',
            kind=DumpKind.SCHEMA,
            command=DumpCommand("pg_dump", tuple(args), compress=True),
            path=f"{self.backup_prefix}{database}{SCHEMA_BACKUP_SUFFIX}",
        )

    def full_target(self, database: str) -> DumpTarget:
        """Full dump of one database in the configured format."""
        _check_database_name(database)
        args = [f"--format={self.dump_format.value}"] + self._shared_args() + [database]
        return DumpTarget(
            label=f'database "{database}"',
            kind=DumpKind.FULL,
            command=DumpCommand("pg_dump", tuple(args)),
            path=f"{self.backup_prefix}{database}{self.dump_format.extension}",
        )

    def database_targets(self, database: str) -> List[DumpTarget]:
        """Both dumps taken for a database selected for backup."""
        return [self.schema_target(database), self.full_target(database)]

    def stats_command(self) -> DumpCommand:
        """psql invocation returning one unaligned, tuples-only line per database."""
        args = []
        if self.connection.database:
            _check_database_name(self.connection.database)
            args.append(self.connection.database)
        args += ["-At", "-c", STATS_QUERY]
        return DumpCommand("psql", tuple(args))
