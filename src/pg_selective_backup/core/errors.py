"""Exception types for pg-selective-backup."""


class BackupError(Exception):
    """Base class for errors raised by the backup workflow."""


class SnapshotPersistenceError(BackupError):
    """The activity snapshot could not be written."""


class StatsQueryError(BackupError):
    """The pg_stat_database query did not complete."""


class InvalidDumpCommandError(BackupError, ValueError):
    """A dump command failed validation before being run."""
