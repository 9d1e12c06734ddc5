"""Top-level sequencing of a selective backup run."""

from enum import Enum
from typing import List, Optional

from ..io.commands import CommandBuilder, DumpTarget
from ..io.postgres_tools import DumpEngine, StatsSource
from ..io.snapshot_store import SnapshotStore
from ..io.stats_parser import StatsParser
from .change_detector import classify
from .dump_orchestrator import DumpOrchestrator
from .errors import InvalidDumpCommandError, SnapshotPersistenceError
from .logging import get_logger
from .models import BackupRunReport, DumpResult, DumpStatus

logger = get_logger(__name__)


class BackupStage(Enum):
    """Stages of a run, always visited in this order."""
    DUMP_GLOBALS = "dump_globals"
    COLLECT_STATS = "collect_stats"
    DETECT_AND_DUMP = "detect_and_dump"
    PERSIST_SNAPSHOT = "persist_snapshot"
    DONE = "done"


class BackupDriver:
    """Runs one backup pass over a cluster.

    Global data is always dumped. Databases are dumped only when their
    insert/update/delete counters moved since the previous run, or when
    ``force_all`` is set. Dump failures never stop the pass; they are
    collected in the returned report. The new snapshot is saved at the end
    even if some dumps failed.
    """

    def __init__(self, builder: CommandBuilder, stats_source: StatsSource, dump_engine: DumpEngine,
                 force_all: bool = False, store: Optional[SnapshotStore] = None,
                 parser: Optional[StatsParser] = None):
        """Initialize the driver.

        Args:
            builder: Builds dump targets and paths for the cluster
            stats_source: Collaborator producing the current activity lines
            dump_engine: Collaborator running the dump commands
            force_all: Back up every database regardless of activity
            store: Snapshot store; defaults to the builder's snapshot path
            parser: Parser for the activity lines
        """
        self.builder = builder
        self.connection = builder.connection
        self.stats_source = stats_source
        self.force_all = force_all
        self.parser = parser or StatsParser()
        self.store = store or SnapshotStore(builder.snapshot_path, self.parser)
        self.orchestrator = DumpOrchestrator(dump_engine, builder.connection)
        self.stage = BackupStage.DUMP_GLOBALS

    def _enter(self, stage: BackupStage) -> None:
        self.stage = stage
        logger.debug(f"Entering stage {stage.value}")

    def run(self) -> BackupRunReport:
        """Run the backup pass.

        Returns:
            Report of every dump attempted, the databases skipped and whether
            the snapshot was persisted

        Raises:
            StatsQueryError: If current activity could not be collected; nothing
                after the globals dump is attempted and the snapshot is kept
        """
        report = BackupRunReport()

        self._enter(BackupStage.DUMP_GLOBALS)
        logger.info("Backing up the global data.")
        report.results.append(self._dump_safely("global data", self.builder.globals_target))

        self._enter(BackupStage.COLLECT_STATS)
        raw_lines = self.stats_source.run_query(self.connection)
        current = self.parser.parse(raw_lines)
        previous = self.store.load()
        logger.debug(f"Collected stats for {len(current)} databases ({len(previous)} in previous snapshot)")

        self._enter(BackupStage.DETECT_AND_DUMP)
        for name, flagged in classify(previous, current, self.force_all):
            if flagged:
                report.flagged.append(name)
                logger.info(f'Backing up database "{name}".')
                report.results.extend(self._dump_database(name))
            else:
                report.skipped.append(name)
                logger.info(f'Database "{name}" does not currently require backing up.')

        self._enter(BackupStage.PERSIST_SNAPSHOT)
        try:
            self.store.save(raw_lines)
            report.snapshot_saved = True
        except SnapshotPersistenceError as e:
            logger.error(f"{e}; the next run will back up every database")

        self._enter(BackupStage.DONE)
        self._summarize(report)
        return report

    def _dump_database(self, name: str) -> List[DumpResult]:
        try:
            targets = self.builder.database_targets(name)
        except InvalidDumpCommandError as e:
            return [self._invalid_target(f'database "{name}"', e)]
        return [self.orchestrator.dump(target) for target in targets]

    def _dump_safely(self, label: str, make_target) -> DumpResult:
        try:
            target: DumpTarget = make_target()
        except InvalidDumpCommandError as e:
            return self._invalid_target(label, e)
        return self.orchestrator.dump(target)

    def _invalid_target(self, label: str, error: InvalidDumpCommandError) -> DumpResult:
        message = f"Backup of {label} failed: {error}"
        logger.error(message)
        return DumpResult(label=label, path="", status=DumpStatus.FAILED, message=message, error=error)

    def _summarize(self, report: BackupRunReport) -> None:
        succeeded = len(report.results) - len(report.failed)
        logger.info(
            f"Backup run finished: {succeeded} dumps succeeded, {len(report.failed)} failed, "
            f"{len(report.skipped)} databases unchanged"
        )
        for result in report.failed:
            logger.error(f"  FAILED: {result.message}")
