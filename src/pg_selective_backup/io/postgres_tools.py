"""PostgreSQL client tools as injectable collaborators.

The backup workflow depends only on the two protocols below. ``PostgresTools``
implements both by running psql, pg_dump and pg_dumpall as subprocesses;
tests substitute fakes that return canned data.
"""

import shutil
import subprocess
import tempfile
from typing import BinaryIO, List, Protocol

from ..core.errors import StatsQueryError
from ..core.logging import get_logger
from ..core.models import ConnectionParams
from .commands import DumpCommand
from .stats_parser import split_lines

CHUNK_SIZE = 1024 * 1024


class StatsSource(Protocol):
    """Produces the raw pg_stat_database lines for a cluster."""

    def run_query(self, connection: ConnectionParams) -> List[str]:
        ...


class DumpEngine(Protocol):
    """Runs a dump command, streaming its output into ``destination``."""

    def run_dump(self, command: DumpCommand, connection: ConnectionParams,
                 destination: BinaryIO) -> bool:
        ...


class PostgresTools:
    """Runs the PostgreSQL client binaries.

    Child processes are awaited without a timeout; a hung client hangs the run.
    """

    def __init__(self, stats_command: DumpCommand, verbose: bool = False):
        """Initialize the tool runner.

        Args:
            stats_command: psql command producing the activity lines
            verbose: Log client diagnostics at INFO instead of DEBUG
        """
        self.stats_command = stats_command
        self.verbose = verbose
        self.logger = get_logger(__name__)

    def run_query(self, connection: ConnectionParams) -> List[str]:
        """Run the stats query.

        Raises:
            StatsQueryError: If psql cannot be started or exits non-zero
        """
        argv = self.stats_command.argv(connection)
        self.logger.debug(f"Running stats query: {self.stats_command}")
        try:
            completed = subprocess.run(argv, capture_output=True, text=True, check=False)
        except OSError as e:
            raise StatsQueryError(f"Could not run {self.stats_command.program}: {e}") from e

        if completed.returncode != 0:
            raise StatsQueryError(
                f"{self.stats_command.program} exited with status {completed.returncode}: "
                f"{completed.stderr.strip()}"
            )
        return split_lines(completed.stdout)

    def run_dump(self, command: DumpCommand, connection: ConnectionParams,
                 destination: BinaryIO) -> bool:
        """Run a dump command, copying its stdout into ``destination``.

        Returns:
            True if the command exited with status 0
        """
        argv = command.argv(connection)
        self.logger.debug(f"Command is: {command}")

        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(argv, stdout=subprocess.PIPE, stderr=stderr_file)
            except OSError as e:
                self.logger.error(f"Could not run {command.program}: {e}")
                return False

            try:
                shutil.copyfileobj(process.stdout, destination, CHUNK_SIZE)
            finally:
                process.stdout.close()
                returncode = process.wait()

            stderr_file.seek(0)
            self._log_diagnostics(command, stderr_file.read(), returncode)

        return returncode == 0

    def _log_diagnostics(self, command: DumpCommand, stderr: bytes, returncode: int) -> None:
        text = stderr.decode('utf-8', errors='replace').strip()
        if returncode != 0:
            self.logger.warning(f"{command.program} exited with status {returncode}")
            for line in text.splitlines():
                self.logger.warning(f"{command.program}: {line}")
            return
        for line in text.splitlines():
            if self.verbose:
                self.logger.info(f"{command.program}: {line}")
            else:
                self.logger.debug(f"{command.program}: {line}")
