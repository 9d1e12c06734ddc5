"""Runs dumps into a temporary file and publishes them on success."""

import gzip
import os
from pathlib import Path
from typing import Optional

from ..io.commands import DumpTarget
from ..io.postgres_tools import DumpEngine
from .logging import get_logger
from .models import ConnectionParams, DumpResult, DumpStatus


class DumpOrchestrator:
    """Produces one backup file per dump target.

    Output goes to ``<path>.new`` first. Only when the engine reports success
    and the temporary file exists is it renamed over the final path, so readers
    of the final path never see a partial backup. On failure the previous
    backup is left untouched and the temporary file is removed.
    """

    def __init__(self, engine: DumpEngine, connection: ConnectionParams):
        """Initialize the orchestrator.

        Args:
            engine: Collaborator that runs the dump commands
            connection: Connection parameters passed to every dump
        """
        self.engine = engine
        self.connection = connection
        self.logger = get_logger(__name__)

    def dump(self, target: DumpTarget) -> DumpResult:
        """Run a dump target and publish its output.

        Args:
            target: What to dump and where the backup lives

        Returns:
            Result of the dump; engine failures are reported here, not raised
        """
        temp_path = target.temp_path

        try:
            Path(target.path).parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, 'wb') as raw:
                if target.command.compress:
                    with gzip.GzipFile(fileobj=raw, mode='wb') as stream:
                        succeeded = self.engine.run_dump(target.command, self.connection, stream)
                else:
                    succeeded = self.engine.run_dump(target.command, self.connection, raw)
        except OSError as e:
            self._discard(temp_path)
            return self._failed(target, f"could not write {temp_path}: {e}", e)

        if not succeeded:
            self._discard(temp_path)
            return self._failed(target, f"{target.command.program} did not complete")

        if not os.path.isfile(temp_path):
            return self._failed(target, f"{temp_path} was not created")

        try:
            os.replace(temp_path, target.path)
        except OSError as e:
            self._discard(temp_path)
            return self._failed(target, f"could not publish {target.path}: {e}", e)

        self.logger.debug(f"Published {target.path}")
        return DumpResult(
            label=target.label,
            path=target.path,
            status=DumpStatus.SUCCESS,
            message=f"Backed up {target.label} to {target.path}",
        )

    def _failed(self, target: DumpTarget, reason: str, error: Optional[Exception] = None) -> DumpResult:
        message = f"Backup of {target.label} failed: {reason}; keeping previous {target.path}"
        self.logger.error(message)
        return DumpResult(
            label=target.label,
            path=target.path,
            status=DumpStatus.FAILED,
            message=message,
            error=error,
        )

    def _discard(self, temp_path: str) -> None:
        try:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
        except OSError as e:
            self.logger.warning(f"Could not remove temporary file {temp_path}: {e}")
