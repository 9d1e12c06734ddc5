"""Main application logic for pg-selective-backup."""

import argparse
from typing import Optional

from .backup_driver import BackupDriver
from .errors import BackupError
from .logging import get_logger, setup_logging
from ..io.postgres_tools import DumpEngine, PostgresTools, StatsSource

logger = get_logger(__name__)


class Application:
    """Loads configuration and runs one backup pass."""

    def __init__(self, stats_source: Optional[StatsSource] = None,
                 dump_engine: Optional[DumpEngine] = None):
        """Initialize the application.

        Args:
            stats_source: Stats collaborator; defaults to psql
            dump_engine: Dump collaborator; defaults to pg_dump/pg_dumpall
        """
        self.stats_source = stats_source
        self.dump_engine = dump_engine

    def _setup_logging(self, config) -> None:
        """Reconfigure logging from the loaded configuration."""
        setup_logging(
            level=config.log_level,
            format_type=config.log_format,
            log_file=config.log_file,
            max_file_size_mb=config.log_max_file_size_mb,
            backup_count=config.log_backup_count
        )

    def run(self, args: argparse.Namespace) -> int:
        """Run the application with parsed arguments.

        Args:
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        from ..config import ConfigLoader
        from ..config.cli_config import CLIConfigManager

        try:
            cli_config = CLIConfigManager().args_to_config_dict(args)
            config = ConfigLoader().load_config(
                config_file=getattr(args, 'config', None),
                cli_args=cli_config
            )
        except ValueError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        self._setup_logging(config)
        return self.run_backup(config)

    def run_backup(self, config) -> int:
        """Run a backup pass with the given configuration.

        Args:
            config: Configuration object

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        config.log_config()
        builder = config.command_builder()

        try:
            tools = None
            if self.stats_source is None or self.dump_engine is None:
                tools = PostgresTools(builder.stats_command(), verbose=config.verbose)
        except BackupError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        driver = BackupDriver(
            builder=builder,
            stats_source=self.stats_source or tools,
            dump_engine=self.dump_engine or tools,
            force_all=config.backup_all,
        )

        try:
            report = driver.run()
        except BackupError as e:
            logger.error(f"Backup run aborted during {driver.stage.value}: {e}")
            return 1

        return report.exit_code
