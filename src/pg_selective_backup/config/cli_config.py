"""CLI-specific configuration management."""

import argparse
from typing import Optional, Dict, Any

from .. import __version__

FORMAT_CHOICES = ["c", "custom", "t", "tar", "p", "plain"]


class CLIConfigManager:
    """Manages CLI argument parsing and conversion to configuration."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the CLI argument parser."""
        # -h selects the host, as with the PostgreSQL client tools
        parser = argparse.ArgumentParser(
            prog="pg-selective-backup",
            description="Selectively back up the databases of a PostgreSQL cluster. "
                        "Global data is always dumped; databases are dumped only when "
                        "their activity changed since the last backup.",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            add_help=False,
            epilog="""
Examples:
  %(prog)s --backup-dir /var/backups/pg
  %(prog)s -a -F t -h db.example.com -U backup
  %(prog)s --config backup.yaml --log-level DEBUG
            """
        )

        general_group = parser.add_argument_group("General options")
        general_group.add_argument(
            "-F", "--format",
            choices=FORMAT_CHOICES,
            help="Output file format for data dumps: custom, tar or plain (default: custom)"
        )
        general_group.add_argument(
            "-a", "--all",
            action="store_true",
            default=None,
            help="Back up all databases (default: only databases changed since the last backup)"
        )
        general_group.add_argument(
            "--backup-dir",
            type=str,
            help="Directory to place backup files in (default: ./backups)"
        )
        general_group.add_argument(
            "-v", "--verbose",
            action="store_true",
            default=None,
            help="Verbose mode"
        )
        general_group.add_argument(
            "--debug",
            action="store_true",
            default=None,
            help="Log commands and change detection details"
        )
        general_group.add_argument(
            "--config",
            type=str,
            help="Path to YAML configuration file"
        )
        general_group.add_argument(
            "--log-level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set logging level (default: INFO)"
        )
        general_group.add_argument(
            "--log-format",
            choices=["standard", "json"],
            help="Set log format (default: standard)"
        )
        general_group.add_argument(
            "--log-file",
            type=str,
            help="Also write logs to this file (rotated, timestamped)"
        )
        general_group.add_argument(
            "--version",
            action="version",
            version=f"pg-selective-backup {__version__}"
        )
        general_group.add_argument(
            "--help",
            action="help",
            help="Show this help, then exit"
        )

        connection_group = parser.add_argument_group("Connection options")
        connection_group.add_argument(
            "-h", "--host",
            type=str,
            help="Database server host or socket directory (overrides PGHOSTADDR/PGHOST)"
        )
        connection_group.add_argument(
            "-p", "--port",
            type=str,
            help="Database server port number (overrides PGPORT)"
        )
        connection_group.add_argument(
            "-U", "--username",
            type=str,
            help="Connect as specified database user (overrides PGUSER)"
        )
        connection_group.add_argument(
            "-d", "--database",
            type=str,
            help="Connect to database name for global data (overrides PGDATABASE)"
        )

        return parser

    def parse_args(self, args: Optional[list] = None) -> argparse.Namespace:
        """Parse command line arguments."""
        parsed_args = self.parser.parse_args(args)

        if parsed_args.port is not None and not parsed_args.port.isdigit():
            self.parser.error(f"Invalid port: {parsed_args.port}")

        return parsed_args

    def args_to_config_dict(self, args: argparse.Namespace) -> Dict[str, Any]:
        """Convert parsed arguments to dictionary for config loading."""
        config_dict = {}
        for key in ('host', 'port', 'username', 'database', 'backup_dir', 'format',
                    'all', 'verbose', 'debug', 'log_level', 'log_format', 'log_file'):
            value = getattr(args, key, None)
            if value is not None:
                config_dict[key] = value
        return config_dict
