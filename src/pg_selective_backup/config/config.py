"""Configuration management for pg-selective-backup."""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from ..core.logging import get_logger
from ..core.models import ConnectionParams, DumpFormat
from ..io.commands import CommandBuilder

logger = get_logger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Immutable configuration object for a backup run."""

    # Connection configuration
    host: str = "localhost"
    port: str = "5432"
    username: str = "postgres"
    database: Optional[str] = None

    # Backup configuration
    backup_dir: str = "./backups"
    dump_format: DumpFormat = DumpFormat.CUSTOM
    backup_all: bool = False
    verbose: bool = False
    debug: bool = False

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "standard"
    log_file: Optional[str] = None
    log_max_file_size_mb: int = 100
    log_backup_count: int = 10

    # Internal tracking
    _loaded_config_file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.host:
            raise ValueError("HOST is required")
        if not self.username:
            raise ValueError("USERNAME is required")
        if not self.backup_dir:
            raise ValueError("BACKUP_DIR is required")

        port = str(self.port)
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"PORT must be a number between 1 and 65535, got {self.port}")
        object.__setattr__(self, 'port', port)

        if not isinstance(self.dump_format, DumpFormat):
            object.__setattr__(self, 'dump_format', DumpFormat.parse(self.dump_format))

        level = str(self.log_level).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        if self.debug:
            level = "DEBUG"
        object.__setattr__(self, 'log_level', level)

        if self.log_format not in ("standard", "json"):
            raise ValueError("LOG_FORMAT must be 'standard' or 'json'")

    @property
    def connection(self) -> ConnectionParams:
        return ConnectionParams(
            host=self.host,
            port=self.port,
            username=self.username,
            database=self.database,
        )

    def command_builder(self) -> CommandBuilder:
        """Command builder for the configured cluster and backup directory."""
        return CommandBuilder(
            connection=self.connection,
            backup_dir=self.backup_dir,
            dump_format=self.dump_format,
            verbose=self.verbose,
        )

    def log_config(self) -> None:
        """Log the current configuration."""
        if self._loaded_config_file:
            logger.info(f"Configuration loaded from: {self._loaded_config_file}")
        else:
            logger.debug("Configuration loaded from: defaults, environment and command line")
        logger.debug(f"  HOST: {self.host}")
        logger.debug(f"  PORT: {self.port}")
        logger.debug(f"  USERNAME: {self.username}")
        logger.debug(f"  DATABASE: {self.database}")
        logger.debug(f"  BACKUP_DIR: {self.backup_dir}")
        logger.debug(f"  FORMAT: {self.dump_format.value}")
        logger.debug(f"  ALL: {self.backup_all}")
        logger.debug(f"  VERBOSE: {self.verbose}")
        logger.debug(f"  LOG_LEVEL: {self.log_level}")
        logger.debug(f"  LOG_FORMAT: {self.log_format}")


class ConfigLoader:
    """Loads configuration from multiple sources with precedence."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def load_config(self,
                    config_file: Optional[str] = None,
                    cli_args: Optional[Dict[str, Any]] = None) -> Config:
        """Load configuration from all sources with precedence.

        Precedence order (highest to lowest):
        1. CLI arguments
        2. Environment variables
        3. YAML config file
        4. Defaults

        Args:
            config_file: Path to YAML config file
            cli_args: Dictionary of CLI arguments

        Returns:
            Immutable Config object
        """
        load_dotenv()

        config_data = self._get_defaults()

        loaded_config_file = None
        if config_file:
            config_data.update(self._load_yaml_config(config_file))
            loaded_config_file = config_file

        config_data.update(self._load_env_config())

        if cli_args:
            config_data.update(self._process_cli_args(cli_args))

        # The database for global data defaults to one named after the user
        if not config_data.get('database'):
            config_data['database'] = config_data['username']

        config_data['dump_format'] = self._parse_format(config_data.get('dump_format'))
        config_data['_loaded_config_file'] = loaded_config_file

        return Config(**config_data)

    def _get_defaults(self) -> Dict[str, Any]:
        """Get default configuration values."""
        return {
            'host': 'localhost',
            'port': '5432',
            'username': os.getenv('USER') or 'postgres',
            'database': None,
            'backup_dir': './backups',
            'dump_format': 'custom',
            'backup_all': False,
            'verbose': False,
            'debug': False,
            'log_level': 'INFO',
            'log_format': 'standard',
        }

    def _parse_format(self, value: Any) -> DumpFormat:
        """Parse a dump format, falling back to custom for unknown values."""
        if value is None:
            return DumpFormat.CUSTOM
        try:
            return DumpFormat.parse(value)
        except ValueError:
            self.logger.warning(f"Unknown dump format '{value}', using custom")
            return DumpFormat.CUSTOM

    def _load_yaml_config(self, config_file: str) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        config_path = Path(config_file)
        if not config_path.exists():
            self.logger.warning(f"Config file not found: {config_file}")
            return {}

        try:
            with open(config_path, 'r') as f:
                yaml_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self.logger.error(f"Error loading config file {config_file}: {e}")
            return {}
        if not isinstance(yaml_data, dict):
            self.logger.error(f"Config file {config_file} does not contain a mapping")
            return {}
        return self._normalize_keys(yaml_data)

    def _load_env_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables.

        The libpq variables are consulted first-match-wins, so PGHOSTADDR takes
        precedence over PGHOST. USER is only a default, see _get_defaults.
        """
        env_mapping = [
            ('PGHOSTADDR', 'host'),
            ('PGHOST', 'host'),
            ('PGPORT', 'port'),
            ('PGUSER', 'username'),
            ('PGDATABASE', 'database'),
            ('PG_BACKUP_DIR', 'backup_dir'),
            ('PG_BACKUP_FORMAT', 'dump_format'),
            ('LOG_LEVEL', 'log_level'),
            ('LOG_FORMAT', 'log_format'),
            ('LOG_FILE', 'log_file'),
            ('LOG_MAX_FILE_SIZE_MB', 'log_max_file_size_mb'),
            ('LOG_BACKUP_COUNT', 'log_backup_count'),
        ]

        config = {}
        for env_var, config_key in env_mapping:
            if config_key in config:
                continue
            value = os.getenv(env_var)
            if not value:
                continue
            if config_key in ('log_max_file_size_mb', 'log_backup_count'):
                try:
                    config[config_key] = int(value)
                except ValueError:
                    self.logger.warning(f"Invalid integer value for {env_var}: {value}")
            else:
                config[config_key] = value

        return config

    def _process_cli_args(self, cli_args: Dict[str, Any]) -> Dict[str, Any]:
        """Process CLI arguments into config format."""
        cli_mapping = {
            'host': 'host',
            'port': 'port',
            'username': 'username',
            'database': 'database',
            'backup_dir': 'backup_dir',
            'format': 'dump_format',
            'all': 'backup_all',
            'verbose': 'verbose',
            'debug': 'debug',
            'log_level': 'log_level',
            'log_format': 'log_format',
            'log_file': 'log_file',
        }

        config = {}
        for cli_key, config_key in cli_mapping.items():
            if cli_key in cli_args and cli_args[cli_key] is not None:
                config[config_key] = cli_args[cli_key]

        return config

    def _normalize_keys(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize nested YAML structure to flat config field names."""
        normalized = {}

        section_mapping = {
            'connection': {
                'host': 'host',
                'port': 'port',
                'username': 'username',
                'database': 'database',
            },
            'backup': {
                'dir': 'backup_dir',
                'format': 'dump_format',
                'all': 'backup_all',
                'verbose': 'verbose',
            },
            'logging': {
                'level': 'log_level',
                'format': 'log_format',
                'file': 'log_file',
                'max_file_size_mb': 'log_max_file_size_mb',
                'backup_count': 'log_backup_count',
            },
        }

        for section, keys in section_mapping.items():
            section_data = data.get(section) or {}
            for yaml_key, config_key in keys.items():
                if yaml_key in section_data:
                    normalized[config_key] = section_data[yaml_key]

        # Flat keys such as backup-dir or log-level
        known_keys = set(self._get_defaults()) | {'log_file', 'log_max_file_size_mb', 'log_backup_count'}
        for key, value in data.items():
            if key in section_mapping:
                continue
            normalized_key = key.replace('-', '_').lower()
            if normalized_key == 'format':
                normalized_key = 'dump_format'
            if normalized_key not in known_keys:
                self.logger.warning(f"Ignoring unknown config key: {key}")
                continue
            if normalized_key not in normalized:
                normalized[normalized_key] = value

        return normalized
