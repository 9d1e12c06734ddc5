"""Main entry point for pg-selective-backup."""

import sys

from .config.cli_config import CLIConfigManager
from .core.logging import setup_logging, get_logger
from .core.application import Application


def main() -> int:
    """Main entry point for the CLI."""
    cli_manager = CLIConfigManager()
    args = cli_manager.parse_args()

    # Basic logging until the configuration is loaded
    setup_logging(level=args.log_level or ("DEBUG" if args.debug else "INFO"),
                  format_type=args.log_format or "standard")
    logger = get_logger(__name__)
    logger.debug("Starting pg-selective-backup")

    try:
        return Application().run(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
