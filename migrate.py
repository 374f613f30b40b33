#!/usr/bin/env python3
"""
Notion to Obsidian Migration Tool - Main CLI Entry Point

This script provides the command-line interface for converting a Notion HTML
export (directory or .zip archive) into an Obsidian vault of Markdown notes,
keeping the page hierarchy, properties, links and attachments.
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml

# Add project root to Python path for relative imports
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

# Project imports
from config_loader import ConfigLoader, get_nested
from fetchers import FetcherError, NotionExportFetcher
from logger import LOGGER_NAME, log_config, log_section, setup_logging
from orchestrator import MigrationOrchestrator, MigrationReport

# Version
__version__ = "1.0.0"


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Convert a Notion HTML export into an Obsidian vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert using a configuration file
  python migrate.py --config config.yaml

  # Convert an exported archive without a config file
  python migrate.py --export-path Export.zip --output-dir vault

  # Put attachments into a vault folder
  python migrate.py --export-path Export.zip --output-dir vault --attachment-path attachments

  # Keep Notion text colours as inline HTML
  python migrate.py --config config.yaml --preserve-colored-text

  # Dry-run mode (preview)
  python migrate.py --config config.yaml --dry-run

  # Convert pages on four worker threads
  python migrate.py --config config.yaml --max-workers 4

  # Verbose logging
  python migrate.py -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to configuration YAML file (default: config.yaml, optional when --export-path is given)'
    )

    parser.add_argument(
        '--export-path',
        type=str,
        help='Notion HTML export directory or .zip archive'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Obsidian vault directory to write notes into'
    )

    parser.add_argument(
        '--attachment-path',
        type=str,
        help='Vault folder for attachments (empty: next to their pages)'
    )

    parser.add_argument(
        '--single-line-breaks',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Collapse blank lines between blocks'
    )

    parser.add_argument(
        '--preserve-colored-text',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Keep Notion text and background colours as inline HTML'
    )

    parser.add_argument(
        '--dry-run',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Convert without writing any files'
    )

    parser.add_argument(
        '--max-workers',
        type=int,
        help='Number of worker threads converting pages (default: 1)'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Path of the JSON migration report'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Write logs to this file as well'
    )

    parser.add_argument(
        '--progress',
        action=argparse.BooleanOptionalAction,
        default=False,
        help='Display progress bars'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(args: argparse.Namespace, logger: logging.Logger) -> dict:
    """Load the config file (optional with --export-path), merge CLI arguments and validate."""
    config_loader = ConfigLoader()

    if Path(args.config).exists() or not args.export_path:
        logger.info(f"Loading configuration from {args.config}")
        config = config_loader.load(args.config)
    else:
        logger.info(f"No configuration file at {args.config}, using command-line arguments only")
        config = {}

    config = config_loader.merge_with_args(config, args)
    if not get_nested(config, 'export.output_directory'):
        config['export']['output_directory'] = './obsidian-vault'

    config_loader.validate(config)
    return config


def run_migration(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the complete migration pipeline."""
    logger.info("Starting migration pipeline")

    dry_run = get_nested(config, 'migration.dry_run', False)
    logger.info(f"Dry-run: {dry_run}, Max workers: {get_nested(config, 'migration.max_workers', 1)}")

    try:
        fetcher = NotionExportFetcher(config, logger, show_progress=args.progress)

        orchestrator = MigrationOrchestrator(config, fetcher, logger, show_progress=args.progress)
        report = orchestrator.orchestrate_migration()

        report_generator = MigrationReport(logger)
        print("\n" + report_generator.format_console_report(report))

        report_path = get_nested(config, 'migration.report_path')
        if report_path:
            report_generator.export_json_report(report, report_path)

        errors = report.get('summary', {}).get('total_errors', 0)
        if errors > 0:
            logger.warning(f"Migration completed with {errors} errors")
            return 1

        logger.info("Migration completed successfully")
        return 0

    except FetcherError as e:
        logger.error(f"Failed to read Notion export: {str(e)}")
        return 1
    except KeyboardInterrupt:
        logger.error("Migration interrupted by user")
        return 130


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        # Minimal logging until the config file is read
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger(LOGGER_NAME)

        log_section("Notion to Obsidian Migration Tool")
        logger.info(f"Version: {__version__}")

        config = load_configuration(args, logger)

        logging_config = config.get('logging', {})
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=logging_config.get('file'),
            log_format=logging_config.get('format'),
            level=logging_config.get('level')
        )

        log_config(config)

        return run_migration(config, args, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except (ValueError, yaml.YAMLError) as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nMigration interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
