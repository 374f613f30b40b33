"""Logging setup for the migrator: coloured console, optional rotating file, batch progress summaries."""

import copy
import logging
import logging.handlers
import time
from typing import Any, Dict, List, Optional

import colorlog

LOGGER_NAME = 'notion_markdown_migrator'

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5
SECRET_KEY_PARTS = ('password', 'secret', 'token', 'api_key')


def resolve_log_level(verbosity: int = 0, level: Optional[str] = None) -> int:
    """An explicit level name wins; otherwise -v gives INFO and -vv DEBUG."""
    if level:
        level_name = level.upper()
        if level_name not in LOG_COLORS:
            raise ValueError(f"Invalid log level '{level}'. Must be one of: {sorted(LOG_COLORS)}")
        return getattr(logging, level_name)
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Configure the ``notion_markdown_migrator`` logger hierarchy.

    Calling it again replaces the handlers, so the CLI can start with
    console-only logging and reconfigure once the config file is read.

    Args:
        verbosity: Count of -v flags (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path of a rotating log file
        log_format: Optional record format
        date_format: Optional timestamp format
        level: Optional level name overriding verbosity

    Returns:
        The migrator's root logger
    """
    log_level = resolve_log_level(verbosity, level)
    log_format = log_format or DEFAULT_LOG_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    # Third-party loggers (bs4, markdownify) stay at WARNING
    logging.basicConfig(level=logging.WARNING, format=log_format, datefmt=date_format)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors=LOG_COLORS
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
            )
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {str(e)}")
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.info(f"Logging to {log_file} at {logging.getLevelName(log_level)}")

    return logger


class ProgressTracker:
    """
    Counts successes and failures of one batch step and logs a summary on exit.

    The summary is logged at INFO when everything succeeded, WARNING when
    some items failed and ERROR when all of them did.
    """

    def __init__(self, total_items: int, item_type: str = "items"):
        self.total_items = total_items
        self.item_type = item_type
        self.successful_items = 0
        self.failed: List[str] = []
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger(LOGGER_NAME)

    @property
    def processed_items(self) -> int:
        return self.successful_items + len(self.failed)

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.time()
        self.logger.info(f"Processing {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return
        elapsed = time.time() - self.start_time

        if self.failed and len(self.failed) == self.total_items:
            log_method = self.logger.error
        elif self.failed:
            log_method = self.logger.warning
        else:
            log_method = self.logger.info

        log_method(
            f"{self.item_type.capitalize()}: {self.successful_items}/{self.total_items} succeeded, "
            f"{len(self.failed)} failed in {format_elapsed(elapsed)}"
        )
        if self.failed:
            log_method(f"Failed {self.item_type}: {', '.join(self.failed)}")

    def increment(self, success: bool = True, name: Optional[str] = None) -> None:
        """Record one processed item; ``name`` identifies failures in the summary."""
        if success:
            self.successful_items += 1
        else:
            self.failed.append(name or f"#{self.processed_items + 1}")

        if self.processed_items % 100 == 0:
            self.logger.info(f"Processed {self.processed_items}/{self.total_items} {self.item_type}")


def format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, seconds = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {seconds}s"


def log_section(title: str) -> None:
    """Log a banner between pipeline phases."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.info("=" * 60)
    logger.info(f"  {title.upper()}")
    logger.info("=" * 60)


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective settings, with secret-looking values masked."""
    logger = logging.getLogger(LOGGER_NAME)
    config = mask_secrets(copy.deepcopy(config))

    log_section("Configuration")

    notion = config.get('notion', {})
    export_settings = config.get('export', {})
    migration = config.get('migration', {})

    logger.info(f"Notion export:         {notion.get('export_path', 'Not Set')}")
    logger.info(f"Vault directory:       {export_settings.get('output_directory', './obsidian-vault')}")
    logger.info(f"Attachment folder:     {export_settings.get('attachment_path') or 'vault root'}")
    logger.info(f"Single line breaks:    {export_settings.get('single_line_breaks', False)}")
    logger.info(f"Preserve colored text: {export_settings.get('preserve_colored_text', False)}")
    logger.info(f"Dry run:               {migration.get('dry_run', False)}")
    logger.info(f"Max workers:           {migration.get('max_workers', 1)}")
    logger.info(f"Report path:           {migration.get('report_path') or 'Not Set'}")


def mask_secrets(data: Any) -> Any:
    # ${ENV} substitution can pull secrets into any string field
    if isinstance(data, dict):
        return {
            key: '***REDACTED***'
            if isinstance(value, str) and any(part in str(key).lower() for part in SECRET_KEY_PARTS)
            else mask_secrets(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [mask_secrets(item) for item in data]
    return data


__all__ = [
    'LOGGER_NAME',
    'setup_logging',
    'resolve_log_level',
    'ProgressTracker',
    'format_elapsed',
    'log_section',
    'log_config',
    'mask_secrets'
]
