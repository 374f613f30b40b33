"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, Optional

import yaml

from models import NotionReplacements

SECTIONS = ('notion', 'export', 'migration', 'logging')
REPLACEMENT_KEYS = ('leading_spaces', 'indented_blocks', 'shift_enter')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
BOOLEAN_FIELDS = ('export.single_line_breaks', 'export.preserve_colored_text', 'migration.dry_run')

# (argument name, config path, keep falsy values such as '' or False)
CLI_OVERRIDES = (
    ('export_path', 'notion.export_path', False),
    ('output_dir', 'export.output_directory', False),
    ('attachment_path', 'export.attachment_path', True),
    ('single_line_breaks', 'export.single_line_breaks', True),
    ('preserve_colored_text', 'export.preserve_colored_text', True),
    ('dry_run', 'migration.dry_run', True),
    ('max_workers', 'migration.max_workers', True),
    ('report', 'migration.report_path', False),
    ('log_file', 'logging.file', False),
)


class ConfigLoader:
    """Loads, merges and validates the migrator configuration."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Read a YAML configuration file, substituting ``${VAR}`` references.

        Unset variables are left in place so validation can name them.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary (empty for an empty file)

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ValueError: If the document is not a mapping
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a mapping")
        return cls._substitute(config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Check the merged configuration before any file is read.

        Raises:
            ValueError: With a message naming the offending field
        """
        export_path = cls._require(config, 'notion.export_path')
        if not os.path.exists(export_path):
            raise ValueError(f"notion.export_path '{export_path}' does not exist")
        if os.path.isfile(export_path) and not export_path.lower().endswith('.zip'):
            raise ValueError(f"notion.export_path '{export_path}' must be a directory or a .zip archive")

        output_dir = cls._require(config, 'export.output_directory')
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        attachment_path = get_nested(config, 'export.attachment_path')
        if attachment_path is not None and not isinstance(attachment_path, str):
            raise ValueError("export.attachment_path must be a string")

        for field in BOOLEAN_FIELDS:
            if not isinstance(get_nested(config, field, False), bool):
                raise ValueError(f"{field} must be a boolean")

        cls._validate_replacements(get_nested(config, 'export.replacements') or {})

        max_workers = get_nested(config, 'migration.max_workers', 1)
        if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
            raise ValueError("migration.max_workers must be a positive integer")

        level = get_nested(config, 'logging.level')
        if level is not None and str(level).upper() not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {list(LOG_LEVELS)}")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Overlay command-line arguments on a loaded configuration.

        Arguments left at ``None`` keep the file's value. The input
        configuration is not modified.

        Args:
            config: Configuration loaded from file (may be empty)
            args: Parsed arguments, e.g. an ``argparse.Namespace``

        Returns:
            New merged configuration with every section present
        """
        merged = copy.deepcopy(config)
        for section in SECTIONS:
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        for arg_name, path, keep_falsy in CLI_OVERRIDES:
            value = getattr(args, arg_name, None)
            if value is None or (not keep_falsy and not value):
                continue
            set_nested(merged, path, value)

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose:
            merged['logging']['level'] = 'DEBUG' if verbose >= 2 else 'INFO'

        return merged

    @classmethod
    def _substitute(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: cls._substitute(value) for key, value in data.items()}
        if isinstance(data, list):
            return [cls._substitute(item) for item in data]
        if isinstance(data, str):
            return cls.ENV_VAR_PATTERN.sub(lambda match: os.getenv(match.group(1), match.group(0)), data)
        return data

    @classmethod
    def _require(cls, config: Dict[str, Any], field: str) -> Any:
        value = get_nested(config, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        unresolved = cls.ENV_VAR_PATTERN.search(value) if isinstance(value, str) else None
        if unresolved:
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Set the {unresolved.group(1)} environment variable or provide a value in the config file."
            )
        return value

    @staticmethod
    def _validate_replacements(replacements: Any) -> None:
        if not isinstance(replacements, dict):
            raise ValueError("export.replacements must be a mapping")
        unknown_keys = set(replacements) - set(REPLACEMENT_KEYS)
        if unknown_keys:
            raise ValueError(
                f"Invalid export.replacements keys: {sorted(unknown_keys)}. Allowed: {list(REPLACEMENT_KEYS)}"
            )
        for key, value in replacements.items():
            if not isinstance(value, str):
                raise ValueError(f"export.replacements.{key} must be a string")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Read a dot-separated path such as ``export.output_directory``; missing keys give ``default``."""
    value = config
    for key in path.split('.'):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


def set_nested(config: dict, path: str, value: Any) -> None:
    """Write a dot-separated path, creating intermediate mappings."""
    *parents, last = path.split('.')
    target = config
    for key in parents:
        target = target.setdefault(key, {})
    target[last] = value


def get_replacements(config: dict) -> NotionReplacements:
    """Whitespace markers from ``export.replacements``, defaults for missing keys."""
    replacements: Optional[dict] = get_nested(config, 'export.replacements')
    return NotionReplacements.from_dict(replacements or {})


__all__ = ['ConfigLoader', 'get_nested', 'set_nested', 'get_replacements']
