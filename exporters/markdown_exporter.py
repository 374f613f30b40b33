"""Markdown exporter writing converted Notion pages and their attachments into an Obsidian vault."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from tqdm import tqdm

from fetchers import FetcherError
from logger import ProgressTracker
from models import NotionExport, NotionFileInfo, NotionPage

NOTE_EXTENSION = '.md'


class MarkdownExporter:
    """
    Writes a converted NotionExport to local files.

    This exporter:
    1. Places each note at ``<vault>/<folder>/<title>.md`` using the resolver's folder path
    2. Applies the page's Notion timestamps to the written file
    3. Copies every attachment to its resolved target folder
    """

    def __init__(self, config: Dict[str, Any], logger: Optional[logging.Logger] = None,
                 output_dir: Optional[str] = None, show_progress: bool = False):
        """
        Initialize the markdown exporter.

        Args:
            config: Configuration dictionary with export settings
            logger: Logger instance
            output_dir: Optional output directory override (takes precedence over config)
            show_progress: Display tqdm bars while writing
        """
        self.config = config
        self.logger = logger or logging.getLogger('notion_markdown_migrator.exporters.markdown_exporter')

        export_config = config.get('export', {})
        self.output_directory = Path(output_dir or export_config.get('output_directory', './obsidian-vault'))
        self.dry_run = config.get('migration', {}).get('dry_run', False)
        self.show_progress = show_progress

        self.stats = {
            'total_pages_exported': 0,
            'total_pages_skipped': 0,
            'total_attachments_saved': 0,
            'total_attachments_failed': 0,
            'total_attachments_size_bytes': 0,
            'total_errors': 0
        }

        self.logger.info("MarkdownExporter initialized")

    def export(self, export: NotionExport, fetcher) -> Dict[str, Any]:
        """
        Write every successfully converted page and every attachment.

        Args:
            export: Converted batch with a finalized resolver
            fetcher: Fetcher able to read attachment bytes from the export

        Returns:
            Statistics dictionary with export results
        """
        self.logger.info(f"Starting markdown export to {self.output_directory}")

        if not self.dry_run:
            self.output_directory.mkdir(parents=True, exist_ok=True)

        with ProgressTracker(total_items=len(export.pages), item_type='notes') as tracker:
            for page in tqdm(export.pages, desc="Writing notes", unit="note", disable=not self.show_progress):
                if page.conversion_metadata.get('conversion_status') != 'success':
                    self.stats['total_pages_skipped'] += 1
                    continue
                try:
                    self._export_page(page, export)
                    tracker.increment(success=True)
                except OSError as e:
                    self.logger.error(f"Failed to write page '{page.title}' (ID: {page.id}): {e}")
                    self.stats['total_errors'] += 1
                    tracker.increment(success=False, name=page.title)

        with ProgressTracker(total_items=len(export.attachment_sources), item_type='attachments') as tracker:
            for path, source in tqdm(export.attachment_sources.items(), desc="Copying attachments",
                                     unit="file", disable=not self.show_progress):
                success = self._export_attachment(path, source, export, fetcher)
                tracker.increment(success=success, name=path)

        self._log_export_summary()
        return self.stats.copy()

    def get_note_path(self, info: NotionFileInfo, export: NotionExport) -> Path:
        """Vault path of a page's note."""
        folder = export.resolver.get_path_for_file(info).strip('/')
        return self.output_directory / folder / f'{info.title}{NOTE_EXTENSION}'

    def _export_page(self, page: NotionPage, export: NotionExport) -> None:
        info = export.resolver.resolve_file(page.id)
        note_path = self.get_note_path(info, export)
        self.logger.debug(f"Exporting page '{info.title}' (ID: {page.id}) to {note_path}")

        if self.dry_run:
            self.stats['total_pages_exported'] += 1
            return

        note_path.parent.mkdir(parents=True, exist_ok=True)
        note_path.write_text(page.markdown_content or '', encoding='utf-8')
        self._apply_timestamps(note_path, info)
        self.stats['total_pages_exported'] += 1

    def _export_attachment(self, path: str, source: Any, export: NotionExport, fetcher) -> bool:
        info = export.resolver.resolve_attachment(path)
        target = self.output_directory / info.target_parent_folder / info.name_with_extension

        if self.dry_run:
            self.stats['total_attachments_saved'] += 1
            return True

        try:
            data = fetcher.read_attachment(source)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except (OSError, FetcherError) as e:
            self.logger.error(f"Failed to copy attachment {path}: {e}")
            self.stats['total_attachments_failed'] += 1
            self.stats['total_errors'] += 1
            return False

        self.stats['total_attachments_saved'] += 1
        self.stats['total_attachments_size_bytes'] += len(data)
        return True

    def _apply_timestamps(self, note_path: Path, info: NotionFileInfo) -> None:
        # Only the modification time can be set portably; fall back to creation time
        timestamp = info.mtime or info.ctime
        if timestamp is None:
            return
        seconds = timestamp.timestamp()
        os.utime(note_path, (seconds, seconds))

    def _log_export_summary(self) -> None:
        """Log final export statistics."""
        self.logger.info("=" * 60)
        self.logger.info("MARKDOWN EXPORT SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Notes exported: {self.stats['total_pages_exported']}")
        if self.stats['total_pages_skipped'] > 0:
            self.logger.info(f"Notes skipped (failed conversion): {self.stats['total_pages_skipped']}")
        self.logger.info(f"Attachments saved: {self.stats['total_attachments_saved']}")
        self.logger.info(f"Attachments failed: {self.stats['total_attachments_failed']}")
        self.logger.info(f"Total attachments size: {self._format_bytes(self.stats['total_attachments_size_bytes'])}")
        self.logger.info(f"Total errors: {self.stats['total_errors']}")
        self.logger.info(f"Output directory: {self.output_directory}")
        self.logger.info("=" * 60)

    def _format_bytes(self, bytes_val: float) -> str:
        """Format bytes to human-readable string."""
        if bytes_val == 0:
            return "0 B"

        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024.0:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024.0
        return f"{bytes_val:.1f} TB"


__all__ = ['MarkdownExporter']
