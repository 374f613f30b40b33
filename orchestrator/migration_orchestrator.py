"""
Migration orchestrator for coordinating the complete migration pipeline.

This module provides the central coordinator that sequences all migration phases:
Registry → Convert → Export → Report. The registry of every page and attachment
is complete and finalized before the first page converts; conversion can then
run on worker threads because the registry is only read.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from converters import convert_page
from converters.resolver import RegistryPhaseError
from exporters import MarkdownExporter
from fetchers import BaseFetcher
from logger import ProgressTracker, log_section
from models import NotionExport, NotionPage
from orchestrator.migration_report import MigrationReport

logger = logging.getLogger('notion_markdown_migrator.orchestrator')


class MigrationOrchestrator:
    """Central coordinator sequencing all migration phases: Registry → Convert → Export → Report."""

    def __init__(self, config: Dict[str, Any], fetcher: BaseFetcher, logger: Optional[logging.Logger] = None,
                 output_dir: Optional[str] = None, show_progress: bool = False):
        """
        Initialize migration orchestrator.

        Args:
            config: Configuration dictionary
            fetcher: Fetcher reading the Notion export
            logger: Optional logger instance
            output_dir: Optional vault directory override
            show_progress: Display tqdm bars
        """
        self.config = config
        self.fetcher = fetcher
        self.logger = logger or logging.getLogger('notion_markdown_migrator.orchestrator')
        self.output_dir = output_dir
        self.show_progress = show_progress

        migration = config.get('migration', {})
        self.max_workers = max(1, int(migration.get('max_workers', 1) or 1))
        self.dry_run = migration.get('dry_run', False)

        self.export: Optional[NotionExport] = None
        self.exporter: Optional[MarkdownExporter] = None

        self.logger.info(
            f"MigrationOrchestrator initialized with max_workers: {self.max_workers}, dry_run: {self.dry_run}"
        )

    def orchestrate_migration(self) -> Dict[str, Any]:
        """
        Orchestrate the complete migration pipeline.

        Returns:
            Comprehensive report dictionary

        Raises:
            FetcherError: If the export cannot be read
        """
        self.logger.info("Starting migration orchestration")
        start_time = time.time()
        phase_stats: Dict[str, Any] = {}

        self.logger.info("Executing Phase 1: Registry")
        self.export = self._execute_registry()
        phase_stats['registry'] = self.export.get_statistics()

        self.logger.info("Executing Phase 2: Content Conversion")
        phase_stats['content_conversion'] = self._execute_content_conversion(self.export)

        self.logger.info("Executing Phase 3: Markdown Export")
        phase_stats['markdown_export'] = self._execute_markdown_export(self.export)

        migration_duration = time.time() - start_time
        self.logger.info("Generating migration report")
        report = self._generate_report(self.export, phase_stats, migration_duration)
        self.logger.info(f"Migration orchestration complete in {migration_duration:.2f}s")
        return report

    def _execute_registry(self) -> NotionExport:
        """Load the export and register every page and attachment."""
        log_section("Phase 1: Registry")
        export = self.fetcher.fetch_export()
        if not export.resolver.finalized:
            raise RegistryPhaseError("Fetcher returned an export whose registry is not finalized")
        return export

    def _execute_content_conversion(self, export: NotionExport) -> Dict[str, Any]:
        """
        Convert every page, isolating failures per page.

        Results are gathered in input order, so the outcome does not depend on
        the number of workers.
        """
        log_section("Phase 2: Content Conversion")

        stats: Dict[str, Any] = {
            'pages_processed': 0,
            'pages_success': 0,
            'pages_failed': 0,
            'links_unresolved': 0,
            'errors': []
        }

        pages = export.pages
        if not pages:
            self.logger.warning("No pages to convert")
            return stats

        self.logger.info(f"Converting {len(pages)} pages to Markdown with {self.max_workers} worker(s)")

        with ProgressTracker(total_items=len(pages), item_type='pages') as tracker:
            for page, success in zip(pages, self._convert_pages(pages, export)):
                stats['pages_processed'] += 1
                stats['links_unresolved'] += page.conversion_metadata.get('links_unresolved', 0)
                if success:
                    stats['pages_success'] += 1
                else:
                    stats['pages_failed'] += 1
                    stats['errors'].append({
                        'phase': 'content_conversion',
                        'page_id': page.id,
                        'page_title': page.title,
                        'error': page.conversion_metadata.get('error') or 'Unknown error'
                    })
                tracker.increment(success=success, name=page.title)

        self.logger.info(
            f"Phase 2 complete: {stats['pages_success']} success, {stats['pages_failed']} failed"
        )
        return stats

    def _convert_pages(self, pages: List[NotionPage], export: NotionExport) -> List[bool]:
        def convert(page: NotionPage) -> bool:
            return convert_page(page, export.resolver, self.logger)

        progress = dict(total=len(pages), desc="Converting pages", unit="page", disable=not self.show_progress)
        if self.max_workers == 1:
            return [convert(page) for page in tqdm(pages, **progress)]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(tqdm(executor.map(convert, pages), **progress))

    def _execute_markdown_export(self, export: NotionExport) -> Dict[str, Any]:
        """Write notes and attachments to the vault."""
        log_section("Phase 3: Markdown Export")

        try:
            self.exporter = MarkdownExporter(self.config, self.logger, output_dir=self.output_dir,
                                             show_progress=self.show_progress)
            stats = self.exporter.export(export, self.fetcher)

            self.logger.info(
                f"Phase 3 complete: {stats.get('total_pages_exported', 0)} notes exported, "
                f"{stats.get('total_attachments_saved', 0)} attachments saved"
            )
            return stats

        except OSError as e:
            self.logger.error(f"Markdown export failed: {str(e)}", exc_info=True)
            return {
                'failed': True,
                'error': str(e),
                'total_pages_exported': 0,
                'total_attachments_saved': 0
            }

    def _generate_report(self, export: NotionExport, phase_stats: Dict[str, Any],
                         migration_duration: float) -> Dict[str, Any]:
        report_generator = MigrationReport(self.logger)
        report = report_generator.generate_report(export, phase_stats, migration_duration)
        self.logger.info("Migration report generated successfully")
        return report


__all__ = ['MigrationOrchestrator']
