"""
Migration report: per-phase statistics folded into one summary.

The report is a plain dictionary so it can be printed, asserted on in tests
and dumped to JSON unchanged.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from logger import format_elapsed
from models import NotionExport

MAX_CONSOLE_ERRORS = 10
RULE = "=" * 60
THIN_RULE = "-" * 60


class MigrationReport:
    """Builds, prints and saves the report of one migration run."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('notion_markdown_migrator.orchestrator.report')

    def generate_report(
        self,
        export: NotionExport,
        phase_stats: Dict[str, Any],
        migration_duration: float
    ) -> Dict[str, Any]:
        """
        Fold phase statistics and page outcomes into a report.

        Args:
            export: The migrated batch
            phase_stats: Statistics keyed by phase name
            migration_duration: Wall time of the run in seconds

        Returns:
            Dictionary with ``summary``, ``phases``, ``errors``, ``warnings``,
            ``pages`` and ``timestamp``
        """
        errors = self._collect_errors(phase_stats)
        report = {
            'summary': self._summarize(export, phase_stats, migration_duration, errors),
            'phases': phase_stats,
            'errors': errors,
            'warnings': self._collect_warnings(export),
            'pages': [page.to_dict() for page in export.pages],
            'timestamp': datetime.now().isoformat()
        }
        self.logger.info(
            f"Report: {report['summary']['pages']} pages, {len(errors)} errors, "
            f"{len(report['warnings'])} unresolved references"
        )
        return report

    def _summarize(self, export: NotionExport, phase_stats: Dict[str, Any], duration: float,
                   errors: List[Dict[str, Any]]) -> Dict[str, Any]:
        conversion = phase_stats.get('content_conversion', {})
        written = phase_stats.get('markdown_export', {})
        pages = len(export.pages)

        summary = {
            'export_path': export.metadata.get('export_path'),
            'pages': pages,
            'attachments': len(export.attachment_sources),
            'pages_converted': conversion.get('pages_success', 0),
            'pages_failed': conversion.get('pages_failed', 0),
            'links_unresolved': conversion.get('links_unresolved', 0),
            'pages_exported': written.get('total_pages_exported', 0),
            'attachments_saved': written.get('total_attachments_saved', 0),
            'duration_seconds': duration,
            'duration_formatted': format_elapsed(duration),
            # Export failures are counted, not listed per file
            'total_errors': len(errors) + written.get('total_errors', 0) + (1 if written.get('failed') else 0)
        }
        if pages:
            summary['success_rate'] = summary['pages_converted'] / pages
        return summary

    @staticmethod
    def _collect_errors(phase_stats: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {**error, 'phase': phase_name}
            for phase_name, stats in phase_stats.items()
            if isinstance(stats, dict)
            for error in stats.get('errors', [])
        ]

    @staticmethod
    def _collect_warnings(export: NotionExport) -> List[Dict[str, Any]]:
        return [
            {'page_id': page.id, 'page_title': page.title, 'warning': message}
            for page in export.pages
            for message in page.conversion_metadata.get('conversion_warnings', [])
        ]

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """Render the report as the block printed at the end of a CLI run."""
        summary = report.get('summary', {})
        phases = report.get('phases', {})
        lines = [RULE, "MIGRATION REPORT", RULE, "", "Summary:"]

        lines.append(f"  Export:      {summary.get('export_path', 'unknown')}")
        lines.append(f"  Pages:       {summary.get('pages', 0)}")
        lines.append(f"  Attachments: {summary.get('attachments', 0)}")
        lines.append(f"  Duration:    {summary.get('duration_formatted', '0s')}")
        if 'success_rate' in summary:
            lines.append(f"  Success:     {summary['success_rate'] * 100:.1f}%")
        if summary.get('links_unresolved'):
            lines.append(f"  Unresolved:  {summary['links_unresolved']} links")

        lines += ["", "Phase Breakdown:", THIN_RULE]
        conversion = phases.get('content_conversion')
        if conversion is not None:
            lines.append(
                f"  Conversion: {conversion.get('pages_success', 0)} converted, "
                f"{conversion.get('pages_failed', 0)} failed"
            )
        written = phases.get('markdown_export')
        if written is not None:
            status = " (FAILED)" if written.get('failed') else ""
            lines.append(
                f"  Export:     {written.get('total_pages_exported', 0)} notes, "
                f"{written.get('total_attachments_saved', 0)} attachments{status}"
            )

        errors = report.get('errors', [])
        if errors:
            lines += ["", f"Errors ({len(errors)}):", THIN_RULE]
            for error in errors[:MAX_CONSOLE_ERRORS]:
                lines.append(
                    f"  [{error.get('phase')}] {error.get('page_title', '')} "
                    f"({error.get('page_id', '')}): {error.get('error')}"
                )
            if len(errors) > MAX_CONSOLE_ERRORS:
                lines.append(f"  ... and {len(errors) - MAX_CONSOLE_ERRORS} more")

        lines += ["", RULE]
        return "\n".join(lines)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """Write the report as JSON; a write failure is logged, not raised."""
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)
        except OSError as e:
            self.logger.error(f"Failed to write JSON report to {filepath}: {str(e)}")
            return
        self.logger.info(f"JSON report written to {filepath}")


__all__ = ['MigrationReport']
