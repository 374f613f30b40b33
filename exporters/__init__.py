"""Markdown export package writing converted Notion pages into an Obsidian vault.

Configuration Referenced:
- export.output_directory: Vault root for written notes
- export.attachment_path: Attachment folder inside the vault (resolved per attachment)
- migration.dry_run: Count without writing
"""

from .markdown_exporter import MarkdownExporter

__all__ = [
    'MarkdownExporter'
]
