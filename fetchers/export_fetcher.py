"""Export fetcher reading a Notion HTML export from a directory or a .zip archive."""

import logging
import posixpath
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from bs4 import BeautifulSoup
from tqdm import tqdm

from config_loader import get_nested, get_replacements
from converters.notion_utils import get_notion_id, parse_parent_ids, sanitize_file_name
from converters.property_parser import parse_timestamp
from converters.resolver import NotionResolverInfo
from models import NotionAttachmentInfo, NotionExport, NotionFileInfo, NotionPage
from .base_fetcher import BaseFetcher, FetcherError

logger = logging.getLogger('notion_markdown_migrator.fetcher.export')

PAGE_EXTENSION = '.html'
UNTITLED = 'Untitled'


def build_resolver_info(config: Dict[str, Any], logger: logging.Logger = None) -> NotionResolverInfo:
    """Create an empty batch resolver from the ``export`` settings."""
    return NotionResolverInfo(
        attachment_path=get_nested(config, 'export.attachment_path', '') or '',
        single_line_breaks=get_nested(config, 'export.single_line_breaks', False),
        preserve_colored_text=get_nested(config, 'export.preserve_colored_text', False),
        replacements=get_replacements(config),
        logger=logger
    )


class NotionExportFetcher(BaseFetcher):
    """Loads every page and attachment of a Notion export and registers them (phase 1)."""

    def __init__(self, config: Dict[str, Any], logger=None, show_progress: bool = False):
        """
        Initialize export fetcher with configuration.

        Args:
            config: Configuration dictionary with notion.export_path
            logger: Logger instance (optional)
            show_progress: Display a tqdm bar while scanning
        """
        super().__init__(config, logger)

        export_path = get_nested(config, 'notion.export_path')
        if not export_path:
            raise FetcherError("notion.export_path is required")

        self.export_path = Path(export_path).resolve()
        if not self.export_path.exists():
            raise FetcherError(f"Notion export not found: {self.export_path}")

        self.is_archive = self.export_path.is_file()
        if self.is_archive and not zipfile.is_zipfile(self.export_path):
            raise FetcherError(f"Notion export is not a zip archive: {self.export_path}")

        self.show_progress = show_progress
        self.logger.info(f"Initialized NotionExportFetcher for path: {self.export_path}")

    def fetch_export(self) -> NotionExport:
        """
        Read the export, register every page and attachment, then finalize the registry.

        Returns:
            NotionExport with pages in path order and a finalized resolver

        Raises:
            FetcherError: If the export cannot be read
        """
        info = build_resolver_info(self.config, self.logger)
        export = NotionExport(resolver=info)
        export.metadata['export_path'] = str(self.export_path)

        try:
            if self.is_archive:
                with zipfile.ZipFile(self.export_path) as archive:
                    self._load_entries(self._archive_entries(archive), export)
            else:
                self._load_entries(self._directory_entries(), export)
        except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as e:
            raise FetcherError(f"Failed to read Notion export {self.export_path}: {str(e)}") from e

        info.finalize()

        export.metadata['total_pages_fetched'] = len(export.pages)
        export.metadata['total_attachments_fetched'] = len(export.attachment_sources)
        self.logger.info(
            f"Loaded {len(export.pages)} pages and {len(export.attachment_sources)} attachments"
        )
        return export

    def read_attachment(self, source: Any) -> bytes:
        try:
            if self.is_archive:
                with zipfile.ZipFile(self.export_path) as archive:
                    return archive.read(source)
            return Path(source).read_bytes()
        except (OSError, KeyError, zipfile.BadZipFile) as e:
            raise FetcherError(f"Failed to read attachment {source}: {str(e)}") from e

    def _directory_entries(self) -> Iterator[Tuple[str, Any, Any]]:
        """Yield (export path, attachment source, reader) for every file, in path order."""
        files = sorted(p for p in self.export_path.rglob('*') if p.is_file())
        for file_path in files:
            relative = file_path.relative_to(self.export_path).as_posix()
            yield relative, str(file_path), lambda p=file_path: p.read_text(encoding='utf-8')

    def _archive_entries(self, archive: zipfile.ZipFile) -> Iterator[Tuple[str, Any, Any]]:
        names = sorted(name for name in archive.namelist() if not name.endswith('/'))
        for name in names:
            yield name, name, lambda n=name: archive.read(n).decode('utf-8')

    def _load_entries(self, entries: Iterator[Tuple[str, Any, Any]], export: NotionExport) -> None:
        entries = list(entries)
        for path, source, read_text in tqdm(entries, desc="Scanning export", unit="file",
                                            disable=not self.show_progress):
            if path.lower().endswith(PAGE_EXTENSION):
                page = self._register_page(path, read_text(), export.resolver)
                if page is not None:
                    export.add_page(page)
            else:
                self._register_attachment(path, export.resolver)
                export.attachment_sources[path] = source

    def _register_page(self, path: str, html_content: str, info: NotionResolverInfo) -> Optional[NotionPage]:
        _, name = posixpath.split(path)
        notion_id = get_notion_id(name)
        if not notion_id:
            self.logger.warning(f"Skipping HTML file without Notion id: {path}")
            return None

        soup = BeautifulSoup(html_content, 'lxml')
        title_el = soup.find('title')
        title = sanitize_file_name(title_el.get_text() if title_el else '') or UNTITLED

        info.register_file(notion_id, NotionFileInfo(
            title=title,
            parent_ids=parse_parent_ids(path),
            path=path,
            ctime=self._property_timestamp(soup, 'created_time'),
            mtime=self._property_timestamp(soup, 'last_edited_time'),
        ))
        self.logger.debug(f"Registered page '{title}' ({notion_id})")
        return NotionPage(id=notion_id, title=title, path=path, content=html_content)

    def _register_attachment(self, path: str, info: NotionResolverInfo) -> None:
        _, name = posixpath.split(path)
        info.register_attachment(NotionAttachmentInfo(
            path=path,
            parent_ids=parse_parent_ids(path),
            name_with_extension=sanitize_file_name(name),
        ))
        self.logger.debug(f"Registered attachment {path}")

    @staticmethod
    def _property_timestamp(soup: BeautifulSoup, property_type: str):
        time = soup.select_one(f'table.properties tr.property-row-{property_type} time')
        if time is None:
            return None
        return parse_timestamp(time.get_text().replace('@', '').strip())


__all__ = ['NotionExportFetcher', 'build_resolver_info']
