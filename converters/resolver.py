"""Batch-wide identity registry used to resolve links between exported pages."""

import dataclasses
import logging
import re
from typing import Dict, List, Optional, Set, Union

from models import NotionAttachmentInfo, NotionFileInfo, NotionReplacements
from .notion_utils import split_file_path

logger = logging.getLogger('notion_markdown_migrator.converters.resolver')

FOLDER_TRAILING_PATTERN = re.compile(r'[. ]+$')


class RegistryPhaseError(RuntimeError):
    """Raised when the registry is written after, or read before, it is finalized."""
    pass


class NotionResolverInfo:
    """
    Maps Notion ids to pages and export paths to attachments.

    Phase 1 registers every page and attachment of the export and ends with
    ``finalize()``, which resolves duplicate names. Phase 2 only reads:
    ``resolve_file``, ``resolve_attachment`` and ``get_path_for_file``.
    """

    def __init__(
        self,
        attachment_path: str = '',
        single_line_breaks: bool = False,
        preserve_colored_text: bool = False,
        replacements: Optional[NotionReplacements] = None,
        logger: logging.Logger = None
    ):
        self.logger = logger or logging.getLogger('notion_markdown_migrator.converters.resolver')
        self.attachment_path = attachment_path or ''
        self.single_line_breaks = single_line_breaks
        self.preserve_colored_text = preserve_colored_text
        self.replacements = replacements or NotionReplacements()

        self.ids_to_file_info: Dict[str, NotionFileInfo] = {}
        self.paths_to_attachment_info: Dict[str, NotionAttachmentInfo] = {}
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def register_file(self, notion_id: str, info: NotionFileInfo) -> None:
        """Register a page under its Notion id."""
        self._require_open()
        if notion_id in self.ids_to_file_info:
            self.logger.warning(f"Notion id {notion_id} registered twice, keeping '{info.path}'")
        self.ids_to_file_info[notion_id] = info

    def register_attachment(self, info: NotionAttachmentInfo) -> None:
        """Register an attachment under its normalized export path."""
        self._require_open()
        self.paths_to_attachment_info[info.path] = info

    def finalize(self) -> None:
        """End phase 1: make names unique and freeze the registry."""
        if self._finalized:
            return
        seen_titles = self._clean_duplicate_notes()
        self._clean_duplicate_attachments(seen_titles)
        self._finalized = True
        self.logger.info(
            f"Registry finalized with {len(self.ids_to_file_info)} pages and "
            f"{len(self.paths_to_attachment_info)} attachments"
        )

    def resolve_file(self, notion_id: str) -> Optional[NotionFileInfo]:
        self._require_finalized()
        return self.ids_to_file_info.get(notion_id)

    def resolve_attachment(self, path: str) -> Optional[NotionAttachmentInfo]:
        self._require_finalized()
        return self.paths_to_attachment_info.get(path)

    def attachment_paths(self) -> List[str]:
        """Registered attachment paths, in registration order."""
        return list(self.paths_to_attachment_info)

    def get_path_for_file(self, info: Union[NotionFileInfo, NotionAttachmentInfo]) -> str:
        """
        Output folder of a page or attachment, derived from its ancestors.

        Args:
            info: Registered page or attachment

        Returns:
            Folder path joined with '/' and ending with '/'
        """
        self._require_finalized()
        return self._path_for(info)

    def _path_for(self, info: Union[NotionFileInfo, NotionAttachmentInfo]) -> str:
        path_names = info.path.split('/')
        folders = []
        for parent_id in info.parent_ids:
            parent = self.ids_to_file_info.get(parent_id)
            if parent:
                folder = parent.title
            else:
                # Inline databases have no page of their own; fall back to the folder name
                segment = next((name for name in path_names if parent_id in name), None)
                folder = segment.replace(f' {parent_id}', '') if segment else None
            if not folder:
                continue
            folders.append(FOLDER_TRAILING_PATTERN.sub('', folder))
        return '/'.join(folders) + '/'

    def _clean_duplicate_notes(self) -> Set[str]:
        path_duplicate_checks: Set[str] = set()
        title_duplicate_checks: Set[str] = set()

        for notion_id, info in list(self.ids_to_file_info.items()):
            path = self._path_for(info)
            title = info.title
            if f'{path}{title}' in path_duplicate_checks:
                index = 2
                title = f'{info.title} {index}'
                while f'{path}{title}' in path_duplicate_checks:
                    index += 1
                    title = f'{info.title} {index}'
                self.logger.debug(f"Renamed duplicate page '{info.title}' to '{title}'")

            full_link_path_needed = info.full_link_path_needed or title in title_duplicate_checks
            if title != info.title or full_link_path_needed != info.full_link_path_needed:
                info = dataclasses.replace(info, title=title, full_link_path_needed=full_link_path_needed)
                self.ids_to_file_info[notion_id] = info

            path_duplicate_checks.add(f'{path}{title}')
            title_duplicate_checks.add(title)

        return title_duplicate_checks

    def _clean_duplicate_attachments(self, title_duplicate_checks: Set[str]) -> None:
        path_duplicate_checks: Set[str] = set()

        for path, info in list(self.paths_to_attachment_info.items()):
            parent_folder = self._attachment_folder(info)
            name = info.name_with_extension
            full_link_path_needed = info.full_link_path_needed or name in title_duplicate_checks

            if f'{parent_folder}{name}' in path_duplicate_checks:
                _, basename, extension = split_file_path(info.name_with_extension)
                suffix = f'.{extension}' if extension else ''
                index = 2
                name = f'{basename} {index}{suffix}'
                while f'{parent_folder}{name}' in path_duplicate_checks:
                    index += 1
                    name = f'{basename} {index}{suffix}'
                self.logger.debug(f"Renamed duplicate attachment '{info.name_with_extension}' to '{name}'")

            self.paths_to_attachment_info[path] = dataclasses.replace(
                info,
                name_with_extension=name,
                target_parent_folder=parent_folder,
                full_link_path_needed=full_link_path_needed
            )
            path_duplicate_checks.add(f'{parent_folder}{name}')
            title_duplicate_checks.add(name)

    def _attachment_folder(self, info: NotionAttachmentInfo) -> str:
        attachment_path = self.attachment_path.strip()
        if attachment_path in ('', '/'):
            return ''
        if attachment_path.startswith('./'):
            relative = attachment_path[2:].strip('/')
            folder = self._path_for(info).lstrip('/')
            return f'{folder}{relative}/' if relative else folder
        return attachment_path.strip('/') + '/'

    def _require_open(self) -> None:
        if self._finalized:
            raise RegistryPhaseError("Registry is finalized; no more pages or attachments can be registered")

    def _require_finalized(self) -> None:
        if not self._finalized:
            raise RegistryPhaseError("Registry must be finalized before links are resolved")


__all__ = ['NotionResolverInfo', 'RegistryPhaseError']
