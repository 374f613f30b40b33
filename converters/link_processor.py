"""Link processor for classifying Notion anchors and rewriting them as Obsidian links."""

import logging
import posixpath
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

from bs4 import Tag

from models import AttachmentLink, NotionLink, RelationLink
from .notion_utils import get_notion_id, new_tag, strip_notion_id, strip_parent_directories
from .resolver import NotionResolverInfo

logger = logging.getLogger('notion_markdown_migrator.converters.linkprocessor')


class LinkProcessor:
    """Finds page and attachment references in a Notion page and turns them into wiki-links."""

    def __init__(self, info: NotionResolverInfo, logger: logging.Logger = None):
        """Initialize link processor with the batch resolver."""
        self.logger = logger or logging.getLogger('notion_markdown_migrator.converters.linkprocessor')
        self.info = info
        self.warnings: List[str] = []
        self.stats: Dict[str, Any] = {
            'links_relation': 0,
            'links_attachment': 0,
            'links_unresolved': 0
        }

    def extract_links(self, element: Tag) -> List[NotionLink]:
        """
        Classify every anchor under ``element``, in document order.

        Anchors that are neither page relations nor known attachments are
        external links and are not returned.
        """
        links: List[NotionLink] = []
        attachment_paths = self.info.attachment_paths()

        for a in element.find_all('a'):
            decoded_uri = strip_parent_directories(unquote(a.get('href', '')))
            if not decoded_uri:
                continue

            notion_id = get_notion_id(decoded_uri)
            if notion_id and decoded_uri.endswith('.html'):
                links.append(RelationLink(id=notion_id, a=a))
                continue

            attachment_path = next((path for path in attachment_paths if decoded_uri in path), None)
            if attachment_path:
                links.append(AttachmentLink(path=attachment_path, a=a))

        self.logger.debug(f"Found {len(links)} Notion links")
        return links

    def rewrite_links(self, links: List[NotionLink], embed_attachments: bool) -> None:
        """Replace each classified anchor with a plain span holding its Obsidian link."""
        for link in links:
            if isinstance(link, RelationLink):
                link_content = self._relation_link(link)
            elif isinstance(link, AttachmentLink):
                link_content = self._attachment_link(link, embed_attachments)
            else:
                raise TypeError(f"Unsupported link type: {type(link).__name__}")

            if link_content is None:
                continue
            link.a.replace_with(new_tag('span', link_content))

    def _relation_link(self, link: RelationLink) -> str:
        link_info = self.info.resolve_file(link.id)
        if not link_info:
            self._warn(f"Missing relation data for id: {link.id}")
            _, name = posixpath.split(unquote(link.a.get('href', '')))
            basename, _ = posixpath.splitext(name)
            return f'[[{strip_notion_id(basename)}]]'

        self.stats['links_relation'] += 1
        if not link_info.full_link_path_needed:
            return f'[[{link_info.title}]]'

        # Tables reserve the pipe, so the alias separator has to be escaped there
        separator = '\\|' if link.a.find_parent('table') else '|'
        folder = self.info.get_path_for_file(link_info)
        return f'[[{folder}{link_info.title}{separator}{link_info.title}]]'

    def _attachment_link(self, link: AttachmentLink, embed_attachments: bool) -> Optional[str]:
        attachment_info = self.info.resolve_attachment(link.path)
        if not attachment_info:
            self._warn(f"Missing attachment data for: {link.path}")
            return None

        self.stats['links_attachment'] += 1
        prefix = '!' if embed_attachments else ''
        name = attachment_info.name_with_extension
        if attachment_info.full_link_path_needed:
            return f'{prefix}[[{attachment_info.target_parent_folder}{name}|{name}]]'
        return f'{prefix}[[{name}]]'

    def _warn(self, message: str) -> None:
        self.stats['links_unresolved'] += 1
        self.warnings.append(message)
        self.logger.warning(message)


def convert_html_links_to_urls(element: Tag) -> None:
    """Replace every anchor with its raw href; front matter only takes plain URLs."""
    for a in element.find_all('a'):
        a.replace_with(new_tag('span', a.get('href', '')))


__all__ = ['LinkProcessor', 'convert_html_links_to_urls']
