"""Converters package for Notion HTML export to Obsidian Markdown conversion."""

import logging

from .html_cleaner import HtmlCleaner
from .link_processor import LinkProcessor
from .markdown_converter import MarkdownConverter
from .property_parser import PropertyParser, UnknownPropertyTypeError
from .resolver import NotionResolverInfo, RegistryPhaseError

logger = logging.getLogger('notion_markdown_migrator.converters')


def convert_page(page, info=None, logger=None):
    """
    Convenience function to convert a NotionPage from HTML to Markdown.

    This orchestrates the full conversion pipeline:
    1. Link rewriting (Notion hrefs become wiki-links through the resolver)
    2. Property table parsing into YAML front matter
    3. HTML normalization of Notion-specific markup
    4. Markdown generation using markdownify
    5. Post-processing for Obsidian compatibility
    6. Metadata tracking in page.conversion_metadata

    Args:
        page: NotionPage object with HTML content in page.content
        info: Finalized NotionResolverInfo for the batch
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        bool: True if conversion succeeded, False otherwise

    Example:
        >>> from converters import convert_page
        >>> from models import NotionPage
        >>> page = NotionPage(id='...', title='Test', path='Test ....html', content='<html>...')
        >>> success = convert_page(page, info)
        >>> if success:
        ...     print(page.markdown_content)
    """
    if logger is None:
        logger = logging.getLogger('notion_markdown_migrator.converters')

    converter = MarkdownConverter(info=info, logger=logger)
    return converter.convert_page(page)


__all__ = [
    'convert_page',
    'MarkdownConverter',
    'HtmlCleaner',
    'LinkProcessor',
    'PropertyParser',
    'NotionResolverInfo',
    'RegistryPhaseError',
    'UnknownPropertyTypeError'
]
