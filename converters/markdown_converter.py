"""Markdown converter orchestrator turning a Notion HTML page into an Obsidian note."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import yaml
from bs4 import BeautifulSoup, Tag
from markdownify import ATX, MarkdownConverter as MarkdownifyConverter

from models import NotionPage
from .html_cleaner import HtmlCleaner
from .link_processor import LinkProcessor, convert_html_links_to_urls
from .post_processor import post_process
from .property_parser import PropertyParser
from .resolver import NotionResolverInfo

logger = logging.getLogger('notion_markdown_migrator.converters.markdownconverter')

CODE_LANGUAGE_PREFIX = 'language-'


def serialize_front_matter(front_matter: Dict[str, Any]) -> str:
    """Render front matter as a YAML block between ``---`` fences; empty mapping gives ''."""
    if not front_matter:
        return ''
    body = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True, default_flow_style=False)
    return f'---\n{body}---\n'


class MarkdownConverter(MarkdownifyConverter):
    """
    Converts exported Notion pages to Obsidian Markdown.

    This class extends markdownify.MarkdownConverter to provide:
    - Link rewriting to wiki-links through the batch resolver
    - Property tables as YAML front matter
    - Notion markup normalization before serialization
    - Obsidian callouts, colored spans and line breaks
    """

    def __init__(self, info: NotionResolverInfo = None, logger: logging.Logger = None, **kwargs):
        """Initialize markdown converter with the batch resolver and logger."""
        markdownify_options = {
            'heading_style': ATX,
            'bullets': '-',
            'escape_asterisks': False,
            'escape_underscores': False,
            'escape_misc': False,
            'autolinks': False,
            'wrap': False,
            'code_language_callback': self._code_language,
        }
        markdownify_options.update(kwargs)
        super().__init__(**markdownify_options)

        self.logger = logger or logging.getLogger('notion_markdown_migrator.converters.markdownconverter')
        self.info = info or NotionResolverInfo()

        self.html_cleaner = HtmlCleaner(self.info.replacements, self.info.preserve_colored_text, self.logger)
        self.property_parser = PropertyParser(self.logger)

    def convert_page(self, page: NotionPage) -> bool:
        """
        Convert a NotionPage from HTML to Markdown with full pipeline.

        Args:
            page: NotionPage object with HTML content in page.content

        Returns:
            bool: True if conversion succeeded, False otherwise
        """
        self.logger.info(f"Converting page {page.id} to markdown")
        link_processor = LinkProcessor(self.info, self.logger)

        try:
            # Step 1: Parse HTML
            soup = BeautifulSoup(page.content, 'lxml')
            body = soup.select_one('div.page-body')
            if body is None:
                raise ValueError(f"No page body found in '{page.path}'")

            # Step 2: Rewrite links in the body, embedding attachments
            links = link_processor.extract_links(body)
            link_processor.rewrite_links(links, embed_attachments=True)

            # Step 3: Properties become front matter
            front_matter = self._parse_front_matter(soup, link_processor)

            # Step 4: Normalize and convert
            self.html_cleaner.clean(body)
            markdown = self._convert_to_markdown(body)

            # Step 5: Post-process
            markdown = post_process(markdown, self.info.single_line_breaks)

            description = soup.select_one('p[class*=page-description]')
            if description is not None and description.get_text():
                markdown = description.get_text() + '\n\n' + markdown

            page.markdown_content = serialize_front_matter(front_matter) + markdown
            self._update_conversion_metadata(page, link_processor, len(front_matter))

            self.logger.info(f"Page {page.id} conversion successful")
            return True

        except Exception as e:
            self.logger.error(f"Conversion failed for page {page.id}: {str(e)}")
            self._update_failed_conversion_metadata(page, link_processor, str(e))
            return False

    def convert_html(self, html_content: str) -> str:
        """Convert a standalone page body fragment to markdown, without link rewriting."""
        soup = BeautifulSoup(html_content, 'lxml')
        body = soup.select_one('div.page-body') or soup.body or soup
        self.html_cleaner.clean(body)
        return post_process(self._convert_to_markdown(body), self.info.single_line_breaks)

    def _parse_front_matter(self, soup: BeautifulSoup, link_processor: LinkProcessor) -> Dict[str, Any]:
        properties = soup.select_one('table.properties > tbody')
        if properties is None:
            return {}

        property_links = link_processor.extract_links(properties)
        link_processor.rewrite_links(property_links, embed_attachments=False)
        # YAML only takes raw URLs
        convert_html_links_to_urls(properties)

        return self.property_parser.parse_properties(properties)

    def _convert_to_markdown(self, body: Tag) -> str:
        """Convert the normalized body using the subclassed converter."""
        self.logger.debug("Converting to markdown")
        markdown = self.convert_soup(body).strip('\n')
        return markdown + '\n' if markdown else ''

    def _update_conversion_metadata(self, page: NotionPage, link_processor: LinkProcessor,
                                    properties_count: int) -> None:
        """Update page conversion metadata with conversion statistics."""
        page.conversion_metadata.update({
            'conversion_status': 'success',
            'properties_count': properties_count,
            'conversion_warnings': list(link_processor.warnings),
            'conversion_timestamp': datetime.utcnow().isoformat(),
            'error': None,
            **link_processor.stats
        })

    def _update_failed_conversion_metadata(self, page: NotionPage, link_processor: LinkProcessor,
                                           error_message: str) -> None:
        """Update metadata for failed conversions."""
        page.conversion_metadata.update({
            'conversion_status': 'failed',
            'conversion_warnings': list(link_processor.warnings),
            'conversion_timestamp': datetime.utcnow().isoformat(),
            'error': error_message,
            **link_processor.stats
        })

    @staticmethod
    def _code_language(el: Tag) -> Optional[str]:
        code = el.find('code')
        for cls in (code.get('class', []) if code else []):
            if cls.startswith(CODE_LANGUAGE_PREFIX):
                return cls[len(CODE_LANGUAGE_PREFIX):].lower().replace(' ', '')
        return None

    def convert_blockquote(self, el, text, parent_tags=None, **kwargs):
        """Handle blockquotes, with callouts rendered as Obsidian admonitions."""
        callout_type = el.get('data-callout', '')
        if not callout_type:
            return super().convert_blockquote(el, text, parent_tags=parent_tags or set())

        title = el.get('data-callout-title', '')
        header = f'> [!{callout_type}] {title}'.rstrip()
        lines = [f'> {line}' for line in text.strip('\n').split('\n') if line.strip()]
        callout = '\n'.join([header] + lines)

        trailing = '\n\n' if el.get('data-callout-separated') else '\n'
        return '\n\n' + callout + trailing

    def convert_br(self, el, text, parent_tags=None, **kwargs):
        """Line breaks are plain newlines, and <br> inside table cells."""
        parent_tags = parent_tags or set()
        if 'td' in parent_tags or 'th' in parent_tags:
            return '<br>' + text
        if '_inline' in parent_tags:
            return text + ' ' if text else ' '
        return '\n' + text

    def convert_div(self, el, text, parent_tags=None, **kwargs):
        """Handle divs without trimming Notion's encoded leading spaces."""
        if '_inline' in (parent_tags or set()):
            return ' ' + text.strip(' \t\r\n') + ' '
        text = text.strip(' \t\r\n')
        return '\n\n%s\n\n' % text if text else ''

    def convert_hr(self, el, text, parent_tags=None, **kwargs):
        """A leading rule would read as a front matter fence, nested ones break lists."""
        if el.get('data-trailing-break'):
            return '\n\n<hr>\n\n'
        if el.get('data-nested'):
            return '\n<hr>\n'
        return '\n\n---\n\n'

    def convert_span(self, el, text, parent_tags=None, **kwargs):
        """Handle span elements, keeping Notion colors as inline HTML."""
        style = el.get('style', '')
        if not style.startswith('color: rgb('):
            return text

        classes = ' '.join(el.get('class', []))
        class_part = f' class="{classes}"' if classes else ''
        return f'<span{class_part} style="{style}">{text}</span>'


__all__ = ['MarkdownConverter', 'serialize_front_matter']
