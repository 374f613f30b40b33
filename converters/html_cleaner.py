"""HTML cleaner normalizing Notion export markup before Markdown conversion.

Each rule is a plain function over the page body. ``HtmlCleaner.clean`` runs
them in a fixed order; later rules rely on the shapes earlier ones leave
behind (newlines become <br> before spaces are encoded, lists are merged
before emphasis is split across line breaks).
"""

import html
import logging
import re
from typing import List, Optional

from bs4 import NavigableString, Tag

from models import NotionReplacements
from .html_list_fixer import fix_notion_lists
from .notion_utils import hoist_children, new_tag
from .property_parser import fix_notion_dates

logger = logging.getLogger('notion_markdown_migrator.converters.htmlcleaner')

# Notion's default colors
COLOR_TO_RGB = {
    'gray': 'rgb(120, 119, 116)',
    'brown': 'rgb(159, 107, 83)',
    'orange': 'rgb(217, 115, 13)',
    'yellow': 'rgb(203, 145, 47)',
    'teal': 'rgb(68, 131, 97)',
    'blue': 'rgb(51, 126, 169)',
    'purple': 'rgb(144, 101, 176)',
    'pink': 'rgb(193, 76, 138)',
    'red': 'rgb(212, 76, 71)',
}

FONT_SIZE_TO_HEADINGS = {
    '1.875em': 'h1',
    '1.5em': 'h2',
    '1.25em': 'h3',
}

# Containers whose whitespace-only text is markup formatting, not content
STRUCTURAL_TAGS = {
    'html', 'body', 'div', 'article', 'header', 'section', 'figure', 'details',
    'blockquote', 'ul', 'ol', 'table', 'thead', 'tbody', 'tfoot', 'tr', 'colgroup'
}

CALLOUT_CLASS_PATTERN = re.compile(r'callout|bookmark')
FIRST_SENTENCE_PATTERN = re.compile(r'^[^.?!\n]*[.?!]?')
HIGHLIGHT_PATTERN = re.compile(r'highlight-(\w+)')
VALID_URL_PATTERN = re.compile(r'^(https?://|www\.)')
EM_SPACE = '\u2003'


def replace_nested_tags(body: Tag, tag: str) -> None:
    """Flatten emphasis nested inside emphasis of the same kind."""
    for el in body.find_all(tag):
        if el.parent is None or el.parent.name == tag:
            continue
        nested = el.find(tag)
        while nested:
            nested.unwrap()
            nested = el.find(tag)


def strip_to_sentence(paragraph: str) -> str:
    match = FIRST_SENTENCE_PATTERN.match(paragraph)
    return match.group(0) if match else ''


def is_callout(element: Optional[Tag]) -> bool:
    if not isinstance(element, Tag):
        return False
    return bool(CALLOUT_CLASS_PATTERN.search(' '.join(element.get('class', []))))


def make_callout(element: Tag, callout_type: str, title: str, lines: List[str]) -> Tag:
    """Build a callout blockquote rendered by the converter as an Obsidian admonition."""
    blockquote = new_tag('blockquote')
    blockquote['class'] = ['callout']
    blockquote['data-callout'] = callout_type
    if title:
        blockquote['data-callout-title'] = title
    if is_callout(element.find_next_sibling()):
        # separate consecutive callouts with an empty line
        blockquote['data-callout-separated'] = 'true'
    for line in lines:
        blockquote.append(new_tag('p', line))
    return blockquote


def fix_notion_embeds(body: Tag) -> None:
    """Notion embeds are a box with images and description, we simplify for Obsidian."""
    for embed in body.select('a.bookmark.source'):
        link = embed.get('href', '')
        title_el = embed.select_one('div.bookmark-title')
        description_el = embed.select_one('div.bookmark-description')
        title = title_el.get_text() if title_el else ''
        description = strip_to_sentence(description_el.get_text() if description_el else '')
        embed.replace_with(make_callout(embed, 'info', title, [description, f'[{link}]({link})']))


def fix_notion_callouts(body: Tag) -> None:
    for callout in body.select('figure.callout'):
        children = callout.find_all(True, recursive=False)
        description = children[1].get_text() if len(children) > 1 else ''
        callout.replace_with(make_callout(callout, 'important', '', [description]))


def strip_link_formatting(body: Tag) -> None:
    for link in body.find_all('link'):
        link.string = link.get_text()


def encode_newlines(body: Tag, replacements: NotionReplacements) -> None:
    """Turn literal newlines into line breaks, leaving code blocks alone."""
    marker = html.unescape(replacements.shift_enter)

    for text_node in body.find_all(string=True):
        if type(text_node) is not NavigableString or '\n' not in text_node:
            continue
        if text_node.find_parent(['code', 'pre']):
            continue
        if not text_node.strip() and text_node.parent.name in STRUCTURAL_TAGS:
            continue

        nodes = []
        for i, part in enumerate(str(text_node).split('\n')):
            if i > 0:
                if marker:
                    nodes.append(NavigableString(marker))
                nodes.append(new_tag('br'))
            if part:
                nodes.append(NavigableString(part))
        text_node.replace_with(*nodes)

    # Since <br> is ignored in code blocks, we replace with newlines
    for block in body.find_all('code'):
        for br in block.find_all('br'):
            br.replace_with(NavigableString('\n'))


def _encode_line_spaces(text: str, leading_marker: str) -> str:
    lines = text.split('\n')
    for i, line in enumerate(lines):
        count = len(line) - len(line.lstrip(' '))
        if count > 0:
            line = leading_marker * count + line[count:]
        lines[i] = line.replace('\t', EM_SPACE)
    return '\n'.join(lines)


def encode_spaces(body: Tag, replacements: NotionReplacements) -> None:
    """Notion shows spaces as written, so hard-code them before conversion to Markdown."""
    leading_marker = html.unescape(replacements.leading_spaces)
    indented_marker = html.unescape(replacements.indented_blocks)

    for child in body.find_all(True, recursive=False):
        if child.name in ('a', 'code', 'pre'):
            continue

        if 'indented' in child.get('class', []):
            first_child = child.find(True, recursive=False) or child
            first_text = first_child.contents[0] if first_child.contents else None
            # A marker-only text node would be dropped as block whitespace
            if type(first_text) is NavigableString:
                first_text.replace_with(NavigableString(indented_marker + str(first_text)))
            else:
                first_child.insert(0, NavigableString(indented_marker))

        if child.find(True) is None and child.get_text():
            child.string = _encode_line_spaces(child.get_text(), leading_marker)
        else:
            encode_spaces(child, replacements)


def fix_equations(body: Tag) -> None:
    for katex in body.select('.katex'):
        annotation = katex.find('annotation')
        if annotation is None:
            continue
        annotation = annotation.extract()
        annotation.string = f'${annotation.get_text()}$'
        katex.replace_with(annotation)


def replace_elements_with_children(body: Tag, selector: str) -> None:
    for el in body.select(selector):
        if el.parent is not None:
            hoist_children(el)


def fix_toggle_headings(body: Tag) -> None:
    for summary in body.find_all('summary'):
        style = summary.get('style', '')
        heading = next(
            (level for size, level in FONT_SIZE_TO_HEADINGS.items() if size in style),
            None
        )
        if heading:
            summary.replace_with(new_tag(heading, summary.get_text()))
        else:
            hoist_children(summary)


def fix_nested_hr(body: Tag) -> None:
    """HRs can show up in nested blocks in Notion; keep their spacing consistent."""
    first = body.find(True, recursive=False)
    if first is not None and first.name == 'hr':
        first['data-trailing-break'] = 'true'
    for hr in body.find_all('hr'):
        if hr.parent is not None and hr.parent is not body:
            hr.replace_with(new_tag('hr', **{'data-nested': 'true'}))


def _replace_checkbox(checkbox: Tag, token: str) -> None:
    following = checkbox.next_sibling
    if type(following) is NavigableString and following[:1].isspace():
        remainder = following.lstrip()
        # An empty sibling would let the serializer strip the token's space
        if remainder:
            following.replace_with(NavigableString(remainder))
        else:
            following.extract()
    checkbox.replace_with(NavigableString(token))


def add_checkboxes(body: Tag) -> None:
    for checkbox in body.select('.checkbox.checkbox-on'):
        _replace_checkbox(checkbox, '[x] ')
    for checkbox in body.select('.checkbox.checkbox-off'):
        _replace_checkbox(checkbox, '[ ] ')


def replace_table_of_contents(body: Tag) -> None:
    for link in body.select('a[href^="#"]'):
        link['href'] = '#' + link.get_text().strip().replace(' ', '%20')


def format_databases(body: Tag) -> None:
    # Notion includes user SVGs which aren't relevant to Markdown, so change them to pure text
    for user in body.select('span.user'):
        user.string = user.get_text()

    for checkbox in body.select('td div[class*=checkbox]'):
        checked = 'checkbox-on' in checkbox.get('class', [])
        checkbox.replace_with(new_tag('span', 'X' if checked else ''))

    for select in body.select('table span[class*=selected-value]'):
        siblings = select.parent.find_all(True, recursive=False) if select.parent else []
        if siblings and siblings[-1] is select:
            continue
        select.string = select.get_text() + ', '

    # Table cells can't carry wiki-links safely, so keep only real URLs as links
    for a in body.select('table a[href]'):
        if not VALID_URL_PATTERN.match(a['href']):
            a.replace_with(new_tag('span', a.get_text()))


def _match_parent(el: Tag, name: Optional[str] = None, style: Optional[str] = None) -> Optional[Tag]:
    for parent in el.parents:
        if name and parent.name == name:
            return parent
        if style and style in parent.get('style', ''):
            return parent
    return None


def html_to_class_names(el: Tag) -> str:
    """Lift any formatting into the class of a formatted <span>."""
    class_list = []

    def replace_class(child: Optional[Tag], class_name: str) -> None:
        if child is not None:
            class_list.append(class_name)
            child.unwrap()

    replace_class(_match_parent(el, style='border-bottom'), 'cm-underline')
    replace_class(el.find(style=lambda value: bool(value) and 'border-bottom' in value), 'cm-underline')

    replace_class(_match_parent(el, name='strong'), 'cm-strong')
    replace_class(el.find('strong'), 'cm-strong')

    replace_class(_match_parent(el, name='em'), 'cm-italic')
    replace_class(el.find('em'), 'cm-italic')

    return ' '.join(class_list)


def match_colors(body: Tag) -> None:
    """Notion supports colored text, so use HTML to preserve it."""
    for mark in body.find_all('mark'):
        classes = ' '.join(mark.get('class', []))
        if 'highlight-' not in classes or mark.parent is None:
            continue

        match = HIGHLIGHT_PATTERN.search(classes)
        color = match.group(1) if match else None
        if color not in COLOR_TO_RGB:
            hoist_children(mark)
            continue

        previous = mark.previous_sibling
        previous_text = ''
        if type(previous) is NavigableString and previous.strip():
            previous_text = str(previous)
            previous.extract()

        class_names = html_to_class_names(mark)
        span = new_tag('span', style=f'color: {COLOR_TO_RGB[color]};')
        if class_names:
            span['class'] = class_names.split(' ')
        if previous_text:
            span.append(NavigableString(previous_text))
        for child in list(mark.contents):
            span.append(child.extract())
        mark.replace_with(span)


def _shallow_copy(el: Tag) -> Tag:
    clone = new_tag(el.name)
    clone.attrs = dict(el.attrs)
    return clone


def _split_at_breaks(el: Tag) -> List:
    """
    Empty ``el`` into copies of itself holding the runs between its line
    breaks, descending into children that hold a break. The breaks come
    back between the copies.
    """
    pieces = []
    current = _shallow_copy(el)
    for child in list(el.contents):
        if isinstance(child, Tag) and child.name == 'br':
            parts = [child.extract()]
        elif isinstance(child, Tag) and child.find('br') is not None:
            parts = _split_at_breaks(child.extract())
        else:
            current.append(child.extract())
            continue

        for part in parts:
            if part.name == 'br':
                if current.contents:
                    pieces.append(current)
                pieces.append(part)
                current = _shallow_copy(el)
            else:
                current.append(part)
    if current.contents:
        pieces.append(current)
    return pieces


def split_brs_in_formatting(body: Tag, tag: str) -> None:
    """Close emphasis around each line break so Markdown markers never span lines."""
    for el in body.find_all(tag):
        if el.parent is None or el.find('br') is None:
            continue
        el.replace_with(*_split_at_breaks(el))


class HtmlCleaner:
    """Runs the Notion normalization rules over a page body, in order."""

    def __init__(self, replacements: NotionReplacements = None, preserve_colored_text: bool = False,
                 logger: logging.Logger = None):
        """Initialize HTML cleaner with whitespace markers and color handling."""
        self.logger = logger or logging.getLogger('notion_markdown_migrator.converters.htmlcleaner')
        self.replacements = replacements or NotionReplacements()
        self.preserve_colored_text = preserve_colored_text

    def clean(self, body: Tag) -> Tag:
        """
        Normalize a Notion page body in place.

        Args:
            body: ``div.page-body`` of a Notion page

        Returns:
            The same body element, normalized
        """
        self.logger.debug("Cleaning Notion HTML")

        replace_nested_tags(body, 'strong')
        replace_nested_tags(body, 'em')
        fix_notion_embeds(body)
        fix_notion_callouts(body)
        strip_link_formatting(body)
        encode_newlines(body, self.replacements)
        encode_spaces(body, self.replacements)
        fix_notion_dates(body)
        fix_equations(body)
        # Some annoying elements Notion throws in as wrappers, which mess up .md
        replace_elements_with_children(body, '.indented')
        replace_elements_with_children(body, 'details')
        fix_toggle_headings(body)
        fix_notion_lists(body, 'ul')
        fix_notion_lists(body, 'ol')
        fix_nested_hr(body)

        add_checkboxes(body)
        replace_table_of_contents(body)
        format_databases(body)

        if self.preserve_colored_text:
            match_colors(body)

        split_brs_in_formatting(body, 'strong')
        split_brs_in_formatting(body, 'em')

        self.logger.debug("HTML cleaning completed")
        return body


__all__ = [
    'HtmlCleaner',
    'COLOR_TO_RGB',
    'replace_nested_tags',
    'fix_notion_embeds',
    'fix_notion_callouts',
    'strip_link_formatting',
    'encode_newlines',
    'encode_spaces',
    'fix_equations',
    'replace_elements_with_children',
    'fix_toggle_headings',
    'fix_nested_hr',
    'add_checkboxes',
    'replace_table_of_contents',
    'format_databases',
    'match_colors',
    'split_brs_in_formatting',
]
