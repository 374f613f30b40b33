"""
HTML list fixer for repairing fragmented Notion list structures.

Notion exports every list item inside its own <ul> or <ol>, which turns one
list into many in the converted Markdown. Runs of adjacent lists sharing the
same tag and class are joined back into a single list here.
"""

import logging

from bs4 import Tag

from .notion_utils import new_tag

logger = logging.getLogger('notion_markdown_migrator.converters.htmllistfixer')


def fix_notion_lists(body: Tag, tag_name: str) -> None:
    """Merge each run of adjacent ``tag_name`` siblings with identical classes into one list."""
    for html_list in body.find_all(tag_name):
        # Skip if already removed/merged
        if html_list.decomposed or html_list.parent is None:
            continue
        _merge_adjacent_lists(html_list, tag_name)


def _merge_adjacent_lists(first_list: Tag, tag_name: str) -> None:
    html_lists = [first_list]
    next_list = first_list.find_next_sibling()
    # classes are always "to-do-list", "bulleted-list" or "numbered-list"
    while (
        isinstance(next_list, Tag)
        and next_list.name == tag_name
        and next_list.get('class') == first_list.get('class')
    ):
        html_lists.append(next_list)
        next_list = next_list.find_next_sibling()

    if len(html_lists) == 1:
        return

    joined_list = new_tag(tag_name)
    if first_list.get('class'):
        joined_list['class'] = first_list.get('class')

    for html_list in html_lists:
        for li in list(html_list.find_all(True, recursive=False)):
            joined_list.append(li.extract())

    first_list.replace_with(joined_list)
    for html_list in html_lists[1:]:
        html_list.decompose()

    logger.debug(f"Merged {len(html_lists)} adjacent <{tag_name}> elements")


__all__ = ['fix_notion_lists']
