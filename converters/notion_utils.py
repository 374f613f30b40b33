"""Small helpers for Notion export names, ids and dates."""

import posixpath
import re
from datetime import datetime
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

NOTION_ID_PATTERN = re.compile(r'([a-z0-9]{32})(\?|\.|$)')
NOTION_ID_SUFFIX_PATTERN = re.compile(r'[ -]?[a-z0-9]{32}(\.|$)')
PARENT_DIRECTORIES_PATTERN = re.compile(r'^(\.\./)+')

# Characters Obsidian cannot keep in a file name or a wiki-link target
ILLEGAL_FILENAME_PATTERN = re.compile(r'[/?<>\\:*|"]')
CONTROL_CHARS_PATTERN = re.compile(r'[\x00-\x1f\x80-\x9f]')
RESERVED_NAME_PATTERN = re.compile(r'^\.+$')
WINDOWS_RESERVED_PATTERN = re.compile(r'^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$', re.IGNORECASE)
TRAILING_DOTS_PATTERN = re.compile(r'[. ]+$')
BAD_LINK_CHARS_PATTERN = re.compile(r'[\[\]#|^]')

_tag_factory = BeautifulSoup('', 'lxml')


def get_notion_id(name: str) -> Optional[str]:
    """Return the 32 character Notion id embedded in a file or folder name."""
    match = NOTION_ID_PATTERN.search(name.replace('-', ''))
    if match:
        return match.group(1)
    return None


def strip_notion_id(name: str) -> str:
    """Remove a trailing Notion id (and its separator) from a name."""
    return NOTION_ID_SUFFIX_PATTERN.sub(r'\1', name, count=1)


def strip_parent_directories(relative_uri: str) -> str:
    """Drop leading ``../`` segments from a relative reference."""
    return PARENT_DIRECTORIES_PATTERN.sub('', relative_uri)


def parse_parent_ids(path: str) -> Tuple[str, ...]:
    """Notion ids of every folder above ``path``, root first."""
    parent = posixpath.dirname(path)
    if not parent:
        return ()
    ids: List[str] = []
    for segment in parent.split('/'):
        notion_id = get_notion_id(segment)
        if notion_id:
            ids.append(notion_id)
    return tuple(ids)


def split_file_path(path: str) -> Tuple[str, str, str]:
    """Split a path into (parent folder, basename without extension, extension)."""
    parent, name = posixpath.split(path)
    basename, extension = posixpath.splitext(name)
    return parent, basename, extension.lstrip('.')


def sanitize_file_name(name: str) -> str:
    """Make a title safe to use as an Obsidian note or attachment name."""
    name = ILLEGAL_FILENAME_PATTERN.sub('', name)
    name = CONTROL_CHARS_PATTERN.sub('', name)
    name = RESERVED_NAME_PATTERN.sub('', name)
    name = WINDOWS_RESERVED_PATTERN.sub('', name)
    name = TRAILING_DOTS_PATTERN.sub('', name)
    name = BAD_LINK_CHARS_PATTERN.sub('', name)
    return name.lstrip('.')


def parse_date(value: datetime) -> str:
    """Format a timestamp as a date, or as date and time when it is not midnight."""
    if value.hour == 0 and value.minute == 0:
        return value.strftime('%Y-%m-%d')
    return value.strftime('%Y-%m-%dT%H:%M')


def hoist_children(el: Tag) -> None:
    """Replace an element with its own children."""
    el.unwrap()


def new_tag(name: str, text: Optional[str] = None, **attrs) -> Tag:
    """Create a detached element, optionally holding a single string."""
    tag = _tag_factory.new_tag(name, attrs=attrs)
    if text is not None:
        tag.string = text
    return tag
