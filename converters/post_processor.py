"""Text fixes applied to serialized Markdown."""

import re
from typing import List, Tuple

# (?!>) keeps the blank line in front of a blockquote, otherwise consecutive callouts merge
BLANK_LINE_PATTERN = re.compile(r'\n *\n(?!>)')
HASHTAG_PATTERN = re.compile(r'#[a-z0-9\-]+', re.IGNORECASE)
PROTECTED_PATTERNS = [
    re.compile(r'\[\[[^\]]*\]\]'),          # wiki-links
    re.compile(r'\[[^\]]*\]\([^)]*\)'),     # markdown links, text and URL
    re.compile(r'`[^`]*`'),                 # inline code
]
FENCE_PATTERN = re.compile(r'^\s*(```|~~~)')
DOUBLE_BACKSLASH_LINK_PATTERN = re.compile(r'\[\[[^\]]*\\\\\|[^\]]*\]\]')


def collapse_blank_lines(markdown: str) -> str:
    return BLANK_LINE_PATTERN.sub('\n', markdown)


def _protected_ranges(line: str) -> List[Tuple[int, int]]:
    ranges = []
    for pattern in PROTECTED_PATTERNS:
        ranges.extend(match.span() for match in pattern.finditer(line))
    return ranges


def _escape_line(line: str) -> str:
    if '#' not in line:
        return line

    ranges = _protected_ranges(line)
    pieces = []
    last = 0
    for match in HASHTAG_PATTERN.finditer(line):
        start = match.start()
        if start > 0 and line[start - 1] == '\\':
            continue
        if any(low <= start < high for low, high in ranges):
            continue
        pieces.append(line[last:start])
        pieces.append('\\')
        last = start
    pieces.append(line[last:])
    return ''.join(pieces)


def escape_hashtags(markdown: str) -> str:
    """
    Escape ``#word`` sequences Obsidian would otherwise read as tags.

    Hashtags inside wiki-links, markdown links, inline code and fenced code
    blocks are left alone, as are ones already escaped.
    """
    if not HASHTAG_PATTERN.search(markdown):
        return markdown

    lines = markdown.split('\n')
    in_fence = False
    for i, line in enumerate(lines):
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        lines[i] = _escape_line(line)
    return '\n'.join(lines)


def fix_double_backslash(markdown: str) -> str:
    """Full-path links in tables come out as ``\\\\|``; Obsidian needs a single ``\\|``."""
    return DOUBLE_BACKSLASH_LINK_PATTERN.sub(
        lambda match: match.group(0).replace('\\\\|', '\\|'),
        markdown
    )


def post_process(markdown: str, single_line_breaks: bool = False) -> str:
    """Apply the post-serialization fixes in order."""
    if single_line_breaks:
        markdown = collapse_blank_lines(markdown)
    markdown = escape_hashtags(markdown)
    return fix_double_backslash(markdown)


__all__ = ['collapse_blank_lines', 'escape_hashtags', 'fix_double_backslash', 'post_process']
