"""Tests for fixes applied to the serialized Markdown."""

from converters.post_processor import collapse_blank_lines, escape_hashtags, fix_double_backslash, post_process


class TestCollapseBlankLines:
    def test_blank_lines_collapse(self):
        assert collapse_blank_lines('a\n\nb\n  \nc') == 'a\nb\nc'

    def test_blank_line_before_quote_is_kept(self):
        assert collapse_blank_lines('a\n\n> [!info]\n> text') == 'a\n\n> [!info]\n> text'


class TestEscapeHashtags:
    def test_hashtag_is_escaped(self):
        assert escape_hashtags('Use #tag here') == 'Use \\#tag here'

    def test_headings_are_not_touched(self):
        assert escape_hashtags('## Heading') == '## Heading'

    def test_already_escaped(self):
        assert escape_hashtags('keep \\#done') == 'keep \\#done'

    def test_links_are_protected(self):
        text = 'See [[Page#Section]] and [label](#anchor) and [#x](http://a.b/#y)'
        assert escape_hashtags(text) == text

    def test_inline_code_is_protected(self):
        assert escape_hashtags('run `git log #1`') == 'run `git log #1`'

    def test_fenced_code_is_protected(self):
        text = '```python\n#comment\n```\n#tag'
        assert escape_hashtags(text) == '```python\n#comment\n```\n\\#tag'


class TestFixDoubleBackslash:
    def test_escaped_pipe_in_wiki_link(self):
        assert fix_double_backslash('| [[A/B\\\\|B]] |') == '| [[A/B\\|B]] |'

    def test_other_text_is_untouched(self):
        assert fix_double_backslash('C:\\\\|path') == 'C:\\\\|path'


class TestPostProcess:
    def test_defaults_keep_blank_lines(self):
        assert post_process('a\n\nb #x') == 'a\n\nb \\#x'

    def test_single_line_breaks(self):
        assert post_process('a\n\nb', single_line_breaks=True) == 'a\nb'
