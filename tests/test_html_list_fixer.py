"""Tests for merging Notion's one-item-per-list markup."""

from bs4 import BeautifulSoup

from converters.html_list_fixer import fix_notion_lists


def body(html):
    return BeautifulSoup(f'<div class="page-body">{html}</div>', 'lxml').find('div')


class TestFixNotionLists:
    def test_adjacent_lists_with_same_class_merge(self):
        div = body(
            '<ul class="bulleted-list"><li>a</li></ul>'
            '<ul class="bulleted-list"><li>b</li></ul>'
            '<ul class="bulleted-list"><li>c</li></ul>'
        )
        fix_notion_lists(div, 'ul')

        lists = div.find_all('ul')
        assert len(lists) == 1
        assert [li.get_text() for li in lists[0].find_all('li')] == ['a', 'b', 'c']
        assert lists[0]['class'] == ['bulleted-list']

    def test_merge_stops_at_other_tag(self):
        div = body(
            '<ul class="bulleted-list"><li>a</li></ul>'
            '<ul class="bulleted-list"><li>b</li></ul>'
            '<p>break</p>'
            '<ul class="bulleted-list"><li>c</li></ul>'
        )
        fix_notion_lists(div, 'ul')

        lists = div.find_all('ul')
        assert len(lists) == 2
        assert lists[0].get_text() == 'ab'
        assert lists[1].get_text() == 'c'

    def test_merge_stops_at_other_class(self):
        div = body(
            '<ul class="bulleted-list"><li>a</li></ul>'
            '<ul class="to-do-list"><li>b</li></ul>'
        )
        fix_notion_lists(div, 'ul')

        assert len(div.find_all('ul')) == 2

    def test_numbered_lists_merge(self):
        div = body(
            '<ol class="numbered-list" start="1"><li>one</li></ol>'
            '<ol class="numbered-list" start="2"><li>two</li></ol>'
        )
        fix_notion_lists(div, 'ol')

        lists = div.find_all('ol')
        assert len(lists) == 1
        assert len(lists[0].find_all('li')) == 2

    def test_nested_lists_are_kept_inside_items(self):
        div = body(
            '<ul class="bulleted-list"><li>a<ul class="bulleted-list"><li>a1</li></ul></li></ul>'
            '<ul class="bulleted-list"><li>b</li></ul>'
        )
        fix_notion_lists(div, 'ul')

        outer = div.find('ul', recursive=False)
        assert len(outer.find_all('li', recursive=False)) == 2
        assert outer.li.ul.li.get_text() == 'a1'

    def test_merge_is_idempotent(self):
        div = body(
            '<ul class="bulleted-list"><li>a</li></ul>'
            '<ul class="bulleted-list"><li>b</li></ul>'
        )
        fix_notion_lists(div, 'ul')
        once = str(div)
        fix_notion_lists(div, 'ul')

        assert str(div) == once

    def test_no_lists_is_a_no_op(self):
        div = body('<p>text</p>')
        before = str(div)
        fix_notion_lists(div, 'ul')

        assert str(div) == before
