"""Tests for Notion link classification and wiki-link rewriting."""

import unittest

from bs4 import BeautifulSoup

from converters.link_processor import LinkProcessor, convert_html_links_to_urls
from converters.resolver import NotionResolverInfo
from models import AttachmentLink, NotionAttachmentInfo, NotionFileInfo, RelationLink

HOME_ID = '8b3e1d8c0f8a4f5e9c2d7b6a5e4f3d21'
OTHER_ID = '1f2e3d4c5b6a79880f1e2d3c4b5a6978'
MISSING_ID = 'c0ffee00c0ffee00c0ffee00c0ffee00'
ALPHA_ID = 'a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1a1'
BETA_ID = 'b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2b2'
ALPHA_NOTES_ID = 'aaaa0000aaaa0000aaaa0000aaaa0000'
BETA_NOTES_ID = 'bbbb0000bbbb0000bbbb0000bbbb0000'


def build_info():
    info = NotionResolverInfo()
    info.register_file(HOME_ID, NotionFileInfo('Home', (), f'Home {HOME_ID}.html'))
    info.register_file(OTHER_ID, NotionFileInfo('Other Page', (HOME_ID,), f'Home {HOME_ID}/Other Page {OTHER_ID}.html'))
    info.register_file(ALPHA_ID, NotionFileInfo('Alpha', (), f'Alpha {ALPHA_ID}.html'))
    info.register_file(BETA_ID, NotionFileInfo('Beta', (), f'Beta {BETA_ID}.html'))
    info.register_file(ALPHA_NOTES_ID, NotionFileInfo('Notes', (ALPHA_ID,), f'Alpha {ALPHA_ID}/Notes {ALPHA_NOTES_ID}.html'))
    info.register_file(BETA_NOTES_ID, NotionFileInfo('Notes', (BETA_ID,), f'Beta {BETA_ID}/Notes {BETA_NOTES_ID}.html'))
    info.register_attachment(NotionAttachmentInfo(f'Home {HOME_ID}/image.png', (HOME_ID,), 'image.png'))
    info.finalize()
    return info


def body(html):
    return BeautifulSoup(html, 'lxml').find('div')


class TestExtractLinks(unittest.TestCase):
    def setUp(self):
        self.processor = LinkProcessor(build_info())

    def test_page_reference_is_relation(self):
        """References to exported .html pages carry the target id."""
        div = body(f'<div><a href="Home%20{HOME_ID}/Other%20Page%20{OTHER_ID}.html">Other</a></div>')
        links = self.processor.extract_links(div)

        self.assertEqual(len(links), 1)
        self.assertIsInstance(links[0], RelationLink)
        self.assertEqual(links[0].id, OTHER_ID)

    def test_parent_directories_are_ignored(self):
        div = body(f'<div><a href="../Home%20{HOME_ID}.html">Home</a></div>')
        links = self.processor.extract_links(div)

        self.assertIsInstance(links[0], RelationLink)
        self.assertEqual(links[0].id, HOME_ID)

    def test_dashed_ids_are_recognized(self):
        dashed = f'{HOME_ID[:8]}-{HOME_ID[8:12]}-{HOME_ID[12:16]}-{HOME_ID[16:20]}-{HOME_ID[20:]}'
        div = body(f'<div><a href="Home%20{dashed}.html">Home</a></div>')
        links = self.processor.extract_links(div)

        self.assertEqual(links[0].id, HOME_ID)

    def test_file_reference_is_attachment(self):
        """Non-page references matching a registered file are attachments."""
        div = body(f'<div><a href="Home%20{HOME_ID}/image.png"><img src="x"/></a></div>')
        links = self.processor.extract_links(div)

        self.assertEqual(len(links), 1)
        self.assertIsInstance(links[0], AttachmentLink)
        self.assertEqual(links[0].path, f'Home {HOME_ID}/image.png')

    def test_external_links_are_not_returned(self):
        div = body('<div><a href="https://example.com">site</a><a href="#section">toc</a></div>')

        self.assertEqual(self.processor.extract_links(div), [])

    def test_links_keep_document_order(self):
        div = body(
            f'<div><a href="Home%20{HOME_ID}/image.png">img</a>'
            f'<a href="Home%20{HOME_ID}.html">Home</a></div>'
        )
        links = self.processor.extract_links(div)

        self.assertIsInstance(links[0], AttachmentLink)
        self.assertIsInstance(links[1], RelationLink)


class TestRewriteLinks(unittest.TestCase):
    def setUp(self):
        self.processor = LinkProcessor(build_info())

    def rewrite(self, html, embed_attachments=True):
        div = body(html)
        self.processor.rewrite_links(self.processor.extract_links(div), embed_attachments)
        return div

    def test_relation_becomes_wiki_link(self):
        div = self.rewrite(f'<div>See <a href="Home%20{HOME_ID}/Other%20Page%20{OTHER_ID}.html">Other</a></div>')

        self.assertEqual(div.get_text(), 'See [[Other Page]]')
        self.assertIsNone(div.find('a'))
        self.assertEqual(self.processor.stats['links_relation'], 1)

    def test_dangling_relation_falls_back_to_file_name(self):
        """A page missing from the export still links by its name."""
        div = self.rewrite(f'<div><a href="Gone%20Page%20{MISSING_ID}.html">Gone</a></div>')

        self.assertEqual(div.get_text(), '[[Gone Page]]')
        self.assertEqual(self.processor.stats['links_unresolved'], 1)
        self.assertEqual(len(self.processor.warnings), 1)
        self.assertIn(MISSING_ID, self.processor.warnings[0])

    def test_duplicate_title_uses_full_path(self):
        div = self.rewrite(f'<div><a href="Beta%20{BETA_ID}/Notes%20{BETA_NOTES_ID}.html">Notes</a></div>')

        self.assertEqual(div.get_text(), '[[Beta/Notes|Notes]]')

    def test_full_path_pipe_is_escaped_in_tables(self):
        div = self.rewrite(
            f'<div><table><tbody><tr><td><a href="Beta%20{BETA_ID}/Notes%20{BETA_NOTES_ID}.html">Notes</a>'
            '</td></tr></tbody></table></div>'
        )

        self.assertEqual(div.find('td').get_text(), '[[Beta/Notes\\|Notes]]')

    def test_attachment_is_embedded(self):
        div = self.rewrite(f'<div><a href="Home%20{HOME_ID}/image.png">image.png</a></div>')

        self.assertEqual(div.get_text(), '![[image.png]]')
        self.assertEqual(self.processor.stats['links_attachment'], 1)

    def test_attachment_without_embed(self):
        div = self.rewrite(f'<div><a href="Home%20{HOME_ID}/image.png">image.png</a></div>',
                           embed_attachments=False)

        self.assertEqual(div.get_text(), '[[image.png]]')

    def test_dangling_attachment_is_left_untouched(self):
        div = body('<div><a href="f.png">f</a></div>')

        self.processor.rewrite_links([AttachmentLink(path='f.png', a=div.a)], embed_attachments=True)

        self.assertEqual(str(div), '<div><a href="f.png">f</a></div>')
        self.assertEqual(self.processor.warnings, ['Missing attachment data for: f.png'])
        self.assertEqual(self.processor.stats['links_unresolved'], 1)
        self.assertEqual(self.processor.stats['links_attachment'], 0)

    def test_external_link_is_untouched(self):
        div = self.rewrite('<div><a href="https://example.com">site</a></div>')

        self.assertEqual(div.find('a')['href'], 'https://example.com')

    def test_unknown_link_type_raises(self):
        with self.assertRaises(TypeError):
            self.processor.rewrite_links([object()], embed_attachments=True)


class TestConvertHtmlLinksToUrls(unittest.TestCase):
    def test_anchors_become_raw_hrefs(self):
        div = body('<div><a href="https://example.com/a">Example</a> and <a href="mailto:x@y.z">mail</a></div>')
        convert_html_links_to_urls(div)

        self.assertEqual(div.get_text(), 'https://example.com/a and mailto:x@y.z')
        self.assertIsNone(div.find('a'))


if __name__ == '__main__':
    unittest.main()
