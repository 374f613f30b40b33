"""End-to-end tests: reading an export, converting pages and writing the vault."""

import os
import zipfile
from datetime import datetime

import pytest

from fetchers import FetcherError, NotionExportFetcher
from logger import format_elapsed
from orchestrator import MigrationOrchestrator, MigrationReport
from converters.resolver import RegistryPhaseError

HOME_ID = '8b3e1d8c0f8a4f5e9c2d7b6a5e4f3d21'
CHILD_ID = '1f2e3d4c5b6a79880f1e2d3c4b5a6978'
BROKEN_ID = 'c0ffee00c0ffee00c0ffee00c0ffee00'


def notion_page(title, body, properties=''):
    table = f'<table class="properties"><tbody>{properties}</tbody></table>' if properties else ''
    return (
        f'<html><head><meta charset="utf-8"/><title>{title}</title></head><body>'
        f'<article class="page sans"><header><h1 class="page-title">{title}</h1>{table}</header>'
        f'<div class="page-body">{body}</div></article></body></html>'
    )


EXPORT_FILES = {
    f'Home {HOME_ID}.html': notion_page(
        'Home',
        f'<p>Go to <a href="Home%20{HOME_ID}/Child%20{CHILD_ID}.html">Child</a>.</p>'
        f'<figure class="image"><a href="Home%20{HOME_ID}/photo.png"><img src="Home%20{HOME_ID}/photo.png"/></a></figure>'
    ),
    f'Home {HOME_ID}/Child {CHILD_ID}.html': notion_page(
        'Child',
        f'<p>Back to <a href="../Home%20{HOME_ID}.html">Home</a></p>',
        properties=(
            '<tr class="property-row property-row-created_time"><th>Created</th>'
            '<td><time>@January 2, 2024 10:00 AM</time></td></tr>'
        )
    ),
    f'Home {HOME_ID}/photo.png': b'\x89PNG fake image',
}


def write_directory_export(root):
    for path, content in EXPORT_FILES.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding='utf-8')
    return root


def write_zip_export(archive_path, extra=None):
    with zipfile.ZipFile(archive_path, 'w') as archive:
        for path, content in {**EXPORT_FILES, **(extra or {})}.items():
            archive.writestr(path, content)
    return archive_path


def make_config(export_path, output_dir, **migration):
    return {
        'notion': {'export_path': str(export_path)},
        'export': {'output_directory': str(output_dir)},
        'migration': {'max_workers': 1, **migration},
    }


class TestNotionExportFetcher:
    def test_directory_export_is_registered(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        fetcher = NotionExportFetcher(make_config(export_dir, tmp_path / 'vault'))

        export = fetcher.fetch_export()

        assert sorted(page.id for page in export.pages) == sorted([HOME_ID, CHILD_ID])
        assert list(export.attachment_sources) == [f'Home {HOME_ID}/photo.png']
        assert export.resolver.finalized
        child = export.resolver.resolve_file(CHILD_ID)
        assert child.title == 'Child'
        assert child.parent_ids == (HOME_ID,)
        assert child.ctime == datetime(2024, 1, 2, 10, 0)
        assert export.metadata['total_pages_fetched'] == 2

    def test_zip_export_matches_directory(self, tmp_path):
        archive = write_zip_export(tmp_path / 'Export.zip')
        fetcher = NotionExportFetcher(make_config(archive, tmp_path / 'vault'))

        export = fetcher.fetch_export()

        assert sorted(page.id for page in export.pages) == sorted([HOME_ID, CHILD_ID])
        assert fetcher.read_attachment(export.attachment_sources[f'Home {HOME_ID}/photo.png']) == b'\x89PNG fake image'

    def test_html_without_id_is_skipped(self, tmp_path):
        archive = write_zip_export(tmp_path / 'Export.zip', extra={'index.html': notion_page('Index', '<p>x</p>')})

        export = NotionExportFetcher(make_config(archive, tmp_path / 'vault')).fetch_export()

        assert len(export.pages) == 2

    def test_missing_export_raises(self, tmp_path):
        with pytest.raises(FetcherError):
            NotionExportFetcher(make_config(tmp_path / 'missing', tmp_path / 'vault'))

    def test_non_zip_file_raises(self, tmp_path):
        bogus = tmp_path / 'export.zip'
        bogus.write_text('not a zip')

        with pytest.raises(FetcherError):
            NotionExportFetcher(make_config(bogus, tmp_path / 'vault'))


class TestMigrationOrchestrator:
    def run(self, export_path, output_dir, **migration):
        config = make_config(export_path, output_dir, **migration)
        orchestrator = MigrationOrchestrator(config, NotionExportFetcher(config))
        return orchestrator.orchestrate_migration()

    def test_vault_layout(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        vault = tmp_path / 'vault'

        report = self.run(export_dir, vault)

        home = (vault / 'Home.md').read_text(encoding='utf-8')
        child = (vault / 'Home' / 'Child.md').read_text(encoding='utf-8')
        assert home == 'Go to [[Child]].\n\n![[photo.png]]\n'
        assert child == '---\nCreated: 2024-01-02T10:00\n---\nBack to [[Home]]\n'
        assert (vault / 'photo.png').read_bytes() == b'\x89PNG fake image'
        assert report['summary']['pages_converted'] == 2
        assert report['summary']['total_errors'] == 0

    def test_note_timestamp_follows_notion(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        vault = tmp_path / 'vault'

        self.run(export_dir, vault)

        expected = datetime(2024, 1, 2, 10, 0).timestamp()
        assert os.path.getmtime(vault / 'Home' / 'Child.md') == pytest.approx(expected)

    def test_attachment_folder(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        vault = tmp_path / 'vault'
        config = make_config(export_dir, vault)
        config['export']['attachment_path'] = 'attachments'

        MigrationOrchestrator(config, NotionExportFetcher(config)).orchestrate_migration()

        assert (vault / 'attachments' / 'photo.png').exists()

    def test_worker_count_does_not_change_output(self, tmp_path):
        archive = write_zip_export(tmp_path / 'Export.zip')
        sequential, threaded = tmp_path / 'one', tmp_path / 'two'

        self.run(archive, sequential, max_workers=1)
        self.run(archive, threaded, max_workers=2)

        for note in ('Home.md', 'Home/Child.md'):
            assert (sequential / note).read_text(encoding='utf-8') == (threaded / note).read_text(encoding='utf-8')

    def test_failed_page_does_not_stop_the_batch(self, tmp_path):
        archive = write_zip_export(tmp_path / 'Export.zip', extra={
            f'Broken {BROKEN_ID}.html': notion_page(
                'Broken', '<p>x</p>',
                properties='<tr class="property-row property-row-button"><th>Run</th><td>Go</td></tr>'
            )
        })
        vault = tmp_path / 'vault'

        report = self.run(archive, vault)

        assert (vault / 'Home.md').exists()
        assert not (vault / 'Broken.md').exists()
        assert report['summary']['pages_failed'] == 1
        assert report['errors'][0]['page_id'] == BROKEN_ID
        assert report['errors'][0]['phase'] == 'content_conversion'

    def test_dry_run_writes_nothing(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        vault = tmp_path / 'vault'

        report = self.run(export_dir, vault, dry_run=True)

        assert not vault.exists()
        assert report['phases']['markdown_export']['total_pages_exported'] == 2

    def test_unfinalized_registry_is_rejected(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        config = make_config(export_dir, tmp_path / 'vault')

        class UnfinalizedFetcher(NotionExportFetcher):
            def fetch_export(self):
                export = super().fetch_export()
                export.resolver._finalized = False
                return export

        with pytest.raises(RegistryPhaseError):
            MigrationOrchestrator(config, UnfinalizedFetcher(config)).orchestrate_migration()


class TestMigrationReport:
    def test_console_and_json_report(self, tmp_path):
        export_dir = write_directory_export(tmp_path / 'export')
        config = make_config(export_dir, tmp_path / 'vault')
        report = MigrationOrchestrator(config, NotionExportFetcher(config)).orchestrate_migration()
        generator = MigrationReport()

        console = generator.format_console_report(report)
        assert 'MIGRATION REPORT' in console
        assert 'Pages:       2' in console

        report_path = tmp_path / 'report.json'
        generator.export_json_report(report, str(report_path))
        assert '"pages_converted": 2' in report_path.read_text(encoding='utf-8')

    def test_duration_format(self):
        assert format_elapsed(12.34) == '12.3s'
        assert format_elapsed(75) == '1m 15s'
        assert format_elapsed(3725) == '1h 2m 5s'
