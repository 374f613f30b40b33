"""Fetchers package for reading Notion HTML exports."""

from .base_fetcher import BaseFetcher, FetcherError
from .export_fetcher import NotionExportFetcher, build_resolver_info

__all__ = [
    'BaseFetcher',
    'FetcherError',
    'NotionExportFetcher',
    'build_resolver_info'
]
