"""Abstract base fetcher interface and common functionality."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from models import NotionExport


class FetcherError(Exception):
    """Base exception for fetcher-related errors."""
    pass


class BaseFetcher(ABC):
    """Abstract base class for Notion export fetchers."""

    def __init__(self, config: Dict[str, Any], logger=None):
        """
        Initialize base fetcher with configuration and logger.

        Args:
            config: Configuration dictionary
            logger: Logger instance (optional, uses module logger if not provided)
        """
        self.config = config
        self.logger = logger or logging.getLogger('notion_markdown_migrator.fetcher')

    @abstractmethod
    def fetch_export(self) -> NotionExport:
        """
        Read the whole export and build the batch registry.

        Returns:
            NotionExport with every page loaded and a finalized resolver
        """
        pass

    @abstractmethod
    def read_attachment(self, source: Any) -> bytes:
        """
        Read the raw bytes of one attachment.

        Args:
            source: Value stored in ``NotionExport.attachment_sources``

        Returns:
            File content
        """
        pass
