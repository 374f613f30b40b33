"""Data models for Notion to Markdown migration pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from bs4 import Tag

logger = logging.getLogger('notion_markdown_migrator')


class NotionPropertyType(Enum):
    """Column kinds found in the ``property-row-<kind>`` class of a Notion export."""
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    STATUS = "status"
    DATE = "date"
    PERSON = "person"
    FILE = "file"
    CHECKBOX = "checkbox"
    URL = "url"
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"
    FORMULA = "formula"
    RELATION = "relation"
    ROLLUP = "rollup"
    CREATED_TIME = "created_time"
    CREATED_BY = "created_by"
    LAST_EDITED_TIME = "last_edited_time"
    LAST_EDITED_BY = "last_edited_by"
    AUTO_INCREMENT_ID = "auto_increment_id"


class PropertyShape(Enum):
    """Front matter value shapes a property column can take."""
    CHECKBOX = "checkbox"
    DATE = "date"
    LIST = "list"
    NUMBER = "number"
    TEXT = "text"


@dataclass(frozen=True)
class NotionReplacements:
    """HTML fragments used to keep Notion whitespace visible after conversion."""

    leading_spaces: str = '&ensp;'
    indented_blocks: str = '&ensp;&ensp;&ensp;&ensp;'
    shift_enter: str = ''

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'NotionReplacements':
        """Build replacements from a config mapping, keeping defaults for missing keys."""
        if not data:
            return cls()
        defaults = cls()
        return cls(
            leading_spaces=data.get('leading_spaces', defaults.leading_spaces),
            indented_blocks=data.get('indented_blocks', defaults.indented_blocks),
            shift_enter=data.get('shift_enter', defaults.shift_enter),
        )


@dataclass(frozen=True)
class NotionFileInfo:
    """Identity of one converted Notion page."""

    title: str
    parent_ids: Tuple[str, ...]
    path: str
    full_link_path_needed: bool = False
    ctime: Optional[datetime] = None
    mtime: Optional[datetime] = None


@dataclass(frozen=True)
class NotionAttachmentInfo:
    """Identity of one non-page file in the export."""

    path: str
    parent_ids: Tuple[str, ...]
    name_with_extension: str
    target_parent_folder: str = ''
    full_link_path_needed: bool = False


@dataclass
class RelationLink:
    """Anchor pointing at another page of the export."""

    id: str
    a: Tag


@dataclass
class AttachmentLink:
    """Anchor pointing at a file of the export."""

    path: str
    a: Tag


NotionLink = Union[RelationLink, AttachmentLink]


@dataclass
class YamlProperty:
    """One parsed property column, ready for the front matter."""

    title: str
    content: Union[str, int, float, bool, List[str]]


@dataclass
class NotionPage:
    """Represents a Notion page with its export source and conversion tracking."""

    id: str
    title: str
    path: str
    content: str  # HTML content
    markdown_content: Optional[str] = None
    conversion_metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Initialize default conversion metadata if empty."""
        if not self.conversion_metadata:
            self.conversion_metadata = {
                'conversion_status': 'pending',
                'links_relation': 0,
                'links_attachment': 0,
                'links_unresolved': 0,
                'properties_count': 0,
                'conversion_warnings': [],
                'error': None
            }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize page summary to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'path': self.path,
            'conversion_metadata': self.conversion_metadata
        }

    def __eq__(self, other: Any) -> bool:
        """Compare pages by ID."""
        if not isinstance(other, NotionPage):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash page by ID."""
        return hash(self.id)


@dataclass
class NotionExport:
    """A whole Notion export batch: pages, attachment sources and the shared resolver."""

    resolver: Any
    pages: List[NotionPage] = field(default_factory=list)
    attachment_sources: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Initialize default metadata if empty."""
        if not self.metadata:
            self.metadata = {
                'export_path': None,
                'fetch_timestamp': datetime.utcnow().isoformat(),
                'total_pages_fetched': 0,
                'total_attachments_fetched': 0
            }

    def add_page(self, page: NotionPage) -> None:
        """Add a page to the batch."""
        self.pages.append(page)

    def get_statistics(self) -> Dict[str, Any]:
        """Get conversion statistics."""
        total_failed = 0
        total_success = 0

        for page in self.pages:
            status = page.conversion_metadata.get('conversion_status', 'pending')
            if status == 'failed':
                total_failed += 1
            elif status == 'success':
                total_success += 1

        return {
            'pages': len(self.pages),
            'attachments': len(self.attachment_sources),
            'conversion_status': {
                'failed': total_failed,
                'success': total_success,
                'pending': len(self.pages) - (total_failed + total_success)
            }
        }


__all__ = [
    'NotionPropertyType',
    'PropertyShape',
    'NotionReplacements',
    'NotionFileInfo',
    'NotionAttachmentInfo',
    'RelationLink',
    'AttachmentLink',
    'NotionLink',
    'YamlProperty',
    'NotionPage',
    'NotionExport'
]
