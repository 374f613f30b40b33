"""Parser turning a Notion property table into front matter values."""

import logging
import math
from typing import Any, Dict, List, Optional

from bs4 import Tag
from dateutil import parser as date_parser

from models import NotionPropertyType, PropertyShape, YamlProperty
from .notion_utils import parse_date

logger = logging.getLogger('notion_markdown_migrator.converters.propertyparser')

TYPES_MAP: Dict[PropertyShape, List[NotionPropertyType]] = {
    PropertyShape.CHECKBOX: [NotionPropertyType.CHECKBOX],
    PropertyShape.DATE: [
        NotionPropertyType.CREATED_TIME,
        NotionPropertyType.LAST_EDITED_TIME,
        NotionPropertyType.DATE,
    ],
    PropertyShape.LIST: [
        NotionPropertyType.FILE,
        NotionPropertyType.MULTI_SELECT,
        NotionPropertyType.RELATION,
    ],
    PropertyShape.NUMBER: [NotionPropertyType.NUMBER, NotionPropertyType.AUTO_INCREMENT_ID],
    PropertyShape.TEXT: [
        NotionPropertyType.EMAIL,
        NotionPropertyType.PERSON,
        NotionPropertyType.PHONE_NUMBER,
        NotionPropertyType.TEXT,
        NotionPropertyType.URL,
        NotionPropertyType.STATUS,
        NotionPropertyType.SELECT,
        NotionPropertyType.FORMULA,
        NotionPropertyType.ROLLUP,
        NotionPropertyType.LAST_EDITED_BY,
        NotionPropertyType.CREATED_BY,
    ],
}

PROPERTY_ROW_PREFIX = 'property-row-'
TAGS_TITLE = 'Tags'
TAGS_KEY = 'tags'
DATE_RANGE_SEPARATOR = ' - '


class UnknownPropertyTypeError(ValueError):
    """A property row uses a column kind this converter does not know about."""
    pass


def get_property_type(row: Tag) -> NotionPropertyType:
    """Read the column kind from a ``property-row-<kind>`` class."""
    for cls in row.get('class', []):
        if cls.startswith(PROPERTY_ROW_PREFIX):
            kind = cls[len(PROPERTY_ROW_PREFIX):]
            try:
                return NotionPropertyType(kind)
            except ValueError:
                raise UnknownPropertyTypeError(f"Unknown property type '{kind}'") from None
    raise UnknownPropertyTypeError(f"Property type not found for row: {row.get_text(strip=True)!r}")


def get_property_shape(notion_type: NotionPropertyType) -> PropertyShape:
    for shape, notion_types in TYPES_MAP.items():
        if notion_type in notion_types:
            return shape
    raise UnknownPropertyTypeError(f"No front matter shape for property type '{notion_type.value}'")


def fix_notion_dates(element: Tag) -> None:
    """Notion dates always start with @."""
    for time in element.find_all('time'):
        time.string = time.get_text().replace('@', '')


def parse_timestamp(text: str) -> Optional[Any]:
    """Parse a Notion timestamp, returning None when it is not a date."""
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


class PropertyParser:
    """Parses rows of ``table.properties`` into :class:`YamlProperty` values."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('notion_markdown_migrator.converters.propertyparser')

    def parse_properties(self, rows: Tag) -> Dict[str, Any]:
        """
        Parse every row of a property table body into a front matter mapping.

        Args:
            rows: ``tbody`` of the page's property table

        Returns:
            Ordered mapping of property title to value

        Raises:
            UnknownPropertyTypeError: If a row uses an unsupported column kind
        """
        front_matter: Dict[str, Any] = {}
        for row in rows.find_all('tr', recursive=False):
            prop = self.parse_property(row)
            if prop is None:
                continue
            if prop.title == TAGS_TITLE:
                prop = self._normalize_tags(prop)
            front_matter[prop.title] = prop.content
        return front_matter

    def parse_property(self, row: Tag) -> Optional[YamlProperty]:
        """Parse one row; returns None when the value is empty or unparseable."""
        notion_type = get_property_type(row)
        shape = get_property_shape(notion_type)

        cells = row.find_all(['th', 'td'], recursive=False)
        if len(cells) < 2:
            self.logger.debug(f"Skipping property row without value cell ({notion_type.value})")
            return None

        title = cells[0].get_text().strip()
        body = cells[1]

        if shape is PropertyShape.CHECKBOX:
            content = self._parse_checkbox(body)
        elif shape is PropertyShape.NUMBER:
            content = self._parse_number(body)
        elif shape is PropertyShape.DATE:
            content = self._parse_date(body)
        elif shape is PropertyShape.LIST:
            content = self._parse_list(body)
        elif shape is PropertyShape.TEXT:
            content = body.get_text().strip() or None
        else:
            raise UnknownPropertyTypeError(f"Unhandled property shape '{shape.value}'")

        if content is None:
            self.logger.debug(f"Dropping empty property '{title}'")
            return None
        return YamlProperty(title=title, content=content)

    def _parse_checkbox(self, body: Tag) -> bool:
        # checkbox-on: checked, checkbox-off: unchecked
        return 'checkbox-on' in body.decode_contents()

    def _parse_number(self, body: Tag):
        text = body.get_text().strip()
        try:
            number = float(text)
        except ValueError:
            return None
        if math.isnan(number):
            return None
        if number.is_integer() and 'e' not in text.lower() and '.' not in text:
            return int(number)
        return number

    def _parse_date(self, body: Tag) -> Optional[str]:
        fix_notion_dates(body)
        dates = []
        for time in body.find_all('time'):
            # Ranges can also come as a single "start → end" timestamp
            for text in time.get_text().split('→'):
                text = text.strip()
                if not text:
                    continue
                parsed = parse_timestamp(text)
                if parsed is None:
                    self.logger.warning(f"Could not parse date '{text}'")
                    continue
                dates.append(parse_date(parsed))
        if not dates:
            return None
        return DATE_RANGE_SEPARATOR.join(dates)

    def _parse_list(self, body: Tag) -> Optional[List[str]]:
        items = []
        for child in body.find_all(True, recursive=False):
            item = child.get_text()
            if not item:
                continue
            items.append(item)
        return items or None

    @staticmethod
    def _normalize_tags(prop: YamlProperty) -> YamlProperty:
        content = prop.content
        if isinstance(content, str):
            content = content.replace(' ', '-')
        elif isinstance(content, list):
            content = [tag.replace(' ', '-') for tag in content]
        return YamlProperty(title=TAGS_KEY, content=content)


__all__ = [
    'PropertyParser',
    'UnknownPropertyTypeError',
    'get_property_type',
    'get_property_shape',
    'fix_notion_dates',
    'parse_timestamp',
    'TYPES_MAP'
]
