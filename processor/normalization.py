"""Field normalization shared by all source adapters."""
import logging
from datetime import date, datetime
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Column limits of the events catalog
MAX_NAME_LENGTH = 255
MAX_EVENT_TYPE_LENGTH = 50
MAX_LOCATION_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000

# Fallbacks for upstreams that do not send RFC 3339
DATE_FORMATS = [
    '%Y-%m-%d',             # ISO 8601 date
    '%Y-%m-%d %H:%M:%S',    # SQL-style timestamp
    '%Y-%m-%d %H:%M',
    '%Y/%m/%d',
    '%Y/%m/%d %H:%M',
]


def parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an upstream timestamp string into a calendar date.

    RFC 3339 timestamps are read in their own UTC offset, so
    ``2024-05-01T23:30:00+09:00`` becomes 2024-05-01.

    Args:
        value: Timestamp string from an upstream response

    Returns:
        Calendar date or None if the value is empty or unparseable
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    logger.debug(f"Unparseable date value: {value!r}")
    return None


def clean_text(value: Optional[str], max_length: int) -> Optional[str]:
    """Strip whitespace and truncate; blank strings become None."""
    if value is None or not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    return text[:max_length]


def html_to_text(value: Optional[str],
                 max_length: int = MAX_DESCRIPTION_LENGTH) -> Optional[str]:
    """
    Reduce an HTML fragment to plain text.

    Args:
        value: HTML (or plain text) description from an upstream
        max_length: Maximum length of the returned text

    Returns:
        Plain text or None if nothing readable remains
    """
    if not value or not isinstance(value, str):
        return None
    soup = BeautifulSoup(value, 'html.parser')
    return clean_text(soup.get_text('\n', strip=True), max_length)


def normalize_url(value: Optional[str]) -> Optional[str]:
    """Keep only absolute http(s) URLs."""
    if not value or not isinstance(value, str):
        return None
    url = value.strip()
    if url.startswith('http://') or url.startswith('https://'):
        return url
    return None
