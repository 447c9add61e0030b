"""Connpass event search adapter."""
from typing import Any, Dict, Iterable, Optional

import requests

from processor.models import CanonicalEvent, SourceType
from processor.normalization import (
    MAX_LOCATION_LENGTH,
    MAX_NAME_LENGTH,
    clean_text,
    html_to_text,
    normalize_url,
    parse_date,
)
from sources.base import EventSource


class ConnpassSource(EventSource):
    """Adapter for the Connpass event search API."""

    name = SourceType.CONNPASS.value
    DEFAULT_URL = 'https://connpass.com/api/v2/events/'
    EVENT_TYPE = 'tech'

    def __init__(self, session: requests.Session, api_key: Optional[str] = None,
                 **kwargs):
        """
        Initialize the Connpass adapter.

        Args:
            session: Shared HTTP session
            api_key: Optional value for the X-API-Key header
            **kwargs: Passed through to EventSource
        """
        super().__init__(session, **kwargs)
        self.api_key = api_key

    def _params(self) -> Dict[str, Any]:
        # order=2: newest listings first
        return {'count': self.PAGE_SIZE, 'order': 2}

    def _headers(self) -> Dict[str, str]:
        if self.api_key:
            return {'X-API-Key': self.api_key}
        return {}

    def _extract_items(self, payload: Any) -> Iterable[Dict[str, Any]]:
        events = payload['events']
        if not isinstance(events, list):
            raise TypeError(f"'events' is {type(events).__name__}, not a list")
        return [item for item in events if isinstance(item, dict)]

    def _map_item(self, item: Dict[str, Any]) -> Optional[CanonicalEvent]:
        title = clean_text(item.get('title'), MAX_NAME_LENGTH)
        if not title:
            return None

        location = (
            clean_text(item.get('address'), MAX_LOCATION_LENGTH)
            or clean_text(item.get('place'), MAX_LOCATION_LENGTH)
        )

        return CanonicalEvent(
            name=title,
            source_type=self.name,
            event_type=self.EVENT_TYPE,
            start_date=parse_date(item.get('started_at')),
            end_date=parse_date(item.get('ended_at')),
            description=html_to_text(item.get('description')),
            location=location,
            url=normalize_url(item.get('event_url')),
            image_url=normalize_url(item.get('image_url')),
        )
