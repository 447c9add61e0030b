"""Peatix event search adapter."""
from typing import Any, Dict, Iterable, Optional

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


class PeatixSource(EventSource):
    """Adapter for the Peatix search endpoint (``json_data.events``)."""

    name = SourceType.PEATIX.value
    DEFAULT_URL = 'https://peatix.com/search/events'
    EVENT_TYPE = 'general'

    def _params(self) -> Dict[str, Any]:
        return {'country': 'JP', 'size': self.PAGE_SIZE, 'p': 1}

    def _headers(self) -> Dict[str, str]:
        # The search endpoint only answers JSON to XHR-style requests
        return {'X-Requested-With': 'XMLHttpRequest'}

    def _extract_items(self, payload: Any) -> Iterable[Dict[str, Any]]:
        events = payload['json_data']['events']
        if not isinstance(events, list):
            raise TypeError(f"'events' is {type(events).__name__}, not a list")
        return [item for item in events if isinstance(item, dict)]

    def _map_item(self, item: Dict[str, Any]) -> Optional[CanonicalEvent]:
        title = clean_text(item.get('name'), MAX_NAME_LENGTH)
        if not title:
            return None

        location = (
            clean_text(item.get('venue_name'), MAX_LOCATION_LENGTH)
            or clean_text(item.get('address'), MAX_LOCATION_LENGTH)
        )

        return CanonicalEvent(
            name=title,
            source_type=self.name,
            event_type=self.EVENT_TYPE,
            start_date=parse_date(item.get('datetime')),
            end_date=parse_date(item.get('end_datetime')),
            description=html_to_text(item.get('description')),
            location=location,
            url=normalize_url(item.get('url')),
            image_url=normalize_url(item.get('cover')),
        )
