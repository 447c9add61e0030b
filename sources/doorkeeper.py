"""Doorkeeper public events adapter."""
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


class DoorkeeperSource(EventSource):
    """
    Adapter for the Doorkeeper events API.

    The response is a JSON array of ``{"event": {...}}`` wrappers; the API
    returns a fixed page of 25 items and takes no page-size parameter.
    """

    name = SourceType.DOORKEEPER.value
    DEFAULT_URL = 'https://api.doorkeeper.jp/events'
    EVENT_TYPE = 'community'

    def __init__(self, session: requests.Session, token: Optional[str] = None,
                 **kwargs):
        super().__init__(session, **kwargs)
        self.token = token

    def _params(self) -> Dict[str, Any]:
        return {'sort': 'starts_at', 'locale': 'ja'}

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {'Authorization': f"Bearer {self.token}"}
        return {}

    def _extract_items(self, payload: Any) -> Iterable[Dict[str, Any]]:
        if not isinstance(payload, list):
            raise TypeError(
                f"expected a list of events, got {type(payload).__name__}"
            )
        items = []
        for wrapper in payload:
            if isinstance(wrapper, dict) and isinstance(wrapper.get('event'), dict):
                items.append(wrapper['event'])
        return items

    def _map_item(self, item: Dict[str, Any]) -> Optional[CanonicalEvent]:
        title = clean_text(item.get('title'), MAX_NAME_LENGTH)
        if not title:
            return None

        location = (
            clean_text(item.get('address'), MAX_LOCATION_LENGTH)
            or clean_text(item.get('venue_name'), MAX_LOCATION_LENGTH)
        )

        return CanonicalEvent(
            name=title,
            source_type=self.name,
            event_type=self.EVENT_TYPE,
            start_date=parse_date(item.get('starts_at')),
            end_date=parse_date(item.get('ends_at')),
            description=html_to_text(item.get('description')),
            location=location,
            url=normalize_url(item.get('public_url')),
            image_url=normalize_url(item.get('banner')),
        )
