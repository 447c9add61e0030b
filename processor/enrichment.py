"""Best-effort enrichment of canonical events (coordinates, images)."""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple

import requests
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from processor.models import CanonicalEvent, EnrichError
from sources.base import USER_AGENT

logger = logging.getLogger(__name__)


class Enricher:
    """
    Fill in coordinates and a substitute image for canonical events.

    Each lookup runs under its own timeout. A lookup that fails or times out
    leaves the field unset; it never fails the record or delays its
    siblings. Lookups whose endpoint is not configured always fail with
    EnrichError.

    Geocoding goes through one rate limiter shared by every worker, so the
    Nominatim usage policy (1 request/second) also holds for abandoned calls.
    """

    def __init__(
        self,
        session: requests.Session,
        geocoder_domain: Optional[str] = None,
        geocoder_user_agent: Optional[str] = None,
        geocoder_min_delay_seconds: float = 1.0,
        image_search_url: Optional[str] = None,
        image_search_api_key: Optional[str] = None,
        timeout: float = 5.0,
        max_concurrency: int = 4,
    ):
        """
        Initialize the enricher.

        Args:
            session: Shared HTTP session for image search
            geocoder_domain: Nominatim host, e.g. nominatim.openstreetmap.org
            geocoder_user_agent: User-Agent required by public geocoders
            geocoder_min_delay_seconds: Minimum gap between geocoder requests
            image_search_url: Unsplash-compatible photo search endpoint
            image_search_api_key: Access key for the image search endpoint
            timeout: Per-call timeout in seconds (default: 5)
            max_concurrency: Records enriched in parallel (default: 4)
        """
        self.session = session
        self.image_search_url = image_search_url
        self.image_search_api_key = image_search_api_key
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)

        self.geocoder = None
        self._geocode = None
        if geocoder_domain:
            self.geocoder = Nominatim(
                domain=geocoder_domain,
                user_agent=geocoder_user_agent or USER_AGENT,
                timeout=timeout
            )
            self._geocode = RateLimiter(
                self.geocoder.geocode,
                min_delay_seconds=geocoder_min_delay_seconds,
                max_retries=0,
                swallow_exceptions=False
            )

    @classmethod
    def from_config(cls, config, session: requests.Session) -> 'Enricher':
        return cls(
            session,
            geocoder_domain=config.geocoder_domain,
            geocoder_user_agent=config.geocoder_user_agent,
            geocoder_min_delay_seconds=config.geocoder_min_delay_seconds,
            image_search_url=config.image_search_url,
            image_search_api_key=config.image_search_api_key,
            timeout=config.enrichment_timeout_seconds,
            max_concurrency=config.enrichment_max_concurrency,
        )

    def geocode(self, location: str) -> Tuple[float, float]:
        """
        Resolve a free-form venue string to coordinates.

        Args:
            location: Venue or address text

        Returns:
            (latitude, longitude) tuple

        Raises:
            EnrichError: If the lookup fails or yields no usable result
        """
        if self._geocode is None:
            raise EnrichError('geocode', location, detail='not configured')

        try:
            result = self._geocode(location, exactly_one=True)
        except GeopyError as e:
            raise EnrichError('geocode', location, e) from e

        if result is None:
            raise EnrichError('geocode', location, detail='no results')

        lat, lon = result.latitude, result.longitude
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            raise EnrichError(
                'geocode', location, detail=f"coordinates out of range ({lat}, {lon})"
            )
        return lat, lon

    def find_image(self, event_name: str) -> str:
        """
        Look up a representative image for an event title.

        Raises:
            EnrichError: If the lookup fails or finds nothing
        """
        if not self.image_search_url or not self.image_search_api_key:
            raise EnrichError('find_image', event_name, detail='not configured')

        try:
            response = self.session.get(
                self.image_search_url,
                params={'query': event_name, 'per_page': 1},
                headers={'Authorization': f"Client-ID {self.image_search_api_key}"},
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise EnrichError('find_image', event_name, e) from e

        try:
            url = payload['results'][0]['urls']['regular']
        except (KeyError, IndexError, TypeError) as e:
            raise EnrichError('find_image', event_name, detail='no results') from e

        if not isinstance(url, str) or not url.startswith(('http://', 'https://')):
            raise EnrichError('find_image', event_name, detail=f"invalid url {url!r}")
        return url

    def enrich(self, event: CanonicalEvent) -> CanonicalEvent:
        """
        Fill absent fields of one event in place.

        Values already supplied by the adapter are never overwritten.

        Args:
            event: Event to enrich

        Returns:
            The same event instance
        """
        if not event.has_coordinates and event.location:
            try:
                lat, lon = self._call_with_timeout(
                    'geocode', self.geocode, event.location
                )
                event.latitude, event.longitude = lat, lon
            except EnrichError as e:
                logger.warning(f"Enrichment skipped: {e}")

        if not event.image_url:
            try:
                event.image_url = self._call_with_timeout(
                    'find_image', self.find_image, event.name
                )
            except EnrichError as e:
                logger.warning(f"Enrichment skipped: {e}")

        return event

    def enrich_all(self, events: List[CanonicalEvent]) -> List[CanonicalEvent]:
        """
        Enrich events concurrently with at most max_concurrency in flight.

        Args:
            events: Events to enrich in place

        Returns:
            The same list
        """
        if not events:
            return events

        logger.info(
            f"Enriching {len(events)} events "
            f"(max_concurrency={self.max_concurrency}, timeout={self.timeout}s)"
        )
        with ThreadPoolExecutor(
            max_workers=self.max_concurrency,
            thread_name_prefix='enrich'
        ) as pool:
            list(pool.map(self.enrich, events))
        return events

    def _call_with_timeout(self, operation: str, func: Callable[[str], Any],
                           subject: str) -> Any:
        """
        Run one lookup in its own daemon thread and wait at most self.timeout.

        A call still running at the deadline is abandoned; its eventual
        result is discarded.

        Raises:
            EnrichError: On timeout or any failure inside the lookup
        """
        outcome = {}

        def target():
            try:
                outcome['value'] = func(subject)
            except Exception as e:
                outcome['error'] = e

        worker = threading.Thread(
            target=target, name=f"{operation}-call", daemon=True
        )
        worker.start()
        worker.join(self.timeout)

        if worker.is_alive():
            raise EnrichError(
                operation, subject, detail=f"timed out after {self.timeout}s"
            )

        error = outcome.get('error')
        if isinstance(error, EnrichError):
            raise error
        if error is not None:
            raise EnrichError(operation, subject, error) from error
        return outcome.get('value')
