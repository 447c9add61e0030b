"""Common behaviour for upstream event-listing adapters."""
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import requests

from processor.models import CanonicalEvent, FetchError

logger = logging.getLogger(__name__)

USER_AGENT = 'external-events-sync/1.0'


def create_session(user_agent: str = USER_AGENT) -> requests.Session:
    """
    Create the HTTP session shared by every adapter and enrichment call.

    Args:
        user_agent: User-Agent header sent with each request

    Returns:
        Configured requests.Session
    """
    session = requests.Session()
    session.headers.update({
        'User-Agent': user_agent,
        'Accept': 'application/json',
    })
    return session


class EventSource(ABC):
    """
    One upstream listing service mapped into canonical events.

    Subclasses supply the endpoint, query parameters, envelope extraction
    and per-item field mapping. Instances hold no per-run state.
    """

    name: str = ''
    DEFAULT_URL: str = ''
    PAGE_SIZE = 100

    def __init__(
        self,
        session: requests.Session,
        base_url: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize the adapter.

        Args:
            session: Shared HTTP session (connection pooling owned by caller)
            base_url: Listing endpoint override (default: DEFAULT_URL)
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per fetch before giving up (default: 3)
            retry_delay: Base delay for exponential backoff in seconds
        """
        self.session = session
        self.base_url = base_url or self.DEFAULT_URL
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    def fetch(self) -> List[CanonicalEvent]:
        """
        Fetch one page of listings and map them to canonical events.

        Returns:
            List of CanonicalEvent objects

        Raises:
            FetchError: On transport failure or an unrecognised envelope
        """
        logger.info(f"Fetching events from {self.name}")

        try:
            response = self._get()
        except requests.RequestException as e:
            raise FetchError(self.name, e) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(self.name, e, detail='response is not valid JSON') from e

        try:
            items = list(self._extract_items(payload))
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(
                self.name, e, detail='unexpected response envelope'
            ) from e

        events = []
        dropped = 0
        for item in items:
            try:
                event = self._map_item(item)
            except Exception as e:
                logger.debug(f"Failed to map {self.name} item: {e}")
                event = None

            if event is None:
                dropped += 1
                continue
            events.append(event)

        logger.info(
            f"Mapped {len(events)} events from {self.name} "
            f"({dropped} of {len(items)} items dropped)"
        )
        return events

    def _get(self) -> requests.Response:
        """
        GET the listing endpoint with retry logic.

        Returns:
            Successful HTTP response

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.max_retries):
            try:
                logger.debug(
                    f"Requesting {self.base_url} "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                response = self.session.get(
                    self.base_url,
                    params=self._params(),
                    headers=self._headers(),
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if not self._is_retryable(e):
                    logger.error(f"{self.name} rejected the request: {e}")
                    raise
                if attempt < self.max_retries - 1:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"{self.name} request failed "
                        f"(attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} attempts to reach {self.name} "
                        f"failed. Last error: {e}"
                    )
                    raise

    @staticmethod
    def _is_retryable(error: requests.RequestException) -> bool:
        """Client errors other than 429 will not succeed on a retry."""
        response = getattr(error, 'response', None)
        if isinstance(error, requests.HTTPError) and response is not None:
            return response.status_code >= 500 or response.status_code == 429
        return True

    def _params(self) -> Dict[str, Any]:
        return {}

    def _headers(self) -> Dict[str, str]:
        return {}

    @abstractmethod
    def _extract_items(self, payload: Any) -> Iterable[Dict[str, Any]]:
        """Return the raw item dicts from a decoded response envelope."""

    @abstractmethod
    def _map_item(self, item: Dict[str, Any]) -> Optional[CanonicalEvent]:
        """Map one raw item, or return None when it has no usable name."""
