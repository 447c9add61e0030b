"""DynamoDB-backed events catalog."""
import hashlib
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from processor.models import CanonicalEvent, DuplicateEventError, PersistedEvent, StoreError
from processor.normalization import parse_date

logger = logging.getLogger(__name__)


class EventStore(Protocol):
    """Persistence operations the deduplicating writer depends on."""

    def find_existing_by_url(self, url: str) -> Optional[PersistedEvent]:
        ...

    def find_existing_by_name_and_date(
        self, name: str, start_date: Optional[date]
    ) -> Optional[PersistedEvent]:
        ...

    def insert(self, event: CanonicalEvent) -> PersistedEvent:
        ...


def name_date_key(name: str, start_date: Optional[date]) -> str:
    """Composite lookup key for the name + start date fallback match."""
    return f"{name}|{start_date.isoformat() if start_date else ''}"


def event_identity(event: CanonicalEvent) -> str:
    """
    Derive the event_id an inserted event is stored under.

    Events that are equivalent for deduplication hash to the same id: the
    URL when there is one, otherwise the name + start date key.

    Args:
        event: Canonical event about to be inserted

    Returns:
        SHA256 hex digest
    """
    if event.url:
        composite = f"url|{event.url}"
    else:
        composite = f"name_date|{name_date_key(event.name, event.start_date)}"
    return hashlib.sha256(composite.encode('utf-8')).hexdigest()


class DynamoDBEventStore:
    """
    Events table keyed by event_id with two lookup indexes.

    ``url-index`` is sparse: only items carrying a URL appear in it.
    ``name-date-index`` is keyed by ``name_date_key``. Index reads are
    eventually consistent; inserts are guarded by the conditional put on
    the derived event_id, which is not.

    The table is shared with events this store did not write, so rows are
    read leniently: a field that cannot be converted is left unset.
    """

    URL_INDEX = 'url-index'
    NAME_DATE_INDEX = 'name-date-index'

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region override (default: boto3 resolution)
        """
        self.table_name = table_name
        if region_name:
            self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        else:
            self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBEventStore for table: {table_name}")

    def find_existing_by_url(self, url: str) -> Optional[PersistedEvent]:
        """
        Find an event with exactly this URL.

        Raises:
            StoreError: If the query fails
        """
        return self._query_first(
            'find_existing_by_url', self.URL_INDEX, 'url', url
        )

    def find_existing_by_name_and_date(
        self, name: str, start_date: Optional[date]
    ) -> Optional[PersistedEvent]:
        """
        Find an event with this name and start date (both-unset matches).

        Raises:
            StoreError: If the query fails
        """
        return self._query_first(
            'find_existing_by_name_and_date',
            self.NAME_DATE_INDEX,
            'name_date_key',
            name_date_key(name, start_date),
        )

    def insert(self, event: CanonicalEvent) -> PersistedEvent:
        """
        Persist a canonical event under its derived identity.

        Args:
            event: Event to store

        Returns:
            The stored event with its event_id

        Raises:
            DuplicateEventError: If an equivalent event was already inserted
            StoreError: If the write fails
        """
        now = datetime.now(timezone.utc).isoformat(timespec='seconds')
        event_id = event_identity(event)
        item = self._event_to_item(event, event_id, now)

        try:
            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(event_id)'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise DuplicateEventError(event_id, e) from e
            logger.error(f"Error inserting event '{event.name}': {e}")
            raise StoreError('insert', e) from e
        except BotoCoreError as e:
            logger.error(f"Error inserting event '{event.name}': {e}")
            raise StoreError('insert', e) from e

        logger.debug(f"Inserted event {event_id}: {event.name}")
        return self._item_to_persisted_event(item)

    def _query_first(self, operation: str, index_name: str, attribute: str,
                     value: str) -> Optional[PersistedEvent]:
        try:
            response = self.table.query(
                IndexName=index_name,
                KeyConditionExpression=Key(attribute).eq(value),
                Limit=1
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error querying {index_name}: {e}")
            raise StoreError(operation, e) from e

        items = response.get('Items', [])
        if not items:
            return None
        return self._item_to_persisted_event(items[0])

    def _event_to_item(self, event: CanonicalEvent, event_id: str,
                       timestamp: str) -> dict:
        """
        Convert CanonicalEvent to DynamoDB item.

        Optional attributes are omitted rather than stored as null so the
        sparse url index only holds events that have a URL.
        """
        item = {
            'event_id': event_id,
            'name': event.name,
            'name_date_key': name_date_key(event.name, event.start_date),
            'source_type': event.source_type,
            'created_at': timestamp,
            'updated_at': timestamp,
        }

        optional = {
            'event_type': event.event_type,
            'start_date': event.start_date.isoformat() if event.start_date else None,
            'end_date': event.end_date.isoformat() if event.end_date else None,
            'description': event.description,
            'location': event.location,
            'url': event.url,
            'image_url': event.image_url,
        }
        for key, value in optional.items():
            if value:
                item[key] = value

        if event.has_coordinates:
            item['latitude'] = Decimal(str(event.latitude))
            item['longitude'] = Decimal(str(event.longitude))

        return item

    def _item_to_persisted_event(self, item: dict) -> PersistedEvent:
        event_id = str(item.get('event_id', ''))

        def as_date(key):
            value = item.get(key)
            if value is None or value == '':
                return None
            parsed = parse_date(value)
            if parsed is None:
                logger.warning(f"Ignoring unreadable {key} {value!r} on event {event_id}")
            return parsed

        def as_float(key):
            value = item.get(key)
            if value is None:
                return None
            try:
                return float(value)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring unreadable {key} {value!r} on event {event_id}")
                return None

        def as_text(key):
            value = item.get(key)
            return value if isinstance(value, str) else None

        return PersistedEvent(
            event_id=event_id,
            name=as_text('name') or '',
            source_type=as_text('source_type'),
            event_type=as_text('event_type'),
            start_date=as_date('start_date'),
            end_date=as_date('end_date'),
            description=as_text('description'),
            location=as_text('location'),
            url=as_text('url'),
            image_url=as_text('image_url'),
            latitude=as_float('latitude'),
            longitude=as_float('longitude'),
            created_at=as_text('created_at') or '',
            updated_at=as_text('updated_at') or '',
        )
