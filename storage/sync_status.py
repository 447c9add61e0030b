"""Summary of the last completed sync run, per source."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from processor.models import StoreError, SyncResult

logger = logging.getLogger(__name__)


class SyncStatusRecorder:
    """
    Record the outcome of completed sync runs in a small status table.

    The table is keyed by ``name``: one item per source plus a ``__run__``
    item holding the time of the last run and its counts.
    """

    RUN_KEY = '__run__'

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        self.table_name = table_name
        if region_name:
            self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        else:
            self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)

    def record(self, result: SyncResult) -> None:
        """
        Store the per-source status of a finished run.

        A failing source keeps the ``last_success`` of its previous item.
        Previous items are read before anything is written, so a failed read
        leaves the table as the last run left it.

        Args:
            result: Result of the completed run

        Raises:
            StoreError: If reading or writing the status table fails
        """
        finished = result.finished_at or datetime.now(timezone.utc)
        finished_at = finished.isoformat(timespec='seconds')

        try:
            previous_success = {
                report.source: self._last_success(report.source)
                for report in result.sources
                if not report.succeeded
            }

            with self.table.batch_writer() as writer:
                for report in result.sources:
                    item = {
                        'name': report.source,
                        'status': 'active' if report.succeeded else 'failing',
                        'last_attempt': finished_at,
                        'fetched': report.fetched,
                    }
                    if report.succeeded:
                        item['last_success'] = finished_at
                    else:
                        item['last_error'] = report.error
                        if previous_success.get(report.source):
                            item['last_success'] = previous_success[report.source]
                    writer.put_item(Item=item)

                writer.put_item(Item={
                    'name': self.RUN_KEY,
                    'last_sync': finished_at,
                    'fetched': result.fetched,
                    'inserted': result.inserted,
                    'skipped': result.skipped,
                    'failed': result.failed,
                })
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error recording sync status: {e}")
            raise StoreError('record_status', e) from e

        logger.info(f"Recorded sync status for {len(result.sources)} sources")

    def get_status(self) -> Dict[str, Any]:
        """
        Read the status document of the last completed run.

        Returns:
            ``{"last_sync": str | None, "sources": [...]}``

        Raises:
            StoreError: If the scan fails
        """
        try:
            response = self.table.scan()
            items = response.get('Items', [])
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error reading sync status: {e}")
            raise StoreError('get_status', e) from e

        last_sync = None
        sources = []
        for item in items:
            if item['name'] == self.RUN_KEY:
                last_sync = item.get('last_sync')
                continue
            sources.append({
                'name': item['name'],
                'status': item.get('status'),
                'last_success': item.get('last_success'),
                'last_error': item.get('last_error'),
            })

        sources.sort(key=lambda source: source['name'])
        return {'last_sync': last_sync, 'sources': sources}

    def _last_success(self, name: str) -> Optional[str]:
        response = self.table.get_item(Key={'name': name})
        return response.get('Item', {}).get('last_success')
