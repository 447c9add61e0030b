"""AWS Lambda handler for the external events sync."""
import json
import logging
import time
from typing import Any, Dict

from processor.enrichment import Enricher
from processor.models import StoreError
from processor.sync_coordinator import SyncCoordinator
from sources.base import create_session
from sources.registry import build_sources
from storage.dedup_writer import DedupWriter
from storage.event_store import DynamoDBEventStore
from storage.sync_status import SyncStatusRecorder
from sync_config import SyncConfig


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {
        'message', 'asctime'
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        # Fields passed through `extra=`
        for key, value in vars(record).items():
            if key not in self.RESERVED and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps(body, default=str)
    }


def build_coordinator(config: SyncConfig) -> SyncCoordinator:
    """
    Wire adapters, enrichment and the deduplicating store for one run.

    Args:
        config: Sync configuration

    Returns:
        Ready-to-run SyncCoordinator
    """
    session = create_session()
    store = DynamoDBEventStore(
        table_name=config.table_name,
        region_name=config.aws_region
    )
    enricher = None
    if config.enrichment_enabled:
        enricher = Enricher.from_config(config, session)

    return SyncCoordinator(
        sources=build_sources(config, session),
        writer=DedupWriter(store),
        enricher=enricher
    )


def handle_sync(config: SyncConfig) -> Dict[str, Any]:
    """Run one sync and build the response envelope."""
    logger = logging.getLogger(__name__)
    start_time = time.time()

    coordinator = build_coordinator(config)
    logger.info("Synchronizing external events")
    result = coordinator.run()

    if config.status_table_name:
        try:
            SyncStatusRecorder(
                config.status_table_name,
                region_name=config.aws_region
            ).record(result)
        except StoreError as e:
            logger.warning(f"Sync status not recorded: {e}")

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events_inserted': result.inserted,
            'events_skipped': result.skipped,
            'errors': result.errors
        }
    )

    return _response(200, {
        'message': 'External events synced successfully',
        'synced_count': result.inserted,
        'statistics': {
            'events_fetched': result.fetched,
            'events_inserted': result.inserted,
            'events_skipped': result.skipped,
            'events_failed': result.failed,
            'sources': [
                {
                    'name': report.source,
                    'fetched': report.fetched,
                    'status': 'ok' if report.succeeded else 'failed'
                }
                for report in result.sources
            ],
            'duration_seconds': round(duration, 2)
        },
        'errors': result.errors
    })


def handle_status(config: SyncConfig) -> Dict[str, Any]:
    """Report the last recorded sync status."""
    if not config.status_table_name:
        return _response(200, {
            'last_sync': None,
            'sources': [{'name': name, 'status': 'unknown', 'last_success': None}
                        for name in config.sources]
        })

    recorder = SyncStatusRecorder(
        config.status_table_name,
        region_name=config.aws_region
    )
    return _response(200, recorder.get_status())


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for the external events sync.

    Authentication of the administrative caller happens before this
    function is invoked.

    Args:
        event: Invocation payload; ``action`` is ``sync`` (default) or ``status``
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    config = SyncConfig.from_env()

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    action = (event or {}).get('action', 'sync')
    logger.info(
        "Lambda execution started",
        extra={
            'action': action,
            'table_name': config.table_name,
            'sources': config.sources,
            'enrichment_enabled': config.enrichment_enabled
        }
    )

    if action not in ('sync', 'status'):
        logger.warning(f"Unknown action requested: {action}")
        return _response(400, {'message': f"Unknown action: {action}"})

    try:
        if action == 'status':
            return handle_status(config)
        return handle_sync(config)

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        message = (
            'Failed to read sync status' if action == 'status'
            else 'Failed to sync external events'
        )
        return _response(500, {
            'message': message,
            'error': str(e),
            'error_type': type(e).__name__
        })
