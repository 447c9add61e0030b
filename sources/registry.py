"""Construction of the configured source adapters."""
import logging
from typing import List

import requests

from sources.base import EventSource
from sources.connpass import ConnpassSource
from sources.doorkeeper import DoorkeeperSource
from sources.peatix import PeatixSource
from sync_config import SyncConfig

logger = logging.getLogger(__name__)


def build_sources(config: SyncConfig, session: requests.Session) -> List[EventSource]:
    """
    Instantiate an adapter for every source named in the configuration.

    Args:
        config: Sync configuration
        session: HTTP session shared by all adapters

    Returns:
        List of adapters in configuration order; unknown names are skipped
    """
    factories = {
        'connpass': lambda: ConnpassSource(
            session,
            api_key=config.connpass_api_key,
            base_url=config.connpass_url,
            timeout=config.timeout_seconds,
        ),
        'doorkeeper': lambda: DoorkeeperSource(
            session,
            token=config.doorkeeper_token,
            base_url=config.doorkeeper_url,
            timeout=config.timeout_seconds,
        ),
        'peatix': lambda: PeatixSource(
            session,
            base_url=config.peatix_url,
            timeout=config.timeout_seconds,
        ),
    }

    sources = []
    for name in config.sources:
        factory = factories.get(name)
        if factory is None:
            logger.warning(f"Ignoring unknown event source: {name}")
            continue
        sources.append(factory())
    return sources
