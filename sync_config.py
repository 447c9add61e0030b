"""Environment-driven configuration for the external events sync."""
import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_SOURCES = ['connpass', 'doorkeeper', 'peatix']


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {key}: {raw!r}; using {default}")
        return default


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {key}: {raw!r}; using {default}")
        return default


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_str(env: Mapping[str, str], key: str) -> Optional[str]:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


@dataclass
class SyncConfig:
    """Settings consumed by the sync job; credentials are optional."""
    table_name: str = 'events'
    status_table_name: Optional[str] = None
    aws_region: Optional[str] = None
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    sources: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))

    connpass_url: Optional[str] = None
    connpass_api_key: Optional[str] = None
    doorkeeper_url: Optional[str] = None
    doorkeeper_token: Optional[str] = None
    peatix_url: Optional[str] = None

    enrichment_enabled: bool = False
    geocoder_domain: Optional[str] = None
    geocoder_user_agent: Optional[str] = None
    geocoder_min_delay_seconds: float = 1.0
    image_search_url: Optional[str] = None
    image_search_api_key: Optional[str] = None
    enrichment_timeout_seconds: float = 5.0
    enrichment_max_concurrency: int = 4

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'SyncConfig':
        """
        Build configuration from environment variables.

        Args:
            env: Mapping to read from (default: os.environ)

        Returns:
            SyncConfig instance
        """
        if env is None:
            env = os.environ

        sources_raw = env.get('SOURCES')
        if sources_raw:
            sources = [s.strip().lower() for s in sources_raw.split(',') if s.strip()]
        else:
            sources = list(DEFAULT_SOURCES)

        return cls(
            table_name=env.get('TABLE_NAME', 'events'),
            status_table_name=_env_str(env, 'STATUS_TABLE_NAME'),
            aws_region=_env_str(env, 'AWS_REGION'),
            log_level=env.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=_env_int(env, 'TIMEOUT_SECONDS', 30),
            sources=sources,
            connpass_url=_env_str(env, 'CONNPASS_URL'),
            connpass_api_key=_env_str(env, 'CONNPASS_API_KEY'),
            doorkeeper_url=_env_str(env, 'DOORKEEPER_URL'),
            doorkeeper_token=_env_str(env, 'DOORKEEPER_TOKEN'),
            peatix_url=_env_str(env, 'PEATIX_URL'),
            enrichment_enabled=_env_bool(env, 'ENRICHMENT_ENABLED', False),
            geocoder_domain=_env_str(env, 'GEOCODER_DOMAIN'),
            geocoder_user_agent=_env_str(env, 'GEOCODER_USER_AGENT'),
            geocoder_min_delay_seconds=_env_float(
                env, 'GEOCODER_MIN_DELAY_SECONDS', 1.0
            ),
            image_search_url=_env_str(env, 'IMAGE_SEARCH_URL'),
            image_search_api_key=_env_str(env, 'IMAGE_SEARCH_API_KEY'),
            enrichment_timeout_seconds=_env_float(
                env, 'ENRICHMENT_TIMEOUT_SECONDS', 5.0
            ),
            enrichment_max_concurrency=max(
                1, _env_int(env, 'ENRICHMENT_MAX_CONCURRENCY', 4)
            ),
        )
