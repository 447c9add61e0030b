"""Unit tests for SyncConfig."""
from sync_config import DEFAULT_SOURCES, SyncConfig


def test_defaults_from_empty_environment():
    config = SyncConfig.from_env({})

    assert config.table_name == 'events'
    assert config.status_table_name is None
    assert config.log_level == 'INFO'
    assert config.timeout_seconds == 30
    assert config.sources == DEFAULT_SOURCES
    assert config.enrichment_enabled is False
    assert config.geocoder_domain is None
    assert config.geocoder_min_delay_seconds == 1.0
    assert config.enrichment_timeout_seconds == 5.0
    assert config.enrichment_max_concurrency == 4


def test_reads_environment_values():
    config = SyncConfig.from_env({
        'TABLE_NAME': 'prod-events',
        'STATUS_TABLE_NAME': 'prod-sync-status',
        'AWS_REGION': 'ap-northeast-1',
        'LOG_LEVEL': 'DEBUG',
        'TIMEOUT_SECONDS': '10',
        'SOURCES': 'Connpass, peatix,,',
        'CONNPASS_API_KEY': 'key',
        'DOORKEEPER_TOKEN': 'token',
        'ENRICHMENT_ENABLED': 'true',
        'GEOCODER_DOMAIN': 'nominatim.openstreetmap.org',
        'GEOCODER_MIN_DELAY_SECONDS': '2',
        'ENRICHMENT_TIMEOUT_SECONDS': '2.5',
        'ENRICHMENT_MAX_CONCURRENCY': '8',
    })

    assert config.table_name == 'prod-events'
    assert config.status_table_name == 'prod-sync-status'
    assert config.aws_region == 'ap-northeast-1'
    assert config.log_level == 'DEBUG'
    assert config.timeout_seconds == 10
    assert config.sources == ['connpass', 'peatix']
    assert config.connpass_api_key == 'key'
    assert config.doorkeeper_token == 'token'
    assert config.enrichment_enabled is True
    assert config.geocoder_domain == 'nominatim.openstreetmap.org'
    assert config.geocoder_min_delay_seconds == 2.0
    assert config.enrichment_timeout_seconds == 2.5
    assert config.enrichment_max_concurrency == 8


def test_invalid_numbers_fall_back_to_defaults():
    config = SyncConfig.from_env({
        'TIMEOUT_SECONDS': 'thirty',
        'ENRICHMENT_TIMEOUT_SECONDS': 'soon',
        'ENRICHMENT_MAX_CONCURRENCY': '0',
    })

    assert config.timeout_seconds == 30
    assert config.enrichment_timeout_seconds == 5.0
    assert config.enrichment_max_concurrency == 1


def test_blank_credentials_are_unset():
    config = SyncConfig.from_env({'CONNPASS_API_KEY': '  ', 'ENRICHMENT_ENABLED': 'no'})

    assert config.connpass_api_key is None
    assert config.enrichment_enabled is False
