"""Shared fixtures for the sync tests."""
import os
from unittest.mock import patch

import boto3
import pytest
from moto import mock_aws

from storage.event_store import DynamoDBEventStore
from storage.sync_status import SyncStatusRecorder

REGION = 'us-east-1'
EVENTS_TABLE = 'test-events'
STATUS_TABLE = 'test-sync-status'


def create_events_table(dynamodb, table_name: str = EVENTS_TABLE):
    """Create the events table with its two lookup indexes."""
    throughput = {'ReadCapacityUnits': 5, 'WriteCapacityUnits': 5}
    return dynamodb.create_table(
        TableName=table_name,
        KeySchema=[
            {'AttributeName': 'event_id', 'KeyType': 'HASH'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'event_id', 'AttributeType': 'S'},
            {'AttributeName': 'url', 'AttributeType': 'S'},
            {'AttributeName': 'name_date_key', 'AttributeType': 'S'}
        ],
        GlobalSecondaryIndexes=[
            {
                'IndexName': 'url-index',
                'KeySchema': [{'AttributeName': 'url', 'KeyType': 'HASH'}],
                'Projection': {'ProjectionType': 'ALL'},
                'ProvisionedThroughput': throughput
            },
            {
                'IndexName': 'name-date-index',
                'KeySchema': [{'AttributeName': 'name_date_key', 'KeyType': 'HASH'}],
                'Projection': {'ProjectionType': 'ALL'},
                'ProvisionedThroughput': throughput
            }
        ],
        BillingMode='PROVISIONED',
        ProvisionedThroughput=throughput
    )


def create_status_table(dynamodb, table_name: str = STATUS_TABLE):
    return dynamodb.create_table(
        TableName=table_name,
        KeySchema=[{'AttributeName': 'name', 'KeyType': 'HASH'}],
        AttributeDefinitions=[{'AttributeName': 'name', 'AttributeType': 'S'}],
        BillingMode='PAY_PER_REQUEST'
    )


@pytest.fixture
def aws_credentials():
    """Fake credentials so boto3 never reaches a real account."""
    env_vars = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': REGION
    }
    with patch.dict(os.environ, env_vars):
        yield


@pytest.fixture
def dynamodb(aws_credentials):
    """Mocked DynamoDB resource with the events and status tables."""
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name=REGION)
        create_events_table(resource)
        create_status_table(resource)
        yield resource


@pytest.fixture
def event_store(dynamodb):
    return DynamoDBEventStore(EVENTS_TABLE, region_name=REGION)


@pytest.fixture
def status_recorder(dynamodb):
    return SyncStatusRecorder(STATUS_TABLE, region_name=REGION)
