"""
Shared fixtures: moto-backed achievements table and fact helpers
"""
import pytest
from moto import mock_aws
import boto3

from achievement_service import dynamo
from achievement_service.config import get_settings
from achievement_service.logic.catalog import DEFAULT_ACHIEVEMENTS


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create the mock achievements table"""
    with mock_aws():
        dynamo.db_client.reset()
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        
        table = dynamodb.create_table(
            TableName=get_settings().DYNAMODB_ACHIEVEMENTS_TABLE,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"}
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"}
            ],
            BillingMode="PAY_PER_REQUEST"
        )
        
        yield table
        
        dynamo.db_client.reset()


@pytest.fixture
def seeded_table(dynamodb_table):
    """Table with the default achievement catalog"""
    for definition in DEFAULT_ACHIEVEMENTS:
        put_definition(dynamodb_table, definition)
    return dynamodb_table


def put_definition(table, definition, **overrides):
    item = {
        "description": "",
        "active": True,
        "display_order": definition["id"],
        **definition,
        **overrides,
    }
    item["PK"] = dynamo.CATALOG_PK
    item["SK"] = dynamo.build_achievement_sk(item["id"])
    table.put_item(Item=item)


def put_completion(table, user_id, topic_id, completed_at, completed=True):
    table.put_item(Item={
        "PK": dynamo.get_user_pk(user_id),
        "SK": f"{dynamo.TOPIC_SK_PREFIX}{topic_id}",
        "topic_id": str(topic_id),
        "completed": completed,
        "completed_at": completed_at,
    })


def put_forum_activity(table, user_id, activity_id, activity_type, created_at="2025-03-10T12:00:00+00:00"):
    table.put_item(Item={
        "PK": dynamo.get_user_pk(user_id),
        "SK": f"{dynamo.FORUM_SK_PREFIX}{activity_id}",
        "activity_id": activity_id,
        "activity_type": activity_type,
        "created_at": created_at,
    })
