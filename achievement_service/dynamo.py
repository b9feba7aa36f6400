"""
DynamoDB operations for achievements-service

Single-table design shared by:
- Achievement catalog (PK=CATALOG)
- Achievement ledger, completion facts and forum facts (PK=USER#<userId>)

Completion and forum items are written by other services; this module only
reads them.
"""
import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from typing import Optional, Dict, Any, List
from decimal import Decimal
import logging

from achievement_service.config import get_settings
from achievement_service.exceptions import DataAccessError

settings = get_settings()
logger = logging.getLogger(__name__)

CATALOG_PK = "CATALOG"
ACHIEVEMENT_SK_PREFIX = "ACHIEVEMENT#"
TOPIC_SK_PREFIX = "TOPIC#"
FORUM_SK_PREFIX = "FORUM#"


class DynamoDBClient:
    """DynamoDB client with lazy initialization"""
    
    def __init__(self):
        self.settings = settings
        self._dynamodb = None
        self._achievements_table = None
    
    @property
    def dynamodb(self):
        """Lazy initialization of DynamoDB resource"""
        if self._dynamodb is None:
            kwargs = {
                'region_name': self.settings.AWS_REGION,
            }
            
            # Only use endpoint_url for LocalStack
            if self.settings.DYNAMODB_ENDPOINT:
                kwargs['endpoint_url'] = self.settings.DYNAMODB_ENDPOINT
            
            # Only pass explicit credentials if we're in LocalStack mode (endpoint set)
            # In ECS, boto3 automatically uses the IAM role
            if self.settings.DYNAMODB_ENDPOINT and self.settings.AWS_ACCESS_KEY_ID:
                kwargs['aws_access_key_id'] = self.settings.AWS_ACCESS_KEY_ID
                kwargs['aws_secret_access_key'] = self.settings.AWS_SECRET_ACCESS_KEY
                logger.info("Using explicit AWS credentials (LocalStack mode)")
            else:
                logger.info("Using IAM role credentials (AWS/ECS mode)")
            
            self._dynamodb = boto3.resource('dynamodb', **kwargs)
        return self._dynamodb
    
    @property
    def achievements_table(self):
        if self._achievements_table is None:
            self._achievements_table = self.dynamodb.Table(self.settings.DYNAMODB_ACHIEVEMENTS_TABLE)
        return self._achievements_table
    
    def reset(self):
        """Drop cached resources (used when the endpoint or credentials change, e.g. in tests)"""
        self._dynamodb = None
        self._achievements_table = None


# Global instance
db_client = DynamoDBClient()


# ============= KEY BUILDERS =============

def get_user_pk(user_id: str) -> str:
    """
    Get PK for user-scoped items.
    
    Returns:
        PK string: "USER#{user_id}"
    """
    return f"USER#{user_id}"


def build_achievement_sk(achievement_id: int) -> str:
    """
    Build sort key for catalog and ledger items.
    
    Zero-padded so catalog queries come back in id order.
    
    Example:
        >>> build_achievement_sk(7)
        "ACHIEVEMENT#0007"
    """
    return f"{ACHIEVEMENT_SK_PREFIX}{int(achievement_id):04d}"


def parse_achievement_sk(sk: str) -> int:
    """Inverse of build_achievement_sk"""
    return int(sk.replace(ACHIEVEMENT_SK_PREFIX, ''))


# ============= QUERIES =============

def query_partition(pk: str, sk_prefix: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Query every item of a partition, following pagination.
    
    Args:
        pk: Partition key
        sk_prefix: Optional SK prefix to filter (e.g., "TOPIC#", "ACHIEVEMENT#")
    
    Returns:
        List of items converted to plain Python values
    
    Raises:
        DataAccessError: If the DynamoDB query fails
    """
    condition = Key('PK').eq(pk)
    if sk_prefix:
        condition = condition & Key('SK').begins_with(sk_prefix)
    
    kwargs = {'KeyConditionExpression': condition}
    items: List[Dict[str, Any]] = []
    
    try:
        while True:
            response = db_client.achievements_table.query(**kwargs)
            items.extend(python_dict(item) for item in response.get('Items', []))
            
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                break
            kwargs['ExclusiveStartKey'] = last_key
    except ClientError as e:
        logger.error(f"Error querying partition {pk} ({sk_prefix}): {str(e)}")
        raise DataAccessError("query_partition", str(e)) from e
    
    return items


def get_catalog_items() -> List[Dict[str, Any]]:
    """Get every achievement definition item from the catalog partition"""
    return query_partition(CATALOG_PK, ACHIEVEMENT_SK_PREFIX)


def get_completion_history(user_id: str) -> List[Dict[str, Any]]:
    """
    Get topic completion facts for a user.
    
    Returns:
        List of {topic_id, completed, completed_at}; completed_at is an ISO
        string or None
    """
    items = query_partition(get_user_pk(user_id), TOPIC_SK_PREFIX)
    
    history = []
    for item in items:
        history.append({
            'topic_id': str(item.get('topic_id', item['SK'].replace(TOPIC_SK_PREFIX, ''))),
            'completed': bool(item.get('completed', False)),
            'completed_at': item.get('completed_at'),
        })
    
    logger.debug(f"Loaded {len(history)} completion facts for user {user_id}")
    return history


def get_forum_activity(user_id: str) -> List[Dict[str, Any]]:
    """
    Get forum activity facts for a user.
    
    Returns:
        List of {activity_id, activity_type, created_at}
    """
    items = query_partition(get_user_pk(user_id), FORUM_SK_PREFIX)
    
    return [
        {
            'activity_id': item.get('activity_id', item['SK'].replace(FORUM_SK_PREFIX, '')),
            'activity_type': item.get('activity_type'),
            'created_at': item.get('created_at'),
        }
        for item in items
    ]


# ============= HELPER FUNCTIONS =============

def dynamodb_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert Python dict to DynamoDB compatible dict (handles Decimal)"""
    return {k: dynamodb_value(v) for k, v in data.items()}


def dynamodb_value(value: Any) -> Any:
    """Convert Python value to DynamoDB compatible value"""
    if isinstance(value, float):
        return Decimal(str(value))
    elif isinstance(value, dict):
        return {k: dynamodb_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [dynamodb_value(item) for item in value]
    return value


def python_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert DynamoDB dict to Python dict (handles Decimal)"""
    return {k: python_value(v) for k, v in data.items()}


def python_value(value: Any) -> Any:
    """Convert DynamoDB value to Python value"""
    if isinstance(value, Decimal):
        return int(value) if value % 1 == 0 else float(value)
    elif isinstance(value, dict):
        return {k: python_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [python_value(item) for item in value]
    return value
