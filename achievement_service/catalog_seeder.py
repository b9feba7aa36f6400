"""
Idempotent achievement catalog seeder

Safe to run repeatedly:
- Missing definitions are created
- Existing definitions get presentation fields refreshed (name, description,
  icon, points, active, display_order)
- condition_value, category and condition_type of an existing definition are
  never changed; ledger rows snapshot them
"""
import logging
from typing import List, Dict, Any, Optional, Tuple
from botocore.exceptions import ClientError

from achievement_service import dynamo
from achievement_service.schemas_achievements import AchievementDefinition

logger = logging.getLogger(__name__)

PRESENTATION_FIELDS = ('name', 'description', 'icon', 'points', 'active', 'display_order')
RULE_FIELDS = ('category', 'condition_type', 'condition_value')


def create_table_if_not_exists() -> bool:
    """
    Create the achievements table (useful for LocalStack / local development)
    
    Returns:
        True if the table was created, False if it already existed
    """
    client = dynamo.db_client.dynamodb.meta.client
    table_name = dynamo.settings.DYNAMODB_ACHIEVEMENTS_TABLE
    
    try:
        client.describe_table(TableName=table_name)
        return False
    except ClientError:
        dynamo.db_client.dynamodb.create_table(
            TableName=table_name,
            KeySchema=[
                {'AttributeName': 'PK', 'KeyType': 'HASH'},
                {'AttributeName': 'SK', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'PK', 'AttributeType': 'S'},
                {'AttributeName': 'SK', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )
        logger.info(f"Created table {table_name}")
        return True


class CatalogSeeder:
    """
    Upserts achievement definitions into the catalog partition.
    """
    
    def __init__(self, strict_mode: bool = False):
        """
        Args:
            strict_mode: If True, raise when an existing definition has
                different rule fields instead of skipping it
        """
        self.strict_mode = strict_mode
        self.stats = {'created': 0, 'updated': 0, 'skipped': 0, 'errors': 0}
    
    def upsert_definition(
        self,
        data: Dict[str, Any],
        update_on_exist: bool = True
    ) -> Tuple[Optional[Dict[str, Any]], str]:
        """
        Insert or refresh one catalog definition
        
        Returns:
            Tuple of (item, action) where action is 'created', 'updated', 'skipped' or 'error'
        """
        definition = AchievementDefinition(**data)
        key = {'PK': dynamo.CATALOG_PK, 'SK': dynamo.build_achievement_sk(definition.id)}
        table = dynamo.db_client.achievements_table
        
        try:
            existing = table.get_item(Key=key).get('Item')
            
            if existing is None:
                item = {**key, **definition.model_dump()}
                table.put_item(
                    Item=dynamo.dynamodb_dict(item),
                    ConditionExpression='attribute_not_exists(PK)'
                )
                self.stats['created'] += 1
                return item, 'created'
            
            existing = dynamo.python_dict(existing)
            changed_rules = [
                field for field in RULE_FIELDS
                if existing.get(field) != getattr(definition, field)
            ]
            if changed_rules:
                message = (
                    f"Achievement {definition.id} already seeded with different "
                    f"{', '.join(changed_rules)}; rule fields are immutable"
                )
                if self.strict_mode:
                    raise ValueError(message)
                logger.warning(message)
                self.stats['skipped'] += 1
                return existing, 'skipped'
            
            if not update_on_exist:
                self.stats['skipped'] += 1
                return existing, 'skipped'
            
            names = {f"#{field}": field for field in PRESENTATION_FIELDS}
            values = {f":{field}": dynamo.dynamodb_value(getattr(definition, field)) for field in PRESENTATION_FIELDS}
            response = table.update_item(
                Key=key,
                UpdateExpression="SET " + ", ".join(f"#{f} = :{f}" for f in PRESENTATION_FIELDS),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW"
            )
            self.stats['updated'] += 1
            return dynamo.python_dict(response['Attributes']), 'updated'
            
        except ClientError as e:
            self.stats['errors'] += 1
            logger.error(f"Error upserting achievement {definition.id}: {str(e)}")
            if self.strict_mode:
                raise
            return None, 'error'
    
    def seed(self, definitions: List[Dict[str, Any]], update_on_exist: bool = True) -> Dict[str, int]:
        """Upsert every definition and return the stats"""
        for data in definitions:
            _, action = self.upsert_definition(data, update_on_exist=update_on_exist)
            logger.info(f"  {action}: achievement {data.get('id')} - {data.get('name')}")
        return self.get_stats()
    
    def get_stats(self) -> Dict[str, int]:
        """Get seeding statistics"""
        return self.stats.copy()
