"""
Achievement Ledger - DynamoDB Operations

DESIGN PRINCIPLES:
1. One item per (user, achievement) pair, no arrays
2. The "earned" transition is a single conditional UpdateItem (compare-and-set)
3. earned_at is never removed once written
4. notification_seen only flips false -> true outside the earn transition
"""

from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from botocore.exceptions import ClientError
import logging

from achievement_service import dynamo
from achievement_service.exceptions import DataAccessError

logger = logging.getLogger(__name__)


# ============================================================================
# DynamoDB Schema for ledger items
# ============================================================================
# PK: USER#{userId}
# SK: ACHIEVEMENT#{achievementId:04d}
#
# Attributes:
# - user_id: str
# - achievement_id: number
# - progress_current: number
# - progress_target: number (snapshot of the threshold at upsert time)
# - earned_at: str ISO timestamp (absent until earned)
# - notification_seen: bool
# - created_at / updated_at: str ISO timestamp
# ============================================================================


def _utc_iso(now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat()


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'


def upsert_progress(
    user_id: str,
    achievement_id: int,
    progress_current: int,
    progress_target: int,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Record progress for a (user, achievement) pair.
    
    - Missing row: created with the given progress, earned_at set iff
      progress_current >= progress_target, notification_seen = False.
    - Existing row: progress fields overwritten; earned_at and
      notification_seen are written only on the first earn.
    
    The earn transition is guarded by ``attribute_not_exists(earned_at)``, so
    concurrent writers cannot both fire it. A failed guard means the row is
    already earned and falls through to a progress-only update.
    
    Returns:
        Ledger record with an extra ``newly_earned`` flag
    
    Raises:
        DataAccessError: If DynamoDB rejects the write
    """
    pk = dynamo.get_user_pk(user_id)
    sk = dynamo.build_achievement_sk(achievement_id)
    now_iso = _utc_iso(now)
    current = int(progress_current)
    target = int(progress_target)
    
    set_parts = [
        "user_id = :user_id",
        "achievement_id = :achievement_id",
        "progress_current = :current",
        "progress_target = :target",
        "created_at = if_not_exists(created_at, :now)",
        "updated_at = :now",
    ]
    attr_values = {
        ":user_id": user_id,
        ":achievement_id": int(achievement_id),
        ":current": current,
        ":target": target,
        ":now": now_iso,
        ":false": False,
    }
    table = dynamo.db_client.achievements_table
    
    if current >= target:
        try:
            response = table.update_item(
                Key={'PK': pk, 'SK': sk},
                UpdateExpression="SET " + ", ".join(
                    set_parts + ["earned_at = :now", "notification_seen = :false"]
                ),
                ConditionExpression="attribute_not_exists(earned_at)",
                ExpressionAttributeValues=attr_values,
                ReturnValues="ALL_NEW"
            )
            record = dynamo.python_dict(response['Attributes'])
            record['newly_earned'] = True
            logger.info(f"🏆 Achievement {achievement_id} earned by user {user_id} ({current}/{target})")
            return record
        except ClientError as e:
            if not _is_conditional_failure(e):
                logger.error(f"Error earning achievement {achievement_id} for {user_id}: {str(e)}")
                raise DataAccessError("upsert_progress", str(e)) from e
            logger.debug(f"Achievement {achievement_id} already earned by {user_id}, updating progress only")
    
    try:
        response = table.update_item(
            Key={'PK': pk, 'SK': sk},
            UpdateExpression="SET " + ", ".join(
                set_parts + ["notification_seen = if_not_exists(notification_seen, :false)"]
            ),
            ExpressionAttributeValues=attr_values,
            ReturnValues="ALL_NEW"
        )
    except ClientError as e:
        logger.error(f"Error updating progress of achievement {achievement_id} for {user_id}: {str(e)}")
        raise DataAccessError("upsert_progress", str(e)) from e
    
    record = dynamo.python_dict(response['Attributes'])
    record['newly_earned'] = False
    return record


def get_progress(user_id: str, achievement_id: int) -> Optional[Dict[str, Any]]:
    """Get a single ledger row or None"""
    try:
        response = dynamo.db_client.achievements_table.get_item(
            Key={
                'PK': dynamo.get_user_pk(user_id),
                'SK': dynamo.build_achievement_sk(achievement_id)
            }
        )
    except ClientError as e:
        logger.error(f"Error getting achievement {achievement_id} for {user_id}: {str(e)}")
        raise DataAccessError("get_progress", str(e)) from e
    
    item = response.get('Item')
    return dynamo.python_dict(item) if item else None


def get_user_progress(user_id: str) -> List[Dict[str, Any]]:
    """Get every ledger row of a user"""
    items = dynamo.query_partition(dynamo.get_user_pk(user_id), dynamo.ACHIEVEMENT_SK_PREFIX)
    for item in items:
        item['achievement_id'] = int(item.get('achievement_id', dynamo.parse_achievement_sk(item['SK'])))
    return items


def get_unseen_earned(user_id: str) -> List[Dict[str, Any]]:
    """
    Ledger rows that are earned and not yet acknowledged, newest first.
    
    Filters in memory after a single partition query.
    """
    rows = [
        row for row in get_user_progress(user_id)
        if row.get('earned_at') and not row.get('notification_seen', False)
    ]
    rows.sort(key=lambda row: row['earned_at'], reverse=True)
    return rows


def mark_seen(user_id: str, achievement_ids: List[int]) -> int:
    """
    Set notification_seen = True on the given ledger rows.
    
    Rows that do not exist are skipped, never created.
    
    Returns:
        Number of rows updated
    """
    pk = dynamo.get_user_pk(user_id)
    marked = 0
    
    for achievement_id in achievement_ids:
        try:
            dynamo.db_client.achievements_table.update_item(
                Key={'PK': pk, 'SK': dynamo.build_achievement_sk(achievement_id)},
                UpdateExpression="SET notification_seen = :true",
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeValues={':true': True}
            )
            marked += 1
        except ClientError as e:
            if _is_conditional_failure(e):
                logger.debug(f"No ledger row for achievement {achievement_id} of {user_id}, skipping")
                continue
            logger.error(f"Error marking achievement {achievement_id} seen for {user_id}: {str(e)}")
            raise DataAccessError("mark_seen", str(e)) from e
    
    logger.info(f"Marked {marked} achievements as seen for user {user_id}")
    return marked
