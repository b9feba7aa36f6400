"""
Achievement Service - Business Logic

Entry points:
- dispatch(): run the evaluator families for a user action and return the
  earned-but-unseen achievements
- fetch_unseen_earned() / mark_seen() / schedule_mark_seen(): notification surface
- get_user_achievements() / calculate_total_points() / list_earned_achievements():
  read accessors

Evaluation is best-effort: nothing here may fail the caller's primary action.
"""

import asyncio
from datetime import datetime
from typing import List, Dict, Any, Optional, Iterable, Set
import logging

from pydantic import ValidationError

from achievement_service import dynamo, dynamo_achievements
from achievement_service.config import get_settings
from achievement_service.exceptions import DataAccessError
from achievement_service.logic.catalog import ACTION_FAMILIES, CATEGORIES, ModuleAchievementConfig
from achievement_service.logic.evaluators import EVALUATORS, EvaluationContext
from achievement_service.schemas_achievements import AchievementDefinition

logger = logging.getLogger(__name__)

# Keeps references to scheduled mark-seen tasks until they finish
_background_tasks: Set[asyncio.Task] = set()


# ============================================================================
# Catalog
# ============================================================================

def load_catalog() -> List[AchievementDefinition]:
    """
    Load every achievement definition (active and inactive) from the catalog.
    
    Invalid catalog items are skipped with a warning.
    """
    catalog = []
    for item in dynamo.get_catalog_items():
        try:
            catalog.append(AchievementDefinition(**item))
        except ValidationError as e:
            logger.warning(f"Skipping invalid catalog item {item.get('SK')}: {e}")
    
    logger.debug(f"Loaded {len(catalog)} achievement definitions")
    return catalog


def _with_status(
    definition: AchievementDefinition,
    row: Optional[Dict[str, Any]]
) -> Dict[str, Any]:
    """Join a definition with the user's ledger row"""
    entry = definition.model_dump()
    
    if row and row.get('earned_at'):
        status = 'earned'
    elif row and row.get('progress_current', 0) > 0:
        status = 'in_progress'
    else:
        status = 'locked'
    
    entry.update({
        'status': status,
        'earned_at': row.get('earned_at') if row else None,
        'progress_current': row.get('progress_current') if row else None,
        'progress_target': row.get('progress_target') if row else None,
        'notification_seen': row.get('notification_seen') if row else None,
    })
    return entry


# ============================================================================
# Dispatcher
# ============================================================================

async def dispatch(
    user_id: str,
    action_kind: str,
    action_data: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
    module_config: Optional[ModuleAchievementConfig] = None
) -> List[Dict[str, Any]]:
    """
    Evaluate achievements after a qualifying action.
    
    Must be called after the triggering fact is persisted. Unknown action
    kinds run no evaluator. Evaluator failures are logged and isolated.
    
    Returns:
        Earned achievements the user has not seen yet, newest first.
        Empty list if even that lookup fails.
    """
    log_context = {
        'event': 'achievement_dispatch',
        'user_id': user_id,
        'action_kind': action_kind,
        'action_data': action_data or {},
    }
    logger.info(f"🔍 Checking achievements for {user_id} - action: {action_kind}", extra=log_context)
    
    families = ACTION_FAMILIES.get(action_kind)
    catalog: Optional[List[AchievementDefinition]] = None
    
    if families is None:
        logger.debug(f"No evaluators for action {action_kind}, skipping", extra=log_context)
    else:
        try:
            catalog = load_catalog()
        except Exception as e:
            logger.error(f"Could not load achievement catalog: {str(e)}", extra=log_context, exc_info=True)
            emit_metric('AchievementEvaluationErrors', 1)
        
        if catalog is not None:
            ctx = EvaluationContext(user_id, catalog, now=now, module_config=module_config)
            newly_earned = 0
            
            for family in families:
                try:
                    results = await EVALUATORS[family](ctx)
                    newly_earned += sum(1 for r in results if r.get('newly_earned'))
                except DataAccessError as e:
                    logger.warning(f"Evaluator {family} skipped: {str(e)}", extra=log_context)
                    emit_metric('AchievementEvaluationErrors', 1)
                except Exception as e:
                    logger.error(f"Evaluator {family} failed: {str(e)}", extra=log_context, exc_info=True)
                    emit_metric('AchievementEvaluationErrors', 1)
            
            emit_metric('AchievementsEarned', newly_earned)
    
    try:
        unseen = fetch_unseen_earned(user_id, catalog=catalog)
    except Exception as e:
        logger.error(f"Error fetching unseen achievements: {str(e)}", extra=log_context, exc_info=True)
        return []
    
    if unseen:
        logger.info(f"🎉 {len(unseen)} new achievements for user {user_id}", extra=log_context)
    return unseen


# ============================================================================
# Notification Surface
# ============================================================================

def fetch_unseen_earned(
    user_id: str,
    catalog: Optional[List[AchievementDefinition]] = None
) -> List[Dict[str, Any]]:
    """
    Earned achievements whose notification was not acknowledged, newest first.
    """
    rows = dynamo_achievements.get_unseen_earned(user_id)
    if not rows:
        return []
    
    definitions = {d.id: d for d in (catalog if catalog is not None else load_catalog())}
    
    unseen = []
    for row in rows:
        definition = definitions.get(row['achievement_id'])
        if definition is None:
            logger.warning(f"Ledger row for unknown achievement {row['achievement_id']} (user {user_id})")
            continue
        unseen.append(_with_status(definition, row))
    return unseen


def mark_seen(user_id: str, achievement_ids: Optional[Iterable[int]] = None) -> int:
    """
    Acknowledge achievement notifications.
    
    Args:
        achievement_ids: Ids to mark; None or empty marks every unseen earned one
    
    Returns:
        Number of ledger rows marked
    """
    ids = list(achievement_ids or [])
    if not ids:
        ids = [row['achievement_id'] for row in dynamo_achievements.get_unseen_earned(user_id)]
    if not ids:
        return 0
    return dynamo_achievements.mark_seen(user_id, ids)


async def _mark_seen_with_retry(user_id: str, achievement_ids: List[int]) -> int:
    settings = get_settings()
    attempts = max(1, settings.MARK_SEEN_MAX_ATTEMPTS)
    
    for attempt in range(1, attempts + 1):
        try:
            return mark_seen(user_id, achievement_ids)
        except Exception as e:
            logger.warning(f"Mark-seen attempt {attempt}/{attempts} failed for {user_id}: {str(e)}")
            if attempt < attempts:
                await asyncio.sleep(settings.MARK_SEEN_RETRY_DELAY_SECONDS * attempt)
    
    logger.error(f"Giving up marking achievements {achievement_ids} seen for {user_id}")
    emit_metric('AchievementMarkSeenFailures', 1)
    return 0


def schedule_mark_seen(user_id: str, achievement_ids: Iterable[int]) -> Optional[asyncio.Task]:
    """
    Mark achievements seen in the background (best-effort, non-blocking).
    
    Retries a bounded number of times; a final failure only means the
    notification shows again on the next load.
    
    Must be called from a running event loop.
    """
    ids = list(achievement_ids)
    if not ids:
        return None
    
    task = asyncio.create_task(_mark_seen_with_retry(user_id, ids))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


# ============================================================================
# Read accessors
# ============================================================================

def calculate_level(total_points: int, points_per_level: Optional[int] = None) -> int:
    """Level from score: floor(points / 100) + 1"""
    per_level = points_per_level or get_settings().XP_PER_LEVEL
    return max(0, total_points) // per_level + 1


def calculate_total_points(
    user_id: str,
    catalog: Optional[List[AchievementDefinition]] = None,
    rows: Optional[Iterable[Dict[str, Any]]] = None
) -> int:
    """Sum of points over every earned achievement"""
    if rows is None:
        rows = dynamo_achievements.get_user_progress(user_id)
    if catalog is None:
        catalog = load_catalog()
    
    points = {d.id: d.points for d in catalog}
    return sum(
        points.get(row['achievement_id'], 0)
        for row in rows
        if row.get('earned_at')
    )


def get_user_achievements(user_id: str) -> Dict[str, Any]:
    """
    Full achievement status for a user.
    
    Returns:
        {
            'achievements': {'progress': [...], ..., 'social': [...], 'all': [...]},
            'total_points': int,
            'level': int
        }
    """
    catalog = load_catalog()
    rows = {row['achievement_id']: row for row in dynamo_achievements.get_user_progress(user_id)}
    
    active = sorted(
        (d for d in catalog if d.active),
        key=lambda d: (d.display_order, d.category)
    )
    entries = [_with_status(d, rows.get(d.id)) for d in active]
    
    grouped: Dict[str, List[Dict[str, Any]]] = {
        category: [e for e in entries if e['category'] == category]
        for category in CATEGORIES
    }
    grouped['all'] = entries
    
    total_points = calculate_total_points(user_id, catalog=catalog, rows=rows.values())
    
    return {
        'achievements': grouped,
        'total_points': total_points,
        'level': calculate_level(total_points),
    }


def list_earned_achievements(user_id: str) -> List[Dict[str, Any]]:
    """Earned achievements (name, icon, points, earned_at), newest first"""
    definitions = {d.id: d for d in load_catalog()}
    earned = []
    
    for row in dynamo_achievements.get_user_progress(user_id):
        definition = definitions.get(row['achievement_id'])
        if not row.get('earned_at') or definition is None:
            continue
        earned.append({
            'achievement_id': definition.id,
            'name': definition.name,
            'icon': definition.icon,
            'points': definition.points,
            'earned_at': row['earned_at'],
        })
    
    earned.sort(key=lambda e: e['earned_at'], reverse=True)
    return earned


# ============================================================================
# Utility Functions
# ============================================================================

def emit_metric(metric_name: str, value: float):
    """Emit a counter as a structured log line"""
    logger.info(f"METRIC: {metric_name} = {value}")
