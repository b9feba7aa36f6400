"""
Metric Evaluators

One evaluator per achievement family. Each evaluator:
1. Fetches the facts it needs for one user, once
2. Computes its metrics with logic.metrics
3. Matches active catalog definitions of its category via logic.catalog
4. Records progress through the ledger

Evaluators are independent; none reads another's results.
"""

from datetime import datetime, date
from typing import List, Dict, Any, Optional, Callable, Awaitable
import logging

from achievement_service import dynamo, dynamo_achievements, content_client
from achievement_service.config import get_settings
from achievement_service.logic import metrics
from achievement_service.logic.catalog import ModuleAchievementConfig, THRESHOLD_METRICS
from achievement_service.schemas_achievements import AchievementDefinition

logger = logging.getLogger(__name__)


class EvaluationContext:
    """Inputs shared by every evaluator of one dispatch."""
    
    def __init__(
        self,
        user_id: str,
        catalog: List[AchievementDefinition],
        now: Optional[datetime] = None,
        module_config: Optional[ModuleAchievementConfig] = None,
        tz_name: Optional[str] = None
    ):
        self.user_id = user_id
        self.catalog = catalog
        self.tz_name = tz_name or get_settings().ACHIEVEMENTS_TIMEZONE
        self.now = metrics.to_local(now, self.tz_name)
        self.module_config = module_config or ModuleAchievementConfig.from_settings()
    
    @property
    def today(self) -> date:
        return self.now.date()
    
    def definitions(self, category: str) -> List[AchievementDefinition]:
        """Active definitions of a category"""
        return [d for d in self.catalog if d.active and d.category == category]
    
    def record(self, achievement_id: int, current: int, target: int) -> Dict[str, Any]:
        return dynamo_achievements.upsert_progress(
            self.user_id, achievement_id, current, target, now=self.now
        )


def award_thresholds(
    ctx: EvaluationContext,
    category: str,
    values: Dict[str, int]
) -> List[Dict[str, Any]]:
    """
    Award every active definition of ``category`` whose threshold is met.
    
    Args:
        values: metric name -> computed value (see THRESHOLD_METRICS)
    
    Returns:
        Ledger records written
    """
    results = []
    for definition in ctx.definitions(category):
        metric_name = THRESHOLD_METRICS.get(definition.condition_type)
        if metric_name is None or metric_name not in values:
            continue
        
        value = values[metric_name]
        if value > 0 and definition.condition_value <= value:
            results.append(ctx.record(definition.id, value, definition.condition_value))
    
    logger.debug(f"{category} evaluation for {ctx.user_id}: {values} -> {len(results)} upserts")
    return results


# ============================================================================
# Families
# ============================================================================

async def evaluate_progress(ctx: EvaluationContext) -> List[Dict[str, Any]]:
    """Cumulative count of completed topics"""
    history = dynamo.get_completion_history(ctx.user_id)
    total = metrics.count_completed_topics(history)
    return award_thresholds(ctx, 'progress', {'topics_completed': total})


async def evaluate_modules(ctx: EvaluationContext) -> List[Dict[str, Any]]:
    """
    Per-module completion plus the "all modules" achievement.
    
    Modules without active topics are left out of the all-modules count.
    """
    history = dynamo.get_completion_history(ctx.user_id)
    modules = await content_client.get_modules()
    states = metrics.module_completion(modules, metrics.completed_topic_ids(history))
    
    active_ids = {d.id for d in ctx.definitions('module')}
    results = []
    
    for state in states:
        if not state['complete']:
            continue
        achievement_id = ctx.module_config.achievement_for(state['module_id'])
        if achievement_id in active_ids:
            results.append(ctx.record(achievement_id, 1, 1))
    
    counted = [s for s in states if s['total_topics'] > 0]
    complete = [s for s in counted if s['complete']]
    all_modules_id = ctx.module_config.all_modules_achievement_id
    
    if counted and len(complete) == len(counted) and all_modules_id in active_ids:
        results.append(ctx.record(all_modules_id, len(complete), len(counted)))
    
    logger.debug(f"Module evaluation for {ctx.user_id}: {len(complete)}/{len(counted)} complete")
    return results


async def evaluate_streak(ctx: EvaluationContext) -> List[Dict[str, Any]]:
    """Consecutive active days ending today or yesterday"""
    history = dynamo.get_completion_history(ctx.user_id)
    streak = metrics.compute_streak(metrics.completion_days(history, ctx.tz_name), ctx.today)
    return award_thresholds(ctx, 'streak', {'streak_days': streak})


async def evaluate_velocity(ctx: EvaluationContext) -> List[Dict[str, Any]]:
    """Topics completed today"""
    history = dynamo.get_completion_history(ctx.user_id)
    today_count = metrics.count_completed_on(history, ctx.today, ctx.tz_name)
    return award_thresholds(ctx, 'velocity', {'topics_today': today_count})


async def evaluate_time_of_day(ctx: EvaluationContext) -> List[Dict[str, Any]]:
    """Binary achievements for the hour of the evaluation instant"""
    matching = metrics.time_of_day_conditions(ctx.now.hour)
    return [
        ctx.record(definition.id, 1, 1)
        for definition in ctx.definitions('horario')
        if definition.condition_type in matching
    ]


async def evaluate_social(ctx: EvaluationContext) -> List[Dict[str, Any]]:
    """Forum replies and participations, awarded independently"""
    activity = dynamo.get_forum_activity(ctx.user_id)
    return award_thresholds(ctx, 'social', metrics.count_social_activity(activity))


EVALUATORS: Dict[str, Callable[[EvaluationContext], Awaitable[List[Dict[str, Any]]]]] = {
    'progress': evaluate_progress,
    'module': evaluate_modules,
    'streak': evaluate_streak,
    'velocity': evaluate_velocity,
    'horario': evaluate_time_of_day,
    'social': evaluate_social,
}
