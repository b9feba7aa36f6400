"""
Metric computation for achievement evaluation

Pure functions over facts already fetched by an evaluator:
- Cumulative topic count
- Per-module completion
- Day streak anchored on today or yesterday
- Topics completed today (velocity)
- Forum activity counts
- Time-of-day windows

No I/O here; every function is deterministic given its inputs.
"""
from datetime import datetime, date, timedelta, timezone
from typing import Optional, Dict, Any, List, Iterable, Set, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from achievement_service.logic.catalog import TIME_OF_DAY_WINDOWS, SOCIAL_ACTIVITY_METRICS

logger = logging.getLogger(__name__)


# ============================================================================
# Time helpers
# ============================================================================

def get_zone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA timezone, falling back to UTC"""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Invalid timezone {tz_name}, falling back to UTC: {e}")
        return ZoneInfo("UTC")


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO timestamp into an aware datetime.
    
    Naive values are taken as UTC. Returns None for empty or invalid input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            logger.warning(f"Ignoring invalid timestamp: {value}")
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_local(moment: Optional[datetime], tz_name: str) -> datetime:
    """Convert an instant (default: now) to the evaluation timezone"""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(get_zone(tz_name))


def local_date(value: Union[str, datetime, None], tz_name: str) -> Optional[date]:
    """Calendar date of a timestamp in the evaluation timezone"""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.astimezone(get_zone(tz_name)).date()


# ============================================================================
# Completion metrics
# ============================================================================

def completed_entries(history: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [entry for entry in history if entry.get('completed')]


def count_completed_topics(history: Iterable[Dict[str, Any]]) -> int:
    """Total topics ever marked complete"""
    return len(completed_entries(history))


def completed_topic_ids(history: Iterable[Dict[str, Any]]) -> Set[str]:
    return {str(entry['topic_id']) for entry in completed_entries(history)}


def completion_days(history: Iterable[Dict[str, Any]], tz_name: str) -> Set[date]:
    """Distinct calendar days with at least one completion"""
    days = set()
    for entry in completed_entries(history):
        day = local_date(entry.get('completed_at'), tz_name)
        if day is not None:
            days.add(day)
    return days


def compute_streak(days: Iterable[date], today: date) -> int:
    """
    Length of the current run of consecutive active days.
    
    The run is anchored on today if today has activity, otherwise on
    yesterday. Two inactive days in a row (today and yesterday) mean no
    current streak.
    
    Examples:
        >>> compute_streak({date(2025, 3, 10), date(2025, 3, 9), date(2025, 3, 8)}, date(2025, 3, 10))
        3
        >>> compute_streak({date(2025, 3, 9)}, date(2025, 3, 10))
        1
        >>> compute_streak({date(2025, 3, 10), date(2025, 3, 7)}, date(2025, 3, 10))
        1
    """
    active = set(days)
    if today in active:
        cursor = today
    elif today - timedelta(days=1) in active:
        cursor = today - timedelta(days=1)
    else:
        return 0
    
    streak = 0
    while cursor in active:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def count_completed_on(history: Iterable[Dict[str, Any]], day: date, tz_name: str) -> int:
    """Topics completed on a given calendar day (velocity)"""
    return sum(
        1 for entry in completed_entries(history)
        if local_date(entry.get('completed_at'), tz_name) == day
    )


def module_completion(
    modules: Iterable[Dict[str, Any]],
    completed_ids: Set[str]
) -> List[Dict[str, Any]]:
    """
    Completion state of every active module.
    
    A module without active topics is never complete.
    
    Returns:
        List of {module_id, total_topics, completed_topics, complete}
    """
    results = []
    for module in modules:
        if not module.get('active', True):
            continue
        topic_ids = [
            str(topic['id']) for topic in module.get('topics', [])
            if topic.get('active', True)
        ]
        total = len(topic_ids)
        completed = sum(1 for topic_id in topic_ids if topic_id in completed_ids)
        results.append({
            'module_id': str(module['id']),
            'total_topics': total,
            'completed_topics': completed,
            'complete': total > 0 and completed == total,
        })
    return results


# ============================================================================
# Social / time-of-day metrics
# ============================================================================

def count_social_activity(activity: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Distinct forum activities per social metric"""
    seen: Dict[str, Set[str]] = {metric: set() for metric in SOCIAL_ACTIVITY_METRICS.values()}
    for entry in activity:
        metric = SOCIAL_ACTIVITY_METRICS.get(entry.get('activity_type'))
        if metric:
            seen[metric].add(str(entry.get('activity_id')))
    return {metric: len(ids) for metric, ids in seen.items()}


def time_of_day_conditions(hour: int) -> List[str]:
    """Condition types whose [start, end) hour window contains ``hour``"""
    return [
        condition_type
        for condition_type, (start, end) in TIME_OF_DAY_WINDOWS.items()
        if start <= hour < end
    ]
