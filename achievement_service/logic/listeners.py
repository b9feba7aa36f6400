"""
Event Listeners for the Achievement System

PRINCIPLES:
1. Structured logging with a correlation id per event
2. Try-except every listener so evaluation never cascades into the caller
3. Validate payloads before dispatching
4. All evaluation goes through achievement_service.dispatch
"""

import logging
from typing import Dict, Any, Optional, Callable, Awaitable

from achievement_service.config import get_settings
from achievement_service.logic import achievement_service
from achievement_service.logic.achievement_service import emit_metric

logger = logging.getLogger(__name__)


# ============================================================================
# Event Payload Validators
# ============================================================================

def validate_base_event(event: Dict[str, Any]) -> Optional[str]:
    """
    Validate common fields in all events.
    
    Returns error message if invalid, None if valid
    """
    user_id = event.get('userId')
    if user_id is None:
        return "Missing required field: userId"
    
    if not isinstance(user_id, (str, int)) or not str(user_id).strip():
        return f"Invalid userId: {user_id!r}"
    
    return None


async def _dispatch_event(
    event: Dict[str, Any],
    action_kind: str,
    required_fields: tuple = (),
    auto_mark_seen: bool = False
) -> Dict[str, Any]:
    """Shared listener flow: validate, dispatch, optionally acknowledge"""
    correlation_id = f"{action_kind}_{event.get('userId', 'unknown')}_{event.get('timestamp', '')}"
    
    log_context = {
        'event': f"on_{action_kind}",
        'correlation_id': correlation_id,
        'user_id': event.get('userId'),
    }
    
    logger.info(f"{action_kind} event received", extra=log_context)
    
    try:
        error = validate_base_event(event)
        if error:
            logger.error(f"Invalid event payload: {error}", extra=log_context)
            return {'success': False, 'error': error}
        
        for field in required_fields:
            if field not in event:
                logger.error(f"Missing {field} in event", extra=log_context)
                return {'success': False, 'error': f'Missing {field}'}
        
        user_id = str(event['userId'])
        action_data = {k: v for k, v in event.items() if k != 'userId'}
        
        new_achievements = await achievement_service.dispatch(user_id, action_kind, action_data)
        
        log_context['new_achievements_count'] = len(new_achievements)
        log_context['new_achievements'] = [a.get('id') for a in new_achievements]
        
        if new_achievements:
            logger.info(f"🏆 {len(new_achievements)} unseen achievements for {user_id}", extra=log_context)
            if auto_mark_seen and get_settings().AUTO_MARK_SEEN:
                achievement_service.schedule_mark_seen(user_id, [a['id'] for a in new_achievements])
        else:
            logger.debug("No new achievements", extra=log_context)
        
        return {
            'success': True,
            'newAchievements': new_achievements,
            'totalNew': len(new_achievements)
        }
        
    except Exception as e:
        logger.error(f"Error in on_{action_kind}: {str(e)}", extra=log_context, exc_info=True)
        emit_metric('AchievementListenerErrors', 1)
        return {'success': False, 'error': str(e)}


# ============================================================================
# Listeners
# ============================================================================

async def on_topic_completed(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluate achievements after a topic is marked complete.
    
    Event Payload:
    {
        "userId": "user123",
        "topicId": "42",
        "timestamp": "2025-11-20T12:00:00Z"
    }
    
    The returned achievements are meant to be shown in the same response;
    they are then acknowledged in the background when AUTO_MARK_SEEN is on.
    """
    return await _dispatch_event(
        event, 'topic_completed', required_fields=('topicId',), auto_mark_seen=True
    )


async def on_login(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluate streak and time-of-day achievements at login.
    
    Event Payload:
    {
        "userId": "user123",
        "timestamp": "2025-11-20T06:30:00Z"
    }
    """
    return await _dispatch_event(event, 'login')


async def on_module_completed(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Re-check module achievements when a module is reported complete.
    
    Event Payload:
    {
        "userId": "user123",
        "moduleId": "3"
    }
    """
    return await _dispatch_event(event, 'module_completed', required_fields=('moduleId',))


async def on_forum_reply(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Evaluate social achievements after forum activity is persisted.
    
    Event Payload:
    {
        "userId": "user123",
        "activityId": "reply-991"
    }
    """
    return await _dispatch_event(event, 'forum_reply')


LISTENERS: Dict[str, Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
    'topic_completed': on_topic_completed,
    'login': on_login,
    'module_completed': on_module_completed,
    'forum_reply': on_forum_reply,
}


async def handle_event(action_kind: str, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Route an event to its listener.
    
    Unknown action kinds run no evaluator but still report the user's
    unseen achievements.
    """
    listener = LISTENERS.get(action_kind)
    if listener is None:
        return await _dispatch_event(event, action_kind)
    return await listener(event)
