"""
Achievement API endpoints

The gateway authenticates the caller and forwards its id in X-User-ID.
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Header, HTTPException

from achievement_service.logic import achievement_service, listeners
from achievement_service.schemas_achievements import (
    AchievementWithStatus,
    UserAchievementsResponse,
    EarnedAchievementSummary,
    MarkSeenRequest,
    MarkSeenResponse,
    AchievementEventRequest,
    AchievementEventResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/achievements", tags=["Achievements"])


@router.get("/me", response_model=UserAchievementsResponse)
async def get_my_achievements(
    x_user_id: str = Header(..., alias="X-User-ID")
):
    """All achievements grouped by category, with total points and level."""
    try:
        return UserAchievementsResponse(**achievement_service.get_user_achievements(x_user_id))
    except Exception as e:
        logger.error(f"Error getting achievements for {x_user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error retrieving achievements")


@router.get("/unseen", response_model=List[AchievementWithStatus])
async def get_unseen_achievements(
    x_user_id: str = Header(..., alias="X-User-ID")
):
    """Earned achievements whose notification has not been acknowledged."""
    try:
        return achievement_service.fetch_unseen_earned(x_user_id)
    except Exception as e:
        logger.error(f"Error getting unseen achievements for {x_user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error retrieving new achievements")


@router.post("/seen", response_model=MarkSeenResponse)
async def mark_achievements_seen(
    request: Optional[MarkSeenRequest] = None,
    x_user_id: str = Header(..., alias="X-User-ID")
):
    """Acknowledge notifications; no body or no ids means all unseen ones."""
    try:
        achievement_ids = request.achievement_ids if request else None
        marked = achievement_service.mark_seen(x_user_id, achievement_ids)
        return MarkSeenResponse(success=True, marked=marked)
    except Exception as e:
        logger.error(f"Error marking achievements seen for {x_user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error marking achievements")


@router.post("/events", response_model=AchievementEventResponse)
async def record_achievement_event(
    request: AchievementEventRequest,
    x_user_id: str = Header(..., alias="X-User-ID")
):
    """Evaluate achievements for an action the caller has already persisted."""
    event = {**(request.action_data or {}), 'userId': x_user_id}
    result = await listeners.handle_event(request.action_kind, event)
    
    if not result.get('success'):
        raise HTTPException(status_code=400, detail=result.get('error', 'Invalid event'))
    
    return AchievementEventResponse(
        success=True,
        new_achievements=result['newAchievements'],
        total_new=result['totalNew']
    )


@router.get("/users/{user_id}/earned", response_model=List[EarnedAchievementSummary])
async def get_user_earned_achievements(user_id: str):
    """Earned achievements of a student, newest first (admin view)."""
    try:
        return achievement_service.list_earned_achievements(user_id)
    except Exception as e:
        logger.error(f"Error listing earned achievements for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Error retrieving achievements")
