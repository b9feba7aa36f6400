"""
Achievement Schemas (Pydantic)

DESIGN:
- Plain strings for category / condition_type (no Enums), validated against
  the rule tables in logic.catalog
- Catalog items and ledger rows from DynamoDB are parsed directly; unknown
  keys such as PK/SK are ignored
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Dict, List, Any
from datetime import datetime

from achievement_service.logic.catalog import CATEGORIES, CONDITION_CATEGORIES


# ============================================================================
# Catalog Schemas
# ============================================================================

class AchievementDefinition(BaseModel):
    """Static achievement definition (catalog row)"""
    id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    description: str = ""
    icon: Optional[str] = None
    category: str = Field(..., description="progress, module, streak, velocity, horario, social")
    condition_type: str = Field(..., description="Rule the evaluator applies, see logic.catalog")
    condition_value: int = Field(..., ge=0, description="Numeric threshold")
    points: int = Field(default=0, ge=0)
    active: bool = True
    display_order: int = Field(default=0, ge=0)
    
    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        if v not in CATEGORIES:
            raise ValueError(f"category must be one of {set(CATEGORIES)}, got: {v}")
        return v
    
    @field_validator('condition_type')
    @classmethod
    def validate_condition_type(cls, v: str) -> str:
        if v not in CONDITION_CATEGORIES:
            raise ValueError(f"condition_type must be one of {set(CONDITION_CATEGORIES)}, got: {v}")
        return v
    
    @model_validator(mode='after')
    def validate_condition_matches_category(self):
        """A condition type belongs to exactly one category"""
        expected = CONDITION_CATEGORIES[self.condition_type]
        if expected != self.category:
            raise ValueError(
                f"condition_type {self.condition_type} belongs to category {expected}, "
                f"not {self.category}"
            )
        return self


# ============================================================================
# User Achievement Schemas
# ============================================================================

class AchievementWithStatus(AchievementDefinition):
    """Definition joined with the user's ledger row"""
    status: str = Field(default="locked", description="earned, in_progress, locked")
    earned_at: Optional[datetime] = None
    progress_current: Optional[int] = None
    progress_target: Optional[int] = None
    notification_seen: Optional[bool] = None


class UserAchievementsResponse(BaseModel):
    """All achievements grouped by category, with score"""
    achievements: Dict[str, List[AchievementWithStatus]]
    total_points: int
    level: int


class EarnedAchievementSummary(BaseModel):
    """Compact earned entry (admin student detail)"""
    achievement_id: int
    name: str
    icon: Optional[str] = None
    points: int = 0
    earned_at: datetime


# ============================================================================
# Notification / Event Schemas
# ============================================================================

class MarkSeenRequest(BaseModel):
    """Achievements to acknowledge; empty or missing means every unseen one"""
    achievement_ids: Optional[List[int]] = None


class MarkSeenResponse(BaseModel):
    success: bool
    marked: int


class AchievementEventRequest(BaseModel):
    """Qualifying user action already persisted by the caller"""
    action_kind: str = Field(..., min_length=1)
    action_data: Optional[Dict[str, Any]] = None


class AchievementEventResponse(BaseModel):
    success: bool
    new_achievements: List[AchievementWithStatus]
    total_new: int
