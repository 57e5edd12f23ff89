"""Progress and user document models"""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from src.gamification.evolution import Rank


class StepProgressState(BaseModel):
    """Immutable snapshot of one session's step progress"""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    total_xp: float = 0.0
    steps_today: int = 0
    daily_bonus_granted: bool = False
    is_premium: bool = False

    # Derived from total_xp, recomputed on every mutation
    current_level: int = 0
    current_rank: Optional[Rank] = None
    progress: float = 0.0  # 0–1 toward next level
    xp_to_next_level: float = 100.0


class UserDocument(BaseModel):
    """
    A persisted user record (mock of the Firestore users/{uid} document).

    Every optional field has a default so partially written documents decode
    cleanly. Unknown keys are ignored by the model but kept on disk.
    Infinite or NaN numbers are rejected.
    """
    model_config = ConfigDict(allow_inf_nan=False)

    user_id: str
    display_name: str = "Anonymous"
    photo_url: Optional[str] = None
    country: Optional[str] = None  # ISO 3166-1 alpha-2

    total_xp: float = 0.0
    steps_today: int = 0
    steps_week: Optional[int] = None
    steps_month: Optional[int] = None
    daily_bonus_granted: bool = False
    is_premium: bool = False
    last_sync: Optional[datetime] = None

    @field_validator('display_name', mode='before')
    @classmethod
    def default_display_name(cls, v: Any) -> Any:
        """Blank or missing names fall back to Anonymous"""
        return v or "Anonymous"

    @field_validator('total_xp', 'steps_today', mode='before')
    @classmethod
    def clamp_counters(cls, v: Any) -> Any:
        """Missing or negative counters decode as zero"""
        if v is None:
            return 0
        if isinstance(v, (int, float)) and v < 0:
            return 0
        return v

    @field_validator('is_premium', 'daily_bonus_granted', mode='before')
    @classmethod
    def default_flags(cls, v: Any) -> Any:
        return False if v is None else v
