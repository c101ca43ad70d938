"""
Matching request/response schemas
"""

import enum
from pydantic import BaseModel, Field, field_serializer
from typing import Dict, List, Optional
from datetime import datetime
from battle_seoul.core.config import Settings
from battle_seoul.core.utils import format_timestamp_with_timezone
from battle_seoul.schemas.battle_schemas import BattleRead
from battle_seoul.schemas.contender_schemas import ContenderRead

class MatchingFailureReason(str, enum.Enum):
    """Why a run (or a manual pairing) created nothing"""
    COOLDOWN = "cooldown"
    INSUFFICIENT_CONTENDERS = "insufficient_contenders"
    NO_VALID_MATCHES = "no_valid_matches"
    # manual pairing only
    CONTENDER_NOT_FOUND = "contender_not_found"
    SAME_CONTENDER = "same_contender"
    CATEGORY_MISMATCH = "category_mismatch"
    SAME_CREATOR = "same_creator"
    CONTENDER_UNAVAILABLE = "contender_unavailable"

MATCHING_FAILURE_MESSAGES = {
    MatchingFailureReason.COOLDOWN: "Matching is cooling down, try again later.",
    MatchingFailureReason.INSUFFICIENT_CONTENDERS: "Not enough content to match yet. Upload more!",
    MatchingFailureReason.NO_VALID_MATCHES: "No valid pairings are available right now.",
    MatchingFailureReason.CONTENDER_NOT_FOUND: "One of the selected contents does not exist.",
    MatchingFailureReason.SAME_CONTENDER: "A content cannot battle itself.",
    MatchingFailureReason.CATEGORY_MISMATCH: "Only contents of the same category can battle.",
    MatchingFailureReason.SAME_CREATOR: "Contents of the same creator cannot battle each other.",
    MatchingFailureReason.CONTENDER_UNAVAILABLE: "One of the selected contents is already in a battle.",
}

class MatchingWeights(BaseModel):
    """Tunable coefficients of the pairing score"""
    recency: float = Field(default=35.0, ge=0)
    engagement: float = Field(default=35.0, ge=0)
    freshness: float = Field(default=15.0, ge=0)
    platform_diversity: float = Field(default=15.0, ge=0)
    recency_window_days: float = Field(default=7.0, gt=0)
    fresh_window_days: float = Field(default=7.0, gt=0)
    view_weight: float = Field(default=0.1, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MatchingWeights":
        return cls(
            recency=settings.MATCH_WEIGHT_RECENCY,
            engagement=settings.MATCH_WEIGHT_ENGAGEMENT,
            freshness=settings.MATCH_WEIGHT_FRESHNESS,
            platform_diversity=settings.MATCH_WEIGHT_PLATFORM_DIVERSITY,
            recency_window_days=settings.MATCH_RECENCY_WINDOW_DAYS,
            fresh_window_days=settings.MATCH_FRESH_WINDOW_DAYS,
            view_weight=settings.MATCH_VIEW_WEIGHT,
        )

class MatchProposal(BaseModel):
    """A scored candidate pair, not yet committed"""
    contender_a: ContenderRead
    contender_b: ContenderRead
    score: float

class SelectionResult(BaseModel):
    """Selector output; reason is set when proposals is empty"""
    proposals: List[MatchProposal] = Field(default_factory=list)
    reason: Optional[MatchingFailureReason] = None

class MatchingRunRequest(BaseModel):
    """Trigger a smart matching run"""
    max_matches: int = Field(default=3, ge=1, le=50)
    force: bool = False

class MatchingScoreEntry(BaseModel):
    """Provenance of one committed pair"""
    battle_id: int
    contender_a: str
    contender_b: str
    category: str
    score: float

class MatchingResult(BaseModel):
    """Outcome of a smart matching run"""
    success: bool
    reason: Optional[MatchingFailureReason] = None
    message: str = ""
    matches_created: int = 0
    matching_scores: List[MatchingScoreEntry] = Field(default_factory=list)
    battle_ids: List[int] = Field(default_factory=list)
    next_matching_time: Optional[datetime] = None
    forced: bool = False

    @field_serializer('next_matching_time')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

class ManualBattleRequest(BaseModel):
    """User-chosen pairing"""
    contender_a_id: int
    contender_b_id: int
    creator_id: str = Field(..., min_length=1)

class ManualBattleResult(BaseModel):
    """Outcome of a manual pairing"""
    success: bool
    reason: Optional[MatchingFailureReason] = None
    message: str = ""
    battle: Optional[BattleRead] = None

class MatchingStatistics(BaseModel):
    """Pool and cooldown overview"""
    total_available_contenders: int
    total_active_battles: int
    cooldown_remaining: int  # seconds
    category_distribution: Dict[str, int]
    platform_distribution: Dict[str, int]
    last_matching_time: Optional[datetime] = None
    next_matching_time: Optional[datetime] = None

    @field_serializer('last_matching_time', 'next_matching_time')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)
