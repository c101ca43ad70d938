"""
Battle and voting schemas
"""

import enum
from pydantic import BaseModel, Field, field_serializer
from typing import Dict, List, Optional
from datetime import datetime
from battle_seoul.core.utils import format_timestamp_with_timezone
from battle_seoul.models.battle import BattleSide, BattleStatus, MatchingMethod
from battle_seoul.models.contender import Category, Platform
from battle_seoul.schemas.media_schemas import MediaPayload

class VoteFailureReason(str, enum.Enum):
    """Expected, recoverable vote outcomes"""
    BATTLE_NOT_FOUND = "battle_not_found"
    BATTLE_ENDED = "battle_ended"
    ALREADY_VOTED = "already_voted"

VOTE_FAILURE_MESSAGES = {
    VoteFailureReason.BATTLE_NOT_FOUND: "This battle does not exist.",
    VoteFailureReason.BATTLE_ENDED: "This battle has already ended.",
    VoteFailureReason.ALREADY_VOTED: "You have already voted on this battle.",
}

class BattleItem(BaseModel):
    """Denormalised copy of a contender taken when the battle was created"""
    contender_id: int
    title: str
    description: str = ""
    creator_id: str
    creator_name: str
    category: Category
    platform: Platform
    media: MediaPayload
    image_url: Optional[str] = None
    votes: int = 0

class CurrentLeader(BaseModel):
    """Side ahead in votes"""
    winner: str = "tie"  # itemA, itemB, tie
    percentage: int = 50
    margin: int = 0

class LiveStatus(BaseModel):
    """Closeness of the race for display"""
    status: str  # waiting, competitive, leading, dominant
    percentage: Dict[str, int]
    margin: int = 0

class BattleRead(BaseModel):
    """Battle response"""
    id: int
    title: str
    category: Category
    creator_id: Optional[str] = None
    item_a: BattleItem
    item_b: BattleItem
    total_votes: int
    participants: List[str]
    current_leader: CurrentLeader
    live_status: LiveStatus
    status: BattleStatus
    view_count: int = 0
    trending_score: float = 0.0
    is_hot: bool = False
    matching_method: MatchingMethod
    matching_score: Optional[float] = None
    created_at: datetime
    ends_at: datetime
    last_vote_at: Optional[datetime] = None
    last_view_at: Optional[datetime] = None

    @field_serializer('created_at', 'ends_at', 'last_vote_at', 'last_view_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

class BattleCreate(BaseModel):
    """Store input for a new battle"""
    title: str
    category: Category
    item_a: BattleItem
    item_b: BattleItem
    matching_method: MatchingMethod = MatchingMethod.SMART_ALGORITHM
    matching_score: Optional[float] = None
    creator_id: Optional[str] = None
    created_at: datetime
    ends_at: datetime

class VoteRequest(BaseModel):
    """Cast a vote"""
    side: BattleSide = Field(..., description="itemA or itemB")
    voter_id: str = Field(..., min_length=1)

class PointsReward(BaseModel):
    """Event for the points ledger; emitted, not applied, by this service"""
    user_id: str
    points: int
    reason: str = "battle_vote"

class VoteResult(BaseModel):
    """Outcome of a vote attempt"""
    success: bool
    reason: Optional[VoteFailureReason] = None
    message: Optional[str] = None
    battle: Optional[BattleRead] = None
    selected_side: Optional[BattleSide] = None  # the prior choice on already_voted
    current_leader: Optional[CurrentLeader] = None
    reward: Optional[PointsReward] = None

class VoteCheck(BaseModel):
    """Whether a user voted on a battle"""
    battle_id: int
    user_id: str
    has_voted: bool
    selected_side: Optional[BattleSide] = None
