"""
Pairing score between two contenders

Pure and stateless: safe to call repeatedly and from concurrent requests.
"""

from datetime import datetime
from typing import Optional
from battle_seoul.core.utils import utcnow
from battle_seoul.models.contender import ContenderStatus
from battle_seoul.schemas.matching_schemas import MatchingWeights

REJECTED = float("-inf")  # never selectable
MAX_SCORE = 100.0

_SECONDS_PER_DAY = 24 * 60 * 60

DEFAULT_WEIGHTS = MatchingWeights()


def is_rejected(score: float) -> bool:
    return score == REJECTED


def engagement_of(contender, view_weight: float) -> float:
    """Likes plus down-weighted views; missing counters are zero"""
    likes = getattr(contender, "like_count", None) or 0
    views = getattr(contender, "view_count", None) or 0
    return likes + views * view_weight


def rejection_reason(a, b) -> Optional[str]:
    """Hard constraints; None when the pair may battle"""
    if a.id == b.id:
        return "same_contender"
    if a.category != b.category:
        return "category_mismatch"
    if a.creator_id == b.creator_id:
        return "same_creator"
    if a.status != ContenderStatus.AVAILABLE or b.status != ContenderStatus.AVAILABLE:
        return "contender_unavailable"
    return None


def score_pair(
    a,
    b,
    weights: Optional[MatchingWeights] = None,
    now: Optional[datetime] = None,
) -> float:
    """Score in [0, 100], higher is a better battle, or REJECTED.

    Signals:
      - recency similarity: similarly aged contenders have had the same time
        to collect likes
      - engagement balance: penalise a popular item against an unknown one
      - freshness: both recent on average
      - platform diversity: e.g. youtube vs image
    """
    if rejection_reason(a, b) is not None:
        return REJECTED

    weights = weights or DEFAULT_WEIGHTS
    now = now or utcnow()
    created_a = a.created_at or now
    created_b = b.created_at or now

    gap_days = abs((created_a - created_b).total_seconds()) / _SECONDS_PER_DAY
    recency = weights.recency * max(0.0, 1.0 - gap_days / weights.recency_window_days)

    engagement_a = engagement_of(a, weights.view_weight)
    engagement_b = engagement_of(b, weights.view_weight)
    top = max(engagement_a, engagement_b)
    balance = 1.0 if top <= 0 else 1.0 - abs(engagement_a - engagement_b) / top
    engagement = weights.engagement * balance

    average_age_days = ((now - created_a) + (now - created_b)).total_seconds() / 2 / _SECONDS_PER_DAY
    freshness = weights.freshness if average_age_days < weights.fresh_window_days else 0.0

    diversity = weights.platform_diversity if a.platform != b.platform else 0.0

    total = recency + engagement + freshness + diversity
    return round(min(MAX_SCORE, max(0.0, total)), 2)
