"""
Trending score and "hot" flag for battles
"""

from datetime import datetime, timedelta
from typing import Optional

TRENDING_WINDOW_HOURS = 168  # score decays to zero over a week
VOTE_WEIGHT = 2.0
VIEW_WEIGHT = 0.5

HOT_WINDOW = timedelta(hours=1)
HOT_MIN_VOTES = 50


def calculate_trending_score(total_votes: int, view_count: int, created_at: Optional[datetime], now: datetime) -> float:
    """Weighted votes and views, decayed linearly with the battle's age"""
    age_hours = ((now - created_at).total_seconds() / 3600) if created_at else 0.0
    time_weight = max(0.0, 1.0 - age_hours / TRENDING_WINDOW_HOURS)
    base_score = (total_votes or 0) * VOTE_WEIGHT + (view_count or 0) * VIEW_WEIGHT
    return round(base_score * time_weight, 2)


def is_hot(total_votes: int, last_activity: Optional[datetime], now: datetime) -> bool:
    """Voted on within the last hour and past the vote threshold"""
    if last_activity is None:
        return False
    return last_activity > now - HOT_WINDOW and (total_votes or 0) > HOT_MIN_VOTES
