"""
Matching cooldown state
"""

from sqlalchemy import Column, String, DateTime
from battle_seoul.core.database import Base
from battle_seoul.core.utils import utcnow

SMART_MATCHING_KEY = "smart_matching"

class MatchingState(Base):
    """Timestamp of the last successful run, one row per matching flavour"""
    __tablename__ = "matching_state"

    key = Column(String(50), primary_key=True)
    last_run_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True, default=utcnow, onupdate=utcnow)
