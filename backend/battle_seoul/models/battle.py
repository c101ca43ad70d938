"""
Battle data model
"""

import enum
from datetime import datetime
from typing import Optional
from sqlalchemy import Column, Integer, String, DateTime, Float, JSON, Enum
from sqlalchemy.orm import relationship
from battle_seoul.core.database import Base
from battle_seoul.core.utils import utcnow
from battle_seoul.models.contender import Category, enum_values


class BattleSide(str, enum.Enum):
    """One of the two positions in a battle"""
    ITEM_A = "itemA"
    ITEM_B = "itemB"


class BattleStatus(str, enum.Enum):
    """Derived from ends_at, never stored"""
    ACTIVE = "active"
    ENDED = "ended"


class MatchingMethod(str, enum.Enum):
    """How the pair was chosen"""
    SMART_ALGORITHM = "smart_algorithm"
    MANUAL = "manual"


TIE = "tie"


class Battle(Base):
    """Head-to-head pairing of two contenders"""
    __tablename__ = "battles"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(420), nullable=False)
    category = Column(Enum(Category, values_callable=enum_values), nullable=False, index=True)
    creator_id = Column(String(128), nullable=True)    # only set for manual battles
    item_a = Column(JSON, nullable=False)              # snapshot of contender A at creation
    item_b = Column(JSON, nullable=False)              # snapshot of contender B at creation
    item_a_votes = Column(Integer, nullable=False, default=0)
    item_b_votes = Column(Integer, nullable=False, default=0)
    total_votes = Column(Integer, nullable=False, default=0)
    leader_winner = Column(String(10), nullable=False, default=TIE)   # itemA, itemB, tie
    leader_percentage = Column(Integer, nullable=False, default=50)
    leader_margin = Column(Integer, nullable=False, default=0)
    matching_method = Column(
        Enum(MatchingMethod, values_callable=enum_values),
        nullable=False,
        default=MatchingMethod.SMART_ALGORITHM,
    )
    matching_score = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    ends_at = Column(DateTime, nullable=False, index=True)
    last_vote_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    last_view_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)

    # Relationships
    votes = relationship("BattleVote", back_populates="battle", cascade="all, delete-orphan")
    viewers = relationship("BattleView", back_populates="battle", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    def is_ended(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.ends_at

    def status_at(self, now: Optional[datetime] = None) -> BattleStatus:
        return BattleStatus.ENDED if self.is_ended(now) else BattleStatus.ACTIVE
