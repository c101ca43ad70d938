"""
Battle store accessor
"""

from datetime import datetime
from typing import Callable, List, Optional, TypeVar
from sqlalchemy import update
from sqlalchemy.orm import Session
from battle_seoul.models.battle import Battle, BattleSide
from battle_seoul.models.battle_view import BattleView
from battle_seoul.models.battle_vote import BattleVote
from battle_seoul.models.contender import Category
from battle_seoul.schemas.battle_schemas import BattleCreate, BattleItem, BattleRead, CurrentLeader
from battle_seoul.services.leader import calculate_live_status
from battle_seoul.services.trending import calculate_trending_score, is_hot

T = TypeVar("T")

class BattleStore:
    """Reads and writes battles inside the caller's session/transaction.

    Tallies (votes, views) are bumped with a single UPDATE ... SET x = x + 1
    that also advances the row version, so concurrent writers queue on the
    row lock instead of overwriting each other.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_battle(self, data: BattleCreate) -> Battle:
        """Insert a fresh battle with zeroed tallies"""
        battle = Battle(
            title=data.title,
            category=data.category,
            creator_id=data.creator_id,
            item_a=data.item_a.model_dump(mode="json", exclude={"votes"}),
            item_b=data.item_b.model_dump(mode="json", exclude={"votes"}),
            item_a_votes=0,
            item_b_votes=0,
            total_votes=0,
            view_count=0,
            matching_method=data.matching_method,
            matching_score=data.matching_score,
            created_at=data.created_at,
            ends_at=data.ends_at,
        )
        self.db.add(battle)
        self.db.flush()
        return battle

    def get_battle(self, battle_id: int) -> Optional[Battle]:
        return self.db.get(Battle, battle_id)

    def get_vote(self, battle_id: int, voter_id: str) -> Optional[BattleVote]:
        return (
            self.db.query(BattleVote)
            .filter(BattleVote.battle_id == battle_id, BattleVote.voter_id == voter_id)
            .first()
        )

    def get_view(self, battle_id: int, viewer_id: str) -> Optional[BattleView]:
        return (
            self.db.query(BattleView)
            .filter(BattleView.battle_id == battle_id, BattleView.viewer_id == viewer_id)
            .first()
        )

    def count_active_battles(self, now: datetime) -> int:
        return self.db.query(Battle).filter(Battle.ends_at > now).count()

    def add_vote(self, battle_id: int, voter_id: str, side: BattleSide, now: datetime) -> None:
        """Insert the vote row; a second vote by the same voter raises IntegrityError"""
        self.db.add(BattleVote(battle_id=battle_id, voter_id=voter_id, side=side.value, created_at=now))
        self.db.flush()

    def increment_votes(self, battle_id: int, side: BattleSide, now: datetime) -> None:
        column = Battle.item_a_votes if side == BattleSide.ITEM_A else Battle.item_b_votes
        self._increment(battle_id, {
            column.key: column + 1,
            "total_votes": Battle.total_votes + 1,
            "last_vote_at": now,
        })

    def add_view(self, battle_id: int, viewer_id: str, now: datetime) -> None:
        """Insert the viewer row; a repeat viewer raises IntegrityError"""
        self.db.add(BattleView(battle_id=battle_id, viewer_id=viewer_id, created_at=now))
        self.db.flush()

    def increment_views(self, battle_id: int, now: datetime) -> None:
        self._increment(battle_id, {"view_count": Battle.view_count + 1, "last_view_at": now})

    def transactional_update(self, battle_id: int, update_fn: Callable[[Optional[Battle]], T]) -> T:
        """Re-read the battle (None if missing), let update_fn mutate it, flush.

        The flush compares the row version, so a concurrent writer surfaces
        as StaleDataError.
        """
        battle = (
            self.db.query(Battle)
            .filter(Battle.id == battle_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        result = update_fn(battle)
        self.db.flush()
        return result

    def list_battles(self, active_at: Optional[datetime] = None, skip: int = 0, limit: int = 10) -> List[Battle]:
        """Newest first; only battles still running at active_at when given"""
        query = self.db.query(Battle)
        if active_at is not None:
            query = query.filter(Battle.ends_at > active_at)
        return query.order_by(Battle.created_at.desc(), Battle.id.desc()).offset(skip).limit(limit).all()

    def most_voted(
        self,
        limit: int,
        active_at: Optional[datetime] = None,
        category: Optional[Category] = None,
        exclude_id: Optional[int] = None,
    ) -> List[Battle]:
        """Most votes first, then most views"""
        query = self.db.query(Battle)
        if active_at is not None:
            query = query.filter(Battle.ends_at > active_at)
        if category is not None:
            query = query.filter(Battle.category == category)
        if exclude_id is not None:
            query = query.filter(Battle.id != exclude_id)
        return (
            query.order_by(Battle.total_votes.desc(), Battle.view_count.desc(), Battle.id.asc())
            .limit(limit)
            .all()
        )

    def by_creator(self, creator_id: str, limit: int) -> List[Battle]:
        return (
            self.db.query(Battle)
            .filter(Battle.creator_id == creator_id)
            .order_by(Battle.created_at.desc(), Battle.id.desc())
            .limit(limit)
            .all()
        )

    def search(self, term: str, category: Optional[Category] = None, limit: int = 20) -> List[Battle]:
        """Case-insensitive match on the title, which carries both item titles"""
        query = self.db.query(Battle).filter(Battle.title.ilike(f"%{term}%"))
        if category is not None:
            query = query.filter(Battle.category == category)
        return query.order_by(Battle.created_at.desc(), Battle.id.desc()).limit(limit).all()

    def to_read(self, battle: Battle, now: datetime) -> BattleRead:
        """Response snapshot; call while the session is still open"""
        participants = [vote.voter_id for vote in sorted(battle.votes, key=lambda vote: vote.id)]
        return BattleRead(
            id=battle.id,
            title=battle.title,
            category=battle.category,
            creator_id=battle.creator_id,
            item_a=BattleItem(**battle.item_a, votes=battle.item_a_votes),
            item_b=BattleItem(**battle.item_b, votes=battle.item_b_votes),
            total_votes=battle.total_votes,
            participants=participants,
            current_leader=CurrentLeader(
                winner=battle.leader_winner,
                percentage=battle.leader_percentage,
                margin=battle.leader_margin,
            ),
            live_status=calculate_live_status(battle.item_a_votes, battle.item_b_votes),
            status=battle.status_at(now),
            view_count=battle.view_count or 0,
            trending_score=calculate_trending_score(battle.total_votes, battle.view_count, battle.created_at, now),
            is_hot=is_hot(battle.total_votes, battle.last_vote_at or battle.created_at, now),
            matching_method=battle.matching_method,
            matching_score=battle.matching_score,
            created_at=battle.created_at,
            ends_at=battle.ends_at,
            last_vote_at=battle.last_vote_at,
            last_view_at=battle.last_view_at,
        )

    def _increment(self, battle_id: int, values: dict) -> None:
        self.db.execute(
            update(Battle)
            .where(Battle.id == battle_id)
            .values(version=Battle.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
