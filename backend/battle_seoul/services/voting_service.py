"""
Battle voting service
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Union
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from battle_seoul.core.config import Settings, settings as default_settings
from battle_seoul.core.database import SessionLocal
from battle_seoul.core.exceptions import VotingUnavailableError
from battle_seoul.core.utils import utcnow
from battle_seoul.models.battle import Battle, BattleSide
from battle_seoul.schemas.battle_schemas import (
    VOTE_FAILURE_MESSAGES,
    PointsReward,
    VoteCheck,
    VoteFailureReason,
    VoteResult,
)
from battle_seoul.services.battle_store import BattleStore
from battle_seoul.services.leader import compute_current_leader

logger = logging.getLogger(__name__)


class VotingService:
    """Records votes, one per user per battle, and keeps tallies consistent"""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.settings = settings or default_settings
        self.clock = clock or utcnow

    async def cast_vote(self, battle_id: int, side: Union[BattleSide, str], voter_id: str) -> VoteResult:
        """Vote for one side of a battle.

        Tallies are bumped in SQL, so concurrent voters queue on the battle
        row rather than conflict. The leader fields are rewritten under that
        lock with a version check; a StaleDataError there retries the whole
        vote from a fresh read.
        """
        side = BattleSide(side)
        for attempt in range(1, self.settings.VOTE_MAX_RETRIES + 1):
            try:
                return self._cast_vote_once(battle_id, side, voter_id)
            except StaleDataError:
                logger.info(
                    "vote conflicted with a concurrent update, retrying",
                    extra={"battle_id": battle_id, "attempt": attempt},
                )
            except IntegrityError:
                # the same voter won a concurrent race on the unique constraint
                return self._already_voted(battle_id, voter_id)
            except SQLAlchemyError as e:
                logger.error("vote commit failed", exc_info=True, extra={"battle_id": battle_id})
                raise VotingUnavailableError(f"vote on battle {battle_id} failed") from e

        logger.error("vote retries exhausted", extra={"battle_id": battle_id})
        raise VotingUnavailableError(f"vote on battle {battle_id} kept conflicting")

    async def check_user_voted(self, battle_id: int, user_id: str) -> Optional[VoteCheck]:
        """Whether user_id voted on the battle and for which side; None if the battle is missing"""
        with self.session_factory() as db:
            battles = BattleStore(db)
            if battles.get_battle(battle_id) is None:
                return None
            vote = battles.get_vote(battle_id, user_id)
        return VoteCheck(
            battle_id=battle_id,
            user_id=user_id,
            has_voted=vote is not None,
            selected_side=BattleSide(vote.side) if vote else None,
        )

    def _cast_vote_once(self, battle_id: int, side: BattleSide, voter_id: str) -> VoteResult:
        now = self.clock()
        with self.session_factory.begin() as db:
            battles = BattleStore(db)
            battle = battles.get_battle(battle_id)
            if battle is None:
                return self._rejected(battle_id, voter_id, VoteFailureReason.BATTLE_NOT_FOUND)
            if battle.is_ended(now):
                return self._rejected(battle_id, voter_id, VoteFailureReason.BATTLE_ENDED)
            prior = battles.get_vote(battle_id, voter_id)
            if prior is not None:
                return self._rejected(
                    battle_id, voter_id, VoteFailureReason.ALREADY_VOTED, selected_side=BattleSide(prior.side)
                )

            # the tally UPDATE holds the row lock until commit
            battles.add_vote(battle_id, voter_id, side, now)
            battles.increment_votes(battle_id, side, now)

            def refresh_leader(current: Battle) -> None:
                leader = compute_current_leader(current.item_a_votes, current.item_b_votes)
                current.leader_winner = leader.winner
                current.leader_percentage = leader.percentage
                current.leader_margin = leader.margin

            battles.transactional_update(battle_id, refresh_leader)
            snapshot = battles.to_read(battle, now)

        logger.info(
            "vote recorded",
            extra={"battle_id": battle_id, "voter_id": voter_id, "side": side.value, "total_votes": snapshot.total_votes},
        )
        return VoteResult(
            success=True,
            battle=snapshot,
            selected_side=side,
            current_leader=snapshot.current_leader,
            reward=PointsReward(user_id=voter_id, points=self.settings.VOTE_REWARD_POINTS),
        )

    def _already_voted(self, battle_id: int, voter_id: str) -> VoteResult:
        with self.session_factory() as db:
            prior = BattleStore(db).get_vote(battle_id, voter_id)
        return self._failure(
            VoteFailureReason.ALREADY_VOTED,
            selected_side=BattleSide(prior.side) if prior else None,
        )

    def _failure(self, reason: VoteFailureReason, selected_side: Optional[BattleSide] = None) -> VoteResult:
        return VoteResult(
            success=False,
            reason=reason,
            message=VOTE_FAILURE_MESSAGES[reason],
            selected_side=selected_side,
        )

    def _rejected(
        self,
        battle_id: int,
        voter_id: str,
        reason: VoteFailureReason,
        selected_side: Optional[BattleSide] = None,
    ) -> VoteResult:
        logger.info("vote rejected", extra={"battle_id": battle_id, "voter_id": voter_id, "reason": reason.value})
        return self._failure(reason, selected_side=selected_side)
