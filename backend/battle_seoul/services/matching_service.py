"""
Battle matching service
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from battle_seoul.core.config import Settings, settings as default_settings
from battle_seoul.core.database import SessionLocal
from battle_seoul.core.exceptions import ContenderUnavailableError, MatchingUnavailableError
from battle_seoul.core.utils import utcnow
from battle_seoul.models.battle import MatchingMethod
from battle_seoul.models.contender import Category, Contender, ContenderStatus, Platform
from battle_seoul.schemas.battle_schemas import BattleCreate, BattleItem, BattleRead
from battle_seoul.schemas.media_schemas import parse_media
from battle_seoul.schemas.matching_schemas import (
    MATCHING_FAILURE_MESSAGES,
    ManualBattleResult,
    MatchingFailureReason,
    MatchingResult,
    MatchingScoreEntry,
    MatchingStatistics,
    MatchingWeights,
    MatchProposal,
)
from battle_seoul.services.battle_store import BattleStore
from battle_seoul.services.candidate_selector import group_by_category, select_candidate_pairs
from battle_seoul.services.contender_store import ContenderStore
from battle_seoul.services.cooldown_store import CooldownStore
from battle_seoul.services.scoring import rejection_reason, score_pair

logger = logging.getLogger(__name__)

# transaction aborts that only cost the pair they happened on
_STALE_PAIR_ERRORS = (ContenderUnavailableError, StaleDataError)


def snapshot_contender(contender: Contender) -> BattleItem:
    """One-time copy of a contender for a battle side"""
    return BattleItem(
        contender_id=contender.id,
        title=contender.title,
        description=contender.description or "",
        creator_id=contender.creator_id,
        creator_name=contender.creator_name,
        category=contender.category,
        platform=contender.platform,
        media=parse_media(contender.media),
        image_url=contender.image_url,
        votes=0,
    )


class MatchingService:
    """Pairs available contenders into battles.

    Every pair is committed in its own transaction that re-reads both
    contenders and aborts if either was taken in the meantime. That re-check,
    backed by the row version, is what keeps concurrent runs from matching a
    contender twice; there is no in-process locking.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.settings = settings or default_settings
        self.clock = clock or utcnow
        self.weights = MatchingWeights.from_settings(self.settings)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(minutes=self.settings.MATCHING_COOLDOWN_MINUTES)

    async def find_and_create_random_battle(self, max_matches: Optional[int] = None) -> MatchingResult:
        """Smart matching, cooldown respected"""
        return await self.run_smart_matching(max_matches=max_matches, force=False)

    async def execute_force_matching(self, max_matches: Optional[int] = None) -> MatchingResult:
        """Smart matching, cooldown bypassed"""
        return await self.run_smart_matching(
            max_matches=max_matches or self.settings.FORCE_MAX_MATCHES,
            force=True,
        )

    async def run_smart_matching(self, max_matches: Optional[int] = None, force: bool = False) -> MatchingResult:
        """Select the best pairs from the available pool and commit each one.

        An unforced run first claims the cooldown slot with a conditional
        update, so of two concurrent runs only one proceeds. A run that
        creates nothing hands the slot back.
        """
        if max_matches is None or max_matches < 1:
            if max_matches is not None:
                logger.warning("max_matches out of range, using the default", extra={"max_matches": max_matches})
            max_matches = self.settings.DEFAULT_MAX_MATCHES
        now = self.clock()

        previous_run = None
        if not force:
            claimed, previous_run = self._claim_run(now)
            if not claimed:
                next_matching_time = self._next_matching_time(now)
                logger.info(
                    "matching skipped, cooldown active",
                    extra={"next_matching_time": next_matching_time.isoformat() if next_matching_time else None},
                )
                return self._failure(
                    MatchingFailureReason.COOLDOWN,
                    force=force,
                    next_matching_time=next_matching_time,
                )

        try:
            result = self._match(max_matches, force, now)
        except Exception:
            if not force:
                self._release_run(now, previous_run)
            raise

        if not result.success and not force:
            self._release_run(now, previous_run)
        elif result.success and force:
            self._record_run(now)
        return result

    def _match(self, max_matches: int, force: bool, now: datetime) -> MatchingResult:
        with self.session_factory() as db:
            available = ContenderStore(db).get_available_contenders()

        selection = select_candidate_pairs(
            group_by_category(available),
            max_matches=max_matches,
            weights=self.weights,
            now=now,
        )
        if not selection.proposals:
            logger.info(
                "matching produced no proposals",
                extra={"reason": selection.reason.value, "available": len(available)},
            )
            return self._failure(selection.reason, force=force)

        matching_scores: List[MatchingScoreEntry] = []
        stale_pairs = 0
        errors: List[SQLAlchemyError] = []
        for proposal in selection.proposals:
            try:
                battle = self.commit_proposal(proposal, now)
            except _STALE_PAIR_ERRORS as e:
                stale_pairs += 1
                logger.info(
                    "pair skipped, contender already taken",
                    extra={
                        "contender_a": proposal.contender_a.id,
                        "contender_b": proposal.contender_b.id,
                        "detail": str(e),
                    },
                )
                continue
            except SQLAlchemyError as e:
                errors.append(e)
                logger.warning(
                    "pair commit failed",
                    exc_info=True,
                    extra={"contender_a": proposal.contender_a.id, "contender_b": proposal.contender_b.id},
                )
                continue

            matching_scores.append(MatchingScoreEntry(
                battle_id=battle.id,
                contender_a=proposal.contender_a.title,
                contender_b=proposal.contender_b.title,
                category=battle.category.value,
                score=proposal.score,
            ))

        if not matching_scores:
            if errors and not stale_pairs:
                logger.error("every pair commit failed", extra={"pairs": len(errors)})
                raise MatchingUnavailableError(f"{len(errors)} pair commit(s) failed") from errors[-1]
            return self._failure(MatchingFailureReason.NO_VALID_MATCHES, force=force)

        logger.info(
            "matching completed",
            extra={"matches_created": len(matching_scores), "forced": force},
        )
        return MatchingResult(
            success=True,
            message=f"{len(matching_scores)} battle(s) created.",
            matches_created=len(matching_scores),
            matching_scores=matching_scores,
            battle_ids=[entry.battle_id for entry in matching_scores],
            forced=force,
        )

    def commit_proposal(self, proposal: MatchProposal, now: Optional[datetime] = None) -> BattleRead:
        """Commit one selected pair as a smart-matched battle"""
        return self._commit_pair(
            proposal.contender_a.id,
            proposal.contender_b.id,
            matching_method=MatchingMethod.SMART_ALGORITHM,
            matching_score=proposal.score,
            creator_id=None,
            now=now or self.clock(),
        )

    async def create_manual_battle(self, contender_a_id: int, contender_b_id: int, creator_id: str) -> ManualBattleResult:
        """Pair two contenders chosen by a user"""
        now = self.clock()
        if contender_a_id == contender_b_id:
            return self._manual_failure(MatchingFailureReason.SAME_CONTENDER)

        with self.session_factory() as db:
            store = ContenderStore(db)
            contender_a = store.get_contender(contender_a_id)
            contender_b = store.get_contender(contender_b_id)
        if contender_a is None or contender_b is None:
            return self._manual_failure(MatchingFailureReason.CONTENDER_NOT_FOUND)

        reason = rejection_reason(contender_a, contender_b)
        if reason is not None:
            return self._manual_failure(MatchingFailureReason(reason))

        try:
            battle = self._commit_pair(
                contender_a.id,
                contender_b.id,
                matching_method=MatchingMethod.MANUAL,
                matching_score=score_pair(contender_a, contender_b, weights=self.weights, now=now),
                creator_id=creator_id,
                now=now,
            )
        except _STALE_PAIR_ERRORS:
            return self._manual_failure(MatchingFailureReason.CONTENDER_UNAVAILABLE)
        except SQLAlchemyError as e:
            logger.error("manual battle commit failed", exc_info=True)
            raise MatchingUnavailableError("manual battle commit failed") from e

        logger.info("manual battle created", extra={"battle_id": battle.id, "creator_id": creator_id})
        return ManualBattleResult(success=True, message="Battle created.", battle=battle)

    async def get_matching_statistics(self) -> MatchingStatistics:
        """Pool size, distributions and remaining cooldown"""
        now = self.clock()
        with self.session_factory() as db:
            available = ContenderStore(db).get_available_contenders()
            active_battles = BattleStore(db).count_active_battles(now)
            last_run = CooldownStore(db).get_last_matching_run()

        category_distribution = {category.value: 0 for category in Category}
        platform_distribution = {platform.value: 0 for platform in Platform}
        for contender in available:
            category_distribution[contender.category.value] += 1
            platform_distribution[contender.platform.value] += 1

        next_matching_time = last_run + self.cooldown if last_run else None
        cooldown_remaining = 0
        if next_matching_time is not None and next_matching_time > now:
            cooldown_remaining = math.ceil((next_matching_time - now).total_seconds())

        return MatchingStatistics(
            total_available_contenders=len(available),
            total_active_battles=active_battles,
            cooldown_remaining=cooldown_remaining,
            category_distribution=category_distribution,
            platform_distribution=platform_distribution,
            last_matching_time=last_run,
            next_matching_time=next_matching_time,
        )

    def _commit_pair(
        self,
        contender_a_id: int,
        contender_b_id: int,
        matching_method: MatchingMethod,
        matching_score: Optional[float],
        creator_id: Optional[str],
        now: datetime,
    ) -> BattleRead:
        """Mark both contenders matched and create the battle, all or nothing"""
        contender_ids = [contender_a_id, contender_b_id]

        with self.session_factory.begin() as db:
            battles = BattleStore(db)

            def claim(rows):
                for contender_id, row in zip(contender_ids, rows):
                    if row is None or row.status != ContenderStatus.AVAILABLE:
                        raise ContenderUnavailableError(contender_id, row.status if row else None)
                contender_a, contender_b = rows
                battle = battles.create_battle(BattleCreate(
                    title=f"{contender_a.title} vs {contender_b.title}",
                    category=contender_a.category,
                    item_a=snapshot_contender(contender_a),
                    item_b=snapshot_contender(contender_b),
                    matching_method=matching_method,
                    matching_score=matching_score,
                    creator_id=creator_id,
                    created_at=now,
                    ends_at=now + timedelta(days=self.settings.BATTLE_DURATION_DAYS),
                ))
                for row in rows:
                    row.status = ContenderStatus.MATCHED
                    row.battle_count = (row.battle_count or 0) + 1
                    row.last_battle_id = battle.id
                return battle

            battle = ContenderStore(db).transactional_update(contender_ids, claim)
            return battles.to_read(battle, now)

    def _next_matching_time(self, now: datetime) -> Optional[datetime]:
        """When the cooldown ends, or None if matching may run now"""
        with self.session_factory() as db:
            last_run = CooldownStore(db).get_last_matching_run()
        if last_run is None or now - last_run >= self.cooldown:
            return None
        return last_run + self.cooldown

    def _claim_run(self, now: datetime) -> Tuple[bool, Optional[datetime]]:
        """Take the cooldown slot for an unforced run: (claimed, previous last run)"""
        try:
            with self.session_factory.begin() as db:
                store = CooldownStore(db)
                previous = store.get_last_matching_run()
                if previous is not None and now - previous < self.cooldown:
                    return False, previous
                return store.compare_and_set(previous, now), previous
        except IntegrityError:
            # a concurrent first run inserted the state row
            return False, None

    def _release_run(self, claimed_at: datetime, previous: Optional[datetime]) -> None:
        """Hand the slot back after an unforced run that created no battle"""
        try:
            with self.session_factory.begin() as db:
                CooldownStore(db).compare_and_set(claimed_at, previous)
        except SQLAlchemyError:
            logger.warning("cooldown release failed", exc_info=True, extra={"claimed_at": claimed_at.isoformat()})

    def _record_run(self, now: datetime) -> None:
        """Start the cooldown after a forced run; its battles are already committed"""
        for attempt in (1, 2):
            try:
                with self.session_factory.begin() as db:
                    CooldownStore(db).set_last_matching_run(now)
                return
            except IntegrityError:
                if attempt == 1:
                    continue  # a concurrent first run inserted the state row
                logger.error("cooldown update failed after matching", exc_info=True)
            except SQLAlchemyError:
                logger.error("cooldown update failed after matching", exc_info=True)
                return

    def _failure(
        self,
        reason: MatchingFailureReason,
        force: bool,
        next_matching_time: Optional[datetime] = None,
    ) -> MatchingResult:
        return MatchingResult(
            success=False,
            reason=reason,
            message=MATCHING_FAILURE_MESSAGES[reason],
            matches_created=0,
            next_matching_time=next_matching_time,
            forced=force,
        )

    def _manual_failure(self, reason: MatchingFailureReason) -> ManualBattleResult:
        return ManualBattleResult(success=False, reason=reason, message=MATCHING_FAILURE_MESSAGES[reason])
