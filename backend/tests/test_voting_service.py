"""Tests for vote casting."""

import asyncio
import threading
from datetime import timedelta

import pytest
from sqlalchemy.orm.exc import StaleDataError

from battle_seoul.core.exceptions import VotingUnavailableError
from battle_seoul.models.battle import Battle, BattleSide
from battle_seoul.models.battle_vote import BattleVote
from battle_seoul.schemas.battle_schemas import VoteFailureReason
from battle_seoul.services.voting_service import VotingService

@pytest.fixture
def service(session_factory, test_settings, clock):
    return VotingService(session_factory=session_factory, settings=test_settings, clock=clock)

def load_battle(session_factory, battle_id):
    with session_factory() as db:
        return db.get(Battle, battle_id)

class TestCastVote:
    """cast_vote outcomes."""

    @pytest.mark.asyncio
    async def test_first_vote(self, service, make_battle):
        """A vote bumps the side, the total, and the participants."""
        battle_id = make_battle()

        result = await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")

        assert result.success is True
        assert result.selected_side == BattleSide.ITEM_A
        assert result.battle.item_a.votes == 1
        assert result.battle.item_b.votes == 0
        assert result.battle.total_votes == 1
        assert result.battle.participants == ["v1"]
        assert result.current_leader.winner == "itemA"
        assert result.current_leader.percentage == 100
        assert result.current_leader.margin == 1

    @pytest.mark.asyncio
    async def test_reward_is_emitted(self, service, make_battle):
        """A successful vote carries a points reward for the voter."""
        battle_id = make_battle()

        result = await service.cast_vote(battle_id, BattleSide.ITEM_B, "v1")

        assert result.reward.user_id == "v1"
        assert result.reward.points == 10
        assert result.reward.reason == "battle_vote"

    @pytest.mark.asyncio
    async def test_vote_breaks_a_tie(self, service, make_battle):
        """5-5 plus a vote for A leaves A ahead with 55 percent."""
        battle_id = make_battle(item_a_votes=5, item_b_votes=5)

        result = await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")

        assert result.battle.item_a.votes == 6
        assert result.battle.total_votes == 11
        assert result.current_leader.winner == "itemA"
        assert result.current_leader.margin == 1
        assert result.current_leader.percentage == 55

    @pytest.mark.asyncio
    async def test_side_given_as_string(self, service, make_battle):
        """Wire values are accepted."""
        battle_id = make_battle()

        result = await service.cast_vote(battle_id, "itemB", "v1")

        assert result.success is True
        assert result.battle.item_b.votes == 1

    @pytest.mark.asyncio
    async def test_unknown_side_rejected(self, service, make_battle):
        battle_id = make_battle()
        with pytest.raises(ValueError):
            await service.cast_vote(battle_id, "itemC", "v1")

    @pytest.mark.asyncio
    async def test_already_voted(self, service, make_battle, session_factory):
        """A second vote changes nothing and reports the earlier choice."""
        battle_id = make_battle()
        await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")

        result = await service.cast_vote(battle_id, BattleSide.ITEM_B, "v1")

        assert result.success is False
        assert result.reason == VoteFailureReason.ALREADY_VOTED
        assert result.selected_side == BattleSide.ITEM_A
        assert result.reward is None
        battle = load_battle(session_factory, battle_id)
        assert (battle.item_a_votes, battle.item_b_votes, battle.total_votes) == (1, 0, 1)

    @pytest.mark.asyncio
    async def test_battle_ended(self, service, make_battle, clock, session_factory):
        """Votes at or after ends_at are refused."""
        battle_id = make_battle(ends_in=timedelta(hours=1))
        clock.advance(hours=1)

        result = await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")

        assert result.success is False
        assert result.reason == VoteFailureReason.BATTLE_ENDED
        assert load_battle(session_factory, battle_id).total_votes == 0

    @pytest.mark.asyncio
    async def test_battle_not_found(self, service):
        result = await service.cast_vote(999, BattleSide.ITEM_A, "v1")
        assert result.success is False
        assert result.reason == VoteFailureReason.BATTLE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_tallies_stay_consistent(self, service, make_battle, session_factory):
        """Total equals the sum of sides and the number of vote rows."""
        battle_id = make_battle()
        for i in range(9):
            side = BattleSide.ITEM_A if i % 3 else BattleSide.ITEM_B
            await service.cast_vote(battle_id, side, f"v{i}")
        await service.cast_vote(battle_id, BattleSide.ITEM_A, "v0")

        battle = load_battle(session_factory, battle_id)
        assert battle.total_votes == battle.item_a_votes + battle.item_b_votes == 9
        assert (battle.item_a_votes, battle.item_b_votes) == (6, 3)
        with session_factory() as db:
            assert db.query(BattleVote).filter(BattleVote.battle_id == battle_id).count() == 9

    @pytest.mark.asyncio
    async def test_even_split_is_a_tie(self, service, make_battle):
        battle_id = make_battle()
        await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")

        result = await service.cast_vote(battle_id, BattleSide.ITEM_B, "v2")

        assert result.current_leader.winner == "tie"
        assert result.current_leader.percentage == 50
        assert result.current_leader.margin == 0
        assert result.battle.live_status.status == "competitive"

class TestConflictRetry:
    """Optimistic concurrency on the battle row."""

    def test_concurrent_write_is_detected(self, make_battle, session_factory):
        """A write based on an outdated read fails its version check."""
        battle_id = make_battle()
        first = session_factory()
        second = session_factory()
        try:
            battle_first = first.get(Battle, battle_id)
            battle_second = second.get(Battle, battle_id)
            battle_first.item_a_votes += 1
            first.commit()

            battle_second.item_b_votes += 1
            with pytest.raises(StaleDataError):
                second.flush()
            second.rollback()
        finally:
            first.close()
            second.close()

    @pytest.mark.asyncio
    async def test_retries_after_conflict(self, service, make_battle, monkeypatch):
        """A conflict is retried from a fresh read."""
        battle_id = make_battle()
        original = service._cast_vote_once
        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) == 1:
                raise StaleDataError("battles row changed underneath")
            return original(*args)

        monkeypatch.setattr(service, "_cast_vote_once", flaky)

        result = await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")

        assert result.success is True
        assert result.battle.total_votes == 1
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, service, make_battle, monkeypatch, session_factory):
        """Persistent conflicts surface as VotingUnavailableError."""
        battle_id = make_battle()
        calls = []

        def always_stale(*args):
            calls.append(args)
            raise StaleDataError("battles row changed underneath")

        monkeypatch.setattr(service, "_cast_vote_once", always_stale)

        with pytest.raises(VotingUnavailableError):
            await service.cast_vote(battle_id, BattleSide.ITEM_A, "v1")
        assert len(calls) == 3
        assert load_battle(session_factory, battle_id).total_votes == 0

class TestReads:
    """check_user_voted."""

    @pytest.mark.asyncio
    async def test_check_user_voted(self, service, make_battle):
        battle_id = make_battle()

        before = await service.check_user_voted(battle_id, "v1")
        await service.cast_vote(battle_id, BattleSide.ITEM_B, "v1")
        after = await service.check_user_voted(battle_id, "v1")

        assert before.has_voted is False
        assert before.selected_side is None
        assert after.has_voted is True
        assert after.selected_side == BattleSide.ITEM_B

    @pytest.mark.asyncio
    async def test_check_user_voted_missing_battle(self, service):
        assert await service.check_user_voted(999, "v1") is None

class TestSimultaneousVotes:
    """Votes arriving from many threads at once."""

    def test_every_distinct_voter_is_counted(self, service, make_battle, session_factory):
        """Nine threads, seven distinct voters: seven votes land, the repeats get already_voted."""
        battle_id = make_battle()
        voters = [f"v{i}" for i in range(6)] + ["dup"] * 3
        barrier = threading.Barrier(len(voters))
        results, errors = [], []
        lock = threading.Lock()

        def vote(voter_id, side):
            barrier.wait()
            try:
                result = asyncio.run(service.cast_vote(battle_id, side, voter_id))
            except Exception as e:
                with lock:
                    errors.append(e)
                return
            with lock:
                results.append(result)

        threads = [
            threading.Thread(target=vote, args=(voter_id, BattleSide.ITEM_A if i % 2 else BattleSide.ITEM_B))
            for i, voter_id in enumerate(voters)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert sum(1 for result in results if result.success) == 7
        assert [result.reason for result in results if not result.success] == [VoteFailureReason.ALREADY_VOTED] * 2
        battle = load_battle(session_factory, battle_id)
        assert battle.total_votes == battle.item_a_votes + battle.item_b_votes == 7
        with session_factory() as db:
            assert db.query(BattleVote).filter(BattleVote.battle_id == battle_id).count() == 7
        assert battle.leader_margin == abs(battle.item_a_votes - battle.item_b_votes)
