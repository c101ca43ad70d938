"""pytest configuration and fixtures."""

import itertools
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from battle_seoul.core.config import Settings
from battle_seoul.core.database import Base, import_models
from battle_seoul.models.battle import MatchingMethod
from battle_seoul.models.contender import Category
from battle_seoul.schemas.battle_schemas import BattleCreate, BattleItem
from battle_seoul.schemas.contender_schemas import ContenderCreate
from battle_seoul.schemas.media_schemas import ImageMedia
from battle_seoul.services.battle_store import BattleStore
from battle_seoul.services.contender_store import ContenderStore
from battle_seoul.services.leader import compute_current_leader

START = datetime(2026, 3, 1, 12, 0, 0)


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file per test."""
    import_models()
    engine = create_engine(
        f"sqlite:///{tmp_path / 'battle_seoul_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        MATCHING_COOLDOWN_MINUTES=30,
        BATTLE_DURATION_DAYS=7,
        VOTE_REWARD_POINTS=10,
        VOTE_MAX_RETRIES=3,
    )


@pytest.fixture
def make_contender(session_factory, clock):
    """Insert an available contender and return its ContenderRead."""
    counter = itertools.count(1)

    def _make(
        creator_id: str,
        title: str = None,
        category: Category = Category.MUSIC,
        media=None,
        like_count: int = 0,
        view_count: int = 0,
        created_at: datetime = None,
    ):
        number = next(counter)
        title = title or f"contender-{number}"
        with session_factory.begin() as db:
            return ContenderStore(db).create_contender(ContenderCreate(
                creator_id=creator_id,
                creator_name=f"user {creator_id}",
                title=title,
                category=category,
                media=media or ImageMedia(image_url=f"https://cdn.example.com/{number}.jpg"),
                like_count=like_count,
                view_count=view_count,
                created_at=created_at or clock.now - timedelta(hours=1),
            ))

    return _make


@pytest.fixture
def make_battle(session_factory, clock, make_contender):
    """Insert a battle directly, with preset tallies."""

    def _make(
        item_a_votes: int = 0,
        item_b_votes: int = 0,
        ends_in: timedelta = timedelta(days=7),
        category: Category = Category.MUSIC,
        creator_id: str = None,
        view_count: int = 0,
        titles: tuple = (None, None),
    ):
        contender_a = make_contender("creator-a", title=titles[0], category=category)
        contender_b = make_contender("creator-b", title=titles[1], category=category)
        with session_factory.begin() as db:
            store = BattleStore(db)
            battle = store.create_battle(BattleCreate(
                title=f"{contender_a.title} vs {contender_b.title}",
                category=contender_a.category,
                item_a=BattleItem(**_item_fields(contender_a)),
                item_b=BattleItem(**_item_fields(contender_b)),
                matching_method=MatchingMethod.MANUAL if creator_id else MatchingMethod.SMART_ALGORITHM,
                matching_score=80.0,
                creator_id=creator_id,
                created_at=clock.now,
                ends_at=clock.now + ends_in,
            ))
            battle.item_a_votes = item_a_votes
            battle.item_b_votes = item_b_votes
            battle.total_votes = item_a_votes + item_b_votes
            battle.view_count = view_count
            leader = compute_current_leader(item_a_votes, item_b_votes)
            battle.leader_winner = leader.winner
            battle.leader_percentage = leader.percentage
            battle.leader_margin = leader.margin
            return battle.id

    return _make


def _item_fields(contender):
    return {
        "contender_id": contender.id,
        "title": contender.title,
        "creator_id": contender.creator_id,
        "creator_name": contender.creator_name,
        "category": contender.category,
        "platform": contender.platform,
        "media": contender.media,
        "image_url": contender.image_url,
    }
