"""
Database configuration
"""
import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from battle_seoul.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,  # set to True to log SQL statements
    **_engine_kwargs(settings.DATABASE_URL)
)
SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()

def get_session_factory():
    """Session factory used by services that open one transaction per operation"""
    return SessionLocal

def import_models():
    """Register every model on Base.metadata"""
    from battle_seoul.models.contender import Contender  # noqa: F401
    from battle_seoul.models.battle import Battle  # noqa: F401
    from battle_seoul.models.battle_vote import BattleVote  # noqa: F401
    from battle_seoul.models.battle_view import BattleView  # noqa: F401
    from battle_seoul.models.matching_state import MatchingState  # noqa: F401

async def init_db(bind=None):
    """Create all tables"""
    import_models()
    Base.metadata.create_all(bind=bind or engine)
    logger.info("database initialised")
