# Business logic services
from .battle_service import BattleService
from .contender_service import ContenderService
from .matching_service import MatchingService
from .media_service import MediaService
from .voting_service import VotingService

__all__ = ["BattleService", "ContenderService", "MatchingService", "MediaService", "VotingService"]
