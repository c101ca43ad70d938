"""
Battle API routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from battle_seoul.core.database import get_session_factory
from battle_seoul.core.exceptions import MatchingUnavailableError, VotingUnavailableError
from battle_seoul.models.contender import Category
from battle_seoul.schemas.battle_schemas import BattleRead, VoteCheck, VoteRequest, VoteResult
from battle_seoul.schemas.matching_schemas import ManualBattleRequest, ManualBattleResult
from battle_seoul.services.battle_service import BattleService
from battle_seoul.services.matching_service import MatchingService
from battle_seoul.services.voting_service import VotingService

router = APIRouter()

@router.post("", response_model=ManualBattleResult)
async def create_manual_battle(
    request: ManualBattleRequest,
    session_factory=Depends(get_session_factory)
):
    """Create a battle from two chosen contenders"""
    matching_service = MatchingService(session_factory)
    try:
        return await matching_service.create_manual_battle(
            request.contender_a_id,
            request.contender_b_id,
            request.creator_id,
        )
    except MatchingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

@router.get("", response_model=List[BattleRead])
async def list_battles(
    active_only: bool = False,
    skip: int = 0,
    limit: int = 10,
    session_factory=Depends(get_session_factory)
):
    """List battles, newest first"""
    battle_service = BattleService(session_factory)
    return await battle_service.list_battles(active_only=active_only, skip=skip, limit=limit)

@router.get("/trending", response_model=List[BattleRead])
async def get_trending_battles(
    limit: int = Query(8, ge=1, le=50),
    session_factory=Depends(get_session_factory)
):
    """Running battles with the most votes and views"""
    battle_service = BattleService(session_factory)
    return await battle_service.get_trending_battles(limit=limit)

@router.get("/popular", response_model=List[BattleRead])
async def get_popular_battles(
    limit: int = Query(10, ge=1, le=50),
    session_factory=Depends(get_session_factory)
):
    """Most voted battles of all time"""
    battle_service = BattleService(session_factory)
    return await battle_service.get_popular_battles(limit=limit)

@router.get("/search", response_model=List[BattleRead])
async def search_battles(
    q: str = Query(..., min_length=1),
    category: Optional[Category] = None,
    limit: int = Query(20, ge=1, le=100),
    session_factory=Depends(get_session_factory)
):
    """Search battle titles"""
    battle_service = BattleService(session_factory)
    return await battle_service.search_battles(q, category=category, limit=limit)

@router.get("/users/{user_id}", response_model=List[BattleRead])
async def get_user_battles(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    session_factory=Depends(get_session_factory)
):
    """Battles a user created"""
    battle_service = BattleService(session_factory)
    return await battle_service.get_user_battles(user_id, limit=limit)

@router.get("/{battle_id}", response_model=BattleRead)
async def get_battle(
    battle_id: int,
    viewer_id: Optional[str] = None,
    session_factory=Depends(get_session_factory)
):
    """Get one battle and count the view"""
    battle_service = BattleService(session_factory)
    battle = await battle_service.get_battle_detail(battle_id, viewer_id=viewer_id)
    if not battle:
        raise HTTPException(status_code=404, detail="Battle not found")
    return battle

@router.get("/{battle_id}/related", response_model=List[BattleRead])
async def get_related_battles(
    battle_id: int,
    limit: int = Query(8, ge=1, le=50),
    session_factory=Depends(get_session_factory)
):
    """Other battles in the same category"""
    battle_service = BattleService(session_factory)
    battles = await battle_service.get_related_battles(battle_id, limit=limit)
    if battles is None:
        raise HTTPException(status_code=404, detail="Battle not found")
    return battles

@router.post("/{battle_id}/vote", response_model=VoteResult)
async def cast_vote(
    battle_id: int,
    vote: VoteRequest,
    session_factory=Depends(get_session_factory)
):
    """Vote for one side"""
    voting_service = VotingService(session_factory)
    try:
        return await voting_service.cast_vote(battle_id, vote.side, vote.voter_id)
    except VotingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

@router.get("/{battle_id}/voted/{user_id}", response_model=VoteCheck)
async def check_user_voted(
    battle_id: int,
    user_id: str,
    session_factory=Depends(get_session_factory)
):
    """Whether a user already voted, and for which side"""
    voting_service = VotingService(session_factory)
    check = await voting_service.check_user_voted(battle_id, user_id)
    if check is None:
        raise HTTPException(status_code=404, detail="Battle not found")
    return check
