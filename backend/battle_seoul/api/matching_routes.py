"""
Matching API routes
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from battle_seoul.core.database import get_session_factory
from battle_seoul.core.exceptions import MatchingUnavailableError
from battle_seoul.schemas.matching_schemas import MatchingResult, MatchingRunRequest, MatchingStatistics
from battle_seoul.services.matching_service import MatchingService

router = APIRouter()

@router.post("/run", response_model=MatchingResult)
async def run_smart_matching(
    request: MatchingRunRequest,
    session_factory=Depends(get_session_factory)
):
    """Run smart matching (cooldown applies unless force is set)"""
    matching_service = MatchingService(session_factory)
    try:
        return await matching_service.run_smart_matching(max_matches=request.max_matches, force=request.force)
    except MatchingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

@router.post("/force", response_model=MatchingResult)
async def execute_force_matching(
    max_matches: Optional[int] = None,
    session_factory=Depends(get_session_factory)
):
    """Run smart matching ignoring the cooldown"""
    if max_matches is not None and max_matches < 1:
        raise HTTPException(status_code=422, detail="max_matches must be positive")
    matching_service = MatchingService(session_factory)
    try:
        return await matching_service.execute_force_matching(max_matches=max_matches)
    except MatchingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

@router.get("/statistics", response_model=MatchingStatistics)
async def get_matching_statistics(
    session_factory=Depends(get_session_factory)
):
    """Pool and cooldown overview"""
    matching_service = MatchingService(session_factory)
    return await matching_service.get_matching_statistics()
