"""
Contender API routes
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional
from battle_seoul.core.database import get_session_factory
from battle_seoul.core.exceptions import MediaDetectionError
from battle_seoul.models.contender import Category
from battle_seoul.schemas.contender_schemas import ContenderRead, ContenderUpload
from battle_seoul.services.contender_service import ContenderService

router = APIRouter()

@router.post("", response_model=ContenderRead, status_code=201)
async def upload_contender(
    upload: ContenderUpload,
    session_factory=Depends(get_session_factory)
):
    """Upload a contender"""
    contender_service = ContenderService(session_factory)
    try:
        return await contender_service.upload_contender(upload)
    except MediaDetectionError as e:
        raise HTTPException(status_code=400, detail=str(e))

@router.get("", response_model=List[ContenderRead])
async def list_contenders(
    available_only: bool = False,
    category: Optional[Category] = None,
    creator_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
    session_factory=Depends(get_session_factory)
):
    """List contenders, newest first"""
    contender_service = ContenderService(session_factory)
    return await contender_service.list_contenders(
        available_only=available_only,
        category=category,
        creator_id=creator_id,
        skip=skip,
        limit=limit,
    )

@router.get("/{contender_id}", response_model=ContenderRead)
async def get_contender(
    contender_id: int,
    session_factory=Depends(get_session_factory)
):
    """Get one contender"""
    contender_service = ContenderService(session_factory)
    contender = await contender_service.get_contender(contender_id)
    if not contender:
        raise HTTPException(status_code=404, detail="Contender not found")
    return contender
