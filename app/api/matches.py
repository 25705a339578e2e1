"""
Match scoring endpoints: admin writes and public reads
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import get_current_admin
from app.core.exceptions import ValidationError
from app.db.session import get_db
from app.schemas.match import MatchCreate
from app.services.broadcaster import Broadcaster
from app.services.match_service import MatchService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_match_service(
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> MatchService:
    return MatchService(db, broadcaster)


@router.post("/matches/{sport}/create", status_code=status.HTTP_201_CREATED)
async def create_match(
    sport: str,
    payload: MatchCreate,
    current_admin: Dict[str, Any] = Depends(get_current_admin),
    service: MatchService = Depends(get_match_service),
):
    """Create a scheduled match for ``sport``"""
    logger.info(f"Admin {current_admin.get('sub')} creating {sport} match")
    return await service.create(sport, payload)


@router.put("/matches/{sport}/update/{match_id}")
async def update_match(
    sport: str,
    match_id: str,
    body: Dict[str, Any] = Body(...),
    current_admin: Dict[str, Any] = Depends(get_current_admin),
    service: MatchService = Depends(get_match_service),
):
    """
    Apply one scoring action.

    Body is ``{"action": "<name>", "version": <int>?, ...action fields}``.
    Returns the committed match document with its new version.
    """
    expected_version = body.get("version")
    if expected_version is not None and (isinstance(expected_version, bool) or not isinstance(expected_version, int)):
        raise ValidationError("'version' must be an integer")
    return await service.update(match_id, body, sport=sport, expected_version=expected_version)


@router.get("/matches/live")
async def list_live_matches(service: MatchService = Depends(get_match_service)) -> List[Dict[str, Any]]:
    """Matches in play, including intervals and shootouts"""
    return await service.list_live()


@router.get("/matches")
async def list_matches(
    sport: Optional[str] = None,
    match_status: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: MatchService = Depends(get_match_service),
) -> List[Dict[str, Any]]:
    return await service.list_matches(sport=sport, status=match_status, limit=limit, offset=offset)


@router.get("/matches/{match_id}")
async def get_match(match_id: str, service: MatchService = Depends(get_match_service)):
    return await service.get(match_id)
