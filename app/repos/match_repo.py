"""
Match repository with version-checked document replacement
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConcurrentModificationError, PersistenceError
from app.models.enums import MatchStatus
from app.models.match import Match
from app.schemas.state import MatchSnapshot

logger = logging.getLogger(__name__)

IN_PLAY_STATUSES = (
    MatchStatus.LIVE.value,
    MatchStatus.HALF_TIME.value,
    MatchStatus.FULL_TIME.value,
    MatchStatus.PENALTIES.value,
)


def _state_json(snapshot: MatchSnapshot) -> dict:
    return snapshot.state.model_dump(mode="json", by_alias=True)


async def create_match(session: AsyncSession, snapshot: MatchSnapshot) -> Match:
    """
    Insert a new match document.

    Args:
        session: Database session
        snapshot: Initial match document (status SCHEDULED, version 1)

    Returns:
        Created Match instance
    """
    match = Match(
        id=snapshot.id,
        sport=snapshot.sport.value,
        team_a=snapshot.team_a,
        team_b=snapshot.team_b,
        status=snapshot.status.value,
        version=snapshot.version,
        scheduled_at=snapshot.scheduled_at,
        venue=snapshot.venue,
        match_category=snapshot.match_category.value,
        notes=snapshot.notes,
        state=_state_json(snapshot),
    )
    try:
        session.add(match)
        await session.commit()
        await session.refresh(match)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error creating match {snapshot.id}: {e}")
        raise PersistenceError(f"Could not create match: {e}") from e
    return match


async def get_match_by_id(session: AsyncSession, match_id: str) -> Optional[Match]:
    """
    Get match by ID.

    Args:
        session: Database session
        match_id: Match ID as string

    Returns:
        Match instance or None if not found
    """
    try:
        result = await session.execute(
            select(Match).where(Match.id == match_id).execution_options(populate_existing=True)
        )
    except SQLAlchemyError as e:
        logger.error(f"Error loading match {match_id}: {e}")
        raise PersistenceError(f"Could not load match: {e}") from e
    return result.scalar_one_or_none()


async def get_matches(
    session: AsyncSession,
    limit: int = 50,
    offset: int = 0,
    sport: Optional[str] = None,
    statuses: Optional[Sequence[str]] = None,
) -> List[Match]:
    """
    Get list of matches, most recently updated first.

    Args:
        session: Database session
        limit: Maximum number of matches to return
        offset: Number of matches to skip
        sport: Filter by sport
        statuses: Filter by any of these statuses

    Returns:
        List of Match instances
    """
    query = select(Match).order_by(Match.updated_at.desc(), Match.created_at.desc())
    if sport:
        query = query.where(Match.sport == sport)
    if statuses:
        query = query.where(Match.status.in_(list(statuses)))
    query = query.limit(limit).offset(offset).execution_options(populate_existing=True)

    try:
        result = await session.execute(query)
    except SQLAlchemyError as e:
        logger.error(f"Error listing matches: {e}")
        raise PersistenceError(f"Could not list matches: {e}") from e
    return list(result.scalars().all())


async def get_live_matches(session: AsyncSession) -> List[Match]:
    """Matches currently in play, including intervals and shootouts"""
    return await get_matches(session, limit=200, statuses=IN_PLAY_STATUSES)


async def replace_match_if_version(
    session: AsyncSession,
    snapshot: MatchSnapshot,
    expected_version: int,
    now: datetime,
) -> int:
    """
    Atomically replace a match document if nobody committed since it was read.

    Issues ``UPDATE ... WHERE id = :id AND version = :expected`` and bumps
    the version in the same statement, so two writers holding the same
    version can never both succeed.

    Args:
        session: Database session
        snapshot: New match document
        expected_version: Version the update was computed from
        now: Commit timestamp

    Returns:
        The new version

    Raises:
        ConcurrentModificationError: another update committed first
        PersistenceError: the store rejected the write
    """
    new_version = expected_version + 1
    stmt = (
        update(Match)
        .where(Match.id == snapshot.id, Match.version == expected_version)
        .values(
            status=snapshot.status.value,
            winner=snapshot.winner,
            result_type=snapshot.result_type.value if snapshot.result_type else None,
            notes=snapshot.notes,
            state=_state_json(snapshot),
            version=new_version,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            current = await session.execute(select(Match.version).where(Match.id == snapshot.id))
            current_version = current.scalar_one_or_none()
            logger.warning(
                f"Version conflict on match {snapshot.id}: expected {expected_version}, found {current_version}"
            )
            raise ConcurrentModificationError(snapshot.id, expected_version, current_version)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error saving match {snapshot.id}: {e}")
        raise PersistenceError(f"Could not save match: {e}") from e

    return new_version
