"""
Match update service: load, apply sport rules, version-checked save, broadcast
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    ScoringError,
    StateViolation,
    ValidationError,
)
from app.core.metrics import MATCH_CREATE_COUNT, MATCH_UPDATE_COUNT
from app.models.enums import MatchStatus, Sport
from app.repos.match_repo import (
    create_match,
    get_live_matches,
    get_match_by_id,
    get_matches,
    replace_match_if_version,
)
from app.rules.registry import rules_for
from app.schemas.match import MatchCreate, match_document
from app.schemas.state import MatchSnapshot
from app.services.broadcaster import ALL_MATCHES_TOPIC, Broadcaster, match_topic

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_sport(value: Any) -> Sport:
    """Resolve a path segment like ``table-tennis`` or ``KHO_KHO`` to a Sport"""
    if isinstance(value, Sport):
        return value
    normalized = str(value).strip().upper().replace("-", "_")
    for candidate in (normalized, normalized.replace("_", "")):
        try:
            return Sport(candidate)
        except ValueError:
            continue
    allowed = ", ".join(s.value.lower() for s in Sport)
    raise ValidationError(f"Unknown sport '{value}'. Must be one of: {allowed}")


def parse_status(value: str) -> MatchStatus:
    try:
        return MatchStatus(value.upper())
    except ValueError:
        allowed = ", ".join(s.value for s in MatchStatus)
        raise ValidationError(f"Unknown status '{value}'. Must be one of: {allowed}")


class MatchService:
    """
    Orchestrates one match operation per call.

    The session and broadcaster are injected per request; the clock is
    injectable so timer arithmetic can be tested deterministically.
    """

    def __init__(self, session: AsyncSession, broadcaster: Broadcaster, clock: Optional[Clock] = None):
        self.session = session
        self.broadcaster = broadcaster
        self.clock = clock or utc_now

    async def create(self, sport: Any, payload: Any) -> Dict[str, Any]:
        sport = parse_sport(sport)
        if isinstance(payload, MatchCreate):
            options = payload
        else:
            try:
                options = MatchCreate.model_validate(payload or {})
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid match payload: {e.errors()[0]['msg']}") from e

        rules = rules_for(sport)
        snapshot = MatchSnapshot(
            id=str(uuid.uuid4()),
            sport=sport,
            team_a=options.team_a,
            team_b=options.team_b,
            scheduled_at=options.scheduled_at,
            venue=options.venue,
            match_category=options.match_category,
            notes=options.notes,
            state=rules.new_state(sport, options),
        )
        match = await create_match(self.session, snapshot)
        MATCH_CREATE_COUNT.labels(sport=sport.value).inc()
        logger.info(f"Created {sport.value} match {match.id}: {options.team_a} vs {options.team_b}")

        document = match_document(match.to_snapshot(), self.clock())
        await self._publish(match.id, {"event": "matchCreated", "data": document})
        return document

    async def update(
        self,
        match_id: str,
        action: Mapping[str, Any],
        sport: Optional[Any] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Apply one admin action to a match.

        Args:
            match_id: Match to update
            action: ``{"action": name, ...fields}``
            sport: Sport named in the request path, checked against the match
            expected_version: Version the admin UI last saw

        Returns:
            The committed match document

        Raises:
            NotFoundError, ValidationError, StateViolation,
            ConcurrentModificationError, PersistenceError
        """
        match = await get_match_by_id(self.session, match_id)
        if match is None:
            raise NotFoundError(match_id)
        current = match.to_snapshot()
        action_name = action.get("action") if isinstance(action, Mapping) else None

        try:
            if sport is not None and parse_sport(sport) != current.sport:
                raise ValidationError(
                    f"Match {match_id} is a {current.sport.value} match, not {sport}"
                )
            if expected_version is not None and expected_version != current.version:
                raise ConcurrentModificationError(match_id, expected_version, current.version)

            now = self.clock()
            updated, events = rules_for(current.sport).apply(current, action, now)
            new_version = await replace_match_if_version(self.session, updated, current.version, now)
        except ScoringError as e:
            self._record_failure(current, action_name, e)
            raise

        updated.version = new_version
        updated.updated_at = now
        MATCH_UPDATE_COUNT.labels(sport=current.sport.value, outcome="applied").inc()
        logger.info(f"Applied {action_name} to match {match_id} (v{new_version}, status {updated.status.value})")

        document = match_document(updated, now)
        await self._publish(match_id, {"event": "matchUpdated", "data": document, "events": events})
        return document

    async def get(self, match_id: str) -> Dict[str, Any]:
        match = await get_match_by_id(self.session, match_id)
        if match is None:
            raise NotFoundError(match_id)
        return match_document(match.to_snapshot(), self.clock())

    async def list_live(self) -> List[Dict[str, Any]]:
        now = self.clock()
        return [match_document(m.to_snapshot(), now) for m in await get_live_matches(self.session)]

    async def list_matches(
        self,
        sport: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        sport_value = parse_sport(sport).value if sport else None
        statuses = [parse_status(status).value] if status else None
        matches = await get_matches(self.session, limit=limit, offset=offset, sport=sport_value, statuses=statuses)
        now = self.clock()
        return [match_document(m.to_snapshot(), now) for m in matches]

    async def _publish(self, match_id: str, message: Dict[str, Any]) -> None:
        for topic in (match_topic(match_id), ALL_MATCHES_TOPIC):
            try:
                await self.broadcaster.publish(topic, message)
            except Exception as e:
                logger.error(f"Broadcast to {topic} failed for match {match_id}: {e}")

    @staticmethod
    def _record_failure(match: MatchSnapshot, action_name: Optional[str], error: ScoringError) -> None:
        MATCH_UPDATE_COUNT.labels(sport=match.sport.value, outcome=error.code).inc()
        if isinstance(error, StateViolation):
            logger.info(f"Rejected {action_name} on match {match.id}: {error.reason}")
        elif isinstance(error, ConcurrentModificationError):
            logger.warning(f"Stale update {action_name} on match {match.id}: {error}")
        elif isinstance(error, ValidationError):
            logger.info(f"Invalid {action_name} on match {match.id}: {error}")
