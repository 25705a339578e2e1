"""
Shared machinery for sport rule modules.

Each module is a ``SportRules`` subclass registering named actions. An
action is a plain mapping ``{"action": "<name>", ...fields}``; its fields
are validated against the pydantic model registered for that name and the
handler mutates a deep copy of the match. Rule modules hold no state and do
no I/O.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core.exceptions import StateViolation, ValidationError
from app.models.enums import (
    MatchStatus,
    ResultType,
    Side,
    Sport,
    SportFamily,
    TERMINAL_STATUSES,
)
from app.schemas.state import CamelModel, MatchSnapshot

logger = logging.getLogger(__name__)

Event = Dict[str, Any]
Handler = Callable[[MatchSnapshot, Any, datetime, List[Event]], None]

# Legal status moves. Anything not listed is a state violation.
ALLOWED_TRANSITIONS = {
    MatchStatus.SCHEDULED: {MatchStatus.LIVE, MatchStatus.COMPLETED, MatchStatus.CANCELLED},
    MatchStatus.LIVE: {
        MatchStatus.HALF_TIME,
        MatchStatus.FULL_TIME,
        MatchStatus.COMPLETED,
        MatchStatus.CANCELLED,
    },
    MatchStatus.HALF_TIME: {MatchStatus.LIVE, MatchStatus.CANCELLED},
    MatchStatus.FULL_TIME: {MatchStatus.PENALTIES, MatchStatus.COMPLETED, MatchStatus.CANCELLED},
    MatchStatus.PENALTIES: {MatchStatus.COMPLETED, MatchStatus.CANCELLED},
    MatchStatus.COMPLETED: set(),
    MatchStatus.CANCELLED: set(),
}

# Fields the service layer adds to an action body that handlers never see
ENVELOPE_FIELDS = ("action", "version", "matchId")


class NoParams(CamelModel):
    pass


class CancelMatch(CamelModel):
    reason: str = ""


class SportRules:
    """Base class for the per-family rule modules"""

    family: SportFamily
    sports: Tuple[Sport, ...] = ()

    def __init__(self):
        self._actions: Dict[str, Tuple[Type[BaseModel], Handler]] = {
            "startMatch": (NoParams, self._start_match),
            "cancelMatch": (CancelMatch, self._cancel_match),
        }
        self._actions.update(self.actions())

    def actions(self) -> Dict[str, Tuple[Type[BaseModel], Handler]]:
        raise NotImplementedError

    def new_state(self, sport: Sport, options: Any):
        """Build the initial sport payload from creation options"""
        raise NotImplementedError

    @property
    def action_names(self) -> List[str]:
        return sorted(self._actions)

    def apply(
        self, match: MatchSnapshot, action: Mapping[str, Any], now: datetime
    ) -> Tuple[MatchSnapshot, List[Event]]:
        """Apply one action and return ``(new_match, events)``; ``match`` is untouched"""
        name = action.get("action")
        if not name:
            raise ValidationError("Update body must name an 'action'")
        if name not in self._actions:
            raise StateViolation(
                name,
                match.status.value,
                f"unknown action for {match.sport.value}; expected one of {', '.join(self.action_names)}",
            )
        if match.status in TERMINAL_STATUSES:
            raise StateViolation(name, match.status.value, "match is already finished")

        params_model, handler = self._actions[name]
        fields = {k: v for k, v in action.items() if k not in ENVELOPE_FIELDS}
        try:
            params = params_model.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid '{name}' payload: {e.errors()[0]['msg']}") from e

        updated = match.model_copy(deep=True)
        events: List[Event] = []
        handler(updated, params, now, events)
        return updated, events

    # ── Status helpers ───────────────────────────────────────────────────────

    @staticmethod
    def transition(match: MatchSnapshot, target: MatchStatus, action: str) -> None:
        if target not in ALLOWED_TRANSITIONS[match.status]:
            raise StateViolation(
                action, match.status.value, f"cannot move from {match.status.value} to {target.value}"
            )
        match.status = target

    def begin_play(self, match: MatchSnapshot, action: str, events: List[Event]) -> None:
        """Scoring on a scheduled match starts it; otherwise it must be LIVE"""
        if match.status == MatchStatus.SCHEDULED:
            self.transition(match, MatchStatus.LIVE, action)
            events.append({"type": "MATCH_STARTED"})
        elif match.status != MatchStatus.LIVE:
            raise StateViolation(action, match.status.value, "match is not in play")

    @staticmethod
    def require_status(match: MatchSnapshot, action: str, *allowed: MatchStatus) -> None:
        if match.status not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise StateViolation(action, match.status.value, f"only allowed while {names}")

    def complete(
        self,
        match: MatchSnapshot,
        winner: Optional[Side],
        result_type: ResultType,
        action: str,
        events: List[Event],
    ) -> None:
        self.transition(match, MatchStatus.COMPLETED, action)
        match.winner = match.team_id(winner) if winner is not None else None
        match.result_type = result_type
        events.append({
            "type": "MATCH_WON" if winner is not None else "MATCH_DRAWN",
            "winner": match.winner,
            "side": winner.value if winner is not None else None,
            "resultType": result_type.value,
        })
        logger.info(f"Match {match.id} completed: winner={match.winner} result={result_type.value}")

    # ── Actions shared by every sport ────────────────────────────────────────

    def _start_match(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "startMatch", MatchStatus.SCHEDULED)
        self.transition(match, MatchStatus.LIVE, "startMatch")
        events.append({"type": "MATCH_STARTED"})

    def _cancel_match(self, match: MatchSnapshot, params: CancelMatch, now: datetime, events: List[Event]) -> None:
        self.transition(match, MatchStatus.CANCELLED, "cancelMatch")
        match.winner = None
        match.result_type = ResultType.ABANDONED
        if params.reason:
            match.notes = params.reason
        events.append({"type": "MATCH_CANCELLED", "reason": params.reason})
