"""
Binary-outcome sports (chess): the only scoring action is the result.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.core.exceptions import ValidationError
from app.models.enums import DRAWN_RESULTS, MatchStatus, ResultType, Side, Sport, SportFamily
from app.rules.base import Event, SportRules
from app.schemas.state import CamelModel, MatchSnapshot, SimpleState

CHESS_RESULTS = frozenset({
    ResultType.CHECKMATE,
    ResultType.RESIGNATION,
    ResultType.STALEMATE,
    ResultType.TIMEOUT,
    ResultType.DRAW,
})


class DeclareWinner(CamelModel):
    winner_id: Optional[str] = None
    result_type: ResultType
    moves: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)


class SimpleRules(SportRules):
    family = SportFamily.SIMPLE
    sports = (Sport.CHESS,)

    def actions(self):
        return {"declareWinner": (DeclareWinner, self._declare_winner)}

    def new_state(self, sport: Sport, options) -> SimpleState:
        return SimpleState(player_a=options.player_a, player_b=options.player_b)

    def _declare_winner(self, match: MatchSnapshot, params: DeclareWinner, now: datetime,
                        events: List[Event]) -> None:
        self.require_status(match, "declareWinner", MatchStatus.SCHEDULED, MatchStatus.LIVE)
        if params.result_type not in CHESS_RESULTS:
            allowed = ", ".join(sorted(r.value for r in CHESS_RESULTS))
            raise ValidationError(f"Invalid result type. Must be one of: {allowed}")

        state: SimpleState = match.state
        state.result_type = params.result_type
        if params.moves is not None:
            state.moves = params.moves
        if params.duration is not None:
            state.duration = params.duration

        if params.result_type in DRAWN_RESULTS:
            self.complete(match, None, params.result_type, "declareWinner", events)
            return

        if params.winner_id == match.team_a:
            winner = Side.A
        elif params.winner_id == match.team_b:
            winner = Side.B
        else:
            raise ValidationError("Winner must be one of the participating teams")
        self.complete(match, winner, params.result_type, "declareWinner", events)
