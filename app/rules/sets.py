"""
Set-based scoring for badminton, table tennis and volleyball.

Points are entered one rally at a time; closing a set is an explicit admin
action that is checked against the match's deuce/cap policy.
"""

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from app.core.exceptions import StateViolation
from app.models.enums import MatchStatus, ResultType, ServiceRule, Side, Sport, SportFamily
from app.rules.base import Event, NoParams, SportRules
from app.schemas.state import (
    CamelModel,
    CurrentSet,
    MatchSnapshot,
    ServiceMark,
    SetDetail,
    SetRules,
    SetState,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_SETS = 3

# Built-in policies; a match may override any field at creation time
DEFAULT_RULES: Dict[Sport, SetRules] = {
    Sport.BADMINTON: SetRules(win_threshold=21, min_margin=2, hard_cap=30,
                              service_rule=ServiceRule.RALLY, serves_per_turn=1),
    Sport.TABLE_TENNIS: SetRules(win_threshold=11, min_margin=2, hard_cap=None,
                                 service_rule=ServiceRule.ALTERNATE, serves_per_turn=2),
    Sport.VOLLEYBALL: SetRules(win_threshold=25, min_margin=2, hard_cap=None,
                               deciding_set_threshold=15,
                               service_rule=ServiceRule.RALLY, serves_per_turn=1),
}


class StartSet(CamelModel):
    set_number: Optional[int] = Field(None, ge=1)
    server: Optional[Side] = None


class UpdateSetPoints(CamelModel):
    team: Side
    delta: int = 1

    @field_validator("delta")
    @classmethod
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("delta must be non-zero")
        return v


class EndSet(CamelModel):
    winner: Side


def sets_to_win(max_sets: int) -> int:
    return math.ceil(max_sets / 2)


def set_threshold(state: SetState, set_number: int) -> int:
    rules = state.rules
    if rules.deciding_set_threshold and set_number == state.max_sets:
        return rules.deciding_set_threshold
    return rules.win_threshold


def has_won_set(rules: SetRules, threshold: int, points: int, opponent: int) -> bool:
    """points >= threshold with the required lead, or the hard cap reached"""
    if points <= opponent:
        return False
    if rules.hard_cap is not None and points >= rules.hard_cap:
        return True
    return points >= threshold and points - opponent >= rules.min_margin


class SetRulesModule(SportRules):
    family = SportFamily.SET
    sports = (Sport.BADMINTON, Sport.TABLE_TENNIS, Sport.VOLLEYBALL)

    def actions(self):
        return {
            "startSet": (StartSet, self._start_set),
            "updateSetPoints": (UpdateSetPoints, self._update_set_points),
            "toggleServer": (NoParams, self._toggle_server),
            "endSet": (EndSet, self._end_set),
        }

    def new_state(self, sport: Sport, options) -> SetState:
        rules = DEFAULT_RULES[sport].model_copy()
        if options.rules is not None:
            rules = rules.model_copy(update=options.rules.model_dump(exclude_none=True))
        return SetState(
            max_sets=options.max_sets or DEFAULT_MAX_SETS,
            rules=rules,
            current_server=options.first_server,
        )

    # ── Actions ──────────────────────────────────────────────────────────────

    def _start_set(self, match: MatchSnapshot, params: StartSet, now: datetime, events: List[Event]) -> None:
        self.begin_play(match, "startSet", events)
        state: SetState = match.state
        if state.current_set is not None:
            raise StateViolation(
                "startSet", match.status.value, f"set {state.current_set.set_number} is still open"
            )
        next_set = len(state.set_details) + 1
        if params.set_number is not None and params.set_number != next_set:
            raise StateViolation(
                "startSet", match.status.value, f"next set is {next_set}, not {params.set_number}"
            )
        if next_set > state.max_sets:
            raise StateViolation("startSet", match.status.value, f"match has only {state.max_sets} sets")

        state.current_set = CurrentSet(set_number=next_set)
        if params.server is not None:
            state.current_server = params.server
        state.service_count = 0
        events.append({"type": "SET_STARTED", "setNumber": next_set})

    def _update_set_points(self, match: MatchSnapshot, params: UpdateSetPoints, now: datetime,
                           events: List[Event]) -> None:
        self.require_status(match, "updateSetPoints", MatchStatus.LIVE)
        state: SetState = match.state
        current = state.current_set
        if current is None:
            raise StateViolation("updateSetPoints", match.status.value, "no set is open")

        points = current.points(params.team) + params.delta
        if points < 0:
            raise StateViolation(
                "updateSetPoints", match.status.value, f"team {params.team.value} points cannot go below 0"
            )
        if params.team is Side.A:
            current.points_a = points
        else:
            current.points_b = points

        if params.delta > 0:
            current.service_history.append(ServiceMark(
                team=params.team, server=state.current_server, service_count=state.service_count,
            ))
            self._rotate_service(state, params.team)
        else:
            self._restore_service(state, params.team)

        events.append({
            "type": "POINT" if params.delta > 0 else "POINT_UNDONE",
            "team": params.team.value,
            "pointsA": current.points_a,
            "pointsB": current.points_b,
        })
        threshold = set_threshold(state, current.set_number)
        if params.delta > 0 and has_won_set(state.rules, threshold, points, current.points(params.team.other)):
            events.append({"type": "SET_POINT_REACHED", "team": params.team.value})

    def _toggle_server(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.begin_play(match, "toggleServer", events)
        state: SetState = match.state
        state.current_server = (state.current_server or Side.A).other
        state.service_count = 0
        events.append({"type": "SERVER_CHANGED", "server": state.current_server.value})

    def _end_set(self, match: MatchSnapshot, params: EndSet, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "endSet", MatchStatus.LIVE)
        state: SetState = match.state
        current = state.current_set
        if current is None:
            raise StateViolation("endSet", match.status.value, "no set is open")

        winner = params.winner
        won = current.points(winner)
        lost = current.points(winner.other)
        threshold = set_threshold(state, current.set_number)
        if not has_won_set(state.rules, threshold, won, lost):
            raise StateViolation(
                "endSet",
                match.status.value,
                f"team {winner.value} has not won set {current.set_number} at {won}-{lost} "
                f"(needs {threshold} with a {state.rules.min_margin}-point lead"
                + (f" or {state.rules.hard_cap}" if state.rules.hard_cap else "") + ")",
            )

        state.set_details.append(SetDetail(
            set_number=current.set_number,
            points_a=current.points_a,
            points_b=current.points_b,
            winner=winner,
        ))
        if winner is Side.A:
            state.score_a += 1
        else:
            state.score_b += 1
        state.current_set = None
        state.service_count = 0
        events.append({
            "type": "SET_WON",
            "setNumber": current.set_number,
            "team": winner.value,
            "scoreA": state.score_a,
            "scoreB": state.score_b,
        })

        sets_won = state.score_a if winner is Side.A else state.score_b
        if sets_won >= sets_to_win(state.max_sets):
            self.complete(match, winner, ResultType.SETS, "endSet", events)

    # ── Service ──────────────────────────────────────────────────────────────

    @staticmethod
    def _rotate_service(state: SetState, point_winner: Side) -> None:
        rules = state.rules
        if rules.service_rule == ServiceRule.RALLY:
            state.current_server = point_winner
            return

        current = state.current_set
        if state.current_server is None:
            state.current_server = Side.A
        deuce_from = set_threshold(state, current.set_number) - 1
        state.service_count += 1
        if current.points_a >= deuce_from and current.points_b >= deuce_from:
            # at deuce service alternates every point
            state.current_server = state.current_server.other
            state.service_count = 0
        elif state.service_count >= rules.serves_per_turn:
            state.current_server = state.current_server.other
            state.service_count = 0

    @staticmethod
    def _restore_service(state: SetState, team: Side) -> None:
        """Undo the latest point of ``team``; the server only rolls back if it was the last point played"""
        history = state.current_set.service_history
        for index in range(len(history) - 1, -1, -1):
            if history[index].team is team:
                mark = history.pop(index)
                if index == len(history):
                    state.current_server = mark.server
                    state.service_count = mark.service_count
                return
