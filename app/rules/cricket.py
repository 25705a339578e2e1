"""
Cricket scoring rules.

Limited-overs, two innings. Ball codes follow the scoreboard convention:
``"0"``..``"6"`` for runs, ``"W"`` for a wicket, ``"Wd"``/``"Nb"`` for
wides and no-balls, ``"2b"``/``"1lb"`` for byes and leg-byes.
"""

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.core.exceptions import StateViolation, ValidationError
from app.models.enums import (
    ExtrasType,
    InningsClosure,
    MatchStatus,
    ResultType,
    Side,
    Sport,
    SportFamily,
)
from app.rules.base import Event, NoParams, SportRules
from app.schemas.state import (
    BallSnapshot,
    CamelModel,
    CricketScore,
    CricketState,
    FallOfWicket,
    InningsSummary,
    MatchSnapshot,
    OverSummary,
)

logger = logging.getLogger(__name__)

BALLS_PER_OVER = 6
MAX_WICKETS = 10
RECENT_OVERS_KEPT = 5
HISTORY_KEPT = 50
DEFAULT_TOTAL_OVERS = 20

WINNING_RESULTS = frozenset({ResultType.RUNS, ResultType.TARGET_ACHIEVED})
NO_WINNER_RESULTS = frozenset({ResultType.TIE, ResultType.ABANDONED})


class RecordBall(CamelModel):
    runs: int = Field(0, ge=0, le=7)
    extras_type: Optional[ExtrasType] = None
    wicket: bool = False
    batsman_name: Optional[str] = None


class DeclareResult(CamelModel):
    winner: Optional[Side] = None
    result_type: Optional[ResultType] = None


class CricketRules(SportRules):
    family = SportFamily.CRICKET
    sports = (Sport.CRICKET,)

    def actions(self):
        return {
            "recordBall": (RecordBall, self._record_ball),
            "endOver": (NoParams, self._end_over),
            "endInnings": (NoParams, self._end_innings),
            "declareResult": (DeclareResult, self._declare_result),
            "undoLastBall": (NoParams, self._undo_last_ball),
        }

    def new_state(self, sport: Sport, options) -> CricketState:
        return CricketState(
            total_overs=options.total_overs or DEFAULT_TOTAL_OVERS,
            batting_team=options.batting_first,
        )

    # ── Actions ──────────────────────────────────────────────────────────────

    def _record_ball(self, match: MatchSnapshot, params: RecordBall, now: datetime, events: List[Event]) -> None:
        self.begin_play(match, "recordBall", events)
        state: CricketState = match.state
        self._require_open_innings(match, "recordBall")

        side = state.batting_team
        score = state.score(side)
        self._push_history(state, self._describe(params))

        code, total, legal = self._ball_outcome(score, params)
        score.runs += total
        state.over_runs += total

        if params.wicket:
            score.wickets += 1
            state.over_wickets += 1
            code = "W" if code == "0" else f"{code}W"

        state.current_over_balls.append(code)
        if legal:
            score.balls += 1
            if score.balls == BALLS_PER_OVER:
                self._complete_over(state, score, events)

        if params.wicket:
            state.fall_of_wickets.append(FallOfWicket(
                wicket_number=score.wickets,
                score=score.runs,
                overs=score.overs_display,
                batsman_name=params.batsman_name,
            ))
            events.append({"type": "WICKET", "team": side.value, "wickets": score.wickets})

        self._check_innings_end(match, "recordBall", events)

    def _end_over(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "endOver", MatchStatus.LIVE)
        self._require_open_innings(match, "endOver")
        state: CricketState = match.state
        score = state.score(state.batting_team)
        if score.balls == 0:
            raise StateViolation("endOver", match.status.value, "no balls bowled in the current over")
        self._complete_over(state, score, events)
        self._check_innings_end(match, "endOver", events)

    def _end_innings(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "endInnings", MatchStatus.LIVE)
        state: CricketState = match.state

        if not state.innings_closed:
            self._close_innings(match, InningsClosure.DECLARED, "endInnings", events)
        if state.current_innings == 2:
            # closing the second innings already decided the match
            return

        first_innings_runs = state.score(state.batting_team).runs
        state.target = first_innings_runs + 1
        state.current_innings = 2
        state.batting_team = state.batting_team.other
        state.innings_closed = False
        state.current_over_balls = []
        state.over_runs = 0
        state.over_wickets = 0
        state.recent_overs = []
        state.fall_of_wickets = []
        state.history = []
        events.append({
            "type": "INNINGS_STARTED",
            "innings": 2,
            "battingTeam": state.batting_team.value,
            "target": state.target,
        })

    def _declare_result(self, match: MatchSnapshot, params: DeclareResult, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "declareResult", MatchStatus.SCHEDULED, MatchStatus.LIVE)
        if params.result_type is not None:
            result_type = params.result_type
        else:
            result_type = ResultType.RUNS if params.winner is not None else ResultType.ABANDONED

        if result_type in WINNING_RESULTS:
            if params.winner is None:
                raise ValidationError(f"Result {result_type.value} needs a winner")
        elif result_type in NO_WINNER_RESULTS:
            if params.winner is not None:
                raise ValidationError(f"Result {result_type.value} cannot have a winner")
        else:
            allowed = ", ".join(sorted(r.value for r in WINNING_RESULTS | NO_WINNER_RESULTS))
            raise ValidationError(f"Invalid result type. Must be one of: {allowed}")
        self.complete(match, params.winner, result_type, "declareResult", events)

    def _undo_last_ball(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "undoLastBall", MatchStatus.LIVE)
        self._require_open_innings(match, "undoLastBall")
        state: CricketState = match.state
        if not state.history or state.history[-1].innings != state.current_innings:
            raise StateViolation("undoLastBall", match.status.value, "nothing to undo in this innings")

        snapshot = state.history.pop()
        if snapshot.team is Side.A:
            state.score_a = snapshot.score
        else:
            state.score_b = snapshot.score
        state.current_over_balls = snapshot.current_over_balls
        state.over_runs = snapshot.over_runs
        state.over_wickets = snapshot.over_wickets
        state.recent_overs = snapshot.recent_overs
        state.fall_of_wickets = snapshot.fall_of_wickets
        events.append({"type": "BALL_UNDONE", "description": snapshot.description})

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _ball_outcome(score: CricketScore, params: RecordBall):
        """Return (ball code, runs to add, counts as a legal ball) and book extras"""
        runs = params.runs
        if params.extras_type == ExtrasType.WIDE:
            score.extras.wides += 1 + runs
            return ("Wd" if runs == 0 else f"Wd+{runs}"), 1 + runs, False
        if params.extras_type == ExtrasType.NO_BALL:
            score.extras.no_balls += 1
            return ("Nb" if runs == 0 else f"Nb+{runs}"), 1 + runs, False
        if params.extras_type == ExtrasType.BYE:
            score.extras.byes += runs
            return f"{runs}b", runs, True
        if params.extras_type == ExtrasType.LEG_BYE:
            score.extras.leg_byes += runs
            return f"{runs}lb", runs, True
        return str(runs), runs, True

    @staticmethod
    def _describe(params: RecordBall) -> str:
        parts = [f"{params.runs} run{'s' if params.runs != 1 else ''}"]
        if params.extras_type:
            parts.append(params.extras_type.value)
        if params.wicket:
            parts.append("wicket")
        return ", ".join(parts)

    @staticmethod
    def _push_history(state: CricketState, description: str) -> None:
        state.history.append(BallSnapshot(
            innings=state.current_innings,
            team=state.batting_team,
            description=description,
            score=state.score(state.batting_team).model_copy(deep=True),
            current_over_balls=list(state.current_over_balls),
            over_runs=state.over_runs,
            over_wickets=state.over_wickets,
            recent_overs=[o.model_copy(deep=True) for o in state.recent_overs],
            fall_of_wickets=[f.model_copy() for f in state.fall_of_wickets],
        ))
        del state.history[:-HISTORY_KEPT]

    @staticmethod
    def _complete_over(state: CricketState, score: CricketScore, events: List[Event]) -> None:
        score.overs += 1
        score.balls = 0
        state.recent_overs.append(OverSummary(
            over_number=score.overs,
            runs=state.over_runs,
            wickets=state.over_wickets,
            balls=state.current_over_balls,
        ))
        del state.recent_overs[:-RECENT_OVERS_KEPT]
        events.append({"type": "OVER_COMPLETED", "over": score.overs, "runs": state.over_runs})
        state.current_over_balls = []
        state.over_runs = 0
        state.over_wickets = 0

    @staticmethod
    def _require_open_innings(match: MatchSnapshot, action: str) -> None:
        state: CricketState = match.state
        if state.innings_closed:
            raise StateViolation(action, match.status.value, f"innings {state.current_innings} is closed")

    def _check_innings_end(self, match: MatchSnapshot, action: str, events: List[Event]) -> None:
        state: CricketState = match.state
        score = state.score(state.batting_team)
        if state.current_innings == 2 and state.target is not None and score.runs >= state.target:
            self._close_innings(match, InningsClosure.TARGET_ACHIEVED, action, events)
        elif score.wickets >= MAX_WICKETS:
            self._close_innings(match, InningsClosure.ALL_OUT, action, events)
        elif score.overs >= state.total_overs:
            self._close_innings(match, InningsClosure.OVERS_COMPLETED, action, events)

    def _close_innings(self, match: MatchSnapshot, reason: InningsClosure, action: str, events: List[Event]) -> None:
        state: CricketState = match.state
        side = state.batting_team
        score = state.score(side)
        state.innings_closed = True
        state.innings.append(InningsSummary(
            team=side,
            innings_number=state.current_innings,
            runs=score.runs,
            wickets=score.wickets,
            overs=score.overs,
            balls=score.balls,
            completed_reason=reason,
            fall_of_wickets=[f.model_copy() for f in state.fall_of_wickets],
        ))
        events.append({
            "type": "INNINGS_CLOSED",
            "innings": state.current_innings,
            "team": side.value,
            "reason": reason.value,
        })
        logger.info(f"Match {match.id} innings {state.current_innings} closed: {reason.value}")

        if state.current_innings == 2:
            self._decide(match, reason, action, events)

    def _decide(self, match: MatchSnapshot, reason: InningsClosure, action: str, events: List[Event]) -> None:
        state: CricketState = match.state
        chasing = state.batting_team
        if reason == InningsClosure.TARGET_ACHIEVED:
            self.complete(match, chasing, ResultType.TARGET_ACHIEVED, action, events)
            return
        chasing_runs = state.score(chasing).runs
        defending_runs = state.score(chasing.other).runs
        if chasing_runs == defending_runs:
            self.complete(match, None, ResultType.TIE, action, events)
        elif chasing_runs > defending_runs:
            self.complete(match, chasing, ResultType.RUNS, action, events)
        else:
            self.complete(match, chasing.other, ResultType.RUNS, action, events)
