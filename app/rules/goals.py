"""
Goal/point scoring for football, basketball, kho-kho and kabaddi.

Period flow: LIVE -> HALF_TIME (interval) -> LIVE ... -> FULL_TIME, then
either COMPLETED or, for football with level scores, PENALTIES.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from app.core.exceptions import StateViolation
from app.models.enums import (
    CardType,
    MatchStatus,
    ResultType,
    ScoreType,
    ShootoutStatus,
    Side,
    Sport,
    SportFamily,
)
from app.rules import timer as match_timer
from app.rules.base import Event, NoParams, SportRules
from app.schemas.state import (
    CamelModel,
    FoulEntry,
    GoalState,
    MatchSnapshot,
    PenaltyKick,
    PeriodScore,
    ScorerEntry,
    Substitution,
)

logger = logging.getLogger(__name__)

SHOOTOUT_ROUNDS = 5

# (periods, seconds per period)
PERIOD_DEFAULTS: Dict[Sport, tuple] = {
    Sport.FOOTBALL: (2, 45 * 60),
    Sport.BASKETBALL: (4, 10 * 60),
    Sport.KABADDI: (2, 20 * 60),
    Sport.KHOKHO: (2, 9 * 60),
}

DEFAULT_SCORE_TYPES = {
    Sport.FOOTBALL: ScoreType.GOAL,
    Sport.BASKETBALL: ScoreType.TWO_POINTER,
    Sport.KABADDI: ScoreType.POINT,
    Sport.KHOKHO: ScoreType.POINT,
}

SHOOTOUT_SPORTS = frozenset({Sport.FOOTBALL})


class RecordScore(CamelModel):
    team: Side
    points: int = Field(1, ge=1, le=10)
    scorer_name: Optional[str] = None
    event_time: Optional[str] = None
    score_type: Optional[ScoreType] = None


class RecordFoul(CamelModel):
    team: Side
    card_type: CardType
    player_name: str = Field(..., min_length=1)
    game_time: Optional[str] = None
    description: str = ""


class RecordSubstitution(CamelModel):
    team: Side
    player_out: str = Field(..., min_length=1)
    player_in: str = Field(..., min_length=1)
    event_time: Optional[str] = None


class AdvancePeriod(CamelModel):
    to: Optional[MatchStatus] = None


class SetAddedTime(CamelModel):
    seconds: int = Field(..., ge=0, le=30 * 60)


class RecordPenalty(CamelModel):
    team: Side
    scored: bool
    player_name: Optional[str] = None


class GoalRules(SportRules):
    family = SportFamily.GOAL
    sports = (Sport.FOOTBALL, Sport.BASKETBALL, Sport.KABADDI, Sport.KHOKHO)

    def actions(self):
        return {
            "recordScore": (RecordScore, self._record_score),
            "undoLastScore": (NoParams, self._undo_last_score),
            "recordFoul": (RecordFoul, self._record_foul),
            "recordSubstitution": (RecordSubstitution, self._record_substitution),
            "advancePeriod": (AdvancePeriod, self._advance_period),
            "startTimer": (NoParams, self._start_timer),
            "pauseTimer": (NoParams, self._pause_timer),
            "stopTimer": (NoParams, self._stop_timer),
            "setAddedTime": (SetAddedTime, self._set_added_time),
            "recordPenalty": (RecordPenalty, self._record_penalty),
            "endMatch": (NoParams, self._end_match),
        }

    def new_state(self, sport: Sport, options) -> GoalState:
        periods, duration = PERIOD_DEFAULTS[sport]
        return GoalState(
            max_periods=options.max_periods or periods,
            period_duration=options.period_duration or duration,
        )

    # ── Scoring ──────────────────────────────────────────────────────────────

    def _record_score(self, match: MatchSnapshot, params: RecordScore, now: datetime, events: List[Event]) -> None:
        self.begin_play(match, "recordScore", events)
        state: GoalState = match.state
        if params.team is Side.A:
            state.score_a += params.points
        else:
            state.score_b += params.points

        state.scorers.append(ScorerEntry(
            team=params.team,
            player_name=params.scorer_name,
            time=params.event_time or match_timer.game_clock(state.timer, now),
            period=state.period,
            points=params.points,
            type=params.score_type or DEFAULT_SCORE_TYPES[match.sport],
        ))
        events.append({
            "type": "GOAL" if match.sport == Sport.FOOTBALL else "SCORE",
            "team": params.team.value,
            "points": params.points,
            "scorer": params.scorer_name,
            "scoreA": state.score_a,
            "scoreB": state.score_b,
        })

    def _undo_last_score(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "undoLastScore", MatchStatus.LIVE)
        state: GoalState = match.state
        if not state.scorers or state.scorers[-1].period != state.period:
            raise StateViolation("undoLastScore", match.status.value, "nothing to undo in this period")
        last = state.scorers.pop()
        if last.team is Side.A:
            state.score_a -= last.points
        else:
            state.score_b -= last.points
        events.append({"type": "SCORE_UNDONE", "team": last.team.value, "points": last.points})

    def _record_foul(self, match: MatchSnapshot, params: RecordFoul, now: datetime, events: List[Event]) -> None:
        self.require_status(
            match, "recordFoul",
            MatchStatus.LIVE, MatchStatus.HALF_TIME, MatchStatus.FULL_TIME, MatchStatus.PENALTIES,
        )
        state: GoalState = match.state
        state.fouls.append(FoulEntry(
            team=params.team,
            player_name=params.player_name.strip(),
            foul_type=params.card_type,
            game_time=params.game_time or match_timer.game_clock(state.timer, now),
            period=state.period,
            description=params.description,
            timestamp=now,
        ))
        cards = state.cards(params.team)
        if params.card_type == CardType.YELLOW_CARD:
            cards.yellow += 1
        elif params.card_type == CardType.RED_CARD:
            cards.red += 1
        events.append({
            "type": "CARD" if params.card_type in (CardType.YELLOW_CARD, CardType.RED_CARD) else "FOUL",
            "team": params.team.value,
            "cardType": params.card_type.value,
            "playerName": params.player_name,
        })

    def _record_substitution(self, match: MatchSnapshot, params: RecordSubstitution, now: datetime,
                             events: List[Event]) -> None:
        self.require_status(match, "recordSubstitution", MatchStatus.LIVE, MatchStatus.HALF_TIME)
        state: GoalState = match.state
        state.substitutions.append(Substitution(
            team=params.team,
            player_out=params.player_out,
            player_in=params.player_in,
            time=params.event_time or match_timer.game_clock(state.timer, now),
            period=state.period,
        ))
        events.append({"type": "SUBSTITUTION", "team": params.team.value,
                       "playerOut": params.player_out, "playerIn": params.player_in})

    # ── Periods ──────────────────────────────────────────────────────────────

    def _advance_period(self, match: MatchSnapshot, params: AdvancePeriod, now: datetime,
                        events: List[Event]) -> None:
        state: GoalState = match.state
        status = match.status

        if status == MatchStatus.LIVE:
            target = MatchStatus.HALF_TIME if state.period < state.max_periods else MatchStatus.FULL_TIME
            self._check_target(match, params, target)
            self._close_period(state, now)
            self.transition(match, target, "advancePeriod")
            events.append({"type": "PERIOD_ENDED", "period": state.period, "status": target.value})
        elif status == MatchStatus.HALF_TIME:
            self._check_target(match, params, MatchStatus.LIVE)
            state.period += 1
            match_timer.reset(state.timer, (state.period - 1) * state.period_duration)
            self.transition(match, MatchStatus.LIVE, "advancePeriod")
            events.append({"type": "PERIOD_STARTED", "period": state.period})
        elif status == MatchStatus.FULL_TIME:
            if params.to != MatchStatus.PENALTIES:
                raise StateViolation(
                    "advancePeriod", status.value,
                    f"all {state.max_periods} periods played; use endMatch or advance to PENALTIES",
                )
            if match.sport not in SHOOTOUT_SPORTS:
                raise StateViolation("advancePeriod", status.value,
                                     f"{match.sport.value} has no penalty shootout")
            if state.score_a != state.score_b:
                raise StateViolation("advancePeriod", status.value, "penalties need level scores")
            self.transition(match, MatchStatus.PENALTIES, "advancePeriod")
            state.penalty_shootout.status = ShootoutStatus.IN_PROGRESS
            events.append({"type": "PENALTIES_STARTED"})
        else:
            raise StateViolation("advancePeriod", status.value, "no period to advance")

    @staticmethod
    def _check_target(match: MatchSnapshot, params: AdvancePeriod, target: MatchStatus) -> None:
        if params.to is not None and params.to != target:
            raise StateViolation(
                "advancePeriod", match.status.value,
                f"period {match.state.period} of {match.state.max_periods} advances to {target.value}, "
                f"not {params.to.value}",
            )

    @staticmethod
    def _close_period(state: GoalState, now: datetime) -> None:
        match_timer.freeze(state.timer, now)
        before_a = sum(p.score_a for p in state.period_scores)
        before_b = sum(p.score_b for p in state.period_scores)
        state.period_scores.append(PeriodScore(
            period=state.period,
            score_a=state.score_a - before_a,
            score_b=state.score_b - before_b,
        ))

    # ── Timer ────────────────────────────────────────────────────────────────

    def _start_timer(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.begin_play(match, "startTimer", events)
        self._timer_op(match, "startTimer", match_timer.start, now)
        events.append({"type": "TIMER_STARTED"})

    def _pause_timer(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "pauseTimer", MatchStatus.LIVE)
        self._timer_op(match, "pauseTimer", match_timer.pause, now)
        events.append({"type": "TIMER_PAUSED", "elapsedSeconds": match.state.timer.elapsed_seconds})

    def _stop_timer(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "stopTimer", MatchStatus.LIVE)
        self._timer_op(match, "stopTimer", match_timer.stop, now)
        events.append({"type": "TIMER_STOPPED", "elapsedSeconds": match.state.timer.elapsed_seconds})

    def _set_added_time(self, match: MatchSnapshot, params: SetAddedTime, now: datetime,
                        events: List[Event]) -> None:
        self.require_status(match, "setAddedTime", MatchStatus.LIVE)
        match.state.timer.added_time = params.seconds
        events.append({"type": "ADDED_TIME", "seconds": params.seconds})

    @staticmethod
    def _timer_op(match: MatchSnapshot, action: str, op, now: datetime) -> None:
        try:
            op(match.state.timer, now)
        except ValueError as e:
            raise StateViolation(action, match.status.value, str(e)) from e

    # ── Shootout and result ──────────────────────────────────────────────────

    def _record_penalty(self, match: MatchSnapshot, params: RecordPenalty, now: datetime,
                        events: List[Event]) -> None:
        self.require_status(match, "recordPenalty", MatchStatus.PENALTIES)
        shootout = match.state.penalty_shootout
        if shootout.status != ShootoutStatus.IN_PROGRESS:
            raise StateViolation("recordPenalty", match.status.value, "shootout is already decided")

        taken = shootout.kicks(params.team)
        other = shootout.kicks(params.team.other)
        if len(taken) > len(other):
            raise StateViolation(
                "recordPenalty", match.status.value, f"team {params.team.other.value} must kick next"
            )
        taken.append(PenaltyKick(round=len(taken) + 1, scored=params.scored, player_name=params.player_name))
        if params.scored:
            if params.team is Side.A:
                shootout.score_a += 1
            else:
                shootout.score_b += 1
        shootout.current_round = min(len(shootout.team_a), len(shootout.team_b)) + 1
        events.append({
            "type": "PENALTY",
            "team": params.team.value,
            "scored": params.scored,
            "shootoutA": shootout.score_a,
            "shootoutB": shootout.score_b,
        })

        winner = shootout_winner(
            shootout.score_a, shootout.score_b, len(shootout.team_a), len(shootout.team_b)
        )
        if winner is not None:
            shootout.status = ShootoutStatus.COMPLETED
            shootout.winner = winner
            self.complete(match, winner, ResultType.PENALTIES, "recordPenalty", events)

    def _end_match(self, match: MatchSnapshot, params: NoParams, now: datetime, events: List[Event]) -> None:
        self.require_status(match, "endMatch", MatchStatus.LIVE, MatchStatus.FULL_TIME, MatchStatus.PENALTIES)
        state: GoalState = match.state
        if match.status == MatchStatus.PENALTIES:
            shootout = state.penalty_shootout
            shootout.status = ShootoutStatus.COMPLETED
            if shootout.score_a == shootout.score_b:
                self.complete(match, None, ResultType.DRAW, "endMatch", events)
                return
            shootout.winner = Side.A if shootout.score_a > shootout.score_b else Side.B
            self.complete(match, shootout.winner, ResultType.PENALTIES, "endMatch", events)
            return
        if match.status == MatchStatus.LIVE:
            self._close_period(state, now)
        else:
            match_timer.freeze(state.timer, now)

        if state.score_a > state.score_b:
            self.complete(match, Side.A, ResultType.SCORE, "endMatch", events)
        elif state.score_b > state.score_a:
            self.complete(match, Side.B, ResultType.SCORE, "endMatch", events)
        else:
            self.complete(match, None, ResultType.DRAW, "endMatch", events)


def shootout_winner(score_a: int, score_b: int, kicks_a: int, kicks_b: int) -> Optional[Side]:
    """Best of five, then sudden death once both sides have kicked equally"""
    if kicks_a <= SHOOTOUT_ROUNDS and kicks_b <= SHOOTOUT_ROUNDS:
        left_a = SHOOTOUT_ROUNDS - kicks_a
        left_b = SHOOTOUT_ROUNDS - kicks_b
        if score_a > score_b + left_b:
            return Side.A
        if score_b > score_a + left_a:
            return Side.B
        return None
    if kicks_a == kicks_b and score_a != score_b:
        return Side.A if score_a > score_b else Side.B
    return None
