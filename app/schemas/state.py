"""
Typed match documents.

A match is stored as one row whose ``state`` JSON column holds the payload
of its sport family. These models are the in-memory form of that document;
rule modules receive a ``MatchSnapshot`` and return a modified deep copy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.enums import (
    CardType,
    InningsClosure,
    MatchCategory,
    MatchStatus,
    ResultType,
    ScoreType,
    ServiceRule,
    ShootoutStatus,
    Side,
    Sport,
)


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Cricket ──────────────────────────────────────────────────────────────────

class Extras(CamelModel):
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0


class CricketScore(CamelModel):
    runs: int = 0
    wickets: int = 0
    overs: int = 0
    balls: int = 0  # legal balls in the current over, always 0..5
    extras: Extras = Field(default_factory=Extras)

    @property
    def overs_display(self) -> str:
        return f"{self.overs}.{self.balls}"


class FallOfWicket(CamelModel):
    wicket_number: int
    score: int
    overs: str
    batsman_name: Optional[str] = None


class InningsSummary(CamelModel):
    team: Side
    innings_number: int
    runs: int
    wickets: int
    overs: int
    balls: int
    completed_reason: InningsClosure
    fall_of_wickets: List[FallOfWicket] = Field(default_factory=list)


class OverSummary(CamelModel):
    over_number: int
    runs: int
    wickets: int
    balls: List[str] = Field(default_factory=list)


class BallSnapshot(CamelModel):
    """Batting side state captured before a ball, for undo"""

    innings: int
    team: Side
    description: str
    score: CricketScore
    current_over_balls: List[str]
    over_runs: int
    over_wickets: int
    recent_overs: List[OverSummary]
    fall_of_wickets: List[FallOfWicket]


class CricketState(CamelModel):
    family: Literal["cricket"] = "cricket"
    score_a: CricketScore = Field(default_factory=CricketScore)
    score_b: CricketScore = Field(default_factory=CricketScore)
    total_overs: int = 20
    current_innings: int = 1
    batting_team: Side = Side.A
    target: Optional[int] = None
    innings_closed: bool = False
    innings: List[InningsSummary] = Field(default_factory=list)
    current_over_balls: List[str] = Field(default_factory=list)
    over_runs: int = 0
    over_wickets: int = 0
    recent_overs: List[OverSummary] = Field(default_factory=list)
    fall_of_wickets: List[FallOfWicket] = Field(default_factory=list)
    history: List[BallSnapshot] = Field(default_factory=list)

    def score(self, side: Side) -> CricketScore:
        return self.score_a if side is Side.A else self.score_b


# ── Set sports ───────────────────────────────────────────────────────────────

class SetRules(CamelModel):
    """Deuce/cap policy of a set sport, fixed when the match is created"""

    win_threshold: int = Field(21, ge=1)
    min_margin: int = Field(2, ge=1)
    hard_cap: Optional[int] = Field(None, ge=1)
    deciding_set_threshold: Optional[int] = Field(None, ge=1)
    service_rule: ServiceRule = ServiceRule.RALLY
    serves_per_turn: int = Field(1, ge=1)


class SetDetail(CamelModel):
    set_number: int
    points_a: int
    points_b: int
    winner: Side


class ServiceMark(CamelModel):
    """Server state captured before a point, for undo"""

    team: Side
    server: Optional[Side] = None
    service_count: int = 0


class CurrentSet(CamelModel):
    set_number: int
    points_a: int = 0
    points_b: int = 0
    service_history: List[ServiceMark] = Field(default_factory=list)

    def points(self, side: Side) -> int:
        return self.points_a if side is Side.A else self.points_b


class SetState(CamelModel):
    family: Literal["set"] = "set"
    score_a: int = 0
    score_b: int = 0
    max_sets: int = 3
    set_details: List[SetDetail] = Field(default_factory=list)
    current_set: Optional[CurrentSet] = None
    current_server: Optional[Side] = None
    service_count: int = 0
    rules: SetRules = Field(default_factory=SetRules)


# ── Goal / point sports ──────────────────────────────────────────────────────

class Timer(CamelModel):
    is_running: bool = False
    is_paused: bool = False
    start_time: Optional[datetime] = None
    elapsed_seconds: float = 0
    added_time: int = 0


class Cards(CamelModel):
    yellow: int = 0
    red: int = 0


class PeriodScore(CamelModel):
    period: int
    score_a: int
    score_b: int


class ScorerEntry(CamelModel):
    team: Side
    player_name: Optional[str] = None
    time: str = ""
    period: int
    points: int = 1
    type: ScoreType = ScoreType.GOAL


class FoulEntry(CamelModel):
    team: Side
    player_name: str
    foul_type: CardType
    game_time: str = ""
    period: int
    description: str = ""
    timestamp: datetime


class Substitution(CamelModel):
    team: Side
    player_out: str
    player_in: str
    time: str = ""
    period: int


class PenaltyKick(CamelModel):
    round: int
    scored: bool
    player_name: Optional[str] = None


class PenaltyShootout(CamelModel):
    status: ShootoutStatus = ShootoutStatus.NOT_STARTED
    team_a: List[PenaltyKick] = Field(default_factory=list)
    team_b: List[PenaltyKick] = Field(default_factory=list)
    current_round: int = 1
    score_a: int = 0
    score_b: int = 0
    winner: Optional[Side] = None

    def kicks(self, side: Side) -> List[PenaltyKick]:
        return self.team_a if side is Side.A else self.team_b


class GoalState(CamelModel):
    family: Literal["goal"] = "goal"
    score_a: int = 0
    score_b: int = 0
    period: int = 1
    max_periods: int = 2
    period_duration: int = 2700
    period_scores: List[PeriodScore] = Field(default_factory=list)
    scorers: List[ScorerEntry] = Field(default_factory=list)
    fouls: List[FoulEntry] = Field(default_factory=list)
    cards_a: Cards = Field(default_factory=Cards)
    cards_b: Cards = Field(default_factory=Cards)
    substitutions: List[Substitution] = Field(default_factory=list)
    timer: Timer = Field(default_factory=Timer)
    penalty_shootout: PenaltyShootout = Field(default_factory=PenaltyShootout)

    def cards(self, side: Side) -> Cards:
        return self.cards_a if side is Side.A else self.cards_b


# ── Simple (chess) ───────────────────────────────────────────────────────────

class SimpleState(CamelModel):
    family: Literal["simple"] = "simple"
    result_type: Optional[ResultType] = None
    player_a: str = ""
    player_b: str = ""
    moves: int = 0
    duration: int = 0  # minutes


SportState = Annotated[
    Union[CricketState, SetState, GoalState, SimpleState],
    Field(discriminator="family"),
]


class MatchSnapshot(CamelModel):
    """One match document: common fields plus the sport-family payload"""

    id: str
    sport: Sport
    team_a: str
    team_b: str
    status: MatchStatus = MatchStatus.SCHEDULED
    version: int = 1
    winner: Optional[str] = None
    result_type: Optional[ResultType] = None
    scheduled_at: Optional[datetime] = None
    venue: Optional[str] = None
    match_category: MatchCategory = MatchCategory.REGULAR
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    state: SportState

    def team_id(self, side: Side) -> str:
        return self.team_a if side is Side.A else self.team_b
