"""
Request models and wire serialization for matches
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from app.models.enums import MatchCategory, ServiceRule, Side
from app.schemas.state import CamelModel, GoalState, MatchSnapshot
from app.rules.timer import elapsed_seconds


class SetRulesOverride(CamelModel):
    """Partial override of a set sport's built-in deuce/cap policy"""

    win_threshold: Optional[int] = Field(None, ge=1)
    min_margin: Optional[int] = Field(None, ge=1)
    hard_cap: Optional[int] = Field(None, ge=1)
    deciding_set_threshold: Optional[int] = Field(None, ge=1)
    service_rule: Optional[ServiceRule] = None
    serves_per_turn: Optional[int] = Field(None, ge=1)


class MatchCreate(CamelModel):
    """Body of POST /matches/{sport}/create"""

    team_a: str = Field(..., min_length=1)
    team_b: str = Field(..., min_length=1)
    scheduled_at: Optional[datetime] = None
    venue: Optional[str] = None
    match_category: MatchCategory = MatchCategory.REGULAR
    notes: str = ""

    # Cricket
    total_overs: Optional[int] = Field(None, ge=1, le=50)
    batting_first: Side = Side.A

    # Set sports
    max_sets: Optional[int] = Field(None, ge=1, le=7)
    rules: Optional[SetRulesOverride] = None
    first_server: Optional[Side] = None

    # Goal sports
    max_periods: Optional[int] = Field(None, ge=1, le=8)
    period_duration: Optional[int] = Field(None, ge=60)

    # Chess
    player_a: str = ""
    player_b: str = ""

    @model_validator(mode="after")
    def check_teams(self):
        if self.team_a == self.team_b:
            raise ValueError("A team cannot play against itself")
        if self.max_sets is not None and self.max_sets % 2 == 0:
            raise ValueError("maxSets must be odd")
        return self


def match_document(snapshot: MatchSnapshot, now: datetime) -> Dict[str, Any]:
    """
    Flatten a snapshot into the JSON document served to admins and viewers.

    Sport payload fields sit next to the common fields, as the scoreboards
    expect (``scoreA``, ``setDetails`` ...). The undo stack stays internal.
    For timed sports ``timer.currentElapsedSeconds`` is derived from the
    wall-clock anchor at read time.
    """
    document = snapshot.model_dump(mode="json", by_alias=True, exclude={"state"})
    state = snapshot.state.model_dump(mode="json", by_alias=True, exclude={"history"})
    state.pop("family", None)
    if isinstance(snapshot.state, GoalState):
        state["timer"]["currentElapsedSeconds"] = elapsed_seconds(snapshot.state.timer, now)
    document.update(state)
    document["matchId"] = snapshot.id
    return document
