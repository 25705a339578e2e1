"""
Unit tests for cricket scoring rules
"""

import pytest

from app.core.exceptions import StateViolation, ValidationError
from app.models.enums import InningsClosure, MatchStatus, ResultType, Side, Sport


def ball(runs=0, **extra):
    return {"action": "recordBall", "runs": runs, **extra}


class TestRecordBall:
    """Runs, extras and over accounting"""

    def test_first_ball_starts_match(self, make_match, play):
        match, events = play(make_match(Sport.CRICKET), ball(4))

        assert match.status == MatchStatus.LIVE
        assert events[0]["type"] == "MATCH_STARTED"
        assert match.state.score_a.runs == 4
        assert match.state.current_over_balls == ["4"]

    def test_input_match_is_not_mutated(self, make_match, play):
        original = make_match(Sport.CRICKET)
        play(original, ball(6))

        assert original.status == MatchStatus.SCHEDULED
        assert original.state.score_a.runs == 0

    def test_wide_adds_penalty_run_without_a_ball(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(0, extrasType="WIDE"), ball(2, extrasType="WIDE"))
        score = match.state.score_a

        assert score.runs == 4
        assert score.balls == 0
        assert score.extras.wides == 4
        assert match.state.current_over_balls == ["Wd", "Wd+2"]

    def test_no_ball_adds_penalty_and_runs(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(4, extrasType="NO_BALL"))
        score = match.state.score_a

        assert score.runs == 5
        assert score.balls == 0
        assert score.extras.no_balls == 1

    def test_byes_count_as_legal_balls(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(2, extrasType="BYE"), ball(1, extrasType="LEG_BYE"))
        score = match.state.score_a

        assert score.runs == 3
        assert score.balls == 2
        assert score.extras.byes == 2
        assert score.extras.leg_byes == 1

    def test_six_legal_balls_complete_an_over(self, make_match, play):
        match, events = play(make_match(Sport.CRICKET), *[ball(1) for _ in range(6)])
        score = match.state.score_a

        assert score.overs == 1
        assert score.balls == 0
        assert score.overs_display == "1.0"
        assert match.state.current_over_balls == []
        assert match.state.recent_overs[-1].runs == 6
        assert any(e["type"] == "OVER_COMPLETED" for e in events)

    def test_recent_overs_keeps_last_five(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), *[ball(0) for _ in range(6 * 7)])

        assert [o.over_number for o in match.state.recent_overs] == [3, 4, 5, 6, 7]

    def test_full_quota_of_overs_closes_innings(self, make_match, play):
        match, events = play(make_match(Sport.CRICKET, total_overs=20), *[ball(1) for _ in range(120)])
        state = match.state

        assert state.score_a.runs == 120
        assert state.score_a.overs == 20
        assert state.innings_closed is True
        assert state.innings[0].completed_reason == InningsClosure.OVERS_COMPLETED
        assert match.status == MatchStatus.LIVE

        with pytest.raises(StateViolation):
            play(match, ball(1))

    def test_tenth_wicket_closes_innings(self, make_match, play):
        match, events = play(
            make_match(Sport.CRICKET),
            *[ball(0, wicket=True, batsmanName=f"Batter {i}") for i in range(10)],
        )

        assert match.state.score_a.wickets == 10
        assert match.state.innings[0].completed_reason == InningsClosure.ALL_OUT
        assert len(match.state.fall_of_wickets) == 10
        assert match.state.fall_of_wickets[0].batsman_name == "Batter 0"

        with pytest.raises(StateViolation) as exc:
            play(match, ball(1))
        assert exc.value.action == "recordBall"

    def test_runs_out_of_range_rejected(self, make_match, play):
        with pytest.raises(ValidationError):
            play(make_match(Sport.CRICKET), ball(9))


class TestInnings:
    """Innings changes and match results"""

    def test_end_innings_sets_target_and_swaps_sides(self, make_match, play):
        match, events = play(
            make_match(Sport.CRICKET, total_overs=2),
            *[ball(4) for _ in range(6)],
            {"action": "endInnings"},
        )
        state = match.state

        assert state.target == 25
        assert state.current_innings == 2
        assert state.batting_team == Side.B
        assert state.innings[0].completed_reason == InningsClosure.DECLARED
        assert state.innings_closed is False

    def test_target_chase_completes_match(self, make_match, play):
        match, events = play(
            make_match(Sport.CRICKET, total_overs=2),
            *[ball(4) for _ in range(6)],
            {"action": "endInnings"},
            *[ball(4) for _ in range(6)],
            ball(1),
        )

        assert match.status == MatchStatus.COMPLETED
        assert match.winner == "ECE"
        assert match.result_type == ResultType.TARGET_ACHIEVED
        assert match.state.innings[1].completed_reason == InningsClosure.TARGET_ACHIEVED
        assert events[-1]["type"] == "MATCH_WON"

    def test_defended_total_wins_on_runs(self, make_match, play):
        match, _ = play(
            make_match(Sport.CRICKET, total_overs=1),
            *[ball(2) for _ in range(6)],
            {"action": "endInnings"},
            *[ball(1) for _ in range(6)],
        )

        assert match.status == MatchStatus.COMPLETED
        assert match.winner == "CSE"
        assert match.result_type == ResultType.RUNS

    def test_equal_totals_tie_without_winner(self, make_match, play):
        match, _ = play(
            make_match(Sport.CRICKET, total_overs=1),
            *[ball(1) for _ in range(6)],
            {"action": "endInnings"},
            *[ball(1) for _ in range(6)],
        )

        assert match.status == MatchStatus.COMPLETED
        assert match.winner is None
        assert match.result_type == ResultType.TIE

    def test_batting_first_option(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET, batting_first=Side.B), ball(3))

        assert match.state.score_b.runs == 3
        assert match.state.score_a.runs == 0

    def test_end_over_requires_a_ball(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), {"action": "startMatch"})

        with pytest.raises(StateViolation):
            play(match, {"action": "endOver"})

    def test_end_over_closes_short_over(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(1), ball(2), {"action": "endOver"})

        assert match.state.score_a.overs == 1
        assert match.state.score_a.balls == 0
        assert match.state.recent_overs[-1].balls == ["1", "2"]

    def test_declare_result(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(1), {"action": "declareResult", "winner": "A"})

        assert match.status == MatchStatus.COMPLETED
        assert match.winner == "CSE"

    def test_fall_of_wickets_kept_per_innings(self, make_match, play):
        match, _ = play(
            make_match(Sport.CRICKET, total_overs=2),
            ball(4), ball(0, wicket=True, batsmanName="A1"),
            {"action": "endInnings"},
        )

        assert match.state.fall_of_wickets == []
        assert [(f.wicket_number, f.batsman_name) for f in match.state.innings[0].fall_of_wickets] == [(1, "A1")]

        match, _ = play(match, ball(1), ball(0, wicket=True, batsmanName="B1"))

        assert [(f.wicket_number, f.score, f.batsman_name) for f in match.state.fall_of_wickets] == [(1, 1, "B1")]
        assert len(match.state.innings[0].fall_of_wickets) == 1

    def test_second_innings_summary_keeps_its_wickets(self, make_match, play):
        match, _ = play(
            make_match(Sport.CRICKET, total_overs=1),
            *[ball(2) for _ in range(6)],
            {"action": "endInnings"},
            ball(0, wicket=True, batsmanName="B1"), *[ball(1) for _ in range(5)],
        )

        assert match.status == MatchStatus.COMPLETED
        assert [f.batsman_name for f in match.state.innings[1].fall_of_wickets] == ["B1"]
        assert match.state.innings[0].fall_of_wickets == []

    def test_declared_tie_has_no_winner(self, make_match, play):
        match, events = play(make_match(Sport.CRICKET), ball(1), {"action": "declareResult", "resultType": "TIE"})

        assert match.winner is None
        assert match.result_type == ResultType.TIE
        assert events[-1]["type"] == "MATCH_DRAWN"

    def test_winning_result_without_winner_rejected(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(1))

        with pytest.raises(ValidationError):
            play(match, {"action": "declareResult", "resultType": "RUNS"})

    def test_tie_with_winner_rejected(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(1))

        with pytest.raises(ValidationError):
            play(match, {"action": "declareResult", "winner": "A", "resultType": "TIE"})

    def test_result_type_of_another_sport_rejected(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(1))

        with pytest.raises(ValidationError):
            play(match, {"action": "declareResult", "winner": "A", "resultType": "CHECKMATE"})


class TestUndo:
    """Undoing the last delivery"""

    def test_undo_restores_previous_ball(self, make_match, play):
        match, events = play(
            make_match(Sport.CRICKET),
            ball(4),
            ball(0, wicket=True),
            {"action": "undoLastBall"},
        )
        score = match.state.score_a

        assert score.runs == 4
        assert score.wickets == 0
        assert score.balls == 1
        assert match.state.current_over_balls == ["4"]
        assert match.state.fall_of_wickets == []
        assert events[-1]["type"] == "BALL_UNDONE"

    def test_undo_across_over_boundary(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), *[ball(1) for _ in range(6)], {"action": "undoLastBall"})
        score = match.state.score_a

        assert score.overs == 0
        assert score.balls == 5
        assert score.runs == 5
        assert match.state.recent_overs == []

    def test_undo_not_allowed_into_previous_innings(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), ball(4), {"action": "endInnings"})

        with pytest.raises(StateViolation):
            play(match, {"action": "undoLastBall"})

    def test_undo_without_history_rejected(self, make_match, play):
        match, _ = play(make_match(Sport.CRICKET), {"action": "startMatch"})

        with pytest.raises(StateViolation):
            play(match, {"action": "undoLastBall"})
