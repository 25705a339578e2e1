"""
Integration tests for the match repository against SQLite
"""

import pytest

from app.core.exceptions import ConcurrentModificationError
from app.models.enums import MatchStatus, Sport
from app.repos.match_repo import (
    create_match,
    get_live_matches,
    get_match_by_id,
    get_matches,
    replace_match_if_version,
)
from app.rules.registry import rules_for


@pytest.mark.asyncio
async def test_create_and_load_round_trip(async_session, make_match):
    snapshot = make_match(Sport.BADMINTON, max_sets=5)
    await create_match(async_session, snapshot)

    loaded = await get_match_by_id(async_session, snapshot.id)

    assert loaded is not None
    assert loaded.version == 1
    restored = loaded.to_snapshot()
    assert restored.state.max_sets == 5
    assert restored.state.rules.win_threshold == 21
    assert restored.status == MatchStatus.SCHEDULED


@pytest.mark.asyncio
async def test_missing_match_returns_none(async_session):
    assert await get_match_by_id(async_session, "no-such-match") is None


@pytest.mark.asyncio
async def test_conditional_replace_bumps_version(async_session, make_match, clock):
    snapshot = make_match(Sport.FOOTBALL)
    await create_match(async_session, snapshot)
    updated, _ = rules_for(Sport.FOOTBALL).apply(snapshot, {"action": "recordScore", "team": "A"}, clock())

    new_version = await replace_match_if_version(async_session, updated, 1, clock())

    assert new_version == 2
    stored = (await get_match_by_id(async_session, snapshot.id)).to_snapshot()
    assert stored.version == 2
    assert stored.state.score_a == 1
    assert stored.status == MatchStatus.LIVE


@pytest.mark.asyncio
async def test_stale_version_is_rejected_and_leaves_row_unchanged(async_session, make_match, clock):
    snapshot = make_match(Sport.FOOTBALL)
    await create_match(async_session, snapshot)
    rules = rules_for(Sport.FOOTBALL)
    first, _ = rules.apply(snapshot, {"action": "recordScore", "team": "A"}, clock())
    second, _ = rules.apply(snapshot, {"action": "recordScore", "team": "B"}, clock())

    await replace_match_if_version(async_session, first, 1, clock())
    with pytest.raises(ConcurrentModificationError) as exc:
        await replace_match_if_version(async_session, second, 1, clock())

    assert exc.value.expected_version == 1
    assert exc.value.current_version == 2
    stored = (await get_match_by_id(async_session, snapshot.id)).to_snapshot()
    assert stored.state.score_a == 1
    assert stored.state.score_b == 0


@pytest.mark.asyncio
async def test_live_list_includes_intervals(async_session, make_match, clock):
    rules = rules_for(Sport.FOOTBALL)
    scheduled = make_match(Sport.FOOTBALL).model_copy(update={"id": "scheduled"})
    half_time = make_match(Sport.FOOTBALL).model_copy(update={"id": "half-time"})
    for snapshot in (scheduled, half_time):
        await create_match(async_session, snapshot)

    started, _ = rules.apply(half_time, {"action": "startMatch"}, clock())
    await replace_match_if_version(async_session, started, 1, clock())
    interval, _ = rules.apply(started, {"action": "advancePeriod"}, clock())
    await replace_match_if_version(async_session, interval, 2, clock())

    live = await get_live_matches(async_session)

    assert [m.id for m in live] == ["half-time"]
    assert live[0].status == MatchStatus.HALF_TIME.value


@pytest.mark.asyncio
async def test_filter_by_sport(async_session, make_match):
    await create_match(async_session, make_match(Sport.CHESS).model_copy(update={"id": "chess-1"}))
    await create_match(async_session, make_match(Sport.CRICKET).model_copy(update={"id": "cricket-1"}))

    chess = await get_matches(async_session, sport=Sport.CHESS.value)

    assert [m.id for m in chess] == ["chess-1"]
