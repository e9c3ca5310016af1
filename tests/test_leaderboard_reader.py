"""Tests for leaderboard reads: top entries, requester rows and the live fallback."""

from unittest.mock import patch

import pytest

from floodscore.database.models import Difficulty, DifficultyAggregate, LevelAgnosticAggregate
from floodscore.utils.exceptions import InvalidLeaderboardQueryError

from conftest import TODAY_KEY

pytestmark = pytest.mark.integration


async def _seed_scores(session_factory, count=150):
    async with session_factory() as session:
        for i in range(1, count + 1):
            session.add(LevelAgnosticAggregate(user_id=f'user{i:03d}', elo_score_by_day={TODAY_KEY: i}))
        await session.commit()


async def _seed_streaks(session_factory):
    async with session_factory() as session:
        session.add(DifficultyAggregate(
            user_id='alice', difficulty=Difficulty.HARD,
            current_first_try_streak=2, longest_first_try_streak=2,
        ))
        session.add(DifficultyAggregate(
            user_id='bob', difficulty=Difficulty.HARD,
            current_first_try_streak=1, longest_first_try_streak=3,
        ))
        await session.commit()


class TestQueryValidation:
    @pytest.mark.parametrize("category,subcategory,difficulty", [
        ('bogus', 'last7', None),
        ('score', 'yesterday', None),
        ('goals', 'beaten', None),
        ('streaks', 'firstTry', None),
        ('goals', 'matched', 'extreme'),
    ])
    async def test_invalid_queries_raise(self, reader, category, subcategory, difficulty):
        with pytest.raises(InvalidLeaderboardQueryError) as exc_info:
            await reader.get_leaderboard(category, subcategory, difficulty)
        assert exc_info.value.user_message.startswith("❌")

    async def test_names_are_case_insensitive(self, reader):
        response = await reader.get_leaderboard('Goals', 'BEATEN', 'Hard')
        assert response.key == 'goals_beaten_hard'


class TestSnapshotReads:
    async def test_top_ten_with_display_names(self, reader, builder, identity, session_factory):
        await _seed_scores(session_factory)
        await identity.remember_display_name('user150', 'Top Dog')
        await builder.rebuild_all()

        response = await reader.get_leaderboard('score', 'allTime')

        assert response.from_snapshot is True
        assert response.total_entries == 150
        assert [entry.rank for entry in response.entries] == list(range(1, 11))
        assert response.entries[0].display_name == 'Top Dog'
        assert response.entries[1].display_name == 'User_user14'
        assert response.entries[0].is_current is None
        assert response.requester_entry is None

    async def test_requester_inside_top_ten_gets_no_extra_row(self, reader, builder, session_factory):
        await _seed_scores(session_factory)
        await builder.rebuild_all()

        response = await reader.get_leaderboard('score', 'allTime', requester_id='user145')
        assert response.requester_entry is None

    async def test_requester_within_stored_entries_reads_snapshot(self, reader, builder, session_factory):
        await _seed_scores(session_factory)
        await builder.rebuild_all()

        with patch.object(reader, '_read_live_value', wraps=reader._read_live_value) as live:
            response = await reader.get_leaderboard('score', 'allTime', requester_id='user100')

        assert live.call_count == 0
        assert response.requester_entry.rank == 51
        assert response.requester_entry.value == 100

    async def test_requester_past_stored_entries_gets_one_live_read(self, reader, builder, session_factory):
        await _seed_scores(session_factory)
        await builder.rebuild_all()

        async with session_factory() as session:
            row = await session.get(LevelAgnosticAggregate, 'user010')
            row.elo_score_by_day = {TODAY_KEY: 12}
            await session.commit()

        with patch.object(reader, '_read_live_value', wraps=reader._read_live_value) as live:
            response = await reader.get_leaderboard('score', 'allTime', requester_id='user010')

        assert live.call_count == 1
        assert response.requester_entry.rank == 141
        assert response.requester_entry.value == 12

    async def test_guest_and_unranked_users_get_no_row(self, reader, builder, session_factory):
        await _seed_scores(session_factory, count=20)
        await builder.rebuild_all()

        assert (await reader.get_leaderboard('score', 'allTime')).requester_entry is None
        assert (await reader.get_leaderboard('score', 'allTime', requester_id='nobody')).requester_entry is None

    async def test_streak_entries_flag_current_streaks(self, reader, builder, session_factory):
        await _seed_streaks(session_factory)
        await builder.rebuild_all()

        response = await reader.get_leaderboard('streaks', 'firstTry', Difficulty.HARD)

        assert [(entry.user_id, entry.value, entry.is_current) for entry in response.entries] == [
            ('bob', 3, False),
            ('alice', 2, True),
        ]


class TestLiveFallback:
    async def test_missing_snapshot_ranks_live(self, reader, session_factory):
        await _seed_streaks(session_factory)

        response = await reader.get_leaderboard('streaks', 'firstTry', 'hard')

        assert response.from_snapshot is False
        assert response.total_entries == 2
        assert response.entries[0].user_id == 'bob'

    async def test_live_fallback_is_not_stored(self, reader, builder, session_factory):
        await _seed_streaks(session_factory)
        await reader.get_leaderboard('streaks', 'firstTry', 'hard')

        response = await reader.get_leaderboard('streaks', 'firstTry', 'hard')
        assert response.from_snapshot is False


class TestRequesterOutsideStoredEntries:
    async def test_last_ranked_user_gets_live_value_and_name(self, reader, builder, identity, session_factory):
        await _seed_scores(session_factory)
        await identity.remember_display_name('user001', 'Last Place')
        await builder.rebuild_all()

        with patch.object(reader, '_read_live_value', wraps=reader._read_live_value) as live:
            response = await reader.get_leaderboard('score', 'allTime', requester_id='user001')

        assert live.call_count == 1
        entry = response.requester_entry
        assert (entry.rank, entry.user_id, entry.value) == (150, 'user001', 1)
        assert entry.display_name == 'Last Place'

    async def test_unnamed_requester_gets_fallback_name(self, reader, builder, session_factory):
        await _seed_scores(session_factory)
        await builder.rebuild_all()

        response = await reader.get_leaderboard('score', 'allTime', requester_id='user010')
        assert response.requester_entry.display_name == 'User_user01'
