"""Tests for personal stats, hint marking and par lookups."""

import pytest

from floodscore.database.models import Difficulty

from conftest import TODAY_KEY

pytestmark = pytest.mark.integration


async def test_personal_stats_after_attempts(recorder, stats_service, make_report):
    await recorder.record_attempt(make_report(user_moves=12, won=False))
    await recorder.record_attempt(make_report(user_moves=10))

    stats = await stats_service.get_personal_stats('alice', TODAY_KEY, Difficulty.HARD)

    assert stats.today.attempts == 2
    assert stats.today.fewest_moves == 10
    assert stats.today.attempts_to_tie_goal == 2
    assert stats.today.attempts_to_beat_goal is None
    assert stats.today.difficulty_elo == stats.today.day_elo
    assert stats.all_time.games_played == 2
    assert stats.all_time.puzzles_solved == 1
    assert stats.all_time.total_moves == 22
    assert stats.all_time.current_puzzle_streak == 1
    assert stats.all_time.current_goal_streak == 1
    assert stats.all_time.current_first_try_streak == 0


async def test_personal_stats_for_new_user(stats_service):
    stats = await stats_service.get_personal_stats('nobody', TODAY_KEY, Difficulty.EASY)

    assert stats.today.attempts == 0
    assert stats.today.day_elo is None
    assert stats.all_time.games_played == 0


async def test_win_modal_covers_every_difficulty(recorder, stats_service, make_report):
    await recorder.record_attempt(make_report(difficulty=Difficulty.EASY, user_moves=8, bot_moves=10))

    stats = await stats_service.get_win_modal_stats('alice', TODAY_KEY)

    assert stats.last_puzzle_completed_date == TODAY_KEY
    assert stats.current_puzzle_completed_streak == 1
    easy = stats.difficulties[Difficulty.EASY]
    assert (easy.attempts, easy.current_first_try_streak, easy.last_first_try_date) == (1, 1, TODAY_KEY)
    assert stats.difficulties[Difficulty.HARD].attempts == 0


async def test_mark_hint_used_is_sticky(recorder, stats_service, make_report, session_factory):
    await recorder.mark_hint_used('alice', TODAY_KEY, Difficulty.MEDIUM)
    result = await recorder.record_attempt(make_report(difficulty=Difficulty.MEDIUM, user_moves=5))

    assert result.elo is None
    stats = await stats_service.get_personal_stats('alice', TODAY_KEY, Difficulty.MEDIUM)
    assert stats.today.attempts == 1
    assert stats.all_time.current_first_try_streak == 0


async def test_par_registration(puzzles):
    assert await puzzles.get_par(TODAY_KEY, Difficulty.HARD) is None

    await puzzles.set_par(TODAY_KEY, Difficulty.HARD, 14, target_color='red')
    await puzzles.set_par(TODAY_KEY, Difficulty.HARD, 12)

    assert await puzzles.get_par(TODAY_KEY, Difficulty.HARD) == 12
    assert await puzzles.should_notify_best_score(TODAY_KEY, Difficulty.HARD, 11)
    assert not await puzzles.should_notify_best_score(TODAY_KEY, Difficulty.HARD, 12)
    assert not await puzzles.should_notify_best_score('2024-01-01', Difficulty.HARD, 1)
