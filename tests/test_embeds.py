"""Tests for the win reply shown after /submit-puzzle."""

from types import SimpleNamespace

import pytest

from floodscore.cogs.puzzle_commands import PuzzleCommands
from floodscore.config import Config
from floodscore.data_models.attempt import AttemptResult
from floodscore.database.models import Difficulty
from floodscore.utils.embeds import build_attempt_embed

pytestmark = pytest.mark.integration


@pytest.fixture
def cog(recorder, stats_service, identity, puzzles, daily_scores):
    bot = SimpleNamespace(
        config=Config(),
        identity=identity,
        puzzles=puzzles,
        attempt_recorder=recorder,
        daily_scores=daily_scores,
        stats_service=stats_service,
    )
    return PuzzleCommands(bot)


def _field(embed, name):
    return next(field.value for field in embed.fields if field.name == name)


async def test_win_reply_carries_streaks(cog, recorder, make_report):
    report = make_report(difficulty=Difficulty.MEDIUM, user_moves=10, bot_moves=10)
    result = await recorder.record_attempt(report)

    win_stats = await cog._win_stats(report)
    embed = build_attempt_embed(report, result, win_stats)

    assert win_stats.current_puzzle_completed_streak == 1
    streaks = _field(embed, "Streaks")
    assert "Puzzles completed: 1" in streaks
    assert "Goal achieved (medium): 1" in streaks
    assert "First try (medium): 1" in streaks
    assert "First try!" in _field(embed, "Badges")


async def test_win_stats_failure_drops_the_summary(cog, make_report, monkeypatch):
    async def broken(user_id, puzzle_id):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(cog.stats, 'get_win_modal_stats', broken)
    assert await cog._win_stats(make_report()) is None


def test_loss_reply_has_no_streaks(make_report):
    report = make_report(won=False, user_moves=12)
    embed = build_attempt_embed(report, AttemptResult(first_try=False, first_to_beat_bot=False, elo=None))
    assert [field.name for field in embed.fields] == []
