"""Tests for the shared daily board and best-replay record."""

import pytest

from floodscore.data_models.attempt import Replay
from floodscore.database.models import Difficulty
from floodscore.services.daily_scores import DailyScoreMirror, lowest_other_moves

from conftest import TODAY_KEY

pytestmark = pytest.mark.integration

REPLAY = Replay(states=[[0]], actions=[2], target_color='blue')


class TestMirror:
    async def test_only_lower_moves_overwrite(self, daily_scores):
        assert await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.HARD, 'alice', 12) is True
        assert await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.HARD, 'alice', 14) is False
        assert await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.HARD, 'alice', 12) is False
        assert await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.HARD, 'alice', 10) is True

        assert await daily_scores.get_board(TODAY_KEY, Difficulty.HARD) == {'alice': 10}

    async def test_lowest_other_moves_excludes_requester(self, daily_scores, session_factory):
        await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.HARD, 'alice', 7)
        await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.HARD, 'bob', 9)
        await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.EASY, 'carol', 3)

        async with session_factory() as session:
            assert await lowest_other_moves(session, TODAY_KEY, Difficulty.HARD, 'alice') == 9
            assert await lowest_other_moves(session, TODAY_KEY, Difficulty.HARD, 'bob') == 7
            assert await lowest_other_moves(session, TODAY_KEY, Difficulty.MEDIUM, 'bob') is None

    async def test_daily_score_stats(self, daily_scores):
        for user_id, moves in (('a', 8), ('b', 8), ('c', 11), ('d', 13)):
            await daily_scores.mirror_best_moves(TODAY_KEY, Difficulty.MEDIUM, user_id, moves)

        stats = await daily_scores.daily_score_stats(TODAY_KEY)

        medium = stats[Difficulty.MEDIUM]
        assert medium.lowest_score == 8
        assert medium.total_players == 4
        assert medium.players_with_lowest_score == 2
        assert medium.average_score == pytest.approx(10.0)

        assert stats[Difficulty.EASY].total_players == 0
        assert stats[Difficulty.EASY].lowest_score is None
        assert stats[Difficulty.EASY].average_score is None


class TestBestScore:
    async def test_replaced_only_on_strictly_lower_moves(self, daily_scores, best_score_changes):
        assert await daily_scores.submit_best_score(TODAY_KEY, Difficulty.HARD, 'alice', 'Alice', 9, REPLAY)
        assert not await daily_scores.submit_best_score(TODAY_KEY, Difficulty.HARD, 'bob', 'Bob', 9, REPLAY)
        assert await daily_scores.submit_best_score(TODAY_KEY, Difficulty.HARD, 'bob', 'Bob', 8, REPLAY)

        best = await daily_scores.get_best_score(TODAY_KEY, Difficulty.HARD)
        assert (best.user_id, best.user_name, best.user_score) == ('bob', 'Bob', 8)
        assert [change.user_id for change in best_score_changes] == ['alice', 'bob']
        assert best_score_changes[0].previous_score is None

    async def test_failing_hook_does_not_fail_the_write(self, session_factory):
        def explode(change):
            raise RuntimeError("notification service down")

        mirror = DailyScoreMirror(session_factory, on_best_score_changed=explode)
        assert await mirror.submit_best_score(TODAY_KEY, Difficulty.EASY, 'alice', 'Alice', 5, REPLAY)
        assert (await mirror.get_best_score(TODAY_KEY, Difficulty.EASY)).user_score == 5

    async def test_async_hook_is_awaited(self, session_factory):
        seen = []

        async def record(change):
            seen.append(change.user_score)

        mirror = DailyScoreMirror(session_factory, on_best_score_changed=record)
        await mirror.submit_best_score(TODAY_KEY, Difficulty.EASY, 'alice', 'Alice', 5, REPLAY)
        assert seen == [5]
