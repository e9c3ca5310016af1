"""Read-only personal statistics."""

import logging

from sqlalchemy import select

from floodscore.data_models.aggregates import (
    DifficultyRecordState, LevelAgnosticState, DifficultyAggregateState
)
from floodscore.data_models.stats import (
    AllTimeStats, DifficultyWinStats, PersonalStats, TodayStats, WinModalStats
)
from floodscore.database.models import (
    Difficulty, UserPuzzleDifficultyRecord, LevelAgnosticAggregate, DifficultyAggregate
)
from floodscore.services.base import BaseService
from floodscore.utils.elo import is_countable_number

logger = logging.getLogger(__name__)


class PersonalStatsService(BaseService):
    """Per-user views over the stored aggregates."""

    async def get_personal_stats(self, user_id: str, puzzle_id: str, difficulty: Difficulty) -> PersonalStats:
        async with self.get_session() as session:
            record_row = await session.get(UserPuzzleDifficultyRecord, (user_id, puzzle_id, difficulty))
            level_agnostic_row = await session.get(LevelAgnosticAggregate, user_id)
            difficulty_row = await session.get(DifficultyAggregate, (user_id, difficulty))

        record = DifficultyRecordState.from_row(record_row) or DifficultyRecordState()
        level_agnostic = LevelAgnosticState.from_row(level_agnostic_row)
        difficulty_aggregate = DifficultyAggregateState.from_row(difficulty_row)

        day_elo = level_agnostic.elo_score_by_day.get(puzzle_id)

        return PersonalStats(
            today=TodayStats(
                day_elo=int(day_elo) if is_countable_number(day_elo) else None,
                attempts=record.attempts,
                fewest_moves=record.lowest_moves,
                difficulty_elo=record.elo_score,
                attempts_to_tie_goal=record.attempt_to_tie_bot,
                attempts_to_beat_goal=record.attempt_to_beat_bot,
            ),
            all_time=AllTimeStats(
                current_puzzle_streak=level_agnostic.completion_streak.current,
                current_goal_streak=difficulty_aggregate.tie_bot_streak.current,
                current_first_try_streak=difficulty_aggregate.first_try_streak.current,
                games_played=level_agnostic.puzzle_attempts,
                puzzles_solved=level_agnostic.puzzle_solved,
                total_moves=level_agnostic.moves,
            ),
        )

    async def get_win_modal_stats(self, user_id: str, puzzle_id: str) -> WinModalStats:
        """Streak summary shown after a win, covering every difficulty of the puzzle."""
        async with self.get_session() as session:
            level_agnostic_row = await session.get(LevelAgnosticAggregate, user_id)
            aggregate_rows = (await session.execute(
                select(DifficultyAggregate).where(DifficultyAggregate.user_id == user_id)
            )).scalars().all()
            record_rows = (await session.execute(
                select(UserPuzzleDifficultyRecord).where(
                    UserPuzzleDifficultyRecord.user_id == user_id,
                    UserPuzzleDifficultyRecord.puzzle_id == puzzle_id,
                )
            )).scalars().all()

        level_agnostic = LevelAgnosticState.from_row(level_agnostic_row)
        aggregates = {row.difficulty: DifficultyAggregateState.from_row(row) for row in aggregate_rows}
        records = {row.difficulty: DifficultyRecordState.from_row(row) for row in record_rows}

        difficulties = {}
        for difficulty in Difficulty:
            aggregate = aggregates.get(difficulty, DifficultyAggregateState())
            record = records.get(difficulty)
            difficulties[difficulty] = DifficultyWinStats(
                last_tie_bot_date=aggregate.tie_bot_streak.last_date,
                last_first_try_date=aggregate.first_try_streak.last_date,
                current_tie_bot_streak=aggregate.tie_bot_streak.current,
                current_first_try_streak=aggregate.first_try_streak.current,
                attempts=record.attempts if record else 0,
            )

        return WinModalStats(
            last_puzzle_completed_date=level_agnostic.completion_streak.last_date,
            current_puzzle_completed_streak=level_agnostic.completion_streak.current,
            difficulties=difficulties,
        )
