"""
Attempt recording.

Records one puzzle attempt for one user in a single transaction covering that
user's puzzle history, per-difficulty record, level-agnostic aggregate and
difficulty aggregate. Conflicting writers are detected through the version
column on every row and the whole unit is retried from a fresh read. The
shared daily board and the best-replay record are updated only after commit.
"""

import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy import select

from floodscore.data_models.aggregates import (
    DifficultyRecordState, LevelAgnosticState, DifficultyAggregateState
)
from floodscore.data_models.attempt import AttemptReport, AttemptResult
from floodscore.database.models import (
    Difficulty, UserPuzzleHistory, UserPuzzleDifficultyRecord,
    LevelAgnosticAggregate, DifficultyAggregate
)
from floodscore.operations.attempt_state import (
    AttemptSnapshot, AttemptTransition, apply_attempt,
    CHANGED_PUZZLE, CHANGED_RECORD, CHANGED_LEVEL_AGNOSTIC, CHANGED_DIFFICULTY
)
from floodscore.services.base import BaseService
from floodscore.services.daily_scores import DailyScoreMirror, lowest_other_moves
from floodscore.services.identity import IdentityResolver
from floodscore.utils.time_parser import today_utc

logger = logging.getLogger(__name__)


class AttemptRecorder(BaseService):
    """Atomic per-user attempt recording."""

    def __init__(self, session_factory, daily_scores: DailyScoreMirror, identity: IdentityResolver,
                 max_retries: int = 3, timeout: Optional[float] = 60.0,
                 clock: Callable[[], date] = today_utc):
        super().__init__(session_factory, max_retries=max_retries, timeout=timeout)
        self.daily_scores = daily_scores
        self.identity = identity
        self.clock = clock

    async def record_attempt(self, report: AttemptReport) -> AttemptResult:
        """
        Record a validated attempt.

        Args:
            report: Attempt produced by validate_attempt_payload

        Returns:
            AttemptResult with first_try, first_to_beat_bot and the attempt's elo

        Raises:
            TransactionError: conflicting writers exhausted the retries
            TransactionTimeoutError: the transaction exceeded its time box
        """
        operation = f"record attempt {report.user_id}/{report.puzzle_id}/{report.difficulty.value}"
        logger.info(
            f"Recording {'win' if report.won else 'loss'} for {report.user_id} on {report.puzzle_id} "
            f"({report.difficulty.value}): {report.user_moves} moves, par {report.bot_moves}"
        )

        transition = await self.execute_with_retry(lambda: self._record_attempt_once(report), operation)

        await self._after_commit(report, transition)
        return transition.result

    async def _record_attempt_once(self, report: AttemptReport) -> AttemptTransition:
        user_id, puzzle_id, difficulty = report.user_id, report.puzzle_id, report.difficulty

        async with self.get_session() as session:
            # All reads happen before any write
            history_row = await session.get(UserPuzzleHistory, (user_id, puzzle_id))
            result = await session.execute(
                select(UserPuzzleDifficultyRecord).where(
                    UserPuzzleDifficultyRecord.user_id == user_id,
                    UserPuzzleDifficultyRecord.puzzle_id == puzzle_id,
                )
            )
            record_rows = {row.difficulty: row for row in result.scalars().all()}
            level_agnostic_row = await session.get(LevelAgnosticAggregate, user_id)
            difficulty_row = await session.get(DifficultyAggregate, (user_id, difficulty))
            lowest_other = await lowest_other_moves(session, puzzle_id, difficulty, user_id)

            snapshot = AttemptSnapshot(
                total_attempts=history_row.total_attempts if history_row else 0,
                records={d: DifficultyRecordState.from_row(record_rows.get(d)) for d in Difficulty},
                level_agnostic=LevelAgnosticState.from_row(level_agnostic_row),
                difficulty_aggregate=DifficultyAggregateState.from_row(difficulty_row),
                lowest_other_moves=lowest_other,
            )

            transition = apply_attempt(snapshot, report, self.clock())

            if CHANGED_PUZZLE in transition.changed:
                if history_row is None:
                    history_row = UserPuzzleHistory(user_id=user_id, puzzle_id=puzzle_id)
                    session.add(history_row)
                history_row.total_attempts = transition.total_attempts

            if CHANGED_RECORD in transition.changed:
                record_row = record_rows.get(difficulty)
                if record_row is None:
                    record_row = UserPuzzleDifficultyRecord(
                        user_id=user_id, puzzle_id=puzzle_id, difficulty=difficulty
                    )
                    session.add(record_row)
                transition.record.write_to(record_row)

            if CHANGED_LEVEL_AGNOSTIC in transition.changed:
                if level_agnostic_row is None:
                    level_agnostic_row = LevelAgnosticAggregate(user_id=user_id)
                    session.add(level_agnostic_row)
                transition.level_agnostic.write_to(level_agnostic_row)

            if CHANGED_DIFFICULTY in transition.changed:
                if difficulty_row is None:
                    difficulty_row = DifficultyAggregate(user_id=user_id, difficulty=difficulty)
                    session.add(difficulty_row)
                transition.difficulty_aggregate.write_to(difficulty_row)

        logger.debug(f"Committed attempt for {user_id} on {puzzle_id} ({difficulty.value})")
        return transition

    async def _after_commit(self, report: AttemptReport, transition: AttemptTransition):
        """Best-effort writes to shared records; failures are logged, never raised."""
        if transition.improved_moves is None:
            return

        try:
            await self.daily_scores.mirror_best_moves(
                report.puzzle_id, report.difficulty, report.user_id, transition.improved_moves
            )
        except Exception as e:
            logger.warning(f"Daily score mirror failed for {report.user_id} on {report.puzzle_id}: {e}")

        if report.replay is None:
            return

        try:
            user_name = await self.identity.resolve_display_name(report.user_id)
            await self.daily_scores.submit_best_score(
                report.puzzle_id, report.difficulty, report.user_id, user_name,
                transition.improved_moves, report.replay
            )
        except Exception as e:
            logger.warning(f"Best score update failed for {report.user_id} on {report.puzzle_id}: {e}")

    async def mark_hint_used(self, user_id: str, puzzle_id: str, difficulty: Difficulty):
        """Flag a puzzle difficulty as solved with help. The flag is never cleared."""
        async def _mark():
            async with self.get_session() as session:
                row = await session.get(UserPuzzleDifficultyRecord, (user_id, puzzle_id, difficulty))
                if row is None:
                    row = UserPuzzleDifficultyRecord(user_id=user_id, puzzle_id=puzzle_id, difficulty=difficulty)
                    DifficultyRecordState(hint_used=True).write_to(row)
                    session.add(row)
                elif not row.hint_used:
                    row.hint_used = True

        await self.execute_with_retry(_mark, f"mark hint used {user_id}/{puzzle_id}/{difficulty.value}")
        logger.info(f"Hint marked used for {user_id} on {puzzle_id} ({difficulty.value})")
