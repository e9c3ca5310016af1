"""
Shared per-puzzle score board.

Mirrors each user's best move count into the daily board, keeps the single
best replay per puzzle and difficulty, and answers board-wide statistics.
Writes here happen after the attempt transaction commits and are idempotent,
so a failed or repeated mirror never corrupts the board.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Union

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from floodscore.data_models.attempt import Replay
from floodscore.data_models.stats import DailyScoreStats
from floodscore.database.models import BestScore, DailyScore, Difficulty
from floodscore.services.base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BestScoreChange:
    """Passed to the best-score hook after a record is replaced."""
    puzzle_id: str
    difficulty: Difficulty
    user_id: str
    user_name: str
    user_score: int
    previous_score: Optional[int]


BestScoreHook = Callable[[BestScoreChange], Union[None, Awaitable[None]]]


async def lowest_other_moves(session: AsyncSession, puzzle_id: str, difficulty: Difficulty,
                             user_id: str) -> Optional[int]:
    """Lowest board score for a puzzle difficulty, ignoring the given user's own entry."""
    result = await session.execute(
        select(func.min(DailyScore.moves)).where(
            DailyScore.puzzle_id == puzzle_id,
            DailyScore.difficulty == difficulty,
            DailyScore.user_id != user_id,
        )
    )
    return result.scalar()


class DailyScoreMirror(BaseService):
    """Owns the DailyScoreBoard and BestScoreRecord tables."""

    def __init__(self, session_factory, max_retries: int = 3,
                 on_best_score_changed: Optional[BestScoreHook] = None):
        super().__init__(session_factory, max_retries=max_retries)
        self.on_best_score_changed = on_best_score_changed

    async def mirror_best_moves(self, puzzle_id: str, difficulty: Difficulty, user_id: str, moves: int) -> bool:
        """
        Record a user's move count on the board if it beats their current entry.

        Returns:
            True when the board changed
        """
        async def _mirror():
            async with self.get_session() as session:
                entry = await session.get(DailyScore, (puzzle_id, difficulty, user_id))
                if entry is None:
                    session.add(DailyScore(
                        puzzle_id=puzzle_id, difficulty=difficulty, user_id=user_id, moves=moves
                    ))
                    return True
                if moves < entry.moves:
                    entry.moves = moves
                    return True
                return False

        changed = await self.execute_with_retry(_mirror, f"mirror daily score {puzzle_id}/{difficulty.value}")
        if changed:
            logger.debug(f"Mirrored {moves} moves for {user_id} on {puzzle_id} ({difficulty.value})")
        return changed

    async def get_board(self, puzzle_id: str, difficulty: Difficulty) -> Dict[str, int]:
        """All recorded scores for one puzzle difficulty, keyed by user id."""
        async with self.get_session() as session:
            result = await session.execute(
                select(DailyScore.user_id, DailyScore.moves).where(
                    DailyScore.puzzle_id == puzzle_id,
                    DailyScore.difficulty == difficulty,
                )
            )
            return {user_id: moves for user_id, moves in result.all()}

    async def submit_best_score(self, puzzle_id: str, difficulty: Difficulty, user_id: str,
                                user_name: str, moves: int, replay: Replay) -> bool:
        """
        Replace the board-wide best replay when moves is strictly lower.

        Returns:
            True when the record was replaced
        """
        async def _submit():
            async with self.get_session() as session:
                best = await session.get(BestScore, (puzzle_id, difficulty))
                if best is not None and moves >= best.user_score:
                    return False, best.user_score
                previous_score = best.user_score if best is not None else None
                if best is None:
                    best = BestScore(puzzle_id=puzzle_id, difficulty=difficulty)
                    session.add(best)
                best.user_id = user_id
                best.user_name = user_name
                best.user_score = moves
                best.target_color = replay.target_color
                best.states = list(replay.states)
                best.actions = list(replay.actions)
                best.color_map = replay.color_map
                return True, previous_score

        replaced, previous_score = await self.execute_with_retry(_submit, f"best score {puzzle_id}/{difficulty.value}")
        if not replaced:
            return False

        logger.info(f"New best score for {puzzle_id} ({difficulty.value}): {moves} by {user_id}")
        await self._notify_best_score_changed(BestScoreChange(
            puzzle_id=puzzle_id,
            difficulty=difficulty,
            user_id=user_id,
            user_name=user_name,
            user_score=moves,
            previous_score=previous_score,
        ))
        return True

    async def _notify_best_score_changed(self, change: BestScoreChange):
        if not self.on_best_score_changed:
            return
        try:
            result = self.on_best_score_changed(change)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Best score hook failed for {change.puzzle_id} ({change.difficulty.value}): {e}")

    async def get_best_score(self, puzzle_id: str, difficulty: Difficulty) -> Optional[BestScore]:
        async with self.get_session() as session:
            return await session.get(BestScore, (puzzle_id, difficulty))

    async def daily_score_stats(self, puzzle_id: str) -> Dict[Difficulty, DailyScoreStats]:
        """Lowest score, player counts and average per difficulty for one puzzle."""
        async with self.get_session() as session:
            result = await session.execute(
                select(DailyScore.difficulty, DailyScore.moves).where(DailyScore.puzzle_id == puzzle_id)
            )
            rows = result.all()

        moves_by_difficulty: Dict[Difficulty, list] = {difficulty: [] for difficulty in Difficulty}
        for difficulty, moves in rows:
            moves_by_difficulty[difficulty].append(moves)

        stats = {}
        for difficulty, scores in moves_by_difficulty.items():
            if not scores:
                stats[difficulty] = DailyScoreStats(
                    lowest_score=None, total_players=0, players_with_lowest_score=0, average_score=None
                )
                continue
            lowest = min(scores)
            stats[difficulty] = DailyScoreStats(
                lowest_score=lowest,
                total_players=len(scores),
                players_with_lowest_score=scores.count(lowest),
                average_score=sum(scores) / len(scores),
            )
        return stats
