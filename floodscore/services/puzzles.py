"""Par values for daily puzzles."""

import logging
from typing import Optional

from floodscore.database.models import Difficulty, Puzzle
from floodscore.services.base import BaseService
from floodscore.utils.elo import qualifies_for_best_score_notification

logger = logging.getLogger(__name__)


class PuzzleReferenceProvider(BaseService):
    """Looks up and registers the bot move count for each puzzle and difficulty."""

    async def get_par(self, puzzle_id: str, difficulty: Difficulty) -> Optional[int]:
        async with self.get_session() as session:
            puzzle = await session.get(Puzzle, (puzzle_id, difficulty))
            return puzzle.algo_score if puzzle else None

    async def set_par(self, puzzle_id: str, difficulty: Difficulty, algo_score: int,
                      target_color: Optional[str] = None):
        """Register or replace the par for one puzzle difficulty."""
        async with self.get_session() as session:
            puzzle = await session.get(Puzzle, (puzzle_id, difficulty))
            if puzzle is None:
                session.add(Puzzle(
                    puzzle_id=puzzle_id, difficulty=difficulty,
                    algo_score=algo_score, target_color=target_color
                ))
            else:
                puzzle.algo_score = algo_score
                if target_color is not None:
                    puzzle.target_color = target_color
        logger.info(f"Par for {puzzle_id} ({difficulty.value}) set to {algo_score}")

    async def should_notify_best_score(self, puzzle_id: str, difficulty: Difficulty, user_score: int) -> bool:
        """Whether a new best score beats this puzzle's par by the notification margin."""
        algo_score = await self.get_par(puzzle_id, difficulty)
        return qualifies_for_best_score_notification(difficulty, user_score, algo_score)
