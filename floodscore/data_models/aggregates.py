"""
Per-user aggregate state.

Typed, immutable views of the stored aggregate rows. Every struct has an
explicit defaulting step (`from_row`) so that missing rows and legacy rows with
unset columns read the same way, and a `write_to` step that copies the new
state back onto an ORM row.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from floodscore.database.models import (
    Difficulty, UserPuzzleDifficultyRecord, LevelAgnosticAggregate, DifficultyAggregate
)
from floodscore.utils.elo import is_countable_number
from floodscore.utils.streaks import StreakState


def _int(value, default: int = 0) -> int:
    return int(value) if is_countable_number(value) else default


def _optional_int(value) -> Optional[int]:
    return int(value) if is_countable_number(value) else None


def _streak(current, longest, last_date, at_last_date) -> StreakState:
    current = _int(current)
    at_last_date = _int(at_last_date)
    # Rows written before at_last_date existed only know current
    if at_last_date == 0 and current > 0:
        at_last_date = current
    return StreakState(
        current=current,
        longest=max(_int(longest), current),
        last_date=last_date,
        at_last_date=at_last_date,
    )


@dataclass(frozen=True)
class DifficultyRecordState:
    """One user's history on one difficulty of one puzzle."""
    attempts: int = 0
    lowest_moves: Optional[int] = None
    lowest_moves_attempt: Optional[int] = None
    attempt_to_tie_bot: Optional[int] = None
    attempt_to_beat_bot: Optional[int] = None
    elo_score: Optional[int] = None
    first_try: bool = False
    first_to_beat_bot: bool = False
    hint_used: bool = False

    @classmethod
    def from_row(cls, row: Optional[UserPuzzleDifficultyRecord]) -> Optional['DifficultyRecordState']:
        if row is None:
            return None
        return cls(
            attempts=_int(row.attempts),
            lowest_moves=_optional_int(row.lowest_moves),
            lowest_moves_attempt=_optional_int(row.lowest_moves_attempt),
            attempt_to_tie_bot=_optional_int(row.attempt_to_tie_bot),
            attempt_to_beat_bot=_optional_int(row.attempt_to_beat_bot),
            elo_score=_optional_int(row.elo_score),
            first_try=bool(row.first_try),
            first_to_beat_bot=bool(row.first_to_beat_bot),
            hint_used=bool(row.hint_used),
        )

    def write_to(self, row: UserPuzzleDifficultyRecord):
        row.attempts = self.attempts
        row.lowest_moves = self.lowest_moves
        row.lowest_moves_attempt = self.lowest_moves_attempt
        row.attempt_to_tie_bot = self.attempt_to_tie_bot
        row.attempt_to_beat_bot = self.attempt_to_beat_bot
        row.elo_score = self.elo_score
        row.first_try = self.first_try
        row.first_to_beat_bot = self.first_to_beat_bot
        row.hint_used = self.hint_used


@dataclass(frozen=True)
class LevelAgnosticState:
    """Totals across all difficulties for one user."""
    moves: int = 0
    puzzle_attempts: int = 0
    puzzle_solved: int = 0
    completion_streak: StreakState = field(default_factory=StreakState)
    last_completed: Mapping[Difficulty, Optional[str]] = field(default_factory=dict)
    elo_score_by_day: Mapping[str, Any] = field(default_factory=dict)
    elo_score_all_time: float = 0
    elo_score_last_30: float = 0
    elo_score_last_7: float = 0

    @classmethod
    def from_row(cls, row: Optional[LevelAgnosticAggregate]) -> 'LevelAgnosticState':
        if row is None:
            return cls()
        elo_by_day = row.elo_score_by_day if isinstance(row.elo_score_by_day, dict) else {}
        return cls(
            moves=_int(row.moves),
            puzzle_attempts=_int(row.puzzle_attempts),
            puzzle_solved=_int(row.puzzle_solved),
            completion_streak=_streak(
                row.current_puzzle_completed_streak,
                row.longest_puzzle_completed_streak,
                row.last_puzzle_completed_date,
                row.puzzle_completed_streak_at_last_date,
            ),
            last_completed={
                Difficulty.EASY: row.last_easy_completed_date,
                Difficulty.MEDIUM: row.last_medium_completed_date,
                Difficulty.HARD: row.last_hard_completed_date,
            },
            elo_score_by_day=dict(elo_by_day),
            elo_score_all_time=row.elo_score_all_time or 0,
            elo_score_last_30=row.elo_score_last_30 or 0,
            elo_score_last_7=row.elo_score_last_7 or 0,
        )

    def write_to(self, row: LevelAgnosticAggregate):
        row.moves = self.moves
        row.puzzle_attempts = self.puzzle_attempts
        row.puzzle_solved = self.puzzle_solved
        row.current_puzzle_completed_streak = self.completion_streak.current
        row.longest_puzzle_completed_streak = self.completion_streak.longest
        row.last_puzzle_completed_date = self.completion_streak.last_date
        row.puzzle_completed_streak_at_last_date = self.completion_streak.at_last_date
        row.last_easy_completed_date = self.last_completed.get(Difficulty.EASY)
        row.last_medium_completed_date = self.last_completed.get(Difficulty.MEDIUM)
        row.last_hard_completed_date = self.last_completed.get(Difficulty.HARD)
        # Always assign a fresh dict so the JSON column is flagged dirty
        row.elo_score_by_day = dict(self.elo_score_by_day)
        row.elo_score_all_time = self.elo_score_all_time
        row.elo_score_last_30 = self.elo_score_last_30
        row.elo_score_last_7 = self.elo_score_last_7

    def leaderboard_fields(self) -> Dict[str, Any]:
        return {
            'current_puzzle_completed_streak': self.completion_streak.current,
            'longest_puzzle_completed_streak': self.completion_streak.longest,
        }


@dataclass(frozen=True)
class DifficultyAggregateState:
    """Streaks and goal counters for one user on one difficulty."""
    first_try_streak: StreakState = field(default_factory=StreakState)
    tie_bot_streak: StreakState = field(default_factory=StreakState)
    goals_achieved: int = 0
    last_goal_achieved_date: Optional[str] = None
    goals_beaten: int = 0
    last_goal_beaten_date: Optional[str] = None

    @classmethod
    def from_row(cls, row: Optional[DifficultyAggregate]) -> 'DifficultyAggregateState':
        if row is None:
            return cls()
        return cls(
            first_try_streak=_streak(
                row.current_first_try_streak,
                row.longest_first_try_streak,
                row.last_first_try_date,
                row.first_try_streak_at_last_date,
            ),
            tie_bot_streak=_streak(
                row.current_tie_bot_streak,
                row.longest_tie_bot_streak,
                row.last_tie_bot_date,
                row.tie_bot_streak_at_last_date,
            ),
            goals_achieved=_int(row.goals_achieved),
            last_goal_achieved_date=row.last_goal_achieved_date,
            goals_beaten=_int(row.goals_beaten),
            last_goal_beaten_date=row.last_goal_beaten_date,
        )

    def write_to(self, row: DifficultyAggregate):
        row.current_first_try_streak = self.first_try_streak.current
        row.longest_first_try_streak = self.first_try_streak.longest
        row.last_first_try_date = self.first_try_streak.last_date
        row.first_try_streak_at_last_date = self.first_try_streak.at_last_date
        row.current_tie_bot_streak = self.tie_bot_streak.current
        row.longest_tie_bot_streak = self.tie_bot_streak.longest
        row.last_tie_bot_date = self.tie_bot_streak.last_date
        row.tie_bot_streak_at_last_date = self.tie_bot_streak.at_last_date
        row.goals_achieved = self.goals_achieved
        row.last_goal_achieved_date = self.last_goal_achieved_date
        row.goals_beaten = self.goals_beaten
        row.last_goal_beaten_date = self.last_goal_beaten_date

    def leaderboard_fields(self) -> Dict[str, Any]:
        return {
            'goals_achieved': self.goals_achieved,
            'goals_beaten': self.goals_beaten,
            'current_first_try_streak': self.first_try_streak.current,
            'longest_first_try_streak': self.first_try_streak.longest,
            'current_tie_bot_streak': self.tie_bot_streak.current,
            'longest_tie_bot_streak': self.tie_bot_streak.longest,
        }
