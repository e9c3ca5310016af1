"""
Statistics data models.

Read-only views over a user's aggregates and the shared daily board.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from floodscore.database.models import Difficulty


@dataclass(frozen=True)
class TodayStats:
    day_elo: Optional[int]
    attempts: int
    fewest_moves: Optional[int]
    difficulty_elo: Optional[int]
    attempts_to_tie_goal: Optional[int]
    attempts_to_beat_goal: Optional[int]


@dataclass(frozen=True)
class AllTimeStats:
    current_puzzle_streak: int
    current_goal_streak: int
    current_first_try_streak: int
    games_played: int
    puzzles_solved: int
    total_moves: int


@dataclass(frozen=True)
class PersonalStats:
    today: TodayStats
    all_time: AllTimeStats


@dataclass(frozen=True)
class DifficultyWinStats:
    last_tie_bot_date: Optional[str]
    last_first_try_date: Optional[str]
    current_tie_bot_streak: int
    current_first_try_streak: int
    attempts: int


@dataclass(frozen=True)
class WinModalStats:
    last_puzzle_completed_date: Optional[str]
    current_puzzle_completed_streak: int
    difficulties: Dict[Difficulty, DifficultyWinStats]


@dataclass(frozen=True)
class DailyScoreStats:
    lowest_score: Optional[int]
    total_players: int
    players_with_lowest_score: int
    average_score: Optional[float]
