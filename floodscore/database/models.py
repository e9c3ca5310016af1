from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Float, JSON,
    Enum as SQLEnum, CheckConstraint, Index
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
from enum import Enum
from typing import Optional

Base = declarative_base()


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def parse(cls, value) -> 'Difficulty':
        """Parse a difficulty name case-insensitively. Raises ValueError on unknown input."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Difficulty must be a string, got {type(value).__name__}")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown difficulty '{value}'")


class Player(Base):
    """Last known display name for a user id."""
    __tablename__ = 'players'

    user_id = Column(String(64), primary_key=True)
    display_name = Column(String(100), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Player(user_id='{self.user_id}', display_name='{self.display_name}')>"


class Puzzle(Base):
    """Par (bot move count) for one difficulty of a daily puzzle."""
    __tablename__ = 'puzzles'

    puzzle_id = Column(String(10), primary_key=True)
    difficulty = Column(SQLEnum(Difficulty), primary_key=True)
    algo_score = Column(Integer, nullable=False)
    target_color = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        CheckConstraint('algo_score >= 0', name='ck_puzzle_algo_score_non_negative'),
    )

    def __repr__(self):
        return f"<Puzzle(puzzle_id='{self.puzzle_id}', difficulty={self.difficulty}, algo_score={self.algo_score})>"


class UserPuzzleHistory(Base):
    """Per-user, per-puzzle attempt counter across all difficulties."""
    __tablename__ = 'user_puzzle_histories'

    user_id = Column(String(64), primary_key=True)
    puzzle_id = Column(String(10), primary_key=True)
    total_attempts = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<UserPuzzleHistory(user_id='{self.user_id}', puzzle_id='{self.puzzle_id}', total_attempts={self.total_attempts})>"


class UserPuzzleDifficultyRecord(Base):
    """Per-user, per-puzzle, per-difficulty best result and flags."""
    __tablename__ = 'user_puzzle_difficulty_records'

    user_id = Column(String(64), primary_key=True)
    puzzle_id = Column(String(10), primary_key=True)
    difficulty = Column(SQLEnum(Difficulty), primary_key=True)

    attempts = Column(Integer, nullable=False, default=0)
    lowest_moves = Column(Integer, nullable=True)
    lowest_moves_attempt = Column(Integer, nullable=True)
    attempt_to_tie_bot = Column(Integer, nullable=True)
    attempt_to_beat_bot = Column(Integer, nullable=True)
    elo_score = Column(Integer, nullable=True)

    first_try = Column(Boolean, nullable=False, default=False)
    first_to_beat_bot = Column(Boolean, nullable=False, default=False)
    hint_used = Column(Boolean, nullable=False, default=False)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        Index('idx_difficulty_record_user_puzzle', 'user_id', 'puzzle_id'),
    )

    def __repr__(self):
        return (f"<UserPuzzleDifficultyRecord(user_id='{self.user_id}', puzzle_id='{self.puzzle_id}', "
                f"difficulty={self.difficulty}, attempts={self.attempts}, lowest_moves={self.lowest_moves})>")


class LevelAgnosticAggregate(Base):
    """Per-user totals, puzzle-completion streak and the day-keyed elo map."""
    __tablename__ = 'level_agnostic_aggregates'

    user_id = Column(String(64), primary_key=True)

    moves = Column(Integer, nullable=False, default=0)
    puzzle_attempts = Column(Integer, nullable=False, default=0)
    puzzle_solved = Column(Integer, nullable=False, default=0)

    current_puzzle_completed_streak = Column(Integer, nullable=False, default=0)
    longest_puzzle_completed_streak = Column(Integer, nullable=False, default=0)
    last_puzzle_completed_date = Column(String(10), nullable=True)
    puzzle_completed_streak_at_last_date = Column(Integer, nullable=False, default=0)

    last_easy_completed_date = Column(String(10), nullable=True)
    last_medium_completed_date = Column(String(10), nullable=True)
    last_hard_completed_date = Column(String(10), nullable=True)

    # Day key (YYYY-MM-DD) -> best summed score for that day
    elo_score_by_day = Column(JSON, nullable=False, default=dict)

    # Cached rolling sums; leaderboards always recompute from elo_score_by_day
    elo_score_all_time = Column(Float, nullable=False, default=0)
    elo_score_last_30 = Column(Float, nullable=False, default=0)
    elo_score_last_7 = Column(Float, nullable=False, default=0)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<LevelAgnosticAggregate(user_id='{self.user_id}', puzzle_attempts={self.puzzle_attempts})>"


class DifficultyAggregate(Base):
    """Per-user, per-difficulty streaks and goal counters."""
    __tablename__ = 'difficulty_aggregates'

    user_id = Column(String(64), primary_key=True)
    difficulty = Column(SQLEnum(Difficulty), primary_key=True)

    current_first_try_streak = Column(Integer, nullable=False, default=0)
    longest_first_try_streak = Column(Integer, nullable=False, default=0)
    last_first_try_date = Column(String(10), nullable=True)
    first_try_streak_at_last_date = Column(Integer, nullable=False, default=0)

    current_tie_bot_streak = Column(Integer, nullable=False, default=0)
    longest_tie_bot_streak = Column(Integer, nullable=False, default=0)
    last_tie_bot_date = Column(String(10), nullable=True)
    tie_bot_streak_at_last_date = Column(Integer, nullable=False, default=0)

    goals_achieved = Column(Integer, nullable=False, default=0)
    last_goal_achieved_date = Column(String(10), nullable=True)
    goals_beaten = Column(Integer, nullable=False, default=0)
    last_goal_beaten_date = Column(String(10), nullable=True)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<DifficultyAggregate(user_id='{self.user_id}', difficulty={self.difficulty})>"


class DailyScore(Base):
    """One user's lowest recorded moves on the shared per-puzzle board."""
    __tablename__ = 'daily_scores'

    puzzle_id = Column(String(10), primary_key=True)
    difficulty = Column(SQLEnum(Difficulty), primary_key=True)
    user_id = Column(String(64), primary_key=True)
    moves = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('moves >= 0', name='ck_daily_score_moves_non_negative'),
        Index('idx_daily_score_board', 'puzzle_id', 'difficulty', 'moves'),
    )

    def __repr__(self):
        return f"<DailyScore(puzzle_id='{self.puzzle_id}', difficulty={self.difficulty}, user_id='{self.user_id}', moves={self.moves})>"


class BestScore(Base):
    """The single best replay across all users for a puzzle and difficulty."""
    __tablename__ = 'best_scores'

    puzzle_id = Column(String(10), primary_key=True)
    difficulty = Column(SQLEnum(Difficulty), primary_key=True)
    user_id = Column(String(64), nullable=False)
    user_name = Column(String(100), nullable=False)
    user_score = Column(Integer, nullable=False)
    target_color = Column(String(20), nullable=True)
    states = Column(JSON, nullable=False, default=list)
    actions = Column(JSON, nullable=False, default=list)
    color_map = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<BestScore(puzzle_id='{self.puzzle_id}', difficulty={self.difficulty}, user_score={self.user_score})>"


class LeaderboardSnapshot(Base):
    """Precomputed ranking for one leaderboard dimension."""
    __tablename__ = 'leaderboard_snapshots'

    key = Column(String(50), primary_key=True)
    # [{"user_id": ..., "value": ..., "current_value": ...}] for the top entries
    entries = Column(JSON, nullable=False, default=list)
    # user_id -> 1-based rank for every ranked user
    user_ranks = Column(JSON, nullable=False, default=dict)
    total_entries = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<LeaderboardSnapshot(key='{self.key}', total_entries={self.total_entries})>"
