"""
Attempt state transition.

A pure function from (the user's current aggregates, one reported attempt) to
their new aggregates plus the caller-facing result. The attempt recorder reads
every row first, runs this, then writes whatever changed, so the same
snapshot always yields the same outcome no matter how often a conflicting
transaction forces a retry.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, FrozenSet, Optional

from floodscore.data_models.aggregates import (
    DifficultyRecordState, LevelAgnosticState, DifficultyAggregateState
)
from floodscore.data_models.attempt import AttemptReport, AttemptResult
from floodscore.database.models import Difficulty
from floodscore.utils.elo import EloScorer, compute_elo_aggregates, is_countable_number
from floodscore.utils.streaks import advance_streak

CHANGED_PUZZLE = 'puzzle'
CHANGED_RECORD = 'record'
CHANGED_LEVEL_AGNOSTIC = 'level_agnostic'
CHANGED_DIFFICULTY = 'difficulty'


@dataclass(frozen=True)
class AttemptSnapshot:
    """Everything the transition reads, captured before any write."""
    total_attempts: int = 0
    records: Dict[Difficulty, Optional[DifficultyRecordState]] = field(default_factory=dict)
    level_agnostic: LevelAgnosticState = field(default_factory=LevelAgnosticState)
    difficulty_aggregate: DifficultyAggregateState = field(default_factory=DifficultyAggregateState)
    # Lowest DailyScoreBoard moves by any other user, None when nobody else has a score
    lowest_other_moves: Optional[int] = None


@dataclass(frozen=True)
class AttemptTransition:
    total_attempts: int
    record: DifficultyRecordState
    level_agnostic: LevelAgnosticState
    difficulty_aggregate: DifficultyAggregateState
    changed: FrozenSet[str]
    result: AttemptResult
    # Set when this attempt improved the user's best moves
    improved_moves: Optional[int] = None


def _count_only(previous: Optional[DifficultyRecordState], attempt_number: int,
                hint_ever: bool) -> DifficultyRecordState:
    """Losses and hint wins: bump the counter, keep every score field."""
    if previous is None:
        return DifficultyRecordState(attempts=attempt_number, hint_used=hint_ever)
    return replace(previous, attempts=attempt_number, hint_used=previous.hint_used or hint_ever)


def _clean_win(previous: Optional[DifficultyRecordState], report: AttemptReport, attempt_number: int,
               first_try: bool, first_to_beat_bot: bool):
    moves = report.user_moves
    tied = moves <= report.bot_moves
    beaten = moves < report.bot_moves

    elo = EloScorer.calculate_elo_score(
        report.difficulty,
        report.bot_moves,
        moves,
        win_attempt=attempt_number,
        penalty_attempt=EloScorer.penalty_attempt_index(
            attempt_number if beaten else None,
            attempt_number if tied else None,
            attempt_number,
        ),
        is_first_to_beat_bot=first_to_beat_bot,
    )

    if previous is None:
        record = DifficultyRecordState(
            attempts=attempt_number,
            lowest_moves=moves,
            lowest_moves_attempt=attempt_number,
            attempt_to_tie_bot=attempt_number if tied else None,
            attempt_to_beat_bot=attempt_number if beaten else None,
            elo_score=elo,
            first_try=first_try,
            first_to_beat_bot=first_to_beat_bot,
        )
        return record, elo, True

    attempt_to_tie_bot = previous.attempt_to_tie_bot
    if attempt_to_tie_bot is None and tied:
        attempt_to_tie_bot = attempt_number
    attempt_to_beat_bot = previous.attempt_to_beat_bot
    if attempt_to_beat_bot is None and beaten:
        attempt_to_beat_bot = attempt_number

    improved = previous.lowest_moves is None or moves < previous.lowest_moves
    if improved:
        record = replace(
            previous,
            attempts=attempt_number,
            lowest_moves=moves,
            lowest_moves_attempt=attempt_number,
            attempt_to_tie_bot=attempt_to_tie_bot,
            attempt_to_beat_bot=attempt_to_beat_bot,
            elo_score=elo,
            first_to_beat_bot=previous.first_to_beat_bot or first_to_beat_bot,
        )
    else:
        record = replace(
            previous,
            attempts=attempt_number,
            attempt_to_tie_bot=attempt_to_tie_bot,
            attempt_to_beat_bot=attempt_to_beat_bot,
            elo_score=previous.elo_score if previous.elo_score is not None else elo,
        )
    return record, elo, improved


def _day_elo_total(records: Dict[Difficulty, Optional[DifficultyRecordState]]) -> int:
    total = 0
    for record in records.values():
        if record is not None and record.elo_score is not None:
            total += record.elo_score
    return total


def apply_attempt(snapshot: AttemptSnapshot, report: AttemptReport, today: date) -> AttemptTransition:
    """
    Apply one attempt to a user's aggregates.

    Args:
        snapshot: The user's state as read at the start of the transaction
        report: Validated attempt
        today: Current UTC day, used for the rolling score windows

    Returns:
        AttemptTransition with the new state, the set of changed aggregates and the result
    """
    difficulty = report.difficulty
    puzzle_id = report.puzzle_id
    previous = snapshot.records.get(difficulty)

    attempt_number = (previous.attempts if previous is not None else 0) + 1
    hint_ever = report.hint_used or (previous is not None and previous.hint_used)
    clean_win = report.won and not hint_ever

    # Reported on every attempt; stored on the record only by a clean win
    first_try = attempt_number == 1 and report.user_moves <= report.bot_moves and not hint_ever
    first_to_beat_bot = (
        EloScorer.beats_bot_by_margin(difficulty, report.user_moves, report.bot_moves)
        and (snapshot.lowest_other_moves is None or snapshot.lowest_other_moves > report.user_moves)
    )

    changed = {CHANGED_PUZZLE, CHANGED_RECORD, CHANGED_LEVEL_AGNOSTIC}
    elo = None
    improved_moves = None

    if clean_win:
        record, elo, improved = _clean_win(previous, report, attempt_number, first_try, first_to_beat_bot)
        if improved:
            improved_moves = record.lowest_moves
    else:
        record = _count_only(previous, attempt_number, hint_ever)

    # Level-agnostic counters move on every attempt
    level_agnostic = snapshot.level_agnostic
    level_agnostic = replace(
        level_agnostic,
        moves=level_agnostic.moves + report.user_moves,
        puzzle_attempts=level_agnostic.puzzle_attempts + 1,
    )

    if report.won:
        last_completed = dict(level_agnostic.last_completed)
        puzzle_solved = level_agnostic.puzzle_solved
        if last_completed.get(difficulty) != puzzle_id:
            puzzle_solved += 1
            last_completed[difficulty] = puzzle_id
        level_agnostic = replace(level_agnostic, puzzle_solved=puzzle_solved, last_completed=last_completed)

    difficulty_aggregate = snapshot.difficulty_aggregate

    if clean_win:
        level_agnostic = replace(
            level_agnostic,
            completion_streak=advance_streak(level_agnostic.completion_streak, puzzle_id, True),
        )

        # The per-difficulty score above feeds the day total
        records = dict(snapshot.records)
        records[difficulty] = record
        day_total = _day_elo_total(records)
        stored = level_agnostic.elo_score_by_day.get(puzzle_id)
        if not is_countable_number(stored) or day_total > stored:
            elo_by_day = dict(level_agnostic.elo_score_by_day)
            elo_by_day[puzzle_id] = day_total
            aggregates = compute_elo_aggregates(elo_by_day, today)
            level_agnostic = replace(
                level_agnostic,
                elo_score_by_day=elo_by_day,
                elo_score_all_time=aggregates.all_time,
                elo_score_last_30=aggregates.last_30,
                elo_score_last_7=aggregates.last_7,
            )

        tied = report.user_moves <= report.bot_moves
        beaten = report.user_moves < report.bot_moves

        goals_achieved = difficulty_aggregate.goals_achieved
        last_goal_achieved_date = difficulty_aggregate.last_goal_achieved_date
        if tied and last_goal_achieved_date != puzzle_id:
            goals_achieved += 1
            last_goal_achieved_date = puzzle_id

        goals_beaten = difficulty_aggregate.goals_beaten
        last_goal_beaten_date = difficulty_aggregate.last_goal_beaten_date
        if beaten and last_goal_beaten_date != puzzle_id:
            goals_beaten += 1
            last_goal_beaten_date = puzzle_id

        difficulty_aggregate = DifficultyAggregateState(
            first_try_streak=advance_streak(difficulty_aggregate.first_try_streak, puzzle_id, first_try),
            tie_bot_streak=advance_streak(difficulty_aggregate.tie_bot_streak, puzzle_id, tied),
            goals_achieved=goals_achieved,
            last_goal_achieved_date=last_goal_achieved_date,
            goals_beaten=goals_beaten,
            last_goal_beaten_date=last_goal_beaten_date,
        )
        changed.add(CHANGED_DIFFICULTY)

    return AttemptTransition(
        total_attempts=snapshot.total_attempts + 1,
        record=record,
        level_agnostic=level_agnostic,
        difficulty_aggregate=difficulty_aggregate,
        changed=frozenset(changed),
        result=AttemptResult(first_try=first_try, first_to_beat_bot=first_to_beat_bot, elo=elo),
        improved_moves=improved_moves,
    )
