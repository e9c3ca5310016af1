"""
Leaderboard dimensions and the shared ranking algorithm.

Both the periodic builder and the reader's live fallback rank users through
RankingUtility so a snapshot and a live scan always agree.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from floodscore.constants import LeaderboardConstants
from floodscore.data_models.aggregates import LevelAgnosticState, DifficultyAggregateState
from floodscore.data_models.leaderboard import RankedEntry, RankingResult
from floodscore.database.models import Difficulty
from floodscore.utils.elo import compute_elo_aggregates, is_countable_number
from floodscore.utils.exceptions import InvalidLeaderboardQueryError

CATEGORY_SCORE = 'score'
CATEGORY_GOALS = 'goals'
CATEGORY_STREAKS = 'streaks'

# Candidate: (user_id, value, current_value)
Candidate = Tuple[str, object, Optional[object]]


@dataclass(frozen=True)
class LeaderboardDimension:
    """One ranked metric, identified by its snapshot key."""
    key: str
    category: str
    subcategory: str
    difficulty: Optional[Difficulty]
    value_field: str
    current_field: Optional[str] = None

    @property
    def is_score(self) -> bool:
        return self.category == CATEGORY_SCORE

    @property
    def reads_difficulty_aggregate(self) -> bool:
        return self.difficulty is not None


def _build_dimensions() -> Dict[str, LeaderboardDimension]:
    dimensions = [
        LeaderboardDimension('score_last7', CATEGORY_SCORE, 'last7', None, 'last_7'),
        LeaderboardDimension('score_last30', CATEGORY_SCORE, 'last30', None, 'last_30'),
        LeaderboardDimension('score_allTime', CATEGORY_SCORE, 'allTime', None, 'all_time'),
        LeaderboardDimension(
            'streaks_puzzleCompleted', CATEGORY_STREAKS, 'puzzleCompleted', None,
            'longest_puzzle_completed_streak', 'current_puzzle_completed_streak'
        ),
    ]
    for difficulty in Difficulty:
        suffix = difficulty.value
        dimensions.extend([
            LeaderboardDimension(f'goals_beaten_{suffix}', CATEGORY_GOALS, 'beaten', difficulty, 'goals_beaten'),
            LeaderboardDimension(f'goals_matched_{suffix}', CATEGORY_GOALS, 'matched', difficulty, 'goals_achieved'),
            LeaderboardDimension(
                f'streaks_firstTry_{suffix}', CATEGORY_STREAKS, 'firstTry', difficulty,
                'longest_first_try_streak', 'current_first_try_streak'
            ),
            LeaderboardDimension(
                f'streaks_goalAchieved_{suffix}', CATEGORY_STREAKS, 'goalAchieved', difficulty,
                'longest_tie_bot_streak', 'current_tie_bot_streak'
            ),
        ])
    return {dimension.key: dimension for dimension in dimensions}


DIMENSIONS: Dict[str, LeaderboardDimension] = _build_dimensions()

# category -> {lowercased subcategory: (canonical name, needs difficulty)}
_SUBCATEGORIES = {
    CATEGORY_SCORE: {'last7': ('last7', False), 'last30': ('last30', False), 'alltime': ('allTime', False)},
    CATEGORY_GOALS: {'beaten': ('beaten', True), 'matched': ('matched', True)},
    CATEGORY_STREAKS: {
        'firsttry': ('firstTry', True),
        'goalachieved': ('goalAchieved', True),
        'puzzlecompleted': ('puzzleCompleted', False),
    },
}


class RankingUtility:
    """Shared ranking logic for snapshots and live scans."""

    @staticmethod
    def all_dimensions() -> List[LeaderboardDimension]:
        return list(DIMENSIONS.values())

    @staticmethod
    def resolve_dimension(category: str, subcategory: str,
                          difficulty: Union[Difficulty, str, None] = None) -> LeaderboardDimension:
        """
        Validate a leaderboard query and return its dimension.

        Raises:
            InvalidLeaderboardQueryError: unknown category or subcategory, or a
                missing difficulty where one is required
        """
        category = (category or '').strip().lower()
        if category not in _SUBCATEGORIES:
            raise InvalidLeaderboardQueryError(f"Unknown leaderboard category '{category}'")

        lookup = _SUBCATEGORIES[category].get((subcategory or '').strip().lower())
        if lookup is None:
            valid = ', '.join(name for name, _ in _SUBCATEGORIES[category].values())
            raise InvalidLeaderboardQueryError(f"Subcategory for {category} must be one of: {valid}")

        canonical, needs_difficulty = lookup
        if not needs_difficulty:
            return DIMENSIONS[f'{category}_{canonical}']

        if difficulty is None or difficulty == '':
            raise InvalidLeaderboardQueryError(f"A difficulty is required for {category} {canonical}")
        try:
            difficulty = Difficulty.parse(difficulty)
        except ValueError:
            raise InvalidLeaderboardQueryError("Difficulty must be one of easy, medium or hard")
        return DIMENSIONS[f'{category}_{canonical}_{difficulty.value}']

    @staticmethod
    def candidate_value(dimension: LeaderboardDimension,
                        state: Union[LevelAgnosticState, DifficultyAggregateState],
                        today: date) -> Tuple[object, Optional[object]]:
        """
        Ranked value and current value for one user's aggregate.

        Score dimensions ignore the cached sums and recompute from the day map.
        """
        if dimension.is_score:
            aggregates = compute_elo_aggregates(state.elo_score_by_day, today)
            return getattr(aggregates, dimension.value_field), None

        fields = state.leaderboard_fields()
        current = fields.get(dimension.current_field) if dimension.current_field else None
        return fields.get(dimension.value_field), current

    @staticmethod
    def is_rankable(value) -> bool:
        """Zero, NaN and non-numeric values are left off the board."""
        return is_countable_number(value) and value != 0

    @staticmethod
    def rank_candidates(key: str, candidates: Iterable[Candidate],
                        updated_at: Optional[datetime] = None) -> RankingResult:
        """
        Rank candidates descending by value.

        Ties keep their scan order. Only the top SNAPSHOT_SIZE entries are kept
        in full; every ranked user gets a rank.
        """
        rankable = [
            (user_id, value, current)
            for user_id, value, current in candidates
            if RankingUtility.is_rankable(value)
        ]
        # sorted() is stable, including with reverse=True
        ranked = sorted(rankable, key=lambda candidate: candidate[1], reverse=True)

        entries = [
            RankedEntry(
                user_id=user_id,
                value=value,
                current_value=current if is_countable_number(current) else None,
            )
            for user_id, value, current in ranked[:LeaderboardConstants.SNAPSHOT_SIZE]
        ]
        user_ranks = {user_id: index + 1 for index, (user_id, _, _) in enumerate(ranked)}

        return RankingResult(
            key=key,
            entries=entries,
            user_ranks=user_ranks,
            total_entries=len(ranked),
            updated_at=updated_at,
        )
