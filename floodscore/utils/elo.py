import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional

from floodscore.constants import ScoringConstants, LeaderboardConstants
from floodscore.database.models import Difficulty
from floodscore.utils.time_parser import is_day_shaped, parse_day_key

_MULTIPLIERS = {
    Difficulty.EASY: ScoringConstants.EASY_MULTIPLIER,
    Difficulty.MEDIUM: ScoringConstants.MEDIUM_MULTIPLIER,
    Difficulty.HARD: ScoringConstants.HARD_MULTIPLIER,
}

_TIE_BOT_BASES = {
    Difficulty.EASY: ScoringConstants.EASY_TIE_BOT_BASE,
    Difficulty.MEDIUM: ScoringConstants.MEDIUM_TIE_BOT_BASE,
    Difficulty.HARD: ScoringConstants.HARD_TIE_BOT_BASE,
}

_FIRST_TO_BEAT_BOT_BONUSES = {
    Difficulty.EASY: ScoringConstants.EASY_FIRST_TO_BEAT_BOT_BONUS,
    Difficulty.MEDIUM: ScoringConstants.MEDIUM_FIRST_TO_BEAT_BOT_BONUS,
    Difficulty.HARD: ScoringConstants.HARD_FIRST_TO_BEAT_BOT_BONUS,
}

_BEAT_BOT_MARGINS = {
    Difficulty.EASY: ScoringConstants.EASY_BEAT_BOT_MARGIN,
    Difficulty.MEDIUM: ScoringConstants.MEDIUM_BEAT_BOT_MARGIN,
    Difficulty.HARD: ScoringConstants.HARD_BEAT_BOT_MARGIN,
}


def is_countable_number(value: Any) -> bool:
    """True for ints and finite-or-infinite floats that are not NaN. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def round_half_away_from_zero(value: float) -> int:
    return int(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


class EloScorer:
    """Per-attempt score for a daily puzzle solve"""

    @staticmethod
    def difficulty_multiplier(difficulty: Difficulty) -> float:
        return _MULTIPLIERS[difficulty]

    @staticmethod
    def calculate_attempt_penalty(attempt_index: Optional[int]) -> float:
        """
        Penalty for needing more than one attempt.

        Args:
            attempt_index: 1-based attempt number the score is charged against

        Returns:
            Sum of -0.5/sqrt(k-1) for k = 2..min(attempt_index, 30); 0 for None or <= 1
        """
        if attempt_index is None or attempt_index <= 1:
            return 0.0

        capped = min(attempt_index, ScoringConstants.ATTEMPT_PENALTY_CAP)
        penalty = 0.0
        for k in range(2, capped + 1):
            penalty -= ScoringConstants.ATTEMPT_PENALTY_WEIGHT / math.sqrt(k - 1)
        return penalty

    @staticmethod
    def penalty_attempt_index(attempt_to_beat_bot: Optional[int],
                              attempt_to_achieve_bot: Optional[int],
                              win_attempt: Optional[int]) -> Optional[int]:
        """Attempt index the penalty is charged against: beat, else achieve, else win."""
        for index in (attempt_to_beat_bot, attempt_to_achieve_bot, win_attempt):
            if index is not None:
                return index
        return None

    @staticmethod
    def calculate_elo_score(difficulty: Difficulty, bot_moves: int, user_moves: int,
                            win_attempt: Optional[int] = None,
                            penalty_attempt: Optional[int] = None,
                            is_first_to_beat_bot: bool = False) -> int:
        """
        Calculate the integer score for one attempt

        Args:
            difficulty: Puzzle difficulty
            bot_moves: Par move count
            user_moves: Player's move count
            win_attempt: Attempt number of the win, None when not won
            penalty_attempt: Attempt number the penalty is charged against
            is_first_to_beat_bot: Whether this is the first player to beat the bot

        Returns:
            Score rounded half away from zero
        """
        score = 0.0

        if win_attempt is not None and win_attempt >= 1:
            score += ScoringConstants.WIN_BONUS * EloScorer.difficulty_multiplier(difficulty)

        if user_moves <= bot_moves:
            score += _TIE_BOT_BASES[difficulty] * (bot_moves - user_moves + 1)

        score += EloScorer.calculate_attempt_penalty(penalty_attempt)

        if is_first_to_beat_bot:
            score += _FIRST_TO_BEAT_BOT_BONUSES[difficulty]

        return round_half_away_from_zero(score)

    @staticmethod
    def beats_bot_by_margin(difficulty: Difficulty, user_moves: int, bot_moves: int) -> bool:
        """
        Whether a move count beats par by the margin the difficulty demands

        Hard needs fewer moves than par, Medium at least two fewer, Easy at least three fewer.
        """
        return user_moves < bot_moves - _BEAT_BOT_MARGINS[difficulty]


def qualifies_for_best_score_notification(difficulty: Difficulty, user_score: Optional[int],
                                          algo_score: Optional[int]) -> bool:
    """Whether a new board-wide best score is worth notifying players about."""
    if not is_countable_number(user_score) or not is_countable_number(algo_score):
        return False
    return EloScorer.beats_bot_by_margin(difficulty, user_score, algo_score)


@dataclass(frozen=True)
class EloAggregates:
    all_time: float = 0
    last_30: float = 0
    last_7: float = 0


def compute_elo_aggregates(elo_by_day: Optional[Mapping[str, Any]], today: date) -> EloAggregates:
    """
    Rolling sums over a day-keyed score map.

    Keys must split into exactly three '-' separated parts to count at all.
    Those that also parse as calendar days count toward the 30 and 7 day
    windows (inclusive of today, UTC). Non-numeric and NaN values are skipped.
    """
    if not elo_by_day:
        return EloAggregates()

    last_30_start = today - timedelta(days=LeaderboardConstants.LAST_30_DAYS - 1)
    last_7_start = today - timedelta(days=LeaderboardConstants.LAST_7_DAYS - 1)

    all_time = last_30 = last_7 = 0
    for key, value in elo_by_day.items():
        if not is_countable_number(value) or not is_day_shaped(key):
            continue
        all_time += value

        day = parse_day_key(key)
        if day is None:
            continue
        if day >= last_30_start:
            last_30 += value
        if day >= last_7_start:
            last_7 += value

    return EloAggregates(all_time=all_time, last_30=last_30, last_7=last_7)
