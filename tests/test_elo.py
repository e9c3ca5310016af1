"""Tests for the per-attempt score formula and the rolling score windows."""

import math

import pytest

from floodscore.database.models import Difficulty
from floodscore.utils.elo import (
    EloScorer, compute_elo_aggregates, qualifies_for_best_score_notification,
    round_half_away_from_zero
)

from conftest import TODAY


class TestAttemptPenalty:
    @pytest.mark.parametrize("attempt_index", [None, 0, 1])
    def test_no_penalty_for_first_attempt(self, attempt_index):
        assert EloScorer.calculate_attempt_penalty(attempt_index) == 0.0

    def test_second_and_third_attempts(self):
        assert EloScorer.calculate_attempt_penalty(2) == pytest.approx(-0.5)
        assert EloScorer.calculate_attempt_penalty(3) == pytest.approx(-0.5 - 0.5 / math.sqrt(2))
        assert EloScorer.calculate_attempt_penalty(3) == pytest.approx(-0.8536, abs=1e-4)

    def test_penalty_is_flat_after_thirty_attempts(self):
        capped = EloScorer.calculate_attempt_penalty(30)
        assert EloScorer.calculate_attempt_penalty(31) == capped
        assert EloScorer.calculate_attempt_penalty(500) == capped

    def test_penalty_never_increases(self):
        penalties = [EloScorer.calculate_attempt_penalty(n) for n in range(1, 45)]
        assert all(later <= earlier for earlier, later in zip(penalties, penalties[1:]))


class TestEloScore:
    def test_hard_tie_on_first_attempt(self):
        assert EloScorer.calculate_elo_score(Difficulty.HARD, 10, 10, win_attempt=1, penalty_attempt=1) == 400

    def test_hard_beat_by_two(self):
        assert EloScorer.calculate_elo_score(Difficulty.HARD, 10, 8, win_attempt=1, penalty_attempt=1) == 800

    def test_easy_beat_by_two(self):
        assert EloScorer.calculate_elo_score(Difficulty.EASY, 10, 8, win_attempt=1, penalty_attempt=1) == 190

    def test_medium_tie_on_third_attempt_is_penalised(self):
        # 150 + 60 - 0.8536 rounds to 209
        assert EloScorer.calculate_elo_score(Difficulty.MEDIUM, 10, 10, win_attempt=3, penalty_attempt=3) == 209

    def test_hard_beat_by_two_bonus_breakdown(self):
        assert EloScorer.calculate_elo_score(Difficulty.HARD, 10, 8) == 600
        assert EloScorer.calculate_elo_score(
            Difficulty.HARD, 10, 8, win_attempt=1, penalty_attempt=1, is_first_to_beat_bot=True
        ) == 1000

    def test_first_to_beat_bot_bonus(self):
        plain = EloScorer.calculate_elo_score(Difficulty.HARD, 10, 9, win_attempt=1)
        first = EloScorer.calculate_elo_score(Difficulty.HARD, 10, 9, win_attempt=1, is_first_to_beat_bot=True)
        assert first - plain == 200

        plain = EloScorer.calculate_elo_score(Difficulty.EASY, 10, 7, win_attempt=1)
        first = EloScorer.calculate_elo_score(Difficulty.EASY, 10, 7, win_attempt=1, is_first_to_beat_bot=True)
        assert first - plain == 50

    def test_win_over_par_gets_only_the_win_bonus(self):
        assert EloScorer.calculate_elo_score(Difficulty.MEDIUM, 10, 14, win_attempt=1) == 150

    def test_no_win_and_over_par_scores_zero(self):
        assert EloScorer.calculate_elo_score(Difficulty.HARD, 10, 12) == 0

    def test_tie_bonus_is_not_scaled_by_difficulty(self):
        score = EloScorer.calculate_elo_score(Difficulty.EASY, 10, 10)
        assert score == 30

    def test_penalty_index_priority(self):
        assert EloScorer.penalty_attempt_index(4, 3, 2) == 4
        assert EloScorer.penalty_attempt_index(None, 3, 2) == 3
        assert EloScorer.penalty_attempt_index(None, None, 2) == 2
        assert EloScorer.penalty_attempt_index(None, None, None) is None

    @pytest.mark.parametrize("value, expected", [(2.5, 3), (-2.5, -3), (0.49, 0), (1.5, 2), (-0.5, -1)])
    def test_rounding_is_half_away_from_zero(self, value, expected):
        assert round_half_away_from_zero(value) == expected


class TestBeatBotMargins:
    @pytest.mark.parametrize("difficulty, moves, expected", [
        (Difficulty.HARD, 9, True),
        (Difficulty.HARD, 10, False),
        (Difficulty.MEDIUM, 8, True),
        (Difficulty.MEDIUM, 9, False),
        (Difficulty.EASY, 7, True),
        (Difficulty.EASY, 8, False),
    ])
    def test_margin_by_difficulty(self, difficulty, moves, expected):
        assert EloScorer.beats_bot_by_margin(difficulty, moves, 10) is expected
        assert qualifies_for_best_score_notification(difficulty, moves, 10) is expected

    def test_notification_needs_both_scores(self):
        assert qualifies_for_best_score_notification(Difficulty.HARD, 5, None) is False
        assert qualifies_for_best_score_notification(Difficulty.HARD, None, 10) is False


class TestEloAggregates:
    def test_windows_use_utc_day_boundaries(self):
        elo_by_day = {
            '2024-03-10': 100,   # today
            '2024-03-04': 10,    # first day of the 7 day window
            '2024-03-03': 20,    # 30 day window only
            '2024-02-10': 5,     # first day of the 30 day window
            '2024-02-09': 7,     # all time only
        }
        aggregates = compute_elo_aggregates(elo_by_day, TODAY)
        assert aggregates.all_time == 142
        assert aggregates.last_30 == 135
        assert aggregates.last_7 == 110

    def test_malformed_keys_and_values(self):
        elo_by_day = {
            '2024-03-10': 100,
            '2024-02-30': 3,          # three parts but not a real day: all time only
            'bogus': 1000,            # not three parts: ignored
            '2024-03-09': float('nan'),
            '2024-03-08': 'abc',
            '2024-03-07': True,
        }
        aggregates = compute_elo_aggregates(elo_by_day, TODAY)
        assert aggregates.all_time == 103
        assert aggregates.last_30 == 100
        assert aggregates.last_7 == 100

    def test_empty_map(self):
        aggregates = compute_elo_aggregates({}, TODAY)
        assert (aggregates.all_time, aggregates.last_30, aggregates.last_7) == (0, 0, 0)
