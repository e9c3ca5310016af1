"""
Engine-wide constants for FloodScore.

This module collects the scoring weights, leaderboard sizes and UI values used
throughout the codebase so that tuning them happens in one place.
"""


class ScoringConstants:
    """Constants for the per-attempt Elo score."""

    # Difficulty multipliers applied to the win bonus
    EASY_MULTIPLIER = 0.5
    MEDIUM_MULTIPLIER = 0.75
    HARD_MULTIPLIER = 1.0

    # Flat bonus for winning, scaled by the difficulty multiplier
    WIN_BONUS = 200

    # Per-move bonus for tying or beating the bot (not scaled by the multiplier)
    EASY_TIE_BOT_BASE = 30
    MEDIUM_TIE_BOT_BASE = 60
    HARD_TIE_BOT_BASE = 200

    # Bonus for being the first player to beat the bot on a puzzle
    EASY_FIRST_TO_BEAT_BOT_BONUS = 50
    MEDIUM_FIRST_TO_BEAT_BOT_BONUS = 100
    HARD_FIRST_TO_BEAT_BOT_BONUS = 200

    # Attempt penalty: -0.5 / sqrt(k - 1) for k = 2..cap
    ATTEMPT_PENALTY_WEIGHT = 0.5
    ATTEMPT_PENALTY_CAP = 30

    # Moves a player must undercut the bot by to "beat" it
    EASY_BEAT_BOT_MARGIN = 2
    MEDIUM_BEAT_BOT_MARGIN = 1
    HARD_BEAT_BOT_MARGIN = 0


class LeaderboardConstants:
    """Constants for leaderboard snapshots and reads."""

    # Entries stored in each snapshot
    SNAPSHOT_SIZE = 100

    # Entries returned to a reader
    TOP_DISPLAY = 10

    # Maximum ids per display-name lookup
    IDENTITY_BATCH_SIZE = 100

    # Rolling windows, inclusive of today
    LAST_7_DAYS = 7
    LAST_30_DAYS = 30


class RetryConstants:
    """Backoff schedule for optimistic transaction retries."""

    BASE_DELAY_SECONDS = 0.1
    MAX_DELAY_SECONDS = 1.0


class UIConstants:
    """Constants for Discord UI elements."""

    # Embed colors
    DEFAULT_EMBED_COLOR = 0x3498db  # Blue
    GOLD_RANK_COLOR = 0xffd700     # Gold for #1 ranked players
    ERROR_COLOR = 0xe74c3c         # Red for errors
    SUCCESS_COLOR = 0x2ecc71       # Green for success

    TROPHY_EMOJI = "🏆"
    FIRE_EMOJI = "🔥"
    ROBOT_EMOJI = "🤖"
