"""FloodScore - attempt recording and leaderboard engine for the daily flood puzzle."""

__version__ = "1.0.0"
