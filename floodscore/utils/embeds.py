"""
Shared embed builders for the FloodScore Discord bot.
"""

from typing import Dict, Optional

import discord

from floodscore.constants import UIConstants
from floodscore.data_models.attempt import AttemptReport, AttemptResult
from floodscore.data_models.leaderboard import LeaderboardEntry, LeaderboardResponse
from floodscore.data_models.stats import DailyScoreStats, PersonalStats, WinModalStats
from floodscore.database.models import Difficulty


def _format_value(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return f"{value:,}"
    return f"{value:,.1f}"


def _format_entry(entry: LeaderboardEntry) -> str:
    line = f"**#{entry.rank}** {entry.display_name}: {_format_value(entry.value)}"
    if entry.is_current:
        line += f" {UIConstants.FIRE_EMOJI}"
    return line


def build_leaderboard_embed(title: str, response: LeaderboardResponse) -> discord.Embed:
    """
    Build a leaderboard embed.

    Args:
        title: Human-readable leaderboard name
        response: Reader response with the top entries and the caller's own row

    Returns:
        Formatted Discord embed ready for display
    """
    embed = discord.Embed(
        title=f"{UIConstants.TROPHY_EMOJI} {title}",
        color=UIConstants.GOLD_RANK_COLOR if response.entries else UIConstants.DEFAULT_EMBED_COLOR
    )

    if response.entries:
        embed.description = "\n".join(_format_entry(entry) for entry in response.entries)
    else:
        embed.description = "No ranked players yet."

    if response.requester_entry:
        embed.add_field(name="Your Rank", value=_format_entry(response.requester_entry), inline=False)

    footer = f"{response.total_entries:,} ranked players"
    if response.updated_at and response.from_snapshot:
        footer += f" • updated {response.updated_at.strftime('%Y-%m-%d %H:%M')} UTC"
    elif not response.from_snapshot:
        footer += " • live"
    embed.set_footer(text=footer)
    return embed


def _format_win_streaks(difficulty: Difficulty, win_stats: WinModalStats) -> str:
    difficulty_stats = win_stats.difficulties[difficulty]
    return (
        f"{UIConstants.FIRE_EMOJI} Puzzles completed: {win_stats.current_puzzle_completed_streak}\n"
        f"Goal achieved ({difficulty.value}): {difficulty_stats.current_tie_bot_streak}\n"
        f"First try ({difficulty.value}): {difficulty_stats.current_first_try_streak}"
    )


def build_attempt_embed(report: AttemptReport, result: AttemptResult,
                        win_stats: Optional[WinModalStats] = None) -> discord.Embed:
    if not report.won:
        embed = discord.Embed(
            title=f"Attempt recorded: {report.puzzle_id} ({report.difficulty.value})",
            description="Keep going, every attempt counts toward your totals.",
            color=UIConstants.DEFAULT_EMBED_COLOR
        )
        return embed

    embed = discord.Embed(
        title=f"Solved {report.puzzle_id} ({report.difficulty.value}) in {report.user_moves} moves",
        color=UIConstants.SUCCESS_COLOR
    )
    embed.add_field(name="Par", value=str(report.bot_moves), inline=True)
    embed.add_field(name="Score", value=str(result.elo) if result.elo is not None else "n/a", inline=True)

    badges = []
    if result.first_try:
        badges.append("First try!")
    if result.first_to_beat_bot:
        badges.append(f"{UIConstants.ROBOT_EMOJI} First to beat the bot!")
    if badges:
        embed.add_field(name="Badges", value="\n".join(badges), inline=False)
    if win_stats is not None:
        embed.add_field(name="Streaks", value=_format_win_streaks(report.difficulty, win_stats), inline=False)
    if report.hint_used:
        embed.set_footer(text="A hint was used, so this solve does not count toward scores or streaks.")
    return embed


def build_personal_stats_embed(display_name: str, puzzle_id: str, difficulty: Difficulty,
                               stats: PersonalStats) -> discord.Embed:
    embed = discord.Embed(
        title=f"{display_name}: {puzzle_id} ({difficulty.value})",
        color=UIConstants.DEFAULT_EMBED_COLOR
    )
    today = stats.today
    embed.add_field(
        name="Today",
        value=(
            f"**Day Score:** {today.day_elo if today.day_elo is not None else '-'}\n"
            f"**Attempts:** {today.attempts}\n"
            f"**Fewest Moves:** {today.fewest_moves if today.fewest_moves is not None else '-'}\n"
            f"**Attempts to Tie Par:** {today.attempts_to_tie_goal or '-'}\n"
            f"**Attempts to Beat Par:** {today.attempts_to_beat_goal or '-'}"
        ),
        inline=True
    )
    all_time = stats.all_time
    embed.add_field(
        name="All Time",
        value=(
            f"**Puzzle Streak:** {all_time.current_puzzle_streak}\n"
            f"**Goal Streak:** {all_time.current_goal_streak}\n"
            f"**First-Try Streak:** {all_time.current_first_try_streak}\n"
            f"**Games Played:** {all_time.games_played:,}\n"
            f"**Puzzles Solved:** {all_time.puzzles_solved:,}"
        ),
        inline=True
    )
    return embed


def build_daily_stats_embed(puzzle_id: str, stats: Dict[Difficulty, DailyScoreStats]) -> discord.Embed:
    embed = discord.Embed(title=f"Daily scores: {puzzle_id}", color=UIConstants.DEFAULT_EMBED_COLOR)
    for difficulty, difficulty_stats in stats.items():
        if difficulty_stats.total_players == 0:
            value = "No scores yet."
        else:
            value = (
                f"**Best:** {difficulty_stats.lowest_score} "
                f"({difficulty_stats.players_with_lowest_score} player(s))\n"
                f"**Players:** {difficulty_stats.total_players}\n"
                f"**Average:** {difficulty_stats.average_score:.1f}"
            )
        embed.add_field(name=difficulty.value.title(), value=value, inline=True)
    return embed
