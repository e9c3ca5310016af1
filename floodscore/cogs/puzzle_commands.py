"""
PuzzleCommands cog - attempt recording and personal statistics.

Provides the slash commands players use to record a solve, flag a hint and
look up their own and the board-wide numbers for a puzzle.
"""

import logging

import discord
from discord import app_commands
from discord.ext import commands

from floodscore.data_models.attempt import validate_attempt_payload
from floodscore.database.models import Difficulty
from floodscore.utils.embeds import (
    build_attempt_embed, build_daily_stats_embed, build_personal_stats_embed
)
from floodscore.utils.exceptions import (
    FloodScoreException, InvalidAttemptError, PermissionDeniedError, PuzzleNotFoundError
)
from floodscore.utils.time_parser import format_day_key, is_day_key, parse_day_key, today_utc

logger = logging.getLogger(__name__)

DIFFICULTY_CHOICES = [app_commands.Choice(name=d.value.title(), value=d.value) for d in Difficulty]


def _puzzle_id_or_today(puzzle_id) -> str:
    if not puzzle_id:
        return format_day_key(today_utc())
    if not is_day_key(puzzle_id) or parse_day_key(puzzle_id) is None:
        raise InvalidAttemptError("puzzle_id must be a date in YYYY-MM-DD format")
    return puzzle_id


class PuzzleCommands(commands.Cog):
    """Attempt recording and statistics commands."""

    def __init__(self, bot):
        self.bot = bot
        self.config = bot.config
        self.identity = bot.identity
        self.puzzles = bot.puzzles
        self.recorder = bot.attempt_recorder
        self.daily_scores = bot.daily_scores
        self.stats = bot.stats_service

    async def _remember_caller(self, interaction: discord.Interaction):
        try:
            await self.identity.remember_display_name(str(interaction.user.id), interaction.user.display_name)
        except Exception as e:
            logger.warning(f"Could not store display name for {interaction.user.id}: {e}")

    async def _win_stats(self, report):
        """Streak summary for the win reply. The attempt is already recorded, so a failure only drops it."""
        try:
            return await self.stats.get_win_modal_stats(report.user_id, report.puzzle_id)
        except Exception as e:
            logger.warning(f"Could not load win stats for {report.user_id} on {report.puzzle_id}: {e}")
            return None

    async def _send_error(self, interaction: discord.Interaction, error: Exception, command: str):
        if isinstance(error, FloodScoreException):
            if error.retryable:
                logger.warning(f"Retryable failure in {command} for {interaction.user.id}: {error}")
            await interaction.followup.send(error.user_message, ephemeral=True)
            return
        logger.error(f"Unexpected error in {command} for user {interaction.user.id}: {error}", exc_info=True)
        await interaction.followup.send("❌ An unexpected error occurred. Please try again later.", ephemeral=True)

    @app_commands.command(name="submit-puzzle", description="Record an attempt at a daily puzzle")
    @app_commands.describe(
        difficulty="Puzzle difficulty",
        moves="Number of moves you used",
        won="Whether you flooded the board",
        puzzle_id="Puzzle date (YYYY-MM-DD), defaults to today",
        hint_used="Whether you used a hint or revealed the solution"
    )
    @app_commands.choices(difficulty=DIFFICULTY_CHOICES)
    @app_commands.checks.cooldown(rate=10, per=60.0, key=lambda i: i.user.id)
    async def submit_puzzle(self, interaction: discord.Interaction, difficulty: app_commands.Choice[str],
                            moves: int, won: bool, puzzle_id: str = None, hint_used: bool = False):
        """Record a puzzle attempt."""
        await interaction.response.defer(ephemeral=True)
        await self._remember_caller(interaction)

        try:
            puzzle_id = _puzzle_id_or_today(puzzle_id)
            parsed_difficulty = Difficulty.parse(difficulty.value)
            par = await self.puzzles.get_par(puzzle_id, parsed_difficulty)
            if par is None:
                raise PuzzleNotFoundError(puzzle_id, parsed_difficulty.value)

            report = validate_attempt_payload(
                {
                    'puzzle_id': puzzle_id,
                    'difficulty': parsed_difficulty.value,
                    'user_moves': moves,
                    'bot_moves': par,
                    'won': won,
                    'hint_used': hint_used,
                },
                str(interaction.user.id)
            )
            result = await self.recorder.record_attempt(report)
            win_stats = await self._win_stats(report) if report.won else None
            await interaction.followup.send(embed=build_attempt_embed(report, result, win_stats), ephemeral=True)

        except Exception as e:
            await self._send_error(interaction, e, "submit-puzzle")

    @app_commands.command(name="mark-hint", description="Flag that you used a hint on a puzzle")
    @app_commands.describe(difficulty="Puzzle difficulty", puzzle_id="Puzzle date (YYYY-MM-DD), defaults to today")
    @app_commands.choices(difficulty=DIFFICULTY_CHOICES)
    async def mark_hint(self, interaction: discord.Interaction, difficulty: app_commands.Choice[str],
                        puzzle_id: str = None):
        """Mark a puzzle difficulty as solved with help."""
        await interaction.response.defer(ephemeral=True)
        try:
            puzzle_id = _puzzle_id_or_today(puzzle_id)
            parsed_difficulty = Difficulty.parse(difficulty.value)
            await self.recorder.mark_hint_used(str(interaction.user.id), puzzle_id, parsed_difficulty)
            await interaction.followup.send(
                f"Hint recorded for {puzzle_id} ({parsed_difficulty.value}). "
                "Solves on this difficulty will no longer count toward scores or streaks.",
                ephemeral=True
            )
        except Exception as e:
            await self._send_error(interaction, e, "mark-hint")

    @app_commands.command(name="puzzle-stats", description="Your stats for a puzzle")
    @app_commands.describe(difficulty="Puzzle difficulty", puzzle_id="Puzzle date (YYYY-MM-DD), defaults to today")
    @app_commands.choices(difficulty=DIFFICULTY_CHOICES)
    async def puzzle_stats(self, interaction: discord.Interaction, difficulty: app_commands.Choice[str],
                           puzzle_id: str = None):
        """Show personal statistics."""
        await interaction.response.defer(ephemeral=True)
        await self._remember_caller(interaction)
        try:
            puzzle_id = _puzzle_id_or_today(puzzle_id)
            parsed_difficulty = Difficulty.parse(difficulty.value)
            stats = await self.stats.get_personal_stats(str(interaction.user.id), puzzle_id, parsed_difficulty)
            embed = build_personal_stats_embed(interaction.user.display_name, puzzle_id, parsed_difficulty, stats)
            await interaction.followup.send(embed=embed, ephemeral=True)
        except Exception as e:
            await self._send_error(interaction, e, "puzzle-stats")

    @app_commands.command(name="daily-stats", description="Board-wide scores for a puzzle")
    @app_commands.describe(puzzle_id="Puzzle date (YYYY-MM-DD), defaults to today")
    async def daily_stats(self, interaction: discord.Interaction, puzzle_id: str = None):
        """Show lowest and average scores per difficulty."""
        await interaction.response.defer()
        try:
            puzzle_id = _puzzle_id_or_today(puzzle_id)
            stats = await self.daily_scores.daily_score_stats(puzzle_id)
            await interaction.followup.send(embed=build_daily_stats_embed(puzzle_id, stats))
        except Exception as e:
            await self._send_error(interaction, e, "daily-stats")

    @app_commands.command(name="admin-set-par", description="Set the bot move count for a puzzle (admin only)")
    @app_commands.describe(
        puzzle_id="Puzzle date (YYYY-MM-DD)",
        difficulty="Puzzle difficulty",
        moves="Par move count"
    )
    @app_commands.choices(difficulty=DIFFICULTY_CHOICES)
    async def admin_set_par(self, interaction: discord.Interaction, puzzle_id: str,
                            difficulty: app_commands.Choice[str], moves: app_commands.Range[int, 1, 1000]):
        """Register the par for a puzzle difficulty."""
        await interaction.response.defer(ephemeral=True)
        try:
            if not self.config.is_admin(str(interaction.user.id)):
                raise PermissionDeniedError("admin-set-par")
            puzzle_id = _puzzle_id_or_today(puzzle_id)
            parsed_difficulty = Difficulty.parse(difficulty.value)
            await self.puzzles.set_par(puzzle_id, parsed_difficulty, moves)
            await interaction.followup.send(
                f"✅ Par for {puzzle_id} ({parsed_difficulty.value}) set to {moves}.", ephemeral=True
            )
        except Exception as e:
            await self._send_error(interaction, e, "admin-set-par")


async def setup(bot):
    await bot.add_cog(PuzzleCommands(bot))
