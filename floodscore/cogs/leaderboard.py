"""
Leaderboard cog - ranked boards and the periodic rebuild.

Serves leaderboard reads and runs the background task that rebuilds every
snapshot on a fixed cadence. Admins can force a rebuild.
"""

import logging

import discord
from discord import app_commands
from discord.ext import commands, tasks

from floodscore.database.models import Difficulty
from floodscore.utils.embeds import build_leaderboard_embed
from floodscore.utils.exceptions import FloodScoreException, PermissionDeniedError

logger = logging.getLogger(__name__)

CATEGORY_CHOICES = [
    app_commands.Choice(name="Score", value="score"),
    app_commands.Choice(name="Goals", value="goals"),
    app_commands.Choice(name="Streaks", value="streaks"),
]

SUBCATEGORY_CHOICES = [
    app_commands.Choice(name="Score: last 7 days", value="last7"),
    app_commands.Choice(name="Score: last 30 days", value="last30"),
    app_commands.Choice(name="Score: all time", value="allTime"),
    app_commands.Choice(name="Goals: beaten par", value="beaten"),
    app_commands.Choice(name="Goals: matched par", value="matched"),
    app_commands.Choice(name="Streaks: first try", value="firstTry"),
    app_commands.Choice(name="Streaks: goal achieved", value="goalAchieved"),
    app_commands.Choice(name="Streaks: puzzle completed", value="puzzleCompleted"),
]

DIFFICULTY_CHOICES = [app_commands.Choice(name=d.value.title(), value=d.value) for d in Difficulty]


class LeaderboardCog(commands.Cog):
    """Leaderboard reads and scheduled rebuilds"""

    def __init__(self, bot):
        self.bot = bot
        self.config = bot.config
        self.reader = bot.leaderboard_reader
        self.builder = bot.leaderboard_builder
        self.rebuild_leaderboards.change_interval(hours=self.config.leaderboard_rebuild_hours)

    @commands.Cog.listener()
    async def on_ready(self):
        """Start the rebuild task once the bot is ready"""
        if not self.rebuild_leaderboards.is_running():
            self.rebuild_leaderboards.start()
            logger.info("LeaderboardCog: Rebuild task started")

    def cog_unload(self):
        """Stop background tasks when cog is unloaded"""
        self.rebuild_leaderboards.cancel()
        logger.info("LeaderboardCog: Rebuild task stopped")

    @tasks.loop(hours=4)
    async def rebuild_leaderboards(self):
        """Rebuild every leaderboard snapshot"""
        try:
            totals = await self.builder.rebuild_all()
            logger.info(f"Scheduled rebuild complete: {sum(totals.values())} ranked rows across {len(totals)} boards")
        except Exception as e:
            logger.error(f"Error in leaderboard rebuild task: {e}", exc_info=True)

    @rebuild_leaderboards.before_loop
    async def before_rebuild(self):
        """Wait for bot to be ready before starting the rebuild task"""
        await self.bot.wait_until_ready()

    @app_commands.command(name="leaderboard", description="Show a FloodScore leaderboard")
    @app_commands.describe(
        category="Leaderboard category",
        subcategory="What to rank by",
        difficulty="Difficulty (required for goals, first-try and goal-achieved streaks)"
    )
    @app_commands.choices(category=CATEGORY_CHOICES, subcategory=SUBCATEGORY_CHOICES, difficulty=DIFFICULTY_CHOICES)
    async def leaderboard(self, interaction: discord.Interaction, category: app_commands.Choice[str],
                          subcategory: app_commands.Choice[str], difficulty: app_commands.Choice[str] = None):
        """Show the top players plus your own rank."""
        await interaction.response.defer()
        try:
            response = await self.reader.get_leaderboard(
                category.value,
                subcategory.value,
                difficulty.value if difficulty else None,
                requester_id=str(interaction.user.id),
            )
            title = subcategory.name
            if difficulty:
                title += f" ({difficulty.name})"
            await interaction.followup.send(embed=build_leaderboard_embed(title, response))

        except FloodScoreException as e:
            await interaction.followup.send(e.user_message, ephemeral=True)
        except Exception as e:
            logger.error(f"Unexpected error reading leaderboard for {interaction.user.id}: {e}", exc_info=True)
            await interaction.followup.send("❌ An unexpected error occurred. Please try again later.", ephemeral=True)

    @app_commands.command(name="admin-rebuild-leaderboards", description="Rebuild all leaderboards now (admin only)")
    async def admin_rebuild_leaderboards(self, interaction: discord.Interaction):
        """Force an immediate rebuild."""
        await interaction.response.defer(ephemeral=True)
        try:
            if not self.config.is_admin(str(interaction.user.id)):
                raise PermissionDeniedError("admin-rebuild-leaderboards")
            totals = await self.builder.rebuild_all()
            await interaction.followup.send(
                f"✅ Rebuilt {len(totals)} leaderboards ({sum(totals.values()):,} ranked rows).", ephemeral=True
            )
        except FloodScoreException as e:
            await interaction.followup.send(e.user_message, ephemeral=True)
        except Exception as e:
            logger.error(f"Manual leaderboard rebuild failed: {e}", exc_info=True)
            await interaction.followup.send("❌ Rebuild failed. Check the logs.", ephemeral=True)


async def setup(bot):
    await bot.add_cog(LeaderboardCog(bot))
