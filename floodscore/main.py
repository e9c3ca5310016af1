import asyncio
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from floodscore.config import Config
from floodscore.database.database import Database
from floodscore.services.attempt_recorder import AttemptRecorder
from floodscore.services.daily_scores import BestScoreChange, DailyScoreMirror
from floodscore.services.identity import IdentityResolver
from floodscore.services.leaderboard_builder import LeaderboardBuilder
from floodscore.services.leaderboard_reader import LeaderboardReader
from floodscore.services.puzzles import PuzzleReferenceProvider
from floodscore.services.stats import PersonalStatsService
from floodscore.utils.logger import setup_logger


class FloodScoreBot(commands.Bot):
    def __init__(self, config: Config):
        intents = discord.Intents.default()

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None
        )

        # Attach app command error handler
        self.tree.on_error = self.on_app_command_error

        self.config = config
        self.logger = setup_logger('floodscore', debug=config.debug)

        self.db: Optional[Database] = None
        self.identity: Optional[IdentityResolver] = None
        self.puzzles: Optional[PuzzleReferenceProvider] = None
        self.daily_scores: Optional[DailyScoreMirror] = None
        self.attempt_recorder: Optional[AttemptRecorder] = None
        self.leaderboard_builder: Optional[LeaderboardBuilder] = None
        self.leaderboard_reader: Optional[LeaderboardReader] = None
        self.stats_service: Optional[PersonalStatsService] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        self.logger.info("Setting up FloodScore...")

        # Initialize database
        self.db = Database(self.config)
        await self.db.initialize()

        self._create_services()

        if not self.config.admin_user_ids:
            self.logger.warning("ADMIN_USER_IDS is empty; admin commands are disabled")

        # Load cogs
        await self.load_cogs()

        # Sync slash commands
        await self._sync_commands()

        self.logger.info("FloodScore setup complete!")

    def _create_services(self):
        session_factory = self.db.session_factory
        config = self.config

        self.identity = IdentityResolver(session_factory)
        self.puzzles = PuzzleReferenceProvider(session_factory)
        self.daily_scores = DailyScoreMirror(
            session_factory,
            max_retries=config.transaction_max_retries,
            on_best_score_changed=self._on_best_score_changed,
        )
        self.attempt_recorder = AttemptRecorder(
            session_factory,
            self.daily_scores,
            self.identity,
            max_retries=config.transaction_max_retries,
            timeout=config.transaction_timeout_seconds,
        )
        self.leaderboard_builder = LeaderboardBuilder(
            session_factory, timeout=config.leaderboard_rebuild_timeout_seconds
        )
        self.leaderboard_reader = LeaderboardReader(session_factory, self.leaderboard_builder, self.identity)
        self.stats_service = PersonalStatsService(session_factory)

    async def _on_best_score_changed(self, change: BestScoreChange):
        """Hand qualifying best scores to the notification pipeline."""
        if await self.puzzles.should_notify_best_score(change.puzzle_id, change.difficulty, change.user_score):
            self.logger.info(
                f"Best score notification queued: {change.user_name} scored {change.user_score} "
                f"on {change.puzzle_id} ({change.difficulty.value})"
            )

    async def load_cogs(self):
        """Load all cogs"""
        cogs_to_load = [
            'floodscore.cogs.puzzle_commands',
            'floodscore.cogs.leaderboard',
        ]

        for cog in cogs_to_load:
            try:
                await self.load_extension(cog)
                self.logger.info(f"Loaded cog: {cog}")
            except Exception as e:
                self.logger.error(f"Failed to load cog {cog}: {e}", exc_info=True)

    async def _sync_commands(self):
        """Sync slash commands with Discord"""
        if not self.tree.get_commands():
            self.logger.warning("No application commands found to sync. Check for cog loading errors.")
            return

        try:
            guild_ids = self.config.discord_guild_ids

            if guild_ids:
                # Guild-specific sync (instant updates)
                total_synced = 0
                for guild_id in guild_ids:
                    try:
                        guild = discord.Object(id=guild_id)
                        self.tree.copy_global_to(guild=guild)
                        synced = await self.tree.sync(guild=guild)
                        self.logger.info(f"Successfully synced {len(synced)} command(s) to guild {guild_id}")
                        total_synced += len(synced)
                    except discord.errors.Forbidden:
                        self.logger.error(f"Permission error syncing to guild {guild_id}", exc_info=True)
                    except discord.errors.HTTPException as e:
                        self.logger.error(f"HTTP error syncing to guild {guild_id}. Status: {e.status}", exc_info=True)

                self.logger.info(f"Multi-guild sync complete: {total_synced} total command instances deployed")
            else:
                # Global sync (can take up to 1 hour to propagate)
                synced = await self.tree.sync()
                self.logger.info(f"Successfully synced {len(synced)} command(s) globally")
        except Exception as e:
            self.logger.error(f"Failed to sync commands: {e}", exc_info=True)

    async def on_ready(self):
        """Called when the bot is ready"""
        self.logger.info(f'{self.user} has connected to Discord!')
        self.logger.info(f'Bot is in {len(self.guilds)} guilds')

        await self.change_presence(activity=discord.Game(name="FloodScore | /leaderboard"))

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        """Global error handler for slash commands"""
        command_name = interaction.command.name if interaction.command else 'Unknown'

        if isinstance(error, app_commands.CommandOnCooldown):
            self.logger.info(f"Cooldown hit for '{command_name}' by user {interaction.user}")
            error_message = f"❌ Command is on cooldown. Try again in {error.retry_after:.2f} seconds."
        elif isinstance(error, app_commands.CheckFailure):
            self.logger.info(f"Permission denied for command '{command_name}' by user {interaction.user}")
            error_message = "❌ You don't have permission to use this command."
        else:
            self.logger.error(f"Error in app command '{command_name}': {error}", exc_info=True)
            error_message = "❌ An unexpected error occurred while processing your command."

        try:
            if interaction.response.is_done():
                await interaction.followup.send(error_message, ephemeral=True)
            else:
                await interaction.response.send_message(error_message, ephemeral=True)
        except Exception as e:
            self.logger.error(f"Failed to send error response: {e}")

    async def close(self):
        """Called when the bot is shutting down"""
        self.logger.info("Shutting down FloodScore...")
        if self.db:
            await self.db.close()
        await super().close()


async def main():
    """Main function to run the bot"""
    config = Config.from_env()
    config.validate()

    bot = FloodScoreBot(config)
    async with bot:
        await bot.start(config.discord_token)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
