import os
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Tuple

from dotenv import load_dotenv


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _parse_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


@dataclass(frozen=True)
class Config:
    """Runtime configuration, loaded once at startup and passed to the bot and services."""

    # Discord settings
    discord_token: Optional[str] = None
    discord_guild_ids: Tuple[int, ...] = ()

    # Database settings
    database_url: str = 'sqlite:///floodscore.db'

    debug: bool = False

    # Admin allow-list (user ids as strings)
    admin_user_ids: FrozenSet[str] = field(default_factory=frozenset)

    # Attempt transactions
    transaction_max_retries: int = 3
    transaction_timeout_seconds: float = 60.0

    # Leaderboard rebuilds
    leaderboard_rebuild_hours: float = 4.0
    leaderboard_rebuild_timeout_seconds: float = 300.0

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Config':
        """Build a Config from the process environment (after loading .env)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        try:
            guild_ids = tuple(int(guild_id) for guild_id in _parse_csv(environ.get('DISCORD_GUILD_IDS')))
        except ValueError:
            raise ValueError("DISCORD_GUILD_IDS must be comma-separated integers")

        return cls(
            discord_token=environ.get('DISCORD_TOKEN') or None,
            discord_guild_ids=guild_ids,
            database_url=environ.get('DATABASE_URL', cls.database_url),
            debug=_parse_bool(environ.get('DEBUG')),
            admin_user_ids=frozenset(_parse_csv(environ.get('ADMIN_USER_IDS'))),
            transaction_max_retries=int(environ.get('TRANSACTION_MAX_RETRIES', cls.transaction_max_retries)),
            transaction_timeout_seconds=float(
                environ.get('TRANSACTION_TIMEOUT_SECONDS', cls.transaction_timeout_seconds)
            ),
            leaderboard_rebuild_hours=float(
                environ.get('LEADERBOARD_REBUILD_HOURS', cls.leaderboard_rebuild_hours)
            ),
            leaderboard_rebuild_timeout_seconds=float(
                environ.get('LEADERBOARD_REBUILD_TIMEOUT_SECONDS', cls.leaderboard_rebuild_timeout_seconds)
            ),
        )

    def is_admin(self, user_id: Optional[str]) -> bool:
        """Check a user id against the admin allow-list. Unknown or missing ids are denied."""
        if not user_id:
            return False
        return str(user_id) in self.admin_user_ids

    def validate(self):
        """Validate that required configuration is present"""
        if not self.discord_token:
            raise ValueError("DISCORD_TOKEN is required")
        if self.transaction_max_retries < 1:
            raise ValueError("TRANSACTION_MAX_RETRIES must be at least 1")
        if self.transaction_timeout_seconds <= 0:
            raise ValueError("TRANSACTION_TIMEOUT_SECONDS must be positive")
        if self.leaderboard_rebuild_hours <= 0:
            raise ValueError("LEADERBOARD_REBUILD_HOURS must be positive")
