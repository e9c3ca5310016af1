"""
Display-name resolution.

Display names come from the Player table, refreshed whenever a user talks to
the bot. Lookups are batched and never fail: unknown ids and failed batches
fall back to a synthesized name.
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy import select

from floodscore.constants import LeaderboardConstants
from floodscore.database.models import Player
from floodscore.services.base import BaseService

logger = logging.getLogger(__name__)


def fallback_display_name(user_id: str) -> str:
    return f"User_{str(user_id)[:6]}"


class IdentityResolver(BaseService):
    """Resolves user ids to display names in batches."""

    async def remember_display_name(self, user_id: str, display_name: str):
        """Store the latest display name for a user."""
        display_name = (display_name or '').strip()[:100]
        if not display_name:
            return
        async with self.get_session() as session:
            player = await session.get(Player, str(user_id))
            if player is None:
                session.add(Player(user_id=str(user_id), display_name=display_name))
            elif player.display_name != display_name:
                player.display_name = display_name

    async def resolve_display_name(self, user_id: str) -> str:
        names = await self.resolve_display_names([user_id])
        return names[str(user_id)]

    async def resolve_display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """
        Resolve display names for many users.

        Args:
            user_ids: Ids to resolve; duplicates are collapsed

        Returns:
            Mapping of every requested id to a display name
        """
        unique_ids: List[str] = list(dict.fromkeys(str(user_id) for user_id in user_ids))
        names = {user_id: fallback_display_name(user_id) for user_id in unique_ids}

        batch_size = LeaderboardConstants.IDENTITY_BATCH_SIZE
        for start in range(0, len(unique_ids), batch_size):
            batch = unique_ids[start:start + batch_size]
            try:
                async with self.get_session() as session:
                    result = await session.execute(
                        select(Player.user_id, Player.display_name).where(Player.user_id.in_(batch))
                    )
                    for user_id, display_name in result.all():
                        if display_name:
                            names[user_id] = display_name
            except Exception as e:
                logger.warning(f"Display name lookup failed for {len(batch)} users: {e}")

        return names
