"""
Leaderboard reads.

Serves the top entries of a stored snapshot plus the requesting user's own
row. Users ranked past the stored entries get a single targeted read of their
aggregate, and a missing snapshot falls back to a live scan.
"""

import logging
from typing import Callable, Optional, Tuple

from floodscore.constants import LeaderboardConstants
from floodscore.data_models.aggregates import LevelAgnosticState, DifficultyAggregateState
from floodscore.data_models.leaderboard import (
    LeaderboardEntry, LeaderboardResponse, RankedEntry, RankingResult
)
from floodscore.database.models import (
    Difficulty, LevelAgnosticAggregate, DifficultyAggregate, LeaderboardSnapshot
)
from floodscore.services.base import BaseService
from floodscore.services.identity import IdentityResolver
from floodscore.services.leaderboard_builder import LeaderboardBuilder
from floodscore.utils.elo import is_countable_number
from floodscore.utils.ranking import LeaderboardDimension, RankingUtility
from floodscore.utils.time_parser import today_utc

logger = logging.getLogger(__name__)


def _is_current(value, current_value) -> Optional[bool]:
    if current_value is None:
        return None
    return current_value == value


class LeaderboardReader(BaseService):
    """Read path for ranked leaderboards."""

    def __init__(self, session_factory, builder: LeaderboardBuilder, identity: IdentityResolver,
                 clock: Callable = today_utc):
        super().__init__(session_factory)
        self.builder = builder
        self.identity = identity
        self.clock = clock

    async def get_leaderboard(self, category: str, subcategory: str,
                              difficulty: Optional[Difficulty] = None,
                              requester_id: Optional[str] = None) -> LeaderboardResponse:
        """
        Top entries for one leaderboard plus the requester's own entry.

        Args:
            category: score, goals or streaks
            subcategory: last7/last30/allTime, beaten/matched, or firstTry/goalAchieved/puzzleCompleted
            difficulty: Required for goals and for firstTry/goalAchieved streaks
            requester_id: Calling user, None for guests

        Returns:
            LeaderboardResponse; requester_entry is None when the requester is a
            guest, unranked, or already inside the top entries

        Raises:
            InvalidLeaderboardQueryError: invalid category/subcategory/difficulty
        """
        dimension = RankingUtility.resolve_dimension(category, subcategory, difficulty)

        ranking = await self._load_snapshot(dimension.key)
        from_snapshot = ranking is not None
        if ranking is None:
            logger.info(f"No snapshot for {dimension.key}, ranking live")
            ranking = await self.builder.scan_dimension(dimension)

        top = ranking.entries[:LeaderboardConstants.TOP_DISPLAY]
        requester = await self._requester_entry(dimension, ranking, requester_id)

        user_ids = [entry.user_id for entry in top]
        if requester is not None:
            user_ids.append(requester[1].user_id)
        names = await self.identity.resolve_display_names(user_ids)

        entries = [
            LeaderboardEntry(
                rank=index + 1,
                user_id=entry.user_id,
                display_name=names[entry.user_id],
                value=entry.value,
                is_current=_is_current(entry.value, entry.current_value),
            )
            for index, entry in enumerate(top)
        ]

        requester_entry = None
        if requester is not None:
            rank, ranked = requester
            requester_entry = LeaderboardEntry(
                rank=rank,
                user_id=ranked.user_id,
                display_name=names[ranked.user_id],
                value=ranked.value,
                is_current=_is_current(ranked.value, ranked.current_value),
            )

        return LeaderboardResponse(
            key=dimension.key,
            entries=entries,
            requester_entry=requester_entry,
            total_entries=ranking.total_entries,
            updated_at=ranking.updated_at,
            from_snapshot=from_snapshot,
        )

    async def _load_snapshot(self, key: str) -> Optional[RankingResult]:
        async with self.get_session() as session:
            snapshot = await session.get(LeaderboardSnapshot, key)
            if snapshot is None:
                return None
            return RankingResult(
                key=snapshot.key,
                entries=[RankedEntry.from_dict(entry) for entry in snapshot.entries or []],
                user_ranks=dict(snapshot.user_ranks or {}),
                total_entries=snapshot.total_entries or 0,
                updated_at=snapshot.updated_at,
            )

    async def _requester_entry(self, dimension: LeaderboardDimension, ranking: RankingResult,
                               requester_id: Optional[str]) -> Optional[Tuple[int, RankedEntry]]:
        if not requester_id:
            return None
        requester_id = str(requester_id)

        rank = ranking.user_ranks.get(requester_id)
        if rank is None or rank <= LeaderboardConstants.TOP_DISPLAY:
            return None

        if rank <= len(ranking.entries):
            entry = ranking.entries[rank - 1]
            if entry.user_id == requester_id:
                return rank, entry

        live = await self._read_live_value(dimension, requester_id)
        if live is None:
            return None
        value, current = live
        return rank, RankedEntry(user_id=requester_id, value=value, current_value=current)

    async def _read_live_value(self, dimension: LeaderboardDimension, user_id: str):
        """One targeted read of a user's aggregate. Failures are logged and yield None."""
        try:
            async with self.get_session() as session:
                if dimension.reads_difficulty_aggregate:
                    row = await session.get(DifficultyAggregate, (user_id, dimension.difficulty))
                    state = DifficultyAggregateState.from_row(row) if row else None
                else:
                    row = await session.get(LevelAgnosticAggregate, user_id)
                    state = LevelAgnosticState.from_row(row) if row else None
        except Exception as e:
            logger.warning(f"Live value lookup failed for {user_id} on {dimension.key}: {e}")
            return None

        if state is None:
            return None
        value, current = RankingUtility.candidate_value(dimension, state, self.clock())
        if not is_countable_number(value):
            return None
        return value, current if is_countable_number(current) else None
