"""
Periodic leaderboard rebuild.

Scans every user's aggregates once, ranks all leaderboard dimensions from
that scan and replaces the stored snapshots in a single transaction.
"""

import asyncio
import logging
import time
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from floodscore.data_models.aggregates import LevelAgnosticState, DifficultyAggregateState
from floodscore.data_models.leaderboard import RankingResult
from floodscore.database.models import (
    Difficulty, LevelAgnosticAggregate, DifficultyAggregate, LeaderboardSnapshot
)
from floodscore.services.base import BaseService
from floodscore.utils.exceptions import TransactionTimeoutError
from floodscore.utils.ranking import LeaderboardDimension, RankingUtility
from floodscore.utils.time_parser import today_utc

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LeaderboardBuilder(BaseService):
    """Rebuilds every leaderboard snapshot from a full scan."""

    def __init__(self, session_factory, timeout: Optional[float] = 300.0,
                 clock: Callable[[], date] = today_utc):
        super().__init__(session_factory, timeout=timeout)
        self.clock = clock

    async def rebuild_all(self) -> Dict[str, int]:
        """
        Rebuild all snapshots.

        Returns:
            Mapping of snapshot key to its total ranked entries

        Raises:
            TransactionTimeoutError: the rebuild exceeded its time box; no snapshot was replaced
        """
        start_time = time.monotonic()
        logger.info("Starting leaderboard rebuild")
        try:
            if self.timeout is not None:
                rankings = await asyncio.wait_for(self._rebuild_all(), timeout=self.timeout)
            else:
                rankings = await self._rebuild_all()
        except asyncio.TimeoutError:
            logger.error(f"Leaderboard rebuild timed out after {self.timeout}s; will retry next run")
            raise TransactionTimeoutError("leaderboard rebuild", self.timeout)

        duration = time.monotonic() - start_time
        logger.info(f"Rebuilt {len(rankings)} leaderboards in {duration:.2f}s")
        return {ranking.key: ranking.total_entries for ranking in rankings}

    async def _rebuild_all(self) -> List[RankingResult]:
        today = self.clock()
        updated_at = utc_now()

        async with self.get_session() as session:
            level_agnostic = await self._load_level_agnostic(session)
            by_difficulty = await self._load_difficulty_aggregates(session)

            rankings = []
            for dimension in RankingUtility.all_dimensions():
                states = by_difficulty[dimension.difficulty] if dimension.reads_difficulty_aggregate else level_agnostic
                rankings.append(self._rank(dimension, states, today, updated_at))

            for ranking in rankings:
                await self._store_snapshot(session, ranking)

        return rankings

    async def scan_dimension(self, dimension: LeaderboardDimension) -> RankingResult:
        """Rank one dimension live, without touching its stored snapshot."""
        async with self.get_session() as session:
            if dimension.reads_difficulty_aggregate:
                states = (await self._load_difficulty_aggregates(session, dimension.difficulty))[dimension.difficulty]
            else:
                states = await self._load_level_agnostic(session)
        return self._rank(dimension, states, self.clock(), utc_now())

    @staticmethod
    def _rank(dimension: LeaderboardDimension, states, today: date, updated_at: datetime) -> RankingResult:
        candidates = (
            (user_id, *RankingUtility.candidate_value(dimension, state, today))
            for user_id, state in states
        )
        return RankingUtility.rank_candidates(dimension.key, candidates, updated_at)

    @staticmethod
    async def _load_level_agnostic(session: AsyncSession) -> List[Tuple[str, LevelAgnosticState]]:
        result = await session.execute(select(LevelAgnosticAggregate).order_by(LevelAgnosticAggregate.user_id))
        return [(row.user_id, LevelAgnosticState.from_row(row)) for row in result.scalars()]

    @staticmethod
    async def _load_difficulty_aggregates(
        session: AsyncSession, difficulty: Optional[Difficulty] = None
    ) -> Dict[Difficulty, List[Tuple[str, DifficultyAggregateState]]]:
        query = select(DifficultyAggregate).order_by(DifficultyAggregate.user_id)
        if difficulty is not None:
            query = query.where(DifficultyAggregate.difficulty == difficulty)
        result = await session.execute(query)

        by_difficulty = {d: [] for d in Difficulty}
        for row in result.scalars():
            by_difficulty[row.difficulty].append((row.user_id, DifficultyAggregateState.from_row(row)))
        return by_difficulty

    @staticmethod
    async def _store_snapshot(session: AsyncSession, ranking: RankingResult):
        snapshot = await session.get(LeaderboardSnapshot, ranking.key)
        if snapshot is None:
            snapshot = LeaderboardSnapshot(key=ranking.key)
            session.add(snapshot)
        snapshot.entries = [entry.to_dict() for entry in ranking.entries]
        snapshot.user_ranks = dict(ranking.user_ranks)
        snapshot.total_entries = ranking.total_entries
        snapshot.updated_at = ranking.updated_at
