"""
Leaderboard data models.

Provides immutable data transfer objects for ranked snapshots and the
responses served to readers.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional


@dataclass(frozen=True)
class RankedEntry:
    """One stored snapshot row."""
    user_id: str
    value: float
    current_value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'user_id': self.user_id, 'value': self.value}
        if self.current_value is not None:
            data['current_value'] = self.current_value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RankedEntry':
        return cls(
            user_id=str(data['user_id']),
            value=data['value'],
            current_value=data.get('current_value'),
        )


@dataclass(frozen=True)
class RankingResult:
    """Full ranking for one dimension: top entries plus every user's rank."""
    key: str
    entries: List[RankedEntry]
    user_ranks: Dict[str, int]
    total_entries: int
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class LeaderboardEntry:
    """Single leaderboard row as shown to a reader."""
    rank: int
    user_id: str
    display_name: str
    value: float
    is_current: Optional[bool] = None


@dataclass(frozen=True)
class LeaderboardResponse:
    """Top entries plus the requesting user's own row when it falls outside them."""
    key: str
    entries: List[LeaderboardEntry]
    requester_entry: Optional[LeaderboardEntry]
    total_entries: int
    updated_at: Optional[datetime]
    from_snapshot: bool
