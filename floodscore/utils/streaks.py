"""Daily streak transitions shared by every streak the engine tracks."""

from dataclasses import dataclass, replace
from typing import Optional

from floodscore.utils.time_parser import is_day_after


@dataclass(frozen=True)
class StreakState:
    """
    One streak counter.

    last_date is the last day the streak qualified. at_last_date is the value
    the streak had on that day, so a same-day qualifying win can restore it
    after an earlier non-qualifying win reset current to 0.
    """
    current: int = 0
    longest: int = 0
    last_date: Optional[str] = None
    at_last_date: int = 0


def advance_streak(state: StreakState, day: str, qualifies: bool) -> StreakState:
    """
    Apply one win on `day` to a streak.

    Qualifying wins:
        same day as last_date  -> unchanged
        day after last_date    -> previous value + 1
        anything else          -> 1
    Non-qualifying wins on a new day reset current to 0 and leave last_date alone.
    """
    if not qualifies:
        if state.last_date == day:
            return state
        return replace(state, current=0)

    if state.last_date == day:
        current = state.at_last_date
    elif is_day_after(state.last_date, day):
        current = state.at_last_date + 1
    else:
        current = 1

    return StreakState(
        current=current,
        longest=max(state.longest, current),
        last_date=day,
        at_last_date=current,
    )
