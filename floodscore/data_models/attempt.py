"""
Attempt data models.

Immutable transfer objects for a reported puzzle attempt and its result, plus
the validation step that turns an inbound payload into an AttemptReport
before any transaction starts.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from floodscore.database.models import Difficulty
from floodscore.utils.exceptions import (
    AuthenticationRequiredError, IdentityMismatchError, InvalidAttemptError
)
from floodscore.utils.time_parser import is_day_key, parse_day_key


@dataclass(frozen=True)
class Replay:
    """Move-by-move replay attached to a solve."""
    states: List[Any]
    actions: List[Any]
    target_color: Optional[str] = None
    color_map: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class AttemptReport:
    """One validated solve attempt."""
    user_id: str
    puzzle_id: str
    difficulty: Difficulty
    user_moves: int
    bot_moves: int
    won: bool
    hint_used: bool = False
    replay: Optional[Replay] = None


@dataclass(frozen=True)
class AttemptResult:
    """Outcome returned to the caller after the attempt transaction commits."""
    first_try: bool
    first_to_beat_bot: bool
    elo: Optional[int]


def _require_int(payload: Mapping[str, Any], name: str) -> int:
    value = payload.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAttemptError(f"{name} must be a whole number")
    if value < 0:
        raise InvalidAttemptError(f"{name} cannot be negative")
    return value


def _parse_replay(payload: Mapping[str, Any]) -> Optional[Replay]:
    states = payload.get('states')
    actions = payload.get('actions')
    if states is None and actions is None:
        return None
    if not isinstance(states, list) or not isinstance(actions, list):
        raise InvalidAttemptError("states and actions must both be lists")
    if not states or not actions:
        raise InvalidAttemptError("states and actions cannot be empty")

    target_color = payload.get('target_color')
    if target_color is not None and not isinstance(target_color, str):
        raise InvalidAttemptError("target_color must be a string")
    color_map = payload.get('color_map')
    if color_map is not None and not isinstance(color_map, dict):
        raise InvalidAttemptError("color_map must be a mapping")

    return Replay(states=list(states), actions=list(actions),
                  target_color=target_color, color_map=color_map)


def validate_attempt_payload(payload: Mapping[str, Any], caller_id: Optional[str]) -> AttemptReport:
    """
    Validate an inbound attempt payload for an authenticated caller.

    Args:
        payload: Raw request fields (puzzle_id, difficulty, user_moves, bot_moves,
            won, hint_used, optional user_id and replay fields)
        caller_id: Authenticated caller identity, None for anonymous requests

    Returns:
        AttemptReport ready for recording

    Raises:
        AuthenticationRequiredError: no caller identity
        IdentityMismatchError: payload names a different user
        InvalidAttemptError: any malformed or missing field
    """
    if not caller_id:
        raise AuthenticationRequiredError()
    caller_id = str(caller_id)

    payload_user_id = payload.get('user_id')
    if payload_user_id is not None and str(payload_user_id) != caller_id:
        raise IdentityMismatchError(caller_id, str(payload_user_id))

    puzzle_id = payload.get('puzzle_id')
    if not is_day_key(puzzle_id) or parse_day_key(puzzle_id) is None:
        raise InvalidAttemptError("puzzle_id must be a date in YYYY-MM-DD format")

    try:
        difficulty = Difficulty.parse(payload.get('difficulty'))
    except ValueError:
        raise InvalidAttemptError("difficulty must be one of easy, medium or hard")

    user_moves = _require_int(payload, 'user_moves')
    bot_moves = _require_int(payload, 'bot_moves')

    won = payload.get('won')
    if not isinstance(won, bool):
        raise InvalidAttemptError("won must be true or false")

    hint_used = payload.get('hint_used', False)
    if not isinstance(hint_used, bool):
        raise InvalidAttemptError("hint_used must be true or false")

    return AttemptReport(
        user_id=caller_id,
        puzzle_id=puzzle_id,
        difficulty=difficulty,
        user_moves=user_moves,
        bot_moves=bot_moves,
        won=won,
        hint_used=hint_used,
        replay=_parse_replay(payload),
    )
