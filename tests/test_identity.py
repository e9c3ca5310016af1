"""Tests for display-name resolution."""

from unittest.mock import patch

import pytest

from floodscore.services.identity import fallback_display_name

pytestmark = pytest.mark.integration


async def test_known_and_unknown_users(identity):
    await identity.remember_display_name('1234567890', 'Alice')

    names = await identity.resolve_display_names(['1234567890', '9876543210', '1234567890'])

    assert names == {'1234567890': 'Alice', '9876543210': 'User_987654'}


async def test_latest_name_wins(identity):
    await identity.remember_display_name('alice', 'Alice')
    await identity.remember_display_name('alice', 'Alice B')
    await identity.remember_display_name('alice', '   ')

    assert await identity.resolve_display_name('alice') == 'Alice B'


async def test_large_requests_are_batched(identity):
    user_ids = [f'u{i}' for i in range(250)]
    real_get_session = identity.get_session

    with patch.object(identity, 'get_session', side_effect=real_get_session) as sessions:
        names = await identity.resolve_display_names(user_ids)

    assert sessions.call_count == 3
    assert len(names) == 250


async def test_failed_lookup_falls_back(identity):
    with patch.object(identity, 'get_session', side_effect=RuntimeError("store unavailable")):
        names = await identity.resolve_display_names(['alice'])

    assert names == {'alice': fallback_display_name('alice')}
