"""Tests for environment configuration."""

import pytest

from floodscore.config import Config


def test_defaults_from_empty_environment():
    config = Config.from_env({})

    assert config.discord_token is None
    assert config.database_url == 'sqlite:///floodscore.db'
    assert config.transaction_max_retries == 3
    assert config.leaderboard_rebuild_hours == 4.0
    assert config.admin_user_ids == frozenset()


def test_values_from_environment():
    config = Config.from_env({
        'DISCORD_TOKEN': 'token',
        'DISCORD_GUILD_IDS': '1, 2',
        'DEBUG': 'true',
        'ADMIN_USER_IDS': '100,200',
        'TRANSACTION_MAX_RETRIES': '5',
        'LEADERBOARD_REBUILD_HOURS': '0.5',
    })

    assert config.discord_guild_ids == (1, 2)
    assert config.debug is True
    assert config.transaction_max_retries == 5
    assert config.leaderboard_rebuild_hours == 0.5
    config.validate()


def test_admin_allow_list():
    config = Config(admin_user_ids=frozenset({'100'}))

    assert config.is_admin('100')
    assert config.is_admin(100)
    assert not config.is_admin('200')
    assert not config.is_admin(None)


def test_bad_guild_ids_rejected():
    with pytest.raises(ValueError):
        Config.from_env({'DISCORD_GUILD_IDS': 'abc'})


def test_missing_token_fails_validation():
    with pytest.raises(ValueError):
        Config().validate()
