"""Shared fixtures: a fresh file-backed SQLite database per test and the services on top of it."""

from datetime import date

import pytest
import pytest_asyncio

from floodscore.config import Config
from floodscore.data_models.attempt import AttemptReport, Replay
from floodscore.database.database import Database
from floodscore.database.models import Difficulty
from floodscore.services.attempt_recorder import AttemptRecorder
from floodscore.services.daily_scores import DailyScoreMirror
from floodscore.services.identity import IdentityResolver
from floodscore.services.leaderboard_builder import LeaderboardBuilder
from floodscore.services.leaderboard_reader import LeaderboardReader
from floodscore.services.puzzles import PuzzleReferenceProvider
from floodscore.services.stats import PersonalStatsService

TODAY = date(2024, 3, 10)
TODAY_KEY = '2024-03-10'


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that hit the SQLite database")


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(Config(database_url=f"sqlite:///{tmp_path / 'floodscore.db'}"))
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database):
    return database.session_factory


@pytest.fixture
def identity(session_factory):
    return IdentityResolver(session_factory)


@pytest.fixture
def puzzles(session_factory):
    return PuzzleReferenceProvider(session_factory)


@pytest.fixture
def best_score_changes():
    return []


@pytest.fixture
def daily_scores(session_factory, best_score_changes):
    return DailyScoreMirror(session_factory, on_best_score_changed=best_score_changes.append)


@pytest.fixture
def recorder(session_factory, daily_scores, identity):
    return AttemptRecorder(
        session_factory, daily_scores, identity,
        max_retries=10, timeout=30.0, clock=lambda: TODAY,
    )


@pytest.fixture
def builder(session_factory):
    return LeaderboardBuilder(session_factory, timeout=60.0, clock=lambda: TODAY)


@pytest.fixture
def reader(session_factory, builder, identity):
    return LeaderboardReader(session_factory, builder, identity, clock=lambda: TODAY)


@pytest.fixture
def stats_service(session_factory):
    return PersonalStatsService(session_factory)


@pytest.fixture
def make_report():
    def _make_report(user_id='alice', puzzle_id=TODAY_KEY, difficulty=Difficulty.HARD,
                     user_moves=10, bot_moves=10, won=True, hint_used=False, with_replay=False):
        replay = None
        if with_replay:
            replay = Replay(states=[[0, 1], [1, 1]], actions=[1], target_color='red', color_map={'0': 'blue'})
        return AttemptReport(
            user_id=user_id,
            puzzle_id=puzzle_id,
            difficulty=difficulty,
            user_moves=user_moves,
            bot_moves=bot_moves,
            won=won,
            hint_used=hint_used,
            replay=replay,
        )
    return _make_report
