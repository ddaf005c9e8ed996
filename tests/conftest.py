import pytest
from unittest.mock import MagicMock
from dotenv import load_dotenv

@pytest.fixture(scope="session", autouse=True)
def _load_env():
    # Load .env once per session to avoid side-effects on import time
    load_dotenv()

@pytest.fixture
def settings(tmp_path):
    """
    Settings pointing at a temporary database, with fixed secrets.
    Explicit values win over anything picked up from the environment.
    """
    from oi_bot.config import Settings

    return Settings(
        SLACK_SIGNING_SECRET="test-signing-secret",
        OPENAI_API_KEY="sk-test",
        DB_PATH=str(tmp_path / "test_oi.db"),
        EVENT_MAX_ATTEMPTS=3,
        WORKER_CONCURRENCY=2,
        WORKER_POLL_INTERVAL_SECONDS=0.01,
        ALLOW_TEST_MODE=True,
    )

@pytest.fixture
def test_db(settings):
    """Creates the event bus schema in the temporary database."""
    from oi_bot.store.db import init_db

    init_db(settings.DB_PATH)
    return settings

@pytest.fixture
def bus(test_db):
    from oi_bot.store.bus import EventBus

    return EventBus(test_db)

@pytest.fixture
def mock_callbacks():
    """A CallbackClient stand-in that records deliveries."""
    from oi_bot.slack.respond import CallbackClient

    return MagicMock(spec=CallbackClient)

@pytest.fixture
def mock_completer():
    from oi_bot.llm.client import CompletionClient

    return MagicMock(spec=CompletionClient)
