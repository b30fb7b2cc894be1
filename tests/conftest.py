"""
Shared fixtures for RSS Relay tests.

Provides common test fixtures for use across all test modules.
"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from rss_relay.config import AppConfig, FeedConfig, TelegramConfig
from rss_relay.rss_parser import FeedItem
from rss_relay.storage import SubscriberStore


# Path to test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_rss_content(fixtures_dir: Path) -> str:
    """Return contents of sample RSS feed."""
    return (fixtures_dir / "sample_rss.xml").read_text()


@pytest.fixture
def sample_atom_content(fixtures_dir: Path) -> str:
    """Return contents of sample Atom feed."""
    return (fixtures_dir / "sample_atom.xml").read_text()


@pytest.fixture
def sample_config_path(fixtures_dir: Path) -> Path:
    """Return path to sample config file."""
    return fixtures_dir / "sample_config.yaml"


@pytest.fixture
def sample_item() -> FeedItem:
    """Create a fully populated feed item."""
    return FeedItem(
        title="Exam registration is open",
        description="<p>Registration for the <b>winter</b> exams is now open.</p>",
        link="https://blog.example.com/exam-registration",
    )


@pytest.fixture
def other_item() -> FeedItem:
    """Create a second, different feed item."""
    return FeedItem(
        title="Library opening hours",
        description="The library closes early on Friday.",
        link="https://blog.example.com/library-hours",
    )


@pytest.fixture
def minimal_telegram_config() -> TelegramConfig:
    """Create a minimal valid Telegram configuration."""
    return TelegramConfig(bot_token="1234567890:ABCdefGHIjklMNOpqrsTUVwxyz")


@pytest.fixture
def minimal_config_dict() -> dict[str, Any]:
    """
    Create a minimal valid configuration dictionary.

    Returns
    -------
    dict
        Configuration dictionary that can be used to create AppConfig.
    """
    return {
        "telegram": {"bot_token": "1234567890:ABCdefGHIjklMNOpqrsTUVwxyz"},
        "feed": {"url": "https://example.com/feed.xml"},
    }


@pytest.fixture
def minimal_app_config(minimal_telegram_config: TelegramConfig) -> AppConfig:
    """Create a minimal valid app configuration."""
    return AppConfig(
        telegram=minimal_telegram_config,
        feed=FeedConfig(url="https://example.com/feed.xml"),
    )


@pytest_asyncio.fixture
async def in_memory_storage() -> AsyncGenerator[SubscriberStore, None]:
    """
    Create an in-memory subscriber store for testing.

    Yields
    ------
    SubscriberStore
        An initialized in-memory store.
    """
    store = SubscriberStore(":memory:")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def mock_transport() -> MagicMock:
    """Create a transport whose sends always succeed."""
    transport = MagicMock()
    transport.send = AsyncMock()
    transport.get_identity = AsyncMock(return_value="test_bot")
    transport.close = AsyncMock()
    return transport


@pytest.fixture
def mock_parser(sample_item: FeedItem) -> MagicMock:
    """Create a feed parser returning the sample item."""
    parser = MagicMock()
    parser.fetch_latest = AsyncMock(return_value=sample_item)
    parser.close = AsyncMock()
    return parser


@pytest.fixture
def mock_telegram_bot() -> MagicMock:
    """
    Create a mock Telegram bot.

    Returns
    -------
    MagicMock
        A mock Bot instance with common methods mocked.
    """
    bot = MagicMock()
    bot.send_message = AsyncMock()
    bot.get_me = AsyncMock(return_value=MagicMock(username="test_bot"))
    bot.set_my_commands = AsyncMock()
    bot.shutdown = AsyncMock()
    return bot


@pytest.fixture
def make_update() -> Callable[..., MagicMock]:
    """
    Build mock Telegram updates for command handlers.

    Returns
    -------
    Callable[..., MagicMock]
        Factory taking the chat id and the sender's username.
    """

    def factory(chat_id: int = 42, username: str | None = "someone", has_user: bool = True) -> MagicMock:
        update = MagicMock()
        update.effective_chat.id = chat_id
        if has_user:
            update.effective_user.id = 1000 + chat_id
            update.effective_user.username = username
        else:
            update.effective_user = None
        update.effective_message.reply_text = AsyncMock()
        return update

    return factory


@pytest.fixture
def make_context() -> Callable[..., MagicMock]:
    """Build mock handler contexts carrying command arguments."""

    def factory(*args: str) -> MagicMock:
        context = MagicMock()
        context.args = list(args)
        return context

    return factory
