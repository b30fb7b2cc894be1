"""
Main entry point for RSS Relay.

Runs the Telegram command handlers and the broadcast loop side by side.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from urllib.parse import urlparse

import aiosqlite
import coloredlogs
import yaml
from telegram.ext import Application

from rss_relay.broadcast import BroadcastLoop
from rss_relay.commands import CommandRouter
from rss_relay.config import load_admins, load_config
from rss_relay.detector import ChangeDetector
from rss_relay.errors import RelayError
from rss_relay.rss_parser import FeedParser
from rss_relay.storage import SubscriberStore
from rss_relay.telegram import TelegramTransport

logger = logging.getLogger(__name__)


def redact_proxy_url(proxy_url: str) -> str:
    """
    Redact credentials from a proxy URL for safe logging.

    Parameters
    ----------
    proxy_url : str
        The proxy URL potentially containing credentials.

    Returns
    -------
    str
        The proxy URL with password redacted.
    """
    try:
        parsed = urlparse(proxy_url)
        if parsed.password:
            netloc = parsed.hostname or ""
            if parsed.port:
                netloc = f"{netloc}:{parsed.port}"
            if parsed.username:
                netloc = f"{parsed.username}:****@{netloc}"
            return f"{parsed.scheme}://{netloc}{parsed.path}"
        return proxy_url
    except ValueError:
        return "<proxy url>"


class RSSRelay:
    """
    Main RSS relay application.

    Wires storage, feed fetching, change detection, the command
    handlers and the broadcast loop together.
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the relay.

        Parameters
        ----------
        config_path : str | Path
            Path to the YAML configuration file.
        """
        self.config_path = Path(config_path)
        self.config = load_config(config_path)
        self.storage: SubscriberStore | None = None
        self.parser: FeedParser | None = None
        self.transport: TelegramTransport | None = None
        self.detector = ChangeDetector()
        self.router: CommandRouter | None = None
        self.application: Application | None = None
        self.broadcaster: BroadcastLoop | None = None
        self._task: asyncio.Task | None = None

    async def _setup(self) -> None:
        """Create every component. Any failure here is fatal."""
        admins = load_admins(self.config.admins, base_dir=self.config_path.parent)

        self.storage = SubscriberStore(self.config.storage.database_path)
        await self.storage.initialize()

        feed = self.config.feed
        if feed.proxy:
            logger.info("Using proxy: %s", redact_proxy_url(feed.proxy))

        self.parser = FeedParser(
            feed.url,
            timeout=feed.request_timeout,
            user_agent=feed.user_agent,
            proxy_url=feed.proxy,
        )

        self.transport = TelegramTransport(self.config.telegram, proxy_url=feed.proxy)
        await self.transport.get_identity()

        self.router = CommandRouter(
            self.storage,
            self.parser,
            self.transport,
            admins,
            feed_name=feed.name,
            about_text=self.config.about,
        )
        self.application = Application.builder().bot(self.transport.bot).build()
        self.router.register(self.application)

        self.broadcaster = BroadcastLoop(
            self.parser,
            self.detector,
            self.storage,
            self.transport,
            interval=feed.check_interval,
            send_delay=self.config.telegram.send_delay,
        )

    async def start(self) -> None:
        """Start the relay and run until stopped."""
        logger.info("Starting RSS Relay")

        try:
            await self._setup()
        except (RelayError, OSError, aiosqlite.Error) as e:
            logger.error("Startup failed: %s", e)
            await self.stop()
            sys.exit(1)

        await self.application.initialize()
        await self.router.set_commands(self.application.bot)
        await self.application.start()
        await self.application.updater.start_polling()
        logger.info("Listening for commands as @%s", self.application.bot.username)

        self._task = asyncio.create_task(self.broadcaster.run_forever())
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Broadcast loop cancelled")

    async def stop(self) -> None:
        """Stop the relay gracefully."""
        logger.info("Stopping RSS Relay")

        if self.broadcaster:
            self.broadcaster.stop()
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

        if self.application:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()

        if self.parser:
            await self.parser.close()
        if self.storage:
            await self.storage.close()
        if self.transport:
            await self.transport.close()

        logger.info("RSS Relay stopped")


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Relay new RSS posts to subscribed Telegram chats",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error("Configuration file not found: %s", config_path)
        sys.exit(1)

    try:
        relay = RSSRelay(config_path)
    except (ValueError, yaml.YAMLError) as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    main_task = loop.create_task(relay.start())

    def signal_handler():
        logger.info("Received shutdown signal")
        main_task.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        loop.run_until_complete(main_task)
    except asyncio.CancelledError:
        logger.info("Shutdown requested")
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.run_until_complete(relay.stop())
        loop.close()


if __name__ == "__main__":
    main()
