"""
Recurring broadcast of new feed posts.

Every cycle fetches the feed, asks the change detector whether the
latest post is new and, if so, sends it to every subscribed chat.
"""

import asyncio
import logging

from rss_relay.detector import ChangeDetector
from rss_relay.errors import FetchError, StorageError, TransportError
from rss_relay.notifier import Transport
from rss_relay.rss_parser import FeedParser
from rss_relay.storage import SubscriberStore
from rss_relay.telegram import format_item

logger = logging.getLogger(__name__)


class BroadcastLoop:
    """
    Single recurring task relaying new posts to subscribers.

    Cycles run one after another, each including its full fan-out,
    so two cycles never overlap.
    """

    def __init__(
        self,
        parser: FeedParser,
        detector: ChangeDetector,
        store: SubscriberStore,
        transport: Transport,
        interval: float = 600,
        send_delay: float = 0.0,
    ):
        """
        Initialize the broadcast loop.

        Parameters
        ----------
        parser : FeedParser
            Source of the latest feed item.
        detector : ChangeDetector
            Latch deciding whether an item is new.
        store : SubscriberStore
            Subscribed chats.
        transport : Transport
            Message delivery backend.
        interval : float
            Seconds to wait between two cycles.
        send_delay : float
            Seconds to wait between two messages of the same cycle.
        """
        self.parser = parser
        self.detector = detector
        self.store = store
        self.transport = transport
        self.interval = interval
        self.send_delay = send_delay
        self._running = False

    async def run_cycle(self) -> int:
        """
        Run one fetch, detect and fan-out cycle.

        Failures end the cycle and are logged. Delivery failures only
        skip the affected chat. The detector is never rolled back.

        Returns
        -------
        int
            Number of chats the post was delivered to.
        """
        try:
            item = await self.parser.fetch_latest()
        except FetchError as e:
            logger.warning("Skipping broadcast cycle: %s", e)
            return 0

        if not await self.detector.observe(item):
            return 0

        text = format_item(item)

        try:
            chats = await self.store.list()
        except StorageError as e:
            logger.error("Unable to load subscribers, post not broadcast: %s", e)
            return 0

        delivered = 0
        for index, chat in enumerate(chats):
            if index and self.send_delay:
                await asyncio.sleep(self.send_delay)
            logger.info("Sending newest post to chat: %s", chat)
            try:
                await self.transport.send(chat, text, rich=True)
            except TransportError as e:
                logger.error("Failed to deliver post to %s: %s", chat, e)
                continue
            delivered += 1

        logger.info(
            "Broadcast '%s' to %d of %d chat(s)",
            item.title,
            delivered,
            len(chats),
        )
        return delivered

    async def run_forever(self) -> None:
        """Run cycles until :meth:`stop` is called or the task is cancelled."""
        logger.info("Starting recurring broadcast loop (every %s seconds)", self.interval)
        try:
            logger.info("Subscribed chats: %d", await self.store.count())
        except StorageError as e:
            logger.warning("Unable to count subscribers: %s", e)

        self._running = True
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Error in broadcast cycle: %s", e)

            await asyncio.sleep(self.interval)

    def stop(self) -> None:
        """Let the loop finish after the current cycle."""
        self._running = False
