"""
Change detection for the most recent feed post.
"""

import asyncio
import logging

from rss_relay.rss_parser import FeedItem

logger = logging.getLogger(__name__)


class ChangeDetector:
    """
    Latch holding the last observed feed item.

    The held item is only read and replaced while the lock is held,
    which serializes broadcast decisions.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._latest: FeedItem | None = None

    async def observe(self, candidate: FeedItem) -> bool:
        """
        Record a freshly fetched item and report whether it is new.

        The held item is replaced before returning, even when no
        broadcast follows, so a stuck post is never announced twice.

        Parameters
        ----------
        candidate : FeedItem
            The most recent item of the feed.

        Returns
        -------
        bool
            True only if an item was held before and it differs from
            ``candidate``. The first observation always returns False.
        """
        async with self._lock:
            previous = self._latest
            novel = previous is not None and previous != candidate
            self._latest = candidate

        if previous is None:
            logger.info("First post observed, nothing to compare against: %s", candidate.title)
        elif novel:
            logger.info("New post detected: %s", candidate.title)
        else:
            logger.debug("Latest post unchanged: %s", candidate.title)
        return novel

    async def current(self) -> FeedItem | None:
        """Return the last observed item, or None before the first fetch."""
        async with self._lock:
            return self._latest
