"""
Unit tests for the change detector.
"""

import asyncio

from rss_relay.detector import ChangeDetector
from rss_relay.rss_parser import FeedItem


class TestChangeDetector:
    """Tests for novelty decisions of the latch."""

    async def test_first_observation_is_not_new(self, sample_item: FeedItem) -> None:
        """Test nothing is broadcast for the first fetched post."""
        detector = ChangeDetector()

        assert await detector.observe(sample_item) is False
        assert await detector.current() == sample_item

    async def test_repeat_is_not_new(self, sample_item: FeedItem) -> None:
        """Test an unchanged post is not new."""
        detector = ChangeDetector()
        await detector.observe(sample_item)

        assert await detector.observe(sample_item) is False

    async def test_equal_copy_is_not_new(self, sample_item: FeedItem) -> None:
        """Test a second fetch of the same post compares equal."""
        detector = ChangeDetector()
        await detector.observe(sample_item)

        copy = FeedItem(sample_item.title, sample_item.description, sample_item.link)

        assert await detector.observe(copy) is False

    async def test_change_is_new_once(self, sample_item: FeedItem, other_item: FeedItem) -> None:
        """Test a changed post is new exactly once."""
        detector = ChangeDetector()
        await detector.observe(sample_item)

        assert await detector.observe(other_item) is True
        assert await detector.observe(other_item) is False
        assert await detector.current() == other_item

    async def test_going_back_is_new(self, sample_item: FeedItem, other_item: FeedItem) -> None:
        """Test only the last observed item is remembered."""
        detector = ChangeDetector()
        await detector.observe(sample_item)
        await detector.observe(other_item)

        assert await detector.observe(sample_item) is True

    async def test_current_empty(self) -> None:
        """Test a fresh detector holds nothing."""
        assert await ChangeDetector().current() is None

    async def test_concurrent_observers_signal_once(
        self, sample_item: FeedItem, other_item: FeedItem
    ) -> None:
        """Test concurrent observations of a change signal it only once."""
        detector = ChangeDetector()
        await detector.observe(sample_item)

        results = await asyncio.gather(*(detector.observe(other_item) for _ in range(10)))

        assert results.count(True) == 1
