"""
SQLite storage for subscribed chats.

Persists the set of chat identifiers as presence-only keys so that
subscriptions survive restarts.
"""

import logging
from pathlib import Path

import aiosqlite

from rss_relay.chat_ids import ChatIdentifier, decode_chat_id, encode_chat_id
from rss_relay.errors import StorageError

logger = logging.getLogger(__name__)


class SubscriberStore:
    """
    Async SQLite set of subscribed chats.

    Each chat is stored as one row keyed by its encoded identifier
    with an empty value. A single connection serializes statements,
    so every operation is atomic on its own.
    """

    def __init__(self, database_path: str | Path):
        """
        Initialize storage with database path.

        Parameters
        ----------
        database_path : str | Path
            Path to the SQLite database file, or ``:memory:``.
        """
        self.database_path = Path(database_path)
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """
        Open the database connection and create the table.

        Creates the database file and parent directories if they don't exist.
        """
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Initializing subscriber database at %s", self.database_path)

        self._connection = await aiosqlite.connect(self.database_path)
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS subscribers (
                chat_key BLOB PRIMARY KEY,
                value BLOB NOT NULL
            )
        """)
        await self._connection.commit()
        logger.debug("Subscriber table created/verified")

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("Database not initialized")
        return self._connection

    async def add(self, chat: ChatIdentifier) -> None:
        """
        Subscribe a chat. Adding an existing chat is a no-op.

        Raises
        ------
        StorageError
            If the database write fails.
        """
        connection = self._require_connection()
        try:
            await connection.execute(
                "INSERT OR REPLACE INTO subscribers (chat_key, value) VALUES (?, ?)",
                (encode_chat_id(chat), b""),
            )
            await connection.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Unable to store chat {chat} in database: {e}") from e
        logger.debug("Stored chat %s", chat)

    async def remove(self, chat: ChatIdentifier) -> None:
        """
        Unsubscribe a chat. Removing an absent chat is a no-op.

        Raises
        ------
        StorageError
            If the database write fails.
        """
        connection = self._require_connection()
        try:
            await connection.execute(
                "DELETE FROM subscribers WHERE chat_key = ?",
                (encode_chat_id(chat),),
            )
            await connection.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Unable to remove chat {chat} from database: {e}") from e
        logger.debug("Removed chat %s", chat)

    async def contains(self, chat: ChatIdentifier) -> bool:
        """
        Check whether a chat is subscribed.

        A database error is reported as "not subscribed" instead of
        being raised.

        Returns
        -------
        bool
            True if the chat is stored.
        """
        connection = self._require_connection()
        try:
            cursor = await connection.execute(
                "SELECT 1 FROM subscribers WHERE chat_key = ?",
                (encode_chat_id(chat),),
            )
            result = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.warning("Lookup of chat %s failed, treating as absent: %s", chat, e)
            return False
        return result is not None

    async def list(self) -> list[ChatIdentifier]:
        """
        Return a snapshot of all subscribed chats.

        Every call scans the table again. Order is unspecified.

        Raises
        ------
        StorageError
            If the table cannot be read.
        """
        connection = self._require_connection()
        try:
            cursor = await connection.execute("SELECT chat_key FROM subscribers")
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"Unable to read subscribers from database: {e}") from e

        chats: list[ChatIdentifier] = []
        for (key,) in rows:
            try:
                chats.append(decode_chat_id(key))
            except ValueError as e:
                logger.error("Skipping undecodable chat key %r: %s", key, e)
        return chats

    async def count(self) -> int:
        """
        Get the number of subscribed chats.

        Raises
        ------
        StorageError
            If the table cannot be read.
        """
        connection = self._require_connection()
        try:
            cursor = await connection.execute("SELECT COUNT(*) FROM subscribers")
            result = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Unable to count subscribers: {e}") from e
        return result[0] if result else 0

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    async def __aenter__(self) -> "SubscriberStore":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
