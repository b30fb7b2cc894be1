"""
Chat identifiers and their storage key encoding.

A chat is addressed either by its numeric id or, for public channels,
by its username. Both variants are persisted as tagged byte keys.
"""

import struct
from dataclasses import dataclass

NUMERIC_TAG = 0x00
CHANNEL_TAG = 0x01

_INT64 = struct.Struct(">q")


class InvalidChatTarget(ValueError):
    """Raised when a command argument is not a usable chat identifier."""


@dataclass(frozen=True)
class ChatHandle:
    """
    Numeric chat identifier.

    Attributes
    ----------
    id : int
        Telegram chat id (signed 64-bit).
    """

    id: int

    def __post_init__(self) -> None:
        if isinstance(self.id, bool) or not isinstance(self.id, int):
            raise TypeError(f"Chat id must be an int, got {type(self.id).__name__}")
        if not -(2**63) <= self.id < 2**63:
            raise ValueError(f"Chat id out of range: {self.id}")

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class ChannelHandle:
    """
    Channel identifier by public username.

    Attributes
    ----------
    username : str
        Channel username without the leading ``@``.
    """

    username: str

    def __post_init__(self) -> None:
        if not self.username:
            raise ValueError("Channel username cannot be empty")

    def __str__(self) -> str:
        return f"@{self.username}"


ChatIdentifier = ChatHandle | ChannelHandle


def encode_chat_id(chat: ChatIdentifier) -> bytes:
    """
    Encode a chat identifier as a storage key.

    Numeric handles become a zero tag byte followed by the big-endian
    8-byte integer, channel handles a one tag byte followed by the
    UTF-8 username.

    Parameters
    ----------
    chat : ChatIdentifier
        Identifier to encode.

    Returns
    -------
    bytes
        Tagged key, unique per identifier.
    """
    if isinstance(chat, ChatHandle):
        return bytes([NUMERIC_TAG]) + _INT64.pack(chat.id)
    if isinstance(chat, ChannelHandle):
        return bytes([CHANNEL_TAG]) + chat.username.encode("utf-8")
    raise TypeError(f"Unsupported chat identifier: {chat!r}")


def decode_chat_id(key: bytes) -> ChatIdentifier:
    """
    Decode a storage key produced by :func:`encode_chat_id`.

    Parameters
    ----------
    key : bytes
        Tagged key read from storage.

    Returns
    -------
    ChatIdentifier
        The original identifier.

    Raises
    ------
    ValueError
        If the key is malformed.
    """
    key = bytes(key)
    if not key:
        raise ValueError("Empty chat key")

    tag, payload = key[0], key[1:]

    if tag == NUMERIC_TAG:
        if len(payload) != _INT64.size:
            raise ValueError(f"Numeric chat key must hold 8 bytes, got {len(payload)}")
        return ChatHandle(_INT64.unpack(payload)[0])

    if tag == CHANNEL_TAG:
        try:
            username = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValueError(f"Channel chat key is not valid UTF-8: {e}") from e
        return ChannelHandle(username)

    raise ValueError(f"Unknown chat key tag: {tag:#04x}")


def parse_chat_target(text: str | None) -> ChatIdentifier | None:
    """
    Parse the optional target argument of a command.

    Parameters
    ----------
    text : str | None
        Raw argument, e.g. ``"@mychannel"`` or ``"-1001234567890"``.

    Returns
    -------
    ChatIdentifier | None
        None when no target was given.

    Raises
    ------
    InvalidChatTarget
        If the argument is neither ``@username`` nor an integer.
    """
    if text is None or not text.strip():
        return None

    text = text.strip()
    if text.startswith("@"):
        username = text[1:]
        if not username:
            raise InvalidChatTarget("Channel username cannot be empty")
        return ChannelHandle(username)

    try:
        return ChatHandle(int(text))
    except ValueError as e:
        raise InvalidChatTarget("Chat id must start with @ or be a valid integer") from e


def to_telegram(chat: ChatIdentifier) -> int | str:
    """Return the ``chat_id`` value accepted by the Bot API."""
    if isinstance(chat, ChatHandle):
        return chat.id
    return str(chat)
