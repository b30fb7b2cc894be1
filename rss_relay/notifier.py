"""
Protocol definition for the messaging transport.

Defines the interface the broadcast loop and command handlers use to
talk to the chat service.
"""

from typing import Protocol, runtime_checkable

from rss_relay.chat_ids import ChatIdentifier


@runtime_checkable
class Transport(Protocol):
    """
    Protocol for message delivery backends.

    The @runtime_checkable decorator allows using isinstance() checks
    against this protocol for structural typing validation.
    """

    async def send(self, chat: ChatIdentifier, text: str, rich: bool = True) -> None:
        """
        Send a message to a chat.

        Parameters
        ----------
        chat : ChatIdentifier
            Destination chat.
        text : str
            Message body.
        rich : bool
            True for HTML formatted text, False for plain text.

        Raises
        ------
        TransportError
            If the message could not be delivered.
        """
        ...

    async def get_identity(self) -> str:
        """
        Return the bot's own username.

        Raises
        ------
        TransportError
            If the identity cannot be obtained.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the transport."""
        ...
