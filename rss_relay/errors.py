"""
Error taxonomy for RSS Relay.

Library exceptions are converted into these types at the module
boundary so the broadcast loop and the command handlers can decide
whether to log, report to the chat, or both.
"""


class RelayError(Exception):
    """Base class for all relay errors."""

    #: Text shown to the chat when the error ends a command.
    user_message = "Something went wrong, please try again later."


class StorageError(RelayError):
    """Raised when the subscriber store cannot be read or written."""

    user_message = "Unable to access the subscriber list. Please try again later."


class FetchError(RelayError):
    """Raised when the feed is unreachable, malformed or empty."""

    user_message = "Unable to fetch the latest post. Please try again later."


class TransportError(RelayError):
    """Raised when a message cannot be delivered through the bot API."""

    user_message = "Unable to deliver the message to that chat."


class AuthorizationError(RelayError):
    """Raised when a caller without admin rights targets another chat."""

    user_message = (
        "You don't have admin privileges. "
        "Contact the bot administrator if you feel like you deserve them."
    )
