"""
Telegram command handlers.

Lets chats subscribe and unsubscribe themselves, and lets
administrators manage subscriptions of named channels.
"""

import logging
from functools import wraps

from telegram import Bot, BotCommand, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, filters

from rss_relay.chat_ids import ChatHandle, ChatIdentifier, InvalidChatTarget, parse_chat_target
from rss_relay.errors import AuthorizationError, RelayError
from rss_relay.notifier import Transport
from rss_relay.rss_parser import FeedParser
from rss_relay.storage import SubscriberStore
from rss_relay.telegram import format_item

logger = logging.getLogger(__name__)

COMMANDS = [
    ("start", "Start the automatic blog updates"),
    ("stop", "Stop the automatic blog updates"),
    ("check", "Check whether you're currently subscribed"),
    ("latest", "Fetch the latest blog post"),
    ("about", "Display an about message"),
    ("help", "Display this help message"),
]

TARGET_COMMANDS = {"start", "stop", "check"}


def reports_errors(func):
    """Decorator turning relay errors into a reply to the invoking chat."""

    @wraps(func)
    async def wrapper(self, update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        try:
            return await func(self, update, context, *args, **kwargs)
        except InvalidChatTarget as e:
            await self._reply(update, str(e))
        except AuthorizationError as e:
            logger.warning("Rejected /%s: %s", func.__name__, e)
            await self._reply(update, e.user_message)
        except RelayError as e:
            logger.error("Command /%s failed: %s", func.__name__, e)
            await self._reply(update, e.user_message)

    return wrapper


def help_text() -> str:
    """Build the reply to /help from the command list."""
    lines = [
        "These commands are supported:",
        "",
    ]
    for name, description in COMMANDS:
        usage = f"/{name} [@channel]" if name in TARGET_COMMANDS else f"/{name}"
        lines.append(f"{usage} - {description}")
    lines.append("")
    lines.append("Admins can start/stop updates for channels via /start @channelname.")
    return "\n".join(lines)


class CommandRouter:
    """Resolves command targets and applies them to the subscriber store."""

    def __init__(
        self,
        store: SubscriberStore,
        parser: FeedParser,
        transport: Transport,
        admins: frozenset[str],
        feed_name: str = "the blog",
        about_text: str = "",
    ):
        self.store = store
        self.parser = parser
        self.transport = transport
        self.admins = admins
        self.feed_name = feed_name
        self.about_text = about_text

    def register(self, application: Application) -> None:
        """Register all command handlers on the application."""
        # Edited messages must not re-run a command
        new_messages = filters.UpdateType.MESSAGE
        for name, callback in (
            ("start", self.start),
            ("stop", self.stop),
            ("check", self.check),
            ("latest", self.latest),
            ("about", self.about),
            ("help", self.help),
        ):
            application.add_handler(CommandHandler(name, callback, filters=new_messages))
        application.add_error_handler(self.on_error)

    async def set_commands(self, bot: Bot) -> None:
        """Publish the command list to Telegram. Failure is not fatal."""
        try:
            await bot.set_my_commands([BotCommand(name, desc) for name, desc in COMMANDS])
        except TelegramError as e:
            logger.warning("Unable to publish bot commands: %s", e)

    def _resolve_target(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> tuple[ChatIdentifier, bool]:
        """
        Determine which chat a command acts on.

        Returns
        -------
        tuple[ChatIdentifier, bool]
            The target and whether it was named explicitly.

        Raises
        ------
        InvalidChatTarget
            If the argument cannot be parsed.
        AuthorizationError
            If a target was named by a non-admin.
        """
        args = context.args or []
        if len(args) > 1:
            raise InvalidChatTarget("Expected at most one chat, e.g. /start @channelname")

        target = parse_chat_target(args[0] if args else None)
        if target is None:
            return ChatHandle(update.effective_chat.id), False

        self._check_admin(update)
        return target, True

    def _check_admin(self, update: Update) -> None:
        user = update.effective_user
        if user is None:
            raise AuthorizationError("Received update from no user")
        if not user.username:
            raise AuthorizationError(f"User {user.id} has no username")
        if user.username.lstrip("@") not in self.admins:
            raise AuthorizationError(f"{user.username} has no admin permissions")

    async def _reply(
        self, update: Update, text: str, parse_mode: ParseMode | None = None
    ) -> None:
        message = update.effective_message
        if message is None:
            return
        try:
            await message.reply_text(text, parse_mode=parse_mode)
        except TelegramError as e:
            logger.error("Unable to reply in chat %s: %s", update.effective_chat.id, e)

    @reports_errors
    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start - subscribe the caller's chat or a named one."""
        target, named = self._resolve_target(update, context)

        await self.store.add(target)
        logger.info("Subscribed chat %s", target)
        if named:
            await self._reply(update, f"{target} is now subscribed to {self.feed_name}.")

        await self.transport.send(
            target,
            f"You are now subscribed to {self.feed_name}. The latest post is:",
            rich=False,
        )
        item = await self.parser.fetch_latest()
        await self.transport.send(target, format_item(item), rich=True)

    @reports_errors
    async def stop(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /stop - unsubscribe the caller's chat or a named one."""
        target, named = self._resolve_target(update, context)

        await self.store.remove(target)
        logger.info("Unsubscribed chat %s", target)
        if named:
            await self._reply(update, f"{target} is now unsubscribed from {self.feed_name}.")

        await self.transport.send(
            target,
            f"You are now unsubscribed from {self.feed_name}.",
            rich=False,
        )

    @reports_errors
    async def check(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /check - report whether a chat is subscribed."""
        target, named = self._resolve_target(update, context)

        subject = f"{target} is" if named else "You're"
        if await self.store.contains(target):
            reply = (
                f"{subject} currently subscribed to {self.feed_name}. "
                "Enter /stop to unsubscribe."
            )
        else:
            reply = (
                f"{subject} currently not subscribed to {self.feed_name}. "
                "Enter /start to subscribe."
            )
        await self._reply(update, reply)

    @reports_errors
    async def latest(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /latest - fetch and show the newest post."""
        item = await self.parser.fetch_latest()
        await self._reply(update, format_item(item), parse_mode=ParseMode.HTML)

    async def about(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /about"""
        await self._reply(update, self.about_text)

    async def help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /help"""
        await self._reply(update, help_text())

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Log errors the handlers did not deal with."""
        logger.error("Unhandled error while processing update %s", update, exc_info=context.error)
