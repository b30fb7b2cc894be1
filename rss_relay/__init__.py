"""
RSS Relay - Broadcast new blog posts to subscribed Telegram chats.

A Python application that polls a single RSS/Atom feed and relays
each new post to every chat that subscribed through the bot.
"""

__version__ = "1.0.0"
