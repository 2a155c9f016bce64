"""
Chat platform adapters.

- Discord: Gateway (discord.py)
"""

from .base import ChatAdapter, MessageHandler
from .discord import DiscordAdapter

__all__ = ["ChatAdapter", "MessageHandler", "DiscordAdapter"]
