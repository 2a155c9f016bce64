"""
zorkbot chat port

Connects one chat channel to one interpreter session.

Architecture:
- Inbound: chat message -> CommandRouter -> InputBuffer -> interpreter input
- Outbound: interpreter output -> OutputBuffer -> periodic flush -> channel

Usage:
    zorkbot run -t <token> [--prod]
"""

from .bridge import Bridge, StartupError, start_bridge
from .router import CommandRouter, parse_command

__all__ = ["Bridge", "StartupError", "start_bridge", "CommandRouter", "parse_command"]
