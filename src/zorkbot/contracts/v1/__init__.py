from __future__ import annotations

from .message import InboundMessage

__all__ = ["InboundMessage"]
