from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class InboundMessage(BaseModel):
    """A chat message as delivered by the platform adapter."""

    author_id: str
    channel_id: str
    text: str = ""
    message_id: str = ""
    author_name: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)
