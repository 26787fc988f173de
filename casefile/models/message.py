"""
Message model - one line of output produced by a command.

Messages are what the delivery layer forwards to the player, verbatim.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class Message(BaseModel):
    """A single message in the turn's log.

    Attributes:
        speaker: Who produced the message
        sender_name: Display name ("Narrator", an NPC's name, a device)
        content: The text
        message_type: How the client should present it
        image_url: Optional media attached to the message
    """

    speaker: Literal["narrator", "npc", "system", "player", "device"] = "narrator"
    sender_name: str = "Narrator"
    content: str
    message_type: Literal["text", "image", "video", "document"] = "text"
    image_url: str | None = None
