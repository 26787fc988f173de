"""
Turn authored outcomes into ordered effect lists.

Ordering:
    1. the outcome's state-changing effects
    2. the outcome's main message (with media, if any)
    3. the outcome's own SHOW_MESSAGE effects

State changes land before any message is shown.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from casefile.models.effects import EffectType, ShowMessage

if TYPE_CHECKING:
    from casefile.models.content import Outcome

_VIDEO = re.compile(r"\.(mp4|webm|ogg|mov)$", re.IGNORECASE)


def media_type(url: str | None) -> str:
    if not url:
        return "text"
    if _VIDEO.search(url):
        return "video"
    return "image"


def message(content: str, speaker: str = "narrator", sender_name: str | None = None) -> ShowMessage:
    """Plain narration effect."""
    return ShowMessage(content=content, speaker=speaker, sender_name=sender_name)


def outcome_message(outcome: "Outcome") -> ShowMessage:
    """Main SHOW_MESSAGE for an outcome, carrying its media."""
    url = outcome.media.url if outcome.media else None
    speaker = outcome.speaker if outcome.speaker in ("narrator", "npc", "system", "device") else "narrator"
    sender_name = None
    if outcome.speaker and speaker == "narrator" and outcome.speaker != "narrator":
        sender_name = outcome.speaker
    return ShowMessage(
        content=outcome.message or "",
        speaker=speaker,
        sender_name=sender_name,
        message_type=media_type(url),
        image_url=url,
    )


def build_effects_from_outcome(outcome: "Outcome | None") -> list[Any]:
    """Ordered effects for an outcome (empty for None)."""
    if outcome is None:
        return []

    effects: list[Any] = [e for e in outcome.effects if e.type != EffectType.SHOW_MESSAGE]
    if outcome.message:
        effects.append(outcome_message(outcome))
    effects.extend(e for e in outcome.effects if e.type == EffectType.SHOW_MESSAGE)
    return effects


def has_effect(effects: list[Any], kind: EffectType) -> bool:
    return any(getattr(e, "type", None) == kind for e in effects)
