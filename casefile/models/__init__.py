"""Pydantic models for the Casefile engine"""

from casefile.models.content import (
    Game,
    Location,
    Zone,
    GameObject,
    Item,
    NPC,
    Portal,
    Chapter,
    Capabilities,
    AuthoredState,
    EntityChildren,
    Rule,
    Outcome,
    Condition,
)
from casefile.models.effects import Effect, EffectType
from casefile.models.message import Message
from casefile.models.perception import PerceptionSnapshot, VisibleEntity
from casefile.models.state import PlayerState, RuntimeState
from casefile.models.validation import (
    AccessReason,
    AccessResult,
    RejectionCode,
    ValidationResult,
    valid_result,
    invalid_result,
)

__all__ = [
    # Content models
    "Game",
    "Location",
    "Zone",
    "GameObject",
    "Item",
    "NPC",
    "Portal",
    "Chapter",
    "Capabilities",
    "AuthoredState",
    "EntityChildren",
    "Rule",
    "Outcome",
    "Condition",
    # Effects
    "Effect",
    "EffectType",
    # Messages
    "Message",
    # Perception
    "PerceptionSnapshot",
    "VisibleEntity",
    # State
    "PlayerState",
    "RuntimeState",
    # Validation
    "AccessReason",
    "AccessResult",
    "RejectionCode",
    "ValidationResult",
    "valid_result",
    "invalid_result",
]
