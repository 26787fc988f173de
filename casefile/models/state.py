"""
Runtime state models.

PlayerState is everything that changes during play. It is owned by exactly
one in-flight command and is only ever changed through EffectReducer.

RuntimeState holds the per-entity overrides layered on top of the authored
content. Every field defaults to None, meaning "not overridden, use the
authored value". Entries are created lazily by the first effect that touches
an entity and are never deleted.

Example:
    >>> state = PlayerState(game_id="test-case", current_location_id="loc_office")
    >>> state.world["obj_safe"] = RuntimeState(is_locked=False)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from casefile.models.content import Item


class RuntimeState(BaseModel):
    """Mutable per-entity fields.

    Containment lives here as an arena: the child keeps parent_id and the
    parent keeps contained_entities. The reducer keeps both sides in sync.
    """

    is_visible: bool | None = None
    is_open: bool | None = None
    is_locked: bool | None = None
    is_broken: bool | None = None
    is_moved: bool | None = None
    is_powered_on: bool | None = None
    taken: bool | None = None
    current_state_id: str | None = None

    parent_id: str | None = None
    contained_entities: list[str] = Field(default_factory=list)

    discovered: bool | None = None
    revealed_by: str | None = None

    examined_count: int = 0
    used_count: int = 0
    read_count: int = 0
    interaction_count: int = 0

    completed_topics: list[str] = Field(default_factory=list)
    conversation_summary: str | None = None
    stage: str | None = None
    importance: str | None = None


class PlayerState(BaseModel):
    """Complete state for one player's case."""

    game_id: str
    current_location_id: str
    current_zone_id: str | None = None
    current_chapter_id: str | None = None

    # Attention
    current_focus_id: str | None = None
    previous_focus_id: str | None = None
    focus_type: Literal["object", "item", "npc", "device"] | None = None

    # Modes
    active_device_focus: str | None = None
    active_conversation_with: str | None = None
    interacting_with_object: str | None = None

    inventory: list[str] = Field(default_factory=list)
    flags: dict[str, bool] = Field(default_factory=dict)
    counters: dict[str, int] = Field(default_factory=dict)
    world: dict[str, RuntimeState] = Field(default_factory=dict)

    # Items synthesized during play (CREATE_DYNAMIC_ITEM)
    runtime_items: dict[str, Item] = Field(default_factory=dict)
    active_timers: dict[str, int] = Field(default_factory=dict)

    turn_count: int = 0

    @property
    def mode(self) -> str:
        """Which input mode the player is in"""
        if self.active_conversation_with:
            return "conversation"
        if self.interacting_with_object:
            return "interaction"
        if self.active_device_focus:
            return "device"
        return "normal"
